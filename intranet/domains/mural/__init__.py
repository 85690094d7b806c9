"""Company mural: announcements with likes and comments."""
