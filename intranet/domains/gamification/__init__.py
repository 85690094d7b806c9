"""Points, levels, streaks, badges and ranking derived from user activity."""
