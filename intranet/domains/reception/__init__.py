"""Reception front-desk appointments."""
