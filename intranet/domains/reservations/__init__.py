"""Room reservations: collision-free bookings per room."""
