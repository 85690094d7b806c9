"""Reservation HTTP controllers."""
