"""Cafeteria protein exchanges: swap the planned protein of a meal day."""
