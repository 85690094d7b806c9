"""Gamification HTTP controllers."""
