"""Gamification models."""

from intranet.domains.gamification.models.profile import ActivityEvent, GamificationProfile

__all__ = ["ActivityEvent", "GamificationProfile"]
