"""Caller-side services composing the client, cache and scoring engine."""
from vidstream.services.insights import InsightsService

__all__ = ["InsightsService"]
