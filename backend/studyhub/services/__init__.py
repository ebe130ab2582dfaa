"""Domain services: connection state machine, streaks, notifications."""

from studyhub.services.connections import connection_service
from studyhub.services.streaks import streak_service

__all__ = ["connection_service", "streak_service"]
