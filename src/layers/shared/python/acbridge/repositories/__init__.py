"""DynamoDB repositories."""

from acbridge.repositories.base import BaseRepository
from acbridge.repositories.session import SessionRepository
from acbridge.repositories.settings import SettingsRepository

__all__ = [
    "BaseRepository",
    "SessionRepository",
    "SettingsRepository",
]
