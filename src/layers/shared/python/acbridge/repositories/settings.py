"""Repository for the integration settings singleton."""

import structlog

from acbridge.models.settings import IntegrationSettings
from acbridge.repositories.base import BaseRepository

logger = structlog.get_logger()


class SettingsRepository(BaseRepository[IntegrationSettings]):
    """Loads and saves the one IntegrationSettings item."""

    def __init__(self, table_name: str | None = None):
        super().__init__(IntegrationSettings, table_name)

    def load(self) -> IntegrationSettings:
        """Get stored settings, falling back to environment defaults.

        Returns:
            IntegrationSettings (never None).
        """
        defaults = IntegrationSettings()
        stored = self.get(defaults.get_pk(), defaults.get_sk())
        if stored is None:
            logger.debug("No stored settings, using environment defaults")
            return defaults
        return stored

    def save(self, settings: IntegrationSettings) -> IntegrationSettings:
        """Persist settings.

        Args:
            settings: Sanitized settings to store.

        Returns:
            The saved settings.
        """
        saved = self.put(settings)
        logger.info(
            "Integration settings saved",
            api_url=settings.api_url,
            url_param_name=settings.url_param_name,
            debug_mode=settings.debug_mode,
            configured=settings.is_configured,
        )
        return saved
