"""Build the configured provider from Settings."""

import logging

from hapkit.client.hap_client import HapClient
from hapkit.config import Settings
from hapkit.models.failure import ConfigurationError
from hapkit.providers.base import BlueprintSelector, HapProvider
from hapkit.providers.local import LocalHapProvider
from hapkit.providers.selectors import simple_latest_version_selector

logger = logging.getLogger(__name__)


def build_provider(
    config: Settings,
    selector: BlueprintSelector | None = None,
) -> HapProvider:
    """
    Return a LocalHapProvider when a blueprint source is configured,
    otherwise a HapClient for the remote service.

    Args:
        config: Loaded settings
        selector: Selector for the local provider; latest version by default

    Raises:
        ConfigurationError: If neither a blueprint source nor an endpoint is set
    """
    if config.blueprint_source:
        logger.info("Using local blueprints from %s", config.blueprint_source)
        return LocalHapProvider(
            blueprint_source=config.blueprint_source,
            selector=selector or simple_latest_version_selector,
        )

    if not config.endpoint:
        raise ConfigurationError(
            "Either HAP_BLUEPRINT_SOURCE or HAP_ENDPOINT must be set",
            field="endpoint",
        )

    logger.info("Using remote clarification service at %s", config.endpoint)
    return HapClient.from_settings(config)
