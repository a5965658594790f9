from launchpad.core.config import AppConfig
from launchpad.core.schemas import Channel

from .base import PlatformAdapter as PlatformAdapter
from .google_ads import GoogleAdsAdapter
from .meta_ads import MetaAdsAdapter
from .mock_platform import MockPlatformAdapter

# Map of adapter type strings to adapter classes
ADAPTER_REGISTRY = {
    "meta": MetaAdsAdapter,
    "facebook": MetaAdsAdapter,
    "google": GoogleAdsAdapter,
    "google_ads": GoogleAdsAdapter,
    "mock": MockPlatformAdapter,
}


def get_adapter_class(adapter_type: str):
    """Get the adapter class for a given adapter type."""
    adapter_class = ADAPTER_REGISTRY.get(adapter_type.lower())
    if not adapter_class:
        raise ValueError(f"Unknown adapter type: {adapter_type}")
    return adapter_class


def build_adapters(config: AppConfig) -> dict[Channel, PlatformAdapter]:
    """Construct one adapter per channel, once, at process start.

    Adapters are built even without credentials; they report
    ``is_configured() == False`` and the orchestrator records that channel
    as not configured.
    """
    dry_run = config.launch.dry_run
    return {
        Channel.META: get_adapter_class("meta")(config.meta, dry_run=dry_run),
        Channel.GOOGLE: get_adapter_class("google")(config.google_ads, dry_run=dry_run),
    }
