"""
Platform client registry — factory pattern for building the right client.
"""
from delivery_control.adapters.anotaai import AnotaAIClient
from delivery_control.adapters.base import PlatformClient
from delivery_control.adapters.deliveryvip import DeliveryVipClient
from delivery_control.core.config import Settings
from delivery_control.models.schemas import Platform

_CLIENT_CLASSES: dict[Platform, type[PlatformClient]] = {
    Platform.ANOTAAI: AnotaAIClient,
    Platform.DELIVERYVIP: DeliveryVipClient,
}


def create_clients(settings: Settings, **kwargs) -> dict[Platform, PlatformClient]:
    """
    Instantiate one client per supported platform.
    Each client starts its token renewer on construction unless autostart=False
    is passed, so this must run inside the event loop.
    """
    return {platform: cls(settings, **kwargs) for platform, cls in _CLIENT_CLASSES.items()}
