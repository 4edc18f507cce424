"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from tutorhub.db.store import GamificationStore
from tutorhub.gamification.events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, event bus) are injected.
    """

    # Infrastructure dependencies (injected)
    store: GamificationStore
    event_bus: EventBus = field(default_factory=EventBus)

    # Services (lazy-loaded via properties)
    _gamification_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def gamification_service(self):
        """Get GamificationService instance (lazy-loaded)"""
        if self._gamification_service is None:
            from tutorhub.services.gamification_service import GamificationService
            self._gamification_service = GamificationService(self.store, self.event_bus)
            logger.debug("GamificationService instantiated")
        return self._gamification_service


def init_container(store: GamificationStore, event_bus: Optional[EventBus] = None) -> ServiceContainer:
    """
    Build the service container for one application instance.

    Args:
        store: Gamification store instance
        event_bus: Optional event bus shared with UI collaborators

    Returns:
        ServiceContainer: The initialized container
    """
    container = ServiceContainer(store=store, event_bus=event_bus or EventBus())
    logger.info("Service container initialized")
    return container
