"""Service layer for the gamification engine"""
from tutorhub.services.gamification_service import GamificationService
from tutorhub.services.container import ServiceContainer, init_container

__all__ = [
    "GamificationService",
    "ServiceContainer",
    "init_container",
]
