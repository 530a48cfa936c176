# Generation Services
"""
Services package for the bundle generator.

Provides the entry points consumed by document builders.
"""

from .bundle_service import (
    BundleService,
    StockResult,
    ActorResult,
    EncounterResult,
)

__all__ = [
    'BundleService',
    'StockResult',
    'ActorResult',
    'EncounterResult',
]
