"""Core module - catalog-neutral mapping and change detection.

This module contains the canonical and native data models, the mapping
framework (entity, relationship and classification mappers, registry,
search translation), change detection and observability.

Definitions for specific native types belong in /connectors/.
"""

__version__ = "1.0.0"
