"""
Config module - Default settings and static table definitions.
"""

from .settings import (
    DEFAULT_SETTINGS,
    CUSTOMER_TABLE,
    CAMPAIGN_TABLE,
    STATIC_TABLE_PRIMARY_KEYS,
)

__all__ = [
    'DEFAULT_SETTINGS',
    'CUSTOMER_TABLE',
    'CAMPAIGN_TABLE',
    'STATIC_TABLE_PRIMARY_KEYS',
]
