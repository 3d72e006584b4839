"""Common utilities for sbgateway."""

from sbgateway.common.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
