"""Core configuration and utilities."""

from hkidash.core.config import settings
from hkidash.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
