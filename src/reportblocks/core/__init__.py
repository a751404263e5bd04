"""Core package initializer for reportblocks.

Settings conveniences live in :mod:`reportblocks.core.settings`:
    from reportblocks.core.settings import settings, load_settings, Settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]
