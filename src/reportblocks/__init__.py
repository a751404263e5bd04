"""reportblocks package bootstrap.

The editing core lives under :mod:`reportblocks.core`; host glue, rendering,
CLI and HTTP surfaces are layered on top of it.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
