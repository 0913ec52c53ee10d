"""
Stage definitions for minionpipe.

The catalog is the only place that knows which tools run, in which order, and
which artifacts they exchange.
"""

from .catalog import (
    DEPTH_WINDOW,
    EXTERNAL_TOOL_ROLES,
    MIN_READ_LENGTH,
    MIN_VARIANT_QUAL,
    STAGE_CATALOG,
    STAGE_NAMES,
    build_catalog,
)

__all__ = [
    "DEPTH_WINDOW",
    "EXTERNAL_TOOL_ROLES",
    "MIN_READ_LENGTH",
    "MIN_VARIANT_QUAL",
    "STAGE_CATALOG",
    "STAGE_NAMES",
    "build_catalog",
]
