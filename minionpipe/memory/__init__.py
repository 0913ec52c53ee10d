"""Resource detection for minionpipe runs."""

from .resource_manager import ResourceManager

__all__ = ["ResourceManager"]
