# File: minionpipe/__init__.py
# Location: minionpipe/minionpipe/__init__.py

"""
minionpipe Package.

This package runs ONT long-read data through a fixed chain of external tools
(read merging, length filtering, alignment, sorting, coverage, small-variant and
structural-variant calling) with explicit artifact contracts between stages.
"""

from .version import __version__
