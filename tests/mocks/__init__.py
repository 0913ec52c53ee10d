"""Test doubles for minionpipe tests."""

from .fake_runner import FakeStageRunner
from .stub_tools import install_stub_tools

__all__ = ["FakeStageRunner", "install_stub_tools"]
