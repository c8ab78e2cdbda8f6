"""
Platform adapters for the Chukrum engine.

This package provides adapters that translate between the core engine and
a concrete front end (console, scripted tests, transcript files).
"""

from chukrum.adapters.base import PlatformAdapter
from chukrum.adapters.cli import CLIAdapter
from chukrum.adapters.dummy import DummyAdapter
from chukrum.adapters.transcript import TranscriptAdapter

__all__ = ["PlatformAdapter", "CLIAdapter", "DummyAdapter", "TranscriptAdapter"]
