"""
This module contains the IOInterface abstract base class and its implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List


class IOInterface(ABC):
    """
    Abstract base class for an IO interface.

    This class defines the interface for line-based input/output used by the
    console adapter.
    """

    @abstractmethod
    def output(self, message: str) -> None:
        """Output a message to the interface."""
        pass

    @abstractmethod
    def input(self, prompt: str) -> str:
        """Get input from the user with a prompt."""
        pass


class ConsoleIOInterface(IOInterface):
    """Reads from stdin and writes to stdout."""

    def output(self, message: str) -> None:
        print(message)

    def input(self, prompt: str) -> str:
        return input(prompt)


class TestIOInterface(IOInterface):
    """
    A test IO interface. Collects output messages and replays queued input
    lines in order.
    """

    __test__ = False

    def __init__(self, lines: List[str] = None):
        self.sent_messages: List[str] = []
        self.prompts: List[str] = []
        self.lines: List[str] = list(lines or [])

    def output(self, message: str) -> None:
        self.sent_messages.append(message)

    def input(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.lines:
            raise EOFError("No more scripted input")
        return self.lines.pop(0)

    def add_line(self, line: str) -> None:
        self.lines.append(line)
