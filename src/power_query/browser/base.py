"""Browser session abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


@dataclass
class PageInfo:
    """Metadata of the currently loaded page."""

    title: str = ""
    url: Optional[str] = None


class BrowserPage(ABC):
    """A single open page of the browser session."""

    @abstractmethod
    def wait_stable(self) -> None:
        """Block until the DOM stops changing."""

    @abstractmethod
    def info(self) -> PageInfo:
        """Return metadata of the loaded document."""

    @abstractmethod
    def fill(self, selector: str, text: str) -> None:
        """Type ``text`` into the element matching ``selector``."""

    @abstractmethod
    def click(self, selector: str) -> None:
        """Click the element matching ``selector``."""

    @abstractmethod
    def wait_navigation(self) -> None:
        """Block until a navigation triggered by the last interaction completes."""

    @abstractmethod
    def evaluate(self, script: str) -> Any:
        """Run ``script`` in the page and return its JSON-compatible result."""

    @abstractmethod
    def screenshot(self, path: Path) -> None:
        """Write a screenshot of the page to ``path``."""

    @abstractmethod
    def close(self) -> None:
        """Close the page."""


class BrowserSession(ABC):
    """Interface for the long-lived automation-capable browser session."""

    @abstractmethod
    def start(self) -> None:
        """Launch or connect to the browser."""

    @abstractmethod
    def stop(self) -> None:
        """Terminate the browser session."""

    @abstractmethod
    def open_page(self, url: str) -> BrowserPage:
        """Open ``url`` in a new page."""

    @abstractmethod
    def get_credentials(self) -> str:
        """Return the session cookies serialized as a JSON string."""

    @abstractmethod
    def set_credentials(self, blob: str) -> None:
        """Load cookies serialized by :meth:`get_credentials` into the session."""
