"""Protocol definitions for image backends."""

from __future__ import annotations

from typing import Protocol

from zxytiles.core.models import TileInvocation


class ImageBackend(Protocol):
    """Interface for the external capability that resizes, splits and encodes tiles."""

    name: str

    def render(self, invocation: TileInvocation) -> None:
        """Write every tile of ``invocation``; raise ``TileCommandError`` on failure."""
