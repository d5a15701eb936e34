"""Protocols for the capabilities apps inject into installers.

The library fetches nothing on its own terms: apps hand over the HTTP
transport and, optionally, the version-control backend.
"""

from pathlib import Path
from typing import Protocol
from typing import runtime_checkable


@runtime_checkable
class GetterProtocol(Protocol):
    """Protocol for fetching remote archives.

    Example implementations:
    - HttpxGetter: plain HTTP(S) download (bundled default)
    - Authenticated or proxied getters provided by the app
    - In-memory fakes for tests
    """

    async def get(self, href: str) -> bytes:
        """Fetch the resource at href.

        Args:
            href: Absolute URL of the archive

        Returns:
            Raw archive bytes

        Raises:
            Exception: Any transport failure; installers surface it unmodified
        """
        ...


@runtime_checkable
class VCSBackendProtocol(Protocol):
    """Protocol for version-control backed plugin sources."""

    async def clone(self, url: str, version: str | None, target_dir: Path) -> None:
        """Check out url at version (default branch when None) into target_dir."""
        ...

    async def update(self, target_dir: Path) -> None:
        """Bring an existing checkout up to date."""
        ...
