"""
Release Source Port

Architectural Intent:
- Port interface for the remote release registry
- Provides release metadata and raw artifact bytes
- Implemented by GitHubReleaseAdapter

All operations may raise FetchError, RateLimitError, ParseError or
OperationTimeoutError.
"""

from abc import ABC, abstractmethod
from typing import List
from fleetwright.domain.value_objects.release import Release


class ReleaseSourcePort(ABC):
    """
    Port interface for fetching releases and artifacts.
    """

    @abstractmethod
    async def fetch_latest(self) -> Release:
        """
        Returns the latest non-prerelease release.
        """
        pass

    @abstractmethod
    async def fetch_by_version(self, version: str) -> Release:
        pass

    @abstractmethod
    async def list_releases(self) -> List[Release]:
        """
        Returns all published releases, newest first.
        """
        pass

    @abstractmethod
    async def download(self, url: str) -> bytes:
        pass
