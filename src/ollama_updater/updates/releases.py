"""
Release metadata: fetching from the GitHub releases API and selection.

Selection trusts the API ordering (newest first): the latest stable release
is the first published non-pre-release record, the latest pre-release the
first published pre-release record. Drafts are never selected.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ollama_updater import __version__
from ollama_updater.errors import InvalidResponseError, UnavailableError
from ollama_updater.logging import get_logger

if TYPE_CHECKING:
    from ollama_updater.config import ReleaseSourceConfig

logger = get_logger(__name__)


class Release(BaseModel):
    """
    A single release record.

    Attributes:
        tag: Release tag, e.g. "v0.6.0-rc1".
        notes: Free-text release body.
        is_prerelease: Whether the release is marked as a pre-release.
        is_draft: Whether the release is an unpublished draft.
    """

    model_config = ConfigDict(frozen=True)

    tag: str = Field(..., description="Release tag name")
    notes: str = Field(default="", description="Release notes body")
    is_prerelease: bool = Field(default=False, description="Pre-release flag")
    is_draft: bool = Field(default=False, description="Draft flag")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Release:
        """
        Build a Release from a GitHub API release object.

        Raises:
            KeyError: If ``tag_name`` is missing.
            ValidationError: If a field has the wrong type, e.g. a null tag.
        """
        return cls(
            tag=data["tag_name"],
            notes=data.get("body") or "",
            is_prerelease=bool(data.get("prerelease", False)),
            is_draft=bool(data.get("draft", False)),
        )


def select_latest(releases: Iterable[Release], prerelease: bool) -> Release | None:
    """
    Return the first published release on the requested channel.

    Args:
        releases: Release records in API order.
        prerelease: True to select a pre-release, False for a stable release.

    Returns:
        The first record that is not a draft and whose pre-release flag
        equals ``prerelease``, or None.
    """
    for release in releases:
        if not release.is_draft and release.is_prerelease == prerelease:
            return release
    return None


def latest_stable(releases: Iterable[Release]) -> Release | None:
    """Return the latest stable release, if any."""
    return select_latest(releases, prerelease=False)


def latest_prerelease(releases: Iterable[Release]) -> Release | None:
    """Return the latest pre-release, if any."""
    return select_latest(releases, prerelease=True)


class ReleaseFetcher:
    """
    Fetches the release list from the GitHub releases API.

    Only the first page is read. There is no retry: a failed request is
    reported as UnavailableError with the transport's own message.

    Example:
        >>> fetcher = ReleaseFetcher("https://api.github.com/repos/ollama/ollama/releases")
        >>> releases = await fetcher.fetch_releases()
    """

    def __init__(self, api_url: str, timeout: float = 30.0) -> None:
        """
        Initialize the fetcher.

        Args:
            api_url: Release list endpoint.
            timeout: HTTP timeout in seconds.
        """
        self._api_url = api_url
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: ReleaseSourceConfig) -> ReleaseFetcher:
        """Create a ReleaseFetcher from configuration."""
        return cls(api_url=config.api_url, timeout=config.timeout_seconds)

    @property
    def api_url(self) -> str:
        """Return the API URL."""
        return self._api_url

    async def fetch_releases(self) -> list[Release]:
        """
        Fetch and parse the release list.

        Returns:
            Releases in API order.

        Raises:
            UnavailableError: If the request fails.
            InvalidResponseError: If the payload is not a release list.
        """
        logger.debug("Fetching releases from %s", self._api_url)

        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"ollama-updater/{__version__}",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._api_url, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error("Failed to fetch releases: %s", str(e))
            raise UnavailableError(
                f"Failed to fetch releases: {e}",
                details={"url": self._api_url},
            ) from e
        except ValueError as e:
            raise InvalidResponseError(
                f"Invalid release list response: {e}",
                details={"url": self._api_url},
            ) from e

        if not isinstance(data, list):
            raise InvalidResponseError(
                "Invalid release list response: expected a JSON array",
                details={"url": self._api_url, "type": type(data).__name__},
            )

        return self._parse_releases(data)

    def _parse_releases(self, data: list[Any]) -> list[Release]:
        releases: list[Release] = []
        for item in data:
            if not isinstance(item, dict) or "tag_name" not in item:
                logger.warning("Skipping release record without 'tag_name'")
                continue
            try:
                releases.append(Release.from_api(item))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed release record",
                    extra={"tag_name": repr(item.get("tag_name")), "error": str(e)},
                )

        logger.info("Fetched %d releases", len(releases))
        return releases
