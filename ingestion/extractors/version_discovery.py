"""
Discover stable Kubernetes releases from the upstream GitHub tag listing.

GitHub lists tags newest-first in pages. Only plain vMAJOR.MINOR.PATCH tags
count as stable releases; anything with a pre-release suffix is ignored.
"""

import re
from typing import List, Optional, Tuple, Dict, Any
import logging

import httpx

from core.config import settings
from core.exceptions import VersionDiscoveryError
from ingestion.base import HTTPSource

logger = logging.getLogger(__name__)

STABLE_TAG = re.compile(r"^v(\d+)\.(\d+)\.(\d+)$")
TAG_PREFIX = re.compile(r"^v(\d+)\.(\d+)")

TAGS_PAGE_SIZE = 100
LATEST_PAGE_SIZE = 50


def parse_stable_tag(tag: str) -> Optional[Tuple[int, int, int]]:
    """(major, minor, patch) for a stable tag, None for anything else"""
    match = STABLE_TAG.match(tag or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def sort_releases(releases: List[str]) -> List[str]:
    """Deduplicate stable tags and sort them newest first"""
    unique = {tag for tag in releases if parse_stable_tag(tag)}
    return sorted(unique, key=parse_stable_tag, reverse=True)


class VersionDiscovery(HTTPSource):
    """
    Read the Kubernetes tag listing.

    Features:
    - Optional token authentication (higher rate limit, never required)
    - Paging with early stop once a page ends below the minimum minor version
    - Retry logic inherited from HTTPSource
    """

    error_class = VersionDiscoveryError
    fetch_name = "tag_listing"

    def __init__(
        self,
        api_url: Optional[str] = None,
        repository: Optional[str] = None,
        token: Optional[str] = None,
        max_pages: int = 50,
        **kwargs,
    ):
        super().__init__(source_name="github_tags", **kwargs)
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self.repository = repository or settings.KUBERNETES_REPO
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.max_pages = max_pages

    @property
    def tags_url(self) -> str:
        return f"{self.api_url}/repos/{self.repository}/tags"

    def build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        page: int,
        per_page: int,
    ) -> List[str]:
        params: Dict[str, Any] = {"per_page": per_page, "page": page}
        response = await self._make_request_with_retry(
            client, self.tags_url, params=params, context={"page": page}
        )

        try:
            data = response.json()
        except ValueError as e:
            raise VersionDiscoveryError(
                "Failed to parse tag listing",
                context={"fetch": self.fetch_name, "url": self.tags_url, "page": page},
                original_exception=e
            )

        if not isinstance(data, list):
            raise VersionDiscoveryError(
                "Tag listing is not a list",
                context={"fetch": self.fetch_name, "url": self.tags_url, "page": page}
            )

        return [
            tag["name"] for tag in data
            if isinstance(tag, dict) and isinstance(tag.get("name"), str)
        ]

    async def discover(self, min_minor_version: Optional[int] = None) -> List[str]:
        """
        List stable releases with minor version >= min_minor_version.

        Returns:
            Release tags sorted descending by (major, minor, patch)

        Raises:
            VersionDiscoveryError (or a transport subclass) on any failed page
        """
        min_minor = settings.MIN_MINOR_VERSION if min_minor_version is None else min_minor_version
        releases: List[str] = []
        page = 1

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while page <= self.max_pages:
                logger.info(f"Fetching tag page {page} from {self.tags_url}")
                tags = await self._fetch_page(client, page, TAGS_PAGE_SIZE)
                if not tags:
                    break

                for tag in tags:
                    parsed = parse_stable_tag(tag)
                    if parsed and parsed[1] >= min_minor:
                        releases.append(tag)

                # Listing is newest-first: once a page ends below the minimum, stop
                last = TAG_PREFIX.match(tags[-1])
                if last and int(last.group(2)) < min_minor:
                    break

                page += 1

        if page > self.max_pages:
            logger.warning(
                f"Stopped after {self.max_pages} tag pages, release listing may be incomplete"
            )

        result = sort_releases(releases)
        logger.info(f"Discovered {len(result)} stable releases (minor >= {min_minor})")
        return result

    async def latest_stable(self) -> str:
        """
        Highest stable release on the first page of the tag listing.

        Raises:
            VersionDiscoveryError: If the page holds no stable tag
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            tags = await self._fetch_page(client, 1, LATEST_PAGE_SIZE)

        stable = sort_releases(tags)
        if not stable:
            raise VersionDiscoveryError(
                "No stable Kubernetes version found",
                context={"fetch": self.fetch_name, "url": self.tags_url, "tags_seen": len(tags)}
            )

        logger.info(f"Latest stable release is {stable[0]}")
        return stable[0]
