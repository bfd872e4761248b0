"""Resource directory client.

This module provides an async HTTP client for the resource directory's
batch URL endpoint and a Resolver built on top of it.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, NotRequired, TypedDict

import httpx

from mediafill.core.resource import ResourceInfo, ResourceInfoDict
from mediafill.errors import ResourceNotFoundError

if TYPE_CHECKING:
    from mediafill.config import DirectoryConfig

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100
DEFAULT_EXPIRES_IN = 3600


class FileUrlsRequestDict(TypedDict):
    """Batch URL request."""

    file_ids: list[str]
    include_variants: bool
    expires_in: int


class FileUrlsResponseDict(TypedDict):
    """Batch URL response."""

    results: NotRequired[dict[str, ResourceInfoDict]]


class DirectoryClient:
    """Async HTTP client for the resource directory."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        """Initialize directory client.

        Args:
            client: httpx AsyncClient (carrying auth headers and timeout)
            base_url: Directory base URL (e.g., http://resource-server:8000)
        """
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def get_file_urls(
        self,
        file_ids: list[str],
        *,
        include_variants: bool = True,
        expires_in: int = DEFAULT_EXPIRES_IN,
    ) -> dict[str, ResourceInfo]:
        """Get delivery URLs for a batch of files.

        Args:
            file_ids: File IDs (at most MAX_BATCH_SIZE)
            include_variants: Also return variant URLs (e.g., thumbnails)
            expires_in: URL lifetime in seconds

        Returns:
            ResourceInfo per file ID returned by the directory

        Raises:
            ValueError: If more than MAX_BATCH_SIZE IDs are requested
            httpx.HTTPError: If request fails
        """
        if not file_ids:
            return {}

        if len(file_ids) > MAX_BATCH_SIZE:
            raise ValueError(
                f"Cannot request more than {MAX_BATCH_SIZE} file IDs at once, got {len(file_ids)}"
            )

        payload: FileUrlsRequestDict = {
            "file_ids": file_ids,
            "include_variants": include_variants,
            "expires_in": expires_in,
        }

        logger.info(f"Requesting URLs for {len(file_ids)} files")
        response = await self.client.post(
            f"{self.base_url}/internal/files/urls",
            json=payload,
            headers={"Accept": "application/json"},
        )
        if response.status_code >= 400:
            logger.error(f"Error response: {response.text}")
        response.raise_for_status()

        data: FileUrlsResponseDict = response.json()
        results = data.get("results") or {}
        return {file_id: ResourceInfo.from_dict(info) for file_id, info in results.items()}

    async def get_file_url(self, file_id: str) -> str:
        """Get the delivery URL of one file.

        Args:
            file_id: File ID

        Returns:
            Primary URL

        Raises:
            ResourceNotFoundError: If the directory has no usable URL for the file
            httpx.HTTPError: If request fails
        """
        results = await self.get_file_urls([file_id])
        info = results.get(file_id)
        if info is None:
            raise ResourceNotFoundError(file_id, "file does not exist")
        if not info.success:
            raise ResourceNotFoundError(file_id, info.error or "file does not exist")
        return info.url


@dataclass(frozen=True)
class ResolverOptions:
    """Options passed to every directory lookup."""

    include_variants: bool = True
    expires_in: int = DEFAULT_EXPIRES_IN


class DirectoryResolver:
    """Resolver backed by the resource directory."""

    def __init__(self, client: DirectoryClient, options: ResolverOptions | None = None):
        self.client = client
        self.options = options or ResolverOptions()

    async def resolve(self, ids: list[str]) -> Mapping[str, ResourceInfo]:
        return await self.client.get_file_urls(
            ids,
            include_variants=self.options.include_variants,
            expires_in=self.options.expires_in,
        )


def create_directory_client(config: "DirectoryConfig") -> DirectoryClient:
    """Create a directory client from configuration.

    The caller owns the underlying httpx client and should close it with
    ``await client.client.aclose()``.
    """
    headers: dict[str, str] = {}
    if config.token:
        headers["Authorization"] = f"Bearer {config.token}"
    http_client = httpx.AsyncClient(timeout=config.timeout, headers=headers)
    return DirectoryClient(http_client, config.base_url)


def create_resolver(config: "DirectoryConfig") -> DirectoryResolver:
    """Create a directory resolver from configuration."""
    return DirectoryResolver(
        create_directory_client(config),
        ResolverOptions(
            include_variants=config.include_variants,
            expires_in=config.expires_in,
        ),
    )
