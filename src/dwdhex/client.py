"""
Async client for the DWD open data server.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from lxml import html

from .base import Fetcher
from .config import PRODUCTS, Product
from .exceptions import DWDConnectionError, DWDQueryError

logger = logging.getLogger(__name__)

# terminwerte_N_00003_19470101_20110331_hist.zip
ARCHIVE_PATTERN = re.compile(r"^terminwerte_[A-Z]+_(\d{5})_\d{8}_\d{8}_hist\.zip$", re.IGNORECASE)


def station_id_from_archive(name: str) -> Optional[int]:
    """Extract the 5-digit station identifier from an archive file name."""
    match = ARCHIVE_PATTERN.match(name)
    if match is None:
        return None
    return int(match.group(1))


def parse_directory_listing(page: str) -> List[str]:
    """Return the unique archive names linked from a directory listing, sorted."""
    if not page.strip():
        return []
    tree = html.fromstring(page)
    names = {href.rsplit("/", 1)[-1] for href in tree.xpath("//a/@href")}
    return sorted(name for name in names if ARCHIVE_PATTERN.match(name))


class DWDClient(Fetcher):
    """
    Client for the sub-daily ("Terminwerte") observation archives published on
    the DWD Climate Data Center open data server.

    Example:
        >>> async with DWDClient("cloudiness") as client:
        ...     names = await client.list_archives()
        ...     payload = await client.fetch_archive(names[0])
    """

    def __init__(self, product: str = "cloudiness", timeout: int = 30):
        if product not in PRODUCTS:
            raise ValueError(
                f"Unknown product '{product}'. Available: {', '.join(PRODUCTS)}"
            )
        self.product: Product = PRODUCTS[product]
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": "dwdhex/0.1.0"},
        )

    @property
    def base_url(self) -> str:
        return self.product.url

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "DWDClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(
        self, path: str, params: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """Make a request to the open data server with error handling."""
        url = f"{self.base_url}{path}"
        logger.debug(f"GET {url}")

        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            raise DWDConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise DWDQueryError("File not found", details=url) from e
            elif e.response.status_code == 429:
                raise DWDConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise DWDConnectionError("DWD open data server temporarily unavailable") from e
            else:
                raise DWDConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise DWDConnectionError(f"Network error: {e}") from e

    async def list_archives(self) -> List[str]:
        """
        List the station archives of the product.

        Returns:
            Sorted archive file names, e.g. 'terminwerte_N_00003_19470101_20110331_hist.zip'
        """
        response = await self._make_request("")
        names = parse_directory_listing(response.text)
        if not names:
            raise DWDQueryError(
                "No station archives found in directory listing", details=self.base_url
            )
        logger.info(f"Found {len(names)} {self.product.name} archives")
        return names

    async def fetch_archive(self, name: str) -> bytes:
        """Download one station archive."""
        response = await self._make_request(name)
        return response.content

    async def fetch_station_metadata(self) -> str:
        """
        Download the station description file.

        The file is Windows-1252 encoded regardless of what the server reports.
        """
        response = await self._make_request(self.product.metadata_file)
        try:
            return response.content.decode("cp1252")
        except UnicodeDecodeError as e:
            raise DWDQueryError(f"Could not decode station metadata: {e}") from e

    async def list_station_ids(self) -> List[int]:
        """Station identifiers with at least one archive."""
        names = await self.list_archives()
        ids = {station_id_from_archive(name) for name in names}
        return sorted(i for i in ids if i is not None)
