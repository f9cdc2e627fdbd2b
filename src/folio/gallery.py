"""Gallery metadata retrieval.

One GET per lookup, no retries. Every failure is mapped onto the
GalleryError taxonomy so callers can surface it to users verbatim.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from folio.errors import DecodeError, NotFoundError, TransportError, UnexpectedStatusError
from folio.logging import get_logger
from folio.models import GalleryRecord

if TYPE_CHECKING:
    from folio.config import GalleryConfig

log = get_logger("gallery")


class GalleryClient:
    """Fetches and validates gallery metadata from the remote API.

    Attributes:
        config: Gallery host configuration.
    """

    def __init__(
        self,
        config: GalleryConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Gallery host configuration.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.config = config
        self._transport = transport

    async def fetch_metadata(self, code: str) -> GalleryRecord:
        """Fetch metadata for a gallery code.

        Args:
            code: Public gallery code.

        Returns:
            The parsed GalleryRecord.

        Raises:
            NotFoundError: The remote answered 404.
            UnexpectedStatusError: Any other non-200 status.
            TransportError: The request could not be completed.
            DecodeError: The body is not JSON matching the gallery schema.
        """
        url = self.config.metadata_url(code)
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
        }
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.metadata_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            log.warning("metadata_request_failed", code=code, error=str(e))
            raise TransportError(f"request failed: {e}") from e

        log.info(
            "metadata_response",
            code=code,
            status=response.status_code,
            response_ms=round((time.monotonic() - started) * 1000),
        )

        if response.status_code == 404:
            raise NotFoundError(code)
        if response.status_code != 200:
            raise UnexpectedStatusError(response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"invalid JSON response: {e}") from e

        if not isinstance(payload, dict):
            raise DecodeError("invalid JSON response: expected an object")

        try:
            return GalleryRecord.from_api(code, payload)
        except ValidationError as e:
            raise DecodeError(f"invalid JSON response: {e.error_count()} schema errors") from e
