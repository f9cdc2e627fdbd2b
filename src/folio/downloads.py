"""Asset acquisition: cover and page downloads for a gallery.

Acquisition is best-effort. The summary and reader only need metadata,
so a failed download is logged and reported back to the caller but never
retracts anything already shown to users.

Downloads stream into a ``.part`` file next to the destination and are
moved into place only once the body is complete, so the destination path
is either absent or whole.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from folio.errors import (
    AssetDownloadError,
    DirectoryCreationError,
    FolioError,
    GalleryError,
)
from folio.logging import get_logger
from folio.models import GalleryRecord

if TYPE_CHECKING:
    from folio.config import Config, GalleryConfig
    from folio.gallery import GalleryClient

log = get_logger("downloads")


@dataclass
class RetryPolicy:
    """Bounded retry with linear backoff.

    Attributes:
        max_attempts: Total attempts, including the first one.
        backoff_base: Seconds multiplied by the 1-based attempt number.
        sleep: Coroutine used to wait between attempts.
    """

    max_attempts: int = 3
    backoff_base: float = 0.5
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def backoff(self, attempt: int) -> float:
        """Delay after a failed attempt (attempt numbers start at 1)."""
        return attempt * self.backoff_base


class AssetDownloader:
    """Streams single assets to disk under a retry policy."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        user_agent: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the downloader.

        Args:
            policy: Retry policy; defaults to 3 attempts at 0.5s steps.
            user_agent: Optional User-Agent header for asset requests.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._transport = transport

    async def download(self, url: str, destination: Path) -> None:
        """Download ``url`` to ``destination``.

        Args:
            url: Asset URL.
            destination: Local file path to write.

        Raises:
            AssetDownloadError: All attempts failed, or the file could not be
                created. The destination is absent in that case.
        """
        part_path = destination.with_suffix(destination.suffix + ".part")
        last_error = ""

        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for attempt in range(1, self.policy.max_attempts + 1):
                try:
                    async with client.stream("GET", url, headers=self._headers) as response:
                        if response.status_code != 200:
                            last_error = f"HTTP {response.status_code}"
                        else:
                            try:
                                f = open(part_path, "wb")
                            except OSError as e:
                                raise AssetDownloadError(url, attempt, str(e)) from e
                            try:
                                with f:
                                    async for chunk in response.aiter_bytes():
                                        f.write(chunk)
                                os.replace(part_path, destination)
                                return
                            except (httpx.HTTPError, OSError) as e:
                                last_error = f"copy failed: {e}"
                                part_path.unlink(missing_ok=True)
                            except BaseException:
                                # Cancelled mid-stream at shutdown
                                part_path.unlink(missing_ok=True)
                                raise
                except httpx.HTTPError as e:
                    last_error = str(e) or type(e).__name__

                delay = self.policy.backoff(attempt)
                log.debug(
                    "asset_attempt_failed",
                    url=url,
                    attempt=attempt,
                    error=last_error,
                    retry_in_seconds=delay,
                )
                await self.policy.sleep(delay)

        raise AssetDownloadError(url, self.policy.max_attempts, last_error)


@dataclass
class AcquisitionResult:
    """Outcome of an acquisition, complete or partial.

    Attributes:
        record: Parsed metadata, or None if the fetch failed.
        directory: Local gallery directory, or None if it was never created.
        error: The failure that stopped acquisition, or None on full success.
        downloaded: Files written during this acquisition, in order.
    """

    record: GalleryRecord | None = None
    directory: Path | None = None
    error: FolioError | None = None
    downloaded: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_partial(self) -> bool:
        """Metadata was fetched but some asset failed."""
        return self.record is not None and self.error is not None


def page_filename(page_number: int, ext: str) -> str:
    """Local filename of a 1-based page, zero-padded to three digits."""
    return f"{page_number:03d}.{ext}"


class AcquisitionPipeline:
    """Fetches metadata and downloads every asset of a gallery in order."""

    def __init__(
        self,
        gallery_client: GalleryClient,
        downloader: AssetDownloader,
        gallery_config: GalleryConfig,
    ) -> None:
        self.gallery_client = gallery_client
        self.downloader = downloader
        self.gallery_config = gallery_config

    @classmethod
    def from_config(cls, config: Config) -> "AcquisitionPipeline":
        """Build a pipeline wired from application configuration."""
        from folio.gallery import GalleryClient

        policy = RetryPolicy(
            max_attempts=config.downloads.max_attempts,
            backoff_base=config.downloads.backoff_base_seconds,
        )
        downloader = AssetDownloader(
            policy=policy,
            user_agent=config.gallery.user_agent,
            timeout=config.gallery.download_timeout_seconds,
        )
        return cls(GalleryClient(config.gallery), downloader, config.gallery)

    async def acquire(self, code: str, destination_root: Path) -> AcquisitionResult:
        """Fetch metadata for ``code`` and download all of its assets.

        Args:
            code: Gallery code.
            destination_root: Directory under which ``<code>/`` is created.

        Returns:
            AcquisitionResult. On a fetch failure only ``error`` is set.
        """
        try:
            record = await self.gallery_client.fetch_metadata(code)
        except GalleryError as e:
            return AcquisitionResult(error=e)

        return await self.download_assets(record, destination_root)

    async def download_assets(
        self,
        record: GalleryRecord,
        destination_root: Path,
    ) -> AcquisitionResult:
        """Download the cover and pages of an already-fetched gallery.

        Stops at the first failed asset. Files written before the failure
        stay on disk. A code that would place the directory outside
        ``destination_root``, or a directory that cannot be created, ends
        the acquisition with no record.
        """
        directory = destination_root / record.code
        if destination_root.resolve() not in directory.resolve().parents:
            log.warning("directory_outside_root", code=record.code, root=str(destination_root))
            return AcquisitionResult(
                error=DirectoryCreationError(
                    f"refusing to create {directory}: not inside {destination_root}"
                )
            )

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return AcquisitionResult(
                error=DirectoryCreationError(
                    f"failed to create destination directory {directory}: {e}"
                )
            )
        result = AcquisitionResult(record=record, directory=directory)

        cover_ext = record.cover_extension
        cover_path = directory / f"cover.{cover_ext}"
        log.debug("downloading_cover", code=record.code, path=str(cover_path))
        try:
            await self.downloader.download(
                self.gallery_config.cover_url(record.media_id, cover_ext),
                cover_path,
            )
        except AssetDownloadError as e:
            log.warning("cover_download_failed", code=record.code, error=str(e))
            result.error = e
            return result
        result.downloaded.append(cover_path)

        for page_number, page in enumerate(record.pages, start=1):
            ext = page.extension
            page_path = directory / page_filename(page_number, ext)
            log.debug("downloading_page", code=record.code, path=str(page_path))
            try:
                await self.downloader.download(
                    self.gallery_config.page_url(record.media_id, page_number, ext),
                    page_path,
                )
            except AssetDownloadError as e:
                log.warning(
                    "page_download_failed",
                    code=record.code,
                    page=page_number,
                    error=str(e),
                )
                result.error = e
                return result
            result.downloaded.append(page_path)

        log.info(
            "acquisition_complete",
            code=record.code,
            directory=str(directory),
            files=len(result.downloaded),
        )
        return result
