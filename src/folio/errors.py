"""Error taxonomy for gallery lookup and asset acquisition."""

from __future__ import annotations


class FolioError(Exception):
    """Base class for all Folio errors."""


class GalleryError(FolioError):
    """Metadata retrieval failed. The message is safe to show to users."""


class NotFoundError(GalleryError):
    """The gallery code does not exist on the remote host."""

    def __init__(self, code: str) -> None:
        super().__init__(f"code {code} not found")
        self.code = code


class UnexpectedStatusError(GalleryError):
    """The remote host answered with a non-success status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"API returned status {status_code}")
        self.status_code = status_code


class TransportError(GalleryError):
    """The request could not be sent or the connection failed."""


class DecodeError(GalleryError):
    """The response body was not JSON matching the gallery schema."""


class AcquisitionError(FolioError):
    """Asset acquisition failed after metadata was fetched."""


class DirectoryCreationError(AcquisitionError):
    """The destination directory could not be created."""


class AssetDownloadError(AcquisitionError):
    """An asset could not be downloaded within the retry budget.

    Attributes:
        url: The asset URL.
        attempts: Number of attempts made.
        last_error: Description of the last observed failure.
    """

    def __init__(self, url: str, attempts: int, last_error: str) -> None:
        super().__init__(f"failed to download {url} after {attempts} attempts: {last_error}")
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
