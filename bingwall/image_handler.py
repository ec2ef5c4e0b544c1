"""
Image Handler

Utilities for resolving, caching and downloading the daily image.

Caching: the file name of a download is derived from the feed's startdate, the market and the
resolution, e.g. "20240101-en-US-UHD.jpg". Identical triples always land on the same path, so an
existing file means the work was already done and no network access happens (unless forced). There
is no freshness check against the server.

Downloading: the payload is written to a temporary file next to its final location, checked with
Pillow to make sure the server actually sent an image, then moved into place in a single rename.
A failed or interrupted download therefore never leaves a partial file under the final name.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError
import requests

from bingwall.config import validate_resolution
from bingwall.console import log
from bingwall.feed_handler import BING_HOST
from bingwall.feed_handler import FeedMetadata
from bingwall.feed_handler import ParseError
from bingwall.feed_handler import TIMEOUT
from bingwall.utils import retry


# world readable, like a plain download under the usual 022 umask
IMAGE_FILE_MODE = 0o644


class DownloadError(Exception):
    """
    Raised when an image download is unsuccessful.
    """

    pass


class InvalidImageError(DownloadError):
    """
    Raised when the downloaded payload is not an image. Wrapper around the PIL
    UnidentifiedImageError.
    """

    pass


@dataclass(frozen=True)
class DownloadRequest:
    """What to download and where to put it. Supplied by the CLI for the whole run."""

    market: str
    resolution: str
    target_directory: Path
    force_redownload: bool = False


@dataclass(frozen=True)
class CachedImage:
    """Location of a daily image and whether it existed when checked."""

    path: Path
    exists: bool


def resolve_image_url(metadata: FeedMetadata, resolution: str) -> str:
    """
    Prefer a url matching the requested resolution when urlBase is available. Without urlBase the
    feed's url is used as-is and resolution is not consulted.
    """

    if metadata.url_base:
        return f"{BING_HOST}{metadata.url_base}_{validate_resolution(resolution)}.jpg"

    if not metadata.url:
        raise ParseError("Feed metadata has neither <url> nor <urlBase>")

    log("No <urlBase> found; falling back to <url> as-is.")
    return f"{BING_HOST}{metadata.url}"


def cached_image_path(
    target_directory: Path, start_date: str, market: str, resolution: str
) -> Path:
    """
    Path of the daily image for (start_date, market, resolution) inside target_directory.
    """

    return Path(target_directory).expanduser() / f"{start_date}-{market}-{resolution}.jpg"


def check_cache(request: DownloadRequest, metadata: FeedMetadata) -> CachedImage:
    path = cached_image_path(
        request.target_directory, metadata.start_date, request.market, request.resolution
    )
    return CachedImage(path=path, exists=path.is_file())


def validate_image(input) -> str:
    """
    Determine whether input is a valid image and return its format. PIL only reads the header here,
    nothing is decoded.
    """

    try:
        with Image.open(input) as image:
            return image.format

    except UnidentifiedImageError:
        raise InvalidImageError(f"Input {str(input)} does not appear to be an image.")

    except FileNotFoundError:
        raise InvalidImageError(f"Input {str(input)} could not be found.")


@retry(DownloadError)
def fetch_image(url: str) -> bytes:
    """
    GET the image bytes at url. Retried on network errors and bad statuses.
    """

    try:
        r = requests.get(url, timeout=TIMEOUT)

    except requests.exceptions.RequestException as error:
        raise DownloadError(f"Download failed: {error}")

    try:
        r.raise_for_status()
    except requests.exceptions.HTTPError:
        raise DownloadError(
            f"Download failed: something went wrong trying to access {url} (status code {r.status_code})"
        )

    return r.content


def download_image(url: str, file_path: Path) -> Path:
    """
    Download the image at url to file_path, overwriting whatever is there. The parent directory is
    created if needed. Returns the location on filesystem where the image was saved.
    """

    destination_path = Path(file_path).expanduser()

    if destination_path.is_dir():
        raise DownloadError(f"Destination file {destination_path} is a directory.")

    destination_path.parent.mkdir(parents=True, exist_ok=True)

    content = fetch_image(url)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination_path.name}.", suffix=".part", dir=destination_path.parent
    )
    tmp_path = Path(tmp_name)
    published = False

    try:
        with os.fdopen(fd, "wb") as file:
            # mkstemp creates 0600 files, the picture directory may be shared
            os.fchmod(file.fileno(), IMAGE_FILE_MODE)
            file.write(content)

        validate_image(tmp_path)
        os.replace(tmp_path, destination_path)
        published = True

    except InvalidImageError:
        raise DownloadError(
            f"Download failed: the resource at {url} does not appear to be an image."
        )

    except OSError as error:
        raise DownloadError(f"Download failed: could not write {destination_path}: {error}")

    finally:
        if not published:
            tmp_path.unlink(missing_ok=True)

    return destination_path


def resolve_or_download(request: DownloadRequest, metadata: FeedMetadata) -> Path:
    """
    Return the local path of today's image, downloading it only when it isn't cached yet or
    force_redownload is set.
    """

    url = resolve_image_url(metadata, request.resolution)
    cached = check_cache(request, metadata)

    if cached.exists and not request.force_redownload:
        log(f"Already downloaded: {cached.path}")
        return cached.path

    log(f"Downloading: {url}")
    path = download_image(url, cached.path)
    log(f"Saved: {path}")

    return path
