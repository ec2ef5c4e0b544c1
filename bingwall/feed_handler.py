"""
Bing Image Archive - Feed Client

This module is a wrapper around the public, unauthenticated HPImageArchive endpoint that Bing uses to
publish its image of the day. A single GET returns a small XML document describing the image, e.g.

    <images><image><startdate>20240101</startdate><url>/th?id=...</url><urlBase>/th?id=...</urlBase>...

Only the startdate, url and urlBase tags are consumed. Downloading the image itself is handled by
image_handler so that this file stays limited to building the request and reading its answer.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode
from xml.etree import ElementTree

import requests

from bingwall.console import log
from bingwall.utils import retry


BING_HOST = "https://www.bing.com"
FEED_PATH = "/HPImageArchive.aspx"

# requests waits forever without a timeout
TIMEOUT = 30


class TransportError(Exception):
    """
    Raised when the feed can't be reached or answers with a non-success status.
    """

    pass


class ParseError(Exception):
    """
    Raised when a required field is missing from the feed response or the response is not XML.
    """

    pass


@dataclass(frozen=True)
class FeedMetadata:
    """Fields of today's image as published by the feed."""

    start_date: str
    url: Optional[str] = None
    url_base: Optional[str] = None


def build_feed_url(market: str) -> str:
    """
    Build the metadata url for today's image (idx=0) in the given market, one result only (n=1).
    """

    query = urlencode({"format": "xml", "idx": 0, "n": 1, "mkt": market})
    return f"{BING_HOST}{FEED_PATH}?{query}"


def find_tag(root: ElementTree.Element, tag: str) -> Optional[str]:
    """
    Return the stripped inner text of the first element named tag anywhere under root (root included),
    or None when the tag is absent or empty.
    """

    for element in root.iter(tag):
        text = (element.text or "").strip()
        return text or None

    return None


def parse_feed(body) -> FeedMetadata:
    """
    Read a feed response body (str or bytes) into FeedMetadata. Raise ParseError if the document
    can't be parsed, startdate is missing, or neither url nor urlBase is present.
    """

    try:
        root = ElementTree.fromstring(body)

    except ElementTree.ParseError as error:
        raise ParseError(f"Could not parse Bing feed: {error}")

    start_date = find_tag(root, "startdate")
    if start_date is None:
        raise ParseError("Could not parse <startdate> from Bing feed")

    url = find_tag(root, "url")
    url_base = find_tag(root, "urlBase")
    if url is None and url_base is None:
        raise ParseError("Could not parse <url> or <urlBase> from Bing feed")

    return FeedMetadata(start_date=start_date, url=url, url_base=url_base)


@retry(TransportError)
def fetch_feed(url: str) -> bytes:
    """
    GET the feed document. Network failures and bad statuses are raised as TransportError so the
    retry policy can kick in.
    """

    try:
        r = requests.get(url, timeout=TIMEOUT)

    except requests.exceptions.RequestException as error:
        raise TransportError(f"Could not reach Bing feed at {url}: {error}")

    try:
        r.raise_for_status()
    except requests.exceptions.HTTPError:
        raise TransportError(
            f"Bing feed at {url} answered with status code {r.status_code}"
        )

    return r.content


def fetch_daily_image_metadata(market: str) -> FeedMetadata:
    """
    Fetch and parse the metadata of today's image for market.
    """

    url = build_feed_url(market)
    log(f"Fetching Bing feed: {url}")

    return parse_feed(fetch_feed(url))
