from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx

from hls_clipper.errors import FetchFailure, FetchTimeout

log = logging.getLogger("hls_clipper")

DEFAULT_TIMEOUT_S = 30.0


def is_remote(locator: str) -> bool:
    return urlparse(locator).scheme in ("http", "https")


def _local_path(locator: str) -> Path:
    parsed = urlparse(locator)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(locator)


def _get(
    client: httpx.Client,
    url: str,
    timeout: float,
    retries: int,
    backoff_s: float,
) -> httpx.Response:
    """GET *url*, retrying transport errors, timeouts and 5xx responses.

    4xx responses fail immediately.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            resp = client.get(url, timeout=timeout)
        except httpx.TimeoutException as exc:
            error: FetchFailure = FetchTimeout(url, f"timed out after {timeout:.0f}s ({exc})")
        except httpx.TransportError as exc:
            error = FetchFailure(url, str(exc) or type(exc).__name__)
        else:
            if resp.is_success:
                return resp
            error = FetchFailure(url, f"HTTP {resp.status_code} {resp.reason_phrase}", resp.status_code)
            if resp.status_code < 500:
                raise error

        if attempt > retries:
            raise error
        delay = backoff_s * attempt
        log.warning("Fetch attempt %d/%d failed (%s); retrying in %.1fs", attempt, retries + 1, error, delay)
        time.sleep(delay)


def fetch_playlist(
    url: str,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_S,
    retries: int = 0,
    backoff_s: float = 1.0,
) -> str:
    """Return the playlist text at *url* (HTTP(S) URL, ``file://`` URL or local path)."""
    if not is_remote(url):
        try:
            text = _local_path(url).read_text(encoding="utf-8")
        except OSError as exc:
            raise FetchFailure(url, str(exc)) from exc
        log.info("Read playlist %s (%d bytes)", url, len(text))
        return text

    if client is None:
        with httpx.Client(follow_redirects=True) as own:
            return fetch_playlist(url, own, timeout, retries, backoff_s)

    resp = _get(client, url, timeout, retries, backoff_s)
    log.info("Fetched playlist %s (%d bytes)", url, len(resp.content))
    return resp.text


def download_segment(
    url: str,
    out_path: Path,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT_S,
    retries: int = 0,
    backoff_s: float = 1.0,
) -> Path:
    """Save the segment at *url* to *out_path* and return the path."""
    out_path.parent.mkdir(parents=True, exist_ok=True)

    if not is_remote(url):
        try:
            shutil.copyfile(_local_path(url), out_path)
        except OSError as exc:
            raise FetchFailure(url, str(exc)) from exc
        return out_path

    if client is None:
        with httpx.Client(follow_redirects=True) as own:
            return download_segment(url, out_path, own, timeout, retries, backoff_s)

    log.info("Downloading segment %s → %s", url, out_path.name)
    resp = _get(client, url, timeout, retries, backoff_s)
    out_path.write_bytes(resp.content)
    return out_path
