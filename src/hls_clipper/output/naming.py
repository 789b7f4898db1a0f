from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse


def safe_slug(text: str, max_len: int = 200) -> str:
    """Convert *text* to a filesystem-safe slug.

    Unsafe characters are replaced with underscores, consecutive underscores
    are collapsed, and the result is truncated to *max_len* characters.
    Returns ``"item"`` for empty / whitespace-only input.
    """
    slug = re.sub(r'[^\w\-.]', '_', text)
    slug = re.sub(r'_+', '_', slug)
    slug = slug.strip('_')
    slug = slug[:max_len]
    return slug or "item"


def segment_filename(index: int, url: str) -> str:
    """Local name for the *index*-th selected segment, e.g. ``001_seg42.ts``.

    The index prefix keeps names unique when two URLs share a basename.
    """
    basename = PurePosixPath(unquote(urlparse(url).path)).name
    return f"{index:03d}_{safe_slug(basename, max_len=120)}"
