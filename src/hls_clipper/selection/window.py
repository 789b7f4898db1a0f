from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from hls_clipper.errors import EmptyTimeline
from hls_clipper.playlist.models import NO_COVERAGE, Notice, Segment
from hls_clipper.selection.models import Selection, Window

log = logging.getLogger("hls_clipper")

DEFAULT_MAX_SEGMENTS = 3


def select_window(
    timeline: Sequence[Segment],
    window: Window,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> Selection:
    """Pick at most *max_segments* timeline segments covering *window*.

    ``before`` windows keep the last matches (closest to the reference),
    ``after`` windows the first ones. When nothing overlaps, the trailing
    (``before``) or leading (``after``) segments of the whole timeline are
    used instead and a ``no_coverage`` notice is attached.
    """
    if not timeline:
        raise EmptyTimeline(f"Cannot select segments for {window.kind} window: timeline is empty")
    if max_segments < 1:
        raise ValueError("max_segments must be >= 1")

    matches = [s for s in timeline if window.overlaps(s)]
    fallback = not matches
    pool = list(timeline) if fallback else matches
    picked = pool[-max_segments:] if window.kind == "before" else pool[:max_segments]

    notices = ()
    if fallback:
        edge = "latest" if window.kind == "before" else "earliest"
        notice = Notice(
            NO_COVERAGE,
            f"No segments cover {window.kind} window {window.describe()}; using {edge} {len(picked)} segments",
        )
        log.warning(notice.message)
        notices = (notice,)
    else:
        log.info(
            "Selected %d of %d overlapping segments for %s window %s",
            len(picked), len(matches), window.kind, window.describe(),
        )

    return Selection(segments=tuple(picked), window=window, fallback=fallback, notices=notices)


def select_before(
    timeline: Sequence[Segment],
    reference: datetime,
    look_back_s: float,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> Selection:
    return select_window(timeline, Window.before(reference, look_back_s), max_segments)


def select_after(
    timeline: Sequence[Segment],
    reference: datetime,
    look_ahead_s: float,
    max_segments: int = DEFAULT_MAX_SEGMENTS,
) -> Selection:
    return select_window(timeline, Window.after(reference, look_ahead_s), max_segments)
