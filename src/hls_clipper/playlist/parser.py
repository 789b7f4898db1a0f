from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import urljoin

from hls_clipper.playlist.models import (
    INCOMPLETE_SEGMENT,
    MALFORMED_REFERENCE,
    MALFORMED_TAG,
    OUT_OF_ORDER,
    OVERWRITTEN_TAG,
    Notice,
    ParseResult,
    Segment,
)

log = logging.getLogger("hls_clipper")

PROGRAM_DATE_TIME_TAG = "#EXT-X-PROGRAM-DATE-TIME:"
EXTINF_TAG = "#EXTINF:"

_COMPACT_OFFSET_RE = re.compile(r"([+-])(\d{2})(\d{2})$")
_EXTINF_RE = re.compile(r"^#EXTINF:\s*(\d+(?:\.\d*)?|\.\d+)\s*(?:,|$)")


def normalize_offset(value: str) -> str:
    """Rewrite a trailing ``±HHMM`` offset as ``±HH:MM``.

    Values without a compact offset are returned unchanged.
    """
    return _COMPACT_OFFSET_RE.sub(r"\1\2:\3", value.strip())


def parse_program_date_time(value: str) -> datetime:
    """Parse the payload of an ``#EXT-X-PROGRAM-DATE-TIME`` tag.

    Accepts ISO 8601 with ``Z``, ``±HH:MM`` or compact ``±HHMM`` offsets.
    Raises ValueError for unparsable or offset-less timestamps.
    """
    text = normalize_offset(value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.utcoffset() is None:
        raise ValueError(f"timestamp has no UTC offset: {value!r}")
    return parsed


def parse_duration(line: str) -> float:
    """Extract the duration in seconds from an ``#EXTINF:<number>[,title]`` line."""
    m = _EXTINF_RE.match(line.strip())
    if not m:
        raise ValueError(f"unparsable duration: {line!r}")
    duration = float(m.group(1))
    if not math.isfinite(duration) or duration < 0:
        raise ValueError(f"invalid duration: {line!r}")
    return duration


@dataclass(frozen=True)
class _Pending:
    """Tags seen since the last segment reference."""

    start_time: Optional[datetime] = None
    duration: Optional[float] = None

    @property
    def complete(self) -> bool:
        return self.start_time is not None and self.duration is not None

    @property
    def empty(self) -> bool:
        return self.start_time is None and self.duration is None


_AWAITING_SEGMENT = _Pending()


def _on_time_tag(pending: _Pending, line: str, line_no: int) -> Tuple[_Pending, List[Notice]]:
    notices: List[Notice] = []
    if pending.start_time is not None:
        notices.append(Notice(
            OVERWRITTEN_TAG,
            f"Timestamp {pending.start_time.isoformat()} was never consumed by a segment",
            line_no,
        ))
    value = line[len(PROGRAM_DATE_TIME_TAG):]
    try:
        return replace(pending, start_time=parse_program_date_time(value)), notices
    except ValueError:
        notices.append(Notice(MALFORMED_TAG, f"Invalid timestamp: {value.strip()}", line_no))
        return replace(pending, start_time=None), notices


def _on_duration_tag(pending: _Pending, line: str, line_no: int) -> Tuple[_Pending, List[Notice]]:
    notices: List[Notice] = []
    if pending.duration is not None:
        notices.append(Notice(
            OVERWRITTEN_TAG,
            f"Duration {pending.duration} was never consumed by a segment",
            line_no,
        ))
    try:
        return replace(pending, duration=parse_duration(line)), notices
    except ValueError:
        notices.append(Notice(MALFORMED_TAG, f"Invalid duration: {line}", line_no))
        return replace(pending, duration=None), notices


def _on_reference(
    pending: _Pending,
    previous: Optional[Segment],
    line: str,
    base_url: str,
    line_no: int,
) -> Tuple[Optional[Segment], List[Notice]]:
    try:
        url = urljoin(base_url, line)
    except ValueError as exc:
        return None, [Notice(MALFORMED_REFERENCE, f"Skipped unresolvable segment reference {line!r}: {exc}", line_no)]

    if not pending.complete:
        return None, [Notice(
            INCOMPLETE_SEGMENT,
            f"Skipped segment {url}: time={_fmt(pending.start_time)}, duration={pending.duration}",
            line_no,
        )]
    if previous is not None and pending.start_time < previous.start_time:
        return None, [Notice(
            OUT_OF_ORDER,
            f"Skipped segment {url}: starts at {_fmt(pending.start_time)}, "
            f"before previous segment at {_fmt(previous.start_time)}",
            line_no,
        )]
    return Segment(url=url, start_time=pending.start_time, duration=pending.duration), []


def parse_playlist(content: str, base_url: str) -> ParseResult:
    """Turn playlist text into timed segments.

    Each segment reference consumes the ``#EXT-X-PROGRAM-DATE-TIME`` and
    ``#EXTINF`` tags seen since the previous reference. References lacking
    either tag, or that cannot be resolved against *base_url*, are dropped
    and reported as notices, never raised.
    """
    segments: List[Segment] = []
    notices: List[Notice] = []
    pending = _AWAITING_SEGMENT

    for line_no, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith(PROGRAM_DATE_TIME_TAG):
            pending, new = _on_time_tag(pending, line, line_no)
        elif line.startswith(EXTINF_TAG):
            pending, new = _on_duration_tag(pending, line, line_no)
        elif line.startswith("#"):
            continue
        else:
            seg, new = _on_reference(pending, segments[-1] if segments else None, line, base_url, line_no)
            if seg is not None:
                segments.append(seg)
                log.debug("Added segment: %s, start %s, duration %.3f", seg.url, _fmt(seg.start_time), seg.duration)
            pending = _AWAITING_SEGMENT

        for notice in new:
            log.warning("Line %d: %s", notice.line_no, notice.message)
        notices.extend(new)

    if not pending.empty:
        n = Notice(
            INCOMPLETE_SEGMENT,
            f"Playlist ended with unconsumed tags: time={_fmt(pending.start_time)}, duration={pending.duration}",
        )
        log.warning(n.message)
        notices.append(n)

    log.info("Parsed %d segments (%d notices)", len(segments), len(notices))
    return ParseResult(segments=tuple(segments), notices=tuple(notices))


def _fmt(ts: Optional[datetime]) -> str:
    return ts.isoformat() if ts is not None else "null"