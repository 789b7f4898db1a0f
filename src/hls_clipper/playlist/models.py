from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Tuple

# Notice codes for anomalies that are recovered locally.
MALFORMED_TAG = "malformed_tag"
INCOMPLETE_SEGMENT = "incomplete_segment"
OVERWRITTEN_TAG = "overwritten_tag"
NO_COVERAGE = "no_coverage"
SHORT_SOURCE = "short_source"
CLEANUP_FAILURE = "cleanup_failure"
OUT_OF_ORDER = "out_of_order"
MALFORMED_REFERENCE = "malformed_reference"


@dataclass(frozen=True)
class Notice:
    code: str
    message: str
    line_no: Optional[int] = None


@dataclass(frozen=True)
class Segment:
    url: str
    start_time: datetime
    duration: float

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration)


@dataclass(frozen=True)
class ParseResult:
    """Segments parsed from one playlist, plus the anomalies seen on the way."""

    segments: Tuple[Segment, ...] = ()
    notices: Tuple[Notice, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.segments)

    def notices_with(self, code: str) -> Tuple[Notice, ...]:
        return tuple(n for n in self.notices if n.code == code)


Timeline = Tuple[Segment, ...]
