from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Tuple

from hls_clipper.playlist.models import Notice, Segment

ClipKind = Literal["before", "after"]


@dataclass(frozen=True)
class Window:
    """Target interval around a reference instant.

    ``before`` windows are closed ``[reference - seconds, reference]``;
    ``after`` windows are half-open ``[reference, reference + seconds)``.
    """

    kind: ClipKind
    reference: datetime
    seconds: float

    @classmethod
    def before(cls, reference: datetime, seconds: float) -> "Window":
        return cls("before", reference, seconds)

    @classmethod
    def after(cls, reference: datetime, seconds: float) -> "Window":
        return cls("after", reference, seconds)

    @property
    def start(self) -> datetime:
        if self.kind == "before":
            return self.reference - timedelta(seconds=self.seconds)
        return self.reference

    @property
    def end(self) -> datetime:
        if self.kind == "before":
            return self.reference
        return self.reference + timedelta(seconds=self.seconds)

    def overlaps(self, segment: Segment) -> bool:
        if self.kind == "before":
            return segment.start_time <= self.end and segment.end_time >= self.start
        return segment.end_time > self.start and segment.start_time < self.end

    def describe(self) -> str:
        closing = "]" if self.kind == "before" else ")"
        return f"[{self.start.isoformat()}, {self.end.isoformat()}{closing}"


@dataclass(frozen=True)
class Selection:
    segments: Tuple[Segment, ...]
    window: Window
    fallback: bool = False
    notices: Tuple[Notice, ...] = ()

    @property
    def total_duration(self) -> float:
        return sum(s.duration for s in self.segments)

    @property
    def earliest(self) -> Segment:
        return self.segments[0]
