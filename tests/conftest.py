"""Shared builders for playlist, selection and pipeline tests."""
from __future__ import annotations

import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from hls_clipper.playlist.models import Segment


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

IST = timezone(timedelta(hours=5, minutes=30))
T0 = datetime(2025, 6, 3, 8, 3, 0, tzinfo=IST)


def at(seconds: float) -> datetime:
    """Return ``T0 + seconds``."""
    return T0 + timedelta(seconds=seconds)


def compact(ts: datetime) -> str:
    """Format *ts* the way live encoders do: millis plus a ``±HHMM`` offset."""
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}" + ts.strftime("%z")


# ---------------------------------------------------------------------------
# Playlist builders
# ---------------------------------------------------------------------------

BASE_URL = "http://cdn.test/live/stream.m3u8"


def build_playlist(
    entries: Sequence[Tuple[Optional[float], Optional[float], str]],
    header: bool = True,
) -> str:
    """Build playlist text from ``(offset_s, duration_s, uri)`` triples.

    A ``None`` offset or duration omits that tag for the entry.
    """
    lines: List[str] = []
    if header:
        lines += ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:6"]
    for offset, duration, uri in entries:
        if offset is not None:
            lines.append(f"#EXT-X-PROGRAM-DATE-TIME:{compact(at(offset))}")
        if duration is not None:
            lines.append(f"#EXTINF:{duration:.3f},")
        lines.append(uri)
    return "\n".join(lines) + "\n"


def regular_entries(count: int, duration: float = 6.0, spacing: float = 5.0) -> List[Tuple[float, float, str]]:
    return [(i * spacing, duration, f"seg{i}.ts") for i in range(count)]


def make_segments(count: int, duration: float = 6.0, spacing: float = 5.0) -> Tuple[Segment, ...]:
    return tuple(
        Segment(url=f"http://cdn.test/live/seg{i}.ts", start_time=at(i * spacing), duration=duration)
        for i in range(count)
    )


# ---------------------------------------------------------------------------
# HTTP mocking
# ---------------------------------------------------------------------------

def make_client(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> httpx.Client:
    """Client whose transport dispatches on the request URL; unknown URLs get 404."""
    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        return route(request)
    return httpx.Client(transport=httpx.MockTransport(handler))


def static(body, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    if isinstance(body, str):
        return lambda request: httpx.Response(status, text=body)
    return lambda request: httpx.Response(status, content=body)


# ---------------------------------------------------------------------------
# ffmpeg side-effects
# ---------------------------------------------------------------------------

def make_trim_side_effect(calls: Optional[list] = None) -> Callable:
    """Return a ``run_cmd`` side_effect that records the concat list and writes the output file."""
    def side_effect(cmd, timeout=120):
        concat_list = Path(cmd[cmd.index("-i") + 1])
        if calls is not None:
            calls.append({"cmd": list(cmd), "concat": concat_list.read_text(encoding="utf-8")})
        out = Path(cmd[-1])
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(b"\x47" * 188)
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="", stderr="")
    return side_effect


def failing_trim_side_effect(cmd, timeout=120):
    raise subprocess.CalledProcessError(1, cmd, output="", stderr="concat: Invalid data found")
