from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Sequence

from hls_clipper.config import EncodeConfig
from hls_clipper.errors import TrimFailure, TrimTimeout
from hls_clipper.media.tools import ensure_tool, run_cmd, stderr_tail
from hls_clipper.selection.models import Selection

log = logging.getLogger("hls_clipper")


@dataclass(frozen=True)
class TrimPlan:
    """Where to cut inside the concatenated selection, in seconds."""

    trim_start_s: float
    duration_s: float
    source_duration_s: float

    @property
    def short_source(self) -> bool:
        return self.source_duration_s < self.duration_s


def plan_trim(selection: Selection, window_start: datetime, duration_s: float) -> TrimPlan:
    """Compute the trim offset of *window_start* relative to the first selected segment.

    The offset is clamped at zero when the window starts before the
    selection does.
    """
    if not selection.segments:
        raise ValueError("Cannot plan a trim for an empty selection")
    offset = (window_start - selection.earliest.start_time).total_seconds()
    return TrimPlan(
        trim_start_s=max(0.0, offset),
        duration_s=duration_s,
        source_duration_s=selection.total_duration,
    )


def _concat_entry(path: Path) -> str:
    posix = path.resolve().as_posix().replace("'", "'\\''")
    return f"file '{posix}'"


def write_concat_list(paths: Sequence[Path], list_path: Path) -> Path:
    """Write an ffmpeg concat-demuxer list of *paths*, in the given order."""
    list_path.parent.mkdir(parents=True, exist_ok=True)
    list_path.write_text("\n".join(_concat_entry(p) for p in paths) + "\n", encoding="utf-8")
    log.debug("Created concat list: %s (%d entries)", list_path, len(paths))
    return list_path


def build_trim_command(
    ffmpeg: str,
    concat_list: Path,
    plan: TrimPlan,
    out_path: Path,
    encode: EncodeConfig,
) -> list[str]:
    cmd = [
        ffmpeg,
        "-hide_banner",
        "-loglevel", "error",
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_list),
        "-ss", f"{plan.trim_start_s:.3f}",
        "-t", f"{plan.duration_s:.3f}",
        "-c:v", encode.video_codec,
        "-preset", encode.preset,
    ]
    if encode.drop_audio:
        cmd.append("-an")
    cmd += ["-f", encode.container, "-y", str(out_path)]
    return cmd


def run_trim(
    concat_list: Path,
    plan: TrimPlan,
    out_path: Path,
    encode: EncodeConfig,
    timeout: float = 300,
) -> Path:
    """Trim and re-encode the concatenated segments into *out_path*.

    Raises TrimTimeout when ffmpeg overruns *timeout* and TrimFailure on
    any other unsuccessful run.
    """
    ffmpeg = ensure_tool("ffmpeg")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_trim_command(ffmpeg, concat_list, plan, out_path, encode)

    log.info(
        "Trimming %.1fs from offset %.3fs → %s",
        plan.duration_s, plan.trim_start_s, out_path,
    )
    try:
        run_cmd(cmd, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        raise TrimTimeout(f"ffmpeg timed out after {timeout:.0f}s writing {out_path}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = stderr_tail(exc.stderr)
        raise TrimFailure(
            f"ffmpeg exited with code {exc.returncode} writing {out_path}: {stderr}",
            returncode=exc.returncode,
            stderr=stderr,
        ) from exc
    except OSError as exc:
        raise TrimFailure(f"Could not run ffmpeg: {exc}") from exc
    return out_path
