from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from hls_clipper.media.tools import ensure_tool, run_cmd_json

log = logging.getLogger("hls_clipper")


def probe_duration(media_path: Path, timeout: float = 60) -> Optional[float]:
    """Return the container duration of *media_path* in seconds, or None if ffprobe cannot tell."""
    try:
        cmd = [
            ensure_tool("ffprobe"),
            "-v", "quiet",
            "-show_entries", "format=duration",
            "-of", "json",
            str(media_path),
        ]
        data = run_cmd_json(cmd, timeout=timeout)
        duration = float(data["format"]["duration"])  # e.g. "9.977000"
        log.debug("Probed duration=%.3fs for %s", duration, media_path.name)
        return duration
    except (RuntimeError, subprocess.SubprocessError, KeyError, TypeError, ValueError):
        log.warning("Could not probe duration for %s", media_path.name)
        return None
