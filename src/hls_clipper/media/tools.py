from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

log = logging.getLogger("hls_clipper")

STDERR_TAIL_CHARS = 2000


def ensure_tool(name: str) -> str:
    """Return the full path to *name* or raise RuntimeError."""
    path = shutil.which(name)
    if not path:
        raise RuntimeError(
            f"Required tool not found on PATH: {name}. "
            f"Please install it and make sure it is accessible."
        )
    return path


def stderr_tail(stderr: str | bytes | None, limit: int = STDERR_TAIL_CHARS) -> str:
    """Last *limit* characters of a tool's stderr, where the actual error usually is."""
    if not stderr:
        return ""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr[-limit:].strip()


def run_cmd(cmd: list[str], timeout: float = 120) -> subprocess.CompletedProcess[str]:
    """Run a command, log it, and return the completed process.

    Raises CalledProcessError on a non-zero exit, with ``stderr`` cut down
    to its tail, and TimeoutExpired when *timeout* seconds pass first.
    """
    log.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=timeout)
    except subprocess.CalledProcessError as exc:
        exc.stderr = stderr_tail(exc.stderr)
        log.debug("%s exited with code %d: %s", Path(cmd[0]).name, exc.returncode, exc.stderr)
        raise


def run_cmd_json(cmd: list[str], timeout: float = 120) -> dict[str, Any]:
    """Run a command and parse its stdout as JSON."""
    proc = run_cmd(cmd, timeout=timeout)
    return json.loads(proc.stdout)
