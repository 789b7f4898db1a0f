from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator, List

from hls_clipper.playlist.models import CLEANUP_FAILURE, Notice

log = logging.getLogger("hls_clipper")


def cleanup_tmp(tmp_dir: Path) -> List[Notice]:
    """Remove *tmp_dir* and its contents, reporting failures instead of raising."""
    if not tmp_dir.exists():
        return []
    failures: List[Notice] = []
    # deepest paths first so directories are empty by the time we reach them
    for path in sorted(tmp_dir.rglob("*"), key=lambda p: len(p.parts), reverse=True) + [tmp_dir]:
        try:
            if path.is_dir() and not path.is_symlink():
                path.rmdir()
            else:
                path.unlink()
        except OSError as exc:
            failures.append(Notice(CLEANUP_FAILURE, f"Failed to delete {path}: {exc}"))
            log.warning("Failed to delete %s: %s", path, exc)
    if not failures:
        log.info("Cleaned up tmp dir: %s", tmp_dir)
    return failures


@contextlib.contextmanager
def request_workspace(root: Path, request_id: str, keep: bool = False) -> Iterator["Workspace"]:
    """Create ``root/request_id`` for one clip request and remove it on exit.

    Removal runs on every exit path, including exceptions; its failures are
    collected on ``Workspace.notices`` and logged, never raised.
    """
    ws = Workspace(root / request_id)
    ws.path.mkdir(parents=True, exist_ok=True)
    try:
        yield ws
    finally:
        if keep:
            log.info("Keeping working files in %s", ws.path)
        else:
            ws.notices.extend(cleanup_tmp(ws.path))


class Workspace:
    """Request-scoped directory for downloaded segments and the concat list."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.notices: List[Notice] = []

    def file(self, name: str) -> Path:
        return self.path / name

    @property
    def concat_list(self) -> Path:
        return self.path / "concat_list.txt"
