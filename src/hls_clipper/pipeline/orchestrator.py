from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

from hls_clipper.config import Config
from hls_clipper.errors import ClipFailure
from hls_clipper.media.fetcher import fetch_playlist
from hls_clipper.output.manifest import write_manifest
from hls_clipper.pipeline.assembler import ClipResult, assemble_clip
from hls_clipper.playlist.models import Notice, ParseResult
from hls_clipper.playlist.parser import parse_playlist
from hls_clipper.run_id import generate_run_id
from hls_clipper.selection.models import ClipKind, Window
from hls_clipper.selection.window import select_window

log = logging.getLogger("hls_clipper")


@dataclass(frozen=True)
class ClipOutcome:
    kind: ClipKind
    window: Window
    output: Path
    result: Optional[ClipResult] = None
    error: Optional[ClipFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


@dataclass(frozen=True)
class ExtractionReport:
    run_id: str
    parse: ParseResult
    outcomes: Tuple[ClipOutcome, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    def outcome(self, kind: ClipKind) -> ClipOutcome:
        for o in self.outcomes:
            if o.kind == kind:
                return o
        raise KeyError(kind)


def run_extraction(cfg: Config, client: Optional[httpx.Client] = None) -> ExtractionReport:
    """Fetch the playlist, then cut the before and after clips around ``cfg.reference_time``.

    A failed playlist fetch raises FetchFailure. Past that point each clip
    is produced independently: a failure is recorded on its ClipOutcome
    and logged, and never stops the other clip.
    """
    cfg.validate()
    if cfg.reference_time is None:
        raise ValueError("reference_time is required")

    if client is None:
        with httpx.Client(follow_redirects=True) as own:
            return run_extraction(cfg, own)

    run_id = generate_run_id()
    reference = cfg.reference_time
    log.info("Reference time: %s", reference.isoformat())

    # ── Fetch & parse ───────────────────────────────────────────────
    content = fetch_playlist(
        cfg.playlist_url,
        client,
        timeout=cfg.fetch_timeout_s,
        retries=cfg.fetch_retries,
        backoff_s=cfg.retry_backoff_s,
    )
    parsed = parse_playlist(content, cfg.playlist_url)
    log.info("Found %d segments in the playlist", len(parsed))

    # ── Before / after clips ────────────────────────────────────────
    out_dir = Path(cfg.out_dir)
    windows = [
        (Window.before(reference, cfg.before_seconds), out_dir / cfg.before_filename),
        (Window.after(reference, cfg.after_seconds), out_dir / cfg.after_filename),
    ]
    outcomes = tuple(
        _produce_clip(parsed, window, out_path, cfg, client, f"{run_id}_{window.kind}")
        for window, out_path in windows
    )

    report = ExtractionReport(run_id=run_id, parse=parsed, outcomes=outcomes)
    if cfg.write_manifest:
        manifest_path = out_dir / "run_manifest.json"
        write_manifest(manifest_path, _build_manifest(report, cfg))
        log.info("Manifest written to %s", manifest_path)

    log.info(
        "Done: %d of %d clips generated",
        sum(o.ok for o in outcomes), len(outcomes),
    )
    return report


def _produce_clip(
    parsed: ParseResult,
    window: Window,
    out_path: Path,
    cfg: Config,
    client: httpx.Client,
    request_id: str,
) -> ClipOutcome:
    try:
        selection = select_window(parsed.segments, window, cfg.max_segments)
        result = assemble_clip(selection, out_path, cfg, client, request_id=request_id)
    except (RuntimeError, OSError) as exc:
        failure = ClipFailure(window.kind, window.describe(), exc)
        log.error("%s", failure)
        return ClipOutcome(kind=window.kind, window=window, output=out_path, error=failure)
    return ClipOutcome(kind=window.kind, window=window, output=out_path, result=result)


def _notice_dicts(notices: Tuple[Notice, ...]) -> List[Dict[str, Any]]:
    return [{"code": n.code, "message": n.message, "line": n.line_no} for n in notices]


def _build_manifest(report: ExtractionReport, cfg: Config) -> Dict[str, Any]:
    clips: List[Dict[str, Any]] = []
    for o in report.outcomes:
        rec: Dict[str, Any] = {
            "kind": o.kind,
            "window": {"start": o.window.start.isoformat(), "end": o.window.end.isoformat()},
            "output": str(o.output),
            "ok": o.ok,
        }
        if o.result is not None:
            rec["segments"] = list(o.result.segment_urls)
            rec["trim"] = {
                "start_s": o.result.plan.trim_start_s,
                "duration_s": o.result.plan.duration_s,
                "source_duration_s": o.result.plan.source_duration_s,
            }
            rec["probed_duration_s"] = o.result.probed_duration_s
            rec["notices"] = _notice_dicts(o.result.notices)
        if o.error is not None:
            rec["error"] = {"type": type(o.error.cause).__name__, "message": str(o.error.cause)}
        clips.append(rec)

    return {
        "run_id": report.run_id,
        "created_utc": datetime.now(timezone.utc).isoformat(),
        "params": {
            "playlist_url": cfg.playlist_url,
            "reference_time": cfg.reference_time.isoformat() if cfg.reference_time else None,
            "before_seconds": cfg.before_seconds,
            "after_seconds": cfg.after_seconds,
            "max_segments": cfg.max_segments,
        },
        "timeline": {
            "segments": len(report.parse),
            "notices": _notice_dicts(report.parse.notices),
        },
        "clips": clips,
    }
