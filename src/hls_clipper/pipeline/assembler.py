from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import httpx

from hls_clipper.config import Config
from hls_clipper.media.fetcher import download_segment
from hls_clipper.media.ffprobe import probe_duration
from hls_clipper.media.trimmer import TrimPlan, plan_trim, run_trim, write_concat_list
from hls_clipper.output.naming import segment_filename
from hls_clipper.output.workspace import Workspace, request_workspace
from hls_clipper.playlist.models import SHORT_SOURCE, Notice
from hls_clipper.run_id import generate_run_id
from hls_clipper.selection.models import Selection

log = logging.getLogger("hls_clipper")


@dataclass(frozen=True)
class ClipResult:
    kind: str
    output: Path
    plan: TrimPlan
    segment_urls: Tuple[str, ...]
    notices: Tuple[Notice, ...] = ()
    probed_duration_s: Optional[float] = None


def download_selection(
    selection: Selection,
    workspace: Workspace,
    client: httpx.Client,
    cfg: Config,
) -> List[Path]:
    """Download every selected segment into *workspace*.

    Downloads run concurrently; the returned paths are in ascending
    segment start order regardless of which download finished first.
    """
    ordered = sorted(enumerate(selection.segments), key=lambda item: (item[1].start_time, item[0]))
    workers = max(1, min(cfg.download_workers, len(ordered)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(
                download_segment,
                seg.url,
                workspace.file(segment_filename(pos, seg.url)),
                client,
                cfg.fetch_timeout_s,
                cfg.fetch_retries,
                cfg.retry_backoff_s,
            )
            for pos, (_, seg) in enumerate(ordered)
        ]
        return [f.result() for f in futures]


def assemble_clip(
    selection: Selection,
    out_path: Path,
    cfg: Config,
    client: httpx.Client,
    request_id: Optional[str] = None,
) -> ClipResult:
    """Download *selection*, then trim ``selection.window`` out of it into *out_path*.

    The trim starts at the window start (clamped to the first segment) and
    lasts the window length. Working files live under a request-scoped
    directory of ``cfg.tmp_dir`` and are removed however this returns.
    """
    window = selection.window
    plan = plan_trim(selection, window.start, window.seconds)
    notices: List[Notice] = list(selection.notices)

    if plan.short_source:
        notice = Notice(
            SHORT_SOURCE,
            f"Total duration ({plan.source_duration_s:g}s) is too short for {plan.duration_s:g}s trim",
        )
        log.warning(notice.message)
        notices.append(notice)

    request_id = request_id or generate_run_id(window.kind)
    with request_workspace(Path(cfg.tmp_dir), request_id, keep=cfg.keep_tmp) as ws:
        local_paths = download_selection(selection, ws, client, cfg)
        write_concat_list(local_paths, ws.concat_list)
        run_trim(ws.concat_list, plan, out_path, cfg.encode, timeout=cfg.trim_timeout_s)
    notices.extend(ws.notices)

    probed = probe_duration(out_path) if cfg.probe_output else None
    log.info(
        "Generated %s clip %s (%s)",
        window.kind, out_path,
        f"{probed:.2f}s" if probed is not None else "duration unknown",
    )
    return ClipResult(
        kind=window.kind,
        output=out_path,
        plan=plan,
        segment_urls=tuple(s.url for s in selection.segments),
        notices=tuple(notices),
        probed_duration_s=probed,
    )
