from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from hls_clipper.config import Config, EncodeConfig
from hls_clipper.errors import ClipperError
from hls_clipper.logging_utils import setup_logging
from hls_clipper.media.tools import ensure_tool
from hls_clipper.pipeline.orchestrator import run_extraction
from hls_clipper.playlist.parser import parse_program_date_time


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hls-clipper",
        description="Cut a clip ending at and a clip starting at a wall-clock instant from an HLS playlist.",
    )

    # Source
    p.add_argument("--playlist-url", default="http://localhost:8000/stream.m3u8")
    p.add_argument(
        "--time",
        dest="reference_time",
        required=True,
        help="Reference instant, ISO 8601 with offset (e.g. 2025-06-03T08:03:33.000+05:30)",
    )

    # Windows
    p.add_argument("--before", dest="before_seconds", type=float, default=10.0)
    p.add_argument("--after", dest="after_seconds", type=float, default=10.0)
    p.add_argument("--segments", dest="max_segments", type=int, default=3)

    # Output
    p.add_argument("--out", dest="out_dir", default="output")
    p.add_argument("--tmp", dest="tmp_dir", default="temp")
    p.add_argument("--before-name", dest="before_filename", default="before_video.ts")
    p.add_argument("--after-name", dest="after_filename", default="after_video.ts")
    p.add_argument("--keep-tmp", dest="keep_tmp", action="store_true")
    p.add_argument("--no-manifest", dest="write_manifest", action="store_false")
    p.add_argument("--no-probe", dest="probe_output", action="store_false")

    # Transport
    p.add_argument("--fetch-timeout", dest="fetch_timeout_s", type=float, default=30.0)
    p.add_argument("--retries", dest="fetch_retries", type=int, default=0)
    p.add_argument("--retry-backoff", dest="retry_backoff_s", type=float, default=1.0)
    p.add_argument("--workers", dest="download_workers", type=int, default=3)

    # Encoding
    p.add_argument("--trim-timeout", dest="trim_timeout_s", type=int, default=300)
    p.add_argument("--codec", dest="video_codec", default="libx264")
    p.add_argument("--preset", default="fast")
    p.add_argument("--container", choices=["mpegts", "mp4", "matroska"], default="mpegts")

    p.add_argument("-v", "--verbose", action="store_true")

    return p


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    log = setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        reference_time = parse_program_date_time(args.reference_time)
    except ValueError as exc:
        print(f"Invalid --time: {exc}", file=sys.stderr)
        sys.exit(2)

    cfg = Config(
        playlist_url=args.playlist_url,
        reference_time=reference_time,
        before_seconds=args.before_seconds,
        after_seconds=args.after_seconds,
        max_segments=args.max_segments,
        out_dir=args.out_dir,
        tmp_dir=args.tmp_dir,
        before_filename=args.before_filename,
        after_filename=args.after_filename,
        keep_tmp=args.keep_tmp,
        write_manifest=args.write_manifest,
        fetch_timeout_s=args.fetch_timeout_s,
        fetch_retries=args.fetch_retries,
        retry_backoff_s=args.retry_backoff_s,
        download_workers=args.download_workers,
        trim_timeout_s=args.trim_timeout_s,
        probe_output=args.probe_output,
        encode=EncodeConfig(
            video_codec=args.video_codec,
            preset=args.preset,
            container=args.container,
        ),
    )
    try:
        cfg.validate()
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    # Fail-fast tool check
    try:
        ensure_tool("ffmpeg")
    except RuntimeError as exc:
        log.error(str(exc))
        sys.exit(1)

    try:
        report = run_extraction(cfg)
    except ClipperError as exc:
        log.error(str(exc))
        sys.exit(1)

    for outcome in report.outcomes:
        if outcome.ok:
            log.info("Generated: '%s' (%s window %s)", outcome.output, outcome.kind, outcome.window.describe())
        else:
            log.error("Not generated: '%s' (%s)", outcome.output, outcome.error)

    if not report.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
