from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

Container = Literal["mpegts", "mp4", "matroska"]


@dataclass(frozen=True)
class EncodeConfig:
    video_codec: str = "libx264"
    preset: str = "fast"
    container: Container = "mpegts"
    drop_audio: bool = True


@dataclass(frozen=True)
class Config:
    # Source
    playlist_url: str = "http://localhost:8000/stream.m3u8"
    reference_time: Optional[datetime] = None

    # Windows
    before_seconds: float = 10.0
    after_seconds: float = 10.0
    max_segments: int = 3

    # Output
    out_dir: str = "output"
    tmp_dir: str = "temp"
    before_filename: str = "before_video.ts"
    after_filename: str = "after_video.ts"
    keep_tmp: bool = False
    write_manifest: bool = True

    # Transport
    fetch_timeout_s: float = 30.0
    fetch_retries: int = 0
    retry_backoff_s: float = 1.0
    download_workers: int = 3

    # Trimming
    trim_timeout_s: int = 300
    probe_output: bool = True
    encode: EncodeConfig = field(default_factory=EncodeConfig)

    def validate(self) -> None:
        """Raise ValueError if any setting is out of range."""
        for name in ("before_seconds", "after_seconds", "fetch_timeout_s", "trim_timeout_s"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a finite number > 0, got {value!r}")
        if not math.isfinite(self.retry_backoff_s) or self.retry_backoff_s < 0:
            raise ValueError(f"retry_backoff_s must be a finite number >= 0, got {self.retry_backoff_s!r}")
        if self.max_segments < 1:
            raise ValueError("max_segments must be >= 1")
        if self.download_workers < 1:
            raise ValueError("download_workers must be >= 1")
        if self.fetch_retries < 0:
            raise ValueError("fetch_retries must be >= 0")
        if self.reference_time is not None and self.reference_time.utcoffset() is None:
            raise ValueError("reference_time must be timezone-aware")
