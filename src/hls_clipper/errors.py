from __future__ import annotations

from typing import Optional


class ClipperError(RuntimeError):
    """Base class for fatal pipeline failures."""


class FetchFailure(ClipperError):
    """A playlist or segment could not be retrieved."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class FetchTimeout(FetchFailure):
    """The transport did not answer within the configured timeout."""


class EmptyTimeline(ClipperError):
    """No segments could be parsed from the playlist."""

    def __init__(self, message: str = "Timeline contains no segments") -> None:
        super().__init__(message)


class TrimFailure(ClipperError):
    """ffmpeg exited unsuccessfully while trimming a clip."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = "") -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class TrimTimeout(TrimFailure):
    """ffmpeg did not finish within the configured timeout."""


class ClipFailure(ClipperError):
    """A single before/after clip could not be produced."""

    def __init__(self, kind: str, window: str, cause: BaseException) -> None:
        self.kind = kind
        self.window = window
        self.cause = cause
        super().__init__(f"{kind} clip for window {window} failed: {cause}")
