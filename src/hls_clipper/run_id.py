from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_run_id(label: Optional[str] = None) -> str:
    """Generate a unique identifier from the current UTC time, an optional label and a random suffix."""
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
    suffix = uuid.uuid4().hex[:8]
    if label:
        return f"{ts}_{label}_{suffix}"
    return f"{ts}_{suffix}"
