"""Run configuration. Values come from CLI flags, with environment fallbacks for base and dest."""

import os
from dataclasses import dataclass
from pathlib import Path

from fotomirror.gate import DEFAULT_LOCAL_CAPACITY, DEFAULT_NETWORK_CAPACITY

BASE_ENV = "FOTOMIRROR_BASE"
DEST_ENV = "FOTOMIRROR_DEST"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_TIMEOUT = 60.0


def env_default(name: str) -> str | None:
    """Environment value for name, or None if unset/blank."""
    value = os.environ.get(name, "").strip()
    return value or None


@dataclass
class MirrorConfig:
    base_url: str
    dest: Path | None
    concurrency: int = DEFAULT_NETWORK_CAPACITY
    local_capacity: int = DEFAULT_LOCAL_CAPACITY
    continue_on_error: bool = False
    diagnostics_addr: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    progress: bool = True

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or "").strip().rstrip("/")
        self.dest = Path(self.dest) if self.dest else None
        self.diagnostics_addr = (self.diagnostics_addr or "").strip() or None

    def validate(self) -> None:
        """Raise ValueError describing the first invalid setting."""
        if not self.base_url:
            raise ValueError("No --base URL given.")
        if self.dest is None:
            raise ValueError("No --dest given.")
        if self.concurrency < 1:
            raise ValueError("--concurrency must be >= 1")
        if self.local_capacity < 1:
            raise ValueError("--local-concurrency must be >= 1")
        if self.poll_interval <= 0:
            raise ValueError("--poll-interval must be > 0")
