"""Light host probing for the --hardware report: CPU count and the open-file limit."""

import os

from fotomirror.gate import DEFAULT_LOCAL_CAPACITY, DEFAULT_NETWORK_CAPACITY


def fd_limit() -> int | None:
    """Soft RLIMIT_NOFILE for this process, or None if unknown/unlimited (e.g. Windows)."""
    try:
        import resource
        soft, _hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    except (ImportError, OSError, AttributeError, ValueError):
        return None
    if soft == resource.RLIM_INFINITY or soft <= 0:
        return None
    return soft


def detect_hardware() -> dict:
    """Return cpu_count, fd_limit, and the default pool sizes for this host."""
    cpu = os.cpu_count()
    if cpu is None or cpu < 1:
        cpu = 1
    return {
        "cpu_count": cpu,
        "fd_limit": fd_limit(),
        "network_capacity": DEFAULT_NETWORK_CAPACITY,
        "local_capacity": DEFAULT_LOCAL_CAPACITY,
    }


def format_hardware(info: dict | None = None) -> str:
    """Short human-readable summary of detected limits and default settings."""
    info = info or detect_hardware()
    limit = info.get("fd_limit")
    lines = [
        f"CPU cores: {info.get('cpu_count', '?')}",
        f"Open-file limit: {limit if limit is not None else 'unlimited/unknown'}",
        f"Network concurrency: {info.get('network_capacity', '?')}",
        f"Local concurrency: {info.get('local_capacity', '?')}",
    ]
    network = info.get("network_capacity")
    if limit is not None and network is not None and network > limit // 2:
        lines.append("Tip: --concurrency is high for this open-file limit; lower it or raise `ulimit -n`.")
    return "\n".join(lines)
