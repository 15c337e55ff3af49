"""fotomirror CLI. Invoked as `fotomirror` when installed with pip install -e ."""

import argparse
import sys

from fotomirror._deps import check_required
from fotomirror.config import (
    BASE_ENV,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    DEST_ENV,
    MirrorConfig,
    env_default,
)
from fotomirror.gate import DEFAULT_LOCAL_CAPACITY, DEFAULT_NETWORK_CAPACITY
from fotomirror.hardware import format_hardware


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fotomirror",
        description="Mirror public FotoBilder galleries and pictures to a local backup directory.",
    )
    parser.add_argument(
        "--base",
        default=env_default(BASE_ENV),
        metavar="URL",
        help=f"e.g. http://www.picpix.com/username (no trailing slash). Default: ${BASE_ENV}",
    )
    parser.add_argument(
        "--dest",
        default=env_default(DEST_ENV),
        metavar="DIR",
        help=f"Destination backup root (created if missing). Default: ${DEST_ENV}",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_NETWORK_CAPACITY,
        metavar="N",
        help=f"Max concurrent requests (default: {DEFAULT_NETWORK_CAPACITY})",
    )
    parser.add_argument(
        "--local-concurrency",
        type=int,
        default=DEFAULT_LOCAL_CAPACITY,
        metavar="N",
        help=f"Max concurrent local tasks (default: {DEFAULT_LOCAL_CAPACITY})",
    )
    parser.add_argument(
        "--sloppy",
        action="store_true",
        help="Continue on errors: log them and keep mirroring the rest.",
    )
    parser.add_argument(
        "--profile",
        default="",
        metavar="HOST:PORT",
        help="Listen address for the diagnostics server; empty to leave disabled.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        metavar="SECS",
        help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        metavar="SECS",
        help=f"Seconds between in-flight checks while waiting to finish (default: {DEFAULT_POLL_INTERVAL:g})",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bar (e.g. for scripting)",
    )
    parser.add_argument(
        "--hardware",
        action="store_true",
        help="Print detected limits and default concurrency, then exit.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    check_required()

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.hardware:
        print(format_hardware(), file=sys.stderr)
        sys.exit(0)

    config = MirrorConfig(
        base_url=args.base or "",
        dest=args.dest,
        concurrency=args.concurrency,
        local_capacity=args.local_concurrency,
        continue_on_error=args.sloppy,
        diagnostics_addr=args.profile,
        timeout=args.timeout,
        poll_interval=args.poll_interval,
        progress=not args.no_progress,
    )
    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    # Imported after the dependency check so a missing library gets the install hint
    from fotomirror.diagnostics import start_diagnostics_server
    from fotomirror.errors import MirrorError
    from fotomirror.pipeline import MirrorSession

    try:
        config.dest.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"ERROR: cannot create {config.dest}: {e}", file=sys.stderr)
        sys.exit(1)

    with MirrorSession(config) as session:
        if config.diagnostics_addr:
            try:
                start_diagnostics_server(config.diagnostics_addr, session)
            except (OSError, ValueError) as e:
                parser.error(f"--profile: {e}")
        try:
            session.run()
        except MirrorError as e:
            print(f"Stopping: {e}", file=sys.stderr)
            sys.exit(1)
    print("Done.", file=sys.stderr)


if __name__ == "__main__":
    main()
