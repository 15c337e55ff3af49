"""
Optional diagnostic HTTP server for long runs.

    GET /debug/vars     JSON counters (in-flight ops, galleries, pictures, errors)
    GET /debug/threads  stack of every live thread, plain text
"""

import http.server
import json
import sys
import threading
import traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fotomirror.pipeline import MirrorSession


def parse_address(addr: str) -> tuple[str, int]:
    """Split "host:port" (host may be empty for all interfaces). Raises ValueError."""
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"expected HOST:PORT, got {addr!r}")
    return host.strip("[]"), int(port)


def format_threads() -> str:
    """Plain-text dump of every thread's current stack."""
    names = {t.ident: t.name for t in threading.enumerate()}
    chunks = []
    for ident, frame in sys._current_frames().items():
        chunks.append(f"--- {names.get(ident, '?')} ({ident})\n")
        chunks.append("".join(traceback.format_stack(frame)))
    return "".join(chunks)


class _DiagnosticsServer(http.server.ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, RequestHandlerClass, *, session: "MirrorSession") -> None:
        super().__init__(server_address, RequestHandlerClass)
        self.session = session


class _RequestHandler(http.server.BaseHTTPRequestHandler):
    server_version = "fotomirror-diagnostics/1.0"

    def log_message(self, format, *args):  # silence per-request logging
        return

    def _send(self, status: int, body: str, content_type: str) -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self) -> None:
        session: "MirrorSession" = self.server.session  # type: ignore[attr-defined]
        path = self.path.split("?", 1)[0]
        if path == "/debug/vars":
            self._send(200, json.dumps(session.summary()), "application/json")
        elif path == "/debug/threads":
            self._send(200, format_threads(), "text/plain; charset=utf-8")
        else:
            self._send(404, "not found\n", "text/plain; charset=utf-8")


def start_diagnostics_server(addr: str, session: "MirrorSession") -> http.server.ThreadingHTTPServer:
    """Bind addr and serve on a daemon thread. Caller may shutdown() the returned server."""
    server = _DiagnosticsServer(parse_address(addr), _RequestHandler, session=session)
    host, port = server.server_address[:2]
    print(f"Diagnostics listening on http://{host}:{port}", file=sys.stderr)
    threading.Thread(target=server.serve_forever, name="diagnostics", daemon=True).start()
    return server
