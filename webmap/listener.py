"""
listener.py - The HTTP listener: bind a URL prefix, accept on a background thread, stop cleanly.

The accept loop polls a cancellation event between accepts, so stop() is seen
within one poll interval and no thread is left running once stop() returns.
"""
import http.server
import logging
import socketserver
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union
from urllib.parse import unquote, urlsplit

from .static import StaticFileHandler, not_found

logger = logging.getLogger("webmap.listener")

DEFAULT_POLL_INTERVAL = 0.5  # seconds
DEFAULT_REQUEST_TIMEOUT = 10.0  # seconds a connection may sit idle mid-request
WILDCARD_HOSTS = {"+", "*"}


class InvalidBindPrefix(ValueError):
    pass


class ListenerStartError(RuntimeError):
    pass


class ListenerState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"


@dataclass(frozen=True)
class BindPrefix:
    host: str  # "" binds all interfaces
    port: int
    path: str

    @property
    def url(self) -> str:
        return f"http://{self.host or '+'}:{self.port}{self.path}"


def parse_bind_prefix(prefix: str) -> BindPrefix:
    """Parse an `http://host:port/path/` prefix; `+` or `*` as host means every interface."""
    if not isinstance(prefix, str) or not prefix.strip():
        raise InvalidBindPrefix(f"Empty bind prefix: {prefix!r}")
    parts = urlsplit(prefix.strip())
    if parts.scheme.lower() != "http":
        raise InvalidBindPrefix(f"Bind prefix must start with http:// (got {prefix!r})")
    host = parts.hostname
    if not host:
        raise InvalidBindPrefix(f"Bind prefix has no host: {prefix!r}")
    try:
        port = parts.port
    except ValueError as e:
        raise InvalidBindPrefix(f"Bad port in bind prefix {prefix!r}: {e}") from e
    if port is None:
        port = 80
    if parts.query or parts.fragment:
        raise InvalidBindPrefix(f"Bind prefix cannot carry a query or fragment: {prefix!r}")
    path = parts.path or "/"
    if not path.endswith("/"):
        raise InvalidBindPrefix(f"Bind prefix path must end with '/': {prefix!r}")
    if host in WILDCARD_HOSTS:
        host = ""
    return BindPrefix(host, port, unquote(path))


class _RequestHandler(http.server.BaseHTTPRequestHandler):
    server_version = "webmap"

    def setup(self):
        # StreamRequestHandler.setup applies self.timeout to the connection;
        # an idle client then times out instead of holding the accept loop
        self.timeout = self.server.request_timeout
        super().setup()

    def do_GET(self):
        self._respond(send_body=True)

    def do_HEAD(self):
        self._respond(send_body=False)

    def _respond(self, send_body: bool):
        local_path = unquote(urlsplit(self.path).path)
        if local_path.startswith(self.server.prefix_path):
            resp = self.server.static.handle(local_path)
        else:
            resp = not_found()
        self.send_response(resp.status)
        self.send_header("Content-Type", resp.content_type)
        self.send_header("Content-Length", str(resp.content_length))
        self.end_headers()
        if send_body:
            self.wfile.write(resp.body)

    def log_message(self, format, *args):
        logger.debug("%s %s", self.address_string(), format % args)


class _WebMapHTTPServer(http.server.HTTPServer):
    def __init__(self, address, static: StaticFileHandler, prefix_path: str,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.static = static
        self.prefix_path = prefix_path
        self.request_timeout = request_timeout
        super().__init__(address, _RequestHandler)

    def handle_error(self, request, client_address):
        logger.exception("Request from %s failed", client_address[0])

    def join_handlers(self, deadline: float) -> List[threading.Thread]:
        """Serial server: requests run on the accept thread, nothing extra to wait for."""
        return []


class _ThreadingWebMapHTTPServer(socketserver.ThreadingMixIn, _WebMapHTTPServer):
    # Handler threads are tracked here rather than by ThreadingMixIn so that
    # shutdown can wait for them against a deadline instead of forever
    daemon_threads = True
    block_on_close = False

    def __init__(self, *args, **kwargs):
        self._handlers: List[threading.Thread] = []
        self._handlers_lock = threading.Lock()
        super().__init__(*args, **kwargs)

    def process_request(self, request, client_address):
        t = threading.Thread(
            target=self.process_request_thread,
            args=(request, client_address),
            name=f"webmap-request-{client_address[1]}",
            daemon=True,
        )
        with self._handlers_lock:
            self._handlers = [h for h in self._handlers if h.is_alive()]
            self._handlers.append(t)
        t.start()

    def join_handlers(self, deadline: float) -> List[threading.Thread]:
        """Wait for in-flight handlers until `deadline` (monotonic); return the ones still running."""
        with self._handlers_lock:
            handlers = list(self._handlers)
        for t in handlers:
            t.join(max(0.0, deadline - time.monotonic()))
        return [t for t in handlers if t.is_alive()]


class WebMapListener:
    def __init__(
        self,
        web_root,
        concurrent: bool = False,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        stop_timeout: Optional[float] = None,
    ):
        self.static = StaticFileHandler(web_root)
        self.concurrent = concurrent
        self.poll_interval = poll_interval
        self.request_timeout = request_timeout
        # long enough for a request already being read to time out on its own
        self.stop_timeout = stop_timeout if stop_timeout is not None else request_timeout + 2 * poll_interval
        self.state = ListenerState.STOPPED
        self.prefix: Optional[BindPrefix] = None
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._httpd: Optional[_WebMapHTTPServer] = None

    @property
    def port(self) -> Optional[int]:
        return self._httpd.server_address[1] if self._httpd else None

    @property
    def url(self) -> Optional[str]:
        if not self._httpd:
            return None
        return f"http://{self.prefix.host or 'localhost'}:{self.port}{self.prefix.path}"

    @property
    def is_listening(self) -> bool:
        return self.state is ListenerState.LISTENING

    def start(self, prefix: Union[str, BindPrefix]) -> "WebMapListener":
        """Bind and start accepting on a background thread. Returns immediately.

        Raises InvalidBindPrefix or ListenerStartError; a start while already
        listening is ignored.
        """
        bind = prefix if isinstance(prefix, BindPrefix) else parse_bind_prefix(prefix)
        with self._lock:
            if self.state is not ListenerState.STOPPED:
                logger.warning("Listener is %s; ignoring start(%s)", self.state.value, bind.url)
                return self
            self.state = ListenerState.STARTING
            server_cls = _ThreadingWebMapHTTPServer if self.concurrent else _WebMapHTTPServer
            try:
                httpd = server_cls((bind.host, bind.port), self.static, bind.path, self.request_timeout)
            except OSError as e:
                self.state = ListenerState.STOPPED
                raise ListenerStartError(f"Cannot bind {bind.url}: {e}") from e
            httpd.timeout = self.poll_interval

            self._httpd = httpd
            self.prefix = bind
            self._cancel.clear()
            self._thread = threading.Thread(
                target=self._accept_loop,
                args=(httpd, self._cancel),
                name=f"webmap-listener-{self.port}",
                daemon=True,
            )
            self._thread.start()
            self.state = ListenerState.LISTENING
        logger.info("Web map listening on %s (serving %s)", self.url, self.static.web_root)
        return self

    def _accept_loop(self, httpd: _WebMapHTTPServer, cancel: threading.Event):
        logger.debug("Accept loop started")
        while not cancel.is_set():
            try:
                httpd.handle_request()
            except Exception:
                logger.exception("Unexpected error in accept loop")
        logger.debug("Accept loop finished")

    def stop(self) -> None:
        """Stop accepting and close the socket. Safe to call more than once.

        Waits at most stop_timeout for the accept thread and in-flight requests;
        anything still running after that is logged and left to finish on its own.
        """
        with self._lock:
            if self.state is not ListenerState.LISTENING:
                return
            self.state = ListenerState.STOPPING
            self._cancel.set()
            thread, httpd = self._thread, self._httpd

        deadline = time.monotonic() + self.stop_timeout
        thread.join(self.stop_timeout)
        if thread.is_alive():
            logger.warning("Accept loop still busy after %.1fs; closing the socket anyway", self.stop_timeout)
        httpd.server_close()
        stragglers = httpd.join_handlers(deadline)
        if stragglers:
            logger.warning("%d request(s) still running after stop", len(stragglers))

        with self._lock:
            self._thread = None
            self._httpd = None
            self.state = ListenerState.STOPPED
        logger.info("Web map listener stopped")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()


def start_listener(prefix, web_root, **kwargs) -> WebMapListener:
    return WebMapListener(web_root, **kwargs).start(prefix)


def stop_listener(listener: WebMapListener) -> None:
    listener.stop()
