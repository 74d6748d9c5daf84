"""Concurrent HTTP proxy with CONNECT tunnelling and synchronised logging."""

from __future__ import annotations

import enum
import fcntl
import getopt
import os
import select
import socket
import sys
import threading

from webproxy.logformat import client_error, format_connect_log, format_http_log
from webproxy.netio import MAXLINE, RioReader, open_clientfd, open_listenfd, writen
from webproxy.uri import parse_uri

LOGFILE = "proxy.log"
IDLE_TIMEOUT = 60
PROG = "webproxy"

_USAGE = (
    "Usage: {prog} [-t|--thread] [-p|--process] <port>\n"
    "    -t, --thread    Run in multi-threaded mode\n"
    "    -p, --process   Run in multi-process mode (default)\n"
    "    -h, --help      Show this help message\n"
)


class Mode(enum.Enum):
    """How each accepted connection is served."""

    PROCESS = "process"
    THREAD = "thread"


class LogWriter:
    """Appends lines to the log file, serialised across processes or threads."""

    def __init__(self, path: str | os.PathLike[str] = LOGFILE, mode: Mode = Mode.PROCESS) -> None:
        self.path = os.fspath(path)
        self.mode = mode
        self._lock = threading.Lock()

    def write(self, line: str) -> None:
        """Append ``line`` and a newline to the log."""
        data = (line + "\n").encode("utf-8", "replace")
        if self.mode is Mode.PROCESS:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
            try:
                fcntl.lockf(fd, fcntl.LOCK_EX)
                try:
                    os.write(fd, data)
                finally:
                    fcntl.lockf(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)
        else:
            with self._lock, open(self.path, "ab") as handle:
                handle.write(data)


def _split_request_line(line: bytes) -> tuple[str, str, str]:
    tokens = line.decode("latin-1").split()
    tokens += [""] * (3 - len(tokens))
    return tokens[0][:15], tokens[1][:MAXLINE - 1], tokens[2][:15]


def handle_request(conn: socket.socket, client_addr, reader: RioReader, logger: LogWriter) -> None:
    """Serve one proxied request read from ``reader``."""
    request_line = reader.readline(MAXLINE)
    if not request_line:
        return
    method, uri, _version = _split_request_line(request_line)

    while True:
        header = reader.readline(MAXLINE)
        if not header or header == b"\r\n":
            break

    target = parse_uri(uri)
    if method.lower() == "connect":
        handle_connect(conn, target.hostname, target.port, client_addr, logger)
        return

    size = forward_http(conn, target.hostname, target.port, target.path, method)
    logger.write(format_http_log(client_addr[0], uri, size))


def forward_http(client: socket.socket, hostname: str, port: int, path: str, method: str) -> int:
    """Send the request upstream and stream the reply back; return its size."""
    try:
        server = open_clientfd(hostname, port)
    except (OSError, UnicodeError):
        writen(client, client_error("502", "Bad Gateway", "Could not connect"))
        return 0

    with server:
        request = (
            f"{method} {path} HTTP/1.0\r\nHost: {hostname}\r\nConnection: close\r\n\r\n"
        ).encode("latin-1", "replace")
        writen(server, request)
        server_reader = RioReader(server)
        size = 0
        while chunk := server_reader.readnb(MAXLINE):
            writen(client, chunk)
            size += len(chunk)
    return size


def handle_connect(client: socket.socket, hostname: str, port: int, client_addr, logger: LogWriter) -> None:
    """Open a tunnel to ``hostname:port``, relay until idle or closed, then log it."""
    try:
        server = open_clientfd(hostname, port)
    except (OSError, UnicodeError):
        writen(client, client_error("502", "Bad Gateway", "Tunnel failed"))
        return

    with server:
        writen(client, b"HTTP/1.1 200 Connection Established\r\n\r\n")
        sent, received = relay(client, server)
        logger.write(format_connect_log(client_addr[0], hostname, port, sent, received))


def _pump(source: socket.socket, sink: socket.socket) -> int:
    """Move one chunk from ``source`` to ``sink``; return its size, 0 when done."""
    try:
        data = source.recv(MAXLINE)
        if data:
            sink.sendall(data)
    except OSError:
        return 0
    return len(data)


def relay(client: socket.socket, server: socket.socket, timeout: float = IDLE_TIMEOUT) -> tuple[int, int]:
    """Copy data both ways until either side closes or ``timeout`` seconds pass idle.

    Returns the bytes sent to the server and the bytes received from it.
    """
    sent = received = 0
    while True:
        try:
            ready, _, _ = select.select([client, server], [], [], timeout)
        except (OSError, ValueError):
            break
        if not ready:
            break
        if client in ready:
            n = _pump(client, server)
            if n <= 0:
                break
            sent += n
        if server in ready:
            n = _pump(server, client)
            if n <= 0:
                break
            received += n
    return sent, received


def _serve_connection(conn: socket.socket, client_addr, logger: LogWriter) -> None:
    with conn:
        try:
            handle_request(conn, client_addr, RioReader(conn), logger)
        except OSError:
            pass


def run_proxy(listener: socket.socket, mode: Mode, logger: LogWriter) -> None:
    """Accept connections forever, serving each in a child process or a thread."""
    while True:
        try:
            conn, client_addr = listener.accept()
        except OSError as exc:
            print(f"accept: {exc}", file=sys.stderr)
            continue

        if mode is Mode.PROCESS:
            if os.fork() == 0:
                try:
                    listener.close()
                    _serve_connection(conn, client_addr, logger)
                finally:
                    os._exit(0)
            conn.close()
        else:
            worker = threading.Thread(
                target=_serve_connection, args=(conn, client_addr, logger), daemon=True
            )
            try:
                worker.start()
            except RuntimeError as exc:
                print(f"thread start: {exc}", file=sys.stderr)
                conn.close()


def _usage() -> SystemExit:
    sys.stderr.write(_USAGE.format(prog=PROG))
    return SystemExit(1)


def _to_short(value: int) -> int:
    return (value + 0x8000) % 0x10000 - 0x8000


def parse_args(argv: list[str] | None = None) -> tuple[Mode, int]:
    """Return the concurrency mode and port named on the command line."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        options, operands = getopt.gnu_getopt(argv, "tph", ["thread", "process", "help"])
    except getopt.GetoptError:
        raise _usage() from None

    mode = Mode.PROCESS
    for flag, _ in options:
        if flag in ("-t", "--thread"):
            mode = Mode.THREAD
        elif flag in ("-p", "--process"):
            mode = Mode.PROCESS
        else:
            raise _usage()

    if not operands:
        raise _usage()

    text = operands[0]
    digits = text.lstrip()
    sign = 1
    if digits[:1] in ("+", "-"):
        sign = -1 if digits[0] == "-" else 1
        digits = digits[1:]
    number = ""
    for ch in digits:
        if not ch.isdigit():
            break
        number += ch
    port = _to_short(sign * int(number)) if number else 0
    if port <= 0:
        print(f"Invalid port number: {text}", file=sys.stderr)
        raise SystemExit(1)
    return mode, port


def main(argv: list[str] | None = None) -> int:
    """Run the proxy from the command line."""
    mode, port = parse_args(argv)
    try:
        listener = open_listenfd(port)
    except OSError as exc:
        print(f"Open_listenfd error: {exc.strerror or exc}", file=sys.stderr)
        return 0
    print(f"Proxy listening on port {port} [{mode.name} mode]...", flush=True)
    with listener:
        run_proxy(listener, mode, LogWriter(LOGFILE, mode))
    return 0


if __name__ == "__main__":
    sys.exit(main())