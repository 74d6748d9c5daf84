"""Log line and error page formatting for the proxy."""

from __future__ import annotations

import time

TIME_FORMAT = "%a %d %b %Y %H:%M:%S %Z"


def format_timestamp(now: float | None = None) -> str:
    """Render ``now`` (seconds since the epoch, default: current time) in local time."""
    if now is None:
        now = time.time()
    return time.strftime(TIME_FORMAT, time.localtime(now))


def format_http_log(client_ip: str, uri: str, size: int, now: float | None = None) -> str:
    """Return the log line for a forwarded HTTP request."""
    return f"{format_timestamp(now)}: {client_ip} {uri} {size}"


def format_connect_log(
    client_ip: str,
    hostname: str,
    port: int,
    sent_bytes: int,
    recv_bytes: int,
    now: float | None = None,
) -> str:
    """Return the log line for a finished CONNECT tunnel."""
    return (
        f"{format_timestamp(now)}: CONNECT from {client_ip} to {hostname}:{port}, "
        f"Data Sent: {sent_bytes} / Received: {recv_bytes}"
    )


def client_error(errnum: str, shortmsg: str, longmsg: str) -> bytes:
    """Build a complete HTTP error response with a small HTML body."""
    body = (
        f"<html><title>{errnum} {shortmsg}</title>"
        '<body bgcolor="white">'
        f"<center><h1>{errnum}: {longmsg}</h1></center>"
        "<hr><center>Proxy Server</center>"
        "</body></html>"
    ).encode("latin-1")
    head = (
        f"HTTP/1.1 {errnum} {shortmsg}\r\n"
        "Content-type: text/html\r\n"
        f"Content-length: {len(body)}\r\n\r\n"
    ).encode("latin-1")
    return head + body