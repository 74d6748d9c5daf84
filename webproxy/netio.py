"""Robust socket I/O helpers and client/server connection setup."""

from __future__ import annotations

import socket

RIO_BUFSIZE = 8192
MAXLINE = 8192
MAXBUF = 8192
LISTENQ = 1024


class RioReader:
    """Buffered reader over a connected socket.

    Data is pulled from the socket in chunks of up to ``RIO_BUFSIZE`` bytes
    and handed out from an internal buffer.
    """

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self._buf = b""
        self._pos = 0

    def _fill(self) -> bool:
        """Refill the internal buffer; return False on end of stream."""
        chunk = self.sock.recv(RIO_BUFSIZE)
        if not chunk:
            return False
        self._buf = chunk
        self._pos = 0
        return True

    @property
    def _pending(self) -> int:
        return len(self._buf) - self._pos

    def read(self, n: int) -> bytes:
        """Return up to ``n`` bytes, refilling the buffer only when it is empty.

        Returns ``b""`` at end of stream.
        """
        if n <= 0:
            return b""
        if self._pending <= 0 and not self._fill():
            return b""
        end = self._pos + min(n, self._pending)
        data = self._buf[self._pos:end]
        self._pos = end
        return data

    def readnb(self, n: int) -> bytes:
        """Read ``n`` bytes, or fewer if the stream ends first."""
        parts = bytearray()
        while len(parts) < n:
            chunk = self.read(n - len(parts))
            if not chunk:
                break
            parts += chunk
        return bytes(parts)

    def readline(self, maxlen: int = MAXLINE) -> bytes:
        """Read a line of at most ``maxlen - 1`` bytes, newline included.

        Returns ``b""`` when the stream ends before any byte is read.
        """
        line = bytearray()
        while len(line) < maxlen - 1:
            if self._pending <= 0 and not self._fill():
                break
            limit = min(self._pending, maxlen - 1 - len(line))
            window = self._buf[self._pos:self._pos + limit]
            newline = window.find(b"\n")
            take = limit if newline < 0 else newline + 1
            line += window[:take]
            self._pos += take
            if newline >= 0:
                break
        return bytes(line)


def readn(sock: socket.socket, n: int) -> bytes:
    """Read ``n`` bytes from ``sock`` unbuffered, or fewer at end of stream."""
    parts = bytearray()
    while len(parts) < n:
        chunk = sock.recv(n - len(parts))
        if not chunk:
            break
        parts += chunk
    return bytes(parts)


def writen(sock: socket.socket, data: bytes) -> int:
    """Write all of ``data`` to ``sock`` and return the number of bytes written."""
    sock.sendall(data)
    return len(data)


def open_clientfd(hostname: str, port: int) -> socket.socket:
    """Open a TCP connection to ``hostname:port``.

    Raises ``socket.gaierror`` when the name cannot be resolved and
    ``OSError`` when the connection fails.
    """
    address = socket.gethostbyname(hostname)
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except BaseException:
        sock.close()
        raise
    return sock


def open_listenfd(port: int) -> socket.socket:
    """Return a socket listening on ``port`` on every local IPv4 address."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(LISTENQ)
    except BaseException:
        sock.close()
        raise
    return sock