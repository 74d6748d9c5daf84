"""Splitting of proxy request targets into host, port and path."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PORT = 80

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class ParsedUri:
    """The host, port and path named by a request target."""

    hostname: str
    port: int = DEFAULT_PORT
    path: str = "/"


def _atoi(text: str) -> int:
    """Read a leading decimal integer the way the C library does; 0 if none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_uri(uri: str) -> ParsedUri:
    """Split ``uri`` into hostname, port and path.

    A scheme prefix ending in ``//`` is skipped. The path starts at the first
    ``/`` after the host and defaults to ``/``. A ``:`` in the host part
    introduces the port, which defaults to 80.
    """
    marker = uri.find("//")
    rest = uri[marker + 2:] if marker >= 0 else uri

    host, slash, tail = rest.partition("/")
    path = slash + tail if slash else "/"

    port = DEFAULT_PORT
    host, colon, port_text = host.partition(":")
    if colon:
        port = _atoi(port_text)

    return ParsedUri(hostname=host, port=port, path=path)