"""Live checks for ports already bound on this host.

Every answer is a time-of-check fact: a port reported free can be taken by
another process immediately afterwards, and a busy port can be released.
Nothing here reserves a port.
"""

from __future__ import annotations

import enum
import errno
import logging
import os
import shutil
import socket
import subprocess
from typing import Callable, Dict, Iterable, Iterator, Tuple

logger = logging.getLogger(__name__)


class PortStatus(str, enum.Enum):
    FREE = "free"
    IN_USE = "in-use"
    UNKNOWN = "unknown"


PortProbe = Callable[[int], PortStatus]

PROBES = ("bind", "lsof")


def probe_bind(port: int, host: str = "") -> PortStatus:
    """Try to bind ``host:port``; address-in-use means another process holds it."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError as exc:
        logger.warning("Unable to open a socket to check port %d: %s", port, exc)
        return PortStatus.UNKNOWN
    with sock:
        if os.name == "posix":
            # ignore TIME_WAIT leftovers; a live listener still blocks the bind
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                return PortStatus.IN_USE
            logger.debug("bind(%r, %d) failed: %s", host, port, exc)
            return PortStatus.UNKNOWN
    return PortStatus.FREE


def probe_lsof(port: int, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> PortStatus:
    """Ask ``lsof`` whether anything has ``port`` open.

    Without root, lsof only sees the caller's own sockets, so FREE is weaker
    here than with the bind probe.
    """
    lsof = shutil.which("lsof")
    if not lsof:
        logger.debug("lsof not available; port %d status unknown", port)
        return PortStatus.UNKNOWN
    try:
        result = runner(
            [lsof, "-n", "-P", "-i", f":{port}"],
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as exc:
        logger.debug("lsof failed for port %d: %s", port, exc)
        return PortStatus.UNKNOWN
    if result.returncode == 0:
        return PortStatus.IN_USE
    if result.returncode == 1 and not result.stderr.strip():
        return PortStatus.FREE
    logger.debug("lsof exited %d for port %d: %s", result.returncode, port, result.stderr.strip())
    return PortStatus.UNKNOWN


def make_probe(name: str = "bind", host: str = "") -> PortProbe:
    if name == "bind":
        return lambda port: probe_bind(port, host)
    if name == "lsof":
        return probe_lsof
    raise ValueError(f"Unknown probe '{name}' (expected one of: {', '.join(PROBES)})")


def probe_port(port: int, probe: PortProbe = probe_bind) -> PortStatus:
    if port == 0:
        # port 0 asks the OS for any free port; there is nothing to check
        return PortStatus.FREE
    return probe(port)


def probe_entries(ports: Iterable[Tuple[str, int]], probe: PortProbe) -> Iterator[Tuple[str, int, PortStatus]]:
    """Yield ``(key, port, status)`` per entry, probing each distinct port once."""
    seen: Dict[int, PortStatus] = {}
    for key, port in ports:
        if port not in seen:
            seen[port] = probe_port(port, probe)
        yield key, port, seen[port]
