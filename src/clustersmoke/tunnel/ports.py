"""Local port helpers."""

from __future__ import annotations

import socket


def is_port_bound(port: int, host: str = "127.0.0.1") -> bool:
    """Return True if something is already bound to ``host:port``.

    Probes by attempting to bind rather than connecting, so a listening
    forwarder never sees a stray connection from the readiness wait.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return True
    return False
