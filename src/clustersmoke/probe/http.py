"""
HTTP Probe
==========

One bounded-time GET against a forwarded port plus a plain substring check.
``fetch`` never raises: any connection failure or timeout yields an empty
body, so callers distinguish "no response" (empty) from "wrong response"
(non-empty body failing ``validate``).
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger("clustersmoke.probe")


class HttpProbe:
    """Fetches a URL once and checks the body for an expected substring."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def fetch(self, url: str, timeout_seconds: float | None = None) -> str:
        """GET ``url`` and return the body, or ``""`` on any failure.

        Non-2xx responses still return their body.
        """
        timeout = self.timeout if timeout_seconds is None else timeout_seconds
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.get(url)
                return resp.text
        except httpx.TimeoutException:
            logger.info("GET %s timed out after %.1fs", url, timeout)
        except httpx.ConnectError as e:
            logger.info("GET %s connection failed: %s", url, e)
        except Exception as e:
            logger.warning("GET %s failed: %s", url, e)
        return ""

    @staticmethod
    def validate(body: str, expected: str) -> bool:
        """True iff ``expected`` occurs contiguously in a non-empty ``body``."""
        if not body:
            return False
        return expected in body
