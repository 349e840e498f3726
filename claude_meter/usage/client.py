"""HTTP client for the Claude OAuth usage endpoint.

One blocking ``GET`` per call with a bounded timeout. The monitor runs it on a
worker thread; retries are the monitor's business, not this module's.
"""

from __future__ import annotations

import http.client
import json
import socket
import time
import urllib.error
import urllib.request

from loguru import logger

from claude_meter import __version__
from claude_meter.config.schema import USAGE_API_URL
from claude_meter.usage.errors import ErrorKind, FetchError, ParseError
from claude_meter.usage.models import Credentials, RawPayload

DEFAULT_TIMEOUT_S = 5.0
MAX_TIMEOUT_S = 30.0
_CHUNK_SIZE = 16 * 1024


def _is_timeout(exc: BaseException | object) -> bool:
    return isinstance(exc, (TimeoutError, socket.timeout))


class UsageClient:
    """Fetches the raw usage payload for one set of credentials."""

    def __init__(self, url: str = USAGE_API_URL, timeout_s: float = DEFAULT_TIMEOUT_S) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self.url = url
        self.timeout_s = min(timeout_s, MAX_TIMEOUT_S)

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.access_token}",
            "Accept": "application/json",
            "User-Agent": f"claude-meter/{__version__}",
            "anthropic-beta": "oauth-2025-04-20",
        }

    def fetch(self, credentials: Credentials) -> RawPayload:
        """Return the decoded JSON body or raise ``FetchError``/``ParseError``."""
        if not credentials.access_token:
            raise FetchError("Empty access token", ErrorKind.UNAUTHORIZED)

        req = urllib.request.Request(self.url, headers=self._headers(credentials), method="GET")
        try:
            deadline = time.monotonic() + self.timeout_s
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                body = self._read_body(resp, deadline)
        except urllib.error.HTTPError as exc:
            raise self._classify_http(exc) from None
        except urllib.error.URLError as exc:
            if _is_timeout(exc.reason):
                raise FetchError(f"Timed out after {self.timeout_s}s", ErrorKind.TIMEOUT) from None
            raise FetchError(f"Cannot reach usage API: {exc.reason}", ErrorKind.UNREACHABLE) from None
        except (TimeoutError, socket.timeout):
            raise FetchError(f"Timed out after {self.timeout_s}s", ErrorKind.TIMEOUT) from None
        except OSError as exc:
            raise FetchError(f"Network error: {exc}", ErrorKind.UNREACHABLE) from None
        except http.client.HTTPException as exc:
            raise FetchError(f"Broken HTTP response: {exc!r}", ErrorKind.UNREACHABLE) from None

        try:
            return json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            # Don't log the raw body, it may echo account details.
            raise ParseError(f"Non-JSON usage response ({len(body)} bytes)") from None

    def _read_body(self, resp, deadline: float) -> bytes:
        """Read the body in chunks; the whole request must finish by ``deadline``.

        The socket timeout only bounds each recv, so a server trickling bytes
        would otherwise hold the request open indefinitely.
        """
        chunks: list[bytes] = []
        while True:
            if time.monotonic() > deadline:
                raise FetchError(f"Timed out after {self.timeout_s}s", ErrorKind.TIMEOUT)
            chunk = resp.read1(_CHUNK_SIZE)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    @staticmethod
    def _classify_http(exc: urllib.error.HTTPError) -> FetchError:
        code = exc.code
        if code in (401, 403):
            return FetchError(f"HTTP {code}", ErrorKind.UNAUTHORIZED)
        if code == 429:
            retry_after = exc.headers.get("Retry-After") if exc.headers else None
            if retry_after:
                logger.debug(f"[usage] Rate limited, Retry-After={retry_after}")
            return FetchError("HTTP 429", ErrorKind.RATE_LIMITED)
        return FetchError(f"HTTP {code}", ErrorKind.UNREACHABLE)
