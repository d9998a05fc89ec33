from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from http.client import HTTPException
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

THROTTLE_STATUSES = (429, 503)


class ThrottledError(Exception):
    """Raised for 429/503 responses; retried with backoff, never surfaced."""

    def __init__(self, status: int):
        super().__init__(f"HTTP {status} (throttled)")
        self.status = status


class TransientNetworkError(Exception):
    """Raised for transport failures, other non-2xx statuses and bad JSON."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FatalFetchError(Exception):
    """Raised when a page request keeps failing after the retry budget."""

    def __init__(self, url: str, attempts: int, status: Optional[int] = None):
        detail = f" (last status {status})" if status is not None else ""
        super().__init__(f"Giving up on {url} after {attempts} attempts{detail}")
        self.url = url
        self.attempts = attempts
        self.status = status


@dataclass(frozen=True)
class PageResult:
    success: bool
    html: str = ""
    continuation_token: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PageResult":
        if not isinstance(payload, dict):
            return cls(success=False)
        token = payload.get("continue_token")
        return cls(
            success=bool(payload.get("success")),
            html=payload.get("html") or "",
            continuation_token=str(token) if token not in (None, "") else None,
        )


class GCPDClient:
    """Client for the ajax endpoint behind a GCPD personal data page."""

    HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "Accept-Language": "en-US,en;q=0.9",
        "X-Requested-With": "XMLHttpRequest",
    }

    MAX_RETRIES = 5
    RETRY_BASE_DELAY_SECONDS = 1.0

    def __init__(
        self,
        base_url: str,
        tab: str = "playermatchhistory",
        session_id: Optional[str] = None,
        cookie_header: Optional[str] = None,
        timeout_seconds: int = 30,
        verbose: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.tab = tab
        self.session_id = session_id
        self.cookie_header = cookie_header
        self.timeout_seconds = timeout_seconds
        self.verbose = verbose

    def build_page_url(self, token: Optional[str] = None) -> str:
        params = {"ajax": "1", "tab": self.tab}
        if token:
            params["continue_token"] = token
        if self.session_id:
            params["sessionid"] = self.session_id
        return f"{self.base_url}?{urlencode(params)}"

    def _request_headers(self) -> Dict[str, str]:
        headers = dict(self.HEADERS)
        if self.cookie_header:
            headers["Cookie"] = self.cookie_header
        return headers

    def _request_json(self, url: str) -> Any:
        req = Request(url, headers=self._request_headers(), method="GET")
        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                body = resp.read()
        except HTTPError as exc:
            if exc.code in THROTTLE_STATUSES:
                raise ThrottledError(exc.code) from exc
            raise TransientNetworkError(f"HTTP {exc.code}", status=exc.code) from exc
        except (URLError, OSError, HTTPException) as exc:
            raise TransientNetworkError(str(exc)) from exc

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise TransientNetworkError(f"Invalid JSON payload: {exc}") from exc

    def _get_json(self, url: str) -> Any:
        """
        GET a URL and decode JSON, retrying throttles and transient failures.

        Throttled and transient failures share one budget of MAX_RETRIES
        retries; the wait before retry k is RETRY_BASE_DELAY_SECONDS * 2**k.

        Raises:
            FatalFetchError: When the budget is exhausted.
        """
        attempt = 0
        while True:
            try:
                return self._request_json(url)
            except ThrottledError as exc:
                last_error: Exception = exc
                if self.verbose and attempt < self.MAX_RETRIES:
                    logger.warning(
                        "[GCPD] throttled %s backoff %.1fs",
                        exc.status,
                        self.RETRY_BASE_DELAY_SECONDS * (2 ** attempt),
                    )
            except TransientNetworkError as exc:
                last_error = exc
                if self.verbose and attempt < self.MAX_RETRIES:
                    logger.warning(
                        "[GCPD] fetch error retry %s wait %.1fs: %s",
                        attempt + 1,
                        self.RETRY_BASE_DELAY_SECONDS * (2 ** attempt),
                        exc,
                    )

            if attempt >= self.MAX_RETRIES:
                raise FatalFetchError(
                    url,
                    attempts=attempt + 1,
                    status=getattr(last_error, "status", None),
                ) from last_error

            time.sleep(self.RETRY_BASE_DELAY_SECONDS * (2 ** attempt))
            attempt += 1

    def fetch_page(self, token: Optional[str] = None) -> PageResult:
        url = self.build_page_url(token)
        if self.verbose:
            logger.info("[GCPD] request %s", url)
        return PageResult.from_payload(self._get_json(url))
