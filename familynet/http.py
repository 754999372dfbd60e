"""HTTP client with retries for remote CSV datasets."""

from __future__ import annotations

import os
import time
from typing import Any, Mapping, Optional

import requests

from .utils import logger, merge_dicts

DEFAULT_HEADERS = {
    "User-Agent": os.getenv("FAMILYNET_USER_AGENT", "familynet/1.0 (+https://example.com/contact)"),
    "Accept": "text/csv, text/plain;q=0.9, */*;q=0.5",
}

RETRY_STATUSES = {429, 500, 502, 503, 504}


class HTTPError(RuntimeError):
    pass


class HTTPClient:
    def __init__(
        self,
        max_retries: int = 3,
        backoff: float = 0.5,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.backoff = backoff
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> requests.Response:
        headers = merge_dicts(DEFAULT_HEADERS, dict(headers or {}))
        for attempt in range(self.max_retries):
            try:
                resp = self.session.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                sleep_for = self.backoff * (2**attempt)
                logger.warning("HTTP %s failed (%s), retrying in %.2fs", url, exc, sleep_for)
                time.sleep(sleep_for)
                continue
            if resp.status_code in (200, 304):
                return resp
            if resp.status_code in RETRY_STATUSES:
                sleep_for = self.backoff * (2**attempt)
                logger.warning("HTTP %s returned %s, retrying in %.2fs", url, resp.status_code, sleep_for)
                time.sleep(sleep_for)
                continue
            raise HTTPError(f"Request failed with status {resp.status_code}: {resp.text[:200]}")
        raise HTTPError(f"Exceeded retries for {url}")

    def get_text(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        resp = self.request("GET", url, params=params, headers=headers)
        if not resp.encoding:
            resp.encoding = "utf-8"
        return resp.text


__all__ = ["HTTPClient", "HTTPError", "DEFAULT_HEADERS"]
