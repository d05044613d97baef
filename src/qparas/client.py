"""Paras marketplace API client."""

import logging
import time

import httpx

from .errors import ParasError

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-v2-mainnet.paras.id"


class ParasClient:
    """Thin GET-only wrapper around the Paras REST API."""

    _RETRY_STATUS_CODES = {429, 502, 503, 504}

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        retries: int = 0,
        retry_backoff_ms: int = 250,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.retries = retries
        self.retry_backoff_ms = retry_backoff_ms
        self._client = httpx.Client(
            base_url=base_url,
            headers={"accept": "application/json"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def _sleep_backoff(self, attempt: int, retry_after_header: str | None = None) -> None:
        if retry_after_header:
            try:
                retry_after_seconds = float(retry_after_header)
                if retry_after_seconds > 0:
                    time.sleep(retry_after_seconds)
                    return
            except ValueError:
                pass

        backoff_seconds = (self.retry_backoff_ms / 1000.0) * (2**attempt)
        time.sleep(backoff_seconds)

    def get(self, path: str, params: list[tuple[str, str]]) -> object:
        """GET ``path`` with an ordered parameter list, return the decoded JSON body."""
        for attempt in range(self.retries + 1):
            log.info("send request: %s params=%s", path, params)
            try:
                resp = self._client.get(path, params=params)
            except httpx.TimeoutException as exc:
                if attempt < self.retries:
                    self._sleep_backoff(attempt)
                    continue
                raise ParasError("TIMEOUT", "Request timed out", 0) from exc
            except httpx.RequestError as exc:
                if attempt < self.retries:
                    self._sleep_backoff(attempt)
                    continue
                raise ParasError("NETWORK", str(exc), 0) from exc

            if resp.status_code in self._RETRY_STATUS_CODES and attempt < self.retries:
                log.info("retrying after HTTP %s (attempt %d)", resp.status_code, attempt + 1)
                self._sleep_backoff(attempt, resp.headers.get("retry-after"))
                continue
            break

        if not resp.content:
            raise ParasError("EMPTY_RESPONSE", f"Empty response (HTTP {resp.status_code})", resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            if resp.status_code >= 400:
                raise ParasError("HTTP", resp.text[:200], resp.status_code)
            raise ParasError("INVALID_RESPONSE", resp.text[:200], resp.status_code)
        if resp.status_code >= 400:
            message = resp.text[:200]
            if isinstance(data, dict):
                message = str(data.get("message") or data.get("error") or message)
            raise ParasError("HTTP", message, resp.status_code)
        return data

    def close(self):
        self._client.close()
