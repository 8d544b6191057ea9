"""
HTTP helpers for provider adapters.

This module intentionally contains only network logic:
- requests
- status mapping
- JSON decoding

No parsing. No heuristics. No provider-specific semantics.
"""

from typing import Any, Dict, Optional

import requests  # type: ignore[import-untyped]

from ....exceptions import ProviderTransportFailure, RateLimited

DEFAULT_TIMEOUT = 10
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/143.0.0.0 Safari/537.36",
    "Accept-Language": "ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7",
}


def _request(
    provider_id: str,
    method: str,
    url: str,
    *,
    session: Optional[requests.Session] = None,
    headers: Optional[dict] = None,
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> requests.Response:
    sess = session or requests
    merged_headers = dict(DEFAULT_HEADERS)
    merged_headers.update(headers or {})
    try:
        resp = sess.request(method, url, headers=merged_headers, timeout=timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        raise ProviderTransportFailure(provider_id, f"{method} {url} failed: {e}")

    if resp.status_code == 429:
        raise RateLimited(provider_id, "rate limited (429)", status_code=429)
    if not 200 <= resp.status_code < 300:
        raise ProviderTransportFailure(
            provider_id, f"HTTP {resp.status_code} from {url}", status_code=resp.status_code
        )
    return resp


def as_transport_failure(provider_id: str, exc: Exception) -> ProviderTransportFailure:
    """Map an exception raised inside a third-party client to our taxonomy."""
    if isinstance(exc, ProviderTransportFailure):
        return exc
    error_msg = str(exc).lower()
    if "429" in error_msg or "rate limit" in error_msg or "too many requests" in error_msg:
        return RateLimited(provider_id, str(exc), status_code=429)
    return ProviderTransportFailure(provider_id, str(exc))


def get_text(provider_id: str, url: str, **kwargs: Any) -> str:
    """GET a page and return its body.

    Raises:
        RateLimited: On HTTP 429
        ProviderTransportFailure: On connection errors or any other non-2xx
    """
    return _request(provider_id, "GET", url, **kwargs).text


def get_json(provider_id: str, url: str, **kwargs: Any) -> Any:
    """GET a URL and decode its JSON body."""
    resp = _request(provider_id, "GET", url, **kwargs)
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderTransportFailure(provider_id, f"invalid JSON from {url}: {e}")


def post_json(
    provider_id: str,
    url: str,
    payload: Dict[str, Any],
    **kwargs: Any,
) -> Any:
    """POST a JSON payload and decode the JSON response."""
    resp = _request(provider_id, "POST", url, json=payload, **kwargs)
    try:
        return resp.json()
    except ValueError as e:
        raise ProviderTransportFailure(provider_id, f"invalid JSON from {url}: {e}")
