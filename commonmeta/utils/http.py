from __future__ import annotations
import time, random
import requests
from typing import Any, Dict, Mapping, Optional, Tuple

from ..config import USER_AGENT

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

def _backoff(attempt: int, base: float, cap: float) -> float:
    return min((base ** attempt) * 1.5 + random.uniform(0, 0.5), cap)

def _retry_after(headers: Mapping[str, str]) -> float:
    """Seconds from a Retry-After header; HTTP-date values are ignored."""
    value = headers.get("Retry-After")
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError:
        return 0.0

def http_request(
    method: str,
    url: str,
    json_body: Any = None,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 15.0,
    retries: int = 3,
    backoff_base: float = 0.8,
    max_sleep: float = 10.0,
    session: Optional[requests.Session] = None,
) -> Tuple[int, str, Dict[str, str]]:
    """
    Send a request, retrying on 429/5xx and on connection errors.

    Waits the longer of Retry-After and an exponential backoff with jitter.

    Args:
        method (str): HTTP method, e.g. "GET" or "PATCH".
        url (str): Target URL.
        json_body (Any): Optional body, serialized as JSON.
        params (dict | None): Query-string parameters.
        headers (dict | None): Extra request headers; a User-Agent is added when missing.
        timeout (float): Per-attempt timeout in seconds.
        retries (int): Number of attempts.
        session (requests.Session | None): Session to reuse; a new one is created otherwise.

    Returns:
        tuple: (status_code, text, response_headers). Non-retryable statuses,
        and the last retryable one, are returned rather than raised.

    Raises:
        requests.RequestException: when every attempt failed at the transport level.
    """
    sess = session or requests.Session()
    hdrs = {"User-Agent": USER_AGENT, **(headers or {})}
    last_attempt = retries - 1

    for attempt in range(retries):
        try:
            r = sess.request(method, url, params=params, headers=hdrs, json=json_body, timeout=timeout)
        except requests.RequestException:
            if attempt == last_attempt:
                raise
            time.sleep(_backoff(attempt, backoff_base, max_sleep))
            continue

        if r.status_code in RETRYABLE_STATUS and attempt < last_attempt:
            time.sleep(max(_retry_after(r.headers), _backoff(attempt, backoff_base, max_sleep)))
            continue
        return r.status_code, r.text, dict(r.headers)

    raise RuntimeError(f"no attempts made for {url} (retries={retries})")
