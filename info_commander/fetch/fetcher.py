"""
Async HTTP fetching for web pages and uploaded documents.

A single GET per call; there is no retry policy. Failures are reported
through FetchResult.error rather than raised, so callers decide how to
surface them.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text/content will be populated (success) or error will be
    populated (failure), but never both. status_code may be None for
    network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: Decoded response body, or None on error or for binary fetches
        error: Error message if fetch failed, None on success
        content: Raw body bytes for binary fetches
        content_type: Response Content-Type header
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None
    content: bytes | None = None
    content_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fetch_url(
    url: str,
    timeout: float,
    user_agent: str,
    trust_env: bool = True,
    binary: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a URL with httpx.

    Follows redirects and respects system proxy settings when trust_env
    is enabled. Responses with status >= 400 are treated as failures.

    Args:
        url: The URL to fetch
        timeout: Request timeout in seconds
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment
        binary: Keep the raw bytes instead of decoding text
        transport: Optional transport override (tests use httpx.MockTransport)

    Returns:
        FetchResult with text/content on success or error message on failure
    """
    headers = {"User-Agent": user_agent}
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers=headers,
            follow_redirects=True,
            trust_env=trust_env,
            transport=transport,
        ) as client:
            resp = await client.get(url)
    except httpx.TimeoutException as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"TimeoutError: {exc}")
    except httpx.HTTPError as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"{type(exc).__name__}: {exc}")

    content_type = resp.headers.get("content-type")
    if resp.status_code >= 400:
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            text=None,
            error=f"HTTP {resp.status_code}",
            content_type=content_type,
        )
    if binary:
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            text=None,
            error=None,
            content=resp.content,
            content_type=content_type,
        )
    return FetchResult(
        url=url,
        status_code=resp.status_code,
        text=resp.text,
        error=None,
        content_type=content_type,
    )


def categorize_error(error: str | None, status_code: int | None) -> str:
    """Categorize fetch errors for logging and user messages.

    Returns:
        Error category: "timeout", "blocked", "not_found", "network_failed" or "unknown"
    """
    if not error:
        return "unknown"
    error_lower = error.lower()
    if "timeout" in error_lower or "timed out" in error_lower:
        return "timeout"
    if status_code in (401, 403, 429) or "blocked" in error_lower:
        return "blocked"
    if status_code == 404:
        return "not_found"
    if "connect" in error_lower or "connection" in error_lower:
        return "network_failed"
    return "unknown"
