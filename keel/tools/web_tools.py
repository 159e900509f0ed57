"""Web-related tools.

Network access may be restricted in some environments; failures surface as
tool errors so the model can fall back to other sources.
"""

import json
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlparse

import requests

from keel import config
from keel.debug_logger import get_logger
from keel.tools.errors import ToolNetworkError, ToolValidationError
from keel.versioning import get_version

if TYPE_CHECKING:  # pragma: no cover - used only for type hints
    from keel.core.session import Session


USER_AGENT = f"keel-agent/{get_version()}"


def _check_url(url: Any) -> Optional[str]:
    if not isinstance(url, str) or not url.strip():
        return "url is required"
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return f"Only absolute http(s) URLs are supported: {url}"
    return None


def fetch_url(args: Dict[str, Any], session: "Session") -> str:
    """Fetch a URL and return status, content type and (truncated) text as JSON."""
    url = args.get("url")
    problem = _check_url(url)
    if problem:
        raise ToolValidationError(problem)
    url = url.strip()

    try:
        response = requests.get(
            url,
            timeout=config.FETCH_TIMEOUT_SECONDS,
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()
    except requests.RequestException as e:
        get_logger().log("web_tools", "FETCH_FAILED", {"url": url, "error": str(e)}, "WARNING")
        raise ToolNetworkError(f"Network error fetching URL: {e}", context={"url": url}) from e

    text = response.text
    truncated = len(text) > config.FETCH_CONTENT_LIMIT
    return json.dumps({
        "url": url,
        "status_code": response.status_code,
        "content_type": response.headers.get("Content-Type", ""),
        "content": text[:config.FETCH_CONTENT_LIMIT],
        "truncated": truncated,
    })


def validate_fetch_url(args: Dict[str, Any], session: "Session") -> Optional[str]:
    return _check_url(args.get("url"))
