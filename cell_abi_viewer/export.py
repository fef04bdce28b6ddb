"""
export.py - Send decoded output to an external JSON viewer

POSTs the sanitized output to JSON Hero and returns the location of the
created document. Every failure (transport error, non-2xx status, a body
without a location) yields None; nothing is retried or raised.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

JSONHERO_ENDPOINT = 'https://jsonhero.io/api/create.json'
EXPORT_TITLE = 'TON Cell Data'


def export_to_viewer(content: Any, client: Optional[httpx.Client] = None,
                     endpoint: str = JSONHERO_ENDPOINT, title: str = EXPORT_TITLE,
                     timeout: float = 10.0) -> Optional[str]:
    """Create a viewer document for JSON-safe content; return its URL or None."""
    payload = {
        'title': title,
        'content': content,
        'readOnly': False,
    }

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout)
    try:
        response = client.post(endpoint, json=payload)
    except httpx.HTTPError as e:
        logger.debug("Export request failed: %s", e)
        return None
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        logger.debug("Export rejected with status %d", response.status_code)
        return None

    try:
        body = response.json()
    except ValueError as e:
        logger.debug("Export response is not JSON: %s", e)
        return None

    location = body.get('location') if isinstance(body, dict) else None
    if not isinstance(location, str) or not location:
        return None
    return location
