"""Response body negotiation by declared content type."""

import json
from typing import Any

import httpx


def is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def sniff_json(text: str) -> Any:
    """Parse JSON-shaped text, falling back to the raw text."""
    stripped = text.strip()
    if stripped[:1] not in ("{", "["):
        return text
    try:
        return json.loads(stripped)
    except ValueError:
        return text


def parse_response(response: httpx.Response) -> Any:
    """
    Parse a successful response.

    - 204 or empty body: None
    - JSON content type: parsed JSON (raises ValueError when malformed)
    - anything else: text, with a best-effort parse of JSON-shaped bodies
    """
    if response.status_code == 204 or not response.content:
        return None
    if is_json_content_type(response.headers.get("content-type", "")):
        return response.json()
    return sniff_json(response.text)


def parse_error_payload(response: httpx.Response) -> Any:
    """Parse an error response without ever raising; None when empty."""
    if not response.content:
        return None
    try:
        return parse_response(response)
    except ValueError:
        return response.text or None
