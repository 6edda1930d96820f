"""HTTP transport: one call per invocation with deadline and response negotiation."""

from .executor import REQUEST_ID_HEADER, RequestExecutor
from .parsing import parse_error_payload, parse_response, sniff_json

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestExecutor",
    "parse_response",
    "parse_error_payload",
    "sniff_json",
]
