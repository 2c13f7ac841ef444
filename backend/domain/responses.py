"""
Standard API response helpers for consistent response formatting.

- Error: { "success": false, "error": { "code": "...", "message": "...", "details": {...} } }
"""
from typing import Any


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Build the error envelope used by every exception handler."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details,
        },
    }
