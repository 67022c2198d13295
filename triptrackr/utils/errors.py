"""Helpers producing the shared {"error", "message", "details"} error body"""
from typing import Any, Dict, Iterable, List, Optional
from fastapi import HTTPException


def api_error(status_code: int, error: str, message: str, details: Optional[Dict[str, Any]] = None) -> HTTPException:
    """Build an HTTPException whose detail follows ErrorResponse"""
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error,
            "message": message,
            "details": details or {}
        }
    )


def not_found(message: str) -> HTTPException:
    return api_error(404, "NotFound", message)


def internal_error(message: str, error: Exception) -> HTTPException:
    return api_error(500, "InternalServerError", message, {"original_error": str(error)})


def _clean_message(message: str) -> str:
    # pydantic prefixes messages raised from validators
    for prefix in ("Value error, ", "Assertion failed, "):
        if message.startswith(prefix):
            return message[len(prefix):]
    return message


def simplify_errors(errors: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce pydantic error dicts to JSON-safe {loc, msg, type}"""
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": _clean_message(str(error.get("msg", ""))),
            "type": error.get("type", "value_error")
        }
        for error in errors
    ]


def validation_error_detail(errors: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    simplified = simplify_errors(errors)
    return {
        "error": "ValidationError",
        "message": simplified[0]["msg"] if simplified else "Invalid request",
        "details": {"errors": simplified}
    }
