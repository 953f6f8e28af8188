"""Response envelope helpers."""

from fastapi import Response


def success(**data) -> dict:
    """Wrap a payload in the success envelope."""
    return {"status": "success", "data": data}


def error(message: str) -> dict:
    return {"status": "error", "message": message}


def no_content() -> Response:
    return Response(status_code=204)
