from __future__ import annotations

from typing import Any, Dict

from fastapi import Request


def ok(request: Request, data: Any = None) -> Dict[str, Any]:
    """Success envelope; errors are enveloped by the handlers in main.py."""
    return {"request_id": request.state.request_id, "data": data, "error": None}
