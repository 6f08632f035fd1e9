"""ApiResponse envelope shared by every endpoint.

    {"code": 0, "message": "success", "data": {...}, "timestamp": "...", "request_id": "req_..."}

``code`` is 0 on success and the AppError code otherwise; ``data`` is null on
error. Decimal fields inside ``data`` are already strings (routers dump their
schemas with ``mode="json"``).
"""

import uuid
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request

from src.tm_common.datetime_utils import utc_now


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def respond(request: Request, data: Any = None, message: str = "success") -> ApiResponse:
    """success_response tagged with the request id set by RequestLogMiddleware."""
    resp = success_response(data, message=message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
