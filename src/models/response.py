"""Common response wrapper."""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from utils.error_handling import json_response


class ApiResponse(BaseModel):
    """Uniform envelope for every HTTP response."""

    success: bool = True
    data: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None
    correlation_id: Optional[str] = None

    def to_lambda(self, status: int = 200) -> Dict[str, Any]:
        return json_response(status, self.model_dump(mode="json"))


def ok(data: Any, correlation_id: Optional[str] = None, status: int = 200) -> Dict[str, Any]:
    """Shortcut for a successful proxy response."""
    return ApiResponse(data=data, correlation_id=correlation_id).to_lambda(status)
