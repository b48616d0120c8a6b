from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Envelope produced by `api_response`, used to document route payloads."""

    status_code: int = 200
    status: str = "success"
    message: str
    data: Optional[T] = None
