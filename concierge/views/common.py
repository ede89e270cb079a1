"""Error body shared by every HTTP endpoint."""

from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: Any
    status: int
    path: Optional[str] = None
