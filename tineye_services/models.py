from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    """Standard TinEye Services API response envelope.

    The shape of `result` varies per API method. Fields outside the envelope
    are kept as extra attributes.
    """

    model_config = ConfigDict(extra="allow")

    status: Literal["ok", "warn", "fail"]
    method: Optional[str] = None
    result: List[Any] = Field(default_factory=list)
    error: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"
