"""Uniform success/error wrapper returned by every boundary operation."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import FrostError


class ErrorInfo(BaseModel):
    """Stable, serializable description of a failure."""

    model_config = ConfigDict(frozen=True)

    kind: str
    detail: str
    required: Optional[int] = None
    actual: Optional[int] = None


class ResultEnvelope(BaseModel):
    """
    Exactly one of ``data`` and ``error`` is populated, matching ``success``.
    ``data`` must already be plain JSON data (see ``api.to_plain``), so
    producing the envelope's JSON cannot fail.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Any = None
    error: Optional[ErrorInfo] = None

    @model_validator(mode="after")
    def _exactly_one_field(self) -> "ResultEnvelope":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("a successful result carries data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("a failed result carries an error and no data")
        return self

    @classmethod
    def ok(cls, data: Any) -> "ResultEnvelope":
        return cls(success=True, data=data)

    @classmethod
    def err(cls, error: FrostError) -> "ResultEnvelope":
        return cls(success=False, error=ErrorInfo(**error.to_info()))

    def to_json(self) -> str:
        return self.model_dump_json()
