"""Error types for FROST ceremonies."""

from typing import Any, Dict, Optional


class FrostError(Exception):
    """Base exception for all ceremony errors.

    Every subclass carries a stable ``kind`` (the class name) and a human
    readable ``detail``; ``to_info`` turns both into the serializable form
    placed in a result envelope.
    """

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(f"{self.kind}: {detail}" if detail else self.kind)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_info(self) -> Dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail}


class InvalidParticipant(FrostError):
    """A referenced participant is absent from the expected map."""
    pass


class InsufficientParticipants(FrostError):
    """Threshold/participant-count validation failed."""

    def __init__(self, required: int, actual: int, detail: Optional[str] = None):
        self.required = required
        self.actual = actual
        super().__init__(
            detail or f"required {required} participants, got {actual}"
        )

    def to_info(self) -> Dict[str, Any]:
        info = super().to_info()
        info.update(required=self.required, actual=self.actual)
        return info


class KeygenError(FrostError):
    """A distributed key generation primitive failed."""
    pass


class SigningError(FrostError):
    """A nonce, signing or aggregation primitive failed."""
    pass


class SerializationError(FrostError):
    """Structured input or state could not be decoded."""
    pass


class InvalidStateTransition(FrostError):
    """An operation was invoked in the wrong round or on absent state."""
    pass


class ConfigurationError(FrostError):
    """Errors related to configuration."""
    pass
