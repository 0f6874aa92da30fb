"""
Ceremony state.

A ceremony's entire progress lives in one of these value objects. The caller
keeps it between calls and hands it back with every operation; the
coordinators never mutate the copy they receive, they return an updated one.
"""

import json
import logging
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from .constants import MAX_PARTICIPANTS, ROUND_ONE, ROUND_TWO
from .errors import InvalidStateTransition, SerializationError
from .packages import Message, describe_validation_error

logger = logging.getLogger(__name__)

S = TypeVar("S", bound="CeremonyState")


class CeremonyStatus(Enum):
    """Ceremony progress, derived from the state payload."""
    CREATED = "created"
    ROUND_1 = "round_1"
    ROUND_2 = "round_2"
    COMPLETE = "complete"


class CeremonyState(BaseModel):
    """Fields and behaviour shared by keygen and signing ceremonies."""

    current_round: int = Field(default=ROUND_ONE, ge=ROUND_ONE, le=ROUND_TWO)
    round1_packages: Dict[str, str] = Field(default_factory=dict)
    identifiers: Dict[str, int] = Field(default_factory=dict)

    ceremony: ClassVar[str] = ""

    def updated(self: S) -> S:
        """Return the private copy an operation mutates."""
        return self.model_copy(deep=True)

    def require_round(self, expected: int) -> None:
        if self.current_round != expected:
            raise InvalidStateTransition(
                f"Expected round {expected}, got round {self.current_round}"
            )

    def advance_if_quorum(self, quorum: int) -> bool:
        """Move from round 1 to round 2 once ``quorum`` round 1 packages are in."""
        if self.current_round == ROUND_ONE and len(self.round1_packages) >= quorum:
            self.current_round = ROUND_TWO
            logger.info(
                f"{self.ceremony.capitalize()} ceremony advanced to round 2 "
                f"with {len(self.round1_packages)} participants"
            )
            return True
        return False

    @property
    def is_complete(self) -> bool:
        raise NotImplementedError

    @property
    def quorum(self) -> int:
        raise NotImplementedError

    def _round_two_submissions(self) -> int:
        raise NotImplementedError

    @property
    def status(self) -> CeremonyStatus:
        if self.is_complete:
            return CeremonyStatus.COMPLETE
        if self.current_round == ROUND_TWO:
            return CeremonyStatus.ROUND_2
        if self.round1_packages:
            return CeremonyStatus.ROUND_1
        return CeremonyStatus.CREATED

    def describe(self) -> Dict[str, Any]:
        if self.current_round == ROUND_ONE:
            submitted = len(self.round1_packages)
        else:
            submitted = self._round_two_submissions()
        return {
            "ceremony": self.ceremony,
            "status": self.status.value,
            "current_round": self.current_round,
            "submitted": submitted,
            "required": self.quorum,
        }


class KeygenState(CeremonyState):
    """Progress of a distributed key generation."""

    ceremony: ClassVar[str] = "keygen"

    threshold: int = Field(ge=1, le=MAX_PARTICIPANTS)
    max_participants: int = Field(ge=1, le=MAX_PARTICIPANTS)
    key_packages: Dict[str, str] = Field(default_factory=dict)
    group_public_key: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "KeygenState":
        if self.threshold > self.max_participants:
            raise ValueError("threshold exceeds max_participants")
        if len(self.round1_packages) > self.max_participants:
            raise ValueError("more round 1 packages than participants")
        if len(self.key_packages) > self.max_participants:
            raise ValueError("more key packages than participants")
        return self

    @property
    def is_complete(self) -> bool:
        return self.group_public_key is not None

    @property
    def quorum(self) -> int:
        return self.threshold

    def _round_two_submissions(self) -> int:
        return len(self.key_packages)


class SigningState(CeremonyState):
    """Progress of a signing ceremony over one message."""

    ceremony: ClassVar[str] = "signing"

    message: Message
    signers: List[str] = Field(min_length=1)
    signature_shares: Dict[str, str] = Field(default_factory=dict)
    final_signature: Optional[str] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "SigningState":
        if len(set(self.signers)) != len(self.signers):
            raise ValueError("signers must be unique")
        return self

    @property
    def is_complete(self) -> bool:
        return self.final_signature is not None

    @property
    def quorum(self) -> int:
        return len(self.signers)

    def _round_two_submissions(self) -> int:
        return len(self.signature_shares)


def _unwrap(data: Union[str, bytes, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Reduce the accepted state inputs to the bare state object: JSON text or a
    parsed object, either the state itself, an envelope around it, or an
    envelope around a ``[state, output]`` pair.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise SerializationError(f"Failed to parse state: {e}") from e

    if isinstance(data, dict) and "success" in data:
        if not data.get("success") or data.get("data") is None:
            raise InvalidStateTransition("Invalid state provided")
        data = data["data"]
        if isinstance(data, list) and data and isinstance(data[0], dict):
            data = data[0]

    if not isinstance(data, dict):
        raise SerializationError("State must be a JSON object")
    return data


def load_state(data: Union[str, bytes, Dict[str, Any], CeremonyState], model: Type[S]) -> S:
    """
    Decode a ceremony state of the given kind.

    Raises:
    SerializationError: If the input is not a valid state.
    InvalidStateTransition: If an error envelope or an empty envelope is given.
    """
    if isinstance(data, model):
        return data
    if isinstance(data, CeremonyState):
        raise InvalidStateTransition(
            f"Expected a {model.__name__}, got a {type(data).__name__}"
        )

    payload = _unwrap(data)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SerializationError(
            f"Invalid {model.__name__}: {describe_validation_error(e)}"
        ) from e


def load_any_state(data: Union[str, bytes, Dict[str, Any], CeremonyState]) -> CeremonyState:
    """Decode either kind of state, telling them apart by their fields."""
    if isinstance(data, CeremonyState):
        return data
    payload = _unwrap(data)
    model: Type[CeremonyState] = SigningState if "signers" in payload else KeygenState
    return load_state(payload, model)
