"""
Identifier assignment.

The primitives address participants by a positive integer identifier, while
callers address them by an arbitrary string id. A participant's identifier is
fixed the first time it submits keygen round 1 (its insertion position) and is
recorded in the ceremony state, embedded in every package it produces, and
checked against that record whenever a package is consumed. All parties
therefore agree on the same identifier for the same participant, no matter in
which order the exchanged packages are enumerated.
"""

import logging
from typing import Dict, Mapping, Optional, Protocol, TypeVar

from .constants import IDENTIFIER_BYTES, MAX_PARTICIPANTS
from .errors import InvalidParticipant

logger = logging.getLogger(__name__)


class Identified(Protocol):
    identifier: int


T = TypeVar("T", bound=Identified)


def identifier_bytes(identifier: int) -> bytes:
    """Encode an identifier for hashing."""
    if not 1 <= identifier <= MAX_PARTICIPANTS:
        raise ValueError(f"Identifier {identifier} is out of range.")
    return identifier.to_bytes(IDENTIFIER_BYTES, "big")


def check_participant_id(participant_id: object) -> str:
    """
    Raises:
    InvalidParticipant: If participant_id is not a non-empty string.
    """
    if not isinstance(participant_id, str) or not participant_id:
        raise InvalidParticipant(f"Invalid participant id {participant_id!r}")
    return participant_id


def assign_identifier(
    identifiers: Mapping[str, int], participant_id: str, position: int
) -> int:
    """
    Return the identifier for participant_id, assigning ``position`` if the
    participant has none yet.

    Parameters:
    identifiers (Mapping[str, int]): Identifiers assigned so far.
    participant_id (str): The participant submitting.
    position (int): 1-based insertion position of a new participant.

    Raises:
    InvalidParticipant: If ``position`` is already held by someone else.
    """
    if participant_id in identifiers:
        return identifiers[participant_id]

    for other, identifier in identifiers.items():
        if identifier == position:
            raise InvalidParticipant(
                f"Identifier {position} is already assigned to {other}"
            )
    logger.debug(f"Assigned identifier {position} to participant {participant_id}")
    return position


def index_by_identifier(
    entries: Mapping[str, T],
    identifiers: Mapping[str, int],
    exclude: Optional[str] = None,
) -> Dict[int, T]:
    """
    Re-key packages from participant ids to the identifiers they carry.

    Each package's embedded identifier must agree with the one recorded for
    its participant (when one is recorded) and no identifier may appear twice.

    Raises:
    InvalidParticipant: On a mismatched or duplicated identifier.
    """
    indexed: Dict[int, T] = {}
    owners: Dict[int, str] = {}
    for participant_id, entry in entries.items():
        if participant_id == exclude:
            continue
        recorded = identifiers.get(participant_id)
        if recorded is not None and recorded != entry.identifier:
            raise InvalidParticipant(
                f"Participant {participant_id} presented identifier "
                f"{entry.identifier}, expected {recorded}"
            )
        if entry.identifier in owners:
            raise InvalidParticipant(
                f"Identifier {entry.identifier} claimed by both "
                f"{owners[entry.identifier]} and {participant_id}"
            )
        owners[entry.identifier] = participant_id
        indexed[entry.identifier] = entry
    return dict(sorted(indexed.items()))
