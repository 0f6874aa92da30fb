"""
Keygen coordinator: drives the two-round distributed key generation over
KeygenState values.

Round 1 gives each arriving participant the next identifier, runs
``dkg_round1`` for it and keeps the resulting secret and public package in
the state. Once ``threshold`` participants have contributed the ceremony moves
to round 2, where each contributor combines its own secret with everyone
else's round 1 package (supplied by the caller, never accumulated here) into
its key package. The group public key is recorded once ``threshold`` key
packages exist.
"""

import logging
from typing import Any, Dict, Mapping, Tuple, Union

from .constants import CONTEXT, MAX_PARTICIPANTS, ROUND_ONE, ROUND_TWO
from .dkg import dkg_round1, dkg_round2
from .errors import (
    InsufficientParticipants,
    InvalidParticipant,
    KeygenError,
    SerializationError,
)
from .identifiers import assign_identifier, check_participant_id, index_by_identifier
from .packages import (
    KeyPackage,
    PublicKeyPackage,
    Round1Bundle,
    Round1Package,
    decode_package_map,
)
from .rng import RandomSource
from .state import KeygenState

logger = logging.getLogger(__name__)


def validate_counts(threshold: Any, max_participants: Any) -> None:
    """
    Validate the (t, n) parameters of a new key generation.

    Raises:
    SerializationError: If either value is not an integer in [0, 65535].
    InsufficientParticipants: If threshold is 0 or exceeds max_participants.
    """
    for name, value in (("threshold", threshold), ("max_participants", max_participants)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise SerializationError(f"{name} must be an integer, got {value!r}")
        if not 0 <= value <= MAX_PARTICIPANTS:
            raise SerializationError(
                f"{name} must be between 0 and {MAX_PARTICIPANTS}, got {value}"
            )

    if threshold == 0 or threshold > max_participants:
        raise InsufficientParticipants(required=threshold, actual=max_participants)


class KeygenCoordinator:
    """
    Coordinates FROST distributed key generation.

    The coordinator holds no ceremony state of its own: every method takes
    the current KeygenState and returns an updated copy, leaving the input
    untouched when it raises.
    """

    def __init__(self, rng: RandomSource, context: bytes = CONTEXT):
        """
        Initialize a keygen coordinator.

        Parameters:
        rng (RandomSource): Source of the DKG polynomial coefficients.
        context (bytes): Proof-of-knowledge context shared by all participants.
        """
        self.rng = rng
        self.context = context

    def create_state(self, threshold: int, max_participants: int) -> KeygenState:
        """
        Start a ceremony in which any ``threshold`` of ``max_participants`` can sign.

        Raises:
        InsufficientParticipants: If threshold is 0 or exceeds max_participants.
        SerializationError: If either count is not a valid integer.
        """
        validate_counts(threshold, max_participants)
        state = KeygenState(threshold=threshold, max_participants=max_participants)
        logger.info(f"Created keygen ceremony: {threshold} of {max_participants}")
        return state

    def round1(self, state: KeygenState, participant_id: str) -> Tuple[KeygenState, str]:
        """
        Generate a participant's round 1 package.

        Parameters:
        state (KeygenState): Current ceremony state.
        participant_id (str): The contributing participant.

        Returns:
        Tuple[KeygenState, str]: The updated state and the public round 1
        package to distribute.

        Raises:
        InvalidStateTransition: If the ceremony is not in round 1.
        InsufficientParticipants: If all participant slots are taken.
        KeygenError: If the DKG primitive fails.
        """
        state.require_round(ROUND_ONE)
        check_participant_id(participant_id)

        resubmission = participant_id in state.round1_packages
        if not resubmission and len(state.round1_packages) >= state.max_participants:
            raise InsufficientParticipants(
                required=state.threshold, actual=state.max_participants
            )

        identifier = assign_identifier(
            state.identifiers, participant_id, len(state.round1_packages) + 1
        )

        try:
            secret, package = dkg_round1(
                identifier,
                state.max_participants,
                state.threshold,
                self.rng,
                self.context,
            )
        except ValueError as e:
            raise KeygenError(f"DKG round 1 failed: {e}") from e

        new_state = state.updated()
        new_state.round1_packages[participant_id] = Round1Bundle(
            secret=secret, package=package
        ).to_json()
        new_state.identifiers[participant_id] = identifier
        logger.debug(
            f"Keygen round 1 {'resubmitted' if resubmission else 'accepted'} "
            f"for {participant_id} as identifier {identifier}"
        )
        new_state.advance_if_quorum(new_state.threshold)

        return new_state, package.to_json()

    def round2(
        self,
        state: KeygenState,
        participant_id: str,
        all_round1_packages: Union[str, Mapping[str, Any]],
    ) -> Tuple[KeygenState, str]:
        """
        Derive a participant's key package from everyone's round 1 output.

        Parameters:
        state (KeygenState): Current ceremony state.
        participant_id (str): The participant finishing the DKG.
        all_round1_packages (str | Mapping): Round 1 packages of the ceremony keyed
        by participant id; this participant's own entry is ignored.

        Returns:
        Tuple[KeygenState, str]: The updated state and this participant's key package.

        Raises:
        InvalidStateTransition: If the ceremony is not in round 2.
        InvalidParticipant: If the participant has no round 1 secret, a key
        names someone who did not take part in round 1, or a package carries
        an unexpected identifier.
        SerializationError: If a package cannot be decoded.
        KeygenError: If the DKG primitive rejects the packages.
        """
        state.require_round(ROUND_TWO)
        check_participant_id(participant_id)

        stored = state.round1_packages.get(participant_id)
        if stored is None:
            raise InvalidParticipant(f"Participant {participant_id} not found in round 1")
        bundle = Round1Bundle.from_json(stored, f"round 1 secret of {participant_id}")

        received = decode_package_map(all_round1_packages, "round 1 packages")
        for other in received:
            if other != participant_id and other not in state.identifiers:
                raise InvalidParticipant(f"Participant {other} did not take part in round 1")
        peers: Dict[str, Round1Package] = {
            other: Round1Package.from_json(data, f"round 1 package for {other}")
            for other, data in received.items()
            if other != participant_id
        }
        peer_packages = index_by_identifier(peers, state.identifiers)
        if bundle.secret.identifier in peer_packages:
            raise InvalidParticipant(
                f"Identifier {bundle.secret.identifier} of {participant_id} "
                f"is claimed by another package"
            )

        try:
            key_package, public_key_package = dkg_round2(
                bundle.secret, peer_packages, self.context
            )
        except ValueError as e:
            raise KeygenError(f"DKG round 2 failed: {e}") from e

        self._check_agreement(state, participant_id, key_package)

        new_state = state.updated()
        new_state.key_packages[participant_id] = key_package.to_json()
        logger.debug(
            f"Keygen round 2 accepted for {participant_id} "
            f"({len(new_state.key_packages)}/{new_state.threshold})"
        )

        if len(new_state.key_packages) >= new_state.threshold:
            new_state.group_public_key = public_key_package.to_json()
            logger.info(
                f"Keygen ceremony complete with group public key "
                f"{public_key_package.verifying_key.hex()}"
            )

        return new_state, key_package.to_json()

    @staticmethod
    def _check_agreement(
        state: KeygenState, participant_id: str, key_package: KeyPackage
    ) -> None:
        # Every key package must end up under the same group key.
        for other, data in state.key_packages.items():
            if other == participant_id:
                continue
            existing = KeyPackage.from_json(data, f"key package of {other}")
            if existing.verifying_key != key_package.verifying_key:
                raise KeygenError(
                    f"Group public key derived for {participant_id} differs from "
                    f"the one derived for {other}"
                )
        if state.group_public_key is not None:
            group = PublicKeyPackage.from_json(state.group_public_key, "group public key")
            if group.verifying_key != key_package.verifying_key:
                raise KeygenError(
                    f"Group public key derived for {participant_id} differs from "
                    f"the recorded group public key"
                )
