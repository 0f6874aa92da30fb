"""
Signing coordinator: drives the two-round FROST signing protocol over
SigningState values.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .constants import ROUND_ONE, ROUND_TWO
from .errors import (
    InsufficientParticipants,
    InvalidParticipant,
    SerializationError,
    SigningError,
)
from .identifiers import check_participant_id, index_by_identifier
from .packages import (
    KeyPackage,
    PublicKeyPackage,
    SignatureShare,
    SigningCommitments,
    SigningPackage,
    SigningRound1Bundle,
    parse_message,
)
from .rng import RandomSource
from .schnorr import InvalidShareError, aggregate, nonce_commit, sign_share
from .state import SigningState

logger = logging.getLogger(__name__)

PackageInput = Union[str, bytes, Mapping[str, Any]]


class SigningCoordinator:
    """
    Coordinates FROST threshold signing of one message.

    Like the keygen coordinator it is stateless; each call works on a copy of
    the SigningState it is given.
    """

    def __init__(self, rng: RandomSource):
        self.rng = rng

    def create_state(self, message: Union[bytes, str, list], signers: Iterable[str]) -> SigningState:
        """
        Start a signing ceremony.

        Parameters:
        message (bytes | str | list): Message to sign, as bytes, hex or a list of byte values.
        signers (Iterable[str]): Ids of the participants who will sign, in order.

        Raises:
        InsufficientParticipants: If no signers are given.
        InvalidParticipant: If a signer id is invalid or listed twice.
        SerializationError: If the message cannot be decoded.
        """
        signers = list(signers)
        if not signers:
            raise InsufficientParticipants(required=1, actual=0)

        seen = set()
        for signer in signers:
            check_participant_id(signer)
            if signer in seen:
                raise InvalidParticipant(f"Signer {signer} is listed more than once")
            seen.add(signer)

        try:
            message = parse_message(message)
        except ValueError as e:
            raise SerializationError(f"Failed to parse message: {e}") from e

        state = SigningState(message=message, signers=signers)
        logger.info(f"Created signing ceremony for {len(signers)} signers")
        return state

    def round1(
        self, state: SigningState, participant_id: str, key_package: PackageInput
    ) -> Tuple[SigningState, str]:
        """
        Commit to fresh nonces for a signer. A signer submitting again replaces
        its earlier nonces.

        Returns:
        Tuple[SigningState, str]: The updated state and the signer's public
        commitments.

        Raises:
        InvalidStateTransition: If the ceremony is not in round 1.
        InvalidParticipant: If the participant is not a listed signer, or its
        identifier is already used by another signer.
        SerializationError: If the key package cannot be decoded.
        """
        state.require_round(ROUND_ONE)
        check_participant_id(participant_id)
        if participant_id not in state.signers:
            raise InvalidParticipant(f"Participant {participant_id} is not a signer")

        key_package = KeyPackage.from_json(key_package, "key package")
        for other, identifier in state.identifiers.items():
            if other != participant_id and identifier == key_package.identifier:
                raise InvalidParticipant(
                    f"Identifier {identifier} of {participant_id} is already used by {other}"
                )

        try:
            nonces, commitments = nonce_commit(
                key_package.signing_share, self.rng, key_package.identifier
            )
        except ValueError as e:
            raise SigningError(f"Nonce generation failed: {e}") from e

        new_state = state.updated()
        new_state.round1_packages[participant_id] = SigningRound1Bundle(
            nonces=nonces, commitments=commitments
        ).to_json()
        new_state.identifiers[participant_id] = key_package.identifier
        logger.debug(
            f"Signing round 1 accepted for {participant_id} "
            f"({len(new_state.round1_packages)}/{len(new_state.signers)})"
        )
        new_state.advance_if_quorum(len(new_state.signers))

        return new_state, commitments.to_json()

    def build_signing_package(self, state: SigningState) -> SigningPackage:
        """
        Assemble the message and every signer's commitments.

        Raises:
        InvalidStateTransition: If round 1 has not completed.
        """
        state.require_round(ROUND_TWO)
        commitments: Dict[str, SigningCommitments] = {}
        for signer in state.signers:
            bundle = SigningRound1Bundle.from_json(
                state.round1_packages[signer], f"round 1 bundle of {signer}"
            )
            commitments[signer] = bundle.commitments
        return SigningPackage(message=state.message, commitments=commitments)

    def round2(
        self,
        state: SigningState,
        participant_id: str,
        key_package: PackageInput,
        signing_package: Union[PackageInput, SigningPackage],
        group_public_key: PackageInput,
    ) -> Tuple[SigningState, Optional[str]]:
        """
        Produce a signer's signature share, aggregating once all are in.

        Parameters:
        state (SigningState): Current ceremony state.
        participant_id (str): The signing participant.
        key_package: The participant's key package.
        signing_package: Message and every signer's commitments.
        group_public_key: The public key package from key generation.

        Returns:
        Tuple[SigningState, Optional[str]]: The updated state and the final
        signature, or None while shares are still outstanding.

        Raises:
        InvalidStateTransition: If the ceremony is not in round 2.
        InvalidParticipant: If the participant has no round 1 nonces or
        presents another participant's key package.
        SerializationError: If an input cannot be decoded.
        SigningError: If the nonces were already used, or signing or
        aggregation fails.
        """
        state.require_round(ROUND_TWO)
        check_participant_id(participant_id)

        stored = state.round1_packages.get(participant_id)
        if stored is None:
            raise InvalidParticipant(f"Participant {participant_id} not found in round 1")
        bundle = SigningRound1Bundle.from_json(stored, f"round 1 bundle of {participant_id}")
        if bundle.nonces is None:
            raise SigningError(f"Nonces of {participant_id} have already been used")

        key_package = KeyPackage.from_json(key_package, "key package")
        if key_package.identifier != state.identifiers.get(participant_id):
            raise InvalidParticipant(
                f"Key package identifier {key_package.identifier} does not belong "
                f"to {participant_id}"
            )

        signing_package = self._load_signing_package(state, signing_package)

        try:
            signature_share = sign_share(signing_package, bundle.nonces, key_package)
        except ValueError as e:
            raise SigningError(f"Signing failed: {e}") from e

        new_state = state.updated()
        new_state.signature_shares[participant_id] = signature_share.to_json()
        new_state.round1_packages[participant_id] = SigningRound1Bundle(
            commitments=bundle.commitments
        ).to_json()
        logger.debug(
            f"Signing round 2 accepted for {participant_id} "
            f"({len(new_state.signature_shares)}/{len(new_state.signers)})"
        )

        if len(new_state.signature_shares) < len(new_state.signers):
            return new_state, None

        new_state.final_signature = self._aggregate(
            new_state, signing_package, group_public_key
        )
        logger.info(f"Signing ceremony complete: {new_state.final_signature}")
        return new_state, new_state.final_signature

    @staticmethod
    def _load_signing_package(
        state: SigningState, data: Union[PackageInput, SigningPackage]
    ) -> SigningPackage:
        signing_package = SigningPackage.from_json(data, "signing package")
        if signing_package.message != state.message:
            raise SigningError("Signing package message differs from the ceremony message")
        if set(signing_package.commitments) != set(state.signers):
            raise SigningError(
                f"Signing package commitments from {sorted(signing_package.commitments)} "
                f"do not match the signers {sorted(state.signers)}"
            )
        index_by_identifier(signing_package.commitments, state.identifiers)
        return signing_package

    @staticmethod
    def _aggregate(
        state: SigningState, signing_package: SigningPackage, group_public_key: PackageInput
    ) -> str:
        public_key_package = PublicKeyPackage.from_json(group_public_key, "group public key")
        shares = {
            participant_id: SignatureShare.from_json(data, f"signature share of {participant_id}")
            for participant_id, data in state.signature_shares.items()
        }
        indexed = index_by_identifier(shares, state.identifiers)

        try:
            return aggregate(signing_package, indexed, public_key_package)
        except InvalidShareError as e:
            owner = next(
                (pid for pid, share in shares.items() if share.identifier == e.identifier),
                None,
            )
            raise SigningError(
                f"Invalid signature share from {owner} (identifier {e.identifier})"
            ) from e
        except ValueError as e:
            raise SigningError(f"Aggregation failed: {e}") from e
