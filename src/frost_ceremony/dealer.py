"""
Trusted-dealer key generation: one party generates every participant's key
package at once, as an alternative to the distributed key generation.
"""

import logging
from typing import Dict, Optional, Tuple

from .dkg import dealer_generate
from .errors import KeygenError, SerializationError
from .keygen import validate_counts
from .packages import KeyPackage, PublicKeyPackage
from .rng import RandomSource

logger = logging.getLogger(__name__)


def participant_name(identifier: int) -> str:
    return f"participant_{identifier}"


def parse_seed_material(seed_material: Optional[str]) -> Optional[int]:
    """
    Decode an optional group secret given as 32 bytes of hex.

    Returns:
    Optional[int]: The secret, or None when no seed material was given.

    Raises:
    SerializationError: If the seed material is not 32 bytes of hex.
    """
    if seed_material is None or seed_material == "":
        return None
    if not isinstance(seed_material, str):
        raise SerializationError("Seed material must be a hex string")
    try:
        secret_bytes = bytes.fromhex(seed_material)
    except ValueError as e:
        raise SerializationError(f"Seed material is not valid hex: {e}") from e
    if len(secret_bytes) != 32:
        raise SerializationError(
            f"Seed material must be 32 bytes, got {len(secret_bytes)}"
        )
    return int.from_bytes(secret_bytes, "big")


class TrustedDealer:
    """Generates threshold key shares from a single trusted party."""

    def __init__(self, rng: RandomSource):
        self.rng = rng

    def generate_shares(
        self,
        seed_material: Optional[str],
        threshold: int,
        max_participants: int,
    ) -> Tuple[PublicKeyPackage, Dict[str, KeyPackage]]:
        """
        Split a group secret into ``max_participants`` key packages.

        Parameters:
        seed_material (Optional[str]): Group secret as 32 bytes of hex; a random
        secret is drawn when it is absent or empty.
        threshold (int): Number of participants needed to sign.
        max_participants (int): Number of key packages to generate.

        Returns:
        Tuple[PublicKeyPackage, Dict[str, KeyPackage]]: The group public key
        package and the key packages keyed by ``participant_<identifier>``.

        Raises:
        InsufficientParticipants: If threshold is 0 or exceeds max_participants.
        SerializationError: If a count or the seed material cannot be decoded.
        KeygenError: If the seed material is not a valid secret scalar.
        """
        validate_counts(threshold, max_participants)
        secret = parse_seed_material(seed_material)

        try:
            key_packages, public_key_package = dealer_generate(
                threshold, max_participants, self.rng, secret
            )
        except ValueError as e:
            raise KeygenError(f"Trusted dealer generation failed: {e}") from e

        logger.info(
            f"Trusted dealer generated {max_participants} shares with threshold "
            f"{threshold} for group public key {public_key_package.verifying_key.hex()}"
        )
        shares = {
            participant_name(identifier): key_package
            for identifier, key_package in key_packages.items()
        }
        return public_key_package, shares
