"""
Copyright (c) 2021-2024 Jesse Posner

Distributed under the MIT software license, see the accompanying file LICENSE
or http://www.opensource.org/licenses/mit-license.php.

This code is currently a work in progress. It's not secure nor stable.  IT IS
EXTREMELY DANGEROUS AND RECKLESS TO USE THIS MODULE IN PRODUCTION!

This package coordinates FROST threshold signature ceremonies over secp256k1,
producing BIP340 Schnorr signatures.

Modules:
- api: JSON boundary; every operation returns a serialized ResultEnvelope.
- keygen: KeygenCoordinator, driving the two-round distributed key generation.
- signing: SigningCoordinator, driving the two-round signing protocol.
- dealer: TrustedDealer, generating every key share centrally.
- state: KeygenState and SigningState, the values passed between calls.
- dkg, schnorr, point: the cryptographic primitives.
- config: CeremonyConfig and logging setup.

Ceremony state is held by the caller and passed in with every call; nothing
is kept between calls except the process-wide randomness source.
"""

from .point import Point, G
from .constants import P, Q
from .errors import (
    FrostError,
    InvalidParticipant,
    InsufficientParticipants,
    KeygenError,
    SigningError,
    SerializationError,
    InvalidStateTransition,
    ConfigurationError,
)
from .rng import RandomSource, SystemRandomSource, SeededRandomSource
from .state import CeremonyStatus, KeygenState, SigningState
from .envelope import ErrorInfo, ResultEnvelope
from .keygen import KeygenCoordinator
from .signing import SigningCoordinator
from .dealer import TrustedDealer
from .config import CeremonyConfig, setup_logging
