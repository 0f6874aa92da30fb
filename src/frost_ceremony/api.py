"""
JSON boundary for FROST ceremonies.

Every operation takes plain values or JSON text, and returns the JSON text of
one ResultEnvelope: ``{"success": true, "data": ...}`` on success or
``{"success": false, "error": {"kind": ..., "detail": ...}}`` on failure. No
ceremony error escapes as an exception.

Ceremony state is never kept here. Each round returns the updated state
alongside its public output as ``[state, output]``; the caller stores it and
passes it back (the whole envelope may be passed back unchanged).
"""

import functools
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from .config import CeremonyConfig, setup_logging
from .constants import CONTEXT
from .dealer import TrustedDealer
from .envelope import ResultEnvelope
from .errors import FrostError, SerializationError
from .keygen import KeygenCoordinator
from .packages import PublicKeyPackage, parse_message
from .point import Point
from .rng import RandomSource, SystemRandomSource
from .schnorr import verify
from .signing import SigningCoordinator
from .state import KeygenState, SigningState, load_any_state, load_state

logger = logging.getLogger(__name__)

# Process-wide randomness source and proof-of-knowledge context
_rng: Optional[RandomSource] = None
_context: bytes = CONTEXT

StateInput = Union[str, bytes, Dict[str, Any]]


def initialize(
    rng: Optional[RandomSource] = None, config: Optional[CeremonyConfig] = None
) -> RandomSource:
    """
    Install the randomness source used by every subsequent operation.

    Parameters:
    rng (Optional[RandomSource]): Source to install; defaults to the one the
    configuration asks for, or the operating-system CSPRNG.
    config (Optional[CeremonyConfig]): Configuration, which also sets up logging.

    Returns:
    RandomSource: The installed source.

    Raises:
    ConfigurationError: If the configuration is invalid.
    """
    global _rng, _context
    context = CONTEXT
    if config is not None:
        config.validate()
        setup_logging(config.log_level)
        context = config.context_bytes
        if rng is None:
            rng = config.random_source()
    _rng = rng if rng is not None else SystemRandomSource()
    _context = context
    logger.info(f"Initialized with {type(_rng).__name__}")
    return _rng


def get_random_source() -> RandomSource:
    """Get the installed randomness source, installing the default if needed."""
    if _rng is None:
        return initialize()
    return _rng


def to_plain(value: Any) -> Any:
    """Convert models and containers into plain JSON data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_plain(item) for key, item in value.items()}
    return value


def _package(text: Optional[str]) -> Any:
    # Packages leave the coordinators as JSON text.
    return None if text is None else json.loads(text)


def _boundary(operation: Callable[..., Any]) -> Callable[..., str]:
    @functools.wraps(operation)
    def wrapper(*args: Any, **kwargs: Any) -> str:
        try:
            result = operation(*args, **kwargs)
        except FrostError as e:
            logger.warning(f"{operation.__name__} failed: {e}")
            return ResultEnvelope.err(e).to_json()
        logger.debug(f"{operation.__name__} succeeded")
        return ResultEnvelope.ok(to_plain(result)).to_json()

    return wrapper


def _parse_signers(signers: Union[str, List[str]]) -> List[str]:
    if isinstance(signers, (str, bytes)):
        try:
            signers = json.loads(signers)
        except ValueError as e:
            raise SerializationError(f"Failed to parse signers: {e}") from e
    if not isinstance(signers, (list, tuple)):
        raise SerializationError("Signers must be a JSON list of participant ids")
    return list(signers)


def _load_verifying_key(group_public_key: Union[str, Dict[str, Any]]) -> Point:
    # Either a public key package or a bare SEC 1 compressed key
    if isinstance(group_public_key, str) and not group_public_key.lstrip().startswith("{"):
        try:
            return Point.sec_deserialize(group_public_key)
        except ValueError as e:
            raise SerializationError(f"Failed to deserialize group public key: {e}") from e
    return PublicKeyPackage.from_json(group_public_key, "group public key").verifying_key


@_boundary
def create_keygen_state(threshold: int, max_participants: int) -> KeygenState:
    return KeygenCoordinator(get_random_source(), _context).create_state(
        threshold, max_participants
    )


@_boundary
def keygen_round1(state: StateInput, participant_id: str) -> List[Any]:
    keygen_state = load_state(state, KeygenState)
    new_state, package = KeygenCoordinator(get_random_source(), _context).round1(
        keygen_state, participant_id
    )
    return [new_state, _package(package)]


@_boundary
def keygen_round2(
    state: StateInput,
    participant_id: str,
    all_round1_packages: Union[str, Dict[str, Any]],
) -> List[Any]:
    keygen_state = load_state(state, KeygenState)
    new_state, key_package = KeygenCoordinator(get_random_source(), _context).round2(
        keygen_state, participant_id, all_round1_packages
    )
    return [new_state, _package(key_package)]


@_boundary
def create_signing_state(
    message: Union[bytes, str, List[int]], signers: Union[str, List[str]]
) -> SigningState:
    return SigningCoordinator(get_random_source()).create_state(
        message, _parse_signers(signers)
    )


@_boundary
def signing_round1(
    state: StateInput, participant_id: str, key_package: Union[str, Dict[str, Any]]
) -> List[Any]:
    signing_state = load_state(state, SigningState)
    new_state, commitments = SigningCoordinator(get_random_source()).round1(
        signing_state, participant_id, key_package
    )
    return [new_state, _package(commitments)]


@_boundary
def build_signing_package(state: StateInput) -> Any:
    signing_state = load_state(state, SigningState)
    return SigningCoordinator(get_random_source()).build_signing_package(signing_state)


@_boundary
def signing_round2(
    state: StateInput,
    participant_id: str,
    key_package: Union[str, Dict[str, Any]],
    signing_package: Union[str, Dict[str, Any]],
    group_public_key: Union[str, Dict[str, Any]],
) -> List[Any]:
    signing_state = load_state(state, SigningState)
    new_state, signature = SigningCoordinator(get_random_source()).round2(
        signing_state, participant_id, key_package, signing_package, group_public_key
    )
    return [new_state, signature]


@_boundary
def generate_shares(
    seed_material: Optional[str], threshold: int, max_participants: int
) -> List[Any]:
    public_key_package, shares = TrustedDealer(get_random_source()).generate_shares(
        seed_material, threshold, max_participants
    )
    return [public_key_package, shares]


@_boundary
def verify_signature(
    message: Union[bytes, str, List[int]],
    signature: str,
    group_public_key: Union[str, Dict[str, Any]],
) -> bool:
    try:
        message = parse_message(message)
    except ValueError as e:
        raise SerializationError(f"Failed to parse message: {e}") from e
    verifying_key = _load_verifying_key(group_public_key)
    try:
        return verify(message, signature, verifying_key)
    except ValueError as e:
        raise SerializationError(f"Failed to parse signature: {e}") from e


@_boundary
def ceremony_status(state: StateInput) -> Dict[str, Any]:
    return load_any_state(state).describe()
