"""
Wire models for the opaque packages produced and consumed by the
cryptographic primitives.

The coordinators never look inside these packages; they store them as JSON
text in ceremony state and hand them back to the primitives. Scalars are
encoded as 32-byte big-endian hex and points as SEC 1 compressed hex, so
every package survives a round trip through any JSON transport.
"""

import json
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    StrictInt,
    ValidationError,
    field_validator,
)

from .constants import MAX_PARTICIPANTS, Q
from .errors import SerializationError
from .point import Point

M = TypeVar("M", bound="PackageModel")


def _parse_scalar(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("scalar must be a hex string")
    if isinstance(value, int):
        scalar = value
    elif isinstance(value, str):
        if len(value) != 64:
            raise ValueError("scalar must be 32 bytes of hex")
        scalar = int.from_bytes(bytes.fromhex(value), "big")
    else:
        raise ValueError("scalar must be a hex string")
    if not 0 <= scalar < Q:
        raise ValueError("scalar is not reduced modulo the curve order")
    return scalar


def _parse_point(value: Any) -> Point:
    if isinstance(value, Point):
        if value.is_zero():
            raise ValueError("point at infinity is not allowed")
        return value
    if not isinstance(value, str):
        raise ValueError("point must be a SEC 1 compressed hex string")
    return Point.sec_deserialize(value)


def parse_message(value: Any) -> bytes:
    """Accept raw bytes, a hex string, or a list of byte values."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return bytes.fromhex(value)
    if isinstance(value, list):
        try:
            return bytes(value)
        except TypeError as e:
            raise ValueError("message list must contain byte values") from e
    raise ValueError("message must be bytes, hex or a list of byte values")


Scalar = Annotated[
    int, PlainValidator(_parse_scalar), PlainSerializer(lambda s: f"{s:064x}", return_type=str)
]
CurvePoint = Annotated[
    Point, PlainValidator(_parse_point), PlainSerializer(lambda p: p.hex(), return_type=str)
]
Message = Annotated[
    bytes, PlainValidator(parse_message), PlainSerializer(lambda m: m.hex(), return_type=str)
]
Identifier = Annotated[StrictInt, Field(ge=1, le=MAX_PARTICIPANTS)]


def describe_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'value'}: {err['msg']}"
        for err in error.errors()
    )


def decode_package_map(data: Union[str, bytes, Dict[str, Any]], what: str) -> Dict[str, Any]:
    """
    Decode a JSON object mapping participant ids to packages.

    Raises:
    SerializationError: If the input is not such an object.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise SerializationError(f"Failed to parse {what}: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(f"Failed to parse {what}: expected a JSON object")
    return data


class PackageModel(BaseModel):
    """Base class giving every package the same JSON codec."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls: Type[M], data: Union[str, bytes, Dict[str, Any], M], what: Optional[str] = None) -> M:
        """
        Decode a package from JSON text (or an already parsed object).

        Raises:
        SerializationError: If the input does not describe a valid package.
        """
        if isinstance(data, cls):
            return data
        what = what or cls.__name__
        try:
            if isinstance(data, (str, bytes)):
                return cls.model_validate_json(data)
            return cls.model_validate(data)
        except ValidationError as e:
            raise SerializationError(
                f"Failed to deserialize {what}: {describe_validation_error(e)}"
            ) from e


class ProofOfKnowledge(PackageModel):
    # σ_i = (R_i, μ_i)
    commitment: CurvePoint
    response: Scalar


class Round1SecretPackage(PackageModel):
    """A participant's private DKG polynomial. Never leaves the ceremony state."""

    identifier: Identifier
    threshold: int
    max_participants: int
    coefficients: List[Scalar]


class Round1Package(PackageModel):
    """
    The broadcast half of DKG round 1: coefficient commitments, the proof of
    knowledge of the constant term, and the secret share f_i(j) for every
    other identifier j. The transport must deliver each share to its
    recipient confidentially.
    """

    identifier: Identifier
    commitments: List[CurvePoint]
    proof_of_knowledge: ProofOfKnowledge
    shares: Dict[int, Scalar]


class Round1Bundle(PackageModel):
    """What the keygen state keeps per participant after round 1."""

    secret: Round1SecretPackage
    package: Round1Package


class KeyPackage(PackageModel):
    """A participant's long-lived signing material."""

    identifier: Identifier
    signing_share: Scalar
    verifying_share: CurvePoint
    verifying_key: CurvePoint
    threshold: int


class PublicKeyPackage(PackageModel):
    """The group public key together with every participant's verifying share."""

    verifying_key: CurvePoint
    verifying_shares: Dict[int, CurvePoint]
    threshold: int


class SigningNonces(PackageModel):
    # (d_i, e_i)
    hiding: Scalar
    binding: Scalar


class SigningCommitments(PackageModel):
    # (i, D_i, E_i)
    identifier: Identifier
    hiding: CurvePoint
    binding: CurvePoint


class SigningRound1Bundle(PackageModel):
    """Nonces are cleared once they have been used to sign."""

    nonces: Optional[SigningNonces] = None
    commitments: SigningCommitments


class SigningPackage(PackageModel):
    """The message together with the commitments of every signer, keyed by participant id."""

    message: Message
    commitments: Dict[str, SigningCommitments]

    @field_validator("commitments", mode="before")
    @classmethod
    def _decode_nested(cls, value: Any) -> Any:
        # Commitments may arrive as the JSON text returned by signing round 1.
        if isinstance(value, dict):
            return {
                key: json.loads(item) if isinstance(item, str) else item
                for key, item in value.items()
            }
        return value

    def commitments_by_identifier(self) -> Dict[int, SigningCommitments]:
        """
        Index the commitments by identifier.

        Raises:
        ValueError: If two participants claim the same identifier.
        """
        indexed: Dict[int, SigningCommitments] = {}
        for participant_id, commitments in self.commitments.items():
            if commitments.identifier in indexed:
                raise ValueError(
                    f"Identifier {commitments.identifier} is claimed twice "
                    f"(again by {participant_id})."
                )
            indexed[commitments.identifier] = commitments
        return dict(sorted(indexed.items()))


class SignatureShare(PackageModel):
    # z_i
    identifier: Identifier
    share: Scalar
