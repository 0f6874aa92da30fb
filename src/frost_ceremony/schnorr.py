"""
Signing primitives for FROST producing BIP340 Schnorr signatures.

Signing takes two rounds. In the first each signer commits to a fresh pair of
nonces (D_i, E_i). In the second each signer receives the signing package
(the message plus every signer's commitments), computes its binding value and
the group commitment R, and returns its signature share z_i. The aggregator
checks every share against the signer's verifying share and sums them into
the signature σ = (R, z).

Since BIP340 public keys and nonces are x-only, signers negate their nonces
when R has an odd y-coordinate and their signing share when the group public
key does.
"""

from hashlib import sha256
from typing import Dict, Mapping, Tuple

from .constants import CHALLENGE_TAG, BINDING_TAG, NONCE_TAG, P, Q
from .dkg import lagrange_coefficient
from .identifiers import identifier_bytes
from .packages import (
    KeyPackage,
    PublicKeyPackage,
    SignatureShare,
    SigningCommitments,
    SigningNonces,
    SigningPackage,
)
from .point import G, Point
from .rng import RandomSource


class InvalidShareError(ValueError):
    """A signature share failed verification against its verifying share."""

    def __init__(self, identifier: int):
        self.identifier = identifier
        super().__init__(f"Invalid signature share from participant {identifier}.")


def tagged_hash(tag: bytes, *parts: bytes) -> bytes:
    tag_hash = sha256(tag).digest()
    digest = sha256()
    digest.update(tag_hash)
    digest.update(tag_hash)
    for part in parts:
        digest.update(part)
    return digest.digest()


def _generate_nonce(secret: int, rng: RandomSource) -> int:
    # Hedged: fresh randomness mixed with the signing share, so a weak
    # source alone cannot repeat a nonce for the same share.
    secret_bytes = secret.to_bytes(32, "big")
    while True:
        nonce = (
            int.from_bytes(tagged_hash(NONCE_TAG, rng.token_bytes(32), secret_bytes), "big")
            % Q
        )
        if nonce:
            return nonce


def nonce_commit(
    signing_share: int, rng: RandomSource, identifier: int
) -> Tuple[SigningNonces, SigningCommitments]:
    """
    Generate a nonce pair and its commitments for one signing ceremony.

    Parameters:
    signing_share (int): The signer's secret share s_i.
    rng (RandomSource): Source of fresh randomness.
    identifier (int): The signer's identifier, stamped on the commitments.

    Returns:
    Tuple[SigningNonces, SigningCommitments]: The secret nonces, which must
    be used at most once, and the public commitments.
    """
    # (d_i, e_i) ⭠ $ ℤ*_q x ℤ*_q
    hiding = _generate_nonce(signing_share, rng)
    binding = _generate_nonce(signing_share, rng)
    # (D_i, E_i) = (g^d_i, g^e_i)
    nonces = SigningNonces(hiding=hiding, binding=binding)
    commitments = SigningCommitments(
        identifier=identifier, hiding=hiding * G, binding=binding * G
    )
    return nonces, commitments


def _encode_commitment_list(commitments: Mapping[int, SigningCommitments]) -> bytes:
    # B = ⟨(i, D_i, E_i)⟩_i∈S
    return b"".join(
        identifier_bytes(identifier)
        + commitment.hiding.sec_serialize()
        + commitment.binding.sec_serialize()
        for identifier, commitment in sorted(commitments.items())
    )


def binding_value(
    identifier: int, message: bytes, commitments: Mapping[int, SigningCommitments]
) -> int:
    """
    Compute the binding value p_l = H_1(l, m, B) tying a signer's second
    nonce to this message and this set of commitments.
    """
    digest = tagged_hash(
        BINDING_TAG,
        identifier_bytes(identifier),
        sha256(message).digest(),
        _encode_commitment_list(commitments),
    )
    return int.from_bytes(digest, "big") % Q


def group_commitment(
    message: bytes, commitments: Mapping[int, SigningCommitments]
) -> Point:
    """Compute R = ∏ D_l * (E_l)^p_l, l ∈ S."""
    commitment = Point()  # Point at infinity
    for identifier, signer_commitments in commitments.items():
        rho = binding_value(identifier, message, commitments)
        commitment += signer_commitments.hiding + (rho * signer_commitments.binding)
    return commitment


def challenge_hash(nonce_commitment: Point, public_key: Point, message: bytes) -> int:
    """Compute the BIP340 challenge c = H_2(R, Y, m)."""
    digest = tagged_hash(
        CHALLENGE_TAG,
        nonce_commitment.xonly_serialize(),
        public_key.xonly_serialize(),
        message,
    )
    return int.from_bytes(digest, "big") % Q


def _signing_context(
    signing_package: SigningPackage, verifying_key: Point
) -> Tuple[Dict[int, SigningCommitments], Point, int]:
    commitments = signing_package.commitments_by_identifier()
    # R
    commitment = group_commitment(signing_package.message, commitments)
    if commitment.is_zero():
        raise ValueError("Group commitment is the point at infinity.")
    # c = H_2(R, Y, m)
    challenge = challenge_hash(commitment, verifying_key, signing_package.message)
    return commitments, commitment, challenge


def sign_share(
    signing_package: SigningPackage, nonces: SigningNonces, key_package: KeyPackage
) -> SignatureShare:
    """
    Generate a signer's signature share.

    Parameters:
    signing_package (SigningPackage): The message and every signer's commitments.
    nonces (SigningNonces): This signer's nonces from round 1.
    key_package (KeyPackage): This signer's key package.

    Returns:
    SignatureShare: z_i = d_i + (e_i * p_i) + λ_i * s_i * c

    Raises:
    ValueError: If this signer's commitments are missing or do not match its
    nonces, or there are fewer signers than the threshold.
    """
    identifier = key_package.identifier
    commitments, commitment, challenge = _signing_context(
        signing_package, key_package.verifying_key
    )

    own_commitments = commitments.get(identifier)
    if own_commitments is None:
        raise ValueError(f"Signing package has no commitments from identifier {identifier}.")
    if (
        own_commitments.hiding != nonces.hiding * G
        or own_commitments.binding != nonces.binding * G
    ):
        raise ValueError("Nonces do not match the commitments in the signing package.")
    if len(commitments) < key_package.threshold:
        raise ValueError(
            f"Not enough signers: need {key_package.threshold}, got {len(commitments)}"
        )

    # d_i, e_i
    first_nonce, second_nonce = nonces.hiding, nonces.binding
    # Negate d_i and e_i if R is odd
    if not commitment.has_even_y():
        first_nonce = Q - first_nonce
        second_nonce = Q - second_nonce

    # p_i = H_1(i, m, B), i ∈ S
    rho = binding_value(identifier, signing_package.message, commitments)
    # λ_i
    lagrange = lagrange_coefficient(tuple(commitments), identifier)
    # s_i, negated if Y is odd
    signing_share = key_package.signing_share
    if not key_package.verifying_key.has_even_y():
        signing_share = Q - signing_share

    share = (
        first_nonce + (second_nonce * rho) + lagrange * signing_share * challenge
    ) % Q
    return SignatureShare(identifier=identifier, share=share)


def aggregate(
    signing_package: SigningPackage,
    signature_shares: Mapping[int, SignatureShare],
    public_key_package: PublicKeyPackage,
) -> str:
    """
    Verify every signature share and combine them into the final signature.

    Parameters:
    signing_package (SigningPackage): The package every signer signed.
    signature_shares (Mapping[int, SignatureShare]): Shares keyed by identifier.
    public_key_package (PublicKeyPackage): The group public key and verifying shares.

    Returns:
    str: The 64-byte BIP340 signature (R, z) in hexadecimal format.

    Raises:
    InvalidShareError: If a share does not verify.
    ValueError: If the shares do not correspond to the committed signers.
    """
    verifying_key = public_key_package.verifying_key
    commitments, commitment, challenge = _signing_context(signing_package, verifying_key)

    if set(signature_shares) != set(commitments):
        raise ValueError(
            f"Signature shares from {sorted(signature_shares)} do not match "
            f"commitments from {sorted(commitments)}."
        )

    identifiers = tuple(commitments)
    z = 0
    for identifier, signature_share in sorted(signature_shares.items()):
        if signature_share.identifier != identifier:
            raise ValueError(
                f"Share keyed by {identifier} carries identifier {signature_share.identifier}."
            )
        verifying_share = public_key_package.verifying_shares.get(identifier)
        if verifying_share is None:
            raise ValueError(f"No verifying share for identifier {identifier}.")

        # R_i = D_i * (E_i)^p_i, negated with R
        rho = binding_value(identifier, signing_package.message, commitments)
        signer_commitment = commitments[identifier].hiding + (
            rho * commitments[identifier].binding
        )
        if not commitment.has_even_y():
            signer_commitment = -signer_commitment
        # Y_i, negated with Y
        if not verifying_key.has_even_y():
            verifying_share = -verifying_share

        lagrange = lagrange_coefficient(identifiers, identifier)
        # g^z_i ≟ R_i * Y_i^(c * λ_i)
        if signature_share.share * G != signer_commitment + (
            (challenge * lagrange) % Q
        ) * verifying_share:
            raise InvalidShareError(identifier)
        z = (z + signature_share.share) % Q

    # σ = (R, z)
    return (commitment.xonly_serialize() + z.to_bytes(32, "big")).hex()


def verify(message: bytes, signature: str, verifying_key: Point) -> bool:
    """
    Verify a BIP340 signature against the group public key.

    Raises:
    ValueError: If the signature is not 64 bytes of hex.
    """
    try:
        signature_bytes = bytes.fromhex(signature)
    except (TypeError, ValueError) as e:
        raise ValueError("Signature must be a hex string.") from e
    if len(signature_bytes) != 64:
        raise ValueError("Signature must be exactly 64 bytes long.")

    r = int.from_bytes(signature_bytes[0:32], "big")
    z = int.from_bytes(signature_bytes[32:64], "big")
    if r >= P or z >= Q or verifying_key.is_zero():
        return False

    try:
        nonce_commitment = Point.lift_x(r)
    except ValueError:
        return False
    public_key = Point.lift_x(verifying_key.x)

    challenge = challenge_hash(nonce_commitment, public_key, message)
    # R ≟ g^z * Y^-c
    expected = (z * G) + ((Q - challenge) * public_key)
    return not expected.is_zero() and expected.has_even_y() and expected.x == r
