"""
Key generation primitives for FROST (Flexible Round-Optimized Schnorr
Threshold signatures) over secp256k1.

This module provides the distributed key generation (DKG) used by the keygen
coordinator and the one-shot trusted-dealer generation. Each participant
samples a polynomial of degree t - 1, proves knowledge of its constant term,
commits to every coefficient and hands every other participant the value of
the polynomial at that participant's identifier. Summing the values received
gives each participant a share of the group secret, while summing the
constant-term commitments gives the group public key.

The functions here raise ValueError on invalid input; the coordinators map
those failures onto the ceremony error taxonomy.
"""

from hashlib import sha256
from typing import Dict, Mapping, Optional, Sequence, Tuple

from .constants import CONTEXT, MAX_PARTICIPANTS, Q
from .identifiers import identifier_bytes
from .packages import (
    KeyPackage,
    ProofOfKnowledge,
    PublicKeyPackage,
    Round1Package,
    Round1SecretPackage,
)
from .point import G, Point
from .rng import RandomSource


def validate_parameters(threshold: int, max_participants: int) -> None:
    """
    Check the (t, n) parameters of a key generation.

    Raises:
    ValueError: Unless 1 ≤ threshold ≤ max_participants ≤ MAX_PARTICIPANTS.
    """
    if not all(isinstance(arg, int) for arg in (threshold, max_participants)):
        raise ValueError("Threshold and participant count must be integers.")
    if not 1 <= threshold <= max_participants:
        raise ValueError(
            f"Threshold {threshold} must be between 1 and {max_participants}."
        )
    if max_participants > MAX_PARTICIPANTS:
        raise ValueError(f"At most {MAX_PARTICIPANTS} participants are supported.")


def evaluate_polynomial(coefficients: Sequence[int], x: int) -> int:
    """
    Evaluate the polynomial at x using Horner's method.

    Parameters:
    coefficients (Sequence[int]): Coefficients, constant term first.
    x (int): The point at which the polynomial is evaluated.

    Returns:
    int: The value of the polynomial at x, reduced modulo Q.
    """
    y = 0
    for coefficient in reversed(coefficients):
        y = (y * x + coefficient) % Q
    return y


def lagrange_coefficient(
    identifiers: Sequence[int], identifier: int, x: int = 0
) -> int:
    """
    Calculate the Lagrange coefficient of ``identifier`` relative to the
    other identifiers, evaluated at x.

    Raises:
    ValueError: If identifiers are duplicated or ``identifier`` is missing.
    """
    if len(identifiers) != len(set(identifiers)):
        raise ValueError("Participant identifiers must be unique.")
    if identifier not in identifiers:
        raise ValueError(f"Identifier {identifier} is not among the signers.")

    # λ_i(x) = ∏ (x - p_j)/(p_i - p_j), 1 ≤ j ≤ α, j ≠ i
    numerator = 1
    denominator = 1
    for other in identifiers:
        if other == identifier:
            continue
        numerator = numerator * (x - other)
        denominator = denominator * (identifier - other)
    return (numerator * pow(denominator, Q - 2, Q)) % Q


def _proof_challenge(
    identifier: int, context: bytes, secret_commitment: Point, nonce_commitment: Point
) -> int:
    # c_i = H(i, 𝚽, g^a_i_0, R_i)
    challenge_hash = sha256()
    challenge_hash.update(identifier_bytes(identifier))
    challenge_hash.update(context)
    challenge_hash.update(secret_commitment.sec_serialize())
    challenge_hash.update(nonce_commitment.sec_serialize())
    return int.from_bytes(challenge_hash.digest(), "big") % Q


def compute_proof_of_knowledge(
    identifier: int, secret: int, rng: RandomSource, context: bytes = CONTEXT
) -> ProofOfKnowledge:
    """Prove knowledge of the constant term a_i_0 of a participant's polynomial."""
    # k ⭠ ℤ_q
    nonce = rng.scalar()
    # R_i = g^k
    nonce_commitment = nonce * G
    challenge = _proof_challenge(identifier, context, secret * G, nonce_commitment)
    # μ_i = k + a_i_0 * c_i
    response = (nonce + secret * challenge) % Q
    # σ_i = (R_i, μ_i)
    return ProofOfKnowledge(commitment=nonce_commitment, response=response)


def verify_proof_of_knowledge(
    proof: ProofOfKnowledge,
    secret_commitment: Point,
    identifier: int,
    context: bytes = CONTEXT,
) -> bool:
    """
    Verify a participant's proof of knowledge of its secret.

    Parameters:
    proof (ProofOfKnowledge): Nonce commitment R_l and response μ_l.
    secret_commitment (Point): The commitment 𝜙_l_0 to the participant's secret.
    identifier (int): The participant's identifier.

    Returns:
    bool: True if the proof is valid, False otherwise.
    """
    challenge = _proof_challenge(
        identifier, context, secret_commitment, proof.commitment
    )
    # R_l ≟ g^μ_l * 𝜙_l_0^-c_l
    expected_nonce_commitment = (proof.response * G) + (
        (Q - challenge) * secret_commitment
    )
    return proof.commitment == expected_nonce_commitment


def derive_public_verification_share(
    coefficient_commitments: Sequence[Point], identifier: int
) -> Point:
    """
    Compute the public verification share of any participant from a set of
    coefficient commitments.

    Returns:
    Point: ∏ 𝜙_k^(i^k), 0 ≤ k ≤ t - 1
    """
    expected = Point()  # Point at infinity
    for k, commitment in enumerate(coefficient_commitments):
        expected += pow(identifier, k, Q) * commitment
    return expected


def verify_share(
    share: int, identifier: int, coefficient_commitments: Sequence[Point]
) -> bool:
    """Check that g^f_l(i) matches the sender's coefficient commitments."""
    return share * G == derive_public_verification_share(
        coefficient_commitments, identifier
    )


def dkg_round1(
    identifier: int,
    max_participants: int,
    threshold: int,
    rng: RandomSource,
    context: bytes = CONTEXT,
) -> Tuple[Round1SecretPackage, Round1Package]:
    """
    Run DKG round 1 for one participant.

    Generates a random polynomial of degree threshold - 1, a proof of
    knowledge of its constant term, commitments to each coefficient and the
    share f_i(j) for every other identifier j in [1, max_participants].

    Parameters:
    identifier (int): The participant's identifier.
    max_participants (int): The total number of participants n.
    threshold (int): The number of signers t needed to sign.
    rng (RandomSource): Source of the polynomial coefficients and proof nonce.

    Returns:
    Tuple[Round1SecretPackage, Round1Package]: The private polynomial to
    keep, and the package to distribute to the other participants.

    Raises:
    ValueError: If the parameters or identifier are out of range.
    """
    validate_parameters(threshold, max_participants)
    if not 1 <= identifier <= max_participants:
        raise ValueError(
            f"Identifier {identifier} must be between 1 and {max_participants}."
        )

    # (a_i_0, . . ., a_i_(t - 1)) ⭠ $ ℤ_q
    coefficients = tuple(rng.scalar() for _ in range(threshold))
    proof = compute_proof_of_knowledge(identifier, coefficients[0], rng, context)
    # 𝜙_i_j = g^a_i_j, 0 ≤ j ≤ t - 1
    commitments = tuple(coefficient * G for coefficient in coefficients)
    # (l, f_i(l)), l ≠ i
    shares = {
        other: evaluate_polynomial(coefficients, other)
        for other in range(1, max_participants + 1)
        if other != identifier
    }

    secret = Round1SecretPackage(
        identifier=identifier,
        threshold=threshold,
        max_participants=max_participants,
        coefficients=list(coefficients),
    )
    package = Round1Package(
        identifier=identifier,
        commitments=list(commitments),
        proof_of_knowledge=proof,
        shares=shares,
    )
    return secret, package


def dkg_round2(
    secret: Round1SecretPackage,
    peer_packages: Mapping[int, Round1Package],
    context: bytes = CONTEXT,
) -> Tuple[KeyPackage, PublicKeyPackage]:
    """
    Run DKG round 2 for one participant.

    Verifies every peer's proof of knowledge and the share it sent to this
    participant, then aggregates the shares into this participant's signing
    share and the commitments into the group commitments.

    Parameters:
    secret (Round1SecretPackage): This participant's round 1 polynomial.
    peer_packages (Mapping[int, Round1Package]): Round 1 packages of every
    other contributing participant, keyed by identifier.

    Returns:
    Tuple[KeyPackage, PublicKeyPackage]: This participant's key package and
    the group's public key package.

    Raises:
    ValueError: If there are too few peers, or any proof, share or
    commitment fails verification.
    """
    identifier = secret.identifier
    threshold = secret.threshold

    if len(peer_packages) + 1 < threshold:
        raise ValueError(
            f"Expected at least {threshold - 1} peer packages, received "
            f"{len(peer_packages)}."
        )
    if len(peer_packages) + 1 > secret.max_participants:
        raise ValueError(
            f"Received {len(peer_packages)} peer packages for at most "
            f"{secret.max_participants} participants."
        )

    own_commitments = tuple(coefficient * G for coefficient in secret.coefficients)
    # s_i = ∑ f_l(i), 1 ≤ l ≤ n
    aggregate_share = evaluate_polynomial(secret.coefficients, identifier)

    for peer, package in peer_packages.items():
        if peer == identifier:
            raise ValueError(f"Peer package reuses this participant's identifier {peer}.")
        if package.identifier != peer:
            raise ValueError(
                f"Package for identifier {peer} carries identifier {package.identifier}."
            )
        if len(package.commitments) != threshold:
            raise ValueError(
                f"Participant {peer} sent {len(package.commitments)} commitments, "
                f"expected {threshold}."
            )
        if not verify_proof_of_knowledge(
            package.proof_of_knowledge, package.commitments[0], peer, context
        ):
            raise ValueError(f"Invalid proof of knowledge from participant {peer}.")

        share = package.shares.get(identifier)
        if share is None:
            raise ValueError(f"Participant {peer} sent no share for identifier {identifier}.")
        # g^f_l(i) ≟ ∏ 𝜙_l_k^i^k mod q, 0 ≤ k ≤ t - 1
        if not verify_share(share, identifier, package.commitments):
            raise ValueError(
                f"Share from participant {peer} does not match its commitments."
            )
        aggregate_share = (aggregate_share + share) % Q

    group_commitments = tuple(
        sum(commitments, Point())
        for commitments in zip(
            own_commitments, *(package.commitments for package in peer_packages.values())
        )
    )
    # Y = ∏ 𝜙_j_0
    verifying_key = group_commitments[0]
    if verifying_key.is_zero():
        raise ValueError("Group public key is the point at infinity.")

    verifying_shares = {
        participant: derive_public_verification_share(group_commitments, participant)
        for participant in sorted({identifier, *peer_packages})
    }
    # Y_i = g^s_i
    if aggregate_share * G != verifying_shares[identifier]:
        raise ValueError("Aggregate share does not match the group commitments.")

    key_package = KeyPackage(
        identifier=identifier,
        signing_share=aggregate_share,
        verifying_share=verifying_shares[identifier],
        verifying_key=verifying_key,
        threshold=threshold,
    )
    public_key_package = PublicKeyPackage(
        verifying_key=verifying_key,
        verifying_shares=verifying_shares,
        threshold=threshold,
    )
    return key_package, public_key_package


def dealer_generate(
    threshold: int,
    max_participants: int,
    rng: RandomSource,
    secret: Optional[int] = None,
) -> Tuple[Dict[int, KeyPackage], PublicKeyPackage]:
    """
    Generate every participant's key package centrally.

    A single dealer samples the polynomial (using ``secret`` as its constant
    term when given) and evaluates it at identifiers 1..max_participants.

    Raises:
    ValueError: If the parameters are out of range or secret is not a
    non-zero scalar.
    """
    validate_parameters(threshold, max_participants)
    if secret is None:
        secret = rng.scalar()
    if not 0 < secret < Q:
        raise ValueError("Group secret must be a non-zero scalar below the curve order.")

    coefficients = (secret,) + tuple(rng.scalar() for _ in range(threshold - 1))
    verifying_key = secret * G

    key_packages: Dict[int, KeyPackage] = {}
    verifying_shares: Dict[int, Point] = {}
    for identifier in range(1, max_participants + 1):
        share = evaluate_polynomial(coefficients, identifier)
        verifying_shares[identifier] = share * G
        key_packages[identifier] = KeyPackage(
            identifier=identifier,
            signing_share=share,
            verifying_share=verifying_shares[identifier],
            verifying_key=verifying_key,
            threshold=threshold,
        )

    public_key_package = PublicKeyPackage(
        verifying_key=verifying_key,
        verifying_shares=verifying_shares,
        threshold=threshold,
    )
    return key_packages, public_key_package
