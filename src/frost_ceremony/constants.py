"""
Constants shared by the ceremony coordinators and the cryptographic
primitives: the secp256k1 domain parameters, the domain-separation tags used
when hashing, and the limits on identifiers and round numbers.
"""

# secp256k1 constants for elliptic curve cryptography

# The prime modulus of the field
P: int = 2**256 - 2**32 - 977

# The order of the curve
Q: int = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# X-coordinate of the generator point G
G_x: int = 0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798

# Y-coordinate of the generator point G
G_y: int = 0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8

# Proof-of-knowledge context for distributed key generation
CONTEXT: bytes = b"FROST-BIP340"

# Tagged-hash labels
CHALLENGE_TAG: bytes = b"BIP0340/challenge"
BINDING_TAG: bytes = b"FROST-BIP340/binding"
NONCE_TAG: bytes = b"FROST-BIP340/nonce"

# Identifiers are encoded as two big-endian bytes when hashed
IDENTIFIER_BYTES: int = 2
MAX_PARTICIPANTS: int = 2 ** (8 * IDENTIFIER_BYTES) - 1

ROUND_ONE: int = 1
ROUND_TWO: int = 2
