import unittest

from frost_ceremony import (
    G,
    InsufficientParticipants,
    KeygenError,
    Q,
    SeededRandomSource,
    SerializationError,
    TrustedDealer,
)
from frost_ceremony.dkg import lagrange_coefficient


class Tests(unittest.TestCase):
    def setUp(self):
        self.dealer = TrustedDealer(SeededRandomSource(3))

    def test_generate_shares(self):
        public_key_package, shares = self.dealer.generate_shares("", 2, 3)

        self.assertEqual(sorted(shares), ["participant_1", "participant_2", "participant_3"])
        for name, key_package in shares.items():
            self.assertEqual(name, f"participant_{key_package.identifier}")
            self.assertEqual(key_package.verifying_key, public_key_package.verifying_key)
            self.assertEqual(key_package.signing_share * G, key_package.verifying_share)
            self.assertEqual(
                public_key_package.verifying_shares[key_package.identifier],
                key_package.verifying_share,
            )

    def test_seed_material_is_the_group_secret(self):
        secret = 0x1234
        public_key_package, shares = self.dealer.generate_shares(f"{secret:064x}", 2, 3)
        self.assertEqual(public_key_package.verifying_key, secret * G)

        s2 = shares["participant_2"].signing_share
        s3 = shares["participant_3"].signing_share
        self.assertEqual(
            (s2 * lagrange_coefficient((2, 3), 2) + s3 * lagrange_coefficient((2, 3), 3)) % Q,
            secret,
        )

    def test_random_secrets_differ(self):
        first, _ = self.dealer.generate_shares(None, 2, 3)
        second, _ = self.dealer.generate_shares(None, 2, 3)
        self.assertNotEqual(first.verifying_key, second.verifying_key)

    def test_invalid_counts(self):
        with self.assertRaises(InsufficientParticipants):
            self.dealer.generate_shares(None, 0, 3)
        with self.assertRaises(InsufficientParticipants):
            self.dealer.generate_shares(None, 4, 3)
        with self.assertRaises(SerializationError):
            self.dealer.generate_shares(None, 2, 70000)

    def test_invalid_seed_material(self):
        with self.assertRaises(SerializationError):
            self.dealer.generate_shares("not hex", 2, 3)
        with self.assertRaises(SerializationError):
            self.dealer.generate_shares("00" * 16, 2, 3)
        with self.assertRaises(KeygenError):
            self.dealer.generate_shares("00" * 32, 2, 3)
        with self.assertRaises(KeygenError):
            self.dealer.generate_shares("ff" * 32, 2, 3)


if __name__ == "__main__":
    unittest.main()
