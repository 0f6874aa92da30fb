import json
import unittest

from frost_ceremony import (
    CeremonyStatus,
    InsufficientParticipants,
    InvalidParticipant,
    InvalidStateTransition,
    Q,
    SeededRandomSource,
    SerializationError,
    SigningCoordinator,
    SigningError,
    TrustedDealer,
)
from frost_ceremony.packages import SignatureShare, SigningCommitments
from frost_ceremony.schnorr import verify


class Tests(unittest.TestCase):
    def setUp(self):
        rng = SeededRandomSource(11)
        self.public_key_package, key_packages = TrustedDealer(rng).generate_shares(None, 2, 3)
        self.key_packages = {name: kp.to_json() for name, kp in key_packages.items()}
        self.group_public_key = self.public_key_package.to_json()
        self.coordinator = SigningCoordinator(rng)
        self.signers = ["participant_1", "participant_2"]

    def _round1(self, state, signers=None):
        commitments = {}
        for signer in signers or self.signers:
            state, commitments[signer] = self.coordinator.round1(
                state, signer, self.key_packages[signer]
            )
        return state, commitments

    def _round2(self, state, signer, signing_package):
        return self.coordinator.round2(
            state, signer, self.key_packages[signer], signing_package, self.group_public_key
        )

    def test_full_signing(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        self.assertEqual(state.status, CeremonyStatus.CREATED)

        state, commitments = self._round1(state)
        self.assertEqual(state.current_round, 2)
        self.assertEqual(state.identifiers, {"participant_1": 1, "participant_2": 2})
        self.assertEqual(SigningCommitments.from_json(commitments["participant_2"]).identifier, 2)

        signing_package = self.coordinator.build_signing_package(state)
        self.assertEqual(signing_package.message, b"fnord!")
        self.assertEqual(list(signing_package.commitments), self.signers)

        state, signature = self._round2(state, "participant_1", signing_package)
        self.assertIsNone(signature)
        self.assertEqual(state.status, CeremonyStatus.ROUND_2)

        state, signature = self._round2(state, "participant_2", signing_package)
        self.assertEqual(state.status, CeremonyStatus.COMPLETE)
        self.assertEqual(state.final_signature, signature)
        self.assertEqual(len(bytes.fromhex(signature)), 64)
        self.assertTrue(verify(b"fnord!", signature, self.public_key_package.verifying_key))
        self.assertFalse(verify(b"fnord?", signature, self.public_key_package.verifying_key))

    def test_caller_built_signing_package(self):
        signers = ["participant_3", "participant_1"]
        state = self.coordinator.create_state("deadbeef", signers)
        state, commitments = self._round1(state, signers)
        signing_package = {"message": "deadbeef", "commitments": commitments}

        state, _ = self._round2(state, "participant_3", signing_package)
        state, signature = self._round2(state, "participant_1", signing_package)

        self.assertTrue(
            verify(bytes.fromhex("deadbeef"), signature, self.public_key_package.verifying_key)
        )

    def test_create_state_without_signers(self):
        with self.assertRaises(InsufficientParticipants) as raised:
            self.coordinator.create_state(b"fnord!", [])
        self.assertEqual(raised.exception.required, 1)
        self.assertEqual(raised.exception.actual, 0)

    def test_create_state_duplicate_signers(self):
        with self.assertRaises(InvalidParticipant):
            self.coordinator.create_state(b"fnord!", ["participant_1", "participant_1"])

    def test_create_state_invalid_message(self):
        with self.assertRaises(SerializationError):
            self.coordinator.create_state("not hex", self.signers)

    def test_round1_non_signer(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        with self.assertRaisesRegex(InvalidParticipant, "participant_3 is not a signer"):
            self.coordinator.round1(state, "participant_3", self.key_packages["participant_3"])

    def test_round1_shared_key_package(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self.coordinator.round1(
            state, "participant_1", self.key_packages["participant_1"]
        )
        with self.assertRaises(InvalidParticipant):
            self.coordinator.round1(state, "participant_2", self.key_packages["participant_1"])

    def test_round1_undecodable_key_package(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        with self.assertRaises(SerializationError):
            self.coordinator.round1(state, "participant_1", "{}")

    def test_round1_after_quorum(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)

        with self.assertRaises(InvalidStateTransition):
            self.coordinator.round1(state, "participant_1", self.key_packages["participant_1"])

    def test_round2_in_round1(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state, ["participant_1"])

        with self.assertRaises(InvalidStateTransition):
            self.coordinator.build_signing_package(state)
        with self.assertRaisesRegex(InvalidStateTransition, "Expected round 2, got round 1"):
            self._round2(state, "participant_1", {})

    def test_round2_unknown_participant(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)
        signing_package = self.coordinator.build_signing_package(state)

        with self.assertRaisesRegex(InvalidParticipant, "participant_3 not found in round 1"):
            self._round2(state, "participant_3", signing_package)

    def test_round2_wrong_key_package(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)
        signing_package = self.coordinator.build_signing_package(state)

        with self.assertRaises(InvalidParticipant):
            self.coordinator.round2(
                state,
                "participant_1",
                self.key_packages["participant_2"],
                signing_package,
                self.group_public_key,
            )

    def test_round2_wrong_message(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, commitments = self._round1(state)

        with self.assertRaises(SigningError):
            self._round2(
                state, "participant_1", {"message": "00", "commitments": commitments}
            )

    def test_nonce_reuse(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)
        signing_package = self.coordinator.build_signing_package(state)

        state, _ = self._round2(state, "participant_1", signing_package)
        with self.assertRaisesRegex(SigningError, "already been used"):
            self._round2(state, "participant_1", signing_package)

    def test_altered_signature_share(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)
        signing_package = self.coordinator.build_signing_package(state)
        state, _ = self._round2(state, "participant_1", signing_package)

        share = SignatureShare.from_json(state.signature_shares["participant_1"])
        state.signature_shares["participant_1"] = share.model_copy(
            update={"share": (share.share + 1) % Q}
        ).to_json()

        with self.assertRaisesRegex(SigningError, "participant_1 \\(identifier 1\\)"):
            self._round2(state, "participant_2", signing_package)
        self.assertIsNone(state.final_signature)
        self.assertNotIn("participant_2", state.signature_shares)

    def test_round1_resubmission(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, first = self.coordinator.round1(
            state, "participant_1", self.key_packages["participant_1"]
        )
        state, second = self.coordinator.round1(
            state, "participant_1", self.key_packages["participant_1"]
        )

        self.assertNotEqual(first, second)
        self.assertEqual(state.current_round, 1)
        self.assertEqual(state.identifiers, {"participant_1": 1})
        self.assertEqual(len(state.round1_packages), 1)

        state, _ = self.coordinator.round1(
            state, "participant_2", self.key_packages["participant_2"]
        )
        signing_package = self.coordinator.build_signing_package(state)
        self.assertEqual(
            signing_package.commitments["participant_1"],
            SigningCommitments.from_json(second),
        )

        state, _ = self._round2(state, "participant_1", signing_package)
        state, signature = self._round2(state, "participant_2", signing_package)
        self.assertTrue(verify(b"fnord!", signature, self.public_key_package.verifying_key))

    def test_round2_wrong_group_public_key(self):
        other_public_key_package, _ = TrustedDealer(SeededRandomSource(12)).generate_shares(
            None, 2, 3
        )
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)
        signing_package = self.coordinator.build_signing_package(state)
        state, _ = self._round2(state, "participant_1", signing_package)

        with self.assertRaises(SigningError):
            self.coordinator.round2(
                state,
                "participant_2",
                self.key_packages["participant_2"],
                signing_package,
                other_public_key_package.to_json(),
            )
        self.assertIsNone(state.final_signature)
        self.assertEqual(list(state.signature_shares), ["participant_1"])

        state, signature = self._round2(state, "participant_2", signing_package)
        self.assertIsNotNone(signature)

    def test_key_package_identifier_must_be_an_integer(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        key_package = json.loads(self.key_packages["participant_1"])

        for identifier in ("1", 1.0):
            key_package["identifier"] = identifier
            with self.assertRaises(SerializationError):
                self.coordinator.round1(state, "participant_1", json.dumps(key_package))

    def test_describe(self):
        state = self.coordinator.create_state(b"fnord!", self.signers)
        state, _ = self._round1(state)

        self.assertEqual(
            state.describe(),
            {
                "ceremony": "signing",
                "status": "round_2",
                "current_round": 2,
                "submitted": 0,
                "required": 2,
            },
        )


if __name__ == "__main__":
    unittest.main()
