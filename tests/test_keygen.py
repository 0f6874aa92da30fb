import json
import unittest

from frost_ceremony import (
    CeremonyStatus,
    InsufficientParticipants,
    InvalidParticipant,
    InvalidStateTransition,
    KeygenCoordinator,
    KeygenError,
    SeededRandomSource,
    SerializationError,
)
from frost_ceremony.dkg import dkg_round1
from frost_ceremony.packages import KeyPackage, PublicKeyPackage, Round1Package


class Tests(unittest.TestCase):
    def setUp(self):
        self.coordinator = KeygenCoordinator(SeededRandomSource(7))

    def _round1(self, state, participants):
        packages = {}
        for participant in participants:
            state, packages[participant] = self.coordinator.round1(state, participant)
        return state, packages

    def test_create_state(self):
        state = self.coordinator.create_state(2, 3)
        self.assertEqual(state.current_round, 1)
        self.assertEqual(state.status, CeremonyStatus.CREATED)
        self.assertEqual(state.round1_packages, {})
        self.assertIsNone(state.group_public_key)

    def test_create_state_invalid_threshold(self):
        for threshold, participants in ((0, 3), (4, 3)):
            with self.assertRaises(InsufficientParticipants) as raised:
                self.coordinator.create_state(threshold, participants)
            self.assertEqual(raised.exception.required, threshold)
            self.assertEqual(raised.exception.actual, participants)

    def test_create_state_invalid_counts(self):
        for threshold, participants in ((-1, 3), (2, 65536), ("2", 3), (2, 3.0), (True, 3)):
            with self.assertRaises(SerializationError):
                self.coordinator.create_state(threshold, participants)

    def test_round1_assigns_identifiers(self):
        state = self.coordinator.create_state(2, 3)
        state, first = self.coordinator.round1(state, "alice")

        self.assertEqual(state.current_round, 1)
        self.assertEqual(state.status, CeremonyStatus.ROUND_1)
        self.assertEqual(state.identifiers, {"alice": 1})
        self.assertEqual(Round1Package.from_json(first).identifier, 1)

        state, second = self.coordinator.round1(state, "bob")
        self.assertEqual(state.current_round, 2)
        self.assertEqual(state.identifiers, {"alice": 1, "bob": 2})
        self.assertEqual(Round1Package.from_json(second).identifier, 2)

    def test_round1_resubmission_keeps_identifier(self):
        state = self.coordinator.create_state(3, 3)
        state, _ = self.coordinator.round1(state, "alice")
        state, _ = self.coordinator.round1(state, "bob")
        alice_before = state.round1_packages["alice"]
        bob_before = state.round1_packages["bob"]

        state, package = self.coordinator.round1(state, "alice")

        self.assertEqual(state.identifiers, {"alice": 1, "bob": 2})
        self.assertEqual(len(state.round1_packages), 2)
        self.assertEqual(state.current_round, 1)
        self.assertEqual(state.round1_packages["bob"], bob_before)
        self.assertNotEqual(state.round1_packages["alice"], alice_before)
        self.assertEqual(Round1Package.from_json(package).identifier, 1)

    def test_round1_is_transactional(self):
        state = self.coordinator.create_state(2, 3)
        new_state, _ = self.coordinator.round1(state, "alice")

        self.assertEqual(state.round1_packages, {})
        self.assertEqual(state.identifiers, {})
        self.assertIn("alice", new_state.round1_packages)

    def test_round1_after_quorum(self):
        state = self.coordinator.create_state(2, 3)
        state, _ = self._round1(state, ("alice", "bob"))

        with self.assertRaisesRegex(InvalidStateTransition, "Expected round 1, got round 2"):
            self.coordinator.round1(state, "carol")

    def test_round1_invalid_participant_id(self):
        state = self.coordinator.create_state(2, 3)
        with self.assertRaises(InvalidParticipant):
            self.coordinator.round1(state, "")

    def test_full_keygen(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))

        state, alice_key = self.coordinator.round2(state, "alice", json.dumps(packages))
        self.assertIsNone(state.group_public_key)
        self.assertEqual(state.status, CeremonyStatus.ROUND_2)

        state, bob_key = self.coordinator.round2(state, "bob", packages)
        self.assertTrue(state.is_complete)
        self.assertEqual(state.status, CeremonyStatus.COMPLETE)

        alice_key = KeyPackage.from_json(alice_key)
        bob_key = KeyPackage.from_json(bob_key)
        group = PublicKeyPackage.from_json(state.group_public_key)

        self.assertEqual(alice_key.identifier, 1)
        self.assertEqual(bob_key.identifier, 2)
        self.assertEqual(alice_key.verifying_key, bob_key.verifying_key)
        self.assertEqual(group.verifying_key, alice_key.verifying_key)
        self.assertEqual(group.verifying_shares[1], alice_key.verifying_share)
        self.assertEqual(group.verifying_shares[2], bob_key.verifying_share)

    def test_round2_in_round1(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self.coordinator.round1(state, "alice")

        with self.assertRaisesRegex(InvalidStateTransition, "Expected round 2, got round 1"):
            self.coordinator.round2(state, "alice", {})

    def test_round2_unknown_participant(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))

        with self.assertRaisesRegex(InvalidParticipant, "carol not found in round 1"):
            self.coordinator.round2(state, "carol", packages)

    def test_round2_unregistered_participant(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))
        _, outsider = dkg_round1(3, 3, 2, SeededRandomSource(8))
        packages["mallory"] = outsider.to_json()

        with self.assertRaisesRegex(InvalidParticipant, "mallory did not take part in round 1"):
            self.coordinator.round2(state, "alice", packages)

        # the honest packages still complete the ceremony
        del packages["mallory"]
        state, _ = self.coordinator.round2(state, "alice", packages)
        state, _ = self.coordinator.round2(state, "bob", packages)
        self.assertTrue(state.is_complete)

    def test_round2_undecodable_package(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))
        packages["bob"] = "not a package"

        with self.assertRaises(SerializationError):
            self.coordinator.round2(state, "alice", packages)
        with self.assertRaises(SerializationError):
            self.coordinator.round2(state, "alice", "[not json")

    def test_round2_missing_peers(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))

        with self.assertRaises(KeygenError):
            self.coordinator.round2(state, "alice", {"alice": packages["alice"]})

    def test_round2_identifier_mismatch(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))

        # bob's package relabelled as someone else's
        with self.assertRaises(InvalidParticipant):
            self.coordinator.round2(state, "bob", {"alice": packages["bob"]})

    def test_round2_tampered_package(self):
        state = self.coordinator.create_state(2, 3)
        state, packages = self._round1(state, ("alice", "bob"))

        bob = json.loads(packages["bob"])
        bob["shares"]["1"] = "00" * 31 + "01"
        packages["bob"] = json.dumps(bob)

        with self.assertRaisesRegex(KeygenError, "DKG round 2 failed"):
            self.coordinator.round2(state, "alice", packages)

    def test_describe(self):
        state = self.coordinator.create_state(2, 3)
        state, _ = self.coordinator.round1(state, "alice")

        self.assertEqual(
            state.describe(),
            {
                "ceremony": "keygen",
                "status": "round_1",
                "current_round": 1,
                "submitted": 1,
                "required": 2,
            },
        )


if __name__ == "__main__":
    unittest.main()
