"""Tests for Note, NoteRegistry, VaultStore and serialization."""

import json

import pytest

from notevault.constants import U64_MAX
from notevault.ledger import (
    CorruptVaultState,
    InsufficientLocked,
    InvalidAmount,
    InvalidCommitment,
    InvariantViolation,
    LockedOverflow,
    Note,
    NoteAlreadySpent,
    NoteNotFound,
    NoteRegistry,
    NotNoteOwner,
    VaultStore,
)


# ---------------------------------------------------------------------------
# Note
# ---------------------------------------------------------------------------


class TestNote:
    def test_defaults_unspent(self) -> None:
        n = Note(id=0, owner="alice", commitment=b"c1", amount=100)
        assert n.spent is False

    def test_is_immutable(self) -> None:
        n = Note(id=0, owner="alice", commitment=b"c1", amount=100)
        with pytest.raises(AttributeError):
            n.amount = 5  # type: ignore[misc]

    def test_metadata(self) -> None:
        n = Note(id=3, owner="bob", commitment=b"", amount=7, spent=True)
        assert n.metadata() == ("bob", 7, True)

    def test_to_dict_hex_commitment(self) -> None:
        n = Note(id=1, owner="alice", commitment=b"\x01\xff", amount=9)
        assert n.to_dict() == {
            "id": 1,
            "owner": "alice",
            "commitment": "01ff",
            "amount": 9,
            "spent": False,
        }

    def test_from_dict(self) -> None:
        n = Note.from_dict(
            {"id": 2, "owner": "a", "commitment": "6331", "amount": 50, "spent": True}
        )
        assert n == Note(id=2, owner="a", commitment=b"c1", amount=50, spent=True)

    def test_from_dict_missing_owner(self) -> None:
        with pytest.raises(CorruptVaultState):
            Note.from_dict({"id": 0, "amount": 1, "spent": False})

    def test_from_dict_bad_hex(self) -> None:
        with pytest.raises(CorruptVaultState):
            Note.from_dict(
                {"id": 0, "owner": "a", "commitment": "zz", "amount": 1, "spent": False}
            )

    def test_from_dict_negative_amount(self) -> None:
        with pytest.raises(CorruptVaultState):
            Note.from_dict(
                {"id": 0, "owner": "a", "commitment": "", "amount": -1, "spent": False}
            )


# ---------------------------------------------------------------------------
# NoteRegistry
# ---------------------------------------------------------------------------


class TestNoteRegistry:
    def test_create_assigns_sequential_ids(self) -> None:
        reg = NoteRegistry()
        a = reg.create("alice", b"c1", 10)
        b = reg.create("bob", b"c2", 20)
        assert (a.id, b.id) == (0, 1)
        assert reg.next_note_id == 2
        assert reg.count() == 2

    def test_find(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"c1", 10)
        note = reg.create("bob", b"c2", 20)
        assert reg.find(1) == note

    def test_find_unknown_raises(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"c1", 10)
        with pytest.raises(NoteNotFound) as exc_info:
            reg.find(1)
        assert exc_info.value.note_id == 1
        assert exc_info.value.code == "note_not_found"

    def test_only_int_ids_resolve(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"", 1)
        reg.create("bob", b"", 2)
        for bad in (True, 1.0, -1, 2**64, "1", None):
            with pytest.raises(NoteNotFound):
                reg.find(bad)
            assert bad not in reg

    def test_mark_spent_rejects_bool_id(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"", 1)
        reg.create("bob", b"", 2)
        with pytest.raises(NoteNotFound):
            reg.mark_spent(True)
        assert reg.find(1).spent is False

    def test_mark_spent_keeps_record(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"c1", 10)
        spent = reg.mark_spent(0)
        assert spent.spent is True
        assert reg.find(0).spent is True
        assert reg.find(0).commitment == b"c1"
        assert reg.count() == 1

    def test_mark_spent_twice_raises(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"c1", 10)
        reg.mark_spent(0)
        with pytest.raises(NoteAlreadySpent):
            reg.mark_spent(0)

    def test_unspent_iterates_in_id_order(self) -> None:
        reg = NoteRegistry()
        for amount in (1, 2, 3):
            reg.create("alice", b"", amount)
        reg.mark_spent(1)
        assert [n.id for n in reg.unspent()] == [0, 2]
        assert [n.id for n in reg] == [0, 1, 2]

    def test_contains(self) -> None:
        reg = NoteRegistry()
        reg.create("alice", b"", 1)
        assert 0 in reg
        assert 1 not in reg

    def test_load_rejects_duplicate_ids(self) -> None:
        n = Note(id=0, owner="a", commitment=b"", amount=1)
        with pytest.raises(CorruptVaultState):
            NoteRegistry([n, n], next_note_id=1)

    def test_load_rejects_id_at_or_above_counter(self) -> None:
        n = Note(id=5, owner="a", commitment=b"", amount=1)
        with pytest.raises(CorruptVaultState):
            NoteRegistry([n], next_note_id=5)

    def test_create_after_load_continues_counter(self) -> None:
        n = Note(id=0, owner="a", commitment=b"", amount=1)
        reg = NoteRegistry([n], next_note_id=4)
        assert reg.create("b", b"", 2).id == 4


# ---------------------------------------------------------------------------
# VaultStore — deposit / withdraw
# ---------------------------------------------------------------------------


class TestVaultStoreDeposit:
    def test_deposit_creates_note_and_locks(self) -> None:
        store = VaultStore()
        note = store.deposit("alice", b"c1", 100)
        assert note.id == 0
        assert note.owner == "alice"
        assert store.total_locked == 100
        assert store.note_count() == 1

    def test_ids_strictly_increase(self) -> None:
        store = VaultStore()
        ids = [store.deposit("alice", b"", 1).id for _ in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_zero_amount_accepted_by_default(self) -> None:
        store = VaultStore()
        note = store.deposit("alice", b"", 0)
        assert note.amount == 0
        assert store.note_count() == 1

    def test_zero_amount_rejected_when_disabled(self) -> None:
        store = VaultStore()
        with pytest.raises(InvalidAmount):
            store.deposit("alice", b"", 0, allow_zero=False)
        assert store.note_count() == 0

    def test_negative_amount_rejected(self) -> None:
        store = VaultStore()
        with pytest.raises(InvalidAmount):
            store.deposit("alice", b"", -1)

    def test_bool_amount_rejected(self) -> None:
        store = VaultStore()
        with pytest.raises(InvalidAmount):
            store.deposit("alice", b"", True)  # type: ignore[arg-type]

    def test_non_bytes_commitment_rejected(self) -> None:
        store = VaultStore()
        with pytest.raises(InvalidCommitment):
            store.deposit("alice", "c1", 10)  # type: ignore[arg-type]

    def test_overflow_rejected_without_change(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", U64_MAX)
        with pytest.raises(LockedOverflow):
            store.deposit("bob", b"", 1)
        assert store.total_locked == U64_MAX
        assert store.note_count() == 1


class TestVaultStoreWithdraw:
    def test_withdraw_tombstones(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"c1", 100)
        spent = store.withdraw("alice", 0)
        assert spent.spent is True
        assert store.total_locked == 0
        assert store.note_count() == 1
        assert store.note_metadata(0) == ("alice", 100, True)

    def test_withdraw_unknown_note(self) -> None:
        store = VaultStore()
        with pytest.raises(NoteNotFound):
            store.withdraw("alice", 0)

    def test_withdraw_float_id_not_found(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        store.deposit("alice", b"", 20)
        with pytest.raises(NoteNotFound):
            store.withdraw("alice", 1.0)
        assert store.total_locked == 30

    def test_withdraw_by_non_owner(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        with pytest.raises(NotNoteOwner):
            store.withdraw("bob", 0)
        assert store.total_locked == 10
        assert store.note_metadata(0)[2] is False

    def test_owner_checked_before_spent(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        store.withdraw("alice", 0)
        with pytest.raises(NotNoteOwner):
            store.withdraw("bob", 0)

    def test_double_withdraw(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        store.withdraw("alice", 0)
        with pytest.raises(NoteAlreadySpent):
            store.withdraw("alice", 0)
        assert store.total_locked == 0

    def test_insufficient_locked_on_corrupt_total(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        store.total_locked = 5
        with pytest.raises(InsufficientLocked):
            store.withdraw("alice", 0)
        assert store.note_metadata(0)[2] is False
        assert store.total_locked == 5

    def test_invariant_holds_across_mixed_operations(self) -> None:
        store = VaultStore()
        for i, amount in enumerate((5, 10, 15, 20)):
            store.deposit(f"user{i % 2}", b"", amount)
        store.withdraw("user1", 1)
        store.withdraw("user0", 2)
        assert store.total_locked == 25
        store.audit()


class TestVaultStoreAudit:
    def test_audit_detects_mismatch(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        store.total_locked = 11
        with pytest.raises(InvariantViolation):
            store.audit()

    def test_audit_empty(self) -> None:
        VaultStore().audit()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class TestVaultStoreSerialization:
    def test_roundtrip(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"c1", 100)
        store.deposit("bob", b"\x00\x01", 40)
        store.withdraw("alice", 0)
        restored = VaultStore.from_json(store.to_json())
        assert restored.total_locked == 40
        assert restored.next_note_id == 2
        assert restored.note_metadata(0) == ("alice", 100, True)
        assert restored.registry.find(1).commitment == b"\x00\x01"

    def test_restored_store_continues_ids(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 1)
        restored = VaultStore.from_json(store.to_json())
        assert restored.deposit("bob", b"", 1).id == 1

    def test_schema_version(self) -> None:
        obj = json.loads(VaultStore().to_json())
        assert obj["v"] == 1

    def test_to_json_is_pretty_printed(self) -> None:
        assert "\n" in VaultStore().to_json()

    def test_corrupt_json(self) -> None:
        with pytest.raises(CorruptVaultState):
            VaultStore.from_json("not json at all")

    def test_none(self) -> None:
        with pytest.raises(CorruptVaultState):
            VaultStore.from_json(None)  # type: ignore[arg-type]

    def test_non_dict(self) -> None:
        with pytest.raises(CorruptVaultState):
            VaultStore.from_json('"just a string"')

    def test_unknown_version(self) -> None:
        with pytest.raises(CorruptVaultState):
            VaultStore.from_json('{"v": 99, "next_note_id": 0, "total_locked": 0, "notes": []}')

    def test_total_mismatch_rejected(self) -> None:
        store = VaultStore()
        store.deposit("alice", b"", 10)
        obj = json.loads(store.to_json())
        obj["total_locked"] = 0
        with pytest.raises(InvariantViolation):
            VaultStore.from_json(json.dumps(obj))

    def test_missing_counter_rejected(self) -> None:
        with pytest.raises(CorruptVaultState):
            VaultStore.from_json('{"v": 1, "total_locked": 0, "notes": []}')
