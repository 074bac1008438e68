"""Tests for the signature store adapter and document lock."""

import pytest

from drawing_signature.config import Settings
from drawing_signature.core.document_lock import LOCKED_MESSAGE, DocumentLock, SaveDecision
from drawing_signature.core.signature_store import (
    InMemoryPropertyBag,
    PropertySignatureStore,
    SignatureStatus,
)


class TestSignatureStatus:
    """Tests for status flag parsing."""

    @pytest.mark.parametrize("text", ["Signed", "signed", " SIGNED "])
    def test_signed(self, text):
        assert SignatureStatus.from_text(text) == SignatureStatus.SIGNED

    @pytest.mark.parametrize("text", [None, "", "Unsigned", "yes"])
    def test_anything_else_is_unsigned(self, text):
        assert SignatureStatus.from_text(text) == SignatureStatus.UNSIGNED


class TestPropertySignatureStore:
    """Tests for the property-bag adapter."""

    def test_default_property_names(self):
        bag = InMemoryPropertyBag()
        store = PropertySignatureStore(bag)

        assert store.set_record_string("rec") is False
        assert store.set_record_string("rec2") is True
        store.set_status(SignatureStatus.SIGNED)

        assert bag.as_dict() == {
            "ElectronicSignatureData": "rec2",
            "SignatureStatus": "Signed",
        }
        assert store.get_record_string() == "rec2"
        assert store.get_status() == SignatureStatus.SIGNED

    def test_custom_property_names(self):
        bag = InMemoryPropertyBag()
        settings = Settings(record_property="SigRecord", status_property="SigState")
        store = PropertySignatureStore(bag, settings)

        store.set_record_string("rec")
        store.set_status(SignatureStatus.UNSIGNED)
        assert bag.as_dict() == {"SigRecord": "rec", "SigState": "Unsigned"}

    def test_empty_store(self, store):
        assert store.get_record_string() is None
        assert store.get_status() == SignatureStatus.UNSIGNED

    def test_initial_values_are_copied(self):
        initial = {"SignatureStatus": "Signed"}
        bag = InMemoryPropertyBag(initial)
        bag.upsert("SignatureStatus", "Unsigned")
        assert initial == {"SignatureStatus": "Signed"}


class TestDocumentLock:
    """Tests for lock marker and save hooks."""

    @pytest.fixture
    def events(self):
        return {"read_only": [], "messages": []}

    @pytest.fixture
    def lock(self, store, events):
        return DocumentLock(
            store,
            read_only_setter=events["read_only"].append,
            notifier=events["messages"].append,
        )

    def test_unlocked_by_default(self, lock):
        assert not lock.is_locked()
        assert lock.before_save() == SaveDecision.PROCEED

    def test_lock(self, lock, store, events):
        lock.lock()

        assert lock.is_locked()
        assert store.get("DocumentLocked") == "True"
        assert events["read_only"] == [True]

    def test_before_save_rejects_when_locked(self, lock, events):
        lock.lock()
        assert lock.before_save() == SaveDecision.REJECT
        assert events["messages"] == [LOCKED_MESSAGE]

    def test_unlock(self, lock, store, events):
        lock.lock()
        lock.unlock()

        assert not lock.is_locked()
        assert store.get("DocumentLocked") == "False"
        assert events["read_only"] == [True, False]
        assert lock.before_save() == SaveDecision.PROCEED

    def test_on_activate_notifies_only_when_locked(self, lock, events):
        lock.on_activate()
        assert events["messages"] == []

        lock.lock()
        lock.on_activate()
        assert events["messages"] == [LOCKED_MESSAGE]

    @pytest.mark.parametrize("value", ["true", "TRUE", " True "])
    def test_marker_case_insensitive(self, store, value):
        store.upsert("DocumentLocked", value)
        assert DocumentLock(store).is_locked()

    def test_without_callbacks(self, store):
        lock = DocumentLock(store)
        lock.lock()
        assert lock.before_save() == SaveDecision.REJECT
        lock.on_activate()

    def test_custom_property_name(self, store):
        lock = DocumentLock(store, property_name="Frozen")
        lock.lock()
        assert store.get("Frozen") == "True"
        assert store.get("DocumentLocked") is None
