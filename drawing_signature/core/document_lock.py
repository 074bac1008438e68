"""Lock marker and save/activate hooks for signed documents.

The host application registers before_save and on_activate with its own
event system; nothing here subscribes globally. Read-only enforcement
stays with the host, reached through the optional read_only_setter.
"""

from enum import Enum
from typing import Callable

from drawing_signature.config import get_settings
from drawing_signature.core.logging import get_logger
from drawing_signature.core.signature_store import SignatureStore

logger = get_logger(__name__)

LOCKED_MESSAGE = "This document is locked by an electronic signature and cannot be modified."


class SaveDecision(str, Enum):
    """Answer of the before-save hook."""
    PROCEED = "Proceed"
    REJECT = "Reject"


class DocumentLock:
    """Locks a signed document against further edits."""

    def __init__(
        self,
        store: SignatureStore,
        read_only_setter: Callable[[bool], None] | None = None,
        notifier: Callable[[str], None] | None = None,
        property_name: str | None = None,
    ):
        self._store = store
        self._set_read_only = read_only_setter
        self._notify = notifier
        self._property = property_name or get_settings().locked_property

    def is_locked(self) -> bool:
        value = self._store.get(self._property)
        return value is not None and value.strip().lower() == "true"

    def lock(self) -> None:
        if self._set_read_only is not None:
            self._set_read_only(True)
        self._store.upsert(self._property, "True")
        logger.info("Document locked")

    def unlock(self) -> None:
        if self._set_read_only is not None:
            self._set_read_only(False)
        self._store.upsert(self._property, "False")
        logger.info("Document unlocked")

    def before_save(self) -> SaveDecision:
        """Reject saves while the lock marker is set."""
        if not self.is_locked():
            return SaveDecision.PROCEED
        logger.warning("Save rejected on locked document")
        if self._notify is not None:
            self._notify(LOCKED_MESSAGE)
        return SaveDecision.REJECT

    def on_activate(self) -> None:
        """Tell the operator the document is locked when it is brought to front."""
        if self.is_locked() and self._notify is not None:
            self._notify(LOCKED_MESSAGE)
