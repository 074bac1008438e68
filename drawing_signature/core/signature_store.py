"""Persistence seam between the signing core and the host document.

The host application owns storage; the core only needs string reads and
writes. PropertySignatureStore maps those onto a PropertyBag, the shape
most CAD hosts expose as "user defined properties".
"""

from abc import ABC, abstractmethod
from enum import Enum

from drawing_signature.config import Settings, get_settings


class SignatureStatus(str, Enum):
    """Signed/unsigned flag stored next to the record."""
    UNSIGNED = "Unsigned"
    SIGNED = "Signed"

    @classmethod
    def from_text(cls, text: str | None) -> "SignatureStatus":
        if text is not None and text.strip().lower() == cls.SIGNED.value.lower():
            return cls.SIGNED
        return cls.UNSIGNED


class PropertyBag(ABC):
    """String key/value properties attached to a document."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def upsert(self, key: str, value: str) -> bool:
        """Create or replace a property.

        Returns:
            True if a previous value existed
        """
        pass


class InMemoryPropertyBag(PropertyBag):
    """Dict-backed property bag."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def upsert(self, key: str, value: str) -> bool:
        existed = key in self._values
        self._values[key] = value
        return existed

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


class SignatureStore(ABC):
    """What the core reads and writes on a document."""

    @abstractmethod
    def get_record_string(self) -> str | None:
        pass

    @abstractmethod
    def set_record_string(self, value: str) -> bool:
        pass

    @abstractmethod
    def get_status(self) -> SignatureStatus:
        pass

    @abstractmethod
    def set_status(self, status: SignatureStatus) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def upsert(self, key: str, value: str) -> bool:
        pass


class PropertySignatureStore(SignatureStore):
    """SignatureStore over a PropertyBag, using configured property names."""

    def __init__(self, properties: PropertyBag, settings: Settings | None = None):
        self.properties = properties
        self.settings = settings or get_settings()

    def get_record_string(self) -> str | None:
        return self.properties.get(self.settings.record_property)

    def set_record_string(self, value: str) -> bool:
        return self.properties.upsert(self.settings.record_property, value)

    def get_status(self) -> SignatureStatus:
        return SignatureStatus.from_text(self.properties.get(self.settings.status_property))

    def set_status(self, status: SignatureStatus) -> None:
        self.properties.upsert(self.settings.status_property, status.value)

    def get(self, key: str) -> str | None:
        return self.properties.get(key)

    def upsert(self, key: str, value: str) -> bool:
        return self.properties.upsert(key, value)
