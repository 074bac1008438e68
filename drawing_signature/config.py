"""Application configuration."""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Matches records produced by the legacy drawing add-in.
LEGACY_MAC_KEY_SUFFIX = "密钥后缀"


class Settings(BaseSettings):
    """Settings loaded from environment variables (prefix DRAWING_SIGNATURE_)."""

    # Environment
    environment: str = "development"  # development, staging, production

    # Shared suffix appended to the username to key the HMAC fallback path.
    # Not a secret in any meaningful sense; see SuffixMacKeyProvider.
    mac_key_suffix: str = LEGACY_MAC_KEY_SUFFIX

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Lock the document (read-only + marker) right after a successful signature
    lock_after_signing: bool = True

    # Property names used on the host document
    record_property: str = "ElectronicSignatureData"
    status_property: str = "SignatureStatus"
    signer_name_property: str = "SignerName"
    signature_time_property: str = "SignatureTime"
    locked_property: str = "DocumentLocked"

    model_config = SettingsConfigDict(
        env_prefix="DRAWING_SIGNATURE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _require_custom_suffix_in_production(self) -> "Settings":
        """Refuse the built-in MAC suffix outside development."""
        if self.is_production and self.mac_key_suffix == LEGACY_MAC_KEY_SUFFIX:
            raise ValueError(
                "DRAWING_SIGNATURE_MAC_KEY_SUFFIX must be set explicitly in production"
            )
        if not self.mac_key_suffix:
            raise ValueError("mac_key_suffix must not be empty")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
