"""Signer identity captured by the external authentication step."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    """An authenticated signer.

    has_certificate selects the RSA path in the signer; the matching
    private key travels separately as a PrivateKeyHandle.
    """
    username: str
    full_name: str
    has_certificate: bool = False
