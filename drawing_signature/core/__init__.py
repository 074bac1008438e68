"""Signing core: content digest, signature records, signer and verifier."""
