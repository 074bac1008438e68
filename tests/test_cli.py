"""Tests for the command-line interface."""

import json

import pytest
from cryptography.hazmat.primitives import serialization

from drawing_signature.__main__ import create_parser, main
from drawing_signature.config import get_settings

from conftest import BRACKET_DIGEST
from test_json_document import BRACKET_JSON


@pytest.fixture
def drawing(tmp_path):
    path = tmp_path / "bracket.json"
    path.write_text(json.dumps(BRACKET_JSON), encoding="utf-8")
    return path


def load(path):
    return json.loads(path.read_text(encoding="utf-8"))


class TestParser:
    """Tests for argument parsing."""

    def test_no_command(self, capsys):
        assert main([]) == 3

    def test_sign_requires_username(self, drawing):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["sign", str(drawing)])

    def test_trust_is_repeatable(self):
        args = create_parser().parse_args(["verify", "f.json", "-t", "a.pem", "-t", "b.pem"])
        assert args.trust == ["a.pem", "b.pem"]


class TestDigestCommand:
    """Tests for `digest`."""

    def test_prints_digest(self, drawing, capsys):
        assert main(["--no-color", "digest", str(drawing)]) == 0
        assert capsys.readouterr().out.strip() == BRACKET_DIGEST

    def test_show_content(self, drawing, capsys):
        assert main(["digest", str(drawing), "--show-content"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("PartName:Bracket\r\n")
        assert out.rstrip().endswith(BRACKET_DIGEST)

    def test_missing_file(self, tmp_path, capsys):
        assert main(["digest", str(tmp_path / "nope.json")]) == 2
        assert "Cannot read" in capsys.readouterr().out


class TestSignAndVerifyCommands:
    """Tests for `sign` and `verify`."""

    def test_hmac_sign_then_verify(self, drawing, capsys):
        assert main(["sign", str(drawing), "-u", "alice", "-n", "Alice Smith"]) == 0
        assert "Document signed" in capsys.readouterr().out

        saved = load(drawing)
        assert saved["signatureProperties"]["SignatureStatus"] == "Signed"
        assert saved["signatureProperties"]["SignerName"] == "Alice Smith"
        assert saved["signatureProperties"]["DocumentLocked"] == "True"
        assert saved["readOnly"] is True

        assert main(["verify", str(drawing)]) == 0
        assert "Signature is valid" in capsys.readouterr().out

    def test_no_lock(self, drawing):
        assert main(["sign", str(drawing), "-u", "alice", "--no-lock"]) == 0
        saved = load(drawing)
        assert saved["readOnly"] is False
        assert "DocumentLocked" not in saved["signatureProperties"]

    def test_full_name_defaults_to_username(self, drawing):
        main(["sign", str(drawing), "-u", "alice"])
        assert load(drawing)["signatureProperties"]["SignerName"] == "alice"

    def test_already_signed(self, drawing, capsys):
        main(["sign", str(drawing), "-u", "alice"])
        capsys.readouterr()

        assert main(["sign", str(drawing), "-u", "bob"]) == 1
        assert "already signed" in capsys.readouterr().out
        assert main(["sign", str(drawing), "-u", "bob", "--overwrite"]) == 0
        assert load(drawing)["signatureProperties"]["SignerName"] == "bob"

    def test_tampered_after_signing(self, drawing, capsys):
        main(["sign", str(drawing), "-u", "alice"])
        data = load(drawing)
        data["properties"]["Revision Number"] = "B"
        drawing.write_text(json.dumps(data), encoding="utf-8")
        capsys.readouterr()

        assert main(["verify", str(drawing), "--format", "json"]) == 1
        result = json.loads(capsys.readouterr().out)
        assert result["verified"] is False
        assert result["reason"] == "ContentTampered"
        assert result["signer_username"] == "alice"

    def test_verify_unsigned(self, drawing, capsys):
        assert main(["verify", str(drawing)]) == 1
        assert "NoSignature" in capsys.readouterr().out

    def test_suffix_from_environment(self, drawing, monkeypatch):
        main(["sign", str(drawing), "-u", "alice"])
        monkeypatch.setenv("DRAWING_SIGNATURE_MAC_KEY_SUFFIX", "different")
        get_settings.cache_clear()

        assert main(["verify", str(drawing)]) == 1

    def test_rsa_sign_and_verify(self, drawing, tmp_path, rsa_key_pem, rsa_certificate, capsys):
        key_path = tmp_path / "alice.key"
        cert_path = tmp_path / "alice.crt"
        key_path.write_bytes(rsa_key_pem)
        cert_path.write_bytes(rsa_certificate.public_bytes(serialization.Encoding.PEM))

        assert main(["sign", str(drawing), "-u", "alice", "-k", str(key_path), "-c", str(cert_path)]) == 0
        record = load(drawing)["signatureProperties"]["ElectronicSignatureData"]
        assert "|rsa-sha256:" in record

        assert main(["verify", str(drawing)]) == 1
        assert main(["verify", str(drawing), "--trust", str(cert_path)]) == 0

    def test_key_password_from_environment(self, drawing, tmp_path, rsa_key, monkeypatch):
        key_path = tmp_path / "alice.key"
        key_path.write_bytes(rsa_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.BestAvailableEncryption(b"hunter2"),
        ))
        args = ["sign", str(drawing), "-u", "alice", "-k", str(key_path), "--key-password-env", "ALICE_KEY_PW"]

        monkeypatch.delenv("ALICE_KEY_PW", raising=False)
        assert main(args) == 2

        monkeypatch.setenv("ALICE_KEY_PW", "hunter2")
        assert main(args) == 0

    def test_certificate_without_key(self, drawing, tmp_path, rsa_certificate, capsys):
        cert_path = tmp_path / "alice.crt"
        cert_path.write_bytes(rsa_certificate.public_bytes(serialization.Encoding.PEM))

        assert main(["sign", str(drawing), "-u", "alice", "-c", str(cert_path)]) == 3
        assert "--certificate requires --key" in capsys.readouterr().out
        assert load(drawing)["signatureProperties"] == {}

    def test_rsa_sign_on_signed_document(self, drawing, tmp_path, rsa_key_pem):
        key_path = tmp_path / "alice.key"
        key_path.write_bytes(rsa_key_pem)
        main(["sign", str(drawing), "-u", "alice"])

        assert main(["sign", str(drawing), "-u", "alice", "-k", str(key_path)]) == 1

    def test_bad_key_file(self, drawing, tmp_path, capsys):
        key_path = tmp_path / "bad.key"
        key_path.write_bytes(b"not a key")
        assert main(["sign", str(drawing), "-u", "alice", "-k", str(key_path)]) == 2
        assert "unreadable" in capsys.readouterr().out


class TestStatusAndLockCommands:
    """Tests for `status`, `lock` and `unlock`."""

    def test_status_unsigned(self, drawing, capsys):
        assert main(["status", str(drawing)]) == 0
        out = capsys.readouterr().out
        assert "Unsigned" in out
        assert "Locked:    False" in out

    def test_lock_unlock(self, drawing, capsys):
        assert main(["lock", str(drawing)]) == 0
        assert load(drawing)["readOnly"] is True
        assert main(["unlock", str(drawing)]) == 0
        assert load(drawing)["readOnly"] is False
        assert load(drawing)["signatureProperties"]["DocumentLocked"] == "False"

    def test_status_after_signing(self, drawing, capsys):
        main(["sign", str(drawing), "-u", "alice", "-n", "Alice Smith"])
        capsys.readouterr()

        main(["status", str(drawing)])
        out = capsys.readouterr().out
        assert "Signed" in out
        assert "Alice Smith" in out
        assert "Locked:    True" in out


class TestConfiguration:
    """Tests for configuration errors."""

    def test_production_with_default_suffix(self, drawing, monkeypatch, capsys):
        monkeypatch.setenv("DRAWING_SIGNATURE_ENVIRONMENT", "production")
        assert main(["digest", str(drawing)]) == 2
        assert "Configuration error" in capsys.readouterr().out
