"""Drawing Signature CLI - Run with: python -m drawing_signature

Commands:
    digest    - Print the content digest of a JSON drawing
    sign      - Sign a JSON drawing (HMAC fallback, or RSA with --key)
    verify    - Verify the signature of a JSON drawing
    status    - Show signature and lock status
    lock      - Lock a drawing against saves
    unlock    - Remove the lock

Exit Codes:
    0 - Success
    1 - Verification failed, or document already signed
    2 - Configuration, key or file error
    3 - Invalid arguments
"""

import argparse
import json
import os
import sys

from pydantic import ValidationError

from drawing_signature.config import get_settings
from drawing_signature.core.content_digest import content_digest
from drawing_signature.core.document_lock import DocumentLock
from drawing_signature.core.errors import AlreadySignedError, SignatureError
from drawing_signature.core.identity import Identity
from drawing_signature.core.json_document import JsonDocumentFile
from drawing_signature.core.key_provider import PrivateKeyHandle, StaticPublicKeyResolver
from drawing_signature.core.logging import get_logger, setup_logging
from drawing_signature.core.signature_service import SignatureService
from drawing_signature.core.verification_engine import Verifier

logger = get_logger("drawing_signature.cli")


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls):
        for attr in ["RED", "GREEN", "YELLOW", "CYAN", "BOLD", "RESET"]:
            setattr(cls, attr, "")


def colored(text: str, color: str) -> str:
    return f"{color}{text}{Colors.RESET}"


def _lock_for(doc: JsonDocumentFile) -> DocumentLock:
    return DocumentLock(
        doc.store,
        read_only_setter=doc.set_read_only,
        property_name=doc.store.settings.locked_property,
    )


def cmd_digest(args) -> int:
    """Print the content digest."""
    doc = JsonDocumentFile.load(args.file)
    result = content_digest.digest(doc.document)
    if args.show_content:
        print(result.canonical_text, end="")
    print(result.hex)
    return 0


def cmd_sign(args) -> int:
    """Sign a drawing and write the record back to the file."""
    if args.certificate and not args.key:
        print(colored("--certificate requires --key", Colors.RED))
        return 3

    doc = JsonDocumentFile.load(args.file)

    key_material = None
    if args.key:
        password = None
        if args.key_password_env:
            value = os.environ.get(args.key_password_env)
            if value is None:
                print(colored(f"Environment variable {args.key_password_env} is not set", Colors.RED))
                return 2
            password = value.encode("utf-8")
        key_material = PrivateKeyHandle.from_files(args.key, password, args.certificate)

    identity = Identity(
        username=args.username,
        full_name=args.full_name or args.username,
        has_certificate=key_material is not None,
    )

    service = SignatureService()
    lock = None if args.no_lock else _lock_for(doc)
    try:
        record = service.sign_document(
            doc.document,
            doc.store,
            identity,
            key_material=key_material,
            overwrite=args.overwrite,
            lock=lock,
        )
    except AlreadySignedError:
        print(colored("Document is already signed (use --overwrite to re-sign)", Colors.YELLOW))
        return 1
    doc.save()

    print(colored("✓ Document signed", Colors.GREEN))
    print(f"  Signer:    {record.signer_name} ({record.signer_username})")
    print(f"  Time:      {record.signed_at.isoformat()}")
    print(f"  Method:    {record.method.algorithm.value}")
    print(f"  Digest:    {record.document_digest}")
    if doc.read_only:
        print(f"  {colored('Locked', Colors.CYAN)}")
    return 0


def cmd_verify(args) -> int:
    """Verify the stored signature against the current content."""
    doc = JsonDocumentFile.load(args.file)

    resolver = StaticPublicKeyResolver()
    for path in args.trust or []:
        with open(path, "rb") as f:
            resolver.add_pem(f.read())

    service = SignatureService(verifier=Verifier(public_keys=resolver))
    outcome = service.verify_document(doc.document, doc.store)

    if args.format == "json":
        print(json.dumps({
            "verified": outcome.verified,
            "reason": outcome.reason.value,
            "signer_name": outcome.signer_name,
            "signer_username": outcome.signer_username,
            "signed_at": outcome.signed_at.isoformat() if outcome.signed_at else None,
            "detail": outcome.detail,
        }, indent=2, ensure_ascii=False))
    elif outcome.verified:
        print(colored("✓ Signature is valid", Colors.GREEN))
        print(f"  Signer: {outcome.signer_name}")
        print(f"  Time:   {outcome.signed_at.isoformat()}")
    else:
        print(colored(f"✗ {outcome.reason.value}: {outcome.detail}", Colors.RED))
        if outcome.signer_name is not None:
            print(f"  Signer: {outcome.signer_name}")
            print(f"  Time:   {outcome.signed_at.isoformat()}")

    return 0 if outcome.verified else 1


def cmd_status(args) -> int:
    """Show signature and lock status."""
    doc = JsonDocumentFile.load(args.file)
    settings = doc.store.settings
    print(f"Document:  {doc.document.document_id}")
    print(f"Status:    {doc.store.get_status().value}")
    print(f"Signer:    {doc.store.get(settings.signer_name_property) or '-'}")
    print(f"Time:      {doc.store.get(settings.signature_time_property) or '-'}")
    print(f"Locked:    {_lock_for(doc).is_locked()}")
    return 0


def cmd_lock(args) -> int:
    doc = JsonDocumentFile.load(args.file)
    lock = _lock_for(doc)
    if args.command == "lock":
        lock.lock()
    else:
        lock.unlock()
    doc.save()
    print(f"Document {'locked' if args.command == 'lock' else 'unlocked'}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="drawing-signature",
        description="Sign and verify engineering drawings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign with the HMAC fallback
  drawing-signature sign bracket.json --username alice --full-name "Alice Smith"

  # Sign with a certificate key
  drawing-signature sign bracket.json --username alice --key alice.key --certificate alice.crt

  # Verify, trusting a certificate for RSA records
  drawing-signature verify bracket.json --trust alice.crt
        """
    )

    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--log-level", help="Override DRAWING_SIGNATURE_LOG_LEVEL")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    digest_parser = subparsers.add_parser("digest", help="Print the content digest")
    digest_parser.add_argument("file", help="JSON drawing file")
    digest_parser.add_argument("--show-content", action="store_true", help="Print the hashed text too")

    sign_parser = subparsers.add_parser("sign", help="Sign a drawing")
    sign_parser.add_argument("file", help="JSON drawing file")
    sign_parser.add_argument("--username", "-u", required=True)
    sign_parser.add_argument("--full-name", "-n")
    sign_parser.add_argument("--key", "-k", help="RSA private key (PEM or DER)")
    sign_parser.add_argument("--key-password-env", help="Environment variable holding the key password")
    sign_parser.add_argument("--certificate", "-c", help="Certificate matching --key")
    sign_parser.add_argument("--overwrite", action="store_true", help="Replace an existing signature")
    sign_parser.add_argument("--no-lock", action="store_true", help="Do not lock after signing")

    verify_parser = subparsers.add_parser("verify", help="Verify a drawing")
    verify_parser.add_argument("file", help="JSON drawing file")
    verify_parser.add_argument("--trust", "-t", action="append", help="Trusted PEM public key or certificate")
    verify_parser.add_argument("--format", choices=["text", "json"], default="text")

    status_parser = subparsers.add_parser("status", help="Show signature and lock status")
    status_parser.add_argument("file", help="JSON drawing file")

    for name, help_text in (("lock", "Lock a drawing"), ("unlock", "Unlock a drawing")):
        lock_parser = subparsers.add_parser(name, help=help_text)
        lock_parser.add_argument("file", help="JSON drawing file")

    return parser


COMMANDS = {
    "digest": cmd_digest,
    "sign": cmd_sign,
    "verify": cmd_verify,
    "status": cmd_status,
    "lock": cmd_lock,
    "unlock": cmd_lock,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color or not sys.stdout.isatty():
        Colors.disable()

    if not args.command:
        parser.print_help()
        return 3

    try:
        settings = get_settings()
    except ValidationError as e:
        print(colored(f"Configuration error: {e}", Colors.RED))
        return 2

    setup_logging(
        json_output=args.json_logs or settings.log_json,
        level=args.log_level or settings.log_level,
    )

    try:
        return COMMANDS[args.command](args)
    except (SignatureError, OSError, ValueError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(colored(f"Error: {e}", Colors.RED))
        return 2


if __name__ == "__main__":
    sys.exit(main())
