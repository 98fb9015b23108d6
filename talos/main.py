"""
Talos - Command Line Entry Point

Encrypt or decrypt data with the Talos cellular-automaton cipher.

Examples:
    talos notes.txt --encrypt --key 12345 -o notes.tlo
    talos notes.tlo --decrypt --key 12345
    talos photo.png --encrypt --passphrase "hunter2" --vault -o photo.png.tlos
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .core.block_cipher import TalosCipher
from .core.errors import DecryptionError, InvalidKeyError
from .core.key_schedule import generate_key, validate_key
from .files.file_crypto import TalosFileEncryptor

logger = logging.getLogger(__name__)


KEY_ENV_VAR = "TALOS_KEY"
STDIN_NAME = "-"


def _parse_key(raw: str) -> int:
    """Parse a key given in decimal, or with a 0x/0o/0b prefix."""
    try:
        return validate_key(int(raw, 0))
    except (ValueError, InvalidKeyError) as exc:
        raise argparse.ArgumentTypeError(f"invalid key {raw!r}: {exc}") from None


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="talos",
        description="Command line tool for encrypting and decrypting data with Talos.",
    )
    parser.add_argument("input", help="File to encrypt or decrypt ('-' for stdin)")
    parser.add_argument("-o", "--out", default=None,
                        help="Output file. Defaults to stdout")
    action = parser.add_mutually_exclusive_group()
    action.add_argument("-e", "--encrypt", action="store_true", help="Encrypt the input")
    action.add_argument("-d", "--decrypt", action="store_true", help="Decrypt the input")
    parser.add_argument("-k", "--key", type=_parse_key, default=None,
                        help=f"32-bit unsigned key. Falls back to ${KEY_ENV_VAR}; "
                             "a random key is used for encryption if neither is set")
    parser.add_argument("-p", "--passphrase", default=None,
                        help="Derive the key from a passphrase (requires --vault)")
    parser.add_argument("--vault", action="store_true",
                        help="Use the integrity-checked vault file format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _read_input(path: str) -> bytes:
    if path == STDIN_NAME:
        return sys.stdin.buffer.read()
    with open(path, 'rb') as f:
        return f.read()


def _write_output(path: Optional[str], data: bytes) -> None:
    if path is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    else:
        with open(path, 'wb') as f:
            f.write(data)


def _run_vault(args: argparse.Namespace, parser: argparse.ArgumentParser,
               key: Optional[int]) -> int:
    if args.input == STDIN_NAME or args.out is None:
        parser.error("--vault needs an input file and --out")
    if not os.path.isfile(args.input):
        parser.error(f"no such file: {args.input}")

    if args.encrypt and key is None and args.passphrase is None:
        key = generate_key()
        print(f"Using key {key}", file=sys.stderr)

    vault = TalosFileEncryptor(
        key=None if args.passphrase is not None else key,
        passphrase=args.passphrase,
    )
    try:
        if args.encrypt:
            vault.encrypt_file(args.input, args.out)
        else:
            vault.decrypt_file(args.input, args.out)
    except DecryptionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for Talos."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='[%(asctime)s] %(levelname)s: %(message)s',
    )

    # Usage errors are reported before any cryptographic work begins.
    if not (args.encrypt or args.decrypt):
        parser.error("an action is required: --encrypt or --decrypt")
    if args.passphrase is not None and not args.vault:
        parser.error("--passphrase requires --vault")
    if args.passphrase is not None and args.key is not None:
        parser.error("--key and --passphrase are mutually exclusive")

    key = args.key
    if key is None and os.environ.get(KEY_ENV_VAR):
        try:
            key = _parse_key(os.environ[KEY_ENV_VAR])
        except argparse.ArgumentTypeError as exc:
            parser.error(f"${KEY_ENV_VAR}: {exc}")

    if args.decrypt and key is None and args.passphrase is None:
        parser.error("a key is required to decrypt")

    if args.vault:
        return _run_vault(args, parser, key)

    try:
        data = _read_input(args.input)
    except OSError as exc:
        parser.error(f"cannot read {args.input}: {exc.strerror or exc}")

    if args.encrypt:
        if key is None:
            key = generate_key()
        print(f"Using key {key}", file=sys.stderr)
        _write_output(args.out, TalosCipher(key).encrypt(data))
        return 0

    try:
        text = TalosCipher(key).decrypt(data)
    except DecryptionError as exc:
        logger.debug(f"Decryption failed: {exc}")
        print("Error: wrong key or malformed ciphertext", file=sys.stderr)
        return 1
    _write_output(args.out, text.encode('utf-8'))
    return 0


if __name__ == "__main__":
    sys.exit(main())
