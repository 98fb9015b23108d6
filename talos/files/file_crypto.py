"""
Talos File Encryption Module

Streams files through the Talos block cipher inside a small container
("vault") format that, unlike raw Talos ciphertext, is binary safe and
tamper evident:
- The original size is stored, so the final block's padding is removed
  exactly instead of guessed
- An HMAC-SHA256 over header and ciphertext is verified BEFORE decryption
- The SHA-256 of the plaintext is verified AFTER decryption

Keys are either a raw 32-bit Talos key or a passphrase stretched with
PBKDF2 (via the `cryptography` package) down to a 32-bit key.

File Format:
    [header | ciphertext blocks... | hmac]

Header:
    - Magic bytes (4): "TLOS"
    - Version (1): 0x01
    - Key source (1): 0 = raw key, 1 = passphrase
    - Salt (16): PBKDF2 salt
    - Chunk size (4): Bytes of plaintext per streamed chunk
    - Original size (8): Plaintext size in bytes
    - File hash (32): SHA-256 of the plaintext
"""

import hashlib
import hmac
import logging
import os
import secrets
import struct
from dataclasses import dataclass
from typing import BinaryIO, Generator, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..core.block_cipher import BLOCK_BYTES, TalosCipher
from ..core.errors import DecryptionError
from ..core.key_schedule import KEY_BITS, validate_key

logger = logging.getLogger(__name__)


# Constants
MAGIC_BYTES = b"TLOS"
VERSION = 0x01
SALT_SIZE = 16
HMAC_SIZE = 32
HASH_SIZE = 32

KEY_SOURCE_RAW = 0
KEY_SOURCE_PASSPHRASE = 1

# PBKDF2 configuration
PBKDF2_ITERATIONS = 100_000
PBKDF2_ALGORITHM = hashes.SHA256()

# Plaintext bytes per streamed chunk; must be a whole number of blocks
DEFAULT_CHUNK_SIZE = 128 * BLOCK_BYTES  # 4 KiB

HEADER_SIZE = (
    4 +    # Magic
    1 +    # Version
    1 +    # Key source
    16 +   # Salt
    4 +    # Chunk size
    8 +    # Original size
    32     # File hash
)  # Total: 66 bytes


@dataclass
class FileHeader:
    """Vault file header."""
    magic: bytes
    version: int
    key_source: int
    salt: bytes
    chunk_size: int
    original_size: int
    file_hash: bytes

    def to_bytes(self) -> bytes:
        """Serialize header to bytes."""
        return (
            self.magic +
            struct.pack('B', self.version) +
            struct.pack('B', self.key_source) +
            self.salt +
            struct.pack('>I', self.chunk_size) +
            struct.pack('>Q', self.original_size) +
            self.file_hash
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FileHeader':
        """Deserialize header from bytes."""
        if len(data) < HEADER_SIZE:
            raise DecryptionError(f"Truncated header: {len(data)} of {HEADER_SIZE} bytes")

        magic = data[0:4]
        version, key_source = struct.unpack('BB', data[4:6])
        salt = data[6:6 + SALT_SIZE]
        offset = 6 + SALT_SIZE
        chunk_size, original_size = struct.unpack('>IQ', data[offset:offset + 12])
        offset += 12
        file_hash = data[offset:offset + HASH_SIZE]

        return cls(
            magic=magic,
            version=version,
            key_source=key_source,
            salt=salt,
            chunk_size=chunk_size,
            original_size=original_size,
            file_hash=file_hash,
        )

    def validate(self) -> bool:
        """Validate header magic, version and key source."""
        return (
            self.magic == MAGIC_BYTES
            and self.version == VERSION
            and self.key_source in (KEY_SOURCE_RAW, KEY_SOURCE_PASSPHRASE)
        )


def _pbkdf2(secret: bytes, salt: bytes, length: int, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=PBKDF2_ALGORITHM,
        length=length,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(secret)


def derive_key_pbkdf2(passphrase: str, salt: bytes,
                      iterations: int = PBKDF2_ITERATIONS) -> int:
    """
    Derive a 32-bit Talos key from a passphrase using PBKDF2-HMAC-SHA256.

    Args:
        passphrase: User passphrase
        salt: Random salt
        iterations: Number of PBKDF2 iterations

    Returns:
        Unsigned 32-bit key
    """
    derived = _pbkdf2(passphrase.encode('utf-8'), salt, KEY_BITS // 8, iterations)
    return int.from_bytes(derived, 'big')


def derive_mac_key(key: int, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """Derive the 256-bit HMAC key protecting a vault file."""
    return _pbkdf2(key.to_bytes(KEY_BITS // 8, 'big'), salt + b"hmac", 32, iterations)


def compute_file_hash(file_path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Compute SHA-256 hash of a file (streaming).
    """
    sha256 = hashlib.sha256()
    with open(file_path, 'rb') as f:
        while chunk := f.read(chunk_size):
            sha256.update(chunk)
    return sha256.digest()


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read `size` bytes unless the stream ends first."""
    parts = []
    remaining = size
    while remaining > 0:
        part = stream.read(remaining)
        if not part:
            break
        parts.append(part)
        remaining -= len(part)
    return b"".join(parts)


class ChunkedEncryptor:
    """
    Streaming Talos encryptor.

    Chunks are whole numbers of blocks, so the cipher's automata carry on
    across chunks exactly as they would over one long message; only the
    final chunk is padded.
    """

    def __init__(self, cipher: TalosCipher, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0 or chunk_size % BLOCK_BYTES:
            raise ValueError(f"Chunk size must be a positive multiple of {BLOCK_BYTES}")
        self._cipher = cipher
        self._chunk_size = chunk_size

    def encrypt_stream(self, input_stream: BinaryIO) -> Generator[bytes, None, None]:
        """
        Encrypt a stream in chunks.

        Yields:
            Ciphertext chunks
        """
        while True:
            chunk = _read_exact(input_stream, self._chunk_size)
            if not chunk:
                break
            yield self._cipher.encrypt(chunk)
            if len(chunk) < self._chunk_size:
                break


class ChunkedDecryptor:
    """
    Streaming Talos decryptor that trims the output to the original size.
    """

    def __init__(self, cipher: TalosCipher, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0 or chunk_size % BLOCK_BYTES:
            raise ValueError(f"Chunk size must be a positive multiple of {BLOCK_BYTES}")
        self._cipher = cipher
        self._chunk_size = chunk_size

    def decrypt_stream(self, input_stream: BinaryIO, ciphertext_size: int,
                       original_size: int) -> Generator[bytes, None, None]:
        """
        Decrypt `ciphertext_size` bytes from a stream.

        Yields:
            Plaintext chunks, padding removed
        """
        remaining_in = ciphertext_size
        remaining_out = original_size
        while remaining_in > 0:
            chunk = _read_exact(input_stream, min(self._chunk_size, remaining_in))
            if not chunk:
                raise DecryptionError("Ciphertext ended early")
            remaining_in -= len(chunk)
            plaintext = self._cipher.decrypt_bytes(chunk)[:remaining_out]
            remaining_out -= len(plaintext)
            yield plaintext


class TalosFileEncryptor:
    """
    File encryption with the Talos cipher in the vault format.

    Example:
        >>> vault = TalosFileEncryptor(passphrase="correct horse")
        >>> vault.encrypt_file("notes.txt", "notes.txt.tlos")
        >>> vault.decrypt_file("notes.txt.tlos", "notes_decrypted.txt")
    """

    def __init__(self, key: Optional[int] = None, passphrase: Optional[str] = None,
                 iterations: int = PBKDF2_ITERATIONS):
        """
        Args:
            key: Raw 32-bit Talos key
            passphrase: Passphrase to derive the key from (per-file salt)
            iterations: PBKDF2 iterations

        Exactly one of key and passphrase must be given.
        """
        if (key is None) == (passphrase is None):
            raise ValueError("Specify exactly one of key or passphrase")
        self._key = validate_key(key) if key is not None else None
        self._passphrase = passphrase
        self._iterations = iterations

    def _resolve_key(self, key_source: int, salt: bytes) -> int:
        if key_source == KEY_SOURCE_PASSPHRASE:
            if self._passphrase is None:
                raise DecryptionError("File was encrypted with a passphrase")
            return derive_key_pbkdf2(self._passphrase, salt, self._iterations)
        if self._key is None:
            raise DecryptionError("File was encrypted with a raw key")
        return self._key

    def encrypt_file(self, input_path: str, output_path: str,
                     chunk_size: int = DEFAULT_CHUNK_SIZE) -> dict:
        """
        Encrypt a file with streaming.

        Returns:
            Dict with encryption metadata
        """
        file_size = os.path.getsize(input_path)
        file_hash = compute_file_hash(input_path, chunk_size)

        salt = secrets.token_bytes(SALT_SIZE)
        key_source = KEY_SOURCE_PASSPHRASE if self._passphrase is not None else KEY_SOURCE_RAW
        key = self._resolve_key(key_source, salt)

        header = FileHeader(
            magic=MAGIC_BYTES,
            version=VERSION,
            key_source=key_source,
            salt=salt,
            chunk_size=chunk_size,
            original_size=file_size,
            file_hash=file_hash,
        )

        encryptor = ChunkedEncryptor(TalosCipher(key), chunk_size)
        hmac_state = hmac.new(derive_mac_key(key, salt, self._iterations), digestmod=hashlib.sha256)

        with open(input_path, 'rb') as fin, open(output_path, 'wb') as fout:
            header_bytes = header.to_bytes()
            fout.write(header_bytes)
            hmac_state.update(header_bytes)

            for encrypted_chunk in encryptor.encrypt_stream(fin):
                fout.write(encrypted_chunk)
                hmac_state.update(encrypted_chunk)

            fout.write(hmac_state.digest())

        logger.info(f"Encrypted {input_path} ({file_size} bytes) to {output_path}")
        return {
            'input_size': file_size,
            'output_size': os.path.getsize(output_path),
            'file_hash': file_hash.hex(),
            'chunk_size': chunk_size,
            'key_source': 'passphrase' if key_source == KEY_SOURCE_PASSPHRASE else 'key',
        }

    def decrypt_file(self, input_path: str, output_path: str) -> dict:
        """
        Decrypt a file with integrity verification.

        The HMAC is checked before any decryption happens.

        Returns:
            Dict with decryption metadata

        Raises:
            DecryptionError: On a bad header, failed HMAC (wrong key or
                tampering) or plaintext hash mismatch
        """
        encrypted_size = os.path.getsize(input_path)
        data_size = encrypted_size - HEADER_SIZE - HMAC_SIZE
        if data_size < 0 or data_size % BLOCK_BYTES:
            raise DecryptionError("Invalid file size for a Talos vault file")

        with open(input_path, 'rb') as f:
            header_bytes = f.read(HEADER_SIZE)
            header = FileHeader.from_bytes(header_bytes)
            if not header.validate():
                raise DecryptionError("Invalid file format or version")

            key = self._resolve_key(header.key_source, header.salt)

            # STEP 1: verify HMAC before decryption
            hmac_state = hmac.new(derive_mac_key(key, header.salt, self._iterations),
                                  digestmod=hashlib.sha256)
            hmac_state.update(header_bytes)
            bytes_read = 0
            while bytes_read < data_size:
                chunk = f.read(min(DEFAULT_CHUNK_SIZE, data_size - bytes_read))
                if not chunk:
                    break
                hmac_state.update(chunk)
                bytes_read += len(chunk)

            stored_hmac = f.read(HMAC_SIZE)
            if not hmac.compare_digest(hmac_state.digest(), stored_hmac):
                logger.warning(f"Integrity check failed for {input_path}")
                raise DecryptionError("Integrity check failed - wrong key or tampered file")

            # STEP 2: decrypt
            chunk_size = header.chunk_size
            if chunk_size <= 0 or chunk_size % BLOCK_BYTES:
                raise DecryptionError(f"Invalid chunk size {chunk_size} in header")
            decryptor = ChunkedDecryptor(TalosCipher(key), chunk_size)
            f.seek(HEADER_SIZE)
            bytes_decrypted = 0
            with open(output_path, 'wb') as fout:
                for plaintext in decryptor.decrypt_stream(f, data_size, header.original_size):
                    fout.write(plaintext)
                    bytes_decrypted += len(plaintext)

        if compute_file_hash(output_path) != header.file_hash:
            os.remove(output_path)
            raise DecryptionError("Decrypted file hash mismatch")

        logger.info(f"Decrypted {input_path} to {output_path} ({bytes_decrypted} bytes)")
        return {
            'original_size': header.original_size,
            'decrypted_size': bytes_decrypted,
            'hash_verified': True,
        }


def encrypt_file(input_path: str, output_path: str, key: Optional[int] = None,
                 passphrase: Optional[str] = None, **kwargs) -> dict:
    """Convenience function for file encryption."""
    return TalosFileEncryptor(key, passphrase, **kwargs).encrypt_file(input_path, output_path)


def decrypt_file(input_path: str, output_path: str, key: Optional[int] = None,
                 passphrase: Optional[str] = None, **kwargs) -> dict:
    """Convenience function for file decryption."""
    return TalosFileEncryptor(key, passphrase, **kwargs).decrypt_file(input_path, output_path)


def get_file_info(encrypted_path: str) -> dict:
    """
    Get information about a vault file without decrypting it.
    """
    with open(encrypted_path, 'rb') as f:
        header = FileHeader.from_bytes(f.read(HEADER_SIZE))

    return {
        'valid': header.validate(),
        'version': header.version,
        'key_source': 'passphrase' if header.key_source == KEY_SOURCE_PASSPHRASE else 'key',
        'original_size': header.original_size,
        'file_hash': header.file_hash.hex(),
        'chunk_size': header.chunk_size,
        'encrypted_size': os.path.getsize(encrypted_path),
    }
