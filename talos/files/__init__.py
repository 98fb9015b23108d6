# File Encryption Module
"""
File encryption with the Talos cipher:
- Raw 32-bit keys or PBKDF2-derived passphrase keys
- Streaming encryption in whole-block chunks
- HMAC-SHA256 verified BEFORE decryption
- SHA-256 of the plaintext verified after decryption
"""

from .file_crypto import (
    DEFAULT_CHUNK_SIZE,
    PBKDF2_ITERATIONS,
    ChunkedDecryptor,
    ChunkedEncryptor,
    FileHeader,
    TalosFileEncryptor,
    compute_file_hash,
    decrypt_file,
    derive_key_pbkdf2,
    encrypt_file,
    get_file_info,
)

__all__ = [
    'TalosFileEncryptor',
    'FileHeader',
    'ChunkedEncryptor',
    'ChunkedDecryptor',
    'encrypt_file',
    'decrypt_file',
    'get_file_info',
    'derive_key_pbkdf2',
    'compute_file_hash',
    'PBKDF2_ITERATIONS',
    'DEFAULT_CHUNK_SIZE',
]
