# Talos
"""
Talos - a symmetric block cipher keyed by two-dimensional cellular automata.

Modules:
- core: matrices, automata, key schedule and the block cipher
- files: streaming file encryption in the vault container format
- analysis: automaton state-cycle scanning
"""

from .core.block_cipher import TalosCipher, decrypt_message, encrypt_message

__version__ = "0.1.0"

__all__ = [
    'TalosCipher',
    'encrypt_message',
    'decrypt_message',
    '__version__',
]
