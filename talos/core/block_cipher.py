"""
Talos Block Cipher

A 256-bit block cipher keyed by the state of two cellular automata.

For every 32-byte block the cipher:
1. Advances the transpose and shift automata by 11 generations each
2. Lays the block out as a 16x16 bit grid M (row-major, LSB-first bytes)
3. Permutes the rows and columns of M with swaps chosen by the transpose
   automaton's grid K (scramble)
4. XORs K into M

Decryption advances the automata identically, XORs K back out and undoes
the swaps in reverse order. Because block i is keyed by the automata after
11 * (i + 1) generations, blocks must be processed in order on both sides.

WARNING: This is an experimental cipher with no security proof. Use it to
study cellular-automaton key streams, not to protect real data.
"""

import logging
from typing import Iterator, Optional, Tuple, Type, Union

from .bits import concat_bits_to_bytes, explode_bytes, split_blocks
from .errors import DecryptionError, DimensionMismatchError
from .key_schedule import generate_key, seed_automata, validate_key
from .matrix import ToroidalBinaryMatrix, ToroidalBitMatrix, ToroidalBoolMatrix

logger = logging.getLogger(__name__)


# Block geometry
GRID_SIZE = 16
BLOCK_BITS = GRID_SIZE * GRID_SIZE   # 256
BLOCK_BYTES = BLOCK_BITS // 8        # 32

# Automaton generations run before each block
GENERATIONS_PER_BLOCK = 11

# Permutation network layout
BLOCK_COUNT = 4                      # row/column blocks of 4 lines each
TAPS = (0, 4, 8, 12)                 # key positions feeding each nibble
ROW_PHASE_SHIFTS = (0, 2, 1, 3)      # column shift for row offsets 0..3
COL_PHASE_SHIFTS = (3, 0, 2, 1)      # row shift for column offsets 0..3

# One swap: ("row" | "col", base line, target line)
Swap = Tuple[str, int, int]


def _check_block_shape(message: ToroidalBinaryMatrix, key: ToroidalBinaryMatrix) -> None:
    expected = (GRID_SIZE, GRID_SIZE)
    if key.shape != expected:
        raise DimensionMismatchError(key.shape, expected)
    if message.shape != key.shape:
        raise DimensionMismatchError(message.shape, key.shape)


def swap_schedule(key: ToroidalBinaryMatrix) -> Iterator[Swap]:
    """
    Yield the swaps of the permutation network, in scramble order.

    Row phase: for row block b (base row 4b) and row offset j, the nibble
    read from K at row 4b+j, columns TAPS shifted by ROW_PHASE_SHIFTS[j],
    picks the row that gets swapped with row 4b.

    Column phase: for column block b (base column 4b) and column offset j,
    the nibble read from K at column 4b+j, rows TAPS shifted by
    COL_PHASE_SHIFTS[j], picks the column that gets swapped with column 4b.
    """
    for block in range(BLOCK_COUNT):
        base = 4 * block
        for row_offset, col_shift in enumerate(ROW_PHASE_SHIFTS):
            row = base + row_offset
            target = key.read_nibble(*((row, tap + col_shift) for tap in TAPS))
            yield "row", base, target

    for block in range(BLOCK_COUNT):
        base = 4 * block
        for col_offset, row_shift in enumerate(COL_PHASE_SHIFTS):
            col = base + col_offset
            target = key.read_nibble(*((tap + row_shift, col) for tap in TAPS))
            yield "col", base, target


def _apply_swap(message: ToroidalBinaryMatrix, swap: Swap) -> None:
    axis, base, target = swap
    if axis == "row":
        message.swap_rows(base, target)
    else:
        message.swap_cols(base, target)


def scramble_matrix(message: ToroidalBinaryMatrix, key: ToroidalBinaryMatrix) -> ToroidalBinaryMatrix:
    """
    Permute the rows and columns of a 16x16 message grid, keyed by `key`.

    Mutates `message` in place and returns it.
    """
    _check_block_shape(message, key)
    for swap in swap_schedule(key):
        _apply_swap(message, swap)
    return message


def unscramble_matrix(message: ToroidalBinaryMatrix, key: ToroidalBinaryMatrix) -> ToroidalBinaryMatrix:
    """
    Inverse of scramble_matrix for the same key.

    Every swap is its own inverse, so replaying the schedule backwards
    restores the original grid.
    """
    _check_block_shape(message, key)
    for swap in reversed(list(swap_schedule(key))):
        _apply_swap(message, swap)
    return message


def _strip_padding(padded: bytes) -> bytes:
    """Drop the zero bytes added to fill the final block."""
    if not padded:
        return padded
    body, last = padded[:-BLOCK_BYTES], padded[-BLOCK_BYTES:]
    return body + last.rstrip(b"\x00")


class TalosCipher:
    """
    One Talos session: a key and the two automata seeded from it.

    The automata advance with every block processed, so a session used to
    encrypt cannot then decrypt; use a fresh session (or reset()) with the
    same key. Consecutive encrypt() calls continue the same key stream,
    exactly as if their inputs had been concatenated on block boundaries.

    Example:
        >>> ciphertext = TalosCipher(key=0xC0FFEE).encrypt(b"attack at dawn")
        >>> len(ciphertext)
        32
        >>> TalosCipher(key=0xC0FFEE).decrypt(ciphertext)
        'attack at dawn'
    """

    def __init__(self, key: Optional[int] = None,
                 matrix_cls: Type[ToroidalBinaryMatrix] = ToroidalBitMatrix):
        """
        Args:
            key: 32-bit key; a random key is drawn if None
            matrix_cls: Storage backend for the automata grids

        Raises:
            InvalidKeyError: If key is not a 32-bit unsigned integer
        """
        self._matrix_cls = matrix_cls
        self._key = validate_key(key) if key is not None else generate_key()
        self._reseed()

    def _reseed(self) -> None:
        schedule = seed_automata(self._key, matrix_cls=self._matrix_cls)
        self._transpose = schedule.transpose
        self._shift = schedule.shift
        self._blocks_processed = 0
        logger.debug(f"Talos session seeded ({self._matrix_cls.__name__} backend)")

    @property
    def key(self) -> int:
        return self._key

    @property
    def blocks_processed(self) -> int:
        """Blocks encrypted or decrypted since seeding."""
        return self._blocks_processed

    @property
    def transpose_automaton(self):
        return self._transpose

    @property
    def shift_automaton(self):
        return self._shift

    def reset(self, new_key: Optional[int] = None) -> None:
        """
        Re-seed the automata from the session key, or from a new key.
        """
        if new_key is not None:
            self._key = validate_key(new_key)
        self._reseed()

    def _advance(self) -> ToroidalBinaryMatrix:
        """Step both automata for the next block and return the key grid."""
        self._shift.iter_rule(GENERATIONS_PER_BLOCK)
        self._transpose.iter_rule(GENERATIONS_PER_BLOCK)
        self._blocks_processed += 1
        return self._transpose.state

    @staticmethod
    def _to_grid(block: bytes) -> ToroidalBoolMatrix:
        if len(block) != BLOCK_BYTES:
            raise ValueError(f"Block must be {BLOCK_BYTES} bytes, got {len(block)}")
        return ToroidalBoolMatrix.from_storage(GRID_SIZE, GRID_SIZE, explode_bytes(block))

    def encrypt_block(self, block: bytes) -> bytes:
        """
        Encrypt one 32-byte block: C = scramble(P, K) xor K.
        """
        grid = self._to_grid(block)
        key_grid = self._advance()
        scramble_matrix(grid, key_grid)
        grid.bitwise_xor(key_grid)
        return concat_bits_to_bytes(grid.raw_storage())

    def decrypt_block(self, block: bytes) -> bytes:
        """
        Decrypt one 32-byte block: P = unscramble(C xor K, K).
        """
        grid = self._to_grid(block)
        key_grid = self._advance()
        grid.bitwise_xor(key_grid)
        unscramble_matrix(grid, key_grid)
        return concat_bits_to_bytes(grid.raw_storage())

    def encrypt(self, plaintext: Union[bytes, str]) -> bytes:
        """
        Encrypt a message, zero padding the final block.

        Args:
            plaintext: Bytes, or text (encoded as UTF-8)

        Returns:
            Ciphertext, always a multiple of 32 bytes long
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")
        ciphertext = b"".join(
            self.encrypt_block(block) for block in split_blocks(plaintext, BLOCK_BYTES)
        )
        logger.debug(f"Encrypted {len(plaintext)} bytes into {len(ciphertext) // BLOCK_BYTES} blocks")
        return ciphertext

    def decrypt_bytes(self, ciphertext: bytes) -> bytes:
        """
        Decrypt a ciphertext, keeping the zero padding of the final block.

        Raises:
            DecryptionError: If the length is not a multiple of 32 bytes
        """
        if len(ciphertext) % BLOCK_BYTES:
            raise DecryptionError(
                f"Malformed ciphertext: {len(ciphertext)} bytes is not a multiple of {BLOCK_BYTES}"
            )
        return b"".join(
            self.decrypt_block(ciphertext[i:i + BLOCK_BYTES])
            for i in range(0, len(ciphertext), BLOCK_BYTES)
        )

    def decrypt(self, ciphertext: bytes) -> str:
        """
        Decrypt a ciphertext into text.

        Trailing zero bytes of the final block are treated as padding and
        removed before UTF-8 decoding, including any NULs that ended the
        original text. The removal is logged at DEBUG; decrypt_bytes()
        returns the padded plaintext untouched.

        Raises:
            DecryptionError: If the ciphertext is malformed or the result is
                not valid UTF-8 (usually a wrong key)
        """
        padded = self.decrypt_bytes(ciphertext)
        plaintext = _strip_padding(padded)
        if len(plaintext) != len(padded):
            logger.debug(
                f"Stripped {len(padded) - len(plaintext)} trailing NUL bytes from the final block; "
                "use decrypt_bytes() to keep them"
            )
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning(f"Decrypted data is not valid UTF-8 ({exc.reason} at byte {exc.start})")
            raise DecryptionError() from exc

    def __repr__(self) -> str:
        return f"TalosCipher(blocks_processed={self._blocks_processed})"


def encrypt_message(plaintext: Union[bytes, str], key: int) -> bytes:
    """Encrypt a whole message under `key` with a fresh session."""
    return TalosCipher(key).encrypt(plaintext)


def decrypt_message(ciphertext: bytes, key: int) -> str:
    """Decrypt a whole message under `key` into text."""
    return TalosCipher(key).decrypt(ciphertext)


def decrypt_message_bytes(ciphertext: bytes, key: int) -> bytes:
    """Decrypt a whole message under `key`, padding included."""
    return TalosCipher(key).decrypt_bytes(ciphertext)
