"""
Toroidal Binary Matrices

Fixed-size two-dimensional bit grids whose indices wrap around on both
axes, so the grid behaves like the surface of a torus: row -1 is the last
row, column `cols` is column 0, and so on.

Components:
- ToroidalBinaryMatrix: the shared contract (abstract base class)
- ToroidalBitMatrix: cells packed 32 to a word, used for automaton state
- ToroidalBoolMatrix: one bool per cell, used for message blocks

Both backends are observationally identical through the base-class
methods; the only difference is how the bits are stored.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from .errors import DimensionMismatchError, EmptyTableError, RaggedTableError


# Bits per storage word in ToroidalBitMatrix
WORD_BITS = 32
WORD_MASK = (1 << WORD_BITS) - 1

TRUE_CHAR = "#"
FALSE_CHAR = "."

MatrixIndex = Tuple[int, int]


def validate_table(table: Sequence[Sequence[bool]]) -> Tuple[int, int]:
    """
    Check that a table of booleans can define a matrix.

    Args:
        table: Rows of cell values

    Returns:
        (rows, cols) of the table

    Raises:
        EmptyTableError: If the table has no rows or its first row is empty
        RaggedTableError: If any row differs in length from the first
    """
    rows = len(table)
    cols = len(table[0]) if rows else 0
    if cols == 0:
        raise EmptyTableError()

    for i, row in enumerate(table):
        if len(row) != cols:
            raise RaggedTableError(expected=cols, found=len(row), row=i)

    return rows, cols


class ToroidalBinaryMatrix(ABC):
    """
    A rows x cols grid of bits with toroidal (wraparound) indexing.

    Subclasses provide flat bit storage through `_get_bit`, `_set_bit` and
    `raw_storage`; everything else is defined here in terms of those.

    Example:
        >>> m = ToroidalBoolMatrix.from_table([[True, False], [False, False]])
        >>> m.at(-2, 2)
        True
    """

    def __init__(self, rows: int, cols: int):
        if rows <= 0 or cols <= 0:
            raise EmptyTableError()
        self._rows = rows
        self._cols = cols

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_table(cls, table: Sequence[Sequence[bool]]) -> "ToroidalBinaryMatrix":
        """
        Build a matrix from rows of booleans, copied in row-major order.

        Raises:
            EmptyTableError: If the table has no cells
            RaggedTableError: If the rows differ in length
        """
        rows, cols = validate_table(table)
        return cls.from_storage(rows, cols, [bool(v) for row in table for v in row])

    @classmethod
    @abstractmethod
    def from_storage(cls, rows: int, cols: int, bits: Sequence[bool]) -> "ToroidalBinaryMatrix":
        """Build a matrix from a flat row-major sequence of rows * cols bits."""

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "ToroidalBinaryMatrix":
        """Build an all-false matrix."""
        return cls.from_storage(rows, cols, [False] * (rows * cols))

    @staticmethod
    def _check_storage_length(rows: int, cols: int, bits: Sequence[bool]) -> None:
        if rows <= 0 or cols <= 0:
            raise EmptyTableError()
        if len(bits) != rows * cols:
            raise ValueError(
                f"Storage holds {len(bits)} bits, expected {rows * cols} for {rows}x{cols}"
            )

    def copy(self) -> "ToroidalBinaryMatrix":
        """Return an independent matrix of the same backend and contents."""
        return type(self).from_storage(self._rows, self._cols, self.raw_storage())

    # ------------------------------------------------------------------
    # Storage primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _get_bit(self, index: int) -> bool:
        """Read the bit at a flat row-major index in [0, rows * cols)."""

    @abstractmethod
    def _set_bit(self, index: int, value: bool) -> None:
        """Write the bit at a flat row-major index in [0, rows * cols)."""

    @abstractmethod
    def raw_storage(self) -> List[bool]:
        """Flat row-major copy of every cell."""

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def shape(self) -> Tuple[int, int]:
        return self._rows, self._cols

    def _flat_index(self, row: int, col: int) -> int:
        return (row % self._rows) * self._cols + (col % self._cols)

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def at(self, row: int, col: int) -> bool:
        """
        Read a cell. Any integer row or column is accepted and wrapped.

        Args:
            row: Row index (reduced modulo rows)
            col: Column index (reduced modulo cols)

        Returns:
            The cell's value
        """
        return self._get_bit(self._flat_index(row, col))

    def set(self, row: int, col: int, value: bool) -> bool:
        """
        Write a cell, wrapping the indices like `at`.

        Returns:
            The value the cell held before the write
        """
        index = self._flat_index(row, col)
        previous = self._get_bit(index)
        self._set_bit(index, bool(value))
        return previous

    def __getitem__(self, idx: MatrixIndex) -> bool:
        return self.at(idx[0], idx[1])

    def __setitem__(self, idx: MatrixIndex, value: bool) -> None:
        self.set(idx[0], idx[1], value)

    def popcount(self) -> int:
        """Number of true cells."""
        return sum(self.raw_storage())

    # ------------------------------------------------------------------
    # Whole-matrix operations
    # ------------------------------------------------------------------

    def bitwise_xor(self, other: "ToroidalBinaryMatrix") -> "ToroidalBinaryMatrix":
        """
        XOR `other` into this matrix element by element.

        The two matrices may use different backends.

        Returns:
            self, to allow chaining

        Raises:
            DimensionMismatchError: If the shapes differ
        """
        if self.shape != other.shape:
            raise DimensionMismatchError(self.shape, other.shape)

        for index, bit in enumerate(other.raw_storage()):
            if bit:
                self._set_bit(index, not self._get_bit(index))
        return self

    def swap_rows(self, a: int, b: int) -> None:
        """Exchange rows `a` and `b` (both wrapped)."""
        a %= self._rows
        b %= self._rows
        if a == b:
            return
        for col in range(self._cols):
            ia = a * self._cols + col
            ib = b * self._cols + col
            va, vb = self._get_bit(ia), self._get_bit(ib)
            self._set_bit(ia, vb)
            self._set_bit(ib, va)

    def swap_cols(self, a: int, b: int) -> None:
        """Exchange columns `a` and `b` (both wrapped)."""
        a %= self._cols
        b %= self._cols
        if a == b:
            return
        for row in range(self._rows):
            ia = row * self._cols + a
            ib = row * self._cols + b
            va, vb = self._get_bit(ia), self._get_bit(ib)
            self._set_bit(ia, vb)
            self._set_bit(ib, va)

    def read_nibble(self, idx0: MatrixIndex, idx1: MatrixIndex,
                    idx2: MatrixIndex, idx3: MatrixIndex) -> int:
        """
        Concatenate four cells into a 4-bit integer.

        Bit i of the result is set iff the cell at the i-th index is true,
        so idx0 is the least significant bit.

        Args:
            idx0, idx1, idx2, idx3: (row, col) pairs, wrapped like `at`

        Returns:
            Integer in [0, 16)
        """
        result = 0
        for i, (row, col) in enumerate((idx0, idx1, idx2, idx3)):
            if self.at(row, col):
                result |= 1 << i
        return result

    # ------------------------------------------------------------------
    # Rendering and comparison
    # ------------------------------------------------------------------

    def to_rows(self) -> List[List[bool]]:
        """Copy the matrix out as a list of rows."""
        bits = self.raw_storage()
        return [bits[r * self._cols:(r + 1) * self._cols] for r in range(self._rows)]

    def render(self, true_char: str = TRUE_CHAR, false_char: str = FALSE_CHAR) -> str:
        """One glyph per cell, each row followed by a newline."""
        return "".join(
            "".join(true_char if v else false_char for v in row) + "\n"
            for row in self.to_rows()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToroidalBinaryMatrix):
            return NotImplemented
        return self.shape == other.shape and self.raw_storage() == other.raw_storage()

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rows={self._rows}, cols={self._cols}, alive={self.popcount()})"


class ToroidalBitMatrix(ToroidalBinaryMatrix):
    """
    Toroidal matrix packing cells into 32-bit words.

    Cell at flat index i lives in word i // 32 at bit i % 32. Keeps an
    automaton's state compact over many generations.
    """

    def __init__(self, rows: int, cols: int, words: List[int]):
        super().__init__(rows, cols)
        n_words = (rows * cols + WORD_BITS - 1) // WORD_BITS
        if len(words) != n_words:
            raise ValueError(f"Expected {n_words} storage words, got {len(words)}")
        self._words = [w & WORD_MASK for w in words]

    @classmethod
    def from_storage(cls, rows: int, cols: int, bits: Sequence[bool]) -> "ToroidalBitMatrix":
        cls._check_storage_length(rows, cols, bits)
        words = []
        for start in range(0, len(bits), WORD_BITS):
            word = 0
            for offset, bit in enumerate(bits[start:start + WORD_BITS]):
                if bit:
                    word |= 1 << offset
            words.append(word)
        return cls(rows, cols, words)

    @property
    def words(self) -> List[int]:
        """Copy of the packed storage words."""
        return list(self._words)

    def _get_bit(self, index: int) -> bool:
        return (self._words[index // WORD_BITS] >> (index % WORD_BITS)) & 1 != 0

    def _set_bit(self, index: int, value: bool) -> None:
        word, offset = divmod(index, WORD_BITS)
        if value:
            self._words[word] |= 1 << offset
        else:
            self._words[word] &= ~(1 << offset) & WORD_MASK

    def raw_storage(self) -> List[bool]:
        return [self._get_bit(i) for i in range(self._rows * self._cols)]

    def popcount(self) -> int:
        return sum(bin(w).count("1") for w in self._words)

    def bitwise_xor(self, other: ToroidalBinaryMatrix) -> ToroidalBinaryMatrix:
        if isinstance(other, ToroidalBitMatrix) and self.shape == other.shape:
            self._words = [a ^ b for a, b in zip(self._words, other._words)]
            return self
        return super().bitwise_xor(other)


class ToroidalBoolMatrix(ToroidalBinaryMatrix):
    """
    Toroidal matrix holding one bool per cell.

    Direct indexing with no packing, suited to message blocks that are
    touched once per cipher step.
    """

    def __init__(self, rows: int, cols: int, cells: List[bool]):
        super().__init__(rows, cols)
        self._check_storage_length(rows, cols, cells)
        self._cells = [bool(c) for c in cells]

    @classmethod
    def from_storage(cls, rows: int, cols: int, bits: Sequence[bool]) -> "ToroidalBoolMatrix":
        return cls(rows, cols, list(bits))

    def _get_bit(self, index: int) -> bool:
        return self._cells[index]

    def _set_bit(self, index: int, value: bool) -> None:
        self._cells[index] = value

    def raw_storage(self) -> List[bool]:
        return list(self._cells)

    def swap_rows(self, a: int, b: int) -> None:
        a %= self._rows
        b %= self._rows
        if a == b:
            return
        c = self._cols
        self._cells[a * c:(a + 1) * c], self._cells[b * c:(b + 1) * c] = (
            self._cells[b * c:(b + 1) * c],
            self._cells[a * c:(a + 1) * c],
        )

    def bitwise_xor(self, other: ToroidalBinaryMatrix) -> ToroidalBinaryMatrix:
        if self.shape != other.shape:
            raise DimensionMismatchError(self.shape, other.shape)
        self._cells = [a != b for a, b in zip(self._cells, other.raw_storage())]
        return self
