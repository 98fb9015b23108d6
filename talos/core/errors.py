"""
Talos Error Types

Every failure the cipher core can report derives from TalosError.
Errors caused by bad input values also derive from ValueError so callers
that only catch ValueError keep working.

Taxonomy:
- Construction: EmptyTableError, RaggedTableError
- Parsing: InvalidCharacterError, RaggedTableError
- Shape: DimensionMismatchError
- Keys: InvalidKeyError
- Decoding: DecryptionError
"""


class TalosError(Exception):
    """Base class for all Talos errors."""


class MatrixConstructError(TalosError, ValueError):
    """A matrix or automaton could not be built from its initial table."""


class TableReadError(TalosError, ValueError):
    """A glyph table could not be read into a table of booleans."""


class EmptyTableError(MatrixConstructError):
    """A table with no rows or no columns cannot define a matrix."""

    def __init__(self, message: str = "Table must have at least one row and one column"):
        super().__init__(message)


class RaggedTableError(MatrixConstructError, TableReadError):
    """Every row of a table must have the same number of columns."""

    def __init__(self, expected: int, found: int, row: int):
        self.expected = expected
        self.found = found
        self.row = row
        super().__init__(
            f"Ragged table: row {row} has {found} columns, expected {expected}"
        )


class InvalidCharacterError(TableReadError):
    """A glyph in a table string has no entry in the character map."""

    def __init__(self, char: str, line: int, column: int):
        self.char = char
        self.line = line
        self.column = column
        super().__init__(
            f"Invalid character {char!r} at line {line}, column {column}"
        )


class DimensionMismatchError(TalosError, ValueError):
    """Two matrices combined element-wise must have identical shapes."""

    def __init__(self, left, right):
        self.left = left
        self.right = right
        super().__init__(f"Dimension mismatch: {left[0]}x{left[1]} vs {right[0]}x{right[1]}")


class InvalidKeyError(TalosError, ValueError):
    """Keys are unsigned 32-bit integers."""


class DecryptionError(TalosError, ValueError):
    """Ciphertext did not decrypt to valid output under the given key."""

    def __init__(self, message: str = "Wrong key or malformed ciphertext"):
        super().__init__(message)
