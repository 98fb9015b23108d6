"""
Talos Key Schedule

Turns a 32-bit key into the initial states of the cipher's two automata.

Steps:
1. Build a character map: the glyph at position n of the base-32
   alphabet "A-Z2-7" maps to bit n of the key; then '#' is forced to
   True and '.' to False.
2. Decode the transpose and shift templates through the map into tables
   of booleans.
3. Build one automaton per table, both using TALOS_RULE.

Runs once per cipher session.
"""

import logging
import secrets
from typing import Dict, List, NamedTuple, Type

from .automaton import TALOS_RULE, Automaton, AutomatonRule
from .errors import InvalidCharacterError, InvalidKeyError, RaggedTableError
from .matrix import ToroidalBinaryMatrix, ToroidalBitMatrix
from .templates import SHIFT_TEMPLATE, TRANSPOSE_TEMPLATE

logger = logging.getLogger(__name__)


KEY_BITS = 32
KEY_MASK = (1 << KEY_BITS) - 1

# Base-32 digits, one per key bit (A = bit 0, 7 = bit 31)
DEFAULT_KEYS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

# Structural glyphs, independent of the key
CHAR_OVERRIDES = {"#": True, ".": False}


class KeySchedule(NamedTuple):
    """The pair of freshly seeded automata for one cipher session."""
    transpose: Automaton
    shift: Automaton


def validate_key(key: int) -> int:
    """
    Check that a key is an unsigned 32-bit integer.

    Raises:
        InvalidKeyError: If it is not
    """
    if isinstance(key, bool) or not isinstance(key, int):
        raise InvalidKeyError(f"Key must be an integer, got {type(key).__name__}")
    if not 0 <= key <= KEY_MASK:
        raise InvalidKeyError(f"Key must be in [0, {KEY_MASK}], got {key}")
    return key


def generate_key() -> int:
    """Draw a random 32-bit key."""
    return secrets.randbits(KEY_BITS)


def gen_char_map(key: int) -> Dict[str, bool]:
    """
    Map each base-32 digit to one bit of `key`, then apply '#'/'.' overrides.

    Example:
        The key 1 maps 'A' to True and every other digit to False.
        >>> cmap = gen_char_map(1)
        >>> cmap["A"], cmap["B"], cmap["#"], cmap["."]
        (True, False, True, False)
    """
    validate_key(key)
    char_map = {glyph: (key >> n) & 1 != 0 for n, glyph in enumerate(DEFAULT_KEYS)}
    # Overrides go last so they win over any alphabet entry.
    char_map.update(CHAR_OVERRIDES)
    return char_map


def parse_bool_table(text: str, char_map: Dict[str, bool]) -> List[List[bool]]:
    """
    Read a string of glyphs as a table of booleans, one row per line.

    Example:
        With char_map {'#': True, '.': False},
            ..#
            #..
        reads as [[False, False, True], [True, False, False]].

    Args:
        text: Rectangular block of glyphs
        char_map: Glyph -> cell value

    Returns:
        List of rows

    Raises:
        InvalidCharacterError: If a glyph is missing from char_map
        RaggedTableError: If the lines differ in length
    """
    table: List[List[bool]] = []
    for line_no, line in enumerate(text.splitlines()):
        row = []
        for col_no, char in enumerate(line):
            try:
                row.append(char_map[char])
            except KeyError:
                raise InvalidCharacterError(char, line_no + 1, col_no + 1) from None
        if table and len(row) != len(table[0]):
            raise RaggedTableError(expected=len(table[0]), found=len(row), row=line_no)
        table.append(row)
    return table


def seed_automaton(
    template: str,
    key: int,
    rule: AutomatonRule = TALOS_RULE,
    matrix_cls: Type[ToroidalBinaryMatrix] = ToroidalBitMatrix,
) -> Automaton:
    """Decode one template under `key` and wrap it in an automaton."""
    table = parse_bool_table(template, gen_char_map(key))
    return Automaton.from_table(table, rule, matrix_cls)


def seed_automata(
    key: int,
    transpose_template: str = TRANSPOSE_TEMPLATE,
    shift_template: str = SHIFT_TEMPLATE,
    rule: AutomatonRule = TALOS_RULE,
    matrix_cls: Type[ToroidalBinaryMatrix] = ToroidalBitMatrix,
) -> KeySchedule:
    """
    Derive the transpose and shift automata for a session.

    Args:
        key: 32-bit key
        transpose_template: Glyph grid for the transpose automaton
        shift_template: Glyph grid for the shift automaton
        rule: Transition rule shared by both automata
        matrix_cls: Storage backend for the automata grids

    Returns:
        KeySchedule(transpose, shift)

    Raises:
        InvalidKeyError: If key is not a 32-bit unsigned integer
        InvalidCharacterError, RaggedTableError: If a template is malformed
        EmptyTableError: If a template is empty
    """
    char_map = gen_char_map(key)
    transpose = Automaton.from_table(parse_bool_table(transpose_template, char_map), rule, matrix_cls)
    shift = Automaton.from_table(parse_bool_table(shift_template, char_map), rule, matrix_cls)

    if transpose.shape != shift.shape:
        raise ValueError(
            f"Template shapes differ: {transpose.shape} vs {shift.shape}"
        )

    logger.debug(
        f"Seeded automata: transpose alive={transpose.popcount()}, shift alive={shift.popcount()}"
    )
    return KeySchedule(transpose=transpose, shift=shift)
