"""
Unit tests for the key schedule.

Tests:
- Character map derivation and override precedence
- Glyph table parsing and its errors
- Golden initial grids for fixed keys
- Key validation and generation
"""

import pytest
from talos.core.automaton import TALOS_RULE
from talos.core.errors import (
    EmptyTableError, InvalidCharacterError, InvalidKeyError, RaggedTableError, TableReadError
)
from talos.core.key_schedule import (
    CHAR_OVERRIDES, DEFAULT_KEYS, KEY_MASK, gen_char_map, generate_key,
    parse_bool_table, seed_automata, seed_automaton, validate_key
)
from talos.core.matrix import ToroidalBoolMatrix
from talos.core.templates import SHIFT_TEMPLATE, TRANSPOSE_TEMPLATE


# Initial grids for key 0: every base-32 digit decodes to a dead cell.
TRANSPOSE_KEY_0 = """\
.#.#.#.#.#.#.#.#
#.#...#.....#...
...#.#.#.#.#.#.#
#...#.........#.
.....#...#...#..
#.#...#.....#...
.....#.#...#.#..
#...#...#.#...#.
.#.#.....#.....#
#.#...#...#.....
...#.....#.#....
#...#.......#...
.....#...#...#..
#.....#.......#.
...#...#.#.....#
#.......#.......
"""

SHIFT_KEY_0 = """\
..#...#...#...#.
.......#.....#..
#.#.#.#.#...#...
...#.....#.#...#
#...#.....#.....
...#.....#.#.#.#
#.#.....#...#...
.#.....#...#...#
..#...#...#...#.
...#...#.....#..
#...#...#...#...
.#...#...#.#....
......#...#.....
.#.#.#.#.#.#.#.#
..#.........#...
.#...#.#.#...#..
"""

# Initial grids for key 0xFFFFFFFF: every base-32 digit decodes to a live cell.
TRANSPOSE_KEY_ALL = """\
################
####.###.#.###.#
#.##############
##.###.#.#.#.###
#.#.###.###.###.
####.###.#.###.#
#.#.#####.#####.
##.###.#####.###
#####.#.###.#.##
####.###.###.#.#
#.###.#.#####.#.
##.###.#.#.###.#
#.#.###.###.###.
##.#.###.#.#.###
#.###.#####.#.##
##.#.#.###.#.#.#
"""

SHIFT_KEY_ALL = """\
.###.###.###.###
#.#.#.###.#.###.
##########.###.#
#.###.#.#####.##
##.###.#.###.#.#
#.###.#.########
####.#.###.###.#
###.#.###.###.##
.###.###.###.###
#.###.###.#.###.
##.###.###.###.#
###.###.#####.#.
.#.#.###.###.#.#
################
.###.#.#.#.###.#
###.#######.###.
"""


class TestCharMap:
    """Unit tests for gen_char_map."""

    def test_alphabet_has_32_digits(self):
        """One glyph per key bit."""
        assert len(DEFAULT_KEYS) == 32
        assert len(set(DEFAULT_KEYS)) == 32

    def test_key_one_sets_only_a(self):
        """Key 1 maps 'A' to True and every other digit to False."""
        cmap = gen_char_map(1)
        assert cmap["A"] is True
        assert not any(cmap[g] for g in DEFAULT_KEYS[1:])

    def test_bit_positions(self):
        """Digit n maps to bit n of the key."""
        key = 0b1010_0000_0000_0000_0000_0000_0000_0110
        cmap = gen_char_map(key)
        assert cmap["B"] and cmap["C"]
        assert not cmap["A"]
        assert cmap["7"]          # bit 31
        assert not cmap["6"]      # bit 30
        assert cmap["5"]          # bit 29

    @pytest.mark.parametrize("key", [0, 1, 0xDEADBEEF, KEY_MASK])
    def test_overrides_always_win(self, key):
        """'#' is always True and '.' always False."""
        cmap = gen_char_map(key)
        assert cmap["#"] is True
        assert cmap["."] is False
        assert len(cmap) == 32 + len(CHAR_OVERRIDES)


class TestParseBoolTable:
    """Unit tests for parse_bool_table."""

    def test_parse_simple(self):
        """Glyphs decode line by line."""
        table = parse_bool_table("..#\n#..", {"#": True, ".": False})
        assert table == [[False, False, True], [True, False, False]]

    def test_invalid_character(self):
        """Unmapped glyphs are rejected with their position."""
        with pytest.raises(InvalidCharacterError) as info:
            parse_bool_table("..#\n.x.", {"#": True, ".": False})
        assert info.value.char == "x"
        assert info.value.line == 2
        assert info.value.column == 2

    def test_lowercase_digits_invalid(self):
        """The alphabet is upper-case only."""
        with pytest.raises(InvalidCharacterError):
            parse_bool_table("a#", gen_char_map(0))

    def test_ragged_table(self):
        """Lines of different lengths are rejected."""
        with pytest.raises(RaggedTableError):
            parse_bool_table("...\n..", {".": False})

    def test_parse_errors_share_base(self):
        """Both parse errors are TableReadErrors."""
        for text in ("..\n.", "?"):
            with pytest.raises(TableReadError):
                parse_bool_table(text, {".": False})

    def test_empty_string(self):
        """An empty string parses to an empty table."""
        assert parse_bool_table("", {}) == []

    def test_templates_are_16_by_16(self):
        """Both embedded templates decode to 16x16 tables."""
        for template in (TRANSPOSE_TEMPLATE, SHIFT_TEMPLATE):
            table = parse_bool_table(template, gen_char_map(0))
            assert len(table) == 16
            assert all(len(row) == 16 for row in table)


class TestGoldenSeeds:
    """Regression vectors for template seeding."""

    def test_key_zero(self):
        """Key 0 keeps only the template's '#' cells."""
        schedule = seed_automata(0)
        assert schedule.transpose.to_string() == TRANSPOSE_KEY_0
        assert schedule.shift.to_string() == SHIFT_KEY_0

    def test_key_all_ones(self):
        """Key 0xFFFFFFFF makes every digit a live cell."""
        schedule = seed_automata(0xFFFFFFFF)
        assert schedule.transpose.to_string() == TRANSPOSE_KEY_ALL
        assert schedule.shift.to_string() == SHIFT_KEY_ALL

    def test_key_one_adds_a_cells(self):
        """Key 1 adds exactly the 'A' positions to the key-0 grid."""
        base = seed_automata(0)
        schedule = seed_automata(1)
        a_cells = {(2, 8), (10, 14), (11, 11), (15, 15)}
        for r in range(16):
            for c in range(16):
                expected = base.transpose.state.at(r, c) or (r, c) in a_cells
                assert schedule.transpose.state.at(r, c) == expected

    def test_top_bit_seeds_digit_seven(self):
        """Bit 31 controls the '7' cells."""
        schedule = seed_automata(1 << 31)
        base = seed_automata(0)
        sevens = {(1, 0), (3, 12), (4, 7), (8, 5)}
        diff = {
            (r, c) for r in range(16) for c in range(16)
            if schedule.shift.state.at(r, c) != base.shift.state.at(r, c)
        }
        assert diff == sevens

    def test_seeding_is_deterministic(self):
        """The same key always yields the same grids."""
        a, b = seed_automata(0xC0FFEE), seed_automata(0xC0FFEE)
        assert a.transpose.to_string() == b.transpose.to_string()
        assert a.shift.to_string() == b.shift.to_string()

    def test_automata_start_fresh(self):
        """Seeded automata use the cipher rule at generation 0."""
        schedule = seed_automata(7)
        for automaton in schedule:
            assert automaton.rule == TALOS_RULE
            assert automaton.generation == 0
            assert automaton.shape == (16, 16)

    def test_backend_choice(self):
        """Seeding honours the requested storage backend."""
        schedule = seed_automata(5, matrix_cls=ToroidalBoolMatrix)
        assert isinstance(schedule.transpose.state, ToroidalBoolMatrix)
        assert schedule.transpose.to_string() == seed_automata(5).transpose.to_string()

    def test_malformed_template(self):
        """Bad templates surface parse and construction errors."""
        with pytest.raises(InvalidCharacterError):
            seed_automaton("#.x", 0)
        with pytest.raises(RaggedTableError):
            seed_automaton("#.\n#", 0)
        with pytest.raises(EmptyTableError):
            seed_automaton("", 0)


class TestKeys:
    """Key validation and generation."""

    @pytest.mark.parametrize("key", [0, 1, 12345, KEY_MASK])
    def test_valid_keys(self, key):
        """Unsigned 32-bit integers are accepted."""
        assert validate_key(key) == key

    @pytest.mark.parametrize("key", [-1, KEY_MASK + 1, 2 ** 40])
    def test_out_of_range_keys(self, key):
        """Keys outside [0, 2^32) are rejected."""
        with pytest.raises(InvalidKeyError):
            validate_key(key)

    @pytest.mark.parametrize("key", ["123", 1.5, None, True])
    def test_non_integer_keys(self, key):
        """Keys must be ints."""
        with pytest.raises(InvalidKeyError):
            validate_key(key)

    def test_generated_keys_in_range(self):
        """Random keys are valid 32-bit keys."""
        for _ in range(50):
            assert 0 <= generate_key() <= KEY_MASK
