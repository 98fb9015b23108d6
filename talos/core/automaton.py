"""
Two-Dimensional Binary Cellular Automaton

A Game-of-Life-style automaton on a toroidal grid. Each generation every
cell looks at its eight Moore neighbours (wrapping around the grid edges)
and consults the rule tables:

- alive cell with n live neighbours: dies if rule.dies[n]
- dead cell with n live neighbours: becomes alive if rule.born[n]

All cells are updated synchronously. The automaton keeps two grids and
writes each generation into the back grid from the front grid, then swaps
them, so no cell ever sees a neighbour's already-updated value.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Type

from .matrix import FALSE_CHAR, TRUE_CHAR, ToroidalBinaryMatrix, ToroidalBitMatrix

logger = logging.getLogger(__name__)


# Relative (row, col) positions of the Moore neighbourhood
NEIGHBOR_OFFSETS: Tuple[Tuple[int, int], ...] = tuple(
    (dr, dc) for dr in (-1, 0, 1) for dc in (-1, 0, 1) if (dr, dc) != (0, 0)
)

_RULE_PATTERN = re.compile(r"^B([0-8]*)/S([0-8]*)$", re.IGNORECASE)


@dataclass(frozen=True)
class AutomatonRule:
    """
    How an Automaton changes from one generation to the next.

    Both tables have 9 entries indexed by live-neighbour count (0-8).

    Attributes:
        born: born[i] is True if a dead cell with i live neighbours comes alive
        dies: dies[i] is True if a live cell with i live neighbours dies

    Example:
        >>> rule = AutomatonRule.from_string("B3/S23")  # Conway's Life
        >>> rule.born[3], rule.dies[2]
        (True, False)
    """
    born: Tuple[bool, ...]
    dies: Tuple[bool, ...]

    def __post_init__(self):
        for name in ("born", "dies"):
            table = tuple(bool(v) for v in getattr(self, name))
            if len(table) != 9:
                raise ValueError(f"Rule table '{name}' must have 9 entries, got {len(table)}")
            object.__setattr__(self, name, table)

    @classmethod
    def from_string(cls, notation: str) -> "AutomatonRule":
        """
        Parse a rule in B/S notation, e.g. "B3/S23".

        Digits after B are the neighbour counts at which a dead cell is
        born; digits after S are the counts at which a live cell survives.
        """
        match = _RULE_PATTERN.match(notation.strip())
        if not match:
            raise ValueError(f"Invalid rule notation: {notation!r}")
        born_counts = {int(d) for d in match.group(1)}
        survive_counts = {int(d) for d in match.group(2)}
        return cls(
            born=tuple(i in born_counts for i in range(9)),
            dies=tuple(i not in survive_counts for i in range(9)),
        )

    def to_string(self) -> str:
        born = "".join(str(i) for i in range(9) if self.born[i])
        survive = "".join(str(i) for i in range(9) if not self.dies[i])
        return f"B{born}/S{survive}"

    def __str__(self) -> str:
        return self.to_string()


# The rule driving both cipher automata: born with 2-6 neighbours,
# survives with 2-4.
TALOS_RULE = AutomatonRule(
    born=(False, False, True, True, True, True, True, False, False),
    dies=(True, True, False, False, False, True, True, True, True),
)

# Conway's Game of Life, B3/S23
CONWAY_RULE = AutomatonRule.from_string("B3/S23")


class Automaton:
    """
    A 2D binary cellular automaton on a toroidal (wraparound) grid.

    The automaton owns its grid and mutates it in place; the rule is
    shared and never modified.

    Example:
        >>> table = [[False] * 5 for _ in range(5)]
        >>> table[2][1] = table[2][2] = table[2][3] = True
        >>> life = Automaton.from_table(table, CONWAY_RULE)
        >>> life.iter_rule(2)
        >>> life.state.at(2, 1)
        True
    """

    def __init__(self, state: ToroidalBinaryMatrix, rule: AutomatonRule = TALOS_RULE):
        """
        Args:
            state: Initial grid; the automaton takes ownership of it
            rule: Transition rule used by iter_rule
        """
        self._state = state
        self._back = state.copy()
        self._rule = rule
        self._generation = 0
        self._neighbor_table = self._build_neighbor_table(state.rows, state.cols)

    @classmethod
    def from_table(
        cls,
        table: Sequence[Sequence[bool]],
        rule: AutomatonRule = TALOS_RULE,
        matrix_cls: Type[ToroidalBinaryMatrix] = ToroidalBitMatrix,
    ) -> "Automaton":
        """
        Build an automaton whose initial grid is a table of booleans.

        Raises:
            EmptyTableError: If the table has zero rows or columns
            RaggedTableError: If the rows have different lengths
        """
        return cls(matrix_cls.from_table(table), rule)

    @staticmethod
    def _build_neighbor_table(rows: int, cols: int) -> List[Tuple[int, ...]]:
        """Flat indices of each cell's eight wrapped neighbours."""
        return [
            tuple(((r + dr) % rows) * cols + (c + dc) % cols for dr, dc in NEIGHBOR_OFFSETS)
            for r in range(rows)
            for c in range(cols)
        ]

    @property
    def state(self) -> ToroidalBinaryMatrix:
        """The current grid."""
        return self._state

    @property
    def rule(self) -> AutomatonRule:
        return self._rule

    @property
    def generation(self) -> int:
        """Total generations run since construction."""
        return self._generation

    @property
    def shape(self) -> Tuple[int, int]:
        return self._state.shape

    def popcount(self) -> int:
        """Number of live cells."""
        return self._state.popcount()

    def alive_neighbors(self, row: int, col: int) -> int:
        """
        Count the live cells among the eight toroidal neighbours of a cell.

        Cells on an edge take neighbours from the opposite edge.

        Returns:
            Integer in [0, 8]
        """
        return sum(self._state.at(row + dr, col + dc) for dr, dc in NEIGHBOR_OFFSETS)

    def iter_rule(self, n: int = 1, rule: Optional[AutomatonRule] = None) -> None:
        """
        Advance the automaton by `n` synchronous generations.

        Args:
            n: Number of generations
            rule: Rule to apply instead of the automaton's own
        """
        if n < 0:
            raise ValueError("Generation count must be non-negative")
        rule = rule or self._rule
        born, dies = rule.born, rule.dies
        cols = self._state.cols

        for _ in range(n):
            current = self._state.raw_storage()
            back = self._back
            for index, neighbors in enumerate(self._neighbor_table):
                count = sum(current[i] for i in neighbors)
                if current[index]:
                    value = not dies[count]
                else:
                    value = born[count]
                back.set(index // cols, index % cols, value)

            self._state, self._back = back, self._state
            self._generation += 1

    def to_string(self) -> str:
        """
        Render the grid with '#' for live and '.' for dead cells.

        Every row, the last included, ends with a newline. Identical grids
        always render identically.
        """
        return self._state.render(TRUE_CHAR, FALSE_CHAR)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        rows, cols = self.shape
        return (
            f"Automaton(rule={self._rule}, shape={rows}x{cols}, "
            f"generation={self._generation}, alive={self.popcount()})"
        )
