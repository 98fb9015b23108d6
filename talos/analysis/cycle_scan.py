"""
Automaton Cycle Scan

Research harness for the key schedule: seeds a template under many keys,
runs each automaton until its state repeats, and reports how long each
trajectory lasted before cycling and whether the repeated state had
already appeared under an earlier key.

Output is tab-separated, one row per seed:
    test  n_generations  seed  avg_alive  contains_global_duplicate
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, TextIO

from ..core.automaton import TALOS_RULE, AutomatonRule
from ..core.errors import TalosError
from ..core.key_schedule import generate_key, seed_automaton
from ..core.matrix import TRUE_CHAR
from ..core.templates import TEMPLATES

logger = logging.getLogger(__name__)


DEFAULT_GENERATIONS = 32_000


@dataclass
class CycleReport:
    """Outcome of one seed's run."""
    test: int
    n_generations: int
    seed: int
    avg_alive: float
    contains_global_duplicate: bool

    def to_row(self) -> str:
        return (
            f"{self.test}\t{self.n_generations}\t{self.seed}\t"
            f"{self.avg_alive}\t{str(self.contains_global_duplicate).lower()}"
        )


class CycleScanner:
    """
    Tracks automaton states across seeds to find cycles.

    States are compared by their '#'/'.' rendering. States seen under
    earlier seeds are kept in a global set, so a run can tell a return to
    its own history apart from a state another key already visited.
    """

    def __init__(self, template: str, rule: AutomatonRule = TALOS_RULE,
                 generations: int = DEFAULT_GENERATIONS):
        if generations <= 0:
            raise ValueError("Generation count must be positive")
        self._template = template
        self._rule = rule
        self._generations = generations
        self._global_states: Set[str] = set()
        self._tests_run = 0

    @property
    def global_state_count(self) -> int:
        return len(self._global_states)

    def scan_seed(self, seed: int) -> CycleReport:
        """
        Run one seed until its state repeats or the generation budget ends.

        Returns:
            CycleReport; n_generations is the generation at which the first
            repeated state appeared (the budget if none did)
        """
        automaton = seed_automaton(self._template, seed, self._rule)
        rows, cols = automaton.shape
        local_states: Set[str] = set()
        alive_total = 0
        final_generation = self._generations
        global_duplicate = False

        for generation in range(self._generations):
            rendering = automaton.to_string()
            alive_total += rendering.count(TRUE_CHAR)

            if rendering in self._global_states:
                global_duplicate = True
                final_generation = generation
                break
            if rendering in local_states:
                final_generation = generation
                break
            local_states.add(rendering)
            automaton.iter_rule(1)

        self._global_states.update(local_states)

        observed = min(final_generation, self._generations - 1) + 1
        report = CycleReport(
            test=self._tests_run,
            n_generations=final_generation,
            seed=seed,
            avg_alive=alive_total / (rows * cols * observed),
            contains_global_duplicate=global_duplicate,
        )
        self._tests_run += 1
        logger.debug(f"Seed {seed}: repeat at generation {final_generation}")
        return report

    def scan(self, seeds: Iterable[int]) -> Iterator[CycleReport]:
        """Scan seeds in order, sharing the global state set."""
        for seed in seeds:
            yield self.scan_seed(seed)


def seed_sequence(count: int, contiguous: bool = False) -> Iterator[int]:
    """Seeds 0..count-1 if contiguous, otherwise `count` random keys."""
    for i in range(count):
        yield i if contiguous else generate_key()


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Scan key-schedule seeds for automaton state cycles"
    )
    parser.add_argument("-u", "--use-contiguous-seeds", action="store_true",
                        help="Test seeds 0..N-1 instead of random seeds")
    parser.add_argument("-s", "--seeds", type=int, default=1,
                        help="Number of seeds to test")
    parser.add_argument("-g", "--generations", type=int, default=DEFAULT_GENERATIONS,
                        help="Maximum generations per seed")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("-i", "--init-file", type=Path, default=None,
                        help="Template file for the initial automaton state")
    source.add_argument("-t", "--template", choices=sorted(TEMPLATES), default="shift",
                        help="Embedded template to scan")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    """CLI entrypoint for the cycle scan. Rows go to `out` (stdout by default)."""
    out = out if out is not None else sys.stdout
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='[%(asctime)s] %(levelname)s: %(message)s',
    )

    if args.seeds < 0:
        parser.error("--seeds must be non-negative")
    if args.generations <= 0:
        parser.error("--generations must be positive")

    if args.init_file is not None:
        try:
            template = args.init_file.read_text()
        except OSError as exc:
            parser.error(f"Cannot read init file {args.init_file}: {exc}")
        source = str(args.init_file)
    else:
        template = TEMPLATES[args.template]
        source = f"<{args.template} template>"

    print(f"# Using contiguous seeds: {str(args.use_contiguous_seeds).lower()}", file=out)
    print(f"# Number of seeds: {args.seeds}", file=out)
    print(f"# Number of generations: {args.generations}", file=out)
    print(f"# Initial File: {source}", file=out)
    print("test\tn_generations\tseed\tavg_alive\tcontains_global_duplicate", file=out)

    scanner = CycleScanner(template, generations=args.generations)
    try:
        for report in scanner.scan(seed_sequence(args.seeds, args.use_contiguous_seeds)):
            print(report.to_row(), file=out)
    except TalosError as exc:
        parser.error(f"Invalid template {source}: {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
