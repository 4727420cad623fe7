# -*- coding: ascii -*-
"""
Assembly search driver: depth-first with backtracking, or breadth-first.

Search Semantics:
=================
- The ranked fragment list is rotated so the start fragment comes first; a
  path holds positions in that rotated list, beginning with 0.
- Candidates are tried in ascending order, only above the last position
  taken, so every combination of fragments is visited at most once.
- A merge that yields a final structure records the solution and the search
  continues with the next candidate at the same level (no descent).
- A merge that yields a non-final structure becomes the new intermediate and
  a frame is pushed; the frame stores how many atoms/bonds were added.
- An exhausted frame is popped and its additions are removed again, bonds
  first (most recent first), then atoms with their signals.
- Failed merges are memoized per intermediate signature: a candidate that
  failed once on a structurally identical intermediate is never retried.
"""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Dict, List, Optional, Set, Tuple

from .dedup_util import commit, early_check
from .finalize import is_final
from .guard import candidate_guard
from .merge import merge_fragments
from .schema import SEARCH_EVENT_KEYS, SEARCH_STRATEGIES, empty_search_counters
from .spectrum import Spectrum
from .standardize import CanonicalizationError, canonicalize
from .state_sig import compute_fragment_signature

LOG = logging.getLogger(__name__)

Listener = Callable[[str, dict], None]


class AssemblyConfig:
    """
    Configuration for one assembly search (and the orchestrator around it).

    Args:
        min_matching_depth: Minimum overlap depth accepted between fragments
        tolerance: Shift tolerance (ppm) for atom agreement and signal assignment
        match_threshold: Maximum average deviation (ppm) of a valid subspectrum
        strategy: 'dfs' (default) or 'bfs'
        n_starts: Number of start fragments; None or negative means all
        n_threads: Worker threads of the orchestrator
        output_dir: Directory for per-run solution files (None disables them)
        query_id: Name of the query, used in file names and records
    """

    def __init__(self, min_matching_depth: int = 1, tolerance: float = 2.0,
                 match_threshold: float = 1.5, strategy: str = 'dfs',
                 n_starts: Optional[int] = None, n_threads: int = 1,
                 output_dir: Optional[str] = None, query_id: str = 'query'):
        if strategy not in SEARCH_STRATEGIES:
            raise ValueError(f"Unknown search strategy: {strategy}")
        self.min_matching_depth = min_matching_depth
        self.tolerance = tolerance
        self.match_threshold = match_threshold
        self.strategy = strategy
        self.n_starts = n_starts
        self.n_threads = max(1, int(n_threads or 1))
        self.output_dir = output_dir
        self.query_id = query_id

    @classmethod
    def from_dict(cls, cfg: dict, **overrides) -> 'AssemblyConfig':
        params = {
            'min_matching_depth': cfg.get('min_matching_depth', 1),
            'tolerance': cfg.get('tolerance', 2.0),
            'match_threshold': cfg.get('match_threshold', 1.5),
            'strategy': cfg.get('strategy', 'dfs'),
            'n_starts': cfg.get('n_starts'),
            'n_threads': cfg.get('n_threads', 1),
        }
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)


class SearchStats:
    """
    Event counters of one or more search runs.

    Events are the keys of SEARCH_EVENT_KEYS. An optional listener receives
    every recorded event with its payload; it is called from the thread that
    runs the search.
    """

    def __init__(self, listener: Optional[Listener] = None):
        self.counters = empty_search_counters()
        self.listener = listener

    def record(self, event: str, amount: int = 1, **payload) -> None:
        self.counters[event] = self.counters.get(event, 0) + amount
        if self.listener is not None:
            self.listener(event, payload)

    def merge(self, other: 'SearchStats') -> None:
        for key, value in other.counters.items():
            self.counters[key] = self.counters.get(key, 0) + value

    def __getitem__(self, event: str) -> int:
        return self.counters.get(event, 0)

    def to_dict(self) -> Dict[str, int]:
        ordered = {key: self.counters.get(key, 0) for key in SEARCH_EVENT_KEYS}
        ordered.update({k: v for k, v in self.counters.items() if k not in ordered})
        return ordered


def undo_merge(intermediate, added_atoms: int, added_bonds: int) -> None:
    """Remove the most recent bonds, then the most recent atoms (with their signals)."""
    for _ in range(added_bonds):
        intermediate.remove_last_bond()
    for _ in range(added_atoms):
        intermediate.remove_last_atom()


class _Frame:
    __slots__ = ('path', 'added_atoms', 'added_bonds', 'next_candidate', 'signature')

    def __init__(self, path: Tuple[int, ...], added_atoms: int, added_bonds: int, signature: str):
        self.path = path
        self.added_atoms = added_atoms
        self.added_bonds = added_bonds
        self.next_candidate = path[-1] + 1
        self.signature = signature


class AssemblySearch(ABC):
    """Shared state and helpers of one search run from one start fragment."""

    def __init__(self, ranked_fragments: List, start_index: int, target: Spectrum,
                 config: AssemblyConfig, stats: Optional[SearchStats] = None, sink=None):
        if not 0 <= start_index < len(ranked_fragments):
            raise IndexError(f"Start index {start_index} out of range for {len(ranked_fragments)} fragments")
        self.fragments = list(ranked_fragments[start_index:]) + list(ranked_fragments[:start_index])
        self.start_index = start_index
        self.target = target
        self.config = config
        self.stats = stats if stats is not None else SearchStats()
        self.sink = sink
        self.solutions: Dict[str, object] = {}
        self.memo: Dict[str, Set[int]] = {}
        self._seen: Set[str] = set()

    def _try_merge(self, intermediate, position: int):
        merged = None
        with candidate_guard(self.stats):
            merged = merge_fragments(
                intermediate, self.fragments[position], self.target,
                self.config.min_matching_depth, self.config.tolerance, self.config.match_threshold,
            )
        return merged

    def _accept_if_final(self, merged, path: Tuple[int, ...]) -> bool:
        """Record `merged` if it is a complete solution; True when the branch ends here."""
        if not is_final(merged, self.target, self.config.tolerance, self.config.match_threshold):
            return False
        try:
            smiles = canonicalize(merged)
        except CanonicalizationError as e:
            LOG.debug("Final candidate not renderable, exploring further: %s", e)
            self.stats.record('canonicalization_failed')
            return False

        key, is_dup = early_check(smiles, self._seen, self.stats)
        if not is_dup:
            commit(key, self._seen)
            self.solutions[smiles] = merged
            self.stats.record('solutions', smiles=smiles, path=self._library_path(path))
            LOG.info("Start %d: solution %s", self.start_index, smiles)
            if self.sink is not None:
                self.sink.write(smiles)
        return True

    def _library_path(self, path: Tuple[int, ...]) -> Tuple[int, ...]:
        """Translate rotated positions back to indices of the ranked list."""
        n = len(self.fragments)
        return tuple((self.start_index + p) % n for p in path)

    def _is_memoized(self, signature: str, position: int) -> bool:
        if position in self.memo.get(signature, ()):
            self.stats.record('memo_pruned')
            return True
        return False

    def _memoize_failure(self, signature: str, position: int) -> None:
        self.memo.setdefault(signature, set()).add(position)
        self.stats.record('merge_failed')

    @abstractmethod
    def run(self) -> Dict[str, object]:
        """Search until exhausted and return {canonical SMILES: Fragment}."""


class DepthFirstSearch(AssemblySearch):
    """Depth-first search over one shared intermediate with an explicit frame stack."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.intermediate = self.fragments[0].clone()

    def run(self) -> Dict[str, object]:
        n = len(self.fragments)
        if self._accept_if_final(self.intermediate.clone(), (0,)):
            return self.solutions

        stack = [_Frame((0,), 0, 0, compute_fragment_signature(self.intermediate))]
        while stack:
            frame = stack[-1]
            if frame.next_candidate >= n:
                stack.pop()
                undo_merge(self.intermediate, frame.added_atoms, frame.added_bonds)
                if stack:
                    self.stats.record('backtracks')
                continue

            position = frame.next_candidate
            frame.next_candidate += 1
            if self._is_memoized(frame.signature, position):
                continue

            self.stats.record('candidates_tried')
            merged = self._try_merge(self.intermediate, position)
            if merged is None:
                self._memoize_failure(frame.signature, position)
                continue

            path = frame.path + (position,)
            if self._accept_if_final(merged, path):
                continue

            added_atoms = merged.atom_count - self.intermediate.atom_count
            added_bonds = merged.bond_count - self.intermediate.bond_count
            self.intermediate = merged
            stack.append(_Frame(path, added_atoms, added_bonds, compute_fragment_signature(merged)))
            self.stats.record('descents', path=self._library_path(path))
            LOG.debug("Start %d: descend to %s (%r)", self.start_index, path, merged)

        return self.solutions


class BreadthFirstSearch(AssemblySearch):
    """Level-by-level search; every queued intermediate is an owned clone."""

    def run(self) -> Dict[str, object]:
        n = len(self.fragments)
        start = self.fragments[0].clone()
        if self._accept_if_final(start.clone(), (0,)):
            return self.solutions

        queue = deque([(start, (0,))])
        while queue:
            current, path = queue.popleft()
            signature = compute_fragment_signature(current)
            for position in range(path[-1] + 1, n):
                if self._is_memoized(signature, position):
                    continue
                self.stats.record('candidates_tried')
                merged = self._try_merge(current, position)
                if merged is None:
                    self._memoize_failure(signature, position)
                    continue
                next_path = path + (position,)
                if self._accept_if_final(merged, next_path):
                    continue
                queue.append((merged, next_path))
                self.stats.record('descents', path=self._library_path(next_path))
        return self.solutions


_STRATEGIES = {
    'dfs': DepthFirstSearch,
    'bfs': BreadthFirstSearch,
}


def run_search(ranked_fragments: List, start_index: int, target: Spectrum, config: AssemblyConfig,
               stats: Optional[SearchStats] = None, sink=None) -> Dict[str, object]:
    """
    Run one search from `start_index` and return {canonical SMILES: Fragment}.

    Per-candidate RDKit errors are counted and skipped; any other exception
    ends the run and propagates to the caller.
    """
    search = _STRATEGIES[config.strategy](ranked_fragments, start_index, target, config, stats, sink)
    LOG.debug("Start %d: %s search over %d fragments", start_index, config.strategy, len(ranked_fragments))
    solutions = search.run()
    LOG.debug("Start %d: %d solutions, counters %s", start_index, len(solutions), search.stats.to_dict())
    return solutions


def assemble_dfs(ranked_fragments: List, start_index: int, target: Spectrum, config: AssemblyConfig,
                 stats: Optional[SearchStats] = None, sink=None) -> Dict[str, object]:
    return DepthFirstSearch(ranked_fragments, start_index, target, config, stats, sink).run()


def assemble_bfs(ranked_fragments: List, start_index: int, target: Spectrum, config: AssemblyConfig,
                 stats: Optional[SearchStats] = None, sink=None) -> Dict[str, object]:
    return BreadthFirstSearch(ranked_fragments, start_index, target, config, stats, sink).run()
