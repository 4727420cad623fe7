# -*- coding: ascii -*-
"""Shared constants and configuration defaults for nmrassembly."""

from typing import Dict, Any, Final, Tuple


# Nucleus whose signals are carried by fragments and query spectra
DEFAULT_NUCLEUS: Final[str] = '13C'

# Element symbol observed for each supported nucleus
NUCLEUS_ELEMENTS: Final[Dict[str, str]] = {
    '13C': 'C',
    '15N': 'N',
    '1H': 'H',
}

# Shifts closer than this are treated as equivalent signals (ppm)
EQUIV_SIGNAL_THRESHOLD: Final[float] = 0.5

# Deviations are rounded to this many decimal places before comparisons
DECIMAL_PLACES: Final[int] = 2

# Search strategies understood by the search driver
SEARCH_STRATEGIES: Final[Tuple[str, ...]] = ('dfs', 'bfs')

# Counters reported by SearchStats; order is the order used in summaries
SEARCH_EVENT_KEYS: Final[Tuple[str, ...]] = (
    'candidates_tried',
    'memo_pruned',
    'merge_failed',
    'candidate_errors',
    'descents',
    'backtracks',
    'solutions',
    'duplicate_solutions',
    'canonicalization_failed',
)

# Columns of the solutions table written per query
SOLUTION_COLUMNS: Final[Tuple[str, ...]] = (
    'query_id',
    'smiles',
    'atom_count',
    'bond_count',
    'signal_count',
    'avg_deviation',
)

DEFAULT_CONFIG: Final[Dict[str, Any]] = {
    'io': {
        'source_table': 'data/sources.csv',
        'library': 'data/library.json',
        'queries': 'data/queries.json',
        'output_dir': 'results',
    },
    'fragmentation': {
        'max_sphere': 2,
    },
    'assembly': {
        'n_starts': -1,
        'n_threads': 1,
        'min_matching_depth': 1,
        'tolerance': 2.0,
        'match_threshold': 1.5,
        'strategy': 'dfs',
    },
    'spectrum': {
        'nucleus': DEFAULT_NUCLEUS,
        'equivalence_threshold': EQUIV_SIGNAL_THRESHOLD,
    },
    'ranking': {
        'enable': True,
    },
}


def empty_search_counters() -> Dict[str, int]:
    """Return a fresh counter dict with all search event keys set to zero."""
    return {key: 0 for key in SEARCH_EVENT_KEYS}
