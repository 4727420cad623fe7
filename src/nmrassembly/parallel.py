# -*- coding: ascii -*-
"""Thread-parallel orchestration of independent assembly searches."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from .dedup_util import ResultMap
from .io_utils import SolutionSink
from .search import AssemblyConfig, Listener, SearchStats, run_search
from .spectrum import Spectrum

LOG = logging.getLogger(__name__)


def resolve_start_count(n_starts: Optional[int], library_size: int) -> int:
    """None or negative means every fragment; otherwise clamp to the library size."""
    if n_starts is None or n_starts < 0:
        return library_size
    return min(int(n_starts), library_size)


def _run_single_start(ranked_fragments: List, start_index: int, target: Spectrum,
                      config: AssemblyConfig, listener: Optional[Listener]):
    """
    One search run from `start_index`.

    Runs in a worker thread: it only reads the shared library fragments and
    owns its intermediate, stats and sink.
    """
    stats = SearchStats(listener)
    sink = None
    if config.output_dir:
        sink = SolutionSink.for_run(config.output_dir, config.query_id, start_index)
    try:
        solutions = run_search(ranked_fragments, start_index, target, config, stats, sink)
    finally:
        if sink is not None:
            sink.close()
    return solutions, stats


def assemble(ranked_fragments: List, n_starts: Optional[int], n_threads: int, min_matching_depth: int,
             target_spectrum: Spectrum, match_threshold: float, tolerance: float,
             strategy: str = 'dfs', output_dir: Optional[str] = None, query_id: str = 'query',
             stats: Optional[SearchStats] = None, listener: Optional[Listener] = None) -> Dict[str, object]:
    """
    Run one search per start fragment in parallel and merge the solutions.

    Args:
        ranked_fragments: Library fragments, best-ranked first
        n_starts: Number of start fragments (None or negative: all)
        n_threads: Worker threads
        min_matching_depth: Minimum overlap depth
        target_spectrum: Query spectrum
        match_threshold: Maximum average deviation of a valid subspectrum
        tolerance: Shift tolerance
        strategy: 'dfs' or 'bfs'
        output_dir: If set, each run writes results_<query>_temp_<start>.smiles there
        query_id: Query name used in file names
        stats: Optional SearchStats receiving the summed counters of all runs
        listener: Optional event callback, invoked from worker threads

    Returns:
        {canonical SMILES: Fragment}, one entry per distinct structure
    """
    config = AssemblyConfig(
        min_matching_depth=min_matching_depth, tolerance=tolerance, match_threshold=match_threshold,
        strategy=strategy, n_starts=n_starts, n_threads=n_threads,
        output_dir=output_dir, query_id=query_id,
    )
    return assemble_with_config(ranked_fragments, target_spectrum, config, stats=stats, listener=listener)


def assemble_with_config(ranked_fragments: List, target_spectrum: Spectrum, config: AssemblyConfig,
                         stats: Optional[SearchStats] = None,
                         listener: Optional[Listener] = None) -> Dict[str, object]:
    n_runs = resolve_start_count(config.n_starts, len(ranked_fragments))
    if n_runs == 0:
        LOG.info("No start fragments for query %s", config.query_id)
        return {}

    # Fill every lazy cache now so worker threads never write shared state
    for fragment in ranked_fragments:
        fragment.warm_cache()

    workers = min(config.n_threads, n_runs)
    LOG.info("Assembling query %s: %d runs on %d threads", config.query_id, n_runs, workers)

    results = ResultMap()
    completed = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_run_single_start, ranked_fragments, start, target_spectrum, config, listener): start
            for start in range(n_runs)
        }

        for future in as_completed(futures):
            start = futures[future]
            try:
                solutions, run_stats = future.result()
            except Exception:
                LOG.exception("Run from start fragment %d failed", start)
                continue

            added = results.update(solutions)
            completed += 1
            if stats is not None:
                stats.merge(run_stats)
            LOG.info("Completed %d/%d: start %d (%d solutions, %d new)",
                     completed, n_runs, start, len(solutions), added)

    LOG.info("Query %s: %d distinct solutions", config.query_id, len(results))
    return results.to_dict()
