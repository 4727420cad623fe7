# -*- coding: ascii -*-
"""Command line interface."""

import argparse
import copy
import logging
import os
import sys
from typing import Any, Dict, Optional

import yaml

from .chem_compat import RDLogger
from .schema import DEFAULT_CONFIG, SOLUTION_COLUMNS

LOG = logging.getLogger(__name__)

_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def deep_merge(defaults: Dict[str, Any], user_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge user configuration with defaults, preserving user values.

    Args:
        defaults: Default configuration dictionary
        user_config: User configuration dictionary

    Returns:
        Merged configuration with user values taking precedence
    """
    result = copy.deepcopy(defaults)

    def _merge_recursive(d, u):
        for k, v in u.items():
            if isinstance(v, dict) and isinstance(d.get(k), dict):
                _merge_recursive(d[k], v)
            else:
                d[k] = v

    _merge_recursive(result, user_config or {})
    return result


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file and merge it over the defaults."""
    try:
        with open(config_path, 'r', encoding='ascii') as f:
            user_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
        LOG.error("Error loading config %s: %s", config_path, e)
        sys.exit(1)
    if not isinstance(user_config, dict):
        LOG.error("Config %s must be a mapping", config_path)
        sys.exit(1)
    return deep_merge(DEFAULT_CONFIG, user_config)


def cmd_fragment(config: Dict[str, Any], args=None) -> None:
    """Build the fragment library from the assigned source table."""
    from .fragmentation import build_library
    from .io_utils import iter_source_records, save_library

    io_config = config.get('io', {})
    spectrum_config = config.get('spectrum', {})
    source_table = io_config['source_table']
    library_path = io_config['library']
    max_sphere = int(config.get('fragmentation', {}).get('max_sphere', 2))

    if not os.path.exists(source_table):
        LOG.error("Source table not found: %s", source_table)
        sys.exit(1)

    LOG.info("Fragmenting %s (max sphere %d)", source_table, max_sphere)
    try:
        library = build_library(
            iter_source_records(source_table), max_sphere,
            nucleus=spectrum_config.get('nucleus'),
            equivalence_threshold=spectrum_config.get('equivalence_threshold'),
        )
    except ValueError as e:
        LOG.error("Invalid source data: %s", e)
        sys.exit(1)
    save_library(library, library_path)


def cmd_assemble(config: Dict[str, Any], args=None) -> None:
    """Rank the library for each query and assemble candidate structures."""
    from .finalize import solution_record
    from .io_utils import load_library, load_queries, write_json, write_table
    from .parallel import assemble_with_config
    from .ranking import rank_fragments
    from .search import AssemblyConfig, SearchStats

    io_config = config.get('io', {})
    spectrum_config = config.get('spectrum', {})
    assembly_config = config.get('assembly', {})
    ranking_enabled = config.get('ranking', {}).get('enable', True)

    outdir = getattr(args, 'outdir', None) or io_config.get('output_dir', 'results')
    threads = getattr(args, 'threads', None)
    starts = getattr(args, 'starts', None)
    equivalence_threshold = spectrum_config.get('equivalence_threshold')

    try:
        library = load_library(io_config['library'], equivalence_threshold=equivalence_threshold)
        queries = load_queries(io_config['queries'], nucleus=spectrum_config.get('nucleus'),
                               equivalence_threshold=equivalence_threshold)
    except (OSError, ValueError, KeyError) as e:
        LOG.error("Cannot load inputs: %s", e)
        sys.exit(1)

    LOG.info("Loaded %d fragments and %d queries", len(library), len(queries))
    summary = {'queries': {}}
    for query_id, query in queries:
        config_obj = AssemblyConfig.from_dict(
            assembly_config, n_threads=threads, n_starts=starts, output_dir=outdir, query_id=query_id,
        )
        if ranking_enabled:
            ranked = rank_fragments(library, query, config_obj.tolerance, config_obj.match_threshold)
        else:
            ranked = list(library)

        stats = SearchStats()
        solutions = assemble_with_config(ranked, query, config_obj, stats=stats)
        records = [
            solution_record(fragment, query, config_obj.tolerance, query_id=query_id, smiles=smiles)
            for smiles, fragment in sorted(solutions.items())
        ]
        table_path = os.path.join(outdir, f"solutions_{query_id}.csv")
        write_table(records, table_path, columns=list(SOLUTION_COLUMNS) + ['shifts_json'])
        LOG.info("Query %s: %d solutions written to %s", query_id, len(records), table_path)

        summary['queries'][query_id] = {
            'n_fragments_ranked': len(ranked),
            'n_solutions': len(records),
            'counters': stats.to_dict(),
        }

    write_json(summary, os.path.join(outdir, 'summary.json'))


def setup_rdkit_logging(rdkit_log_level: str = 'WARNING'):
    """Configure RDKit logging with unified threshold control."""
    desired_level = (rdkit_log_level or 'WARNING').upper()

    if desired_level in ('ERROR', 'CRITICAL'):
        RDLogger.DisableLog('rdApp.debug')
        RDLogger.DisableLog('rdApp.info')
        RDLogger.DisableLog('rdApp.warning')
    elif desired_level == 'WARNING':
        RDLogger.DisableLog('rdApp.debug')
        RDLogger.DisableLog('rdApp.info')
        RDLogger.EnableLog('rdApp.warning')
    elif desired_level == 'INFO':
        RDLogger.DisableLog('rdApp.debug')
        RDLogger.EnableLog('rdApp.info')
        RDLogger.EnableLog('rdApp.warning')
    else:
        RDLogger.EnableLog('rdApp.debug')
        RDLogger.EnableLog('rdApp.info')
        RDLogger.EnableLog('rdApp.warning')


def resolve_rdkit_log_level(args, log_level: str) -> str:
    # CLI --rdkit-log-level > env NMRASSEMBLY_RDKIT_LOG_LEVEL > main --log-level
    if getattr(args, 'rdkit_log_level', None):
        return args.rdkit_log_level
    env_level = os.getenv('NMRASSEMBLY_RDKIT_LOG_LEVEL')
    if env_level and env_level.upper() in _LOG_LEVELS:
        return env_level.upper()
    return log_level


def configure_logging(args):
    """Configure Python logging and RDKit logger based on CLI arguments."""
    log_level = 'ERROR' if args.quiet else args.log_level
    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(levelname)s - %(name)s - %(message)s'
    )
    setup_rdkit_logging(resolve_rdkit_log_level(args, log_level))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='nmrassembly',
        description='nmrassembly: assemble structures from NMR-assigned fragments',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global logging options
    parser.add_argument('--log-level', choices=_LOG_LEVELS[:4], default='INFO',
                        help='Set logging level (default: INFO)')
    parser.add_argument('--quiet', action='store_true',
                        help='Suppress all but error messages (equivalent to --log-level ERROR)')
    parser.add_argument('--rdkit-log-level', choices=_LOG_LEVELS[:4],
                        help='Set RDKit-specific logging level (default: same as --log-level)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    fragment_parser = subparsers.add_parser('fragment', help='Build the fragment library from assigned structures')
    fragment_parser.add_argument('-c', '--config', required=True, help='Configuration file path')

    assemble_parser = subparsers.add_parser('assemble', help='Assemble structures for every query spectrum')
    assemble_parser.add_argument('-c', '--config', required=True, help='Configuration file path')
    assemble_parser.add_argument('--outdir', help='Override output directory')
    assemble_parser.add_argument('--threads', type=int, help='Number of worker threads')
    assemble_parser.add_argument('--starts', type=int,
                                 help='Number of start fragments (negative: all)')
    return parser


def main(argv: Optional[list] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)

    if args.command == 'fragment':
        cmd_fragment(config, args)
    elif args.command == 'assemble':
        cmd_assemble(config, args)
    else:
        LOG.error("Unknown command: %s", args.command)
        sys.exit(1)


if __name__ == "__main__":
    main()
