# -*- coding: ascii -*-
"""I/O utilities: fragment libraries, query spectra, tables and solution sinks."""

import json
import logging
import os
import threading
from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from .chem_compat import mol_to_smiles_safe
from .fragment import Fragment, FragmentError
from .schema import DEFAULT_NUCLEUS, EQUIV_SIGNAL_THRESHOLD
from .spectrum import Spectrum

LOG = logging.getLogger(__name__)


_JSON_FIELDS = ("shifts",)

# List-typed JSON fields default to [], all others to {}
_JSON_LIST_FIELDS = frozenset({"shifts"})


def _get_json_default(field_name):
    """Get the appropriate default value for a JSON field based on its semantic type."""
    if field_name in _JSON_LIST_FIELDS:
        return []
    return {}


def _prepare_records_for_table(records):
    out = []
    for r in records:
        r2 = dict(r)
        # Parallel *_json string columns; typed fields are dropped before writing
        for f in _JSON_FIELDS:
            v = r2.get(f, None)
            r2[f + "_json"] = json.dumps(v if v is not None else _get_json_default(f))
        out.append(r2)
    return out


def _ensure_parent_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def write_table(records: List[Dict[str, Any]], path: str, columns: Optional[List[str]] = None) -> None:
    """Write table file (parquet/csv). With no records, an empty table with `columns` is written."""
    _ensure_parent_dir(path)
    rows = _prepare_records_for_table(records)
    df = pd.DataFrame(rows, columns=None if rows else columns)
    # Drop raw typed fields to make parquet robust
    for f in _JSON_FIELDS:
        if f in df.columns:
            df.drop(columns=[f], inplace=True)

    if path.endswith('.parquet'):
        df.to_parquet(path, index=False)
    elif path.endswith('.csv'):
        df.to_csv(path, index=False)
    else:
        raise ValueError(f"Unsupported file format: {path}")


def read_table(path: str) -> List[Dict[str, Any]]:
    """Read table file (parquet/csv) and rebuild typed fields, removing JSON columns from memory."""
    if not os.path.exists(path):
        return []

    if path.endswith('.parquet'):
        df = pd.read_parquet(path)
    elif path.endswith('.csv'):
        df = pd.read_csv(path)
    else:
        raise ValueError(f"Unsupported file format: {path}")

    # Rebuild typed fields from *_json string columns
    for f in _JSON_FIELDS:
        col = f + "_json"
        if col in df.columns:
            default_val = _get_json_default(f)
            df[f] = df[col].apply(lambda s: json.loads(s) if isinstance(s, str) and len(s) else default_val)
            df.drop(columns=[col], inplace=True)

    return df.to_dict('records')


def iter_source_records(path: str) -> Iterator[Tuple[str, Dict[int, float]]]:
    """
    Yield (smiles, {atom index: shift}) from a source table.

    The table needs a `smiles` column and a `shifts_json` column holding a
    JSON object keyed by atom index.
    """
    for row in read_table(path):
        smiles = row.get('smiles')
        raw = row.get('shifts') or {}
        if not isinstance(smiles, str) or not smiles:
            LOG.warning("Skipping source row without SMILES: %s", row)
            continue
        if isinstance(raw, list):
            raise FragmentError(f"shifts_json must map atom index to shift, got a list for {smiles}")
        yield smiles, {int(k): float(v) for k, v in raw.items()}


def save_library(fragments: List[Fragment], path: str) -> None:
    """Write a fragment library as a JSON list of explicit atom/bond records."""
    records = []
    for fragment in fragments:
        payload = fragment.to_payload()
        payload['smiles'] = mol_to_smiles_safe(fragment.mol)
        records.append(payload)

    _ensure_parent_dir(path)
    with open(path, 'w', encoding='ascii') as f:
        json.dump(records, f, indent=1)
    LOG.info("Wrote %d fragments to %s", len(records), path)


def load_library(path: str, equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> List[Fragment]:
    with open(path, 'r', encoding='ascii') as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise FragmentError(f"Library {path} must hold a JSON list")
    return [Fragment.from_payload(r, equivalence_threshold=equivalence_threshold) for r in records]


def load_queries(path: str, nucleus: str = DEFAULT_NUCLEUS,
                 equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> List[Tuple[str, Spectrum]]:
    """Load query spectra from a JSON list of {id, nucleus, shifts}."""
    with open(path, 'r', encoding='ascii') as f:
        records = json.load(f)

    queries = []
    for k, record in enumerate(records):
        query_id = str(record.get('id', f'query{k}'))
        spectrum = Spectrum(record['shifts'], nucleus=record.get('nucleus', nucleus),
                            equivalence_threshold=equivalence_threshold)
        queries.append((query_id, spectrum))
    return queries


def write_json(payload: Any, path: str) -> None:
    _ensure_parent_dir(path)
    with open(path, 'w', encoding='ascii') as f:
        json.dump(payload, f, indent=2, sort_keys=True)


class SolutionSink:
    """
    Line-oriented file of accepted solutions for one search run.

    Each newly accepted canonical SMILES is appended as one line and flushed
    immediately, so partial results survive an interrupted run.
    """

    def __init__(self, path: str):
        _ensure_parent_dir(path)
        self.path = path
        self._lock = threading.Lock()
        self._handle = open(path, 'w', encoding='ascii')
        self.count = 0

    @staticmethod
    def run_path(output_dir: str, query_id: str, start_index: int) -> str:
        return os.path.join(output_dir, f"results_{query_id}_temp_{start_index}.smiles")

    @classmethod
    def for_run(cls, output_dir: str, query_id: str, start_index: int) -> 'SolutionSink':
        return cls(cls.run_path(output_dir, query_id, start_index))

    def write(self, smiles: str) -> None:
        with self._lock:
            self._handle.write(smiles + "\n")
            self._handle.flush()
            self.count += 1

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def read_smiles_lines(path: str) -> List[str]:
    if not os.path.exists(path):
        return []
    with open(path, 'r', encoding='ascii') as f:
        return [line.strip() for line in f if line.strip()]
