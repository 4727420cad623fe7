# -*- coding: ascii -*-
"""Acceptance test for complete structures and solution records."""

import logging
from typing import Any, Dict, Optional

from .qc import sanitize_ok
from .spectrum import Spectrum, average_deviation, is_valid_subspectrum
from .standardize import canonicalize

LOG = logging.getLogger(__name__)


def is_final(intermediate, target: Spectrum, tolerance: float, threshold: float) -> bool:
    """
    Check whether an intermediate is a complete solution.

    All four conditions must hold: no open atoms, as many signals as the
    target, a valid subspectrum and a structure that sanitizes (valences and
    kekulization). The result depends only on the inputs.
    """
    if intermediate is None:
        return False
    if intermediate.open_atoms:
        return False
    if intermediate.signal_count != target.signal_count:
        return False
    if not is_valid_subspectrum(intermediate.spectrum, target, tolerance, threshold):
        return False
    return sanitize_ok(intermediate.mol)


def solution_record(fragment, target: Spectrum, tolerance: float, query_id: str = 'query',
                    smiles: Optional[str] = None) -> Dict[str, Any]:
    """Flat record describing an accepted structure (one row of the solutions table)."""
    deviation = average_deviation(fragment.spectrum, target, tolerance)
    return {
        'query_id': query_id,
        'smiles': smiles if smiles is not None else canonicalize(fragment),
        'atom_count': fragment.atom_count,
        'bond_count': fragment.bond_count,
        'signal_count': fragment.signal_count,
        'avg_deviation': deviation,
        'shifts': list(fragment.spectrum.shifts),
    }
