# -*- coding: ascii -*-
"""
Spectrum model and spectral matching.

Matching Semantics:
===================
- match_spectra assigns every signal of a subspectrum to the nearest signal of
  the query spectrum (first index wins on ties). Assignments whose deviation,
  rounded to DECIMAL_PLACES, exceeds the tolerance are left unset (-1).
- Several subspectrum signals may land on the same query signal. This is only
  accepted by is_valid_subspectrum when the query signal has enough equivalent
  signals (symmetry): frequency <= len(equivalents) + 1.
- Intensities are not compared.
"""

import logging
from collections import Counter
from typing import Iterable, List, Optional

import numpy as np

from .schema import DEFAULT_NUCLEUS, EQUIV_SIGNAL_THRESHOLD, DECIMAL_PLACES

LOG = logging.getLogger(__name__)


class Spectrum:
    """Ordered list of chemical shifts for one nucleus."""

    def __init__(self, shifts: Optional[Iterable[float]] = None, nucleus: str = DEFAULT_NUCLEUS,
                 equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD):
        self.nucleus = nucleus
        self.shifts: List[float] = [float(s) for s in (shifts or [])]
        self.equivalence_threshold = equivalence_threshold

    @property
    def signal_count(self) -> int:
        return len(self.shifts)

    def add_signal(self, shift: float) -> int:
        """Append a signal and return its index."""
        self.shifts.append(float(shift))
        return len(self.shifts) - 1

    def remove_last_signal(self) -> float:
        return self.shifts.pop()

    def equivalent_signals(self, index: int) -> List[int]:
        """Indices of all other signals within the equivalence threshold of signal `index`."""
        shift = self.shifts[index]
        return [
            i for i, other in enumerate(self.shifts)
            if i != index and round(abs(other - shift), DECIMAL_PLACES) <= self.equivalence_threshold
        ]

    def copy(self) -> 'Spectrum':
        return Spectrum(self.shifts, self.nucleus, self.equivalence_threshold)

    def to_payload(self) -> dict:
        return {
            'nucleus': self.nucleus,
            'shifts': list(self.shifts),
            'equivalence_threshold': self.equivalence_threshold,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> 'Spectrum':
        return cls(
            payload.get('shifts', []),
            nucleus=payload.get('nucleus', DEFAULT_NUCLEUS),
            equivalence_threshold=payload.get('equivalence_threshold', EQUIV_SIGNAL_THRESHOLD),
        )

    def __eq__(self, other):
        if not isinstance(other, Spectrum):
            return NotImplemented
        return self.nucleus == other.nucleus and self.shifts == other.shifts

    def __repr__(self):
        return f"Spectrum({self.nucleus}, {self.shifts})"


def match_spectra(subspectrum: Spectrum, query: Spectrum, tolerance: float) -> List[int]:
    """
    Assign each subspectrum signal to its nearest query signal.

    Returns:
        List with one query signal index per subspectrum signal, -1 where no
        query signal lies within the tolerance.
    """
    if subspectrum.signal_count == 0:
        return []
    if query.signal_count == 0 or subspectrum.nucleus != query.nucleus:
        return [-1] * subspectrum.signal_count

    deviations = np.round(
        np.abs(np.subtract.outer(np.asarray(subspectrum.shifts), np.asarray(query.shifts))),
        DECIMAL_PLACES,
    )
    nearest = deviations.argmin(axis=1)
    return [
        int(q) if deviations[k, q] <= tolerance else -1
        for k, q in enumerate(nearest)
    ]


def average_deviation(subspectrum: Spectrum, query: Spectrum, tolerance: float) -> Optional[float]:
    """Mean absolute shift deviation of the assignment, or None if not fully assigned."""
    assignment = match_spectra(subspectrum, query, tolerance)
    if not assignment:
        return 0.0
    if any(q < 0 for q in assignment):
        return None
    deviations = [abs(subspectrum.shifts[k] - query.shifts[q]) for k, q in enumerate(assignment)]
    return round(float(np.mean(deviations)), DECIMAL_PLACES)


def is_valid_subspectrum(subspectrum: Optional[Spectrum], query: Spectrum, tolerance: float,
                         threshold: float) -> bool:
    """
    Check that a subspectrum can be fully explained by the query spectrum.

    The subspectrum must be no larger than the query, every signal must be
    assigned, no query signal may be used more often than its equivalence
    count allows and the average deviation must not exceed `threshold`.
    """
    if subspectrum is None or subspectrum.signal_count > query.signal_count:
        return False

    assignment = match_spectra(subspectrum, query, tolerance)
    if any(q < 0 for q in assignment):
        return False

    for q, frequency in Counter(assignment).items():
        # the matched signal itself is counted in frequency but not in its equivalents
        if frequency > len(query.equivalent_signals(q)) + 1:
            return False

    deviation = average_deviation(subspectrum, query, tolerance)
    if deviation is None or deviation > threshold:
        return False

    return True
