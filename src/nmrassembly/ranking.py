# -*- coding: ascii -*-
"""Ranking of library fragments against a query spectrum."""

import logging
from typing import List

from .spectrum import Spectrum, average_deviation, is_valid_subspectrum

LOG = logging.getLogger(__name__)


def rank_fragments(library: List, query: Spectrum, tolerance: float, threshold: float) -> List:
    """
    Keep fragments whose subspectrum is a valid subspectrum of `query`.

    The survivors are ordered by average deviation (asc), then by size
    (atoms desc); equal keys keep library order.
    """
    ranked = []
    for fragment in library:
        if fragment.spectrum.nucleus != query.nucleus or fragment.signal_count == 0:
            continue
        if not is_valid_subspectrum(fragment.spectrum, query, tolerance, threshold):
            continue
        ranked.append((average_deviation(fragment.spectrum, query, tolerance), -fragment.atom_count, fragment))

    ranked.sort(key=lambda item: item[:2])
    LOG.info("Ranked %d of %d fragments for the query", len(ranked), len(library))
    return [item[2] for item in ranked]
