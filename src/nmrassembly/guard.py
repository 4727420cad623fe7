# -*- coding: ascii -*-
from contextlib import contextmanager
import logging
import os

LOG = logging.getLogger(__name__)


def strict_candidates_enabled() -> bool:
    return os.environ.get('NMRASSEMBLY_STRICT_CANDIDATES', '0') == '1'


@contextmanager
def candidate_guard(stats):
    """Catch RDKit-type errors raised while trying one candidate and convert them to counters."""
    try:
        yield
    except (ValueError, RuntimeError) as e:
        if strict_candidates_enabled():
            raise
        # record as a failed candidate; the search moves on
        LOG.debug("Candidate failed with %s: %s", type(e).__name__, e)
        if stats is not None:
            stats.record('candidate_errors')
