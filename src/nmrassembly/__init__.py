# -*- coding: ascii -*-
"""Fragment-based structure assembly from 13C NMR spectra."""

from .fragment import Fragment, FragmentError
from .spectrum import Spectrum
from .search import AssemblyConfig, SearchStats
from .parallel import assemble
from .standardize import CanonicalizationError, canonicalize

__all__ = [
    'Fragment',
    'FragmentError',
    'Spectrum',
    'AssemblyConfig',
    'SearchStats',
    'assemble',
    'CanonicalizationError',
    'canonicalize',
]
