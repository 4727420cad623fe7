# -*- coding: ascii -*-
"""Test package for nmrassembly."""

import unittest
import warnings


class CleanLogsTestCase(unittest.TestCase):
    """Base test case that suppresses RDKit logging noise."""

    @classmethod
    def setUpClass(cls):
        """Set up class-level test fixtures - suppress RDKit logging noise."""
        super().setUpClass()

        # Suppress RDKit warnings for cleaner test output
        warnings.filterwarnings("ignore", category=DeprecationWarning, module="rdkit")

        from nmrassembly.chem_compat import RDLogger
        RDLogger.DisableLog('rdApp.warning')
        RDLogger.DisableLog('rdApp.info')
        RDLogger.DisableLog('rdApp.debug')
        # Keep error and critical levels enabled


def halomethyl_pair():
    """[CH](Cl)Br and [CH]C sharing the CH root; they merge into CC(Cl)Br."""
    from nmrassembly.fragment import Fragment
    from nmrassembly.spectrum import Spectrum

    frag_a = Fragment.from_smiles("[CH](Cl)Br", {0: 40.0})
    frag_b = Fragment.from_smiles("[CH]C", {0: 40.1, 1: 25.0})
    target = Spectrum([40.0, 25.0])
    return frag_a, frag_b, target


def haloethane_chain():
    """Three fragments of ClCCBr; assembly needs a descent before the final merge."""
    from nmrassembly.fragment import Fragment
    from nmrassembly.spectrum import Spectrum

    chloro = Fragment.from_smiles("Cl[CH2]", {1: 45.0})
    ethyl = Fragment.from_smiles("[CH2][CH2]", {0: 45.0, 1: 33.0})
    bromo = Fragment.from_smiles("[CH2]Br", {0: 33.0})
    target = Spectrum([45.0, 33.0])
    return [chloro, ethyl, bromo], target
