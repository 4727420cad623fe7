# -*- coding: ascii -*-
"""Test fragment construction, mutation primitives and valence checks."""

import unittest

from rdkit import Chem

from nmrassembly.fragment import Fragment, FragmentError, copy_atom
from nmrassembly.qc import is_open_atom, sanitize_ok, validate_bond_addition
from tests import CleanLogsTestCase


class TestFragmentConstruction(CleanLogsTestCase):

    def test_from_smiles_counts(self):
        frag = Fragment.from_smiles("[CH](Cl)Br", {0: 40.0})
        self.assertEqual(frag.atom_count, 3)
        self.assertEqual(frag.bond_count, 2)
        self.assertEqual(frag.spectrum.shifts, [40.0])
        self.assertEqual(frag.assignment, [0])
        self.assertEqual(frag.shift_of(0), 40.0)
        self.assertIsNone(frag.shift_of(1))

    def test_open_atoms(self):
        """Only atoms below their default valence are open."""
        self.assertEqual(Fragment.from_smiles("[CH](Cl)Br", {0: 40.0}).open_atoms, [0])
        self.assertEqual(Fragment.from_smiles("[CH]C", {0: 40.1, 1: 25.0}).open_atoms, [0])
        self.assertEqual(Fragment.from_smiles("CC", {0: 10.0, 1: 10.0}).open_atoms, [])

    def test_hydrogens_frozen(self):
        frag = Fragment.from_smiles("[CH2]C", {0: 30.0, 1: 15.0})
        self.assertEqual(frag.mol.GetAtomWithIdx(0).GetNumExplicitHs(), 2)
        self.assertEqual(frag.mol.GetAtomWithIdx(1).GetNumExplicitHs(), 3)
        self.assertTrue(frag.mol.GetAtomWithIdx(1).GetNoImplicit())

    def test_bad_smiles(self):
        with self.assertRaises(FragmentError):
            Fragment.from_smiles("C(((", {})

    def test_assignment_to_missing_atom(self):
        with self.assertRaises(FragmentError):
            Fragment.from_smiles("CC", {5: 10.0})

    def test_copy_atom(self):
        atom = Chem.Atom(7)
        atom.SetFormalCharge(1)
        atom.SetIsAromatic(True)
        copied = copy_atom(atom, hydrogens=2)
        self.assertEqual(copied.GetAtomicNum(), 7)
        self.assertEqual(copied.GetFormalCharge(), 1)
        self.assertTrue(copied.GetIsAromatic())
        self.assertEqual(copied.GetNumExplicitHs(), 2)
        self.assertTrue(copied.GetNoImplicit())


class TestFragmentMutation(CleanLogsTestCase):

    def setUp(self):
        self.frag = Fragment.from_smiles("[CH](Cl)Br", {0: 40.0})

    def test_clone_is_independent(self):
        twin = self.frag.clone()
        twin.add_atom(Chem.Atom(6), 25.0)
        self.assertEqual(self.frag.atom_count, 3)
        self.assertEqual(self.frag.spectrum.shifts, [40.0])
        self.assertEqual(twin.atom_count, 4)

    def test_add_then_remove_restores(self):
        """Appending an atom and bond, then removing them, restores counts and signals."""
        idx = self.frag.add_atom(copy_atom(Chem.Atom(6), hydrogens=3), 25.0)
        self.frag.add_bond(0, idx, Chem.BondType.SINGLE)
        self.assertEqual(self.frag.open_atoms, [])

        self.frag.remove_last_bond()
        self.frag.remove_last_atom()
        self.assertEqual(self.frag.atom_count, 3)
        self.assertEqual(self.frag.bond_count, 2)
        self.assertEqual(self.frag.spectrum.shifts, [40.0])
        self.assertEqual(self.frag.assignment, [0])
        self.assertEqual(self.frag.open_atoms, [0])

    def test_remove_bonded_atom_rejected(self):
        with self.assertRaises(ValueError):
            self.frag.remove_last_atom()

    def test_cache_dropped_on_mutation(self):
        tree = self.frag.neighborhood_tree(0)
        self.assertIs(self.frag.neighborhood_tree(0), tree)
        self.frag.add_atom(Chem.Atom(6))
        self.assertIsNot(self.frag.neighborhood_tree(0), tree)

    def test_duplicate_bond_rejected(self):
        with self.assertRaises(FragmentError):
            self.frag.add_bond(0, 1, Chem.BondType.SINGLE)

    def test_payload_round_trip(self):
        restored = Fragment.from_payload(self.frag.to_payload())
        self.assertEqual(restored.atom_count, 3)
        self.assertEqual(restored.bond_count, 2)
        self.assertEqual(restored.spectrum.shifts, [40.0])
        self.assertEqual(restored.open_atoms, [0])


class TestValenceChecks(CleanLogsTestCase):

    def test_validate_bond_addition(self):
        frag = Fragment.from_smiles("[CH](Cl)Br", {0: 40.0})
        self.assertTrue(validate_bond_addition(frag, 0, Chem.BondType.SINGLE))
        self.assertFalse(validate_bond_addition(frag, 0, Chem.BondType.DOUBLE))
        self.assertFalse(validate_bond_addition(frag, 1, Chem.BondType.SINGLE))

    def test_validate_with_partner(self):
        frag = Fragment.from_smiles("[CH2][CH2]", {0: 30.0, 1: 30.0})
        self.assertFalse(validate_bond_addition(frag, 0, Chem.BondType.SINGLE, partner=0))
        self.assertFalse(validate_bond_addition(frag, 0, Chem.BondType.SINGLE, partner=1))

    def test_aromatic_slack(self):
        """An aromatic atom with three aromatic bonds is tolerated."""
        frag = Fragment.from_smiles("[c](:[cH]):[cH]", {})
        self.assertTrue(validate_bond_addition(frag, 0, Chem.BondType.AROMATIC))
        self.assertFalse(validate_bond_addition(frag, 0, Chem.BondType.DOUBLE))

    def test_charged_atom_valence(self):
        frag = Fragment.from_smiles("[NH3+]", {})
        self.assertTrue(is_open_atom(frag.mol, 0))
        saturated = Fragment.from_smiles("[NH4+]", {})
        self.assertFalse(is_open_atom(saturated.mol, 0))

    def test_sanitize_ok(self):
        self.assertTrue(sanitize_ok(Chem.MolFromSmiles("CCO")))
        self.assertFalse(sanitize_ok(None))


if __name__ == '__main__':
    unittest.main()
