# -*- coding: ascii -*-
"""Test overlap detection between fragments."""

import unittest

from nmrassembly.fragment import Fragment
from nmrassembly.overlap import build_atom_mapping, find_overlaps, max_overlap_depth
from tests import CleanLogsTestCase, halomethyl_pair


class TestFindOverlaps(CleanLogsTestCase):

    def setUp(self):
        self.frag_a, self.frag_b, self.target = halomethyl_pair()

    def test_halomethyl_overlap(self):
        """The two CH roots agree on the root sphere only."""
        self.assertEqual(find_overlaps(self.frag_a, self.frag_b, 1, 0.5), {1: [(0, 0)]})

    def test_symmetry(self):
        """Overlap relation is symmetric: swapped fragments give swapped pairs."""
        forward = find_overlaps(self.frag_a, self.frag_b, 1, 0.5)
        backward = find_overlaps(self.frag_b, self.frag_a, 1, 0.5)
        self.assertEqual(set(forward), set(backward))
        for depth, pairs in forward.items():
            self.assertEqual(sorted((b, a) for a, b in pairs), sorted(backward[depth]))

    def test_symmetry_on_larger_fragments(self):
        frag_x = Fragment.from_smiles("[CH]([CH2]O)C", {0: 30.0, 1: 60.0, 3: 12.0})
        frag_y = Fragment.from_smiles("C[CH][CH2]O", {0: 12.1, 1: 30.2, 2: 60.3})
        # children pair up crosswise, so the whole trees agree
        self.assertEqual(max_overlap_depth(frag_x, 0, frag_y, 1, 0.5), 3)
        for i in frag_x.open_atoms:
            for j in frag_y.open_atoms:
                self.assertEqual(max_overlap_depth(frag_x, i, frag_y, j, 0.5),
                                 max_overlap_depth(frag_y, j, frag_x, i, 0.5))

    def test_min_depth_filters(self):
        self.assertEqual(find_overlaps(self.frag_a, self.frag_b, 2, 0.5), {})

    def test_shift_outside_tolerance(self):
        far = Fragment.from_smiles("[CH]C", {0: 80.0, 1: 25.0})
        self.assertEqual(find_overlaps(self.frag_a, far, 1, 0.5), {})

    def test_saturated_root_rejected(self):
        """A pair whose atom is saturated in one fragment is never reported."""
        saturated = Fragment.from_smiles("C(Cl)(Br)C", {0: 40.0, 3: 25.0})
        self.assertEqual(saturated.open_atoms, [])
        self.assertEqual(find_overlaps(self.frag_a, saturated, 1, 0.5), {})

    def test_deeper_overlap_preferred(self):
        """Fragments sharing two spheres overlap at depth 2."""
        frag_x = Fragment.from_smiles("[CH2]([CH2]O)", {0: 30.0, 1: 60.0})
        frag_y = Fragment.from_smiles("[CH2]([CH2]O)", {0: 30.2, 1: 60.1})
        overlaps = find_overlaps(frag_x, frag_y, 1, 0.5)
        self.assertEqual(list(overlaps), [3])
        self.assertEqual(overlaps[3], [(0, 0)])


class TestAtomMapping(CleanLogsTestCase):

    def test_mapping_limited_to_depth(self):
        frag_x = Fragment.from_smiles("[CH2]([CH2]O)", {0: 30.0, 1: 60.0})
        frag_y = Fragment.from_smiles("[CH2]([CH2]O)", {0: 30.2, 1: 60.1})
        self.assertEqual(build_atom_mapping(frag_x, 0, frag_y, 0, 1, 0.5), {0: 0})
        self.assertEqual(build_atom_mapping(frag_x, 0, frag_y, 0, 2, 0.5), {0: 0, 1: 1})
        self.assertEqual(build_atom_mapping(frag_x, 0, frag_y, 0, 3, 0.5), {0: 0, 1: 1, 2: 2})

    def test_mapping_none_when_disagreeing(self):
        frag_a, frag_b, _ = halomethyl_pair()
        self.assertIsNone(build_atom_mapping(frag_a, 0, frag_b, 0, 2, 0.5))


if __name__ == '__main__':
    unittest.main()
