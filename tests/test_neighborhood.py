# -*- coding: ascii -*-
"""Test neighborhood tree construction."""

import unittest

from rdkit import Chem

from nmrassembly.neighborhood import NodeRole, build_neighborhood_tree
from tests import CleanLogsTestCase


class TestNeighborhoodTree(CleanLogsTestCase):

    def test_chain_spheres(self):
        mol = Chem.MolFromSmiles("CCCO")
        tree = build_neighborhood_tree(mol, 0)
        self.assertEqual(tree.keys(), [0, 1, 2, 3])
        self.assertEqual([n.sphere for n in tree], [0, 1, 2, 3])
        self.assertEqual(tree.depth, 4)
        self.assertEqual(tree.root.role, NodeRole.ROOT)
        self.assertEqual(tree.node(1).role, NodeRole.CHILD)
        self.assertEqual(tree.node(1).bond_type, Chem.BondType.SINGLE)

    def test_bounded_spheres(self):
        mol = Chem.MolFromSmiles("CCCO")
        tree = build_neighborhood_tree(mol, 0, max_sphere=1)
        self.assertEqual(tree.keys(), [0, 1])
        self.assertNotIn(2, tree)

    def test_child_order(self):
        """Children come by bond order, then atomic number, then index."""
        mol = Chem.MolFromSmiles("C(C)(Cl)=O")
        tree = build_neighborhood_tree(mol, 0)
        self.assertEqual([c.atom for c in tree.root.children], [3, 2, 1])

    def test_even_ring_has_ambiguous_node(self):
        """In a 4-ring the atom opposite the root is reached from two parents."""
        mol = Chem.MolFromSmiles("C1CCC1")
        tree = build_neighborhood_tree(mol, 0)
        opposite = tree.node(2)
        self.assertEqual(opposite.role, NodeRole.AMBIGUOUS)
        self.assertEqual(sorted(opposite.parents), [1, 3])
        self.assertEqual([n.atom for n in tree if n.sphere == 1], [1, 3])

    def test_odd_ring_has_closures(self):
        """In a 5-ring the two far atoms close the ring onto each other."""
        mol = Chem.MolFromSmiles("C1CCCC1")
        tree = build_neighborhood_tree(mol, 0)
        closures = [c for n in tree for c in n.children if c.role == NodeRole.RING_CLOSURE]
        self.assertEqual(sorted(c.atom for c in closures), [2, 3])
        self.assertEqual(tree.depth, 4)
        self.assertEqual(max(n.sphere for n in tree), 2)

    def test_branch(self):
        mol = Chem.MolFromSmiles("CC(O)CC")
        tree = build_neighborhood_tree(mol, 0)
        self.assertEqual([n.atom for n in tree.branch(1)], [1, 2, 3, 4])
        self.assertEqual([n.atom for n in tree.branch(3)], [3, 4])

    def test_root_out_of_range(self):
        with self.assertRaises(ValueError):
            build_neighborhood_tree(Chem.MolFromSmiles("C"), 3)


if __name__ == '__main__':
    unittest.main()
