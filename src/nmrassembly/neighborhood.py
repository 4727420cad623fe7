# -*- coding: ascii -*-
"""
Spherical neighborhood trees rooted at one atom.

Tree Layout:
============
- Sphere 0 holds the root. Every other regular node sits one sphere below the
  parent it was first reached from (its primary parent).
- A node reached from several atoms of the previous sphere keeps all of them
  as parents and is listed as a child of its primary parent only (AMBIGUOUS).
- A bond between two atoms of the same sphere produces a RING_CLOSURE child on
  both atoms. Ring-closure nodes reference an already placed atom and are
  never expanded.
- Neighbors are visited by bond order (desc), atomic number (desc) and atom
  index, so trees of equal graphs have the same child order.
"""

from collections import deque
from enum import Enum
from typing import Dict, Iterator, List, Optional

from rdkit import Chem


class NodeRole(Enum):
    ROOT = 'root'
    CHILD = 'child'
    AMBIGUOUS = 'ambiguous'
    RING_CLOSURE = 'ring_closure'


class TreeNode:
    """One atom occurrence in a neighborhood tree."""

    __slots__ = ('atom', 'sphere', 'parents', 'bonds_to_parents', 'children', 'ring_closure')

    def __init__(self, atom: int, sphere: int, parent: Optional[int] = None,
                 bond_type: Optional[Chem.BondType] = None, ring_closure: bool = False):
        self.atom = atom
        self.sphere = sphere
        self.parents: List[int] = [] if parent is None else [parent]
        self.bonds_to_parents: List[Chem.BondType] = [] if bond_type is None else [bond_type]
        self.children: List['TreeNode'] = []
        self.ring_closure = ring_closure

    @property
    def role(self) -> NodeRole:
        if self.ring_closure:
            return NodeRole.RING_CLOSURE
        if not self.parents:
            return NodeRole.ROOT
        if len(self.parents) > 1:
            return NodeRole.AMBIGUOUS
        return NodeRole.CHILD

    @property
    def parent(self) -> Optional[int]:
        return self.parents[0] if self.parents else None

    @property
    def bond_type(self) -> Optional[Chem.BondType]:
        """Bond type to the primary parent."""
        return self.bonds_to_parents[0] if self.bonds_to_parents else None

    def __repr__(self):
        return f"TreeNode(atom={self.atom}, sphere={self.sphere}, role={self.role.value})"


def _ordered_neighbors(mol: Chem.Mol, atom_idx: int):
    atom = mol.GetAtomWithIdx(atom_idx)
    pairs = []
    for bond in atom.GetBonds():
        other = bond.GetOtherAtom(atom)
        pairs.append((-bond.GetBondTypeAsDouble(), -other.GetAtomicNum(), other.GetIdx(), bond.GetBondType()))
    pairs.sort(key=lambda p: p[:3])
    return [(p[2], p[3]) for p in pairs]


class NeighborhoodTree:
    """BFS tree of an atom's neighborhood, optionally bounded to `max_sphere` spheres."""

    def __init__(self, mol: Chem.Mol, root_atom: int, max_sphere: Optional[int] = None):
        if root_atom < 0 or root_atom >= mol.GetNumAtoms():
            raise ValueError(f"Root atom {root_atom} out of range for {mol.GetNumAtoms()} atoms")
        self.max_sphere = max_sphere
        self.root = TreeNode(root_atom, 0)
        self._nodes: Dict[int, TreeNode] = {root_atom: self.root}
        self._order: List[int] = [root_atom]
        self.depth = 1
        self._build(mol)

    def _build(self, mol: Chem.Mol) -> None:
        frontier = [self.root]
        sphere = 0
        while frontier and (self.max_sphere is None or sphere < self.max_sphere):
            next_frontier = []
            for node in frontier:
                for neighbor, bond_type in _ordered_neighbors(mol, node.atom):
                    if neighbor in node.parents:
                        continue
                    placed = self._nodes.get(neighbor)
                    if placed is None:
                        child = TreeNode(neighbor, sphere + 1, node.atom, bond_type)
                        node.children.append(child)
                        self._nodes[neighbor] = child
                        self._order.append(neighbor)
                        next_frontier.append(child)
                    elif placed.sphere == sphere + 1:
                        placed.parents.append(node.atom)
                        placed.bonds_to_parents.append(bond_type)
                    else:
                        node.children.append(
                            TreeNode(neighbor, sphere + 1, node.atom, bond_type, ring_closure=True))
                    self.depth = max(self.depth, sphere + 2)
            frontier = next_frontier
            sphere += 1

    @property
    def root_atom(self) -> int:
        return self.root.atom

    def keys(self) -> List[int]:
        """Atom indices of regular nodes in BFS order."""
        return list(self._order)

    def node(self, atom: int) -> Optional[TreeNode]:
        return self._nodes.get(atom)

    def __contains__(self, atom: int) -> bool:
        return atom in self._nodes

    def __iter__(self) -> Iterator[TreeNode]:
        return (self._nodes[a] for a in self._order)

    def branch(self, atom: int) -> List[TreeNode]:
        """The node of `atom` and all its regular descendants, breadth-first."""
        start = self._nodes[atom]
        result = []
        queue = deque([start])
        while queue:
            node = queue.popleft()
            result.append(node)
            queue.extend(child for child in node.children if not child.ring_closure)
        return result


def build_neighborhood_tree(mol: Chem.Mol, root_atom: int, max_sphere: Optional[int] = None) -> NeighborhoodTree:
    return NeighborhoodTree(mol, root_atom, max_sphere)
