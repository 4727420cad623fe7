# -*- coding: ascii -*-
"""
Overlap detection between the neighborhood trees of two fragments.

Depth Semantics:
================
- The depth of an overlap is the number of spheres, starting with the root
  sphere, on which the two trees agree. Depth 1 means only the two roots
  agree; depth d means spheres 0..d-1 agree.
- Two nodes agree when they are both ring closures or both regular nodes,
  their atoms have the same element, aromatic flag, formal charge and
  hydrogen count, their bonds to the primary parent have the same type, they
  have the same number of parents, and their shifts are both absent or within
  the tolerance.
- Children are paired by a perfect matching in any order, so the relation is
  symmetric: agree(A, a, B, b) == agree(B, b, A, a).
- Only atoms that are open in BOTH fragments are considered as roots.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from .neighborhood import TreeNode
from .schema import DECIMAL_PLACES

LOG = logging.getLogger(__name__)

OverlapMap = Dict[int, List[Tuple[int, int]]]


def atoms_agree(fragment_a, atom_a: int, fragment_b, atom_b: int, tolerance: float) -> bool:
    """Compare atom properties and shifts of one atom pair."""
    a = fragment_a.mol.GetAtomWithIdx(atom_a)
    b = fragment_b.mol.GetAtomWithIdx(atom_b)
    if (a.GetAtomicNum() != b.GetAtomicNum()
            or a.GetIsAromatic() != b.GetIsAromatic()
            or a.GetFormalCharge() != b.GetFormalCharge()
            or a.GetNumExplicitHs() != b.GetNumExplicitHs()):
        return False

    shift_a = fragment_a.shift_of(atom_a)
    shift_b = fragment_b.shift_of(atom_b)
    if shift_a is None or shift_b is None:
        return shift_a is None and shift_b is None
    return round(abs(shift_a - shift_b), DECIMAL_PLACES) <= tolerance


def nodes_agree(fragment_a, node_a: TreeNode, fragment_b, node_b: TreeNode, tolerance: float) -> bool:
    if node_a.ring_closure != node_b.ring_closure:
        return False
    if node_a.bond_type != node_b.bond_type or len(node_a.parents) != len(node_b.parents):
        return False
    return atoms_agree(fragment_a, node_a.atom, fragment_b, node_b.atom, tolerance)


def _match_nodes(fragment_a, node_a: TreeNode, fragment_b, node_b: TreeNode, depth: int,
                 tolerance: float) -> Optional[List[Tuple[int, int]]]:
    """
    Match the subtrees below two nodes over `depth` spheres.

    Returns the (atom_a, atom_b) pairs of the regular nodes matched, in BFS-ish
    discovery order, or None when the subtrees disagree.
    """
    if not nodes_agree(fragment_a, node_a, fragment_b, node_b, tolerance):
        return None
    if node_a.ring_closure:
        return []
    pairs = [(node_a.atom, node_b.atom)]
    if depth <= 1:
        return pairs

    children_a = node_a.children
    children_b = node_b.children
    if len(children_a) != len(children_b):
        return None
    sub = _match_children(fragment_a, children_a, fragment_b, children_b, 0, set(), depth - 1, tolerance)
    if sub is None:
        return None
    return pairs + sub


def _match_children(fragment_a, children_a: List[TreeNode], fragment_b, children_b: List[TreeNode],
                    k: int, used: Set[int], depth: int, tolerance: float) -> Optional[List[Tuple[int, int]]]:
    # backtracking perfect matching; first valid permutation wins
    if k == len(children_a):
        return []
    for idx, child_b in enumerate(children_b):
        if idx in used:
            continue
        head = _match_nodes(fragment_a, children_a[k], fragment_b, child_b, depth, tolerance)
        if head is None:
            continue
        used.add(idx)
        tail = _match_children(fragment_a, children_a, fragment_b, children_b, k + 1, used, depth, tolerance)
        used.discard(idx)
        if tail is not None:
            return head + tail
    return None


def build_atom_mapping(fragment_a, atom_a: int, fragment_b, atom_b: int, depth: int,
                       tolerance: float) -> Optional[Dict[int, int]]:
    """
    Bijective mapping of A atoms onto B atoms for spheres 0..depth-1.

    Returns None if the two trees do not agree to that depth.
    """
    tree_a = fragment_a.neighborhood_tree(atom_a)
    tree_b = fragment_b.neighborhood_tree(atom_b)
    pairs = _match_nodes(fragment_a, tree_a.root, fragment_b, tree_b.root, depth, tolerance)
    if pairs is None:
        return None
    return dict(pairs)


def max_overlap_depth(fragment_a, atom_a: int, fragment_b, atom_b: int, tolerance: float) -> int:
    """Largest depth at which the trees rooted at atom_a and atom_b agree (0 if the roots differ)."""
    tree_a = fragment_a.neighborhood_tree(atom_a)
    tree_b = fragment_b.neighborhood_tree(atom_b)
    limit = max(tree_a.depth, tree_b.depth)

    best = 0
    for depth in range(1, limit + 1):
        if _match_nodes(fragment_a, tree_a.root, fragment_b, tree_b.root, depth, tolerance) is None:
            break
        best = depth
    return best


def find_overlaps(fragment_a, fragment_b, min_depth: int, tolerance: float) -> OverlapMap:
    """
    All overlapping open atom pairs of two fragments, grouped by depth.

    Args:
        fragment_a: First fragment
        fragment_b: Second fragment
        min_depth: Pairs agreeing on fewer spheres are dropped (values below 1 act as 1)
        tolerance: Maximum shift deviation for two atoms to agree

    Returns:
        {depth: [(atom_a, atom_b), ...]} with depths in descending order and
        pairs in discovery order (A atoms ascending, then B atoms ascending)
    """
    threshold = max(int(min_depth), 1)
    found: OverlapMap = {}
    open_b = fragment_b.open_atoms
    for atom_a in fragment_a.open_atoms:
        for atom_b in open_b:
            depth = max_overlap_depth(fragment_a, atom_a, fragment_b, atom_b, tolerance)
            if depth >= threshold:
                found.setdefault(depth, []).append((atom_a, atom_b))

    if found:
        LOG.debug("Overlaps by depth: %s", {d: len(p) for d, p in found.items()})
    return {depth: found[depth] for depth in sorted(found, reverse=True)}
