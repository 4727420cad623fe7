# -*- coding: ascii -*-
"""
Fragment merge (graft) engine.

Merge Semantics:
================
- Overlaps are tried by decreasing depth. For every (atom_a, atom_b) pair a
  candidate is built on a clone of A; candidates of all depths are collected
  and ranked together.
- For each open mapped A atom, every unmapped, non-ring-closure child of its
  B counterpart roots a branch that is grafted breadth-first: atoms first
  (with their signals), then bonds inside the branch, then bonds back to
  already mapped atoms.
- The subspectrum is validated after each branch; a failing branch is rolled
  back by restoring the clone taken before it.
- A candidate must have a valid subspectrum and be strictly larger than A.
- Candidates are ranked by atom count (desc), bond count (desc) and average
  deviation (asc); remaining ties keep discovery order, so a deeper overlap
  wins among otherwise equal candidates.
- Neither input fragment is mutated.
"""

import logging
from typing import Dict, List, Optional

from .overlap import OverlapMap, build_atom_mapping, find_overlaps
from .qc import is_open_atom, validate_bond_addition
from .spectrum import Spectrum, average_deviation, is_valid_subspectrum

LOG = logging.getLogger(__name__)


def _graft_branch(merged, anchor: int, fragment_b, tree_b, branch_root, inverse: Dict[int, int]) -> Dict[int, int]:
    """
    Graft one B branch onto `merged` at `anchor`.

    Returns:
        Mapping of B atom -> new atom index for the grafted atoms
    """
    placed: Dict[int, int] = {}
    for node in tree_b.branch(branch_root.atom):
        atom_b = fragment_b.mol.GetAtomWithIdx(node.atom)
        new_idx = merged.add_atom(atom_b, fragment_b.shift_of(node.atom))
        parent = anchor if node is branch_root else placed[node.parent]
        merged.add_bond(parent, new_idx, node.bond_type)
        placed[node.atom] = new_idx

    # closures: inside the branch, then back to already mapped atoms
    for atom_b, new_idx in placed.items():
        for bond in fragment_b.mol.GetAtomWithIdx(atom_b).GetBonds():
            other = bond.GetOtherAtomIdx(atom_b)
            if other in placed:
                target = placed[other]
            elif other in inverse:
                target = inverse[other]
            else:
                continue
            if merged.mol.GetBondBetweenAtoms(new_idx, target) is not None:
                continue
            if not validate_bond_addition(merged, new_idx, bond.GetBondType(), partner=target):
                LOG.debug("Skipping closure %d-%d: valence", new_idx, target)
                continue
            merged.add_bond(new_idx, target, bond.GetBondType())
    return placed


def graft_at(fragment_a, atom_a: int, fragment_b, atom_b: int, depth: int, target: Spectrum,
             tolerance: float, match_threshold: float):
    """
    Build one merge candidate from the overlap (atom_a, atom_b) at `depth`.

    Returns:
        New Fragment or None when nothing valid could be grafted
    """
    mapping = build_atom_mapping(fragment_a, atom_a, fragment_b, atom_b, depth, tolerance)
    if mapping is None:
        return None

    merged = fragment_a.clone()
    inverse = {b: a for a, b in mapping.items()}
    tree_b = fragment_b.neighborhood_tree(atom_b)

    for anchor in [a for a in mapping if is_open_atom(merged.mol, a)]:
        node_b = tree_b.node(mapping[anchor])
        for child in node_b.children:
            if child.ring_closure or child.atom in inverse:
                continue
            if not validate_bond_addition(merged, anchor, child.bond_type):
                continue
            backup = merged.clone()
            placed = _graft_branch(merged, anchor, fragment_b, tree_b, child, inverse)
            if is_valid_subspectrum(merged.spectrum, target, tolerance, match_threshold):
                inverse.update(placed)
            else:
                LOG.debug("Rolling back branch at B atom %d: subspectrum invalid", child.atom)
                merged = backup

    if merged.atom_count <= fragment_a.atom_count and merged.bond_count <= fragment_a.bond_count:
        return None
    if not is_valid_subspectrum(merged.spectrum, target, tolerance, match_threshold):
        return None
    return merged


def rank_candidates(candidates: List, target: Spectrum, tolerance: float) -> List:
    """Sort by atoms desc, bonds desc, average deviation asc (stable)."""
    def _key(fragment):
        deviation = average_deviation(fragment.spectrum, target, tolerance)
        return (-fragment.atom_count, -fragment.bond_count,
                float('inf') if deviation is None else deviation)
    return sorted(candidates, key=_key)


def merge_fragments(fragment_a, fragment_b, target: Spectrum, min_depth: int, tolerance: float,
                    match_threshold: float, overlaps: Optional[OverlapMap] = None):
    """
    Merge fragment_b into a copy of fragment_a.

    Args:
        fragment_a: Intermediate (or start fragment) to extend
        fragment_b: Library fragment to graft from
        target: Query spectrum
        min_depth: Minimum matching depth for overlaps
        tolerance: Shift tolerance for atom agreement and signal assignment
        match_threshold: Maximum average deviation of a valid subspectrum
        overlaps: Precomputed find_overlaps() result, if available

    Returns:
        The best merged Fragment, or None
    """
    if overlaps is None:
        overlaps = find_overlaps(fragment_a, fragment_b, min_depth, tolerance)
    if not overlaps:
        return None

    candidates = []
    for depth in sorted(overlaps, reverse=True):
        for atom_a, atom_b in overlaps[depth]:
            merged = graft_at(fragment_a, atom_a, fragment_b, atom_b, depth, target, tolerance, match_threshold)
            if merged is not None:
                candidates.append(merged)
    if not candidates:
        return None

    best = rank_candidates(candidates, target, tolerance)[0]
    LOG.debug("Merged over depths %s: %d candidates, best %r", sorted(overlaps, reverse=True), len(candidates), best)
    return best
