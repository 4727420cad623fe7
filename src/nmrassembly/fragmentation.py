# -*- coding: ascii -*-
"""
Fragment library construction from assigned source structures.

Every atom of a source structure roots one fragment: the atoms within
`max_sphere` bonds, in breadth-first order (root first), and the bonds among
them. Hydrogen counts are copied from the source, so atoms whose bonds were
cut become open. Atoms of the observed nucleus element must all carry a shift;
a structure with an unassigned one contributes no fragments.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from rdkit import Chem

from .fragment import Fragment, copy_atom
from .neighborhood import build_neighborhood_tree
from .schema import DEFAULT_NUCLEUS, EQUIV_SIGNAL_THRESHOLD, NUCLEUS_ELEMENTS
from .spectrum import Spectrum
from .standardize import std_from_smiles
from .state_sig import compute_fragment_signature

LOG = logging.getLogger(__name__)


def build_fragment(mol: Chem.Mol, shifts: Dict[int, float], root_atom: int, max_sphere: int,
                   nucleus: str = DEFAULT_NUCLEUS,
                   equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> Optional[Fragment]:
    """
    Extract the spherical fragment around `root_atom`.

    Returns:
        Fragment with the root at index 0, or None if an atom of the nucleus
        element inside the sphere has no shift
    """
    element = NUCLEUS_ELEMENTS.get(nucleus)
    order = build_neighborhood_tree(mol, root_atom, max_sphere).keys()
    local = {atom_idx: k for k, atom_idx in enumerate(order)}

    sub = Chem.RWMol()
    spectrum = Spectrum(nucleus=nucleus, equivalence_threshold=equivalence_threshold)
    assignment = []
    for atom_idx in order:
        atom = mol.GetAtomWithIdx(atom_idx)
        new_idx = sub.AddAtom(copy_atom(atom, hydrogens=atom.GetTotalNumHs()))
        if atom.GetSymbol() == element:
            if atom_idx not in shifts:
                return None
            spectrum.add_signal(shifts[atom_idx])
            assignment.append(new_idx)

    for bond in mol.GetBonds():
        begin, end = bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()
        if begin in local and end in local:
            n_bonds = sub.AddBond(local[begin], local[end], bond.GetBondType())
            if bond.GetIsAromatic():
                sub.GetBondWithIdx(n_bonds - 1).SetIsAromatic(True)

    return Fragment(sub, spectrum, assignment, root_atom=0, max_sphere=max_sphere)


def fragment_structure(mol: Chem.Mol, shifts: Dict[int, float], max_sphere: int,
                       nucleus: str = DEFAULT_NUCLEUS,
                       equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> List[Fragment]:
    """One fragment per atom of `mol`; empty if any fragment cannot be built."""
    fragments = []
    for atom in mol.GetAtoms():
        fragment = build_fragment(mol, shifts, atom.GetIdx(), max_sphere, nucleus, equivalence_threshold)
        if fragment is None:
            LOG.debug("Atom %d: unassigned %s atom in sphere, skipping structure", atom.GetIdx(), nucleus)
            return []
        fragments.append(fragment)
    return fragments


def build_library(sources: Iterable[Tuple[str, Dict[int, float]]], max_sphere: int,
                  nucleus: str = DEFAULT_NUCLEUS,
                  equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> List[Fragment]:
    """
    Build a deduplicated fragment library from (smiles, {atom index: shift}) pairs.

    Fragments with identical structure and shifts are kept once, first
    occurrence wins.
    """
    library = []
    seen = set()
    n_sources = 0
    n_skipped = 0
    for smiles, shifts in sources:
        n_sources += 1
        mol = std_from_smiles(smiles)
        if mol is None:
            LOG.warning("Cannot parse source structure: %s", smiles)
            n_skipped += 1
            continue
        fragments = fragment_structure(mol, shifts, max_sphere, nucleus, equivalence_threshold)
        if not fragments:
            LOG.warning("Incomplete assignment, no fragments from %s", smiles)
            n_skipped += 1
            continue
        for fragment in fragments:
            signature = compute_fragment_signature(fragment)
            if signature in seen:
                continue
            seen.add(signature)
            library.append(fragment)

    LOG.info("Built %d fragments from %d sources (%d skipped)", len(library), n_sources, n_skipped)
    return library
