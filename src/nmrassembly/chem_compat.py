# -*- coding: ascii -*-
"""RDKit aliases and best-effort helpers.

This module exposes single Chem / RDLogger aliases that callers and tests can
patch, plus helpers used where only a display string or an ordering is needed.
"""

import rdkit.Chem as Chem
from rdkit import RDLogger

PERIODIC_TABLE = Chem.GetPeriodicTable()


def mol_to_smiles_safe(mol, canonical=True) -> str:
    """SMILES for display; never raises on partial (unsanitized) fragments."""
    try:
        work = Chem.Mol(mol)
        work.UpdatePropertyCache(strict=False)
        Chem.FastFindRings(work)
        return Chem.MolToSmiles(work, canonical=canonical)
    except (RuntimeError, ValueError):
        return ''


def canonical_rank_atoms_safe(mol, breakTies=True):
    try:
        return list(Chem.CanonicalRankAtoms(mol, breakTies=breakTies))
    except (RuntimeError, ValueError):
        return list(range(mol.GetNumAtoms()))


def default_valence(atomic_num: int, formal_charge: int = 0) -> int:
    """
    Default valence of an atom, charge-adjusted through its isoelectronic element.

    N+ behaves like C (4), O- like F (1), C- like N (3). Returns -1 when RDKit
    has no default valence for the element (metals, noble gases).
    """
    effective = atomic_num - formal_charge
    if effective < 1 or effective > 118:
        return -1
    return PERIODIC_TABLE.GetDefaultValence(effective)
