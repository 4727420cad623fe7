# -*- coding: ascii -*-
"""Valence and bonding checks for fragments under construction."""

from typing import List, Optional

from rdkit import Chem

from .chem_compat import default_valence

# Extra valence tolerated when an aromatic bond is added to an aromatic atom
AROMATIC_SLACK = 0.5
_EPS = 1e-6

BOND_ORDERS = {
    Chem.BondType.SINGLE: 1.0,
    Chem.BondType.DOUBLE: 2.0,
    Chem.BondType.TRIPLE: 3.0,
    Chem.BondType.AROMATIC: 1.5,
}


def sanitize_ok(mol: Chem.Mol) -> bool:
    """Check if molecule sanitizes OK (valences and kekulization)."""
    if mol is None:
        return False

    try:
        # Try to sanitize a copy
        test_mol = Chem.Mol(mol)
        Chem.SanitizeMol(test_mol)
        return True
    except (Chem.AtomValenceException, Chem.KekulizeException, ValueError, RuntimeError):
        return False


def bond_order_sum(mol: Chem.Mol, atom_idx: int) -> float:
    """Sum of bond orders around an atom, aromatic bonds counting 1.5."""
    atom = mol.GetAtomWithIdx(atom_idx)
    return sum(bond.GetBondTypeAsDouble() for bond in atom.GetBonds())


def bond_order(bond_type: Chem.BondType) -> float:
    return BOND_ORDERS.get(bond_type, 0.0)


def used_valence(mol: Chem.Mol, atom_idx: int) -> float:
    atom = mol.GetAtomWithIdx(atom_idx)
    return bond_order_sum(mol, atom_idx) + atom.GetNumExplicitHs()


def max_valence(atom: Chem.Atom) -> int:
    return default_valence(atom.GetAtomicNum(), atom.GetFormalCharge())


def is_open_atom(mol: Chem.Mol, atom_idx: int) -> bool:
    """
    Check whether an atom can still accept bonds.

    An atom is open when its bond-order sum plus hydrogen count is below its
    default valence. Elements without a default valence are never open.
    """
    limit = max_valence(mol.GetAtomWithIdx(atom_idx))
    if limit < 0:
        return False
    return used_valence(mol, atom_idx) + _EPS < limit


def open_atom_indices(mol: Chem.Mol) -> List[int]:
    return [atom.GetIdx() for atom in mol.GetAtoms() if is_open_atom(mol, atom.GetIdx())]


def validate_bond_addition(fragment, atom_idx: int, bond_type: Chem.BondType,
                           partner: Optional[int] = None) -> bool:
    """
    Check that adding a bond of `bond_type` at `atom_idx` keeps its valence legal.

    Args:
        fragment: Fragment (or RDKit molecule) receiving the bond
        atom_idx: Atom gaining the bond
        bond_type: RDKit bond type to add
        partner: Optional second atom of the bond; when given, self bonds and
            duplicate bonds are rejected and the partner valence is checked too

    Returns:
        True if the bond may be added
    """
    mol = getattr(fragment, 'mol', fragment)
    order = bond_order(bond_type)
    if order <= 0:
        return False

    atoms = [atom_idx]
    if partner is not None:
        if partner == atom_idx or mol.GetBondBetweenAtoms(atom_idx, partner) is not None:
            return False
        atoms.append(partner)

    for idx in atoms:
        atom = mol.GetAtomWithIdx(idx)
        limit = max_valence(atom)
        if limit < 0:
            return False
        slack = AROMATIC_SLACK if (atom.GetIsAromatic() and bond_type == Chem.BondType.AROMATIC) else 0.0
        if used_valence(mol, idx) + order > limit + slack + _EPS:
            return False
    return True

