# -*- coding: ascii -*-
"""Path-independent state signatures for failed-branch memoization."""

import hashlib

from .chem_compat import Chem, canonical_rank_atoms_safe, mol_to_smiles_safe


def compute_fragment_signature(fragment) -> str:
    """
    Compute a structural signature for an intermediate.

    Two intermediates built along different paths get the same signature when
    they have the same graph (including hydrogen counts) and the same shifts
    on canonically equivalent atoms. Object identity plays no role.

    Args:
        fragment: Fragment to sign

    Returns:
        Hex string signature ("" for an empty fragment)
    """
    if fragment.atom_count == 0:
        return ""

    work = Chem.Mol(fragment.mol)
    work.UpdatePropertyCache(strict=False)
    Chem.FastFindRings(work)

    smiles = mol_to_smiles_safe(work)
    ranks = canonical_rank_atoms_safe(work, breakTies=True)

    # Shifts listed in canonical atom order
    by_rank = sorted(range(fragment.atom_count), key=lambda idx: ranks[idx])
    shifts = tuple(
        None if fragment.shift_of(idx) is None else round(fragment.shift_of(idx), 4)
        for idx in by_rank
    )
    hydrogens = tuple(work.GetAtomWithIdx(idx).GetNumExplicitHs() for idx in by_rank)

    signature_str = str((smiles, hydrogens, shifts))
    return hashlib.md5(signature_str.encode('ascii', errors='ignore')).hexdigest()
