# -*- coding: ascii -*-
"""Structure standardization and canonical serialization."""

import logging
from typing import Optional

from rdkit import Chem
from rdkit.Chem.MolStandardize import rdMolStandardize

LOG = logging.getLogger(__name__)


class CanonicalizationError(ValueError):
    """Structure cannot be rendered to a canonical form (bad valence or kekulization)."""


def canonicalize(fragment_or_mol) -> str:
    """
    Canonical SMILES of a complete structure.

    A copy is sanitized first, so fragments whose bonding pattern cannot be
    kekulized or violates valences raise CanonicalizationError.
    """
    mol = getattr(fragment_or_mol, 'mol', fragment_or_mol)
    if mol is None:
        raise CanonicalizationError("No structure to canonicalize")

    work = Chem.Mol(mol)
    try:
        Chem.SanitizeMol(work)
        smiles = Chem.MolToSmiles(work, canonical=True)
    except (Chem.AtomValenceException, Chem.KekulizeException, ValueError, RuntimeError) as e:
        raise CanonicalizationError(f"{type(e).__name__}: {e}") from e
    if not smiles:
        raise CanonicalizationError("Empty canonical SMILES")
    return smiles


def std_from_smiles(smi: str) -> Optional[Chem.Mol]:
    """
    Parse and clean a source structure, keeping its atom order.

    Returns None when the SMILES cannot be parsed or sanitized; atom indices
    of the result match the input so index-keyed shift assignments stay valid.
    """
    if not smi:
        return None

    mol = Chem.MolFromSmiles(smi)
    if mol is None:
        return None

    try:
        mol = rdMolStandardize.Cleanup(mol)
        Chem.SanitizeMol(mol)
    except (Chem.AtomValenceException, Chem.KekulizeException, ValueError, RuntimeError) as e:
        LOG.debug("Standardization failed for %s: %s", smi, e)
        return None
    return mol
