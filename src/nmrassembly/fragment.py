# -*- coding: ascii -*-
"""
Fragment model: a small structure graph carrying its own subspectrum.

Ownership Rules:
================
- A Fragment owns its RWMol, Spectrum and assignment list. clone() copies all
  three; library fragments are never mutated during assembly.
- Mutations only append atoms/bonds (RDKit keeps existing indices stable) or
  remove the most recent ones, so an undo is exact.
- Derived state (open atoms, atom->shift lookup, neighborhood trees) lives in a
  FragmentCache that is dropped wholesale on every mutation.
"""

import logging
from typing import Dict, List, Optional, Tuple

from rdkit import Chem

from .neighborhood import NeighborhoodTree, build_neighborhood_tree
from .qc import open_atom_indices
from .schema import DEFAULT_NUCLEUS, EQUIV_SIGNAL_THRESHOLD
from .spectrum import Spectrum

LOG = logging.getLogger(__name__)


class FragmentError(ValueError):
    """Malformed fragment data."""


def copy_atom(atom: Chem.Atom, hydrogens: Optional[int] = None) -> Chem.Atom:
    """
    Detached copy of an atom with its hydrogen count frozen.

    The copy carries element, formal charge and aromatic flag; hydrogens are
    stored as explicit count with NoImplicit set so later bond additions do
    not change them.
    """
    if hydrogens is None:
        if atom.GetNoImplicit() or not atom.HasOwningMol():
            hydrogens = atom.GetNumExplicitHs()
        else:
            hydrogens = atom.GetTotalNumHs()
    new_atom = Chem.Atom(atom.GetAtomicNum())
    new_atom.SetFormalCharge(atom.GetFormalCharge())
    new_atom.SetIsAromatic(atom.GetIsAromatic())
    new_atom.SetNumExplicitHs(int(hydrogens))
    new_atom.SetNoImplicit(True)
    new_atom.SetNumRadicalElectrons(0)
    return new_atom


class FragmentCache:
    __slots__ = ('open_atoms', 'shift_by_atom', 'trees')

    def __init__(self):
        self.open_atoms: Optional[List[int]] = None
        self.shift_by_atom: Optional[Dict[int, float]] = None
        self.trees: Dict[Tuple[int, Optional[int]], NeighborhoodTree] = {}


class Fragment:
    """Correlation unit: structure graph, subspectrum, assignment and root."""

    def __init__(self, mol: Chem.RWMol, spectrum: Spectrum, assignment: List[int],
                 root_atom: int = 0, max_sphere: Optional[int] = None):
        if len(assignment) != spectrum.signal_count:
            raise FragmentError(
                f"Assignment has {len(assignment)} entries for {spectrum.signal_count} signals")
        for atom_idx in assignment:
            if atom_idx < 0 or atom_idx >= mol.GetNumAtoms():
                raise FragmentError(f"Signal assigned to missing atom {atom_idx}")
        if mol.GetNumAtoms() and not 0 <= root_atom < mol.GetNumAtoms():
            raise FragmentError(f"Root atom {root_atom} out of range")
        self.mol = mol
        self.spectrum = spectrum
        self.assignment = assignment
        self.root_atom = root_atom
        self.max_sphere = max_sphere
        self._cache = FragmentCache()

    # ---- construction ----

    @classmethod
    def from_smiles(cls, smiles: str, shifts: Optional[Dict[int, float]] = None, root_atom: int = 0,
                    max_sphere: Optional[int] = None, nucleus: str = DEFAULT_NUCLEUS,
                    equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> 'Fragment':
        """
        Build a fragment from SMILES and a map of atom index -> shift.

        The SMILES is parsed without sanitization so partial structures with
        open valences (e.g. "[CH](Cl)Br") are accepted as written.
        """
        parsed = Chem.MolFromSmiles(smiles, sanitize=False)
        if parsed is None:
            raise FragmentError(f"Cannot parse fragment SMILES: {smiles}")
        parsed.UpdatePropertyCache(strict=False)

        mol = Chem.RWMol()
        for atom in parsed.GetAtoms():
            mol.AddAtom(copy_atom(atom))
        for bond in parsed.GetBonds():
            _add_bond(mol, bond.GetBeginAtomIdx(), bond.GetEndAtomIdx(), bond.GetBondType())

        shifts = shifts or {}
        spectrum = Spectrum(nucleus=nucleus, equivalence_threshold=equivalence_threshold)
        assignment = []
        for atom_idx in sorted(shifts):
            spectrum.add_signal(shifts[atom_idx])
            assignment.append(int(atom_idx))
        return cls(mol, spectrum, assignment, root_atom=root_atom, max_sphere=max_sphere)

    def clone(self) -> 'Fragment':
        twin = Fragment.__new__(Fragment)
        twin.mol = Chem.RWMol(self.mol)
        twin.spectrum = self.spectrum.copy()
        twin.assignment = list(self.assignment)
        twin.root_atom = self.root_atom
        twin.max_sphere = self.max_sphere
        twin._cache = FragmentCache()
        return twin

    # ---- sizes ----

    @property
    def atom_count(self) -> int:
        return self.mol.GetNumAtoms()

    @property
    def bond_count(self) -> int:
        return self.mol.GetNumBonds()

    @property
    def signal_count(self) -> int:
        return self.spectrum.signal_count

    # ---- mutations (append / remove-last only) ----

    def invalidate(self) -> None:
        self._cache = FragmentCache()

    def add_atom(self, template: Chem.Atom, shift: Optional[float] = None) -> int:
        """Append a copy of `template`, with its signal when `shift` is given."""
        idx = self.mol.AddAtom(copy_atom(template))
        if shift is not None:
            self.spectrum.add_signal(shift)
            self.assignment.append(idx)
        self.invalidate()
        return idx

    def add_bond(self, begin: int, end: int, bond_type: Chem.BondType) -> int:
        """Append a bond and return its index."""
        idx = _add_bond(self.mol, begin, end, bond_type)
        self.invalidate()
        return idx

    def remove_last_bond(self) -> None:
        if self.bond_count == 0:
            raise IndexError("No bond to remove")
        bond = self.mol.GetBondWithIdx(self.bond_count - 1)
        self.mol.RemoveBond(bond.GetBeginAtomIdx(), bond.GetEndAtomIdx())
        self.invalidate()

    def remove_last_atom(self) -> None:
        """Remove the most recent atom (and its signal, if any); its bonds must already be gone."""
        if self.atom_count == 0:
            raise IndexError("No atom to remove")
        idx = self.atom_count - 1
        if self.mol.GetAtomWithIdx(idx).GetDegree():
            raise ValueError(f"Atom {idx} still has bonds")
        self.mol.RemoveAtom(idx)
        if self.assignment and self.assignment[-1] == idx:
            self.assignment.pop()
            self.spectrum.remove_last_signal()
        self.invalidate()

    # ---- derived state ----

    @property
    def open_atoms(self) -> List[int]:
        if self._cache.open_atoms is None:
            self._cache.open_atoms = open_atom_indices(self.mol)
        return list(self._cache.open_atoms)

    def is_open(self, atom_idx: int) -> bool:
        return atom_idx in self.open_atoms

    def shift_of(self, atom_idx: int) -> Optional[float]:
        if self._cache.shift_by_atom is None:
            self._cache.shift_by_atom = {
                atom: self.spectrum.shifts[k] for k, atom in enumerate(self.assignment)
            }
        return self._cache.shift_by_atom.get(atom_idx)

    def neighborhood_tree(self, atom_idx: int, max_sphere: Optional[int] = None) -> NeighborhoodTree:
        key = (atom_idx, max_sphere)
        tree = self._cache.trees.get(key)
        if tree is None:
            tree = build_neighborhood_tree(self.mol, atom_idx, max_sphere)
            self._cache.trees[key] = tree
        return tree

    def warm_cache(self) -> None:
        """Compute every derived value so concurrent readers never write the cache."""
        open_atoms = self.open_atoms
        self.shift_of(self.root_atom)
        for atom_idx in open_atoms:
            self.neighborhood_tree(atom_idx)

    # ---- serialization ----

    def to_payload(self) -> dict:
        atoms = []
        for atom in self.mol.GetAtoms():
            atoms.append({
                'element': atom.GetSymbol(),
                'hydrogens': atom.GetNumExplicitHs(),
                'aromatic': atom.GetIsAromatic(),
                'charge': atom.GetFormalCharge(),
                'shift': self.shift_of(atom.GetIdx()),
            })
        bonds = [
            [bond.GetBeginAtomIdx(), bond.GetEndAtomIdx(), str(bond.GetBondType())]
            for bond in self.mol.GetBonds()
        ]
        return {
            'atoms': atoms,
            'bonds': bonds,
            'root': self.root_atom,
            'max_sphere': self.max_sphere,
            'nucleus': self.spectrum.nucleus,
        }

    @classmethod
    def from_payload(cls, payload: dict, equivalence_threshold: float = EQUIV_SIGNAL_THRESHOLD) -> 'Fragment':
        try:
            mol = Chem.RWMol()
            shifts = {}
            for k, record in enumerate(payload['atoms']):
                atom = Chem.Atom(record['element'])
                atom.SetFormalCharge(int(record.get('charge', 0)))
                atom.SetIsAromatic(bool(record.get('aromatic', False)))
                mol.AddAtom(copy_atom(atom, hydrogens=int(record.get('hydrogens', 0))))
                if record.get('shift') is not None:
                    shifts[k] = float(record['shift'])
            for begin, end, order in payload.get('bonds', []):
                _add_bond(mol, int(begin), int(end), Chem.BondType.names[order])
        except (KeyError, TypeError, ValueError, RuntimeError) as exc:
            raise FragmentError(f"Malformed fragment record: {exc}") from exc

        spectrum = Spectrum(nucleus=payload.get('nucleus', DEFAULT_NUCLEUS),
                            equivalence_threshold=equivalence_threshold)
        assignment = []
        for atom_idx in sorted(shifts):
            spectrum.add_signal(shifts[atom_idx])
            assignment.append(atom_idx)
        return cls(mol, spectrum, assignment, root_atom=int(payload.get('root', 0)),
                   max_sphere=payload.get('max_sphere'))

    def __repr__(self):
        return (f"Fragment(atoms={self.atom_count}, bonds={self.bond_count}, "
                f"signals={self.signal_count}, root={self.root_atom})")


def _add_bond(mol: Chem.RWMol, begin: int, end: int, bond_type: Chem.BondType) -> int:
    """Add a bond, flagging aromatic bonds; returns the new bond index."""
    if begin == end:
        raise FragmentError(f"Self bond on atom {begin}")
    if mol.GetBondBetweenAtoms(begin, end) is not None:
        raise FragmentError(f"Duplicate bond {begin}-{end}")
    n_bonds = mol.AddBond(begin, end, bond_type)
    bond = mol.GetBondWithIdx(n_bonds - 1)
    if bond_type == Chem.BondType.AROMATIC:
        bond.SetIsAromatic(True)
    return n_bonds - 1
