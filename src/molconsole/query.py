from __future__ import annotations

import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional, Union

import numpy as np

from .molecule_data import (
    SS_COIL,
    SS_HELIX_310,
    SS_HELIX_ALPHA,
    SS_HELIX_PI,
    SS_STRAND,
    SS_STRAND_ANTIPARALLEL,
    Model,
    Structure,
    is_nucleic_resname,
)
from .selection import ResidueRange, SelectionSpec

# Secondary structure name -> residue ss codes it covers
SECONDARY_STRUCTURE_CODES: dict[str, tuple[int, ...]] = {
    "helix": (SS_HELIX_ALPHA, SS_HELIX_310, SS_HELIX_PI),
    "sheet": (SS_STRAND, SS_STRAND_ANTIPARALLEL),
    "coil": (SS_COIL,),
}


# ----------------------------- atom table ------------------------------------


class AtomTable:
    """
    Column view of one Model: one numpy array per atom property, in Model.atoms order.

    Columns: chain, resnum, resname, name, element, ss, entity, nucleic, model.
    """

    def __init__(self, columns: dict[str, np.ndarray]):
        self.columns = columns

    def __getitem__(self, key: str) -> np.ndarray:
        return self.columns[key]

    def __len__(self) -> int:
        return len(self.columns["resnum"])

    @classmethod
    def for_model(cls, model: Model) -> AtomTable:
        """Build (or reuse) the table cached on `model`."""
        cached = model._atom_table_cache
        if isinstance(cached, AtomTable) and len(cached) == model.natoms():
            return cached

        n = model.natoms()
        ss = np.zeros(n, dtype=np.int8)
        entity = np.full(n, "non-polymer", dtype=object)
        nucleic = np.zeros(n, dtype=bool)
        atom_to_idx = model.atom_index()
        for res in model.iter_residues():
            res_entity = res.entity_type
            res_nucleic = is_nucleic_resname(res.resname)
            for a in res.atoms:
                i = atom_to_idx.get(id(a))
                if i is None:
                    continue
                ss[i] = res.ss
                entity[i] = res_entity
                nucleic[i] = res_nucleic

        atoms = model.atoms
        table = cls(
            {
                "chain": np.array([a.chain for a in atoms], dtype=object),
                "resnum": np.array([a.resnum for a in atoms], dtype=np.int64),
                "resname": np.array([a.resname.upper() for a in atoms], dtype=object),
                "name": np.array([a.name.upper() for a in atoms], dtype=object),
                "element": np.array([a.element.upper() for a in atoms], dtype=object),
                "ss": ss,
                "entity": entity,
                "nucleic": nucleic,
                "model": np.full(n, str(model.model_id), dtype=object),
            }
        )
        model._atom_table_cache = table
        return table


# ----------------------------- predicates ------------------------------------

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    ">=": operator.ge,
    "<=": operator.le,
}


class Test:
    """Base predicate; evaluates to a boolean mask over an AtomTable."""

    def evaluate(self, table: AtomTable) -> np.ndarray:
        raise NotImplementedError

    def symbolic(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class FieldTest(Test):
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported operator '{self.op}'")

    def evaluate(self, table: AtomTable) -> np.ndarray:
        column = table[self.field]
        return np.asarray(_OPERATORS[self.op](column, self.value), dtype=bool)

    def symbolic(self) -> str:
        return f"{self.field} {self.op} {self.value!r}"


@dataclass(frozen=True)
class And(Test):
    terms: tuple[Test, ...]

    def evaluate(self, table: AtomTable) -> np.ndarray:
        mask = np.ones(len(table), dtype=bool)
        for term in self.terms:
            if not mask.any():
                break
            mask &= term.evaluate(table)
        return mask

    def symbolic(self) -> str:
        return "(" + " and ".join(t.symbolic() for t in self.terms) + ")"


@dataclass(frozen=True)
class Or(Test):
    terms: tuple[Test, ...]

    def evaluate(self, table: AtomTable) -> np.ndarray:
        mask = np.zeros(len(table), dtype=bool)
        for term in self.terms:
            mask |= term.evaluate(table)
        return mask

    def symbolic(self) -> str:
        return "(" + " or ".join(t.symbolic() for t in self.terms) + ")"


def any_of(tests: Iterable[Test]) -> Optional[Test]:
    tests = tuple(tests)
    if not tests:
        return None
    return tests[0] if len(tests) == 1 else Or(tests)


def all_of(tests: Iterable[Test]) -> Optional[Test]:
    tests = tuple(tests)
    if not tests:
        return None
    return tests[0] if len(tests) == 1 else And(tests)


# ----------------------------- loci ------------------------------------------


@dataclass(frozen=True)
class LociElement:
    """Matched atoms of one coordinate model (sorted 0-based indices into Model.atoms)."""

    model_id: int
    indices: tuple[int, ...]


@dataclass(frozen=True)
class Loci:
    elements: tuple[LociElement, ...] = ()

    @property
    def kind(self) -> str:
        return "element-loci" if self.elements else "empty-loci"

    def is_empty(self) -> bool:
        return not self.elements

    @property
    def atom_count(self) -> int:
        return sum(len(e.indices) for e in self.elements)


EMPTY_LOCI = Loci()


# ----------------------------- compiled query --------------------------------


class StructureQuery:
    """A compiled selection: call it on a Structure (or Model) to get its Loci."""

    def __init__(self, test: Optional[Test] = None):
        self.test = test

    def __repr__(self) -> str:
        return f"<StructureQuery {self.symbolic()}>"

    def symbolic(self) -> str:
        return "all" if self.test is None else self.test.symbolic()

    def mask(self, model: Model) -> np.ndarray:
        table = AtomTable.for_model(model)
        if self.test is None:
            return np.ones(len(table), dtype=bool)
        return self.test.evaluate(table)

    def __call__(self, structure: Union[Structure, Model]) -> Loci:
        models = [structure] if isinstance(structure, Model) else list(structure.models)
        elements: list[LociElement] = []
        for m in models:
            if m.natoms() == 0:
                continue
            idx = np.flatnonzero(self.mask(m))
            if idx.size:
                elements.append(LociElement(model_id=m.model_id, indices=tuple(int(i) for i in idx)))
        return Loci(tuple(elements)) if elements else EMPTY_LOCI


def selection_to_query(spec: SelectionSpec) -> StructureQuery:
    """
    Compile a SelectionSpec.

    Categories are ANDed together; the values inside one category are ORed.
    Categories that are absent impose no constraint.
    """
    clauses: list[Optional[Test]] = []

    if spec.chains:
        clauses.append(any_of(FieldTest("chain", "==", c) for c in spec.chains))

    if spec.residues:
        residue_tests: list[Test] = []
        for res_spec in spec.residues:
            if isinstance(res_spec, ResidueRange):
                residue_tests.append(
                    And(
                        (
                            FieldTest("resnum", ">=", res_spec.start),
                            FieldTest("resnum", "<=", res_spec.end),
                        )
                    )
                )
            else:
                residue_tests.extend(FieldTest("resnum", "==", n) for n in res_spec.individual)
        clauses.append(any_of(residue_tests))

    if spec.secondary_structure:
        codes = SECONDARY_STRUCTURE_CODES[spec.secondary_structure]
        clauses.append(any_of(FieldTest("ss", "==", code) for code in codes))

    if spec.protein:
        clauses.append(FieldTest("entity", "==", "polymer"))

    if spec.atoms:
        clauses.append(any_of(FieldTest("name", "==", a.upper()) for a in spec.atoms))

    if spec.polymer:
        clauses.append(FieldTest("entity", "==", "polymer"))

    if spec.nucleic:
        clauses.append(FieldTest("nucleic", "==", True))

    if spec.ligand:
        clauses.append(FieldTest("entity", "==", "non-polymer"))

    if spec.water:
        clauses.append(FieldTest("entity", "==", "water"))

    if spec.model_id is not None:
        clauses.append(FieldTest("model", "==", spec.model_id))

    return StructureQuery(all_of(c for c in clauses if c is not None))


def describe_selection(spec: SelectionSpec) -> str:
    """Human-readable summary of a SelectionSpec, e.g. 'chain A residues 12-50 helix'."""
    parts: list[str] = []

    if spec.chains:
        parts.append(f"chain{'s' if len(spec.chains) > 1 else ''} {', '.join(spec.chains)}")

    if spec.residues:
        desc = ", ".join(str(r) for r in spec.residues)
        parts.append(f"residue{'s' if len(spec.residues) > 1 else ''} {desc}")

    if spec.secondary_structure:
        parts.append(spec.secondary_structure)

    if spec.protein:
        parts.append("protein")

    if spec.atoms:
        parts.append(f"atom{'s' if len(spec.atoms) > 1 else ''} {', '.join(spec.atoms)}")

    for flag in ("nucleic", "ligand", "water", "polymer"):
        if getattr(spec, flag):
            parts.append(flag)

    if spec.model_id is not None:
        parts.append(f"model #{spec.model_id}")

    if not parts:
        return "all atoms"
    return " ".join(parts)
