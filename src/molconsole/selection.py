from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union


class SelectionError(ValueError):
    """Raised when a selection value cannot be represented."""


SECONDARY_STRUCTURE_NAMES: tuple[str, ...] = ("helix", "sheet", "coil")
MOLECULE_TYPE_NAMES: tuple[str, ...] = ("protein", "nucleic", "ligand", "water")

_FLAG_KEYWORDS = MOLECULE_TYPE_NAMES + ("polymer",)

_CHAIN_RE = re.compile(r"/([A-Za-z0-9,]+)")
_RESIDUE_RE = re.compile(r":([0-9,\-]+)")
_ATOM_RE = re.compile(r"@([A-Za-z0-9',*]+)")


# ----------------------------- residue specs ---------------------------------


@dataclass(frozen=True)
class ResidueRange:
    """Inclusive residue number range."""

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class ResidueList:
    """Individual residue numbers."""

    individual: tuple[int, ...]

    def __str__(self) -> str:
        return ",".join(str(n) for n in self.individual)


ResidueSpec = Union[ResidueRange, ResidueList]


def parse_residue_spec(text: str) -> tuple[ResidueSpec, ...]:
    """
    Parse "12", "12-50" or "12,15,20-30".

    Ranges need two numeric ends (reversed ends are swapped); other pieces must be a
    single integer. Pieces that fit neither form are dropped.
    """
    specs: list[ResidueSpec] = []
    for piece in text.split(","):
        piece = piece.strip()
        if "-" in piece:
            a, b = piece.split("-", 1)
            try:
                lo, hi = int(a), int(b)
            except ValueError:
                continue
            if lo > hi:
                lo, hi = hi, lo
            specs.append(ResidueRange(lo, hi))
        else:
            try:
                specs.append(ResidueList((int(piece),)))
            except ValueError:
                continue
    return tuple(specs)


# ----------------------------- selection spec --------------------------------


@dataclass(frozen=True)
class SelectionSpec:
    """
    Structured form of a ChimeraX-style selection.

    A spec with no field set selects all atoms.
    """

    chains: Optional[tuple[str, ...]] = None
    residues: Optional[tuple[ResidueSpec, ...]] = None
    atoms: Optional[tuple[str, ...]] = None
    secondary_structure: Optional[str] = None
    model_id: Optional[str] = None
    polymer: bool = False
    protein: bool = False
    nucleic: bool = False
    ligand: bool = False
    water: bool = False

    def __post_init__(self):
        ss = self.secondary_structure
        if ss is not None and ss not in SECONDARY_STRUCTURE_NAMES:
            raise SelectionError(
                f"Unknown secondary structure '{ss}'. "
                f"Expected one of: {', '.join(SECONDARY_STRUCTURE_NAMES)}"
            )

    def is_all(self) -> bool:
        return self == SelectionSpec()


def parse_selection(text: str) -> SelectionSpec:
    """
    Parse a ChimeraX-style selection string.

    Examples:
      /A          chain A
      /A,B        chains A and B
      :12         residue 12
      :12-50      residues 12 to 50
      /A:12-50    chain A residues 12-50
      @CA         atoms named CA
      helix       helix secondary structure
      #1          model 1
      protein     protein atoms

    Parts separated by '&' are parsed independently and merged; when two parts set
    the same field the later one wins.
    """
    fields: dict[str, object] = {}

    for part in (p.strip() for p in text.split("&")):
        if not part:
            continue
        lower = part.lower()

        if part.startswith("#"):
            fields["model_id"] = part[1:]
            continue

        if lower in SECONDARY_STRUCTURE_NAMES:
            fields["secondary_structure"] = lower
            continue

        if lower in _FLAG_KEYWORDS:
            fields[lower] = True
            continue

        if lower == "all":
            continue

        # chain, residue and atom patterns may all appear in one part, e.g. /A:12-50@CA
        chain_match = _CHAIN_RE.search(part)
        if chain_match:
            fields["chains"] = tuple(c.strip() for c in chain_match.group(1).split(",") if c.strip())

        residue_match = _RESIDUE_RE.search(part)
        if residue_match:
            fields["residues"] = parse_residue_spec(residue_match.group(1))

        atom_match = _ATOM_RE.search(part)
        if atom_match:
            fields["atoms"] = tuple(a.strip() for a in atom_match.group(1).split(",") if a.strip())

    return SelectionSpec(**fields)

