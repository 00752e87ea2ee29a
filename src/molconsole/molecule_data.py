from __future__ import annotations

import gzip
import io
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
from openmm.app import Topology, element

FileLike = Union[str, Path, io.BytesIO, io.StringIO]

# --- Secondary structure codes -----------------------------------------------

SS_COIL = 0
SS_HELIX_ALPHA = 1
SS_HELIX_310 = 2
SS_HELIX_PI = 3
SS_STRAND = 4
SS_STRAND_ANTIPARALLEL = 5

# PDB HELIX record class -> secondary structure code
_HELIX_CLASS_CODES = {1: SS_HELIX_ALPHA, 3: SS_HELIX_PI, 5: SS_HELIX_310}

# --- Residue classes -----------------------------------------------------------

_AMINO_ACID_RESNAMES: set[str] = {
    "ALA",
    "ARG",
    "ASN",
    "ASP",
    "CYS",
    "GLN",
    "GLU",
    "GLY",
    "HIS",
    "HSD",
    "HSE",
    "HSP",
    "HID",
    "HIE",
    "HIP",
    "ILE",
    "LEU",
    "LYS",
    "MET",
    "MSE",
    "PHE",
    "PRO",
    "SER",
    "THR",
    "TRP",
    "TYR",
    "VAL",
}

_NUCLEIC_RESNAMES: set[str] = {
    "A",
    "C",
    "G",
    "U",
    "T",
    "I",
    "DA",
    "DC",
    "DG",
    "DT",
    "DU",
    "DI",
    "ADE",
    "CYT",
    "GUA",
    "URA",
    "THY",
}

_WATER_RESNAMES: set[str] = {"HOH", "DOD", "H2O", "TIP3", "TIP", "WAT", "SPC"}


def residue_entity_type(resname: str) -> str:
    """Classify a residue name as 'polymer', 'water' or 'non-polymer'."""
    name = (resname or "").strip().upper()
    if name in _AMINO_ACID_RESNAMES or name in _NUCLEIC_RESNAMES:
        return "polymer"
    if name in _WATER_RESNAMES:
        return "water"
    return "non-polymer"


def is_nucleic_resname(resname: str) -> bool:
    return (resname or "").strip().upper() in _NUCLEIC_RESNAMES


# --- Data containers ---------------------------------------------------------


@dataclass(frozen=True)
class Atom:
    serial: int
    name: str  # e.g. "CA"
    element: str  # 'H', 'C', 'O', 'N', 'S', 'P' 'CL', 'NA', 'MG'
    resname: str  # e.g. "ALA"
    chain: str  # original PDB chain ID
    resnum: int  # residue sequence number
    x: float
    y: float
    z: float
    seg: str  # segment ID (may be "")
    hetero: bool = False  # read from a HETATM record

    def __repr__(self) -> str:
        return f"<atom {self.name} {self.resname} {self.resnum} {self.chain} {self.seg}>"


@dataclass
class Residue:
    resname: str
    chain: str  # original PDB chain ID
    resnum: int
    seg: str  # segment ID
    atoms: list[Atom] = field(default_factory=list)
    ss: int = SS_COIL  # secondary structure code, see SS_* constants

    @property
    def entity_type(self) -> str:
        return residue_entity_type(self.resname)

    def __repr__(self) -> str:
        return f"<residue {self.resname} {self.resnum} {self.chain} {self.seg}>"


@dataclass
class Chain:
    key_id: str  # key used in Model.chain
    residues: list[Residue] = field(default_factory=list)
    seg_id: Optional[str] = None  # segment ID if grouping by seg
    chain_id: Optional[str] = None  # chain ID from PDB

    def __repr__(self) -> str:
        return f"<chain {self.key_id} : segment {self.seg_id} chain {self.chain_id}>"


@dataclass
class Model:
    model_id: int
    chain: dict[str, Chain] = field(default_factory=dict)  # key_id -> Chain
    residues: list[Residue] = field(default_factory=list)
    atoms: list[Atom] = field(default_factory=list)

    _atom_index_cache: Optional[dict[int, int]] = field(default=None, repr=False, compare=False)
    # per-model column table used by compiled selection queries
    _atom_table_cache: Optional[Any] = field(default=None, repr=False, compare=False)

    def chains(self) -> Iterator[Chain]:
        return iter(self.chain.values())

    def iter_residues(self) -> Iterator[Residue]:
        for c in self.chain.values():
            yield from c.residues

    def __repr__(self) -> str:
        n_chains = self.nchains()
        n_res = self.nresidues()
        n_atoms = self.natoms()
        return f"<{n_chains} chains, {n_res} residues, {n_atoms} atoms>"

    __str__ = __repr__

    def nchains(self):
        return len(self.chain)

    def nresidues(self):
        return sum(len(c.residues) for c in self.chain.values())

    def natoms(self):
        return len(self.atoms)

    def atom_index(self) -> dict[int, int]:
        """Map id(atom) -> 0-based index into Model.atoms (cached)."""
        if self._atom_index_cache is None:
            self._atom_index_cache = {id(a): i for i, a in enumerate(self.atoms)}
        return self._atom_index_cache

    def coordinates(self) -> np.ndarray:
        """Atom coordinates in Å as an (natoms, 3) array."""
        if not self.atoms:
            return np.zeros((0, 3), dtype=float)
        return np.array([(a.x, a.y, a.z) for a in self.atoms], dtype=float)

    def topology(self):
        top = Topology()
        for c in self.chains():
            chain = top.addChain(c.key_id)
            for r in c.residues:
                res = top.addResidue(r.resname, chain, id=str(r.resnum))
                for a in r.atoms:
                    sym = (getattr(a, "element", "") or "").upper()
                    try:
                        el = element.Element.getBySymbol(sym)
                    except KeyError:
                        el = element.carbon
                    top.addAtom(a.name, element=el, residue=res)
        return top


@dataclass
class Structure:
    models: list[Model] = field(default_factory=list)

    def __getitem__(self, idx: Union[int, slice]) -> Union[Model, list[Model]]:
        return self.models[idx]

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[Model]:
        return iter(self.models)

    def __repr__(self) -> str:
        return f"<Structure with {len(self.models)} models>"

    @property
    def model(self) -> Model:
        """Return the first model (common for single-model files)."""
        if not self.models:
            raise ValueError("Structure has no models")
        return self.models[0]

    def nchains(self) -> int:
        return self.models[0].nchains()

    def nresidues(self) -> int:
        return self.models[0].nresidues()

    def natoms(self) -> int:
        return self.models[0].natoms()

    def topology(self):
        return self.models[0].topology()


# --- Parser ------------------------------------------------------------------


@dataclass(frozen=True)
class _SecondaryStructureRange:
    chain: str
    start: int
    end: int
    code: int


class PDBReader:
    """
    Minimal, fast PDB reader
    - Supports MODEL/ENDMDL (multiple models).
    - Parses ATOM and HETATM.
    - Reads HELIX/SHEET records and assigns secondary structure codes to residues.
    - Groups atoms into chains keyed by SEGID when available; else by PDB chain ID with
      automatic suffixing (A, A1, A2, ...) when non-contiguous repeats occur.
    """

    def __new__(cls, file: Optional[FileLike] = None):
        self = super().__new__(cls)
        if file is None:
            return self
        return cls._read_direct(file)

    def read(self, file: FileLike) -> Structure:
        text_iter = self._open_text(file)
        return self._parse(text_iter)

    def from_string(self, pdb_text: str) -> Structure:
        return self._parse(pdb_text.splitlines())

    # -- internals --
    @staticmethod
    def _open_text(file: FileLike) -> Iterable[str]:
        """
        Yield text lines from a PDB(-like) source.

        - For StringIO/BytesIO, read from the in-memory buffer.
        - For filesystem paths, stream line-by-line (no full-file read).
        """
        if isinstance(file, io.StringIO):
            yield from file.getvalue().splitlines()
            return

        if isinstance(file, io.BytesIO):
            text = io.TextIOWrapper(file, encoding="utf-8", newline="").read()
            yield from text.splitlines()
            return

        p = Path(file)
        if p.suffix == ".gz":
            with gzip.open(p, "rt", encoding="utf-8", newline="") as fh:
                for line in fh:
                    yield line.rstrip("\r\n")
            return

        with open(p, encoding="utf-8", newline="") as fh:
            for line in fh:
                yield line.rstrip("\r\n")

    @classmethod
    def _read_direct(cls, file: FileLike) -> Structure:
        return cls._parse(cls._open_text(file))

    @staticmethod
    def _parse(lines: Iterable[str]) -> Structure:
        s = Structure()
        current_model: Optional[Model] = None
        ss_ranges: list[_SecondaryStructureRange] = []

        # State for allocating fallback chain keys when SEGID is absent
        fallback_counts: dict[str, int] = {}
        last_chain_id_seen: Optional[str] = None
        last_chain_key: Optional[str] = None  # key handed out for the current contiguous block

        def alloc_chain_key(m: Model, atom: Atom) -> str:
            """Return chain key for this atom per rules."""
            nonlocal last_chain_id_seen, last_chain_key

            seg = atom.seg.strip()
            if seg:
                last_chain_id_seen = atom.chain
                return seg

            # Fallback: group by PDB chain ID, splitting non-contiguous repeats
            cid = (atom.chain or "").strip() or " "
            if cid not in m.chain:
                last_chain_id_seen = cid
                last_chain_key = cid
                return cid

            if last_chain_id_seen == cid and last_chain_key is not None:
                return last_chain_key

            n = fallback_counts.get(cid, 0) + 1
            fallback_counts[cid] = n
            key = f"{cid}{n}"
            last_chain_id_seen = cid
            last_chain_key = key
            return key

        def start_chain_if_needed(m: Model, key: str, atom: Atom) -> Chain:
            ch = m.chain.get(key)
            if ch is None:
                ch = Chain(key_id=key, residues=[], seg_id=(atom.seg.strip() or None))
                m.chain[key] = ch
            ch.chain_id = atom.chain or " "
            return ch

        def add_atom_to_model(m: Model, atom: Atom):
            m.atoms.append(atom)
            key = alloc_chain_key(m, atom)
            chain = start_chain_if_needed(m, key, atom)

            rid = (atom.resname, atom.chain, atom.resnum, atom.seg)
            if not chain.residues or _res_id(chain.residues[-1]) != rid:
                res = Residue(*rid)
                chain.residues.append(res)
                m.residues.append(res)
            chain.residues[-1].atoms.append(atom)

        def new_model(model_id: int) -> Model:
            nonlocal fallback_counts, last_chain_id_seen, last_chain_key
            m = Model(model_id=model_id)
            s.models.append(m)
            fallback_counts = {}
            last_chain_id_seen = None
            last_chain_key = None
            return m

        for raw in lines:
            if not raw:
                continue
            rec = raw[0:6].strip().upper()

            if rec == "MODEL":
                model_id = _safe_int(raw[10:14], default=len(s.models) + 1) or len(s.models) + 1
                current_model = new_model(model_id)
                continue

            if rec == "ENDMDL":
                current_model = None
                continue

            if rec in ("ATOM", "HETATM"):
                if current_model is None:
                    current_model = new_model(len(s.models) + 1)
                atom = _parse_atom_line(raw, hetero=(rec == "HETATM"))
                add_atom_to_model(current_model, atom)
                continue

            if rec == "TER":
                last_chain_id_seen = None
                last_chain_key = None
                continue

            if rec == "HELIX":
                helix = _parse_helix_line(raw)
                if helix is not None:
                    ss_ranges.append(helix)
                continue

            if rec == "SHEET":
                strand = _parse_sheet_line(raw)
                if strand is not None:
                    ss_ranges.append(strand)
                continue

        if not s.models:
            s.models.append(Model(model_id=1))

        if ss_ranges:
            for m in s.models:
                _assign_secondary_structure(m, ss_ranges)
        return s


def _assign_secondary_structure(model: Model, ranges: list[_SecondaryStructureRange]) -> None:
    by_chain: dict[str, list[_SecondaryStructureRange]] = {}
    for rng in ranges:
        by_chain.setdefault(rng.chain, []).append(rng)

    for res in model.iter_residues():
        for rng in by_chain.get(res.chain, ()):
            if rng.start <= res.resnum <= rng.end:
                res.ss = rng.code
                break


# --- parsing utilities -------------------------------------------------------


def _deduce_element(atomname: str, resname: str, element_hint: str = "") -> str:
    """
    Deduce an element symbol.
    Priority:
      1) Use PDB element column if present (uppercased, non-letters removed).
      2) Special cases from atom/residue names.
      3) First-letter rules C/N/H/S/P/O (after stripping leading digits in atom name).
      4) Fallback: atom name with digits removed (uppercased).
    """

    def clean(token: str) -> str:
        return re.sub(r"[^A-Za-z]", "", token or "").upper()

    # 1) PDB element column (columns 77-78)
    if element_hint and clean(element_hint):
        return clean(element_hint)

    an = clean(atomname)
    rn = clean(resname)

    # 2) Explicit mappings
    if an in {"CLA", "CL"} or atomname.upper() in {"CL-", "CLA"}:
        return "CL"
    if rn in {"CLA", "CL"}:
        return "CL"

    if an in {"NA", "SOD"} or atomname.upper() == "NA+":
        return "NA"
    if rn in {"NA", "SOD"}:
        return "NA"

    if an == "POT" or rn == "POT":
        return "K"

    direct = {"MG", "CAL", "K", "LI", "FE", "CO", "ZN"}
    if an in direct:
        return an
    if rn in direct:
        return rn

    # 3) First-letter rules after stripping leading digits from atom name
    atom_wo_lead_digits = re.sub(r"^\d+", "", atomname or "")
    atom_wo_digits = re.sub(r"\d", "", atom_wo_lead_digits).strip()
    if atom_wo_digits:
        ch0 = atom_wo_digits[0].upper()
        if ch0 in {"C", "N", "H", "S", "P", "O"}:
            return ch0

    # 4) Fallback: atom name without any digits, uppercased (e.g., "Cl1" -> "CL")
    fb = clean(atomname)
    return fb if fb else "X"


def _parse_atom_line(line: str, hetero: bool = False) -> Atom:
    # PDB v3.3 column mapping, simplified
    # ATOM serials may overflow into columns 5-6; HETATM fills them with the record name
    raw_serial = line[6:11] if hetero else line[4:11]
    s_serial = raw_serial.strip()
    if s_serial and all(ch == "*" for ch in s_serial):
        serial = 0
    else:
        serial = _safe_int(raw_serial, required=True)
    name = line[12:16].strip()
    resname = line[17:21].strip()
    chain = (line[21] if len(line) >= 22 else " ").strip()
    resnum = _safe_int(line[22:26], required=True)
    x = _safe_float(line[30:38], required=True)
    y = _safe_float(line[38:46], required=True)
    z = _safe_float(line[46:54], required=True)
    seg = (line[72:76] if len(line) >= 76 else " ").strip()
    element_hint = (line[76:78] if len(line) >= 78 else "").strip()
    element_symbol = _deduce_element(name, resname, element_hint)
    return Atom(
        serial=serial,
        name=name,
        element=element_symbol,
        resname=resname,
        chain=chain,
        resnum=resnum,
        x=x,
        y=y,
        z=z,
        seg=seg,
        hetero=hetero,
    )


def _parse_helix_line(line: str) -> Optional[_SecondaryStructureRange]:
    chain = (line[19] if len(line) >= 20 else " ").strip()
    start = _safe_int(line[21:25])
    end = _safe_int(line[33:37])
    if start is None or end is None:
        return None
    helix_class = _safe_int(line[38:40], default=1)
    code = _HELIX_CLASS_CODES.get(helix_class, SS_HELIX_ALPHA)
    return _SecondaryStructureRange(chain=chain, start=start, end=end, code=code)


def _parse_sheet_line(line: str) -> Optional[_SecondaryStructureRange]:
    chain = (line[21] if len(line) >= 22 else " ").strip()
    start = _safe_int(line[22:26])
    end = _safe_int(line[33:37])
    if start is None or end is None:
        return None
    sense = _safe_int(line[38:40], default=0)
    code = SS_STRAND_ANTIPARALLEL if sense == -1 else SS_STRAND
    return _SecondaryStructureRange(chain=chain, start=start, end=end, code=code)


def _safe_int(s: str, default: Optional[int] = None, required: bool = False) -> Optional[int]:
    try:
        return int(s.strip())
    except ValueError:
        if required:
            raise ValueError(f"Expected integer in field '{s}'")
        return default


def _safe_float(s: str, default: Optional[float] = None, required: bool = False) -> Optional[float]:
    try:
        return float(s.strip())
    except ValueError:
        if required:
            raise ValueError(f"Expected float in field '{s}'")
        return default


def _res_id(r: Residue) -> tuple[str, str, int, str]:
    return (r.resname, r.chain, r.resnum, r.seg)


# ---- summarize topology ---------------------------------------------------------
def summarize_topology(
    topology: Topology,
    max_residues_per_chain: int = 5,
) -> str:
    """
    Summarize an OpenMM Topology:
      - all chains
      - up to `max_residues_per_chain` residues from the start of each chain,
        plus the last residue in each chain

    Returns a human-readable multi-line string.
    """
    lines = []
    lines.append(
        f"Topology: {topology.getNumChains()} chains, "
        f"{topology.getNumResidues()} residues, "
        f"{topology.getNumAtoms()} atoms"
    )

    for chain_index, chain in enumerate(topology.chains()):
        chain_id: Optional[str] = getattr(chain, "id", None)
        chain_label = chain_id if chain_id is not None else str(chain_index)
        lines.append(f"Chain {chain_index} (id={chain_label}):")

        residues = list(chain.residues())
        n_res = len(residues)

        show_indices = list(range(min(max_residues_per_chain, n_res)))
        if n_res > 0 and (n_res - 1) not in show_indices:
            show_indices.append(n_res - 1)

        for idx in show_indices:
            residue = residues[idx]
            res_id = getattr(residue, "id", None) or ""
            n_atoms = len(list(residue.atoms()))
            lines.append(f"  Residue {idx} (name={residue.name}, id={res_id}, atoms={n_atoms})")

        skipped = n_res - len(show_indices)
        if skipped > 0:
            lines.append(f"  ... ({skipped} residues not shown in this chain)")

    return "\n".join(lines)
