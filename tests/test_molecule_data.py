from __future__ import annotations

import gzip
import io

import numpy as np
from pdb_lines import atom_line, helix_line, sheet_line

from molconsole.molecule_data import (
    SS_COIL,
    SS_HELIX_310,
    SS_HELIX_ALPHA,
    SS_HELIX_PI,
    SS_STRAND,
    SS_STRAND_ANTIPARALLEL,
    PDBReader,
    residue_entity_type,
    summarize_topology,
)


def _residue(structure, chain, resnum):
    for res in structure.model.iter_residues():
        if res.chain == chain and res.resnum == resnum:
            return res
    raise KeyError((chain, resnum))


def test_counts(sample_structure):
    assert len(sample_structure) == 1
    assert sample_structure.natoms() == 39
    assert sample_structure.nresidues() == 11
    # hetero atoms after TER start a suffixed chain key
    assert sorted(c.key_id for c in sample_structure.model.chains()) == ["A", "A1", "B"]


def test_hetero_atoms_stay_together(sample_structure):
    hem = _residue(sample_structure, "A", 100)
    assert [a.name for a in hem.atoms] == ["FE", "C1"]
    assert all(a.hetero for a in hem.atoms)
    assert hem.atoms[0].element == "FE"


def test_hetatm_serial(sample_structure):
    assert [a.serial for a in sample_structure.model.atoms[-3:]] == [37, 38, 39]


def test_secondary_structure_assignment(sample_structure):
    assert [_residue(sample_structure, "A", n).ss for n in range(1, 7)] == [
        SS_HELIX_ALPHA,
        SS_HELIX_ALPHA,
        SS_HELIX_ALPHA,
        SS_STRAND_ANTIPARALLEL,
        SS_STRAND_ANTIPARALLEL,
        SS_COIL,
    ]
    # same residue numbers in chain B are untouched
    assert _residue(sample_structure, "B", 1).ss == SS_COIL


def test_helix_classes_and_parallel_strand():
    text = "\n".join(
        [
            helix_line("A", 1, 1, 5),
            helix_line("A", 2, 2, 3),
            sheet_line("A", 3, 3, 1),
            atom_line(1, "CA", "ALA", "A", 1, (0.0, 0.0, 0.0), "C"),
            atom_line(2, "CA", "ALA", "A", 2, (1.0, 0.0, 0.0), "C"),
            atom_line(3, "CA", "ALA", "A", 3, (2.0, 0.0, 0.0), "C"),
        ]
    )
    s = PDBReader().from_string(text)
    assert [r.ss for r in s.model.iter_residues()] == [SS_HELIX_310, SS_HELIX_PI, SS_STRAND]


def test_entity_types(sample_structure):
    assert _residue(sample_structure, "A", 1).entity_type == "polymer"
    assert _residue(sample_structure, "A", 100).entity_type == "non-polymer"
    assert _residue(sample_structure, "A", 201).entity_type == "water"
    assert residue_entity_type("DA") == "polymer"
    assert residue_entity_type("hoh") == "water"


def test_multiple_models():
    lines = []
    for model_id, x in ((1, 0.0), (2, 5.0)):
        lines.append(f"MODEL     {model_id:>4}")
        lines.append(atom_line(1, "CA", "ALA", "A", 1, (x, 0.0, 0.0), "C"))
        lines.append("ENDMDL")
    s = PDBReader().from_string("\n".join(lines))
    assert [m.model_id for m in s.models] == [1, 2]
    assert s.models[1].coordinates()[0, 0] == 5.0


def test_coordinates(sample_structure):
    xyz = sample_structure.model.coordinates()
    assert xyz.shape == (39, 3)
    np.testing.assert_allclose(xyz[0], [1.0, 0.0, 0.0])
    np.testing.assert_allclose(xyz[-1], [9.0, 9.0, 9.0])


def test_read_from_buffers_and_gzip(sample_pdb_text, tmp_path):
    assert PDBReader(io.StringIO(sample_pdb_text)).natoms() == 39
    assert PDBReader(io.BytesIO(sample_pdb_text.encode())).natoms() == 39

    path = tmp_path / "sample.pdb.gz"
    with gzip.open(path, "wt", encoding="utf-8") as fh:
        fh.write(sample_pdb_text)
    assert PDBReader().read(path).natoms() == 39


def test_empty_text_gives_one_empty_model():
    s = PDBReader().from_string("")
    assert len(s) == 1
    assert s.natoms() == 0


def test_topology_summary(sample_structure):
    top = sample_structure.topology()
    assert top.getNumAtoms() == 39
    summary = summarize_topology(top, max_residues_per_chain=2)
    assert summary.startswith("Topology: 3 chains, 11 residues, 39 atoms")
    assert "(3 residues not shown in this chain)" in summary
