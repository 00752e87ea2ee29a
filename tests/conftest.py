from __future__ import annotations

import pytest
from pdb_lines import build_sample_pdb

from molconsole.console import Console
from molconsole.molecule_data import PDBReader


@pytest.fixture
def sample_pdb_text() -> str:
    return build_sample_pdb()


@pytest.fixture
def sample_structure(sample_pdb_text):
    return PDBReader().from_string(sample_pdb_text)


@pytest.fixture
def console():
    return Console()


@pytest.fixture
def loaded_console(console, sample_structure):
    console.scene.add_structure(sample_structure, label="sample")
    return console
