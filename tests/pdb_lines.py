"""Fixed-column PDB record builders for tests."""

from __future__ import annotations


def _columns(*fields: tuple[int, str]) -> str:
    """Place each text at its 0-based column of an 80 column record."""
    buf = [" "] * 80
    for start, text in fields:
        buf[start : start + len(text)] = list(text)
    return "".join(buf).rstrip()


def atom_line(
    serial: int,
    name: str,
    resname: str,
    chain: str,
    resnum: int,
    xyz: tuple[float, float, float],
    element: str,
    hetero: bool = False,
) -> str:
    padded = name if len(name) == 4 else f" {name:<3}"
    x, y, z = xyz
    return _columns(
        (0, "HETATM" if hetero else "ATOM"),
        (6, f"{serial:>5}"),
        (12, padded),
        (17, f"{resname:>3}"),
        (21, chain),
        (22, f"{resnum:>4}"),
        (30, f"{x:8.3f}"),
        (38, f"{y:8.3f}"),
        (46, f"{z:8.3f}"),
        (54, "  1.00"),
        (60, "  0.00"),
        (76, f"{element:>2}"),
    )


def helix_line(chain: str, start: int, end: int, helix_class: int = 1) -> str:
    return _columns(
        (0, "HELIX"),
        (7, "  1"),
        (11, "  1"),
        (15, "ALA"),
        (19, chain),
        (21, f"{start:>4}"),
        (27, "ALA"),
        (31, chain),
        (33, f"{end:>4}"),
        (38, f"{helix_class:>2}"),
    )


def sheet_line(chain: str, start: int, end: int, sense: int = 0) -> str:
    return _columns(
        (0, "SHEET"),
        (7, "  1"),
        (11, "  S"),
        (14, " 2"),
        (17, "ALA"),
        (21, chain),
        (22, f"{start:>4}"),
        (28, "ALA"),
        (32, chain),
        (33, f"{end:>4}"),
        (38, f"{sense:>2}"),
    )


def build_sample_pdb() -> str:
    """
    Small two-chain system.

    chain A: ALA 1-6 (N, CA, C, O each), helix 1-3, anti-parallel strand 4-5,
             HEM 100 (FE, C1) and HOH 201 (O) as HETATM after the TER records
    chain B: GLY 1-3 (N, CA, C, O each), no secondary structure
    Chain A protein atoms lie on the x axis at x = serial; chain B at y = 10.
    """
    lines = [helix_line("A", 1, 3, 1), sheet_line("A", 4, 5, -1)]
    serial = 0
    for resnum in range(1, 7):
        for name, el in (("N", "N"), ("CA", "C"), ("C", "C"), ("O", "O")):
            serial += 1
            lines.append(atom_line(serial, name, "ALA", "A", resnum, (float(serial), 0.0, 0.0), el))
    lines.append("TER")
    for resnum in range(1, 4):
        for name, el in (("N", "N"), ("CA", "C"), ("C", "C"), ("O", "O")):
            serial += 1
            lines.append(atom_line(serial, name, "GLY", "B", resnum, (0.0, 10.0, float(resnum)), el))
    lines.append("TER")
    serial += 1
    lines.append(atom_line(serial, "FE", "HEM", "A", 100, (2.0, 2.0, 2.0), "FE", hetero=True))
    serial += 1
    lines.append(atom_line(serial, "C1", "HEM", "A", 100, (4.0, 2.0, 2.0), "C", hetero=True))
    serial += 1
    lines.append(atom_line(serial, "O", "HOH", "A", 201, (9.0, 9.0, 9.0), "O", hetero=True))
    lines.append("END")
    return "\n".join(lines) + "\n"
