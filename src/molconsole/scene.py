"""
In-process scene: loaded structures, their representations, overpaints and camera.

This is the collaborator console commands mutate. It keeps state only; nothing is
rendered. All mutating operations are coroutines so commands can await them the same
way whether or not they do I/O.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np
import requests

from .colors import Color
from .molecule_data import PDBReader, Structure
from .query import Loci, StructureQuery, selection_to_query
from .selection import SelectionSpec

logger = logging.getLogger(__name__)

REPRESENTATION_TYPES: tuple[str, ...] = (
    "cartoon",
    "spacefill",
    "ball-and-stick",
    "line",
    "molecular-surface",
)

# preset -> [(representation type, atoms it covers, color theme)]
PRESETS: dict[str, list[tuple[str, SelectionSpec, str]]] = {
    "default": [
        ("cartoon", SelectionSpec(polymer=True), "chain-id"),
        ("ball-and-stick", SelectionSpec(ligand=True), "element-symbol"),
    ],
    "cartoon": [("cartoon", SelectionSpec(), "chain-id")],
    "empty": [],
}

SUPPORTED_FORMATS: tuple[str, ...] = ("pdb",)

LociSource = Union[Loci, Callable[[Structure], Loci]]


class SceneError(RuntimeError):
    """Raised when a scene operation cannot be carried out."""


@dataclass
class StructureEntry:
    ref: str
    label: str
    structure: Structure
    source: Optional[str] = None


@dataclass
class Overpaint:
    color: Color
    loci: Loci
    transparency: Optional[float] = None


@dataclass
class Representation:
    ref: str
    structure_ref: str
    type: str
    color_theme: str = "chain-id"
    theme_params: dict = field(default_factory=dict)
    loci: Optional[Loci] = None  # None => whole structure
    overpaints: list[Overpaint] = field(default_factory=list)


@dataclass
class Camera:
    center: Optional[tuple[float, float, float]] = None  # Å
    radius: Optional[float] = None  # Å

    def clear(self) -> None:
        self.center = None
        self.radius = None


def _bounding_sphere(coords: np.ndarray) -> tuple[tuple[float, float, float], float]:
    """Center of geometry and largest distance from it (Å)."""
    if len(coords) == 0:
        raise SceneError("Cannot compute a bounding sphere for zero atoms")
    cog = coords.mean(axis=0)
    radius = float(np.linalg.norm(coords - cog, axis=1).max())
    return (float(cog[0]), float(cog[1]), float(cog[2])), radius


class Scene:
    def __init__(self, timeout: float = 30.0):
        self.structures: dict[str, StructureEntry] = {}
        self.representations: dict[str, Representation] = {}
        self.camera = Camera()
        self.timeout = timeout
        self._counter = 0

    def __repr__(self) -> str:
        return (
            f"<Scene {len(self.structures)} structures, "
            f"{len(self.representations)} representations>"
        )

    # ---- lookups ----

    def _new_ref(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def entry(self, structure_ref: str) -> StructureEntry:
        try:
            return self.structures[structure_ref]
        except KeyError:
            raise SceneError(f"No structure with ref '{structure_ref}'") from None

    def representations_of(self, structure_ref: str) -> list[Representation]:
        return [r for r in self.representations.values() if r.structure_ref == structure_ref]

    def _loci_coordinates(self, structure_ref: str, loci: Loci) -> np.ndarray:
        structure = self.entry(structure_ref).structure
        by_id = {m.model_id: m for m in structure.models}
        chunks = []
        for el in loci.elements:
            model = by_id.get(el.model_id)
            if model is None:
                raise SceneError(f"Structure '{structure_ref}' has no model {el.model_id}")
            chunks.append(model.coordinates()[np.asarray(el.indices, dtype=np.int64)])
        if not chunks:
            return np.zeros((0, 3), dtype=float)
        return np.concatenate(chunks)

    # ---- structures ----

    def add_structure(
        self,
        structure: Structure,
        label: str,
        *,
        source: Optional[str] = None,
        preset: str = "default",
    ) -> StructureEntry:
        """Register an already parsed structure and build the preset representations."""
        if preset not in PRESETS:
            raise SceneError(f"Unknown preset '{preset}'. Valid presets: {', '.join(PRESETS)}")

        entry = StructureEntry(ref=self._new_ref("structure"), label=label, structure=structure, source=source)
        self.structures[entry.ref] = entry

        for repr_type, spec, theme in PRESETS[preset]:
            loci = selection_to_query(spec)(structure)
            if loci.is_empty():
                continue
            rep = Representation(
                ref=self._new_ref("repr"),
                structure_ref=entry.ref,
                type=repr_type,
                color_theme=theme,
                loci=None if spec.is_all() else loci,
            )
            self.representations[rep.ref] = rep

        self._fit_camera_to_all()
        logger.info("Added structure %s (%s) with preset '%s'", entry.ref, label, preset)
        return entry

    def _fetch_text(self, url: str) -> str:
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SceneError(f"Download failed for {url}: {e}") from e
        return response.text

    async def download_structure(
        self,
        url: str,
        fmt: str = "pdb",
        preset: str = "default",
        label: Optional[str] = None,
    ) -> StructureEntry:
        """Download, parse and add a structure."""
        if fmt not in SUPPORTED_FORMATS:
            raise SceneError(f"Unsupported structure format '{fmt}'")

        logger.info("Downloading %s", url)
        text = await asyncio.to_thread(self._fetch_text, url)
        structure = PDBReader().from_string(text)
        if structure.natoms() == 0:
            raise SceneError(f"No atoms found in {url}")
        return self.add_structure(structure, label or url.rsplit("/", 1)[-1], source=url, preset=preset)

    async def clear(self) -> None:
        self.structures.clear()
        self.representations.clear()
        self.camera.clear()
        logger.info("Cleared scene")

    # ---- representations ----

    async def add_representation(
        self, structure_ref: str, repr_type: str, loci: Optional[Loci] = None
    ) -> Representation:
        """Add a representation; an existing one of the same type on the structure is replaced."""
        if repr_type not in REPRESENTATION_TYPES:
            raise SceneError(f"Unknown representation type '{repr_type}'")
        self.entry(structure_ref)

        for rep in self.representations_of(structure_ref):
            if rep.type == repr_type:
                del self.representations[rep.ref]

        rep = Representation(ref=self._new_ref("repr"), structure_ref=structure_ref, type=repr_type, loci=loci)
        self.representations[rep.ref] = rep
        logger.info("Added %s representation %s to %s", repr_type, rep.ref, structure_ref)
        return rep

    async def set_color_theme(
        self, representation_ref: str, theme: str, params: Optional[Mapping] = None
    ) -> None:
        try:
            rep = self.representations[representation_ref]
        except KeyError:
            raise SceneError(f"No representation with ref '{representation_ref}'") from None
        rep.color_theme = theme
        rep.theme_params = dict(params or {})
        # a theme replaces any per-atom paint
        rep.overpaints.clear()

    async def apply_overpaint(
        self,
        structure_ref: str,
        color: Color,
        loci_source: LociSource,
        *,
        targets: Optional[tuple[str, ...]] = None,
        transparency: Optional[float] = None,
    ) -> int:
        """
        Paint `color` over the atoms of `loci_source` on the structure's representations.

        `loci_source` is a Loci or a callable (e.g. a StructureQuery) producing one from
        the structure. `targets` limits painting to those representation types.
        Returns the number of painted atoms, 0 when no representation was painted.
        """
        entry = self.entry(structure_ref)
        loci = loci_source(entry.structure) if callable(loci_source) else loci_source
        if loci.is_empty():
            return 0

        painted = 0
        for rep in self.representations_of(structure_ref):
            if targets is not None and rep.type not in targets:
                continue
            rep.overpaints.append(Overpaint(color=Color(*color), loci=loci, transparency=transparency))
            painted += 1
        return loci.atom_count if painted else 0

    # ---- camera ----

    async def focus(self, selection: Mapping[str, Loci]) -> Camera:
        """Point the camera at the atoms of `selection` (structure ref -> Loci)."""
        coords = [self._loci_coordinates(ref, loci) for ref, loci in selection.items() if not loci.is_empty()]
        pooled = np.concatenate(coords) if coords else np.zeros((0, 3), dtype=float)
        if len(pooled) == 0:
            raise SceneError("Nothing to focus on")
        self.camera.center, self.camera.radius = _bounding_sphere(pooled)
        return self.camera

    async def reset_camera(self) -> Camera:
        self._fit_camera_to_all()
        return self.camera

    def _fit_camera_to_all(self) -> None:
        everything = StructureQuery()
        coords = [
            self._loci_coordinates(ref, everything(entry.structure))
            for ref, entry in self.structures.items()
        ]
        pooled = np.concatenate(coords) if coords else np.zeros((0, 3), dtype=float)
        if len(pooled) == 0:
            self.camera.clear()
            return
        self.camera.center, self.camera.radius = _bounding_sphere(pooled)
