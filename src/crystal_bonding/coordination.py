"""
Coordination Classifier.

Labels a site's coordination environment from its bonded neighbours.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .models import Bond, CrystalStructure, Site

POLYHEDRON_TYPES = {
    2: "Linear",
    3: "Trigonal",
    4: "Tetrahedral",
    5: "Trigonal bipyramidal",
    6: "Octahedral",
    8: "Square antiprismatic",
}


def identify_polyhedron_type(neighbors: Sequence) -> str:
    """Name the coordination polyhedron for a set of neighbours.

    Only the coordination number is used, not the actual geometry: any six
    neighbours are "Octahedral". Counts without a name give
    "{n}-coordinate", e.g. "7-coordinate".
    """
    coordination_number = len(neighbors)
    return POLYHEDRON_TYPES.get(coordination_number, f"{coordination_number}-coordinate")


def get_neighbors(index: int, bonds: Sequence[Bond]) -> list[int]:
    """Indices of sites bonded to ``index``, in bond order."""
    return [bond.other(index) for bond in bonds if index in bond.indices]


@dataclass(frozen=True)
class CoordinationEnvironment:
    """Neighbours of one site and the resulting polyhedron label."""
    center: int
    neighbors: tuple[int, ...]
    distances: tuple[float, ...]
    label: str

    @property
    def coordination_number(self) -> int:
        return len(self.neighbors)

    @property
    def mean_distance(self) -> float | None:
        if not self.distances:
            return None
        return float(np.mean(self.distances))


def coordination_environment(
    structure: CrystalStructure,
    index: int,
    bonds: Sequence[Bond]
) -> CoordinationEnvironment:
    """Describe the coordination of site ``index``.

    Args:
        structure: Structure the bonds were computed for
        index: Site index of the centre
        bonds: Bonds of ``structure``

    Returns:
        CoordinationEnvironment

    Raises:
        IndexError: If ``index`` is not a site of ``structure``
    """
    if not 0 <= index < len(structure):
        raise IndexError(f"Site index {index} out of range for {len(structure)} sites")

    neighbors = []
    distances = []
    for bond in bonds:
        if index in bond.indices:
            neighbors.append(bond.other(index))
            distances.append(bond.distance)

    return CoordinationEnvironment(
        center=index,
        neighbors=tuple(neighbors),
        distances=tuple(distances),
        label=identify_polyhedron_type(neighbors),
    )


def coordination_summary(
    structure: CrystalStructure,
    bonds: Sequence[Bond]
) -> list[tuple[Site, str]]:
    """Pair every site with its polyhedron label."""
    return [
        (site, coordination_environment(structure, i, bonds).label)
        for i, site in enumerate(structure.sites)
    ]
