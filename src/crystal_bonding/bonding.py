"""
Bonding Engine.

Infers bonds between all site pairs of a structure from covalent-radius
cutoffs and minimum-image distances.
"""

import logging
from collections.abc import Mapping

import numpy as np

from .models import DEFAULT_BONDING, Bond, BondingConfig, CrystalStructure
from .periodic import minimum_image, periodic_distance

logger = logging.getLogger(__name__)


def calculate_bonds(
    structure: CrystalStructure,
    scale_factor: float = DEFAULT_BONDING.scale_factor,
    min_cut: float = DEFAULT_BONDING.min_cutoff,
    max_cut: float = DEFAULT_BONDING.max_cutoff,
    pair_overrides: Mapping[str, float] | None = None,
    *,
    respect_pbc: bool = False
) -> list[Bond]:
    """Find all bonded site pairs in a structure.

    For every pair i < j the cutoff is the pair override when one exists
    (either key order, no clamping), otherwise
    ``clamp(scale_factor * (r_i + r_j), min_cut, max_cut)``. A pair is
    bonded when its minimum-image distance is ``<=`` the cutoff.

    Bonds come out ordered by i, then j. Every pair is checked, so the
    cost is quadratic in the number of sites.

    Args:
        structure: Structure to analyse
        scale_factor: Multiplier on the sum of covalent radii
        min_cut: Lower clamp for radius-based cutoffs (Angstrom)
        max_cut: Upper clamp for radius-based cutoffs (Angstrom)
        pair_overrides: Explicit cutoffs keyed "A-B"
        respect_pbc: Use the structure's pbc flags for distances. By
            default every axis is treated as periodic.

    Returns:
        List of bonds, possibly empty
    """
    config = BondingConfig(
        scale_factor=scale_factor,
        min_cutoff=min_cut,
        max_cutoff=max_cut,
        pair_overrides=pair_overrides,
    )
    return bonds_from_config(structure, config, respect_pbc=respect_pbc)


def bonds_from_config(
    structure: CrystalStructure,
    config: BondingConfig = DEFAULT_BONDING,
    *,
    respect_pbc: bool = False
) -> list[Bond]:
    """Find all bonded site pairs using a :class:`BondingConfig`.

    See :func:`calculate_bonds` for the rules.
    """
    n_sites = len(structure)
    if n_sites < 2:
        return []

    frac = structure.frac_coords
    first, second = np.triu_indices(n_sites, k=1)
    pbc = structure.pbc if respect_pbc else None
    distances = np.atleast_1d(
        periodic_distance(frac[first], frac[second], structure.lattice.matrix, pbc)
    )

    elements = structure.elements
    cutoffs: dict[tuple[str, str], float] = {}
    bonds = []

    for i, j, distance in zip(first, second, distances, strict=True):
        pair = (elements[i], elements[j])
        cutoff = cutoffs.get(pair)
        if cutoff is None:
            cutoff = cutoffs[pair] = config.cutoff_for(*pair)

        if distance <= cutoff:
            bonds.append(Bond(int(i), int(j), float(distance), cutoff))

    logger.debug("Found %d bonds among %d sites", len(bonds), n_sites)
    return bonds


def bond_endpoints(
    structure: CrystalStructure,
    bond: Bond,
    *,
    respect_pbc: bool = False
) -> tuple[np.ndarray, np.ndarray]:
    """Cartesian end points of a bond.

    The first point is site1. The second is the periodic image of site2
    nearest to it (the image the bond distance was measured to), so it may
    lie outside the unit cell.

    Raises:
        MissingCartesianError: If site1 has no Cartesian coordinates
    """
    site1 = structure.sites[bond.site1]
    site2 = structure.sites[bond.site2]
    start = site1.require_cartesian()

    pbc = structure.pbc if respect_pbc else None
    dfrac = minimum_image(site2.frac - site1.frac, pbc)
    end = start + structure.lattice.frac_to_cartesian(dfrac)
    return start.copy(), end
