"""
Structure utilities.

Dictionary/JSON interchange, supercell expansion, duplicate-site merging
and demo structures.
"""

import itertools
import json
import logging
from collections.abc import Mapping
from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from .models import CrystalStructure, Lattice, Site
from .periodic import generate_supercell_translations, wrap_fractional

logger = logging.getLogger(__name__)


# =============================================================================
# Interchange
# =============================================================================

def _lattice_from_dict(data: Mapping[str, Any]) -> Lattice:
    if 'matrix' in data:
        return Lattice.from_matrix(np.asarray(data['matrix'], dtype=float))
    try:
        params = [float(data[key]) for key in ('a', 'b', 'c', 'alpha', 'beta', 'gamma')]
    except KeyError as exc:
        raise ValueError(f"Lattice needs a matrix or all six parameters, missing {exc}") from exc
    return Lattice.from_parameters(*params)


def _site_from_dict(data: Mapping[str, Any]) -> Site:
    if 'element' not in data or 'frac' not in data:
        raise ValueError(f"Site needs 'element' and 'frac', got keys {sorted(data)}")
    return Site(
        element=str(data['element']),
        frac=data['frac'],
        occupancy=float(data.get('occupancy', 1.0)),
        label=data.get('label'),
        disorder_group=data.get('disorder_group'),
        oxidation_state=data.get('oxidation_state'),
        cartesian=data.get('cartesian'),
    )


def structure_from_dict(data: Mapping[str, Any]) -> CrystalStructure:
    """Build a structure from the viewer's JSON layout.

    Expected keys: ``lattice`` (with ``matrix`` or the six parameters),
    ``sites`` (list of dicts with at least ``element`` and ``frac``) and
    optionally ``pbc``.

    Raises:
        ValueError: If required keys are missing
        InvalidLatticeError: If the lattice is invalid
    """
    if 'lattice' not in data:
        raise ValueError("Missing 'lattice' in structure data")
    sites = data.get('sites')
    if not isinstance(sites, list):
        raise ValueError("Missing or invalid 'sites' list in structure data")

    return CrystalStructure(
        lattice=_lattice_from_dict(data['lattice']),
        sites=tuple(_site_from_dict(site) for site in sites),
        pbc=tuple(data.get('pbc') or (True, True, True)),
    )


def structure_to_dict(structure: CrystalStructure) -> dict:
    """Inverse of :func:`structure_from_dict`."""
    return structure.to_dict()


def load_structure_json(text: str) -> CrystalStructure:
    return structure_from_dict(json.loads(text))


def dump_structure_json(structure: CrystalStructure, indent: int = 2) -> str:
    return json.dumps(structure.to_dict(), indent=indent)


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def structure_from_poscar(text: str) -> CrystalStructure:
    """Build a structure from VASP POSCAR/CONTCAR text.

    Element symbols on line 6 are optional; without them species are
    named "Element1", "Element2", ... A negative scale factor gives the
    cell volume instead of a multiplier. Positions may be Direct
    (fractional) or Cartesian; Cartesian positions are scaled like the
    lattice vectors.

    Args:
        text: File content

    Returns:
        CrystalStructure, periodic on all axes

    Raises:
        ValueError: If the text is truncated or malformed
        InvalidLatticeError: If the lattice vectors are degenerate
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < 8:
        raise ValueError("Invalid POSCAR: insufficient lines")

    try:
        scale = float(lines[1].split()[0])
        vectors = np.array([[float(x) for x in lines[i].split()[:3]] for i in (2, 3, 4)])
    except (ValueError, IndexError) as exc:
        raise ValueError(f"Invalid POSCAR header: {exc}") from exc

    if scale < 0:
        scale = (-scale / abs(np.linalg.det(vectors))) ** (1.0 / 3.0)
    vectors = vectors * scale

    tokens = lines[5].split()
    if _is_int(tokens[0]):
        counts = [int(t) for t in tokens]
        elements = [f"Element{i + 1}" for i in range(len(counts))]
        index = 6
    else:
        elements = tokens
        counts = [int(t) for t in lines[6].split()]
        index = 7
    if len(elements) != len(counts):
        raise ValueError(f"POSCAR lists {len(elements)} species but {len(counts)} counts")

    if lines[index].lower().startswith('s'):
        index += 1
    if index >= len(lines):
        raise ValueError("Invalid POSCAR: missing coordinate mode line")
    cartesian = lines[index][0].lower() in ('c', 'k')
    index += 1

    total = sum(counts)
    if len(lines) < index + total:
        raise ValueError(
            f"Not enough atomic positions in POSCAR: expected {total}, "
            f"found {len(lines) - index}"
        )
    coords = np.array([
        [float(x) for x in lines[index + k].split()[:3]] for k in range(total)
    ])

    lattice = Lattice.from_matrix(vectors)
    if cartesian:
        cart = coords * scale
        frac = lattice.cartesian_to_frac(cart)
    else:
        cart = None
        frac = coords

    species = [element for element, count in zip(elements, counts) for _ in range(count)]
    sites = tuple(
        Site(element, frac[k], cartesian=None if cart is None else cart[k])
        for k, element in enumerate(species)
    )
    logger.debug("Parsed POSCAR with %d sites", len(sites))
    return CrystalStructure(lattice=lattice, sites=sites)


# =============================================================================
# Supercells and duplicates
# =============================================================================

def make_supercell(
    structure: CrystalStructure,
    size: tuple[int, int, int]
) -> CrystalStructure:
    """Replicate a structure into an nx x ny x nz supercell.

    Sites are emitted per translation (in
    :func:`generate_supercell_translations` order), and within each
    translation in the original site order. Labels get a "_<cell>" suffix.

    Args:
        structure: Structure to replicate
        size: Repeats along a, b, c (each >= 1)

    Returns:
        New CrystalStructure with scaled lattice
    """
    nx, ny, nz = (int(n) for n in size)
    if min(nx, ny, nz) < 1:
        raise ValueError(f"Supercell size must be positive, got {size}")

    scale = np.array([nx, ny, nz], dtype=float)
    lattice = Lattice.from_matrix(structure.lattice.matrix * scale[:, None])

    sites = []
    for cell, shift in enumerate(generate_supercell_translations(nx, ny, nz)):
        for site in structure.sites:
            sites.append(Site(
                element=site.element,
                frac=(site.frac + np.array(shift)) / scale,
                occupancy=site.occupancy,
                label=f"{site.label}_{cell}" if site.label else None,
                disorder_group=site.disorder_group,
                oxidation_state=site.oxidation_state,
            ))

    logger.debug("Expanded %d sites to %d in a %dx%dx%d supercell",
                 len(structure), len(sites), nx, ny, nz)
    return CrystalStructure(lattice=lattice, sites=tuple(sites), pbc=structure.pbc)


def merge_duplicate_sites(
    structure: CrystalStructure,
    tolerance: float = 1e-3
) -> CrystalStructure:
    """Remove sites that sit on an earlier site's periodic position.

    Positions are wrapped into the unit cell first, so a site at
    fractional (1, 0, 0) duplicates one at (0, 0, 0). The first occurrence
    is kept, with its original (unwrapped) coordinates.

    Only sites with the same element and disorder group are duplicates.
    Different species sharing a position (a mixed-occupancy site such as
    Fe0.5/Mg0.5) are all kept.

    Args:
        structure: Structure to clean
        tolerance: Cartesian distance (Angstrom) below which sites coincide

    Returns:
        New CrystalStructure without duplicates
    """
    if len(structure) < 2:
        return structure

    points = structure.lattice.frac_to_cartesian(wrap_fractional(structure.frac_coords))
    tree = cKDTree(points)
    # Neighbouring cell images catch pairs split across a cell face
    shifts = structure.lattice.frac_to_cartesian(
        np.array(list(itertools.product((-1, 0, 1), repeat=3)), dtype=float)
    )

    species = [(site.element, site.disorder_group) for site in structure.sites]

    keep = []
    visited = set()
    for i in range(len(structure)):
        if i in visited:
            continue
        for neighbors in tree.query_ball_point(points[i] + shifts, tolerance):
            visited.update(j for j in neighbors if species[j] == species[i])
        keep.append(i)

    if len(keep) < len(structure):
        logger.debug("Merged %d duplicate sites", len(structure) - len(keep))

    return CrystalStructure(
        lattice=structure.lattice,
        sites=tuple(structure.sites[i] for i in keep),
        pbc=structure.pbc,
    )


# =============================================================================
# Demo structures
# =============================================================================

def create_nacl(a: float = 5.64) -> CrystalStructure:
    """Rock-salt NaCl conventional cell (4 Na + 4 Cl).

    Args:
        a: Cubic lattice constant in Angstrom

    Returns:
        CrystalStructure
    """
    na = [(0.0, 0.0, 0.0), (0.5, 0.5, 0.0), (0.5, 0.0, 0.5), (0.0, 0.5, 0.5)]
    cl = [(0.5, 0.5, 0.5), (0.0, 0.0, 0.5), (0.0, 0.5, 0.0), (0.5, 0.0, 0.0)]
    sites = [
        Site('Na', frac, label=f"Na{i + 1}") for i, frac in enumerate(na)
    ] + [
        Site('Cl', frac, label=f"Cl{i + 1}") for i, frac in enumerate(cl)
    ]
    return CrystalStructure(lattice=Lattice.cubic(a), sites=tuple(sites))


def create_silicon(a: float = 5.43) -> CrystalStructure:
    """Diamond-structure Si conventional cell (8 atoms).

    Args:
        a: Cubic lattice constant in Angstrom

    Returns:
        CrystalStructure
    """
    fcc = [(0.0, 0.0, 0.0), (0.5, 0.5, 0.0), (0.5, 0.0, 0.5), (0.0, 0.5, 0.5)]
    positions = fcc + [(x + 0.25, y + 0.25, z + 0.25) for x, y, z in fcc]
    sites = tuple(
        Site('Si', frac, label=f"Si{i + 1}") for i, frac in enumerate(positions)
    )
    return CrystalStructure(lattice=Lattice.cubic(a), sites=sites)
