"""
Crystal Bonding - Crystallographic Geometry and Bonding Engine.

Converts between lattice parameters and lattice matrices, transforms
fractional and Cartesian coordinates, computes minimum-image distances,
infers bonds from covalent-radius cutoffs and labels coordination
environments.

Example:
    >>> from crystal_bonding import CrystalStructure, Lattice, Site, calculate_bonds
    >>>
    >>> structure = CrystalStructure(
    ...     lattice=Lattice.from_parameters(5.43, 5.43, 5.43, 90, 90, 90),
    ...     sites=(Site('Si', (0, 0, 0)), Site('Si', (0.25, 0.25, 0.25))),
    ... )
    >>> bonds = calculate_bonds(structure)
    >>> [(b.site1, b.site2) for b in bonds]
    [(0, 1)]
"""

__version__ = "1.0.0"
__author__ = "crystal-bonding contributors"

# Core bonding
from .bonding import bond_endpoints, bonds_from_config, calculate_bonds

# Coordination
from .coordination import (
    CoordinationEnvironment,
    coordination_environment,
    coordination_summary,
    get_neighbors,
    identify_polyhedron_type,
)

# Reference data
from .elements import COVALENT_RADII, DEFAULT_COVALENT_RADIUS, get_covalent_radius

# Errors
from .exceptions import CrystalBondingError, InvalidLatticeError, MissingCartesianError

# Lattice math
from .lattice import (
    cartesian_to_frac,
    frac_to_cartesian,
    lattice_params_to_matrix,
    matrix_to_lattice_params,
)

# Data classes
from .models import DEFAULT_BONDING, Bond, BondingConfig, CrystalStructure, Lattice, Site

# Periodic geometry
from .periodic import (
    generate_supercell_translations,
    minimum_image,
    periodic_distance,
    wrap_fractional,
)

# Structure utilities
from .structures import (
    create_nacl,
    create_silicon,
    dump_structure_json,
    load_structure_json,
    make_supercell,
    merge_duplicate_sites,
    structure_from_dict,
    structure_from_poscar,
    structure_to_dict,
)

__all__ = [
    # Version
    "__version__",
    # Core functions
    "calculate_bonds",
    "bonds_from_config",
    "bond_endpoints",
    "identify_polyhedron_type",
    "coordination_environment",
    "coordination_summary",
    "get_neighbors",
    "CoordinationEnvironment",
    # Lattice math
    "lattice_params_to_matrix",
    "matrix_to_lattice_params",
    "frac_to_cartesian",
    "cartesian_to_frac",
    # Periodic geometry
    "wrap_fractional",
    "minimum_image",
    "periodic_distance",
    "generate_supercell_translations",
    # Reference data
    "COVALENT_RADII",
    "DEFAULT_COVALENT_RADIUS",
    "get_covalent_radius",
    # Data classes
    "Lattice",
    "Site",
    "CrystalStructure",
    "BondingConfig",
    "Bond",
    "DEFAULT_BONDING",
    # Structure utilities
    "structure_from_dict",
    "structure_to_dict",
    "structure_from_poscar",
    "load_structure_json",
    "dump_structure_json",
    "make_supercell",
    "merge_duplicate_sites",
    "create_nacl",
    "create_silicon",
    # Errors
    "CrystalBondingError",
    "InvalidLatticeError",
    "MissingCartesianError",
]
