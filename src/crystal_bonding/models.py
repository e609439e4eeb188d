"""
Data classes for crystal structures and bonds.
"""

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

import numpy as np

from .elements import get_covalent_radius
from .exceptions import InvalidLatticeError, MissingCartesianError
from .lattice import (
    cartesian_to_frac,
    frac_to_cartesian,
    lattice_params_to_matrix,
    matrix_to_lattice_params,
)

# Allowed disagreement between stored and computed Cartesian coordinates (Angstrom)
CARTESIAN_TOLERANCE = 1e-6

# Allowed disagreement between a lattice matrix and its stored parameters
PARAMETER_TOLERANCE = 1e-6

# Separator between element symbols in pair override keys ("Si-O")
PAIR_SEPARATOR = "-"


def _readonly(values: Any, shape: tuple[int, ...]) -> np.ndarray:
    array = np.array(values, dtype=float)
    if array.shape != shape:
        raise ValueError(f"Expected shape {shape}, got {array.shape}")
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class Lattice:
    """Unit cell as a matrix plus its six scalar parameters.

    Rows of ``matrix`` are the lattice vectors a, b, c. Angles are in
    degrees. The constructor rejects a matrix whose lengths and angles
    differ from the given parameters; :meth:`from_parameters` and
    :meth:`from_matrix` build one side from the other.

    Attributes:
        matrix: Read-only 3x3 array of lattice vectors (Angstrom)
        a, b, c: Vector lengths (Angstrom)
        alpha: Angle between b and c (degrees)
        beta: Angle between a and c (degrees)
        gamma: Angle between a and b (degrees)
    """
    matrix: np.ndarray
    a: float
    b: float
    c: float
    alpha: float
    beta: float
    gamma: float

    def __post_init__(self):
        object.__setattr__(self, 'matrix', _readonly(self.matrix, (3, 3)))
        derived = matrix_to_lattice_params(self.matrix)
        if not np.allclose(derived, self.parameters, rtol=PARAMETER_TOLERANCE, atol=PARAMETER_TOLERANCE):
            raise InvalidLatticeError(
                f"Lattice matrix implies parameters "
                f"{tuple(round(p, 6) for p in derived)}, not {self.parameters}"
            )

    @classmethod
    def from_parameters(
        cls,
        a: float,
        b: float,
        c: float,
        alpha: float = 90.0,
        beta: float = 90.0,
        gamma: float = 90.0
    ) -> 'Lattice':
        """Create a lattice with the canonical matrix for these parameters."""
        matrix = lattice_params_to_matrix(a, b, c, alpha, beta, gamma)
        return cls(matrix, a, b, c, alpha, beta, gamma)

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> 'Lattice':
        """Create a lattice from explicit vectors, deriving the parameters.

        The matrix is kept as given, in whatever orientation it has.
        """
        matrix = np.asarray(matrix, dtype=float)
        return cls(matrix, *matrix_to_lattice_params(matrix))

    @classmethod
    def cubic(cls, a: float) -> 'Lattice':
        """Create a cubic lattice."""
        return cls.from_parameters(a, a, a)

    @property
    def parameters(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.alpha, self.beta, self.gamma)

    @property
    def volume(self) -> float:
        """Cell volume in cubic Angstrom."""
        return float(abs(np.linalg.det(self.matrix)))

    @property
    def inverse_matrix(self) -> np.ndarray:
        return np.linalg.inv(self.matrix)

    def frac_to_cartesian(self, frac: np.ndarray) -> np.ndarray:
        return frac_to_cartesian(frac, self.matrix)

    def cartesian_to_frac(self, cart: np.ndarray) -> np.ndarray:
        return cartesian_to_frac(cart, self.matrix)

    def to_dict(self) -> dict:
        return {
            'matrix': self.matrix.tolist(),
            'a': self.a,
            'b': self.b,
            'c': self.c,
            'alpha': self.alpha,
            'beta': self.beta,
            'gamma': self.gamma,
        }

    def __repr__(self) -> str:
        return (
            f"Lattice(a={self.a:.4f}, b={self.b:.4f}, c={self.c:.4f}, "
            f"alpha={self.alpha:.2f}, beta={self.beta:.2f}, gamma={self.gamma:.2f})"
        )


@dataclass(frozen=True, eq=False)
class Site:
    """An atomic position.

    Attributes:
        element: Element symbol
        frac: Fractional coordinates, not necessarily inside [0, 1)
        occupancy: Site occupancy in (0, 1]
        label: Optional site label (e.g. "Si1")
        disorder_group: Optional disorder group identifier
        oxidation_state: Optional formal oxidation state
        cartesian: Cartesian coordinates, filled in by CrystalStructure
    """
    element: str
    frac: np.ndarray
    occupancy: float = 1.0
    label: str | None = None
    disorder_group: str | None = None
    oxidation_state: float | None = None
    cartesian: np.ndarray | None = None

    def __post_init__(self):
        object.__setattr__(self, 'frac', _readonly(self.frac, (3,)))
        if self.cartesian is not None:
            object.__setattr__(self, 'cartesian', _readonly(self.cartesian, (3,)))
        if not 0.0 < self.occupancy <= 1.0:
            raise ValueError(
                f"Occupancy must be in (0, 1], got {self.occupancy} for {self.element}"
            )

    def require_cartesian(self) -> np.ndarray:
        """Return the Cartesian coordinates or raise if they are unknown."""
        if self.cartesian is None:
            name = self.label or self.element
            raise MissingCartesianError(f"Site {name} has no Cartesian coordinates")
        return self.cartesian

    def with_cartesian(self, cartesian: np.ndarray) -> 'Site':
        return replace(self, cartesian=cartesian)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            'element': self.element,
            'frac': self.frac.tolist(),
            'occupancy': self.occupancy,
        }
        if self.label is not None:
            d['label'] = self.label
        if self.disorder_group is not None:
            d['disorder_group'] = self.disorder_group
        if self.oxidation_state is not None:
            d['oxidation_state'] = self.oxidation_state
        if self.cartesian is not None:
            d['cartesian'] = self.cartesian.tolist()
        return d


@dataclass(frozen=True, eq=False)
class CrystalStructure:
    """A lattice, periodic boundary flags and an ordered list of sites.

    Sites without Cartesian coordinates get them computed from the lattice
    on construction. Sites that already carry Cartesian coordinates must
    agree with ``frac @ lattice.matrix``.

    Attributes:
        lattice: Unit cell
        sites: Ordered sites; bond indices refer to this order
        pbc: Periodic flags for the a, b, c axes
    """
    lattice: Lattice
    sites: tuple[Site, ...]
    pbc: tuple[bool, bool, bool] = (True, True, True)

    def __post_init__(self):
        pbc = tuple(bool(p) for p in self.pbc)
        if len(pbc) != 3:
            raise ValueError(f"pbc needs one flag per axis, got {self.pbc}")
        object.__setattr__(self, 'pbc', pbc)

        sites = []
        for site in self.sites:
            computed = self.lattice.frac_to_cartesian(site.frac)
            if site.cartesian is None:
                site = site.with_cartesian(computed)
            elif not np.allclose(site.cartesian, computed, rtol=0.0, atol=CARTESIAN_TOLERANCE):
                name = site.label or site.element
                raise ValueError(
                    f"Cartesian coordinates of site {name} {site.cartesian.tolist()} "
                    f"disagree with fractional {site.frac.tolist()} under the lattice"
                )
            sites.append(site)
        object.__setattr__(self, 'sites', tuple(sites))

    def __len__(self) -> int:
        return len(self.sites)

    @property
    def num_sites(self) -> int:
        return len(self.sites)

    @property
    def elements(self) -> list[str]:
        return [site.element for site in self.sites]

    @property
    def frac_coords(self) -> np.ndarray:
        """(N, 3) array of fractional coordinates."""
        if not self.sites:
            return np.zeros((0, 3))
        return np.array([site.frac for site in self.sites])

    @property
    def cart_coords(self) -> np.ndarray:
        """(N, 3) array of Cartesian coordinates."""
        if not self.sites:
            return np.zeros((0, 3))
        return np.array([site.require_cartesian() for site in self.sites])

    def composition(self) -> dict[str, int]:
        """Count sites per element, in order of first appearance."""
        return dict(Counter(self.elements))

    def to_dict(self) -> dict:
        return {
            'lattice': self.lattice.to_dict(),
            'pbc': list(self.pbc),
            'sites': [site.to_dict() for site in self.sites],
        }


@dataclass(frozen=True)
class BondingConfig:
    """Cutoff rules for bond inference.

    The cutoff for a pair of elements is
    ``clamp(scale_factor * (r1 + r2), min_cutoff, max_cutoff)`` unless
    ``pair_overrides`` has an entry for the pair, which is used verbatim.
    Override keys join two symbols with "-" in either order ("Si-O" also
    matches O-Si).

    No validation is done: a negative scale or ``max_cutoff < min_cutoff``
    is a legal, if degenerate, configuration.
    """
    scale_factor: float = 1.1
    min_cutoff: float = 0.7
    max_cutoff: float = 3.2
    pair_overrides: Mapping[str, float] | None = None

    def __post_init__(self):
        if self.pair_overrides is not None:
            # Read-only copy, detached from the caller's dict
            overrides = MappingProxyType({str(k): float(v) for k, v in self.pair_overrides.items()})
            object.__setattr__(self, 'pair_overrides', overrides)

    def __hash__(self):
        overrides = tuple(sorted(self.pair_overrides.items())) if self.pair_overrides else None
        return hash((self.scale_factor, self.min_cutoff, self.max_cutoff, overrides))

    def override_for(self, element1: str, element2: str) -> float | None:
        """Return the explicit cutoff for this pair, or None."""
        if not self.pair_overrides:
            return None
        for key in (
            f"{element1}{PAIR_SEPARATOR}{element2}",
            f"{element2}{PAIR_SEPARATOR}{element1}",
        ):
            if key in self.pair_overrides:
                return float(self.pair_overrides[key])
        return None

    def cutoff_for(self, element1: str, element2: str) -> float:
        """Bond cutoff in Angstrom for a pair of elements."""
        override = self.override_for(element1, element2)
        if override is not None:
            return override
        cutoff = self.scale_factor * (
            get_covalent_radius(element1) + get_covalent_radius(element2)
        )
        return max(self.min_cutoff, min(self.max_cutoff, cutoff))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BondingConfig':
        """Build a config from viewer settings.

        Accepts the long field names as well as the short ``f``/``min``/
        ``max``/``pairOverrides`` keys used by the viewer state.
        """
        defaults = cls()
        overrides = data.get('pair_overrides', data.get('pairOverrides'))
        return cls(
            scale_factor=float(data.get('scale_factor', data.get('f', defaults.scale_factor))),
            min_cutoff=float(data.get('min_cutoff', data.get('min', defaults.min_cutoff))),
            max_cutoff=float(data.get('max_cutoff', data.get('max', defaults.max_cutoff))),
            pair_overrides=dict(overrides) if overrides else None,
        )

    def to_dict(self) -> dict:
        return {
            'scale_factor': self.scale_factor,
            'min_cutoff': self.min_cutoff,
            'max_cutoff': self.max_cutoff,
            'pair_overrides': dict(self.pair_overrides) if self.pair_overrides else None,
        }


DEFAULT_BONDING = BondingConfig()


@dataclass(frozen=True)
class Bond:
    """A bond between two sites of a structure.

    Attributes:
        site1: Index of the first site, always below ``site2``
        site2: Index of the second site
        distance: Minimum-image distance in Angstrom
        cutoff: Cutoff that admitted this bond
    """
    site1: int
    site2: int
    distance: float
    cutoff: float

    def __post_init__(self):
        if self.site1 >= self.site2:
            raise ValueError(
                f"Bond indices must satisfy site1 < site2, got ({self.site1}, {self.site2})"
            )

    @property
    def indices(self) -> tuple[int, int]:
        return (self.site1, self.site2)

    def other(self, index: int) -> int:
        """Return the partner of ``index`` in this bond."""
        if index == self.site1:
            return self.site2
        if index == self.site2:
            return self.site1
        raise ValueError(f"Site {index} is not part of bond {self.indices}")

    def to_dict(self) -> dict:
        return {
            'site1': self.site1,
            'site2': self.site2,
            'distance': self.distance,
            'cutoff': self.cutoff,
        }
