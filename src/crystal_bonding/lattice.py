"""
Lattice Math.

Conversion between lattice parameters (a, b, c, alpha, beta, gamma) and the
3x3 lattice matrix, and between fractional and Cartesian coordinates.

Convention: the rows of the lattice matrix are the basis vectors a, b, c
in Cartesian space, and coordinates are row vectors. So

    cart = frac @ matrix
    frac = cart @ inv(matrix)

Both directions use the same convention; never transpose one without the
other.
"""

import numpy as np

from .exceptions import InvalidLatticeError

# Cosines below this are treated as exactly zero (right angles)
_COS_TOLERANCE = 1e-12

# Minimum volume relative to a * b * c; a cube is 1.0
_VOLUME_TOLERANCE = 1e-6


def _cos_deg(angle: float) -> float:
    value = float(np.cos(np.radians(angle)))
    return 0.0 if abs(value) < _COS_TOLERANCE else value


def lattice_params_to_matrix(
    a: float,
    b: float,
    c: float,
    alpha: float,
    beta: float,
    gamma: float
) -> np.ndarray:
    """Build the canonical lattice matrix from lattice parameters.

    Vector a lies along x, vector b in the xy-plane, and vector c is fixed
    by the law of cosines.

    Args:
        a, b, c: Lattice vector lengths in Angstrom
        alpha: Angle between b and c in degrees
        beta: Angle between a and c in degrees
        gamma: Angle between a and b in degrees

    Returns:
        3x3 array with lattice vectors as rows

    Raises:
        InvalidLatticeError: If a length is not positive, gamma is 0 or 180
            degrees, or the angles cannot close a cell
    """
    params = (a, b, c, alpha, beta, gamma)
    if not all(np.isfinite(p) for p in params):
        raise InvalidLatticeError(f"Lattice parameters must be finite, got {params}")

    for name, length in (("a", a), ("b", b), ("c", c)):
        if length <= 0:
            raise InvalidLatticeError(
                f"Lattice length {name} must be positive, got {length}"
            )

    cos_alpha = _cos_deg(alpha)
    cos_beta = _cos_deg(beta)
    cos_gamma = _cos_deg(gamma)
    sin_gamma = float(np.sin(np.radians(gamma)))

    if abs(sin_gamma) < _COS_TOLERANCE:
        raise InvalidLatticeError(
            f"gamma={gamma} degrees makes vectors a and b collinear"
        )

    c_x = c * cos_beta
    c_y = c * (cos_alpha - cos_beta * cos_gamma) / sin_gamma
    radicand = c * c - c_x * c_x - c_y * c_y
    if radicand < 0:
        raise InvalidLatticeError(
            f"Angles alpha={alpha}, beta={beta}, gamma={gamma} are geometrically "
            f"inconsistent (c_z^2 = {radicand:.6g})"
        )

    matrix = np.array([
        [a, 0.0, 0.0],
        [b * cos_gamma, b * sin_gamma, 0.0],
        [c_x, c_y, np.sqrt(radicand)],
    ])

    if not np.all(np.isfinite(matrix)):
        raise InvalidLatticeError(
            f"Lattice parameters {params} produce a non-finite matrix"
        )

    if is_degenerate(matrix):
        raise InvalidLatticeError(
            f"Angles alpha={alpha}, beta={beta}, gamma={gamma} give a cell "
            f"with zero volume"
        )

    return matrix


def is_degenerate(matrix: np.ndarray) -> bool:
    """True when the lattice vectors span (almost) no volume.

    The volume is compared with the product of the vector lengths, so the
    test does not depend on the size of the cell.
    """
    matrix = np.asarray(matrix, dtype=float)
    scale = float(np.prod(np.linalg.norm(matrix, axis=1)))
    return abs(float(np.linalg.det(matrix))) <= _VOLUME_TOLERANCE * scale


def matrix_to_lattice_params(
    matrix: np.ndarray
) -> tuple[float, float, float, float, float, float]:
    """Derive (a, b, c, alpha, beta, gamma) from a lattice matrix.

    Angles are returned in degrees.
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.shape != (3, 3):
        raise InvalidLatticeError(f"Lattice matrix must be 3x3, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise InvalidLatticeError("Lattice matrix contains non-finite entries")

    lengths = np.linalg.norm(matrix, axis=1)
    if np.any(lengths <= 0):
        raise InvalidLatticeError(f"Lattice vectors must be non-zero, got lengths {lengths}")
    if is_degenerate(matrix):
        raise InvalidLatticeError("Lattice vectors are linearly dependent")

    def angle(i: int, j: int) -> float:
        cos = np.dot(matrix[i], matrix[j]) / (lengths[i] * lengths[j])
        return float(np.degrees(np.arccos(np.clip(cos, -1.0, 1.0))))

    a, b, c = (float(x) for x in lengths)
    return a, b, c, angle(1, 2), angle(0, 2), angle(0, 1)


def frac_to_cartesian(frac: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Convert fractional coordinates to Cartesian (``frac @ matrix``).

    Args:
        frac: A 3-vector or an (N, 3) array of fractional coordinates
        matrix: Lattice matrix with basis vectors as rows

    Returns:
        Cartesian coordinates with the same shape as ``frac``
    """
    return np.asarray(frac, dtype=float) @ np.asarray(matrix, dtype=float)


def cartesian_to_frac(cart: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Convert Cartesian coordinates to fractional (``cart @ inv(matrix)``).

    Raises:
        InvalidLatticeError: If the matrix is singular
    """
    try:
        inverse = np.linalg.inv(np.asarray(matrix, dtype=float))
    except np.linalg.LinAlgError as exc:
        raise InvalidLatticeError("Lattice matrix is singular") from exc
    return np.asarray(cart, dtype=float) @ inverse
