"""
Periodic Geometry.

Wrapping of fractional coordinates and minimum-image distances.

Minimum image here means wrapping each component of a fractional
difference into [-0.5, 0.5). Only the immediate +/-1 cell shifts are
considered, so for strongly skewed or very small cells the result can be
longer than the true nearest-image distance. Bond cutoffs are small
relative to typical cell lengths, which keeps this acceptable for
bonding.
"""

from collections.abc import Sequence

import numpy as np

from .lattice import frac_to_cartesian


def wrap_fractional(frac: np.ndarray) -> np.ndarray:
    """Wrap fractional coordinates into [0, 1).

    Computes ``f - floor(f)`` per component. Tiny negative inputs such as
    -1e-17 would round to exactly 1.0 in floating point; those are folded
    back to 0.0.

    Args:
        frac: A 3-vector or (N, 3) array of fractional coordinates

    Returns:
        Wrapped coordinates, same shape as input
    """
    frac = np.asarray(frac, dtype=float)
    wrapped = frac - np.floor(frac)
    return np.where(wrapped >= 1.0, 0.0, wrapped)


def minimum_image(
    dfrac: np.ndarray,
    pbc: Sequence[bool] | None = None
) -> np.ndarray:
    """Wrap a fractional difference vector into [-0.5, 0.5).

    Rounding is half-up (``floor(f + 0.5)``): a component of exactly +0.5
    or -0.5 maps to -0.5. This decides which image a borderline pair uses.

    Args:
        dfrac: Fractional difference, a 3-vector or (N, 3) array
        pbc: Optional per-axis periodic flags. Components on axes flagged
            False are returned unchanged. None means periodic on all axes.

    Returns:
        Minimum-image difference, same shape as input
    """
    dfrac = np.asarray(dfrac, dtype=float)
    wrapped = dfrac - np.floor(dfrac + 0.5)
    # f + 0.5 can round up across an integer for f just below 0.5
    wrapped = np.where(wrapped < -0.5, wrapped + 1.0, wrapped)
    wrapped = np.where(wrapped >= 0.5, wrapped - 1.0, wrapped)

    if pbc is not None:
        mask = np.asarray(pbc, dtype=bool)
        wrapped = np.where(mask, wrapped, dfrac)

    return wrapped


def periodic_distance(
    frac1: np.ndarray,
    frac2: np.ndarray,
    matrix: np.ndarray,
    pbc: Sequence[bool] | None = None
) -> float | np.ndarray:
    """Minimum-image distance between two fractional positions.

    The fractional difference ``frac2 - frac1`` is wrapped with
    :func:`minimum_image`, converted to Cartesian with the row-vector
    convention (``dfrac @ matrix``) and its Euclidean norm returned.

    Args:
        frac1: First position(s) in fractional coordinates
        frac2: Second position(s) in fractional coordinates
        matrix: Lattice matrix with basis vectors as rows
        pbc: Optional per-axis periodic flags, see :func:`minimum_image`

    Returns:
        Distance in Angstrom. A float for single positions, an array when
        the inputs broadcast to several.
    """
    dfrac = np.asarray(frac2, dtype=float) - np.asarray(frac1, dtype=float)
    dcart = frac_to_cartesian(minimum_image(dfrac, pbc), matrix)
    distance = np.linalg.norm(dcart, axis=-1)
    if np.ndim(distance) == 0:
        return float(distance)
    return distance


def generate_supercell_translations(
    nx: int,
    ny: int,
    nz: int
) -> list[tuple[int, int, int]]:
    """Enumerate integer cell translations of an nx x ny x nz supercell.

    Order is row-major with the third axis innermost:
    (0,0,0), (0,0,1), ..., (0,1,0), ...
    """
    return [
        (x, y, z)
        for x in range(nx)
        for y in range(ny)
        for z in range(nz)
    ]
