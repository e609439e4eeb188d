"""Exceptions raised by crystal-bonding."""


class CrystalBondingError(Exception):
    """Base class for all crystal-bonding errors."""


class InvalidLatticeError(CrystalBondingError, ValueError):
    """Lattice parameters or matrix do not describe a valid unit cell."""


class MissingCartesianError(CrystalBondingError, ValueError):
    """A site has no Cartesian coordinates where they are required."""
