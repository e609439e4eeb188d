"""Tests for structure models, interchange and supercell utilities."""

import json

import numpy as np
import pytest

from crystal_bonding import (
    CrystalStructure,
    InvalidLatticeError,
    Lattice,
    Site,
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


# =============================================================================
# Model Tests
# =============================================================================

class TestSite:
    """Test Site dataclass."""

    def test_defaults(self):
        """Test optional fields default to None."""
        site = Site('Fe', (0.5, 0.5, 0.5))
        assert site.occupancy == 1.0
        assert site.label is None
        assert site.disorder_group is None
        assert site.oxidation_state is None
        assert site.cartesian is None

    @pytest.mark.parametrize("occupancy", [0.0, -0.2, 1.5])
    def test_occupancy_range(self, occupancy):
        """Test occupancy outside (0, 1] is rejected."""
        with pytest.raises(ValueError, match="Occupancy"):
            Site('Fe', (0, 0, 0), occupancy=occupancy)

    def test_bad_frac_shape(self):
        """Test fractional coordinates need three components."""
        with pytest.raises(ValueError, match="shape"):
            Site('Fe', (0, 0))

    def test_frac_not_wrapped(self):
        """Test coordinates outside the cell are kept as given."""
        site = Site('Fe', (1.25, -0.5, 2.0))
        np.testing.assert_array_equal(site.frac, [1.25, -0.5, 2.0])


class TestCrystalStructure:
    """Test CrystalStructure dataclass."""

    def test_cartesian_filled_in(self):
        """Test Cartesian coordinates computed from the lattice."""
        structure = CrystalStructure(Lattice.cubic(4.0), (Site('C', (0.25, 0.5, 1.0)),))
        np.testing.assert_allclose(structure.sites[0].cartesian, [1.0, 2.0, 4.0])

    def test_consistent_cartesian_accepted(self):
        """Test matching Cartesian coordinates are kept."""
        site = Site('C', (0.5, 0.5, 0.5), cartesian=(2.0, 2.0, 2.0))
        structure = CrystalStructure(Lattice.cubic(4.0), (site,))
        assert structure.sites[0] is site

    def test_inconsistent_cartesian_rejected(self):
        """Test mismatched Cartesian coordinates are rejected."""
        site = Site('C', (0.5, 0.5, 0.5), cartesian=(2.0, 2.0, 2.5))
        with pytest.raises(ValueError, match="disagree"):
            CrystalStructure(Lattice.cubic(4.0), (site,))

    def test_pbc(self):
        """Test pbc flags are normalised to a bool tuple."""
        structure = CrystalStructure(Lattice.cubic(4.0), (), pbc=[1, 0, 1])
        assert structure.pbc == (True, False, True)
        with pytest.raises(ValueError, match="pbc"):
            CrystalStructure(Lattice.cubic(4.0), (), pbc=(True, True))

    def test_coordinate_arrays(self):
        """Test frac and cart arrays."""
        structure = create_nacl(a=4.0)
        assert structure.frac_coords.shape == (8, 3)
        assert np.allclose(structure.cart_coords, structure.frac_coords * 4.0)
        assert len(structure) == structure.num_sites == 8

    def test_empty_coordinate_arrays(self):
        """Test an empty structure still gives (0, 3) arrays."""
        structure = CrystalStructure(Lattice.cubic(4.0), ())
        assert structure.frac_coords.shape == (0, 3)
        assert structure.cart_coords.shape == (0, 3)

    def test_composition(self):
        """Test element counts."""
        assert create_nacl().composition() == {'Na': 4, 'Cl': 4}
        assert create_silicon().composition() == {'Si': 8}


# =============================================================================
# Interchange Tests
# =============================================================================

class TestStructureDict:
    """Test dict and JSON interchange."""

    def test_from_matrix(self):
        """Test lattice given as a matrix."""
        data = {
            'lattice': {'matrix': [[5, 0, 0], [0, 5, 0], [0, 0, 5]]},
            'sites': [{'element': 'Na', 'frac': [0, 0, 0]}],
        }
        structure = structure_from_dict(data)
        assert structure.lattice.a == pytest.approx(5.0)
        assert structure.pbc == (True, True, True)
        assert structure.sites[0].occupancy == 1.0

    def test_from_parameters(self):
        """Test lattice given as six parameters."""
        data = {
            'lattice': {'a': 3, 'b': 3, 'c': 5, 'alpha': 90, 'beta': 90, 'gamma': 120},
            'pbc': [True, True, False],
            'sites': [{'element': 'C', 'frac': [1 / 3, 2 / 3, 0], 'label': 'C1'}],
        }
        structure = structure_from_dict(data)
        assert structure.lattice.gamma == 120
        assert structure.pbc == (True, True, False)
        assert structure.sites[0].label == 'C1'

    def test_invalid_lattice(self):
        """Test invalid parameters surface as InvalidLatticeError."""
        data = {
            'lattice': {'a': 3, 'b': 3, 'c': 5, 'alpha': 90, 'beta': 90, 'gamma': 0},
            'sites': [],
        }
        with pytest.raises(InvalidLatticeError):
            structure_from_dict(data)

    def test_missing_lattice(self):
        """Test missing lattice key."""
        with pytest.raises(ValueError, match="lattice"):
            structure_from_dict({'sites': []})

    def test_incomplete_parameters(self):
        """Test lattice without matrix or all six parameters."""
        with pytest.raises(ValueError, match="six parameters"):
            structure_from_dict({'lattice': {'a': 3, 'b': 3}, 'sites': []})

    def test_missing_sites(self):
        """Test missing sites list."""
        with pytest.raises(ValueError, match="sites"):
            structure_from_dict({'lattice': {'matrix': np.eye(3).tolist()}})

    def test_site_missing_element(self):
        """Test site without element symbol."""
        data = {'lattice': {'matrix': np.eye(3).tolist()}, 'sites': [{'frac': [0, 0, 0]}]}
        with pytest.raises(ValueError, match="element"):
            structure_from_dict(data)

    def test_to_dict(self):
        """Test conversion to dictionary."""
        d = structure_to_dict(create_nacl())
        assert 'lattice' in d
        assert 'sites' in d
        assert d['pbc'] == [True, True, True]
        assert len(d['sites']) == 8
        assert d['sites'][0]['label'] == 'Na1'
        assert 'disorder_group' not in d['sites'][0]

    def test_json_round_trip(self):
        """Test dump then load keeps lattice and sites."""
        original = create_silicon()
        text = dump_structure_json(original)
        assert json.loads(text)['lattice']['a'] == pytest.approx(5.43)

        loaded = load_structure_json(text)
        assert np.allclose(loaded.lattice.matrix, original.lattice.matrix)
        assert np.allclose(loaded.frac_coords, original.frac_coords)
        assert loaded.elements == original.elements


# =============================================================================
# Supercell Tests
# =============================================================================

class TestMakeSupercell:
    """Test supercell expansion."""

    def test_size_and_lattice(self):
        """Test site count and scaled lattice."""
        structure = create_silicon()
        supercell = make_supercell(structure, (2, 1, 1))
        assert len(supercell) == 16
        assert supercell.lattice.a == pytest.approx(10.86)
        assert supercell.lattice.volume == pytest.approx(2 * structure.lattice.volume)

    def test_positions(self):
        """Test Cartesian positions are preserved and shifted by translations."""
        structure = create_nacl(a=4.0)
        supercell = make_supercell(structure, (1, 2, 1))
        cart = supercell.cart_coords
        assert np.allclose(cart[:8], structure.cart_coords)
        assert np.allclose(cart[8:], structure.cart_coords + [0.0, 4.0, 0.0])
        assert supercell.sites[8].label == 'Na1_1'

    def test_invalid_size(self):
        """Test non-positive sizes are rejected."""
        with pytest.raises(ValueError, match="positive"):
            make_supercell(create_nacl(), (0, 1, 1))


class TestMergeDuplicateSites:
    """Test duplicate-site removal."""

    def test_periodic_duplicates(self):
        """Test images of the same position are merged, first kept."""
        sites = (
            Site('Si', (0.0, 0.0, 0.0), label='Si1'),
            Site('Si', (0.25, 0.25, 0.25), label='Si2'),
            Site('Si', (1.0, 0.0, 0.0), label='Si3'),
            Site('Si', (1.25, 0.25, 0.25), label='Si4'),
            Site('Si', (0.9999999, 0.0, 0.0), label='Si5'),
        )
        structure = CrystalStructure(Lattice.cubic(5.43), sites)
        merged = merge_duplicate_sites(structure)
        assert [site.label for site in merged.sites] == ['Si1', 'Si2']

    def test_no_duplicates(self):
        """Test a clean structure is unchanged."""
        structure = create_nacl()
        assert len(merge_duplicate_sites(structure)) == 8

    def test_mixed_occupancy_site_kept(self):
        """Test different species sharing a position are not merged."""
        sites = (
            Site('Fe', (0.0, 0.0, 0.0), occupancy=0.5),
            Site('Mg', (0.0, 0.0, 0.0), occupancy=0.5),
            Site('Fe', (1.0, 0.0, 0.0), occupancy=0.5),
        )
        structure = CrystalStructure(Lattice.cubic(4.2), sites)
        merged = merge_duplicate_sites(structure)
        assert merged.elements == ['Fe', 'Mg']

    def test_disorder_groups_kept(self):
        """Test same element in different disorder groups is not merged."""
        sites = (
            Site('O', (0.5, 0.5, 0.5), occupancy=0.5, disorder_group='A'),
            Site('O', (0.5, 0.5, 0.5), occupancy=0.5, disorder_group='B'),
        )
        structure = CrystalStructure(Lattice.cubic(4.2), sites)
        assert len(merge_duplicate_sites(structure)) == 2


# =============================================================================
# POSCAR Tests
# =============================================================================

POSCAR_DIRECT = """NaCl
1.0
5.64 0.0 0.0
0.0 5.64 0.0
0.0 0.0 5.64
Na Cl
1 1
Direct
0.0 0.0 0.0
0.5 0.5 0.5
"""

POSCAR_CARTESIAN = """scaled cell
2.0
2.5 0.0 0.0
0.0 2.5 0.0
0.0 0.0 2.5
Si
2
Selective dynamics
Cartesian
0.0 0.0 0.0 T T T
0.625 0.625 0.625 F F F
"""


class TestPoscar:
    """Test POSCAR reading."""

    def test_direct(self):
        """Test fractional positions with element symbols."""
        structure = structure_from_poscar(POSCAR_DIRECT)
        assert structure.elements == ['Na', 'Cl']
        assert structure.lattice.parameters == pytest.approx((5.64, 5.64, 5.64, 90.0, 90.0, 90.0))
        assert np.allclose(structure.sites[1].frac, [0.5, 0.5, 0.5])
        assert structure.pbc == (True, True, True)

    def test_cartesian_scaled(self):
        """Test Cartesian positions are scaled and converted to fractional."""
        structure = structure_from_poscar(POSCAR_CARTESIAN)
        assert structure.lattice.a == pytest.approx(5.0)
        assert np.allclose(structure.sites[1].frac, [0.25, 0.25, 0.25])
        assert np.allclose(structure.sites[1].cartesian, [1.25, 1.25, 1.25])

    def test_negative_scale_is_volume(self):
        """Test a negative scale factor sets the cell volume."""
        text = POSCAR_DIRECT.replace("\n1.0\n", "\n-125.0\n", 1)
        structure = structure_from_poscar(text)
        assert structure.lattice.volume == pytest.approx(125.0)
        assert structure.lattice.a == pytest.approx(5.0)

    def test_without_element_line(self):
        """Test generic species names when symbols are missing."""
        text = POSCAR_DIRECT.replace("Na Cl\n", "", 1)
        structure = structure_from_poscar(text)
        assert structure.elements == ['Element1', 'Element2']

    def test_truncated_positions(self):
        """Test too few position lines."""
        text = POSCAR_DIRECT.replace("1 1", "1 2", 1)
        with pytest.raises(ValueError, match="positions"):
            structure_from_poscar(text)

    def test_too_short(self):
        """Test text without a full header."""
        with pytest.raises(ValueError, match="insufficient"):
            structure_from_poscar("comment\n1.0\n")
