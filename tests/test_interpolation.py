"""
Tests for great-circle helpers and IDW interpolation.
"""

import pytest
from conftest import make_station

from airrisk.exceptions import InterpolationUnavailable
from airrisk.geo import haversine_distance, path_length, validate_bbox
from airrisk.interpolation import (
    entropy_factor,
    interpolate,
    interpolate_grid,
    interpolate_or_raise,
    nearby_stations,
)


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_distance(13.75, 100.5, 13.75, 100.5) == 0.0

    def test_symmetric(self):
        a = haversine_distance(13.70, 100.50, 13.80, 100.60)
        b = haversine_distance(13.80, 100.60, 13.70, 100.50)
        assert a == pytest.approx(b)

    def test_one_degree_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_path_length(self):
        coords = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
        assert path_length(coords) == pytest.approx(2 * 111.19, abs=0.05)
        assert path_length([(0.0, 0.0)]) == 0.0

    def test_validate_bbox(self):
        assert validate_bbox((13.0, 100.0, 14.0, 101.0)) == (13.0, 100.0, 14.0, 101.0)
        with pytest.raises(ValueError):
            validate_bbox((14.0, 100.0, 13.0, 101.0))
        with pytest.raises(ValueError):
            validate_bbox((13.0, 179.0, 14.0, 181.0))


class TestNearbyStations:
    def test_sorted_and_filtered(self, stations):
        far = make_station(3, 20.0, 100.0, 50.0)
        result = nearby_stations(13.71, 100.51, stations + [far])
        assert [s.station_id for s, _ in result] == [1, 2]
        assert result[0][1] < result[1][1]

    def test_limit(self, stations):
        assert len(nearby_stations(13.75, 100.55, stations, limit=1)) == 1

    def test_skips_stations_without_location(self, stations):
        unlocated = make_station(4, None, None, 30.0)
        result = nearby_stations(13.75, 100.55, stations + [unlocated])
        assert len(result) == 2


class TestInterpolate:
    """Test interpolate()."""

    def test_between_two_stations(self, stations):
        point = interpolate(13.75, 100.55, stations)

        assert point is not None
        assert 20.0 < point.pm25 < 80.0
        assert point.confidence < 1.0
        assert {c.station_id for c in point.contributing_stations} == {1, 2}
        assert point.is_interpolated

    def test_weights_are_normalized(self, stations):
        point = interpolate(13.72, 100.52, stations)
        weights = [c.weight for c in point.contributing_stations]
        assert sum(weights) == pytest.approx(1.0)
        # Closer to station 1, so it dominates
        assert point.contributing_stations[0].station_id == 1
        assert point.pm25 < 50.0

    def test_near_station_short_circuit(self, stations):
        point = interpolate(13.7001, 100.5001, stations)
        assert point.pm25 == 20.0
        assert point.confidence == 1.0
        assert len(point.contributing_stations) == 1

    def test_out_of_range_returns_none(self, stations):
        assert interpolate(0.0, 0.0, stations) is None
        assert interpolate(13.75, 100.55, []) is None

    def test_max_distance(self, stations):
        assert interpolate(13.75, 100.55, stations, max_distance_km=5) is None

    def test_duplicate_coordinates_not_merged(self):
        twins = [
            make_station(1, 13.70, 100.50, 20.0),
            make_station(2, 13.70, 100.50, 40.0),
        ]
        point = interpolate(13.75, 100.55, twins)
        assert len(point.contributing_stations) == 2
        assert point.pm25 == pytest.approx(30.0)

    def test_points_are_hashable(self, stations):
        point = interpolate(13.75, 100.55, stations)
        assert hash(point) == hash(interpolate(13.75, 100.55, stations))

    def test_confidence_in_unit_interval(self, stations):
        for lat, lng in [(13.75, 100.55), (13.9, 100.7), (13.5, 100.3)]:
            point = interpolate(lat, lng, stations)
            if point is not None:
                assert 0.0 <= point.confidence <= 1.0

    def test_or_raise(self, stations):
        with pytest.raises(InterpolationUnavailable):
            interpolate_or_raise(0.0, 0.0, stations)
        assert interpolate_or_raise(13.75, 100.55, stations).pm25 > 20.0


class TestEntropyFactor:
    def test_even_weights(self):
        assert entropy_factor([0.25, 0.25, 0.25, 0.25]) == pytest.approx(1.0)

    def test_single_weight(self):
        assert entropy_factor([1.0]) == 1.0

    def test_dominant_weight_is_low(self):
        assert entropy_factor([0.99, 0.01]) < 0.2


class TestInterpolateGrid:
    def test_grid_covers_box(self, stations):
        points = interpolate_grid((13.70, 100.50, 13.80, 100.60), stations, steps=3)
        assert len(points) == 9
        assert all(20.0 <= p.pm25 <= 80.0 for p in points)

    def test_cells_out_of_range_dropped(self, stations):
        points = interpolate_grid((13.0, 100.0, 16.0, 103.0), stations, steps=4)
        assert len(points) < 16

    def test_steps_validated(self, stations):
        with pytest.raises(ValueError):
            interpolate_grid((13.70, 100.50, 13.80, 100.60), stations, steps=1)

    def test_power_passed_through(self, stations):
        bbox = (13.70, 100.50, 13.80, 100.60)
        default = interpolate_grid(bbox, stations, steps=3)
        sharper = interpolate_grid(bbox, stations, steps=3, power=4)

        # cell (13.75, 100.50) sits much closer to station 1 (20 ug/m3)
        cell = default[3]
        assert (cell.latitude, cell.longitude) == pytest.approx((13.75, 100.50))
        assert sharper[3].pm25 < cell.pm25
        assert sharper[3].pm25 == interpolate(cell.latitude, cell.longitude, stations, power=4).pm25
