"""Tests for pixel-space geometry helpers."""

import pytest
from shapely.geometry import LineString, Point, Polygon

from takeoff_engine.geometry import is_near_point, line_length, pairs, polygon_area, shape_hit, to_shape


def _reversed_points(points):
    coords = pairs(points)
    return [value for coord in reversed(coords) for value in coord]


class TestLineLength:
    def test_polyline_sums_segments(self):
        assert line_length([0, 0, 3, 0, 3, 4]) == pytest.approx(7.0)

    def test_bent_polyline(self):
        assert line_length([0, 0, 3, 4, 3, 6]) == pytest.approx(7.0)

    def test_reversed_traversal_has_same_length(self):
        points = [0, 0, 3, 0, 3, 4, 10, 12.5]
        assert line_length(_reversed_points(points)) == pytest.approx(line_length(points))

    def test_single_point_is_zero(self):
        assert line_length([5, 5]) == 0.0

    def test_empty_is_zero(self):
        assert line_length([]) == 0.0

    def test_trailing_unpaired_number_ignored(self):
        assert line_length([0, 0, 3, 4, 9]) == pytest.approx(5.0)


class TestPolygonArea:
    def test_square(self):
        assert polygon_area([0, 0, 10, 0, 10, 10, 0, 10]) == pytest.approx(100.0)

    def test_reversed_ring_has_same_area(self):
        points = [0, 0, 10, 0, 10, 10, 0, 10]
        assert polygon_area(_reversed_points(points)) == pytest.approx(polygon_area(points))

    def test_irregular_ring_reversed(self):
        points = [0, 0, 40, 5, 35, 30, 10, 25]
        assert polygon_area(_reversed_points(points)) == pytest.approx(polygon_area(points))

    def test_triangle(self):
        assert polygon_area([0, 0, 4, 0, 0, 3]) == pytest.approx(6.0)

    def test_fewer_than_three_vertices_is_zero(self):
        assert polygon_area([0, 0, 10, 10]) == 0.0
        assert polygon_area([]) == 0.0


class TestShapes:
    def test_pairs(self):
        assert pairs([1, 2, 3, 4]) == [(1, 2), (3, 4)]

    def test_near_point_uses_strict_box(self):
        assert is_near_point(9.9, 9.9, 0, 0, 10)
        assert not is_near_point(10, 0, 0, 0, 10)
        assert not is_near_point(0, 12, 0, 0, 10)

    def test_to_shape_kinds(self):
        assert to_shape([]) is None
        assert isinstance(to_shape([1, 2]), Point)
        assert isinstance(to_shape([0, 0, 1, 1]), LineString)
        assert isinstance(to_shape([0, 0, 1, 0, 1, 1], closed=True), Polygon)
        assert isinstance(to_shape([0, 0, 1, 1], closed=True), LineString)

    def test_hit_near_polyline(self):
        line = to_shape([0, 0, 10, 0])
        assert shape_hit(line, 5, 3, 3.5)
        assert not shape_hit(line, 5, 3, 2.5)

    def test_hit_inside_and_on_ring(self):
        square = to_shape([0, 0, 10, 0, 10, 10, 0, 10], closed=True)
        assert shape_hit(square, 5, 5, 1)
        assert shape_hit(square, -0.5, 5, 1)
        assert not shape_hit(square, 15, 5, 1)

    def test_hit_missing_shape(self):
        assert not shape_hit(None, 0, 0, 10)
