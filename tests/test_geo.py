from __future__ import annotations
import pytest

from geocheckin.core.geo import METERS_PER_MILE, distance, format_distance
from geocheckin.schemas import Coordinates

SF = Coordinates(latitude=37.7749, longitude=-122.4194)
OAKLAND = Coordinates(latitude=37.8044, longitude=-122.2712)


def test_distance_is_zero_for_same_point():
    assert distance(SF, SF) == 0.0
    assert distance(SF, Coordinates(latitude=37.7749, longitude=-122.4194)) == 0.0


def test_distance_is_symmetric():
    assert distance(SF, OAKLAND) == distance(OAKLAND, SF)


def test_distance_known_value():
    # SF City Hall area to downtown Oakland is roughly 13.4 km
    assert distance(SF, OAKLAND) == pytest.approx(13_400, rel=0.02)


def test_one_degree_of_latitude():
    a = Coordinates(latitude=0, longitude=0)
    b = Coordinates(latitude=1, longitude=0)
    assert distance(a, b) == pytest.approx(111_195, rel=1e-3)


def test_antipodal_points_do_not_blow_up():
    a = Coordinates(latitude=0, longitude=0)
    b = Coordinates(latitude=0, longitude=180)
    assert distance(a, b) == pytest.approx(20_015_087, rel=1e-3)


@pytest.mark.parametrize(
    "meters,expected",
    [
        (0, "Less than 0.1 miles"),
        (150, "Less than 0.1 miles"),
        (500, "0.3 miles"),
        (METERS_PER_MILE, "1.0 miles"),
        (2000, "1.2 miles"),
        (16_093.4, "10.0 miles"),
    ],
)
def test_format_distance(meters, expected):
    assert format_distance(meters) == expected


def test_format_distance_rejects_negative():
    with pytest.raises(ValueError):
        format_distance(-1)
