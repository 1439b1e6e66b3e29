import pytest

from roadnet.ingest.transform import CoordinateTransform


@pytest.fixture
def transform(config):
    return CoordinateTransform.from_config(config.ingest)


def test_origin_maps_to_zero(transform):
    assert transform.to_planar(7.5, 124.5) == (0.0, 0.0, 0.0)


def test_axes(transform):
    x, y, z = transform.to_planar(7.501, 124.501, 35.0)
    assert x == pytest.approx(109.54)
    assert y == 35.0
    # north is negative z
    assert z == pytest.approx(-111.32)


@pytest.mark.parametrize("lat, lon", [
    (7.5, 124.5),
    (5.5, 121.9),
    (9.8, 126.6),
    (7.0731, 125.6128),
    (8.4542, 124.6319),
])
def test_round_trip(transform, lat, lon):
    x, _, z = transform.to_planar(lat, lon, 12.0)
    back_lat, back_lon = transform.to_geodetic(x, z)
    assert back_lat == pytest.approx(lat, abs=1e-9)
    assert back_lon == pytest.approx(lon, abs=1e-9)
