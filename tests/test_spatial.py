"""Bounding box, proximity, duplicate check and bounds"""
from decimal import Decimal

import pytest

from transit_points.exceptions import ValidationError
from tests.conftest import make_point

GRID = [Decimal(v) for v in ("16.70", "16.75", "16.80")]
LON_GRID = [Decimal(v) for v in ("-93.20", "-93.15", "-93.10")]


async def _seed_grid(store):
    points = []
    sequence = 0
    for lat in GRID:
        for lon in LON_GRID:
            sequence += 1
            point = make_point(parent_id=1 + sequence % 2, latitude=lat, longitude=lon, sequence=sequence)
            points.append(point.with_id(await store.create(point)))
    return points


@pytest.mark.parametrize("box", [
    (Decimal("16.70"), Decimal("16.75"), Decimal("-93.20"), Decimal("-93.15")),
    (Decimal("16.72"), Decimal("16.80"), Decimal("-93.16"), Decimal("-93.00")),
    (Decimal("16.00"), Decimal("17.00"), Decimal("-94.00"), Decimal("-93.00")),
    (Decimal("16.75"), Decimal("16.75"), Decimal("-93.15"), Decimal("-93.15")),
    (Decimal("10.00"), Decimal("11.00"), Decimal("-93.20"), Decimal("-93.10")),
])
async def test_bounding_box_matches_exactly_the_contained_points(traversal_store, box):
    points = await _seed_grid(traversal_store)
    lat_min, lat_max, lon_min, lon_max = box

    found = await traversal_store.find_in_bounding_box(lat_min, lat_max, lon_min, lon_max)

    expected = {
        p.id for p in points
        if lat_min <= p.latitude <= lat_max and lon_min <= p.longitude <= lon_max
    }
    assert {p.id for p in found} == expected


async def test_bounding_box_orders_by_parent_then_sequence(traversal_store):
    await _seed_grid(traversal_store)

    found = await traversal_store.find_in_bounding_box(16, 17, -94, -93)

    keys = [(p.parent_id, p.sequence) for p in found]
    assert keys == sorted(keys)


async def test_inverted_bounding_box_is_empty_not_an_error(traversal_store):
    await _seed_grid(traversal_store)

    assert await traversal_store.find_in_bounding_box(16.8, 16.7, -93.1, -93.2) == []


async def test_bounding_box_requires_every_edge(traversal_store):
    with pytest.raises(ValidationError):
        await traversal_store.find_in_bounding_box(None, 17, -94, -93)


async def test_near_includes_reference_point_and_excludes_distant_one(stop_store):
    here = await stop_store.create(make_point(latitude=Decimal("16.75"), longitude=Decimal("-93.13")))
    # 0.45 degrees of latitude is about 50 km
    await stop_store.create(make_point(latitude=Decimal("17.20"), longitude=Decimal("-93.13"), sequence=2))

    hits = await stop_store.find_near(16.75, -93.13, 1.0)

    assert [hit.point.id for hit in hits] == [here]
    assert hits[0].distance_km == pytest.approx(0.0, abs=1e-9)


async def test_near_with_zero_radius_still_finds_exact_match(stop_store):
    here = await stop_store.create(make_point())

    hits = await stop_store.find_near(Decimal("16.7569444"), Decimal("-93.1292778"), 0)

    assert [hit.point.id for hit in hits] == [here]


async def test_near_orders_by_distance(stop_store):
    far = await stop_store.create(make_point(latitude=Decimal("16.77"), sequence=1))
    near = await stop_store.create(make_point(latitude=Decimal("16.7579444"), sequence=2))
    middle = await stop_store.create(make_point(latitude=Decimal("16.7619444"), sequence=3))

    hits = await stop_store.find_near(Decimal("16.7569444"), Decimal("-93.1292778"), 5)

    assert [hit.point.id for hit in hits] == [near, middle, far]
    distances = [hit.distance_km for hit in hits]
    assert distances == sorted(distances)
    assert distances[0] == pytest.approx(0.111, abs=0.001)


async def test_near_spans_every_parent(stop_store):
    await stop_store.create(make_point(parent_id=1))
    await stop_store.create(make_point(parent_id=2))

    hits = await stop_store.find_near(Decimal("16.7569444"), Decimal("-93.1292778"), 0.5)

    assert sorted(hit.point.parent_id for hit in hits) == [1, 2]


async def test_near_rejects_negative_radius(stop_store):
    with pytest.raises(ValidationError):
        await stop_store.find_near(16.75, -93.13, -1)


async def test_exists_duplicate_requires_exact_coordinates(traversal_store):
    await traversal_store.create(make_point(parent_id=5))

    assert await traversal_store.exists_duplicate(5, Decimal("16.7569444"), Decimal("-93.1292778")) is True
    assert await traversal_store.exists_duplicate(5, 16.7569444, -93.1292778) is True
    assert await traversal_store.exists_duplicate(5, Decimal("16.7569445"), Decimal("-93.1292778")) is False
    assert await traversal_store.exists_duplicate(6, Decimal("16.7569444"), Decimal("-93.1292778")) is False


async def test_bounds_of_empty_store(stop_store):
    bounds = await stop_store.bounds()

    assert bounds.is_empty
    assert (bounds.lat_min, bounds.lat_max, bounds.lon_min, bounds.lon_max) == (None, None, None, None)


async def test_bounds_cover_every_point(traversal_store):
    await _seed_grid(traversal_store)

    bounds = await traversal_store.bounds()

    assert not bounds.is_empty
    assert (bounds.lat_min, bounds.lat_max) == (Decimal("16.70"), Decimal("16.80"))
    assert (bounds.lon_min, bounds.lon_max) == (Decimal("-93.20"), Decimal("-93.10"))


async def test_bounding_box_edges_are_not_rounded(traversal_store):
    await traversal_store.create(make_point(latitude=Decimal("16.75"), longitude=Decimal("-93.13")))

    assert await traversal_store.find_in_bounding_box(16.7, 16.74999996, -94, -93) == []
    assert await traversal_store.find_in_bounding_box(16.75000004, 16.8, -94, -93) == []
    assert len(await traversal_store.find_in_bounding_box(16.7, 16.75000004, -94, -93)) == 1


async def test_exists_duplicate_does_not_round_the_query(traversal_store):
    await traversal_store.create(make_point(parent_id=5))

    assert await traversal_store.exists_duplicate(5, Decimal("16.75694441"), Decimal("-93.1292778")) is False
    assert await traversal_store.exists_duplicate(5, Decimal("16.7569444"), Decimal("-93.12927779")) is False
    assert await traversal_store.exists_duplicate(5, Decimal("16.75694440"), Decimal("-93.1292778")) is True


@pytest.mark.parametrize("radius", [float("nan"), float("inf"), None, "wide"])
async def test_near_rejects_radius_that_is_not_a_finite_number(stop_store, radius):
    await stop_store.create(make_point())

    with pytest.raises(ValidationError):
        await stop_store.find_near(Decimal("16.7569444"), Decimal("-93.1292778"), radius)
