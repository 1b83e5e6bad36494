import pytest

from label_modules.geometry import (
    axis_gaps,
    bounding_box,
    box_to_polygon,
    centroid,
    combine_coordinates,
    pad_and_clamp,
    translate,
    vertical_overlap,
)
from label_modules.normalizers import compact


def test_bounding_box_and_centroid():
    pts = [(3, 4), (10, 2), (7, 9)]
    assert bounding_box(pts) == (3, 2, 10, 9)
    assert centroid([(0, 0), (4, 0), (4, 2), (0, 2)]) == (2, 1)


def test_bounding_box_rejects_empty():
    with pytest.raises(ValueError):
        bounding_box([])


def test_combine_coordinates_is_minimal_box():
    polys = [((10, 10), (20, 10), (20, 15), (10, 15)), ((25, 8), (40, 8), (40, 18), (25, 18))]
    assert combine_coordinates(polys) == ((10, 8), (40, 8), (40, 18), (10, 18))


def test_combine_coordinates_follows_translation():
    polys = [((1, 2), (5, 2), (5, 6), (1, 6)), ((7, 1), (9, 1), (9, 3), (7, 3))]
    dx, dy = 13.5, -4
    moved = [translate(p, dx, dy) for p in polys]
    assert combine_coordinates(moved) == tuple(translate(combine_coordinates(polys), dx, dy))


def test_pad_and_clamp_stays_inside_image():
    assert pad_and_clamp((10, 10, 20, 20), 2, 50, 40) == (8, 8, 22, 22)
    assert pad_and_clamp((45, 35, 60, 50), 5, 50, 40) == (40, 30, 50, 40)
    assert pad_and_clamp((-5, -5, 3, 3), 0, 50, 40) == (0, 0, 3, 3)
    # fractional corners never shrink the box
    assert pad_and_clamp((10.4, 10.6, 19.2, 19.9), 0, 50, 40) == (10, 10, 20, 20)


def test_gaps_and_overlap():
    a, b = (0, 0, 10, 10), (15, 2, 25, 12)
    assert axis_gaps(a, b) == (5, 0)
    assert vertical_overlap(a, b) == pytest.approx(0.8)
    assert box_to_polygon(a) == ((0, 0), (10, 0), (10, 10), (0, 10))


def test_compact_drops_separators_keeps_symbols():
    assert compact("MRP: ₹95.00") == "mrp₹9500"
    assert compact("Mfg. Dt. 03/2024") == "mfgdt032024"
    assert compact("बैच नं") == "बैचनं"
