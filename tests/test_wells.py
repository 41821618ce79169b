import pytest

from bedver.layout.wells import (
    column_index,
    inverse_rows_index,
    parse_well,
    position_index,
    quadrant_index,
    validate_geometry,
)


def test_parse_well_names() -> None:
    assert parse_well("A1") == (0, 0)
    assert parse_well("h12") == (7, 11)
    assert parse_well("P24") == (15, 23)
    assert parse_well("B03") == (1, 2)

    with pytest.raises(ValueError):
        parse_well("12A")


def test_column_index_is_forward_column_major() -> None:
    assert column_index(0, 0, 1, 8, 12) == 0
    assert column_index(7, 0, 1, 8, 12) == 7
    assert column_index(0, 1, 1, 8, 12) == 8
    assert column_index(7, 11, 1, 8, 12) == 95


def test_inverse_rows_index_runs_from_last_well() -> None:
    assert inverse_rows_index(0, 0, 1, 8, 12) == 95
    assert inverse_rows_index(0, 1, 1, 8, 12) == 94
    assert inverse_rows_index(7, 11, 1, 8, 12) == 0


def test_inverse_rows_index_groups_scaled_blocks() -> None:
    assert inverse_rows_index(0, 0, 2, 16, 24) == 95
    assert inverse_rows_index(1, 1, 2, 16, 24) == 95
    assert inverse_rows_index(0, 2, 2, 16, 24) == 94


def test_quadrant_index_orders_by_quadrant_then_column() -> None:
    assert quadrant_index(0, 0, 2, 16, 24) == 0
    assert quadrant_index(2, 0, 2, 16, 24) == 1
    assert quadrant_index(0, 2, 2, 16, 24) == 8
    assert quadrant_index(1, 0, 2, 16, 24) == 96
    assert quadrant_index(0, 1, 2, 16, 24) == 192
    assert quadrant_index(1, 1, 2, 16, 24) == 288


def test_position_index_dispatches_on_order_name() -> None:
    assert position_index("B1", "column") == 1
    assert position_index("B1", "inverse_rows") == 83
    assert position_index("B1", "quadrant", scale=2, height=16, width=24) == 96

    with pytest.raises(ValueError, match="Unknown well order"):
        position_index("A1", "diagonal")


def test_position_index_rejects_wells_outside_plate() -> None:
    with pytest.raises(ValueError, match="outside"):
        position_index("I1", "column")


def test_validate_geometry_rejects_bad_dimensions() -> None:
    validate_geometry(16, 24, 2)

    with pytest.raises(ValueError):
        validate_geometry(0, 12, 1)
    with pytest.raises(ValueError):
        validate_geometry(8, 12, 0)
    with pytest.raises(ValueError):
        validate_geometry(8, 12, 5)
