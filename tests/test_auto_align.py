"""Tests for the auto-align column reflow."""

import math

from board_core.auto_align import AlignOptions, auto_align, cluster_columns

from conftest import make_item


def _by_id(items):
    return {item.id: item for item in items}


def test_empty_board_is_a_no_op():
    assert auto_align([]) == []


def test_distant_items_form_distinct_columns():
    items = [
        make_item("c", 1200, 40, 200, 100),
        make_item("a", 0, 300, 200, 100),
        make_item("b", 600, 10, 200, 100),
    ]
    result = _by_id(auto_align(items))

    assert [c.item_ids for c in cluster_columns(items)] == [["a"], ["b"], ["c"]]
    # Packed left to right: 24, then 24 + 200 + 24, ...
    assert result["a"].position.x == 24
    assert result["b"].position.x == 248
    assert result["c"].position.x == 472
    assert all(item.position.y == 24 for item in result.values())


def test_coincident_centers_stack_in_one_column():
    items = [
        make_item("b", 0, 50, 200, 100),
        make_item("a", 0, 0, 200, 100),
        make_item("c", 0, 400, 200, 150),
    ]
    result = auto_align(items)
    assert len(cluster_columns(items)) == 1

    ordered = sorted(result, key=lambda item: item.position.y)
    assert [item.id for item in ordered] == ["a", "b", "c"]
    for upper, lower in zip(ordered, ordered[1:]):
        assert lower.position.y >= upper.position.y + upper.size.h + 8
    assert {item.position.x for item in result} == {24}


def test_clustering_threshold_boundary():
    # (200 + 200 + 24) / 4 == 106
    joined = [make_item("a", 0, 0, 200, 100), make_item("b", 106, 200, 200, 100)]
    split = [make_item("a", 0, 0, 200, 100), make_item("b", 107, 200, 200, 100)]

    assert len(cluster_columns(joined)) == 1
    assert len(cluster_columns(split)) == 2


def test_narrow_items_are_centered_in_wide_column():
    items = [make_item("wide", 0, 0, 300, 100), make_item("narrow", 60, 200, 180, 100)]
    result = _by_id(auto_align(items))

    assert result["wide"].position.x == 24
    # Column center 24 + 150 = 174; narrow item is 180 wide
    assert result["narrow"].position.x == 84
    assert result["narrow"].position.y == 24 + 100 + 8


def test_locked_items_keep_geometry():
    pinned = make_item("pinned", 500, 500, 50, 50, locked=True)
    items = [make_item("a", 100, 100, 200, 100), pinned]
    result = _by_id(auto_align(items))

    assert result["pinned"] == pinned
    assert (result["a"].position.x, result["a"].position.y) == (24, 24)


def test_measured_heights_override_stored_heights():
    items = [make_item("a", 0, 0, 200, 100), make_item("b", 0, 200, 200, 100)]
    result = _by_id(auto_align(items, measured_heights={"a": 300, "ghost": 10}))

    assert result["a"].size.h == 300
    assert result["b"].position.y == 24 + 300 + 8


def test_invalid_numbers_fall_back_to_defaults():
    items = [
        make_item("tiny", 0, 0, 10, 10),
        make_item("broken", math.nan, 500, math.inf, math.nan),
    ]
    result = _by_id(auto_align(items, measured_heights={"tiny": math.nan}))

    assert (result["tiny"].size.w, result["tiny"].size.h) == (120, 90)
    assert (result["broken"].size.w, result["broken"].size.h) == (240, 180)
    assert all(math.isfinite(item.position.x) for item in result.values())


def test_realigning_is_stable():
    items = [
        make_item("a", 0, 0, 240, 180),
        make_item("b", 15, 260, 200, 120),
        make_item("c", 420, 30, 240, 180),
        make_item("d", 410, 400, 130, 95),
        make_item("e", 900, 900, 260, 200),
    ]
    first = auto_align(items)
    second = auto_align(first)

    assert [i.model_dump() for i in first] == [i.model_dump() for i in second]
    assert [c.item_ids for c in cluster_columns(first)] == [["a", "b"], ["c", "d"], ["e"]]


def test_result_is_sorted_by_id():
    items = [make_item("z", 0, 0), make_item("m", 500, 0), make_item("a", 1000, 0)]
    assert [item.id for item in auto_align(items)] == ["a", "m", "z"]


def test_vertical_gap_follows_horizontal_gap():
    assert AlignOptions().vertical_gap == 8
    assert AlignOptions(horizontal_gap=30).vertical_gap == 10
    assert AlignOptions(horizontal_gap=30, vertical_gap=2).vertical_gap == 2

    items = [make_item("a", 0, 0, 200, 100), make_item("b", 0, 150, 200, 100)]
    result = _by_id(auto_align(items, options=AlignOptions(horizontal_gap=30)))
    assert result["b"].position.y == 24 + 100 + 10


def test_custom_options():
    options = AlignOptions(margin_left=0, margin_top=0, horizontal_gap=30, vertical_gap=10)
    items = [make_item("a", 0, 0, 200, 100), make_item("b", 0, 150, 200, 100)]
    result = _by_id(auto_align(items, options=options))

    assert (result["a"].position.x, result["a"].position.y) == (0, 0)
    assert result["b"].position.y == 110
