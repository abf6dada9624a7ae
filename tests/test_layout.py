"""Tests for the layout engine policies."""

import math
import random

import pytest

from board_core.models import Delta, LayoutMode, Point, Size
from board_core.layout import (
    FreeLayoutEngine,
    GridLayoutEngine,
    create_layout_engine,
    from_widget_instances,
    round_half_up,
)
from board_core.models import WidgetInstance

from conftest import make_item


class TestGridLayoutEngine:
    """Tests for grid-snapped placement."""

    def test_snaps_movement_to_grid(self, grid_engine):
        moved = grid_engine.move("a", Delta(dx=8, dy=17))
        assert moved is not None
        assert (moved.position.x, moved.position.y) == (10, 20)

    def test_halves_round_up(self):
        engine = GridLayoutEngine(step=10)
        engine.load([make_item("a", 0, 0)])
        moved = engine.move("a", Delta(dx=5, dy=15))
        assert (moved.position.x, moved.position.y) == (10, 20)

    def test_snapped_result_stays_on_grid_and_near_free_result(self):
        rng = random.Random(7)
        step = 10
        for _ in range(200):
            x = rng.randint(0, 50) * step
            y = rng.randint(0, 50) * step
            dx = rng.uniform(-300, 300)
            dy = rng.uniform(-300, 300)

            engine = GridLayoutEngine(step=step)
            engine.load([make_item("a", x, y)])
            moved = engine.move("a", Delta(dx=dx, dy=dy))

            assert moved.position.x % step == 0
            assert moved.position.y % step == 0
            assert abs(moved.position.x - max(0, x + dx)) <= step
            assert abs(moved.position.y - max(0, y + dy)) <= step

    def test_clamps_to_origin(self, grid_engine):
        moved = grid_engine.move("a", Delta(dx=-100, dy=-3))
        assert (moved.position.x, moved.position.y) == (0, 0)

    def test_rejects_non_positive_step(self):
        with pytest.raises(ValueError):
            GridLayoutEngine(step=0)


class TestFreeLayoutEngine:
    """Tests for unconstrained placement."""

    def test_moves_without_snapping_and_hit_test_works(self, free_engine):
        moved = free_engine.move("a", Delta(dx=5, dy=7))
        assert (moved.position.x, moved.position.y) == (15, 17)

        hit = free_engine.hit_test(Point(x=20, y=20))
        assert hit is not None
        assert hit.id == "a"

    def test_floors_fractional_positions(self, free_engine):
        moved = free_engine.move("a", Delta(dx=0.7, dy=-0.2))
        assert (moved.position.x, moved.position.y) == (10, 9)

    def test_never_negative(self):
        rng = random.Random(3)
        engine = FreeLayoutEngine()
        engine.load([make_item("a", 5, 5)])
        for _ in range(200):
            moved = engine.move("a", Delta(dx=rng.uniform(-500, 200), dy=rng.uniform(-500, 200)))
            assert moved.position.x >= 0
            assert moved.position.y >= 0

    def test_non_finite_delta_is_ignored(self, free_engine):
        moved = free_engine.move("a", Delta(dx=math.inf, dy=math.nan))
        assert (moved.position.x, moved.position.y) == (10, 10)


class TestSharedBehavior:
    """Behavior common to both policies."""

    def test_unknown_id_is_a_no_op(self, free_engine):
        before = free_engine.serialize()
        assert free_engine.move("missing", Delta(dx=1, dy=1)) is None
        assert free_engine.resize("missing", Size(w=5, h=5)) is None
        assert free_engine.serialize() == before

    @pytest.mark.parametrize("engine_cls", [FreeLayoutEngine, GridLayoutEngine])
    def test_locked_item_is_immutable(self, engine_cls):
        engine = engine_cls()
        engine.load([make_item("a", 16, 16, locked=True)])
        before = engine.serialize()

        assert engine.move("a", Delta(dx=40, dy=40)) is None
        assert engine.resize("a", Size(w=400, h=400)) is None
        assert engine.serialize() == before

    @pytest.mark.parametrize("engine_cls", [FreeLayoutEngine, GridLayoutEngine])
    def test_board_lock_vetoes_moves(self, engine_cls):
        engine = engine_cls(board_locked=True)
        engine.load([make_item("a", 16, 16)])

        assert engine.move("a", Delta(dx=40, dy=40)) is None
        assert engine.resize("a", Size(w=400, h=400)) is None

        engine.board_locked = False
        assert engine.move("a", Delta(dx=40, dy=40)) is not None

    def test_locked_items_still_hit_test_and_serialize(self, free_engine):
        hit = free_engine.hit_test(Point(x=350, y=350))
        assert hit.id == "pinned"
        assert "pinned" in [item.id for item in free_engine.serialize()]

    def test_resize_clamps_to_floor(self, free_engine):
        resized = free_engine.resize("a", Size(w=0, h=-20))
        assert (resized.size.w, resized.size.h) == (1, 1)

        resized = free_engine.resize("a", Size(w=math.nan, h=50))
        assert (resized.size.w, resized.size.h) == (1, 50)

    def test_hit_test_edges_inclusive(self, free_engine):
        assert free_engine.hit_test(Point(x=10, y=10)).id == "a"
        assert free_engine.hit_test(Point(x=110, y=110)).id == "a"
        assert free_engine.hit_test(Point(x=110.5, y=50)) is None
        assert free_engine.hit_test(Point(x=200, y=200)) is None

    def test_serialize_is_deterministic(self):
        items = [make_item("b", 0, 0, 1, 1), make_item("a", 0, 0, 1, 1), make_item("c", 5, 5)]
        first = GridLayoutEngine()
        first.load(items)
        second = GridLayoutEngine()
        second.load(list(reversed(items)))

        assert [item.id for item in first.serialize()] == ["a", "b", "c"]
        assert [i.model_dump() for i in first.serialize()] == [i.model_dump() for i in first.serialize()]
        assert [i.model_dump() for i in first.serialize()] == [i.model_dump() for i in second.serialize()]

    def test_returns_copies(self, free_engine):
        moved = free_engine.move("a", Delta(dx=1, dy=1))
        moved.position.x = 999
        moved.size.w = 999
        stored = free_engine.get("a")
        assert stored.position.x == 11
        assert stored.size.w == 100

    def test_load_repairs_corrupted_geometry(self):
        engine = FreeLayoutEngine()
        engine.load([make_item("a", -5, math.nan, w=math.inf, h=0)])
        item = engine.get("a")
        assert (item.position.x, item.position.y) == (0, 0)
        assert (item.size.w, item.size.h) == (1, 1)

    def test_load_replaces_working_set(self, free_engine):
        free_engine.load([make_item("z", 0, 0)])
        assert free_engine.item_ids == ["z"]
        assert "a" not in free_engine
        assert len(free_engine) == 1


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(0.49) == 0


def test_create_layout_engine_selects_policy():
    grid = create_layout_engine("grid")
    assert isinstance(grid, GridLayoutEngine)
    assert grid.mode == LayoutMode.GRID
    assert grid.step == 8

    free = create_layout_engine(LayoutMode.FREE, board_locked=True)
    assert isinstance(free, FreeLayoutEngine)
    assert free.board_locked


def test_from_widget_instances():
    widget = WidgetInstance(
        board_id="board_1",
        definition_id="note",
        state={"text": "hello"},
        position=Point(x=4, y=8),
        size=Size(w=240, h=180),
        locked=True,
    )
    [item] = from_widget_instances([widget])
    assert item.id == widget.id
    assert (item.position.x, item.position.y) == (4, 8)
    assert item.locked
