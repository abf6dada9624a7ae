"""Tests for the FastAPI service."""

import pytest
from fastapi.testclient import TestClient

from board_backend.board_manager import board_manager
from board_backend.main import app


@pytest.fixture
def client():
    board_manager.reset()
    with TestClient(app) as client:
        yield client


def _add_widget(client, **payload):
    payload.setdefault("definition_id", "note")
    response = client.post("/api/widgets", json=payload)
    assert response.status_code == 200
    return response.json()["widget"]


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_board_state_shape(client):
    state = client.get("/api/board").json()
    assert state["board"]["name"] == "Default Board"
    assert state["board"]["layout_mode"] == "grid"
    assert state["widgets"] == []
    assert state["drag"] is None


def test_create_and_move_widget(client):
    client.patch("/api/board", json={"layout_mode": "free"})
    widget = _add_widget(client, state={"text": "hi"})
    assert widget["position"] == {"x": 20, "y": 20}

    response = client.post(f"/api/widgets/{widget['id']}/move", json={"dx": 5, "dy": 7})
    body = response.json()
    assert body["success"] is True
    assert body["item"]["position"] == {"x": 25, "y": 27}

    stored = client.get(f"/api/widgets/{widget['id']}").json()["widget"]
    assert stored["position"] == {"x": 25, "y": 27}
    assert stored["state"] == {"text": "hi"}


def test_invalid_widget_geometry_keeps_board_readable(client):
    # NaN is not valid JSON for the client encoder, so send the raw body
    body = (
        '{"definition_id": "note", "position": {"x": NaN, "y": -5},'
        ' "size": {"w": -50, "h": 0}}'
    )
    created = client.post("/api/widgets", content=body, headers={"Content-Type": "application/json"})
    assert created.status_code == 200
    widget = created.json()["widget"]
    assert widget["position"] == {"x": 0, "y": 0}
    assert widget["size"] == {"w": 1, "h": 1}

    state = client.get("/api/board")
    assert state.status_code == 200
    assert state.json()["widgets"][0]["position"] == {"x": 0, "y": 0}


def test_grid_board_snaps_moves(client):
    widget = _add_widget(client, position={"x": 0, "y": 0})
    body = client.post(f"/api/widgets/{widget['id']}/move", json={"dx": 3, "dy": 12}).json()
    assert body["item"]["position"] == {"x": 0, "y": 16}


def test_move_unknown_widget_is_not_an_error(client):
    response = client.post("/api/widgets/missing/move", json={"dx": 1, "dy": 1})
    assert response.status_code == 200
    assert response.json()["success"] is False


def test_locked_widget_reports_no_move(client):
    widget = _add_widget(client)
    client.patch(f"/api/widgets/{widget['id']}", json={"locked": True})
    body = client.post(f"/api/widgets/{widget['id']}/resize", json={"w": 10, "h": 10}).json()
    assert body["success"] is False


def test_unknown_widget_is_404(client):
    assert client.get("/api/widgets/missing").status_code == 404
    assert client.patch("/api/widgets/missing", json={"locked": True}).status_code == 404
    assert client.delete("/api/widgets/missing").status_code == 404


def test_unknown_board_is_404(client):
    assert client.post("/api/boards/missing/activate").status_code == 404
    assert client.delete("/api/boards/missing").status_code == 404


def test_board_lifecycle(client):
    created = client.post("/api/boards", json={"name": "Work", "layout_mode": "free"}).json()["board"]
    assert client.get("/api/board").json()["board"]["id"] == created["id"]

    boards = client.get("/api/boards").json()["boards"]
    assert len(boards) == 2

    renamed = client.patch(f"/api/boards/{created['id']}", params={"name": "Home"}).json()
    assert renamed["board"]["name"] == "Home"

    assert client.delete(f"/api/boards/{created['id']}").json()["success"] is True
    assert len(client.get("/api/boards").json()["boards"]) == 1


def test_pointer_flow(client):
    client.patch("/api/board", json={"layout_mode": "free"})
    widget = _add_widget(client)

    down = client.post("/api/pointer/down", json={"item_id": widget["id"], "pointer_id": 1, "x": 100, "y": 100})
    assert down.json()["success"] is True
    assert client.get("/api/board").json()["drag"]["item_id"] == widget["id"]

    move = client.post("/api/pointer/move", json={"pointer_id": 1, "x": 110, "y": 130}).json()
    assert move["item"]["position"] == {"x": 30, "y": 50}

    foreign = client.post("/api/pointer/move", json={"pointer_id": 2, "x": 500, "y": 500}).json()
    assert foreign["success"] is False

    up = client.post("/api/pointer/up", json={"pointer_id": 1}).json()
    assert up["position"] == {"x": 30, "y": 50}
    assert client.get("/api/board").json()["drag"] is None


def test_pointer_cancel_keeps_position(client):
    client.patch("/api/board", json={"layout_mode": "free"})
    widget = _add_widget(client)
    client.post("/api/pointer/down", json={"item_id": widget["id"], "pointer_id": 1, "x": 0, "y": 0})
    client.post("/api/pointer/move", json={"pointer_id": 1, "x": 10, "y": 0})

    body = client.post("/api/pointer/cancel", json={"pointer_id": 1}).json()
    assert body["position"] == {"x": 30, "y": 20}


def test_auto_align(client):
    first = _add_widget(client, position={"x": 0, "y": 0}, size={"w": 200, "h": 100})
    second = _add_widget(client, position={"x": 10, "y": 300}, size={"w": 200, "h": 100})

    body = client.post("/api/layout/auto-align", json={"heights": {first["id"]: 120}}).json()
    items = {item["id"]: item for item in body["items"]}

    assert items[first["id"]]["position"] == {"x": 24, "y": 24}
    assert items[first["id"]]["size"]["h"] == 120
    assert items[second["id"]]["position"]["y"] == 24 + 120 + 8


def test_auto_align_during_drag_conflicts(client):
    widget = _add_widget(client)
    client.post("/api/pointer/down", json={"item_id": widget["id"], "pointer_id": 1, "x": 0, "y": 0})
    response = client.post("/api/layout/auto-align", json={})
    assert response.status_code == 409


def test_locked_board(client):
    widget = _add_widget(client)
    client.patch("/api/board", json={"locked": True})

    down = client.post("/api/pointer/down", json={"item_id": widget["id"], "pointer_id": 1, "x": 0, "y": 0})
    assert down.json()["success"] is False
    assert client.post("/api/layout/auto-align", json={}).json()["items"] == []


def test_toggle_mode(client):
    board = client.post("/api/board/toggle-mode").json()["board"]
    assert board["layout_mode"] == "free"


def test_hit_test(client):
    widget = _add_widget(client)
    hit = client.get("/api/layout/hit-test", params={"x": 30, "y": 30}).json()
    assert hit["item"]["id"] == widget["id"]

    miss = client.get("/api/layout/hit-test", params={"x": 5000, "y": 5000}).json()
    assert miss["item"] is None


def test_layout_is_sorted(client):
    ids = [_add_widget(client)["id"] for _ in range(3)]
    items = client.get("/api/layout").json()["items"]
    assert [item["id"] for item in items] == sorted(ids)


def test_validate_and_summary(client):
    _add_widget(client)
    _add_widget(client)

    validation = client.get("/api/board/validate").json()
    assert validation["summary"]["info"] == 1
    assert validation["summary"]["valid"] is True

    summary = client.get("/api/board/summary").json()["summary"]
    assert summary["total_widgets"] == 2
    assert summary["widgets_by_definition"] == {"note": 2}


def test_layout_modes_enum(client):
    assert client.get("/api/enums/layout-modes").json() == {"layout_modes": ["grid", "free"]}


def test_websocket_receives_board_updates(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}

        _add_widget(client)
        message = websocket.receive_json()
        assert message["type"] == "board_updated"
        assert message["board_id"] == board_manager.board.id
