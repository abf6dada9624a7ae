#!/usr/bin/env python3
"""Widget board CLI - subcommands for driving the board service."""

import argparse
import json
import logging
import os
import sys
import urllib.request
import urllib.error
import urllib.parse

API_BASE = os.environ.get("WIDGET_BOARD_API", "http://127.0.0.1:8765/api")


def _json_out(data):
    print(json.dumps(data))
    sys.exit(0)


def _api_request(method, endpoint, data=None, params=None):
    """Make a request to the widget board backend."""
    url = f"{API_BASE}{endpoint}"

    if params:
        filtered = {k: v for k, v in params.items() if v is not None}
        if filtered:
            url = f"{url}?{urllib.parse.urlencode(filtered)}"

    headers = {"Content-Type": "application/json"}
    body = json.dumps(data).encode() if data is not None else None

    req = urllib.request.Request(url, data=body, headers=headers, method=method)

    try:
        with urllib.request.urlopen(req, timeout=30) as response:
            return json.loads(response.read().decode())
    except urllib.error.HTTPError as e:
        error_body = e.read().decode()
        try:
            error_data = json.loads(error_body)
            _json_out({"status": "error", "error": f"API error: {error_data.get('detail', 'Unknown error')}"})
        except json.JSONDecodeError:
            _json_out({"status": "error", "error": f"API error ({e.code}): {error_body}"})
    except urllib.error.URLError as e:
        _json_out({"status": "error", "error": f"Connection failed: {e.reason}. Is the board service running?"})


def _parse_json_arg(value):
    """Parse a JSON argument or return None."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_heights(value):
    """Parse measured heights given as JSON or as id=height pairs."""
    if not value:
        return {}
    parsed = _parse_json_arg(value)
    if isinstance(parsed, dict):
        return {str(k): float(v) for k, v in parsed.items()}

    heights = {}
    for pair in value.split(","):
        if "=" not in pair:
            continue
        item_id, height = pair.split("=", 1)
        try:
            heights[item_id.strip()] = float(height)
        except ValueError:
            continue
    return heights


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    import uvicorn
    from board_backend.main import app

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(app, host=args.host, port=args.port)


def cmd_health(args):
    _json_out(_api_request("GET", "/health"))


# ── Boards ───────────────────────────────────────────────────────────────────

def cmd_get_board(args):
    _json_out(_api_request("GET", "/board"))


def cmd_list_boards(args):
    _json_out(_api_request("GET", "/boards"))


def cmd_new_board(args):
    _json_out(_api_request("POST", "/boards", data={"name": args.name, "layout_mode": args.layout_mode}))


def cmd_activate(args):
    _json_out(_api_request("POST", f"/boards/{args.board_id}/activate"))


def cmd_toggle_mode(args):
    _json_out(_api_request("POST", "/board/toggle-mode"))


def cmd_lock(args):
    _json_out(_api_request("PATCH", "/board", data={"locked": True}))


def cmd_unlock(args):
    _json_out(_api_request("PATCH", "/board", data={"locked": False}))


# ── Widgets ──────────────────────────────────────────────────────────────────

def cmd_add_widget(args):
    data = {
        "definition_id": args.definition_id,
        "state": _parse_json_arg(args.state) or {},
    }
    if args.x is not None and args.y is not None:
        data["position"] = {"x": args.x, "y": args.y}
    if args.width is not None and args.height is not None:
        data["size"] = {"w": args.width, "h": args.height}
    _json_out(_api_request("POST", "/widgets", data=data))


def cmd_remove_widget(args):
    _json_out(_api_request("DELETE", f"/widgets/{args.widget_id}"))


def cmd_lock_widget(args):
    locked = args.locked == "true"
    _json_out(_api_request("PATCH", f"/widgets/{args.widget_id}", data={"locked": locked}))


# ── Layout ───────────────────────────────────────────────────────────────────

def cmd_move(args):
    _json_out(_api_request("POST", f"/widgets/{args.widget_id}/move", data={"dx": args.dx, "dy": args.dy}))


def cmd_resize(args):
    _json_out(_api_request("POST", f"/widgets/{args.widget_id}/resize", data={"w": args.width, "h": args.height}))


def cmd_hit_test(args):
    _json_out(_api_request("GET", "/layout/hit-test", params={"x": args.x, "y": args.y}))


def cmd_layout(args):
    _json_out(_api_request("GET", "/layout"))


def cmd_auto_align(args):
    _json_out(_api_request("POST", "/layout/auto-align", data={"heights": parse_heights(args.heights)}))


# ── Analysis ─────────────────────────────────────────────────────────────────

def cmd_validate(args):
    _json_out(_api_request("GET", "/board/validate"))


def cmd_summarize(args):
    _json_out(_api_request("GET", "/board/summary"))


# ── Main ─────────────────────────────────────────────────────────────────────

COMMANDS = {
    "serve": cmd_serve,
    "health": cmd_health,
    "get-board": cmd_get_board,
    "list-boards": cmd_list_boards,
    "new-board": cmd_new_board,
    "activate": cmd_activate,
    "toggle-mode": cmd_toggle_mode,
    "lock": cmd_lock,
    "unlock": cmd_unlock,
    "add-widget": cmd_add_widget,
    "remove-widget": cmd_remove_widget,
    "lock-widget": cmd_lock_widget,
    "move": cmd_move,
    "resize": cmd_resize,
    "hit-test": cmd_hit_test,
    "layout": cmd_layout,
    "auto-align": cmd_auto_align,
    "validate": cmd_validate,
    "summarize": cmd_summarize,
}


def build_parser():
    parser = argparse.ArgumentParser(description="Widget board CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # Service
    p = sub.add_parser("serve")
    p.add_argument("--host", default=os.environ.get("WIDGET_BOARD_HOST", "127.0.0.1"))
    p.add_argument("--port", type=int, default=int(os.environ.get("WIDGET_BOARD_PORT", "8765")))
    p.add_argument("--verbose", action="store_true")

    sub.add_parser("health")

    # Boards
    sub.add_parser("get-board")
    sub.add_parser("list-boards")

    p = sub.add_parser("new-board")
    p.add_argument("--name", default="New Board")
    p.add_argument("--layout-mode", choices=["grid", "free"], default="grid")

    p = sub.add_parser("activate")
    p.add_argument("--board-id", required=True)

    sub.add_parser("toggle-mode")
    sub.add_parser("lock")
    sub.add_parser("unlock")

    # Widgets
    p = sub.add_parser("add-widget")
    p.add_argument("--definition-id", required=True)
    p.add_argument("--state", default=None)
    p.add_argument("--x", type=float, default=None)
    p.add_argument("--y", type=float, default=None)
    p.add_argument("--width", type=float, default=None)
    p.add_argument("--height", type=float, default=None)

    p = sub.add_parser("remove-widget")
    p.add_argument("--widget-id", required=True)

    p = sub.add_parser("lock-widget")
    p.add_argument("--widget-id", required=True)
    p.add_argument("--locked", choices=["true", "false"], default="true")

    # Layout
    p = sub.add_parser("move")
    p.add_argument("--widget-id", required=True)
    p.add_argument("--dx", type=float, default=0)
    p.add_argument("--dy", type=float, default=0)

    p = sub.add_parser("resize")
    p.add_argument("--widget-id", required=True)
    p.add_argument("--width", type=float, required=True)
    p.add_argument("--height", type=float, required=True)

    p = sub.add_parser("hit-test")
    p.add_argument("--x", type=float, required=True)
    p.add_argument("--y", type=float, required=True)

    sub.add_parser("layout")

    p = sub.add_parser("auto-align")
    p.add_argument("--heights", default=None, help='JSON object or "id=height,..." pairs')

    # Analysis
    sub.add_parser("validate")
    sub.add_parser("summarize")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    COMMANDS[args.command](args)


if __name__ == "__main__":
    main()
