"""CLI entrypoint for topology checks and serving the verification API."""

from __future__ import annotations

import argparse
import json
import sys

from bedver.core.config import Settings
from bedver.topology.loader import TopologyConfigError, load_topology
from bedver.topology.models import SplittingLayout


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Robot bed verification CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check-config", help="Load a topology file and report its robots")
    check.add_argument("path", nargs="?", default=None, help="Topology JSON (defaults to BEDVER_TOPOLOGY_PATH)")

    serve = sub.add_parser("serve", help="Run the verification API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def check_config(path: str | None) -> int:
    config_path = path or Settings().topology_path
    try:
        topology = load_topology(config_path)
    except TopologyConfigError as exc:
        print(json.dumps({"path": config_path, "valid": False, "error": str(exc)}, ensure_ascii=False))
        return 1

    robots = []
    for robot in topology.robots.values():
        entry: dict[str, object] = {
            "robot_id": robot.robot_id,
            "name": robot.name,
            "kind": robot.layout.kind,
            "beds": len(robot.beds),
        }
        if isinstance(robot.layout, SplittingLayout):
            entry["relationships"] = len(robot.layout.relationships)
        robots.append(entry)
    print(json.dumps({"path": config_path, "valid": True, "robots": robots}, ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "check-config":
        return check_config(args.path)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("bedver_api.main:build_app", factory=True, host=args.host, port=args.port)
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
