"""Topology configuration loader.

Robot topologies are file-based (JSON) and validated in full when loaded, so a
malformed deployment fails at startup instead of in the middle of a
verification session.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bedver.topology.models import RobotConfig, Topology

logger = logging.getLogger(__name__)


class TopologyConfigError(RuntimeError):
    """Raised when the robot topology cannot be loaded or is inconsistent."""


def _read_json(path: Path) -> dict[str, Any]:
    """Read and validate the JSON object from disk.

    Raises:
        TopologyConfigError: If the file is missing, malformed, or not a JSON object.
    """

    try:
        raw_content = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise TopologyConfigError(f"Topology config file not found: {path}") from exc

    try:
        payload = json.loads(raw_content)
    except json.JSONDecodeError as exc:
        raise TopologyConfigError(f"Invalid JSON in topology config file: {path}") from exc

    if not isinstance(payload, dict):
        raise TopologyConfigError(f"Topology config root must be a JSON object: {path}")

    return payload


def parse_robot(robot_id: str, raw: object) -> RobotConfig:
    """Build one :class:`RobotConfig` from its JSON section.

    ``beds`` is an ordered object keyed by bed barcode; the key becomes the bed id.
    """
    if not isinstance(raw, dict):
        raise TopologyConfigError(f"Invalid robot section '{robot_id}'; expected JSON object")

    beds = raw.get("beds")
    if not isinstance(beds, dict):
        raise TopologyConfigError(f"Invalid 'beds' section for robot '{robot_id}'; expected JSON object")

    bed_list: list[dict[str, Any]] = []
    for bed_id, bed in beds.items():
        if not isinstance(bed, dict):
            raise TopologyConfigError(f"Invalid bed '{bed_id}' for robot '{robot_id}'; expected JSON object")
        bed_list.append({**bed, "bed_id": bed_id})

    try:
        return RobotConfig.model_validate({**raw, "robot_id": robot_id, "beds": bed_list})
    except ValidationError as exc:
        raise TopologyConfigError(f"Invalid configuration for robot '{robot_id}': {exc}") from exc


def parse_topology(data: dict[str, Any]) -> Topology:
    """Validate every robot in an already decoded topology document."""
    robots = data.get("robots")
    if not isinstance(robots, dict) or not robots:
        raise TopologyConfigError("Topology config must declare a non-empty 'robots' object")

    return Topology(robots={robot_id: parse_robot(robot_id, raw) for robot_id, raw in robots.items()})


def load_topology(config_path: str | Path) -> Topology:
    """Load robot topologies from a JSON file.

    Raises:
        TopologyConfigError: If the file is unreadable or any robot is malformed.
    """

    path = Path(config_path)
    topology = parse_topology(_read_json(path))
    logger.info("topology_loaded path=%s robots=%d", path, len(topology.robots))
    return topology
