from collections.abc import Callable
from pathlib import Path

import pytest

from bedver.directory.client import InMemoryLabwareDirectory, LabwareSnapshot, TransferRecord
from bedver.sm.manager import TransitionLedger
from bedver.topology.loader import parse_robot, parse_topology
from bedver.topology.models import RobotConfig, Topology

REPO_ROOT = Path(__file__).resolve().parents[1]

BRAVO = {
    "name": "Bravo",
    "beds": {
        "B1": {"purpose": "P", "states": ["pending"], "target_state": "started"},
    },
}

SPLITTER = {
    "name": "Quad Splitter",
    "robot_barcode": "RB-SPLIT",
    "beds": {
        "P1": {"label": "Parent bed", "purpose": "384 Plate", "states": ["passed"]},
        "C1": {"purpose": "96 Plate", "states": ["pending"], "target_state": "passed"},
        "C2": {"purpose": "96 Plate", "states": ["pending"], "target_state": "passed"},
        "C3": {"purpose": "96 Plate", "states": ["pending"], "target_state": "passed"},
        "C4": {"purpose": "96 Plate", "states": ["pending"], "target_state": "passed"},
    },
    "layout": {
        "kind": "splitting",
        "well_order": "quadrant",
        "plate": {"rows": 16, "columns": 24, "scale": 2},
        "relationships": [{"parent": "P1", "children": ["C1", "C2", "C3", "C4"]}],
    },
}

LINKED = {
    "name": "Linked Bravo",
    "beds": {
        "BP": {"label": "Source", "purpose": "Stock", "states": ["passed"]},
        "BC": {
            "label": "Destination",
            "purpose": "Shear",
            "states": ["pending"],
            "target_state": "started",
            "parent": "BP",
        },
    },
}


@pytest.fixture
def bravo() -> RobotConfig:
    return parse_robot("bravo", BRAVO)


@pytest.fixture
def splitter() -> RobotConfig:
    return parse_robot("splitter", SPLITTER)


@pytest.fixture
def linked() -> RobotConfig:
    return parse_robot("linked", LINKED)


@pytest.fixture
def topology() -> Topology:
    return parse_topology({"robots": {"bravo": BRAVO, "splitter": SPLITTER, "linked": LINKED}})


@pytest.fixture
def make_labware() -> Callable[..., LabwareSnapshot]:
    def _make(
        barcode: str,
        purpose: str = "P",
        state: str = "pending",
        parents: tuple[str, ...] = (),
        transfers: dict[str, str] | None = None,
    ) -> LabwareSnapshot:
        return LabwareSnapshot(
            identifier=f"uuid-{barcode}",
            barcode=barcode,
            purpose=purpose,
            state=state,
            parents=parents,
            transfers=tuple(
                TransferRecord(source_well=well, target_barcode=target)
                for well, target in (transfers or {}).items()
            ),
        )

    return _make


@pytest.fixture
def quad_labware(make_labware) -> list[LabwareSnapshot]:
    """A 384 parent stamped into four 96 children, transfers listed out of order."""
    parent = make_labware(
        "DN384",
        purpose="384 Plate",
        state="passed",
        transfers={
            "B2": "DN4",
            "A3": "DN1",
            "A2": "DN3",
            "B1": "DN2",
            "A1": "DN1",
            "D2": "DN4",
        },
    )
    children = [make_labware(f"DN{i}", purpose="96 Plate", parents=("DN384",)) for i in range(1, 5)]
    return [parent, *children]


@pytest.fixture
def quad_directory(quad_labware) -> InMemoryLabwareDirectory:
    return InMemoryLabwareDirectory(quad_labware)


@pytest.fixture
def ledger(tmp_path: Path) -> TransitionLedger:
    return TransitionLedger(f"sqlite:///{tmp_path / 'ledger.db'}")
