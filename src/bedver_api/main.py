"""FastAPI interface for bed verification with request-scoped dependency access."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from bedver.core.config import Settings
from bedver.core.types import ScanSet, VerificationResult
from bedver.directory.client import DirectoryError, HttpLabwareDirectory, LabwareDirectory
from bedver.intake.processor import ScanIntake
from bedver.sm.manager import TransitionLedger
from bedver.topology.loader import load_topology
from bedver.topology.models import RobotConfig, SplittingLayout, Topology
from bedver.transitions.executor import TransitionExecutor
from bedver.transitions.service import HttpStateTransitionService, StateTransitionService
from bedver.validation.robot import RobotValidator

logger = logging.getLogger(__name__)


class VerificationIn(BaseModel):
    """Scans submitted by the operator surface."""

    robot_barcode: str | None = None
    bed_labwares: dict[str, list[str] | None] = Field(default_factory=dict)


class StartIn(VerificationIn):
    """Operator confirmation of a verified layout."""

    actor: str = Field(min_length=1)
    session_id: str = Field(min_length=1)


def _robot_or_404(request: Request, robot_id: str) -> RobotConfig:
    robot = request.app.state.topology.get(robot_id)
    if robot is None:
        raise HTTPException(status_code=404, detail=f"Robot '{robot_id}' is not configured")
    return robot


def _robot_summary(robot: RobotConfig) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "robot_id": robot.robot_id,
        "name": robot.name,
        "kind": robot.layout.kind,
        "require_robot": robot.require_robot,
        "beds": [
            {
                "bed_id": bed.bed_id,
                "label": bed.label,
                "purpose": bed.purpose,
                "states": list(bed.states),
                "target_state": bed.target_state,
                "parent": bed.parent,
            }
            for bed in robot.beds
        ],
    }
    if isinstance(robot.layout, SplittingLayout):
        summary["relationships"] = [
            {"parent": rel.parent, "children": list(rel.children)} for rel in robot.layout.relationships
        ]
    return summary


async def _verify(
    request: Request,
    robot: RobotConfig,
    body: VerificationIn,
) -> tuple[ScanSet, dict[str, Any], VerificationResult]:
    app_state = request.app.state
    try:
        scans = app_state.intake.ingest(body.model_dump(exclude={"actor", "session_id"}))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        labware = await app_state.directory.resolve(scans.barcodes())
    except DirectoryError as exc:
        logger.warning("labware_lookup_failed robot_id=%s error=%s", robot.robot_id, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    result = app_state.validator.validate(robot, scans, labware)
    return scans, labware, result


def build_app(
    *,
    settings: Settings | None = None,
    topology: Topology | None = None,
    directory: LabwareDirectory | None = None,
    transition_service: StateTransitionService | None = None,
    ledger: TransitionLedger | None = None,
) -> FastAPI:
    """Build FastAPI app with an explicit dependency container in ``app.state``."""
    settings = settings or Settings()

    app = FastAPI(title="Bed Verification API", version="0.1.0")

    app.state.settings = settings
    app.state.topology = topology or load_topology(settings.topology_path)
    app.state.intake = ScanIntake()
    app.state.validator = RobotValidator()
    app.state.directory = directory or HttpLabwareDirectory(
        base_url=settings.labware_service_url,
        timeout_s=settings.request_timeout_s,
    )
    app.state.ledger = ledger or TransitionLedger(settings.db_url)
    app.state.executor = TransitionExecutor(
        transition_service
        or HttpStateTransitionService(
            base_url=settings.labware_service_url,
            timeout_s=settings.request_timeout_s,
        ),
        app.state.ledger,
    )

    @app.get("/robots")
    def list_robots(request: Request) -> dict[str, object]:
        robots = request.app.state.topology.robots.values()
        return {"items": [_robot_summary(robot) for robot in robots]}

    @app.get("/robots/{robot_id}")
    def get_robot(request: Request, robot_id: str) -> dict[str, Any]:
        return _robot_summary(_robot_or_404(request, robot_id))

    @app.post("/robots/{robot_id}/verify")
    async def verify_robot(request: Request, robot_id: str, body: VerificationIn) -> dict[str, Any]:
        robot = _robot_or_404(request, robot_id)
        _, _, result = await _verify(request, robot, body)
        return result.to_payload()

    @app.post("/robots/{robot_id}/start")
    async def start_robot(request: Request, robot_id: str, body: StartIn) -> dict[str, Any]:
        robot = _robot_or_404(request, robot_id)
        scans, labware, result = await _verify(request, robot, body)
        if not result.valid:
            raise HTTPException(status_code=409, detail=result.message)

        outcomes = await request.app.state.executor.execute(
            robot,
            result,
            scans,
            labware,
            actor=body.actor,
            session_id=body.session_id,
        )
        logger.info(
            "robot_start_processed robot_id=%s session_id=%s transitions=%d",
            robot.robot_id,
            body.session_id,
            len(outcomes),
        )
        return {
            "robot_id": robot.robot_id,
            "session_id": body.session_id,
            "verification": result.to_payload(),
            "transitions": [outcome.to_payload() for outcome in outcomes],
        }

    @app.get("/sessions/{session_id}/transitions")
    def get_session_transitions(request: Request, session_id: str) -> dict[str, object]:
        return {"items": request.app.state.ledger.list_transitions(session_id)}

    return app


__all__ = ["build_app"]
