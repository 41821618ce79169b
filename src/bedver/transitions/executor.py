"""Transition Executor: one state change per validated bed on robot start."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from uuid import uuid4

from bedver.core.types import ScanSet, TransitionOutcome, VerificationResult
from bedver.directory.client import LabwareSnapshot
from bedver.sm.manager import TransitionLedger
from bedver.topology.models import RobotConfig
from bedver.transitions.service import StateTransitionService, TransitionServiceError
from bedver.validation.bed import resolved_labware

logger = logging.getLogger(__name__)


class TransitionNotAllowedError(Exception):
    """Raised when a start is requested without a passing verification."""


class TransitionExecutor:
    """Issues independent per-bed transitions; no cross-bed rollback, no retry."""

    def __init__(self, service: StateTransitionService, ledger: TransitionLedger) -> None:
        self._service = service
        self._ledger = ledger

    async def execute(
        self,
        robot: RobotConfig,
        verification: VerificationResult,
        scans: ScanSet,
        labware: Mapping[str, LabwareSnapshot | None],
        *,
        actor: str,
        session_id: str,
    ) -> list[TransitionOutcome]:
        """Transition every bed with a target state and a single resolved labware.

        Raises:
            TransitionNotAllowedError: If ``verification`` did not pass.
        """
        if not verification.valid:
            raise TransitionNotAllowedError(
                f"Robot {robot.name} cannot start: layout is {verification.status.value}"
            )

        reason = f"started by robot {robot.name}"
        outcomes: list[TransitionOutcome] = []
        for bed in robot.beds:
            if not bed.transitions:
                continue
            target_state = str(bed.target_state)
            labware_item = resolved_labware(scans.bed_labwares.get(bed.bed_id, []), labware)
            if labware_item is None:
                continue

            record_id = str(uuid4())
            claimed = self._ledger.claim(
                record_id=record_id,
                session_id=session_id,
                robot_id=robot.robot_id,
                bed_id=bed.bed_id,
                labware_barcode=labware_item.barcode,
                target_state=target_state,
                actor=actor,
            )
            if not claimed:
                logger.info(
                    "transition_skipped session_id=%s bed_id=%s labware=%s",
                    session_id,
                    bed.bed_id,
                    labware_item.barcode,
                )
                outcomes.append(
                    TransitionOutcome(
                        bed_id=bed.bed_id,
                        labware_barcode=labware_item.barcode,
                        target_state=target_state,
                        status="skipped",
                        reason="already issued in this session",
                    )
                )
                continue

            outcome = await self._transition_bed(
                bed.bed_id, labware_item, target_state, actor=actor, reason=reason
            )
            self._ledger.resolve(record_id, status=outcome.status, notes=outcome.reason)
            outcomes.append(outcome)

        return outcomes

    async def _transition_bed(
        self,
        bed_id: str,
        labware_item: LabwareSnapshot,
        target_state: str,
        *,
        actor: str,
        reason: str,
    ) -> TransitionOutcome:
        try:
            result = await self._service.transition(labware_item.identifier, target_state, actor, reason)
        except TransitionServiceError as exc:
            logger.warning(
                "transition_failed bed_id=%s labware=%s error=%s", bed_id, labware_item.barcode, exc
            )
            return TransitionOutcome(
                bed_id=bed_id,
                labware_barcode=labware_item.barcode,
                target_state=target_state,
                status="failed",
                reason=str(exc),
            )

        status = "transitioned" if result.success else "failed"
        logger.info(
            "transition_resolved bed_id=%s labware=%s target_state=%s status=%s",
            bed_id,
            labware_item.barcode,
            target_state,
            status,
        )
        return TransitionOutcome(
            bed_id=bed_id,
            labware_barcode=labware_item.barcode,
            target_state=target_state,
            status=status,
            reason=result.reason,
        )
