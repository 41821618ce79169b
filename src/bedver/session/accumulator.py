"""Operator-side scan accumulator.

Collects (bed, labware) scans for one verification session, runs the single
asynchronous validation round trip and gates the robot "start" action. The
state lives in an explicit :class:`ScanSession` so that several operators can
run independent sessions side by side.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol
from uuid import uuid4

from bedver.session.client import StartRejectedError, VerificationTransportError

logger = logging.getLogger(__name__)

SUCCESS_NOTICE = "No problems detected!"
TRANSPORT_FAILURE_NOTICE = (
    "The beds could not be validated. There may be network issues, "
    "or problems with the labware service."
)


class SessionState(str, Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    VALIDATING = "validating"
    READY = "ready"
    REJECTED = "rejected"


class ValidationInFlightError(Exception):
    """Raised when a validation is requested while another is still pending."""


class StartNotAllowedError(Exception):
    """Raised when "start" is attempted outside the ready state."""


class Verifier(Protocol):
    async def verify(self, robot_barcode: str, bed_labwares: dict[str, list[str]]) -> Mapping[str, Any]: ...


class Starter(Protocol):
    async def start(
        self,
        robot_barcode: str,
        bed_labwares: dict[str, list[str]],
        *,
        actor: str,
        session_id: str,
    ) -> Mapping[str, Any]: ...


@dataclass(slots=True)
class ScanSession:
    """Ephemeral state of one operator's scan-validate-confirm cycle."""

    session_id: str = field(default_factory=lambda: str(uuid4()))
    robot_barcode: str = ""
    beds: dict[str, list[str]] = field(default_factory=dict)
    state: SessionState = SessionState.IDLE
    flagged_beds: set[str] = field(default_factory=set)
    notice: str = ""
    notice_level: str = ""
    generation: int = 0
    in_flight: bool = False

    @property
    def start_enabled(self) -> bool:
        return self.state is SessionState.READY

    def bed_labwares(self) -> dict[str, list[str]]:
        """Copy of the bed -> labware mapping for a verification request."""
        return {bed_id: list(barcodes) for bed_id, barcodes in self.beds.items()}


class ScanAccumulator:
    """Explicit state machine over a :class:`ScanSession`."""

    def __init__(self, session: ScanSession, verifier: Verifier) -> None:
        self.session = session
        self._verifier = verifier

    def scan_labware(self, bed_id: str, barcode: str) -> bool:
        """Record ``barcode`` on ``bed_id``; True when the bed's list changed."""
        bed_key = bed_id.strip()
        value = barcode.strip()
        if not bed_key or not value:
            return False

        barcodes = self.session.beds.setdefault(bed_key, [])
        added = value not in barcodes
        if added:
            barcodes.append(value)
        self._invalidate(bed_key)
        return added

    def scan_robot(self, robot_barcode: str) -> None:
        self.session.robot_barcode = robot_barcode.strip()

    def remove_entry(self, bed_id: str, barcode: str) -> bool:
        """Retract a mis-scan; an emptied bed is cleared entirely."""
        bed_key = bed_id.strip()
        value = barcode.strip()
        barcodes = self.session.beds.get(bed_key)
        if not barcodes or value not in barcodes:
            return False

        barcodes.remove(value)
        if not barcodes:
            del self.session.beds[bed_key]
        self._invalidate(bed_key)
        return True

    async def request_validation(self) -> SessionState:
        """Run the verification round trip and apply its verdict."""
        session = self.session
        if session.in_flight:
            raise ValidationInFlightError(f"Session {session.session_id} is already validating")

        session.state = SessionState.VALIDATING
        session.in_flight = True
        generation = session.generation
        try:
            response = await self._verifier.verify(session.robot_barcode, session.bed_labwares())
        except VerificationTransportError as exc:
            if generation != session.generation:
                return self._discard_stale()
            logger.warning("validation_transport_failed session_id=%s error=%s", session.session_id, exc)
            session.state = SessionState.REJECTED
            self._notify(TRANSPORT_FAILURE_NOTICE, "danger")
            return session.state
        except BaseException:
            # Abandoned or failed round trip: keep the scans, drop the verdict.
            session.state = SessionState.COLLECTING if session.beds else SessionState.IDLE
            raise
        finally:
            session.in_flight = False

        if generation != session.generation:
            return self._discard_stale()
        return self._apply_response(response)

    async def start(self, starter: Starter, *, actor: str) -> Mapping[str, Any]:
        """Confirm the verified layout; only allowed while ready.

        A completed start ends the session and resets the accumulator.
        """
        session = self.session
        if session.state is not SessionState.READY:
            raise StartNotAllowedError(f"Cannot start robot while session is {session.state.value}")

        try:
            outcome = await starter.start(
                session.robot_barcode,
                session.bed_labwares(),
                actor=actor,
                session_id=session.session_id,
            )
        except StartRejectedError as exc:
            session.state = SessionState.REJECTED
            self._notify(f"There were problems: {exc}", "danger")
            raise
        except VerificationTransportError:
            self._notify("The robot could not be started. Check the transitions before retrying.", "danger")
            raise

        logger.info("robot_started session_id=%s actor=%s", session.session_id, actor)
        self.reset()
        return outcome

    def reset(self) -> None:
        """Abandon the session; nothing was persisted so nothing is undone."""
        self.session = ScanSession()

    def _apply_response(self, response: Mapping[str, Any]) -> SessionState:
        session = self.session
        if not session.beds:
            session.state = SessionState.IDLE
            session.flagged_beds.clear()
            self._notify("", "")
            return session.state

        if bool(response.get("valid")):
            session.state = SessionState.READY
            session.flagged_beds.clear()
            self._notify(SUCCESS_NOTICE, "success")
            return session.state

        beds = response.get("beds")
        verdicts = beds if isinstance(beds, Mapping) else {}
        session.flagged_beds = {str(bed_id) for bed_id, ok in verdicts.items() if not ok}
        session.state = SessionState.REJECTED
        self._notify(f"There were problems: {response.get('message', '')}", "danger")
        return session.state

    def _discard_stale(self) -> SessionState:
        logger.info("validation_result_discarded session_id=%s", self.session.session_id)
        self.session.state = SessionState.COLLECTING if self.session.beds else SessionState.IDLE
        return self.session.state

    def _invalidate(self, bed_id: str) -> None:
        session = self.session
        session.generation += 1
        session.flagged_beds.discard(bed_id)
        session.state = SessionState.COLLECTING if session.beds else SessionState.IDLE
        self._notify("", "")

    def _notify(self, message: str, level: str) -> None:
        self.session.notice = message
        self.session.notice_level = level
