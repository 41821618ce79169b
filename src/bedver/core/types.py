"""Canonical domain types shared across verification layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class VerificationStatus(str, Enum):
    """Outcome category of one verification call."""

    PASSED = "passed"
    FAILED = "failed"
    NOTHING_TO_VALIDATE = "nothing_to_validate"
    MISCONFIGURED = "misconfigured"


@dataclass(slots=True)
class BedVerdict:
    """Rule evaluation result for a single bed."""

    bed_id: str
    label: str
    valid: bool = True
    errors: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def formatted_message(self) -> str:
        return f"{self.label} - {'; '.join(self.errors)}"


@dataclass(slots=True)
class VerificationResult:
    """Transient verdict returned to the operator surface."""

    status: VerificationStatus
    beds: dict[str, bool] = field(default_factory=dict)
    message: str = ""
    relationships: dict[str, bool] = field(default_factory=dict)
    verdicts: dict[str, BedVerdict] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return self.status is VerificationStatus.PASSED

    def to_payload(self) -> dict[str, Any]:
        """Serialize into the verification response contract."""
        payload: dict[str, Any] = {
            "valid": self.valid,
            "beds": dict(self.beds),
            "message": self.message,
            "status": self.status.value,
        }
        if self.relationships:
            payload["relationships"] = dict(self.relationships)
        errors = {bed_id: list(verdict.errors) for bed_id, verdict in self.verdicts.items() if verdict.errors}
        if errors:
            payload["errors"] = errors
        return payload


@dataclass(slots=True)
class ScanSet:
    """Normalised scan submission: robot barcode plus bed -> ordered barcodes."""

    robot_barcode: str
    bed_labwares: dict[str, list[str]] = field(default_factory=dict)

    def barcodes(self) -> list[str]:
        """Every distinct scanned labware barcode in submission order."""
        seen: list[str] = []
        for barcodes in self.bed_labwares.values():
            for barcode in barcodes:
                if barcode not in seen:
                    seen.append(barcode)
        return seen

    def is_empty(self) -> bool:
        return not any(self.bed_labwares.values())


@dataclass(slots=True)
class TransitionOutcome:
    """Per-bed result of a confirmed robot start."""

    bed_id: str
    labware_barcode: str
    target_state: str
    status: str
    reason: str = ""
    at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict[str, Any]:
        return {
            "bed_id": self.bed_id,
            "labware_barcode": self.labware_barcode,
            "target_state": self.target_state,
            "status": self.status,
            "reason": self.reason,
            "at": self.at.isoformat(),
        }
