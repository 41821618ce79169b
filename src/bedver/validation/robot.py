"""Robot-level verification over a topology and a labware snapshot."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from bedver.core.types import BedVerdict, ScanSet, VerificationResult, VerificationStatus
from bedver.directory.client import LabwareSnapshot
from bedver.layout.wells import position_index
from bedver.topology.models import RobotConfig, SplittingLayout
from bedver.validation.bed import resolved_labware, validate_bed

logger = logging.getLogger(__name__)

NOTHING_TO_VALIDATE_MESSAGE = "Nothing to validate"


class SplitPreconditionError(Exception):
    """A splitting relationship cannot be evaluated at all."""

    def __init__(self, bed_id: str, message: str) -> None:
        super().__init__(message)
        self.bed_id = bed_id
        self.message = message


def expected_children(parent: LabwareSnapshot, layout: SplittingLayout) -> list[str]:
    """Downstream labware ordered by the first parent well that feeds them.

    Raises:
        ValueError: If a transfer's source well does not fit the configured plate.
    """
    first_seen: dict[str, int] = {}
    for transfer in parent.transfers:
        index = position_index(
            transfer.source_well,
            layout.well_order,
            scale=layout.plate.scale,
            height=layout.plate.rows,
            width=layout.plate.columns,
        )
        current = first_seen.get(transfer.target_barcode)
        if current is None or index < current:
            first_seen[transfer.target_barcode] = index
    return sorted(first_seen, key=lambda barcode: (first_seen[barcode], barcode))


class RobotValidator:
    """Validates accumulated scans; dispatches on the robot's layout kind."""

    def validate(
        self,
        robot: RobotConfig,
        scans: ScanSet,
        labware: Mapping[str, LabwareSnapshot | None],
    ) -> VerificationResult:
        """Return per-bed verdicts for one verification call.

        Input problems never raise; they become flagged beds. Only a splitting
        relationship that cannot be evaluated yields a ``misconfigured`` result.
        """
        if scans.is_empty():
            return VerificationResult(
                status=VerificationStatus.NOTHING_TO_VALIDATE,
                message=NOTHING_TO_VALIDATE_MESSAGE,
            )

        beds = scans.bed_labwares
        verdicts: dict[str, BedVerdict] = {
            bed.bed_id: validate_bed(bed, beds.get(bed.bed_id, []), labware) for bed in robot.beds
        }
        for bed_id in beds:
            if bed_id not in verdicts:
                unknown = BedVerdict(bed_id=bed_id, label=f"Bed {bed_id}")
                unknown.add_error(f"'{bed_id}' does not appear to be a valid bed barcode.")
                verdicts[bed_id] = unknown

        robot_errors = self._check_robot_barcode(robot, scans.robot_barcode)
        relationships: dict[str, bool] = {}

        if isinstance(robot.layout, SplittingLayout):
            try:
                relationships = self._check_relationships(robot, robot.layout, beds, labware, verdicts)
            except SplitPreconditionError as exc:
                verdicts[exc.bed_id].valid = False
                result = VerificationResult(
                    status=VerificationStatus.MISCONFIGURED,
                    beds={bed_id: verdict.valid for bed_id, verdict in verdicts.items()},
                    message=exc.message,
                    verdicts=verdicts,
                )
                logger.warning(
                    "verification_misconfigured robot_id=%s bed_id=%s message=%s",
                    robot.robot_id,
                    exc.bed_id,
                    exc.message,
                )
                return result
        else:
            self._check_parent_links(robot, beds, labware, verdicts)

        failing = [verdict for verdict in verdicts.values() if not verdict.valid]
        valid = not failing and not robot_errors
        if valid:
            message = f"{robot.name}: all beds verified."
        else:
            message = " ".join([*robot_errors, *(verdict.formatted_message() for verdict in failing)])

        result = VerificationResult(
            status=VerificationStatus.PASSED if valid else VerificationStatus.FAILED,
            beds={bed_id: verdict.valid for bed_id, verdict in verdicts.items()},
            message=message,
            relationships=relationships,
            verdicts=verdicts,
        )
        logger.info(
            "verification_completed robot_id=%s status=%s flagged=%s",
            robot.robot_id,
            result.status.value,
            ",".join(verdict.bed_id for verdict in failing),
        )
        return result

    @staticmethod
    def _check_robot_barcode(robot: RobotConfig, scanned: str) -> list[str]:
        if not scanned:
            return ["Robot barcode is required."] if robot.require_robot else []
        if robot.robot_barcode and scanned != robot.robot_barcode:
            return [f"Robot {robot.name} has barcode {robot.robot_barcode}, but {scanned} was scanned."]
        return []

    @staticmethod
    def _check_parent_links(
        robot: RobotConfig,
        beds: Mapping[str, list[str]],
        labware: Mapping[str, LabwareSnapshot | None],
        verdicts: dict[str, BedVerdict],
    ) -> None:
        for bed in robot.beds:
            if bed.parent is None:
                continue
            child = resolved_labware(beds.get(bed.bed_id, []), labware)
            if child is None:
                continue
            if not child.parents:
                verdicts[bed.bed_id].add_error(
                    f"Labware {child.barcode} doesn't seem to have a parent, and yet one was expected."
                )
                continue

            found = beds.get(bed.parent, [])
            if len(found) == 1 and found[0] in child.parents:
                continue
            verdicts[bed.parent].add_error(
                f"expected {' or '.join(child.parents)}, found {', '.join(found) or 'empty'}"
            )

    @staticmethod
    def _check_relationships(
        robot: RobotConfig,
        layout: SplittingLayout,
        beds: Mapping[str, list[str]],
        labware: Mapping[str, LabwareSnapshot | None],
        verdicts: dict[str, BedVerdict],
    ) -> dict[str, bool]:
        relationships: dict[str, bool] = {}

        for relationship in layout.relationships:
            parent_verdict = verdicts[relationship.parent]
            parent_barcodes = beds.get(relationship.parent, [])
            if not parent_barcodes:
                raise SplitPreconditionError(
                    relationship.parent, f"{parent_verdict.label} - should not be empty."
                )

            parent = resolved_labware(parent_barcodes, labware)
            if parent is None:
                # The bed rules have already explained why the parent is unusable.
                relationships[relationship.parent] = False
                continue

            try:
                expected = expected_children(parent, layout)
            except ValueError as exc:
                raise SplitPreconditionError(
                    relationship.parent,
                    f"{parent_verdict.label} - transfers from {parent.barcode} do not fit the "
                    f"configured {layout.plate.rows}x{layout.plate.columns} plate: {exc}",
                ) from exc

            if not expected:
                relationships[relationship.parent] = False
                parent_verdict.add_error("should have children.")
                for child_bed in relationship.children:
                    found = beds.get(child_bed, [])
                    relationships[child_bed] = not found
                    if found:
                        verdicts[child_bed].add_error(f"expected empty, found {', '.join(found)}")
                continue

            if len(expected) != len(relationship.children):
                raise SplitPreconditionError(
                    relationship.parent,
                    f"{parent_verdict.label} - {parent.barcode} has {len(expected)} children but "
                    f"{robot.name} declares {len(relationship.children)} child beds.",
                )

            relationships[relationship.parent] = True
            for child_bed, expected_barcode in zip(relationship.children, expected, strict=True):
                found = beds.get(child_bed, [])
                matches = found == [expected_barcode]
                relationships[child_bed] = matches
                if not matches:
                    verdicts[child_bed].add_error(
                        f"expected {expected_barcode}, found {', '.join(found) or 'empty'}"
                    )

        return relationships
