"""Per-bed rule evaluation."""

from __future__ import annotations

from collections.abc import Mapping

from bedver.core.types import BedVerdict
from bedver.directory.client import LabwareSnapshot
from bedver.topology.models import BedConfig

MULTIPLE_BARCODES_MESSAGE = (
    "This bed has been scanned multiple times with different barcodes. Only one is expected."
)


def validate_bed(
    bed: BedConfig,
    barcodes: list[str],
    labware: Mapping[str, LabwareSnapshot | None],
) -> BedVerdict:
    """Evaluate every bed rule; errors accumulate rather than short-circuit.

    Args:
        bed: Configured bed.
        barcodes: Distinct barcodes scanned onto the bed, in scan order.
        labware: Lookup snapshot for this validation call.
    """
    verdict = BedVerdict(bed_id=bed.bed_id, label=bed.label)
    if not barcodes:
        return verdict

    if len(barcodes) > 1:
        verdict.add_error(MULTIPLE_BARCODES_MESSAGE)

    barcode = barcodes[0]
    snapshot = labware.get(barcode)
    if snapshot is None:
        verdict.add_error(f"Could not find labware with barcode '{barcode}'.")
        return verdict

    if snapshot.purpose != bed.purpose:
        verdict.add_error(
            f"Labware {snapshot.barcode} is a {snapshot.purpose} not a {bed.purpose} plate."
        )
    if snapshot.state not in bed.states:
        verdict.add_error(
            f"Labware {snapshot.barcode} is {snapshot.state} when it should be {', '.join(bed.states)}."
        )
    return verdict


def resolved_labware(
    barcodes: list[str],
    labware: Mapping[str, LabwareSnapshot | None],
) -> LabwareSnapshot | None:
    """The bed's labware when exactly one barcode was scanned and it resolved."""
    if len(barcodes) != 1:
        return None
    return labware.get(barcodes[0])
