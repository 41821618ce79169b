"""Scan intake: contract validation and normalisation of submitted scans."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from bedver.core.types import ScanSet

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parents[1] / "contracts" / "verification_request.schema.json"


class ScanIntake:
    """Validates verification requests against JSON Schema."""

    def __init__(self, schema_path: str | Path = DEFAULT_SCHEMA_PATH) -> None:
        schema = json.loads(Path(schema_path).read_text(encoding="utf-8"))
        self._validator = Draft202012Validator(schema)

    def ingest(self, raw_request: dict[str, Any]) -> ScanSet:
        """Validate a raw request and convert it to a normalised :class:`ScanSet`."""
        errors = sorted(self._validator.iter_errors(raw_request), key=str)
        if errors:
            details = "; ".join(err.message for err in errors)
            raise ValueError(f"Invalid verification request: {details}")

        return ScanSet(
            robot_barcode=str(raw_request.get("robot_barcode") or "").strip(),
            bed_labwares=normalise_bed_labwares(raw_request["bed_labwares"]),
        )


def normalise_bed_labwares(raw: dict[str, list[str] | None]) -> dict[str, list[str]]:
    """Strip blanks and squash accidental duplicate scans, keeping scan order."""
    beds: dict[str, list[str]] = {}
    for bed_id, barcodes in raw.items():
        bed_key = bed_id.strip()
        if not bed_key:
            continue
        cleaned = beds.setdefault(bed_key, [])
        for barcode in barcodes or []:
            value = barcode.strip()
            if value and value not in cleaned:
                cleaned.append(value)
    return {bed_id: barcodes for bed_id, barcodes in beds.items() if barcodes}
