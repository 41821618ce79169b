from bedver.topology.models import BedConfig
from bedver.validation.bed import MULTIPLE_BARCODES_MESSAGE, resolved_labware, validate_bed


def _bed(**overrides: object) -> BedConfig:
    fields: dict[str, object] = {
        "bed_id": "B1",
        "label": "Bed 1",
        "purpose": "P",
        "states": ("pending", "started"),
        "target_state": "started",
    }
    fields.update(overrides)
    return BedConfig.model_validate(fields)


def test_unscanned_bed_is_trivially_valid() -> None:
    verdict = validate_bed(_bed(), [], {})

    assert verdict.valid
    assert verdict.errors == []


def test_matching_labware_passes(make_labware) -> None:
    labware = make_labware("L1")

    verdict = validate_bed(_bed(), ["L1"], {"L1": labware})

    assert verdict.valid


def test_wrong_state_names_actual_and_expected_states(make_labware) -> None:
    labware = make_labware("L1", state="passed")

    verdict = validate_bed(_bed(), ["L1"], {"L1": labware})

    assert not verdict.valid
    assert verdict.errors == ["Labware L1 is passed when it should be pending, started."]


def test_wrong_purpose_is_reported(make_labware) -> None:
    labware = make_labware("L1", purpose="Q")

    verdict = validate_bed(_bed(), ["L1"], {"L1": labware})

    assert verdict.errors == ["Labware L1 is a Q not a P plate."]


def test_unresolved_barcode_is_reported() -> None:
    verdict = validate_bed(_bed(), ["L404"], {"L404": None})

    assert not verdict.valid
    assert verdict.errors == ["Could not find labware with barcode 'L404'."]


def test_multiple_distinct_barcodes_fail_even_when_labware_is_correct(make_labware) -> None:
    lookup = {"L1": make_labware("L1"), "L2": make_labware("L2")}

    verdict = validate_bed(_bed(), ["L1", "L2"], lookup)

    assert not verdict.valid
    assert verdict.errors == [MULTIPLE_BARCODES_MESSAGE]


def test_errors_accumulate(make_labware) -> None:
    lookup = {"L1": make_labware("L1", purpose="Q", state="failed")}

    verdict = validate_bed(_bed(), ["L1", "L2"], lookup)

    assert len(verdict.errors) == 3
    assert verdict.formatted_message().startswith("Bed 1 - This bed has been scanned")


def test_resolved_labware_needs_exactly_one_barcode(make_labware) -> None:
    lookup = {"L1": make_labware("L1")}

    assert resolved_labware(["L1"], lookup) is lookup["L1"]
    assert resolved_labware(["L1", "L2"], lookup) is None
    assert resolved_labware([], lookup) is None
