import asyncio
import json

import httpx
import pytest

from bedver.directory.client import DirectoryError, HttpLabwareDirectory
from bedver.session.client import StartRejectedError, VerificationClient, VerificationTransportError
from bedver.transitions.service import HttpStateTransitionService, TransitionServiceError


def test_directory_resolves_all_barcodes_in_one_request() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        assert request.url.path == "/api/labware/lookup"
        return httpx.Response(
            200,
            json={
                "labware": [
                    {
                        "identifier": "uuid-DN384",
                        "barcode": "DN384",
                        "purpose": "384 Plate",
                        "state": "passed",
                        "transfers": [{"source_well": "A1", "target_barcode": "DN1"}],
                    }
                ]
            },
        )

    directory = HttpLabwareDirectory(base_url="http://lims/api/", transport=httpx.MockTransport(handler))

    resolved = asyncio.run(directory.resolve(["DN384", "MISSING"]))

    assert seen == [{"barcodes": ["DN384", "MISSING"]}]
    assert resolved["DN384"] is not None
    assert resolved["DN384"].transfers[0].target_barcode == "DN1"
    assert resolved["MISSING"] is None


def test_directory_skips_request_without_barcodes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    directory = HttpLabwareDirectory(base_url="http://lims", transport=httpx.MockTransport(handler))

    assert asyncio.run(directory.resolve([])) == {}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "down"}),
        httpx.Response(200, json={"items": []}),
        httpx.Response(200, json={"labware": [{"barcode": "X"}]}),
        httpx.Response(200, text="not json"),
    ],
)
def test_directory_wraps_failures(response: httpx.Response) -> None:
    directory = HttpLabwareDirectory(
        base_url="http://lims", transport=httpx.MockTransport(lambda request: response)
    )

    with pytest.raises(DirectoryError):
        asyncio.run(directory.resolve(["X"]))


def test_transition_service_posts_state_change() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/state_changes"
        seen.append(json.loads(request.content))
        return httpx.Response(201, json={"state": "started"})

    service = HttpStateTransitionService(base_url="http://lims", transport=httpx.MockTransport(handler))

    result = asyncio.run(service.transition("uuid-L1", "started", "operator", "started by robot Bravo"))

    assert result.success
    assert seen == [
        {
            "target": "uuid-L1",
            "target_state": "started",
            "user": "operator",
            "reason": "started by robot Bravo",
        }
    ]


def test_transition_service_reports_refusal() -> None:
    service = HttpStateTransitionService(
        base_url="http://lims",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"detail": "bad state"})),
    )

    result = asyncio.run(service.transition("uuid-L1", "started", "operator", "r"))

    assert not result.success
    assert result.reason == "bad state"


def test_transition_service_raises_on_server_error() -> None:
    service = HttpStateTransitionService(
        base_url="http://lims",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    with pytest.raises(TransitionServiceError, match="status=503"):
        asyncio.run(service.transition("uuid-L1", "started", "operator", "r"))


def test_verification_client_round_trip() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/robots/bravo/verify"
        assert json.loads(request.content) == {"robot_barcode": "RB", "bed_labwares": {"B1": ["L1"]}}
        return httpx.Response(200, json={"valid": True, "beds": {"B1": True}, "message": ""})

    client = VerificationClient(base_url="http://bedver", robot_id="bravo", transport=httpx.MockTransport(handler))

    body = asyncio.run(client.verify("RB", {"B1": ["L1"]}))

    assert body["valid"] is True


def test_verification_client_maps_conflict_to_start_rejected() -> None:
    client = VerificationClient(
        base_url="http://bedver",
        robot_id="bravo",
        transport=httpx.MockTransport(lambda request: httpx.Response(409, json={"detail": "Bed 1 - wrong"})),
    )

    with pytest.raises(StartRejectedError, match="Bed 1 - wrong"):
        asyncio.run(client.start("", {"B1": ["L1"]}, actor="operator", session_id="s-1"))


def test_verification_client_wraps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = VerificationClient(base_url="http://bedver", robot_id="bravo", transport=httpx.MockTransport(handler))

    with pytest.raises(VerificationTransportError):
        asyncio.run(client.verify("", {"B1": ["L1"]}))
