"""Async HTTP client for the verification API used by the scan accumulator."""

from __future__ import annotations

from typing import Any

import httpx


class VerificationTransportError(Exception):
    """The verification or start round trip did not complete."""


class StartRejectedError(Exception):
    """The server refused to start the robot because the layout no longer verifies."""


class VerificationClient:
    """Talks to ``/robots/{robot_id}/verify`` and ``/robots/{robot_id}/start``. Never retries."""

    def __init__(
        self,
        *,
        base_url: str,
        robot_id: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._robot_id = robot_id
        self._timeout_s = timeout_s
        self._transport = transport

    async def verify(self, robot_barcode: str, bed_labwares: dict[str, list[str]]) -> dict[str, Any]:
        """Return the ``{valid, beds, message}`` verdict for the submitted scans."""
        return await self._post(
            "verify",
            {"robot_barcode": robot_barcode, "bed_labwares": bed_labwares},
        )

    async def start(
        self,
        robot_barcode: str,
        bed_labwares: dict[str, list[str]],
        *,
        actor: str,
        session_id: str,
    ) -> dict[str, Any]:
        """Ask the server to re-verify and transition every validated bed."""
        return await self._post(
            "start",
            {
                "robot_barcode": robot_barcode,
                "bed_labwares": bed_labwares,
                "actor": actor,
                "session_id": session_id,
            },
        )

    async def _post(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/robots/{self._robot_id}/{action}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_s),
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload)
            if response.status_code == 409:
                raise StartRejectedError(str(response.json().get("detail", "layout not verified")))
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise VerificationTransportError(
                f"Verification request failed (status={exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise VerificationTransportError(f"Verification request failed: {exc}") from exc

        if not isinstance(body, dict):
            raise VerificationTransportError("Verification response must be a JSON object")
        return body
