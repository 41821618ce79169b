"""State transition service clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import httpx


@dataclass(slots=True)
class TransitionResult:
    """Answer of the state transition service for one labware."""

    success: bool
    reason: str = ""


class TransitionServiceError(Exception):
    """Raised when a transition request does not complete."""


class StateTransitionService(Protocol):
    async def transition(
        self,
        labware_identifier: str,
        target_state: str,
        actor: str,
        reason: str,
    ) -> TransitionResult: ...


@dataclass(slots=True)
class RecordingTransitionService:
    """In-memory service that records requests (tests and dry runs)."""

    requests: list[dict[str, str]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)

    async def transition(
        self,
        labware_identifier: str,
        target_state: str,
        actor: str,
        reason: str,
    ) -> TransitionResult:
        self.requests.append(
            {
                "target": labware_identifier,
                "target_state": target_state,
                "user": actor,
                "reason": reason,
            }
        )
        if labware_identifier in self.failing:
            return TransitionResult(success=False, reason="rejected by service")
        return TransitionResult(success=True)


class HttpStateTransitionService:
    """Async client for ``POST {base_url}/state_changes``. Never retries."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport

    async def transition(
        self,
        labware_identifier: str,
        target_state: str,
        actor: str,
        reason: str,
    ) -> TransitionResult:
        payload = {
            "target": labware_identifier,
            "target_state": target_state,
            "user": actor,
            "reason": reason,
        }
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_s),
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self._base_url}/state_changes", json=payload)
        except httpx.HTTPError as exc:
            raise TransitionServiceError(f"State change request failed: {exc}") from exc

        if response.status_code in (400, 409, 422):
            return TransitionResult(success=False, reason=_error_detail(response))
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransitionServiceError(
                f"State change request failed (status={exc.response.status_code})"
            ) from exc
        return TransitionResult(success=True)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)
