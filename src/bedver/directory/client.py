"""Labware Directory clients used to resolve scanned barcodes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class TransferRecord(BaseModel):
    """One transfer out of a parent well into a downstream labware."""

    model_config = ConfigDict(frozen=True)

    source_well: str
    target_barcode: str


class LabwareSnapshot(BaseModel):
    """Read-only view of a labware at lookup time."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    barcode: str
    purpose: str
    state: str
    parents: tuple[str, ...] = ()
    transfers: tuple[TransferRecord, ...] = Field(default_factory=tuple)


class DirectoryError(Exception):
    """Raised when the labware directory cannot be reached or answers garbage."""


class LabwareDirectory(Protocol):
    async def resolve(self, barcodes: list[str]) -> dict[str, LabwareSnapshot | None]: ...


class InMemoryLabwareDirectory:
    """Directory backed by a fixed set of snapshots (tests and dry runs)."""

    def __init__(self, labware: Iterable[LabwareSnapshot] = ()) -> None:
        self._labware: dict[str, LabwareSnapshot] = {item.barcode: item for item in labware}

    def add(self, snapshot: LabwareSnapshot) -> None:
        self._labware[snapshot.barcode] = snapshot

    def update_state(self, barcode: str, state: str) -> None:
        current = self._labware[barcode]
        self._labware[barcode] = current.model_copy(update={"state": state})

    async def resolve(self, barcodes: list[str]) -> dict[str, LabwareSnapshot | None]:
        return {barcode: self._labware.get(barcode) for barcode in barcodes}


class HttpLabwareDirectory:
    """Async client for ``POST {base_url}/labware/lookup``."""

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

    async def resolve(self, barcodes: list[str]) -> dict[str, LabwareSnapshot | None]:
        """Resolve all barcodes in one request so the snapshot is consistent across beds."""
        if not barcodes:
            return {}

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_s),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    f"{self._base_url}/labware/lookup",
                    json={"barcodes": barcodes},
                )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise DirectoryError(
                f"Labware lookup failed (status={exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise DirectoryError(f"Labware lookup failed: {exc}") from exc

        return _index_snapshots(barcodes, body)


def _index_snapshots(barcodes: list[str], body: object) -> dict[str, LabwareSnapshot | None]:
    if not isinstance(body, Mapping) or not isinstance(body.get("labware"), list):
        raise DirectoryError("Labware lookup response without 'labware' list")

    found: dict[str, LabwareSnapshot] = {}
    for item in body["labware"]:
        try:
            snapshot = LabwareSnapshot.model_validate(item)
        except ValidationError as exc:
            raise DirectoryError(f"Malformed labware record in lookup response: {exc}") from exc
        found[snapshot.barcode] = snapshot

    missing = [barcode for barcode in barcodes if barcode not in found]
    if missing:
        logger.info("labware_unresolved barcodes=%s", ",".join(missing))
    return {barcode: found.get(barcode) for barcode in barcodes}
