"""Robot topology models: beds, layouts and bed relationships."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bedver.layout.wells import WELL_ORDERS, validate_geometry


class BedConfig(BaseModel):
    """One physical slot on the robot deck."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bed_id: str = Field(min_length=1)
    label: str = ""
    purpose: str = Field(min_length=1)
    states: tuple[str, ...] = Field(min_length=1)
    target_state: str | None = None
    parent: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("label") and data.get("bed_id"):
            return {**data, "label": f"Bed {data['bed_id']}"}
        return data

    @property
    def transitions(self) -> bool:
        return bool(self.target_state)


class PlateGeometry(BaseModel):
    """Dimensions of the parent plate whose wells feed the children."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rows: int = 8
    columns: int = 12
    scale: int = 1

    @model_validator(mode="after")
    def _check_geometry(self) -> "PlateGeometry":
        validate_geometry(self.rows, self.columns, self.scale)
        return self


class Relationship(BaseModel):
    """A parent bed fanned out onto an ordered list of child beds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    parent: str = Field(min_length=1)
    children: tuple[str, ...] = Field(min_length=1)

    @field_validator("children")
    @classmethod
    def _unique_children(cls, children: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(children)) != len(children):
            raise ValueError("child beds must be unique within a relationship")
        return children


class PassThroughLayout(BaseModel):
    """Beds validated independently, with optional parent links between them."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["pass_through"] = "pass_through"


class SplittingLayout(BaseModel):
    """One parent labware transferred onto several child labware."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["splitting"] = "splitting"
    relationships: tuple[Relationship, ...] = Field(min_length=1)
    well_order: str = "quadrant"
    plate: PlateGeometry = Field(default_factory=PlateGeometry)

    @field_validator("well_order")
    @classmethod
    def _known_well_order(cls, well_order: str) -> str:
        if well_order not in WELL_ORDERS:
            raise ValueError(f"well_order must be one of {sorted(WELL_ORDERS)}")
        return well_order


RobotLayout = Annotated[PassThroughLayout | SplittingLayout, Field(discriminator="kind")]


class RobotConfig(BaseModel):
    """Immutable robot topology shared by every verification session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    robot_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    robot_barcode: str | None = None
    require_robot: bool = False
    beds: tuple[BedConfig, ...] = Field(min_length=1)
    layout: RobotLayout = Field(default_factory=PassThroughLayout)

    @model_validator(mode="after")
    def _check_references(self) -> "RobotConfig":
        bed_ids = [bed.bed_id for bed in self.beds]
        if len(set(bed_ids)) != len(bed_ids):
            raise ValueError(f"Robot {self.robot_id} declares the same bed more than once")
        known = set(bed_ids)

        for bed in self.beds:
            if bed.parent is not None and bed.parent not in known:
                raise ValueError(f"Bed {bed.bed_id} references unknown parent bed {bed.parent}")
            if bed.parent == bed.bed_id:
                raise ValueError(f"Bed {bed.bed_id} cannot be its own parent")

        if isinstance(self.layout, SplittingLayout):
            linked = [bed.bed_id for bed in self.beds if bed.parent is not None]
            if linked:
                raise ValueError(
                    f"Splitting robot {self.robot_id} declares parent links on beds "
                    f"{', '.join(linked)}; use relationships instead"
                )
            for relationship in self.layout.relationships:
                missing = [
                    bed_id
                    for bed_id in (relationship.parent, *relationship.children)
                    if bed_id not in known
                ]
                if missing:
                    raise ValueError(
                        f"Relationship for {self.name} references unknown beds: {', '.join(missing)}"
                    )
                if relationship.parent in relationship.children:
                    raise ValueError(f"Bed {relationship.parent} cannot be its own child")

        if self.require_robot and not self.robot_barcode:
            raise ValueError(f"Robot {self.robot_id} requires a robot barcode but none is configured")
        return self

    @property
    def splitting(self) -> bool:
        return isinstance(self.layout, SplittingLayout)

    def bed(self, bed_id: str) -> BedConfig | None:
        for bed in self.beds:
            if bed.bed_id == bed_id:
                return bed
        return None


class Topology(BaseModel):
    """Every configured robot keyed by configuration id."""

    model_config = ConfigDict(frozen=True)

    robots: dict[str, RobotConfig] = Field(default_factory=dict)

    def get(self, robot_id: str) -> RobotConfig | None:
        return self.robots.get(robot_id)
