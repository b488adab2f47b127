"""
@brief
Pydantic data models for the CleanSheet data-cleaning project.

@details
Defines the canonical model types:
    - Client, Worker, Task: one uploaded spreadsheet row each. Core columns are
      typed fields aliased to the uploaded column names; every other column is
      kept in an ordered side map (`extras`) and written back on export.
    - Finding / ValidationResult: output of the validation engine.
    - Config: runtime configuration (from config.yaml).

Row models deliberately store the raw cell value for every non-identifier
column. A malformed `Duration` or `AttributesJSON` has to survive loading so
that the validator can report it instead of the loader rejecting the row.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and report contracts.

    @details
    Forbids unknown fields and exports enum members as raw values.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


class EntityKind(str, Enum):
    """Collection a row belongs to; values match the exported collection names."""

    CLIENTS = "clients"
    WORKERS = "workers"
    TASKS = "tasks"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


# ------------------------------------------------------------
# Spreadsheet rows
# ------------------------------------------------------------
class _RowModel(BaseModel):
    """
    @brief
    Base class for uploaded rows: typed core columns plus passthrough extras.

    @details
    Core fields are populated only through their column alias (`ClientID`,
    `Name`, ...). Any other column lands in `__pydantic_extra__` in upload
    order, so `to_row()` reproduces every column the user uploaded.
    Assignment is not validated; inline edits store whatever the user typed.
    """

    model_config = {
        "extra": "allow",
        "populate_by_name": False,
    }

    KIND: ClassVar[EntityKind]
    ID_COLUMN: ClassVar[str]
    ID_FIELD: ClassVar[str]

    @classmethod
    def column_map(cls) -> dict[str, str]:
        """Map of column name (alias) -> python field name for the core columns."""
        return {(info.alias or name): name for name, info in cls.model_fields.items()}

    @property
    def row_id(self) -> str:
        return str(getattr(self, self.ID_FIELD) or "").strip()

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.__pydantic_extra__ or {})

    def get(self, column: str, default: Any = None) -> Any:
        """Read a cell by its column name (core or extra)."""
        field_name = self.column_map().get(column)
        if field_name is not None:
            value = getattr(self, field_name)
            return default if value is None else value
        return (self.__pydantic_extra__ or {}).get(column, default)

    def set(self, column: str, value: Any) -> None:
        """Replace one cell by column name; unknown columns become extras."""
        field_name = self.column_map().get(column)
        if field_name is None:
            if self.__pydantic_extra__ is None:
                self.__pydantic_extra__ = {}
            self.__pydantic_extra__[column] = value
            return
        if field_name == self.ID_FIELD:
            value = "" if value is None else str(value).strip()
        setattr(self, field_name, value)

    def to_row(self) -> dict[str, Any]:
        """
        Serialize back to a column-name keyed row.

        Core columns come first (only those that were uploaded or edited),
        followed by the extras in upload order.
        """
        row: dict[str, Any] = {}
        for name, info in type(self).model_fields.items():
            if name in self.model_fields_set:
                row[info.alias or name] = getattr(self, name)
        row.update(self.__pydantic_extra__ or {})
        return row


class Client(_RowModel):
    KIND: ClassVar[EntityKind] = EntityKind.CLIENTS
    ID_COLUMN: ClassVar[str] = "ClientID"
    ID_FIELD: ClassVar[str] = "client_id"

    client_id: str = Field("", alias="ClientID")
    name: Any = Field(None, alias="Name")
    email: Any = Field(None, alias="Email")
    phone: Any = Field(None, alias="Phone")
    department: Any = Field(None, alias="Department")
    attributes_json: Any = Field(None, alias="AttributesJSON")
    requested_task_ids: Any = Field(None, alias="RequestedTaskIDs")


class Worker(_RowModel):
    KIND: ClassVar[EntityKind] = EntityKind.WORKERS
    ID_COLUMN: ClassVar[str] = "WorkerID"
    ID_FIELD: ClassVar[str] = "worker_id"

    worker_id: str = Field("", alias="WorkerID")
    name: Any = Field(None, alias="Name")
    skills: Any = Field(None, alias="Skills")
    available_slots: Any = Field(None, alias="AvailableSlots")
    max_load_per_phase: Any = Field(None, alias="MaxLoadPerPhase")
    department: Any = Field(None, alias="Department")
    position: Any = Field(None, alias="Position")
    email: Any = Field(None, alias="Email")


class Task(_RowModel):
    KIND: ClassVar[EntityKind] = EntityKind.TASKS
    ID_COLUMN: ClassVar[str] = "TaskID"
    ID_FIELD: ClassVar[str] = "task_id"

    task_id: str = Field("", alias="TaskID")
    title: Any = Field(None, alias="Title")
    duration: Any = Field(None, alias="Duration")
    priority_level: Any = Field(None, alias="PriorityLevel")
    preferred_phases: Any = Field(None, alias="PreferredPhases")
    required_skills: Any = Field(None, alias="RequiredSkills")
    max_concurrent: Any = Field(None, alias="MaxConcurrent")
    dependencies: Any = Field(None, alias="Dependencies")
    client_id: Any = Field(None, alias="ClientID")
    worker_id: Any = Field(None, alias="WorkerID")
    status: Any = Field(None, alias="Status")
    due_date: Any = Field(None, alias="DueDate")


ENTITY_MODELS: dict[EntityKind, type[_RowModel]] = {
    EntityKind.CLIENTS: Client,
    EntityKind.WORKERS: Worker,
    EntityKind.TASKS: Task,
}


# ------------------------------------------------------------
# Validation output
# ------------------------------------------------------------
class Finding(_StrictBaseModel):
    """
    @brief
    One validation result.

    @details
    `row_id` is the value of the row's identifying field (not a position);
    collection-level findings use a synthetic id such as `phase-1`.
    `context` carries structured details (duplicate row positions, cycle
    members, phase numbers) for consumers that need more than the message.
    """

    entity: EntityKind
    row_id: str
    field: str
    message: str
    severity: Severity
    context: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class ValidationResult(_StrictBaseModel):
    """Ordered findings of one validation run plus the overall verdict."""

    findings: list[Finding] = Field(default_factory=list)
    is_valid: bool = True

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == Severity.WARNING]

    def for_row(self, entity: EntityKind | str, row_id: str) -> list[Finding]:
        kind = EntityKind(entity).value
        return [f for f in self.findings if f.entity == kind and f.row_id == row_id]

    def cell_status(self, entity: EntityKind | str, row_id: str, field: str) -> str | None:
        """
        @brief
        Highlight class for one grid cell.

        @returns
            "error" if any error targets the cell, "warning" if only warnings do,
            None otherwise.
        """
        hits = [f for f in self.for_row(entity, row_id) if f.field == field]
        if not hits:
            return None
        return "error" if any(f.severity == Severity.ERROR for f in hits) else "warning"


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class AdvisoryConfig(_StrictBaseModel):
    """
    @brief
    Settings of the optional AI advisory client.

    @details
    Injected into `AdvisoryClient` at construction. The API key is resolved once
    by `ConfigLoader` from `api_key_env` when not given inline; nothing reads
    the environment at call time.
    """

    enabled: bool = Field(False, description="Master switch for advisory calls")
    model: str = Field("gemini-2.0-flash", description="Generative model name")
    base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="REST endpoint root of the generative API",
    )
    api_key: str | None = Field(None, description="API key (inline)")
    api_key_env: str = Field("GEMINI_API_KEY", description="Env var consulted by ConfigLoader")
    timeout_seconds: float = Field(30.0, gt=0.0, description="Per-request timeout")
    confidence_threshold: int = Field(
        60, ge=0, le=100, description="Suggestions below this are shown as low confidence"
    )
    sample_rows: int = Field(3, ge=0, description="Rows per collection sent as prompt context")


class ExportConfig(_StrictBaseModel):
    format: Literal["csv", "xlsx"] = Field("csv", description="Cleaned data file format")
    write_report: bool = Field(True, description="Write validation_report.json")
    write_metrics: bool = Field(True, description="Write metrics.json")
    write_plot: bool = Field(True, description="Render phase_saturation.png")


class ValidationConfig(BaseModel):
    """
    @brief
    Controls how the CLI interprets the validation result.

    @details
    `fail_on_warnings` turns warnings into a failing exit code; it does not
    change `ValidationResult.is_valid`.
    """

    fail_on_warnings: bool = False


class VisualConfig(BaseModel):
    width: float = Field(10.0, description="Figure width in inches")
    height: float = Field(6.0, description="Figure height in inches")
    dpi: int = Field(120, description="Output figure DPI")


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.
    """

    output_dir: str = "data/output"
    export: ExportConfig = Field(default_factory=ExportConfig.model_construct)
    advisory: AdvisoryConfig = Field(default_factory=AdvisoryConfig.model_construct)
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    visual: VisualConfig = Field(default_factory=VisualConfig.model_construct)


__all__ = [
    "EntityKind",
    "Severity",
    "Client",
    "Worker",
    "Task",
    "ENTITY_MODELS",
    "Finding",
    "ValidationResult",
    "AdvisoryConfig",
    "ExportConfig",
    "ValidationConfig",
    "VisualConfig",
    "Config",
]
