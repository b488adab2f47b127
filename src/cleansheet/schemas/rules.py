"""
@brief
Exported rules configuration: business rules, prioritization weights and
validation toggles.

@details
The validation core never consumes these models; they are edited in the
session and serialized to rules.json for the downstream allocator. Field
aliases reproduce the camelCase keys of the exported document.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class _RulesModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }


class CoRunRule(_RulesModel):
    """Tasks that must be scheduled together."""

    id: str
    type: Literal["co-run"] = "co-run"
    task_ids: list[str] = Field(..., min_length=2, alias="taskIDs")
    description: str | None = None


class SlotRestrictionRule(_RulesModel):
    """A client or worker group must share at least `min_common_slots` slots."""

    id: str
    type: Literal["slot-restriction"] = "slot-restriction"
    group: str
    group_type: Literal["client", "worker"] = Field("worker", alias="groupType")
    min_common_slots: int = Field(1, ge=1, alias="minCommonSlots")
    description: str | None = None


class LoadLimitRule(_RulesModel):
    """Upper bound on slots per phase for a worker group."""

    id: str
    type: Literal["load-limit"] = "load-limit"
    worker_group: str = Field(..., alias="workerGroup")
    max_slots_per_phase: int = Field(..., ge=1, alias="maxSlotsPerPhase")
    description: str | None = None


class PhaseWindowRule(_RulesModel):
    """Restricts a task to a set of phases."""

    id: str
    type: Literal["phase-window"] = "phase-window"
    task_id: str = Field(..., alias="taskID")
    allowed_phases: list[int] = Field(..., min_length=1, alias="allowedPhases")
    description: str | None = None


BusinessRule = Annotated[
    CoRunRule | SlotRestrictionRule | LoadLimitRule | PhaseWindowRule,
    Field(discriminator="type"),
]


class PrioritizationWeights(_RulesModel):
    """Seven 0-100 sliders handed to the allocator."""

    priority_level: int = Field(50, ge=0, le=100, alias="priorityLevel")
    requested_task_fulfillment: int = Field(50, ge=0, le=100, alias="requestedTaskFulfillment")
    fairness: int = Field(50, ge=0, le=100)
    efficiency: int = Field(50, ge=0, le=100)
    deadline_adherence: int = Field(50, ge=0, le=100, alias="deadlineAdherence")
    skill_match: int = Field(50, ge=0, le=100, alias="skillMatch")
    workload_balance: int = Field(50, ge=0, le=100, alias="workloadBalance")


class _TogglesModel(BaseModel):
    # Applied suggestions add flags such as `validateAttributesJSON`.
    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }


class ClientToggles(_TogglesModel):
    require_unique_id: bool = Field(True, alias="requireUniqueID")
    require_name: bool = Field(True, alias="requireName")
    validate_email: bool = Field(False, alias="validateEmail")
    validate_phone: bool = Field(False, alias="validatePhone")


class WorkerToggles(_TogglesModel):
    require_unique_id: bool = Field(True, alias="requireUniqueID")
    require_name: bool = Field(True, alias="requireName")
    validate_email: bool = Field(False, alias="validateEmail")
    require_department: bool = Field(False, alias="requireDepartment")


class TaskToggles(_TogglesModel):
    require_unique_id: bool = Field(True, alias="requireUniqueID")
    require_title: bool = Field(True, alias="requireTitle")
    validate_client_id: bool = Field(False, alias="validateClientID")
    validate_worker_id: bool = Field(False, alias="validateWorkerID")
    validate_due_date: bool = Field(False, alias="validateDueDate")


class ValidationToggles(_RulesModel):
    clients: ClientToggles = Field(default_factory=ClientToggles)
    workers: WorkerToggles = Field(default_factory=WorkerToggles)
    tasks: TaskToggles = Field(default_factory=TaskToggles)

    def set_flag(self, entity: str, flag: str, value: bool) -> None:
        """
        @brief
        Enable or disable one toggle addressed by its exported (camelCase) name.

        @details
        Known flags are matched through their alias; unknown flags are stored as
        extra keys so they round-trip through rules.json.
        """
        group: _TogglesModel = getattr(self, entity)
        for name, info in type(group).model_fields.items():
            if flag in (name, info.alias):
                setattr(group, name, bool(value))
                return
        setattr(group, flag, bool(value))

    def get_flag(self, entity: str, flag: str) -> bool | None:
        group: _TogglesModel = getattr(self, entity)
        for name, info in type(group).model_fields.items():
            if flag in (name, info.alias):
                return getattr(group, name)
        return (group.model_extra or {}).get(flag)


class RulesConfig(_RulesModel):
    """
    @brief
    Complete rules document exported next to the cleaned data.
    """

    business_rules: list[BusinessRule] = Field(default_factory=list, alias="businessRules")
    prioritization: PrioritizationWeights = Field(default_factory=PrioritizationWeights)
    validation_rules: ValidationToggles = Field(
        default_factory=ValidationToggles, alias="validationRules"
    )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


__all__ = [
    "CoRunRule",
    "SlotRestrictionRule",
    "LoadLimitRule",
    "PhaseWindowRule",
    "BusinessRule",
    "PrioritizationWeights",
    "ValidationToggles",
    "RulesConfig",
]
