"""Pydantic models describing the proposals API payloads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime  # noqa: TC003
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from draftdesk.domain.model import ProposalStatus


def _id_to_str(value: object) -> object:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _none_to_empty(value: object) -> object:
    return {} if value is None else value


class ProposalsApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AgentPayload(ProposalsApiModel):
    name: str | None = None
    type: str | None = None


class RaceUpdatePayload(ProposalsApiModel):
    race_id: str = Field(alias="raceId")
    race_name: str | None = Field(default=None, alias="raceName")
    updates: dict[str, object] = Field(default_factory=dict)
    current_data: dict[str, object] | None = Field(default=None, alias="currentData")

    _normalize_race_id = field_validator("race_id", mode="before")(_id_to_str)
    _normalize_updates = field_validator("updates", mode="before")(_none_to_empty)


class RaceExistingPayload(ProposalsApiModel):
    """An unchanged race; its data lives in ``currentData`` or at the root."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    race_id: str = Field(alias="raceId")
    race_name: str | None = Field(default=None, alias="raceName")
    current_data: dict[str, object] | None = Field(default=None, alias="currentData")

    _normalize_race_id = field_validator("race_id", mode="before")(_id_to_str)

    @property
    def race_fields(self) -> dict[str, object]:
        if self.current_data:
            return dict(self.current_data)
        return dict(self.model_extra or {})


class ProposalPayload(ProposalsApiModel):
    id: str
    agent_id: str | None = Field(default=None, alias="agentId")
    type: str | None = None
    status: ProposalStatus = ProposalStatus.PENDING
    event_id: str | None = Field(default=None, alias="eventId")
    edition_id: str | None = Field(default=None, alias="editionId")
    changes: dict[str, object] = Field(default_factory=dict)
    confidence: float | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    agent: AgentPayload | None = None
    agent_name: str | None = Field(default=None, alias="agentName")
    approved_blocks: dict[str, bool] = Field(default_factory=dict, alias="approvedBlocks")
    user_modified_changes: dict[str, object] = Field(
        default_factory=dict, alias="userModifiedChanges"
    )

    _normalize_ids = field_validator("id", "event_id", "edition_id", mode="before")(_id_to_str)
    _normalize_maps = field_validator(
        "changes", "approved_blocks", "user_modified_changes", mode="before"
    )(_none_to_empty)

    @model_validator(mode="before")
    @classmethod
    def _lift_agent_name(cls, value: object) -> object:
        if isinstance(value, Mapping):
            data = dict(cast(Mapping[str, object], value))
            agent = data.get("agent")
            has_name = data.get("agentName") is not None or data.get("agent_name") is not None
            if not has_name and isinstance(agent, Mapping):
                data["agentName"] = cast(Mapping[str, object], agent).get("name")
            return data
        return value


class ApiEnvelope(ProposalsApiModel):
    success: bool
    data: object = None
    message: str | None = None
    error: str | None = None
