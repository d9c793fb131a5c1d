"""Pydantic request/response schemas for the IdeaVault API.

Payloads are camelCase on the wire; fields are snake_case in Python.
"""
from __future__ import annotations

from typing import Annotated, Generic, Literal, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

NonEmptyStr = Annotated[str, Field(strict=True, min_length=1)]
# Optional keys may be omitted but never sent as null.
OptionalStr = Annotated[str, Field(strict=True)]

Priority = Literal["must-have", "should-have", "nice-to-have"]
TicketStatus = Literal["backlog", "todo", "in-progress", "in-review", "done"]

PRIORITIES: tuple[str, ...] = ("must-have", "should-have", "nice-to-have")
TICKET_STATUSES: tuple[str, ...] = ("backlog", "todo", "in-progress", "in-review", "done")


def _whole_number(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


ScoreValue = Annotated[int, Field(strict=True, ge=1, le=10), BeforeValidator(_whole_number)]


class _Camel(BaseModel):
    """Request payloads: accepted only under their camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel)


class _CamelOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class IdeaCreate(_Camel):
    original_idea: NonEmptyStr
    enhanced_idea: NonEmptyStr


class ScoreIn(_Camel):
    dimension: NonEmptyStr
    score: ScoreValue
    justification: NonEmptyStr


class ImprovementIn(_Camel):
    dimension: NonEmptyStr
    suggestion: NonEmptyStr


class FeatureIn(_Camel):
    name: NonEmptyStr
    description: NonEmptyStr
    priority: Priority


class TechStackItemIn(_Camel):
    category: NonEmptyStr
    technology: NonEmptyStr
    justification: NonEmptyStr


class KanbanTicketIn(_Camel):
    title: NonEmptyStr
    description: NonEmptyStr
    status: TicketStatus = "backlog"
    effort: OptionalStr = None


class TicketStatusUpdate(_Camel):
    status: TicketStatus


class FlowNode(_Camel):
    id: NonEmptyStr
    type: NonEmptyStr
    label: NonEmptyStr
    description: OptionalStr = None


class FlowEdge(_Camel):
    id: NonEmptyStr
    source: NonEmptyStr
    target: NonEmptyStr
    label: OptionalStr = None
    condition: OptionalStr = None


class UserFlow(_Camel):
    nodes: list[FlowNode]
    edges: list[FlowEdge]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class IdeaOut(_CamelOut):
    id: str
    original_idea: str
    enhanced_idea: str
    created_at: str


class _ChildOut(_CamelOut):
    id: str
    idea_id: str
    created_at: str


class ScoreOut(_ChildOut):
    dimension: str
    score: int
    justification: str


class ImprovementOut(_ChildOut):
    dimension: str
    suggestion: str


class FeatureOut(_ChildOut):
    name: str
    description: str
    priority: str


class TechStackItemOut(_ChildOut):
    category: str
    technology: str
    justification: str


class KanbanTicketOut(_ChildOut):
    title: str
    description: str
    status: str
    effort: str | None = None


class IdeaRecord(IdeaOut):
    user_flow: dict | None = None


class IdeaDetail(IdeaRecord):
    scores: list[ScoreOut] = []
    improvements: list[ImprovementOut] = []
    features: list[FeatureOut] = []
    tech_stack: list[TechStackItemOut] = []
    kanban_tickets: list[KanbanTicketOut] = []


class UserFlowOut(_CamelOut):
    id: str
    user_flow: dict | None = None


class BoardOut(_CamelOut):
    id: str
    features_by_priority: dict[str, list[FeatureOut]]
    tech_stack_by_category: dict[str, list[TechStackItemOut]]
    tickets_by_status: dict[str, list[KanbanTicketOut]]


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ErrorOut(BaseModel):
    success: bool = False
    error: str
    details: dict | None = None
