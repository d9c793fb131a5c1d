"""Payload validation returning a tagged result instead of raising.

``validate(kind, payload)`` gives back either ``Valid(value)`` holding the
parsed pydantic object(s) or ``Invalid(details)`` holding a flattened error
map::

    {"formErrors": ["..."], "fieldErrors": {"0.score": ["..."]}}

``formErrors`` collects problems with the payload as a whole (bad JSON, not a
list, empty list); ``fieldErrors`` is keyed by the dotted location of the
offending field, list indices included.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Generic, TypeVar

from pydantic import Field, TypeAdapter, ValidationError

from ideavault.schemas import (
    FeatureIn,
    IdeaCreate,
    ImprovementIn,
    KanbanTicketIn,
    ScoreIn,
    TechStackItemIn,
    TicketStatusUpdate,
    UserFlow,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Valid(Generic[T]):
    value: T
    ok = True


@dataclass(frozen=True)
class Invalid:
    details: dict[str, Any]
    ok = False


def _batch(item_model: type) -> TypeAdapter:
    return TypeAdapter(Annotated[list[item_model], Field(min_length=1)])


ADAPTERS: dict[str, TypeAdapter] = {
    "idea": TypeAdapter(IdeaCreate),
    "scores": _batch(ScoreIn),
    "improvements": _batch(ImprovementIn),
    "features": _batch(FeatureIn),
    "techstack": _batch(TechStackItemIn),
    "kanban": _batch(KanbanTicketIn),
    "ticket_status": TypeAdapter(TicketStatusUpdate),
    "userflow": TypeAdapter(UserFlow),
}


def flatten_errors(exc: ValidationError) -> dict[str, Any]:
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors(include_url=False):
        loc = ".".join(str(part) for part in err["loc"])
        if loc:
            field_errors.setdefault(loc, []).append(err["msg"])
        else:
            form_errors.append(err["msg"])
    return {"formErrors": form_errors, "fieldErrors": field_errors}


def validate(kind: str, payload: Any) -> Valid | Invalid:
    """Validate *payload* for *kind*; raw ``bytes``/``str`` are parsed as JSON first."""
    adapter = ADAPTERS[kind]
    try:
        if isinstance(payload, (bytes, bytearray, str)):
            value = adapter.validate_json(payload)
        else:
            value = adapter.validate_python(payload)
    except ValidationError as exc:
        return Invalid(flatten_errors(exc))
    return Valid(value)
