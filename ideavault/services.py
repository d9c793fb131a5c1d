"""Shared business logic for the IdeaVault API and MCP server.

Every function takes an open ``Session``; the caller owns the transaction
boundary except where a docstring says a function commits.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ideavault.errors import NotFound, RelationMismatch, ValidationFailed
from ideavault.models import Feature, Idea, Improvement, KanbanTicket, Score, TechStackItem
from ideavault.schemas import PRIORITIES, TICKET_STATUSES
from ideavault.utils import isoformat, json_parse, utcnow
from ideavault.validation import Invalid, validate

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------


def _child_base(row) -> dict[str, Any]:
    return {"id": row.id, "ideaId": row.idea_id, "createdAt": isoformat(row.created_at)}


def score_dict(row: Score) -> dict[str, Any]:
    return {**_child_base(row), "dimension": row.dimension, "score": row.score,
            "justification": row.justification}


def improvement_dict(row: Improvement) -> dict[str, Any]:
    return {**_child_base(row), "dimension": row.dimension, "suggestion": row.suggestion}


def feature_dict(row: Feature) -> dict[str, Any]:
    return {**_child_base(row), "name": row.name, "description": row.description,
            "priority": row.priority}


def tech_stack_dict(row: TechStackItem) -> dict[str, Any]:
    return {**_child_base(row), "category": row.category, "technology": row.technology,
            "justification": row.justification}


def ticket_dict(row: KanbanTicket) -> dict[str, Any]:
    return {**_child_base(row), "title": row.title, "description": row.description,
            "status": row.status, "effort": row.effort}


def idea_summary(idea: Idea) -> dict[str, Any]:
    return {
        "id": idea.id,
        "originalIdea": idea.original_idea,
        "enhancedIdea": idea.enhanced_idea,
        "createdAt": isoformat(idea.created_at),
    }


def user_flow_value(idea: Idea) -> dict | None:
    if idea.user_flow_json is None:
        return None
    return json_parse(idea.user_flow_json, None)


def idea_detail(idea: Idea) -> dict[str, Any]:
    return {
        **idea_summary(idea),
        "userFlow": user_flow_value(idea),
        "scores": [score_dict(s) for s in idea.scores],
        "improvements": [improvement_dict(i) for i in idea.improvements],
        "features": [feature_dict(f) for f in idea.features],
        "techStack": [tech_stack_dict(t) for t in idea.tech_stack],
        "kanbanTickets": [ticket_dict(t) for t in idea.kanban_tickets],
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_entity(session: Session, model, entity_id: str):
    return session.execute(select(model).where(model.id == entity_id)).scalars().first()


def require_idea(session: Session, idea_id: str) -> Idea:
    idea = get_entity(session, Idea, idea_id)
    if idea is None:
        raise NotFound("Idea")
    return idea


def _validated(kind: str, payload: Any):
    result = validate(kind, payload)
    if isinstance(result, Invalid):
        raise ValidationFailed(result.details)
    return result.value


# ---------------------------------------------------------------------------
# Ideas
# ---------------------------------------------------------------------------


def create_idea(session: Session, payload: Any) -> dict[str, Any]:
    """Validate and persist a new idea (commits)."""
    body = _validated("idea", payload)
    idea = Idea(original_idea=body.original_idea, enhanced_idea=body.enhanced_idea)
    session.add(idea)
    session.commit()
    log.info("Created idea %s", idea.id)
    return {**idea_summary(idea), "userFlow": None}


def list_ideas(session: Session) -> list[dict[str, Any]]:
    rows = session.execute(
        select(Idea.id, Idea.original_idea, Idea.enhanced_idea, Idea.created_at)
        .order_by(Idea.created_at.desc())
    ).all()
    return [
        {"id": r.id, "originalIdea": r.original_idea, "enhancedIdea": r.enhanced_idea,
         "createdAt": isoformat(r.created_at)}
        for r in rows
    ]


def get_idea(session: Session, idea_id: str) -> dict[str, Any]:
    return idea_detail(require_idea(session, idea_id))


# ---------------------------------------------------------------------------
# Batch append
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChildKind:
    model: type
    attr: str
    fields: tuple[str, ...]
    serialize: Callable[[Any], dict[str, Any]]


CHILD_KINDS: dict[str, ChildKind] = {
    "scores": ChildKind(Score, "scores", ("dimension", "score", "justification"), score_dict),
    "improvements": ChildKind(Improvement, "improvements", ("dimension", "suggestion"), improvement_dict),
    "features": ChildKind(Feature, "features", ("name", "description", "priority"), feature_dict),
    "techstack": ChildKind(TechStackItem, "tech_stack", ("category", "technology", "justification"), tech_stack_dict),
    "kanban": ChildKind(KanbanTicket, "kanban_tickets", ("title", "description", "status", "effort"), ticket_dict),
}


def append_children(session: Session, idea_id: str, kind: str, payload: Any) -> list[dict[str, Any]]:
    """Insert a whole batch of child rows under an idea (commits).

    The idea is checked first, then every item is validated; nothing is
    written unless the entire batch is valid.
    """
    child = CHILD_KINDS[kind]
    idea = require_idea(session, idea_id)
    items = _validated(kind, payload)
    batch_time = utcnow()
    rows = [
        child.model(
            idea_id=idea_id, position=idx, created_at=batch_time,
            **{f: getattr(item, f) for f in child.fields},
        )
        for idx, item in enumerate(items)
    ]
    session.add_all(rows)
    session.commit()
    session.expire(idea, [child.attr])
    log.info("Added %d %s to idea %s", len(rows), kind, idea_id)
    return [child.serialize(r) for r in rows]


# ---------------------------------------------------------------------------
# Kanban tickets
# ---------------------------------------------------------------------------


def update_ticket_status(session: Session, idea_id: str, ticket_id: str, payload: Any) -> dict[str, Any]:
    """Move a ticket to any status (commits).

    Checks run in order: idea exists, ticket exists, ticket belongs to the
    idea, body is valid.
    """
    require_idea(session, idea_id)
    ticket = get_entity(session, KanbanTicket, ticket_id)
    if ticket is None:
        raise NotFound("Ticket")
    if ticket.idea_id != idea_id:
        raise RelationMismatch("Ticket does not belong to this idea")
    body = _validated("ticket_status", payload)
    previous = ticket.status
    ticket.status = body.status
    session.commit()
    log.debug("Ticket %s: %s -> %s", ticket_id, previous, body.status)
    return ticket_dict(ticket)


# ---------------------------------------------------------------------------
# User flow
# ---------------------------------------------------------------------------


def replace_user_flow(session: Session, idea_id: str, payload: Any) -> dict[str, Any]:
    """Overwrite an idea's whole user flow diagram (commits)."""
    idea = require_idea(session, idea_id)
    flow = _validated("userflow", payload)
    idea.user_flow_json = json.dumps(flow.model_dump(by_alias=True, exclude_none=True))
    session.commit()
    log.info("Replaced user flow of idea %s (%d nodes, %d edges)", idea_id, len(flow.nodes), len(flow.edges))
    return {"id": idea.id, "userFlow": user_flow_value(idea)}


# ---------------------------------------------------------------------------
# Board (grouped view)
# ---------------------------------------------------------------------------


def group_by(rows: list[dict], key: str, keys: tuple[str, ...] = ()) -> dict[str, list[dict]]:
    """Bucket *rows* by ``row[key]``. Buckets named in *keys* always exist and come first."""
    groups: dict[str, list[dict]] = {k: [] for k in keys}
    for row in rows:
        groups.setdefault(row[key], []).append(row)
    return groups


def board(session: Session, idea_id: str) -> dict[str, Any]:
    idea = require_idea(session, idea_id)
    return {
        "id": idea.id,
        "featuresByPriority": group_by([feature_dict(f) for f in idea.features], "priority", PRIORITIES),
        "techStackByCategory": group_by([tech_stack_dict(t) for t in idea.tech_stack], "category"),
        "ticketsByStatus": group_by([ticket_dict(t) for t in idea.kanban_tickets], "status", TICKET_STATUSES),
    }
