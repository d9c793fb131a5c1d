from __future__ import annotations

import json
import logging
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from ideavault import services
from ideavault.config import configure_logging, get_settings
from ideavault.db import Database
from ideavault.errors import ApiError

log = logging.getLogger(__name__)

Result = dict[str, Any] | list[dict[str, Any]]


def _api_error(exc: ApiError) -> dict[str, Any]:
    err: dict[str, Any] = {"error": exc.message}
    if exc.details is not None:
        err["details"] = exc.details
    return err


class IdeaTools:
    """MCP tool implementations bound to one ``Database``.

    Domain failures come back as ``{"error": ..., "details"?: ...}`` so the
    calling agent can read and correct them.
    """

    def __init__(self, database: Database):
        self.database = database

    def _run(self, fn: Callable, *args) -> Result:
        with self.database.session_scope() as session:
            try:
                return fn(session, *args)
            except ApiError as exc:
                return _api_error(exc)

    # -- Ideas ---------------------------------------------------------------

    def list_ideas(self) -> Result:
        """List all ideas, newest first (id, originalIdea, enhancedIdea, createdAt)."""
        return self._run(services.list_ideas)

    def get_idea(self, idea_id: str) -> Result:
        """Get one idea with its scores, improvements, features, tech stack, kanban tickets and user flow."""
        return self._run(services.get_idea, idea_id)

    def create_idea(self, original_idea: str, enhanced_idea: str) -> Result:
        """Create an idea. Both texts must be non-empty."""
        return self._run(services.create_idea, {"originalIdea": original_idea, "enhancedIdea": enhanced_idea})

    def get_board(self, idea_id: str) -> Result:
        """Features grouped by priority, tech stack by category, and tickets by status."""
        return self._run(services.board, idea_id)

    # -- Pipeline stages -----------------------------------------------------

    def add_scores(self, idea_id: str, scores: list[dict[str, Any]]) -> Result:
        """Add scores: [{dimension, score (integer 1-10), justification}]."""
        return self._run(services.append_children, idea_id, "scores", scores)

    def add_improvements(self, idea_id: str, improvements: list[dict[str, Any]]) -> Result:
        """Add improvements: [{dimension, suggestion}]."""
        return self._run(services.append_children, idea_id, "improvements", improvements)

    def add_features(self, idea_id: str, features: list[dict[str, Any]]) -> Result:
        """Add features: [{name, description, priority}], priority one of must-have, should-have, nice-to-have."""
        return self._run(services.append_children, idea_id, "features", features)

    def add_tech_stack(self, idea_id: str, items: list[dict[str, Any]]) -> Result:
        """Add tech stack items: [{category, technology, justification}]."""
        return self._run(services.append_children, idea_id, "techstack", items)

    def replace_user_flow(self, idea_id: str, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]) -> Result:
        """Replace the user flow. nodes: [{id, type, label, description?}], edges: [{id, source, target, label?, condition?}]."""
        return self._run(services.replace_user_flow, idea_id, {"nodes": nodes, "edges": edges})

    # -- Kanban --------------------------------------------------------------

    def add_kanban_tickets(self, idea_id: str, tickets: list[dict[str, Any]]) -> Result:
        """Add tickets: [{title, description, status?, effort?}]. Status defaults to backlog."""
        return self._run(services.append_children, idea_id, "kanban", tickets)

    def update_ticket_status(self, idea_id: str, ticket_id: str, status: str) -> Result:
        """Move a ticket to backlog, todo, in-progress, in-review or done."""
        return self._run(services.update_ticket_status, idea_id, ticket_id, {"status": status})


TOOL_NAMES = (
    "list_ideas", "get_idea", "create_idea", "get_board",
    "add_scores", "add_improvements", "add_features", "add_tech_stack", "replace_user_flow",
    "add_kanban_tickets", "update_ticket_status",
)

OVERVIEW = {
    "system": "IdeaVault: project ideas tracked through a validation pipeline",
    "pipeline": [
        "1. create_idea(original_idea, enhanced_idea)",
        "2. add_scores: rate the idea per dimension (1-10) with a justification",
        "3. add_improvements: one suggestion per weak dimension",
        "4. add_features: MoSCoW-prioritised core features",
        "5. add_tech_stack: technology per category with a justification",
        "6. replace_user_flow: node/edge diagram of the main user journeys",
        "7. add_kanban_tickets, then update_ticket_status as work moves",
    ],
    "priorities": ["must-have", "should-have", "nice-to-have"],
    "ticket_statuses": ["backlog", "todo", "in-progress", "in-review", "done"],
}


def create_mcp(database: Database) -> FastMCP:
    server = FastMCP(
        "IdeaVault",
        instructions=(
            "IdeaVault stores project ideas and their validation pipeline. "
            "Start with list_ideas() or create_idea(), then fill in each stage "
            "for the idea and read it back with get_idea(id)."
        ),
    )
    tools = IdeaTools(database)
    for name in TOOL_NAMES:
        server.add_tool(getattr(tools, name), name=name)

    @server.resource("ideavault://overview")
    def overview() -> str:
        """Pipeline stages and the allowed enum values."""
        return json.dumps(OVERVIEW, indent=2)

    return server


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the IdeaVault MCP server over stdio."""
    settings = get_settings()
    configure_logging(settings.log_level)
    database = Database(settings.database_url, echo=settings.sql_echo)
    database.create_all()
    try:
        create_mcp(database).run()
    finally:
        database.dispose()


if __name__ == "__main__":
    main()
