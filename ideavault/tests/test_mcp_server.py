"""Tests for the MCP tool layer."""
from __future__ import annotations

import asyncio

import pytest

from ideavault.db import Database
from ideavault.mcp_server import TOOL_NAMES, IdeaTools, create_mcp


@pytest.fixture()
def database():
    db = Database.in_memory()
    yield db
    db.dispose()


@pytest.fixture()
def tools(database) -> IdeaTools:
    return IdeaTools(database)


@pytest.fixture()
def idea_id(tools) -> str:
    return tools.create_idea("Recipe swap", "Neighbourhood recipe exchange with ratings")["id"]


class TestIdeaTools:
    def test_create_and_list(self, tools, idea_id):
        ideas = tools.list_ideas()
        assert [i["id"] for i in ideas] == [idea_id]

    def test_create_invalid(self, tools):
        result = tools.create_idea("", "enhanced")
        assert result["error"] == "Validation failed"
        assert "originalIdea" in result["details"]["fieldErrors"]
        assert tools.list_ideas() == []

    def test_get_missing(self, tools):
        assert tools.get_idea("missing") == {"error": "Idea not found"}

    def test_full_pipeline(self, tools, idea_id):
        assert len(tools.add_scores(idea_id, [
            {"dimension": "Market Fit", "score": 7, "justification": "busy parents"},
        ])) == 1
        tools.add_improvements(idea_id, [{"dimension": "Market Fit", "suggestion": "Target schools"}])
        tools.add_features(idea_id, [{"name": "Swap", "description": "Trade recipes", "priority": "must-have"}])
        tools.add_tech_stack(idea_id, [{"category": "Mobile", "technology": "Flutter", "justification": "one codebase"}])
        flow = tools.replace_user_flow(idea_id, [{"id": "n1", "type": "start", "label": "Open"}], [])
        assert flow["userFlow"]["nodes"][0]["label"] == "Open"
        ticket = tools.add_kanban_tickets(idea_id, [{"title": "Auth", "description": "Login"}])[0]
        assert ticket["status"] == "backlog"
        moved = tools.update_ticket_status(idea_id, ticket["id"], "in-review")
        assert moved["status"] == "in-review"

        idea = tools.get_idea(idea_id)
        assert len(idea["scores"]) == 1
        assert len(idea["improvements"]) == 1
        assert len(idea["features"]) == 1
        assert len(idea["techStack"]) == 1
        assert idea["kanbanTickets"][0]["status"] == "in-review"

        board = tools.get_board(idea_id)
        assert [t["title"] for t in board["ticketsByStatus"]["in-review"]] == ["Auth"]

    def test_batch_error_dict(self, tools, idea_id):
        result = tools.add_scores(idea_id, [{"dimension": "x", "score": 12, "justification": "j"}])
        assert result["error"] == "Validation failed"
        assert "0.score" in result["details"]["fieldErrors"]

    def test_ticket_mismatch(self, tools, idea_id):
        ticket = tools.add_kanban_tickets(idea_id, [{"title": "t", "description": "d"}])[0]
        other = tools.create_idea("o", "e")["id"]
        assert tools.update_ticket_status(other, ticket["id"], "done") == {
            "error": "Ticket does not belong to this idea",
        }


class TestCreateMcp:
    def test_registers_all_tools(self, database):
        server = create_mcp(database)
        listed = asyncio.run(server.list_tools())
        assert {t.name for t in listed} == set(TOOL_NAMES)

    def test_tool_descriptions(self, database):
        server = create_mcp(database)
        listed = {t.name: t for t in asyncio.run(server.list_tools())}
        assert "1-10" in listed["add_scores"].description
