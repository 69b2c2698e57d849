"""Tool routing module: decides whether a query needs a journal tool."""

from __future__ import annotations

from typing import Any

from .module import BaseModule, Record


class ToolRouterInput(Record):
    query: str
    available_tools: list[str] = []
    current_date: str = ""


class ToolRouterOutput(Record):
    should_use_tool: bool = False
    tool_name: str | None = None
    tool_arguments: dict[str, Any] | None = None


NO_TOOL = ToolRouterOutput(should_use_tool=False, tool_name=None, tool_arguments=None)


TOOL_ROUTER_PROMPT = """You are a routing module that decides whether a user query requires tool usage.

CURRENT DATE: {{currentDate}}

AVAILABLE TOOLS:
- search_journal(query: string): Search journal entries by keyword or topic
- get_insights(type?: "emotions" | "people" | "locations"): Get analytics and patterns from journal
- get_entries_by_date(startDate: string, endDate?: string): Retrieve entries from date range

TOOL SELECTION RULES:
- search_journal: Use when user asks about specific topics, events, or keywords
- get_insights: Use for questions about emotions, people mentioned, places visited, or patterns
- get_entries_by_date: Use for time-based queries like "this week", "last month", specific dates
- No tool needed: General conversation, greetings, follow-up questions, or meta questions about the app

DATE CALCULATIONS (from {{currentDate}}):
- "this week" = last 7 days
- "last week" = 7-14 days ago
- "this month" = last 30 days
- "last month" = 30-60 days ago
- "today" = currentDate only

OUTPUT FORMAT (JSON):
{
  "shouldUseTool": boolean,
  "toolName": string | null,
  "toolArguments": object | null
}"""


class ToolRouterModule(BaseModule[ToolRouterInput, ToolRouterOutput]):
    id = "tool-router"
    signature = "query, availableTools, currentDate -> shouldUseTool, toolName, toolArguments"
    default_prompt = TOOL_ROUTER_PROMPT
    input_model = ToolRouterInput
    output_model = ToolRouterOutput

    # Demo and final user turns carry only the query to keep prompts small.
    def format_demo_input(self, record: ToolRouterInput) -> str:
        return record.query

    def format_user_message(self, record: ToolRouterInput) -> str:
        return record.query

    def default_output(self, content: str) -> ToolRouterOutput:
        return NO_TOOL.model_copy()
