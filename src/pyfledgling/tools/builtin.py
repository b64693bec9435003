from __future__ import annotations

from .registry import ToolRegistry
from .base import Tool

from .builtin_tools.files import ListFilesTool, ReadLinesTool, ReadAsTableTool
from .builtin_tools.code import FindDefinitionsTool, FindCallsTool, FindImportsTool, CodeStructureTool
from .builtin_tools.docs import MDOutlineTool, MDSectionTool
from .builtin_tools.git import (
    GitChangesTool, GitBranchesTool, GitStatusTool, GitDiffSummaryTool, GitDiffFileTool,
)
from .builtin_tools.help_tool import HelpTool
from .builtin_tools.chat import ChatSessionsTool, ChatSearchTool, ChatToolUsageTool, ChatDetailTool
from .builtin_tools.sql_tools import QuerySqlTool, DescribeTool, ListTablesTool

def builtin_tools() -> list[Tool]:
    return [
        ListFilesTool(),
        ReadLinesTool(),
        ReadAsTableTool(),
        FindDefinitionsTool(),
        FindCallsTool(),
        FindImportsTool(),
        CodeStructureTool(),
        MDOutlineTool(),
        MDSectionTool(),
        GitChangesTool(),
        GitBranchesTool(),
        GitStatusTool(),
        GitDiffSummaryTool(),
        GitDiffFileTool(),
        HelpTool(),
        ChatSessionsTool(),
        ChatSearchTool(),
        ChatToolUsageTool(),
        ChatDetailTool(),
        QuerySqlTool(),
        DescribeTool(),
        ListTablesTool(),
    ]

SQL_TOOL_NAMES = ["query", "describe", "list_tables"]
CORE_TOOL_NAMES = [t.spec.name for t in builtin_tools() if t.spec.name not in SQL_TOOL_NAMES]

def register_builtin_tools(registry: ToolRegistry) -> None:
    for tool in builtin_tools():
        registry.register(tool)
