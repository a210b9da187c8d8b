"""Prompt templates for planning, task execution and recovery."""

from __future__ import annotations

import json
import textwrap
from typing import Mapping

from .planning.schema import Plan, PlanTask, TaskResult

PLAN_RESPONSE_SCHEMA = textwrap.dedent(
    """
    {
        "mainGoal": "Brief description of the overall goal",
        "taskBreakdown": [
            {
                "id": "task1",
                "type": "CODE_MODIFICATION | FILE_CREATION | CODE_ANALYSIS | REFACTORING",
                "description": "Detailed description of what needs to be done",
                "priority": "HIGH | MEDIUM | LOW",
                "dependencies": [],
                "estimatedComplexity": "HIGH | MEDIUM | LOW"
            }
        ],
        "contextRequired": [
            "Files or glob patterns needed to complete these tasks"
        ],
        "risksAndConsiderations": [
            "Potential issues to watch for"
        ]
    }
    """
).strip()

FILE_BLOCK_INSTRUCTION = textwrap.dedent(
    """
    ## Instructions
    1. Analyze the task and context carefully.
    2. For file creation or modification, provide the complete file content in a fenced code block.
    3. Put each file in its own block, with the workspace-relative path as the first line:

    ```python
    path/to/file.py
    # complete file content here
    ```

    4. Follow the project's existing code style and architecture.
    5. If you encounter issues, explain them and propose solutions.

    Files are created or updated automatically from your response, so write complete
    implementations with all imports rather than stubs.
    """
).strip()


def render_planning_prompt(request: str) -> str:
    """Ask the backend to break ``request`` down into a structured plan."""
    return "\n\n".join(
        [
            "I need to plan a coding task based on the following request. "
            "Analyze it and create a detailed plan.",
            f"## User Request\n{request.strip()}",
            "## Response Format\nRespond with a single JSON object in this format, "
            "optionally wrapped in a ```json fenced block:\n"
            f"{PLAN_RESPONSE_SCHEMA}",
            "Think step by step about which files need to be created or modified. "
            "Every dependency must reference the id of another task in the same plan.",
        ]
    )


def render_task_prompt(
    task: PlanTask,
    plan: Plan,
    dependency_results: Mapping[str, TaskResult | None],
    context: Mapping[str, str],
) -> str:
    """Build the grounded prompt used to execute a single task."""
    sections = [
        "I need you to execute the following task as part of a larger plan.",
        f"## Plan Overview\n{plan.main_goal}",
        render_task_identity(task, include_priority=True),
    ]
    if task.dependencies:
        sections.append(f"## Dependent Task Results\n{_render_dependency_results(dependency_results)}")
    sections.append(f"## Context Information\n{render_context_blocks(context)}")
    sections.append(FILE_BLOCK_INSTRUCTION)
    sections.append("Think step-by-step about the implementation.")
    return "\n\n".join(sections)


def render_recovery_prompt(task: PlanTask, error_message: str, plan: Plan) -> str:
    """Build the single re-grounding prompt used after a task failure."""
    return "\n\n".join(
        [
            "A task has failed and needs recovery. Here are the details.",
            render_task_identity(task, include_priority=False),
            f"## Error\n{error_message}",
            f"## Plan Context\n{plan.main_goal}",
            "Analyze what went wrong and provide a corrected implementation that avoids this error. "
            "Consider what caused the error, how to fix it, and a complete implementation that "
            "works around the issue.",
            "Provide your solution in fenced code blocks with the file path as the first line.",
        ]
    )


def render_task_identity(task: PlanTask, *, include_priority: bool) -> str:
    lines = [
        "## Current Task",
        f"ID: {task.id}",
        f"Type: {task.kind_label}",
        f"Description: {task.description}",
    ]
    if include_priority:
        lines.append(f"Priority: {task.priority.value}")
    return "\n".join(lines)


def render_context_blocks(context: Mapping[str, str]) -> str:
    """Render gathered files as labeled fenced blocks."""
    if not context:
        return "(no context files)"
    blocks = [f"### File: {path}\n```\n{content}\n```" for path, content in context.items()]
    return "\n\n".join(blocks)


def _render_dependency_results(results: Mapping[str, TaskResult | None]) -> str:
    payload = {
        task_id: (result.model_dump(mode="json") if result is not None else None)
        for task_id, result in results.items()
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


__all__ = [
    "FILE_BLOCK_INSTRUCTION",
    "PLAN_RESPONSE_SCHEMA",
    "render_context_blocks",
    "render_planning_prompt",
    "render_recovery_prompt",
    "render_task_identity",
    "render_task_prompt",
]
