"""Built-in workflow templates.

Three linear templates ship with the engine: feature development, bug fix
and research. BuiltinTemplateProvider serves them (plus any extra templates
handed to it) through the TemplateProvider protocol.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from conductor.agents.capability import CapabilityCategory, CapabilityRequirement
from conductor.workflow.models import StepBlueprint, StepType, WorkflowTemplate, WorkflowType


def _needs(category: CapabilityCategory, skill: str) -> tuple[CapabilityRequirement, ...]:
    return (CapabilityRequirement.of(category=category, skill=skill),)


FEATURE_DEVELOPMENT = WorkflowTemplate(
    id="feature-development",
    name="Feature Development",
    description="Standard workflow for implementing new features",
    type=WorkflowType.FEATURE,
    steps=(
        StepBlueprint(
            name="Requirements Analysis",
            description="Analyze and clarify feature requirements",
            required_capabilities=_needs(CapabilityCategory.ANALYSIS, "system_design"),
        ),
        StepBlueprint(
            name="Technical Design",
            description="Create technical design and architecture",
            dependencies=("Requirements Analysis",),
            required_capabilities=_needs(CapabilityCategory.CODING, "architecture"),
        ),
        StepBlueprint(
            name="Implementation",
            description="Implement the feature",
            dependencies=("Technical Design",),
            required_capabilities=_needs(CapabilityCategory.CODING, "implementation"),
        ),
        StepBlueprint(
            name="Testing",
            description="Write and run tests",
            dependencies=("Implementation",),
            required_capabilities=_needs(CapabilityCategory.TESTING, "test_generation"),
        ),
        StepBlueprint(
            name="Code Review",
            description="Review implementation",
            type=StepType.HUMAN_REVIEW,
            dependencies=("Testing",),
            required_capabilities=_needs(CapabilityCategory.REVIEW, "code_review"),
        ),
        StepBlueprint(
            name="Documentation",
            description="Update documentation",
            dependencies=("Code Review",),
            required_capabilities=_needs(CapabilityCategory.WRITING, "documentation"),
        ),
    ),
    estimated_duration_minutes=240,
    required_inputs=("requirements", "project_context"),
    expected_outputs=("implementation", "tests", "documentation"),
)

BUG_FIX = WorkflowTemplate(
    id="bug-fix",
    name="Bug Fix",
    description="Workflow for fixing bugs",
    type=WorkflowType.BUGFIX,
    steps=(
        StepBlueprint(
            name="Reproduce Issue",
            description="Reproduce and understand the bug",
            required_capabilities=_needs(CapabilityCategory.CODING, "debugging"),
        ),
        StepBlueprint(
            name="Root Cause Analysis",
            description="Identify root cause",
            dependencies=("Reproduce Issue",),
            required_capabilities=_needs(CapabilityCategory.CODING, "debugging"),
        ),
        StepBlueprint(
            name="Fix Implementation",
            description="Implement the fix",
            dependencies=("Root Cause Analysis",),
            required_capabilities=_needs(CapabilityCategory.CODING, "implementation"),
        ),
        StepBlueprint(
            name="Regression Testing",
            description="Test fix and check for regressions",
            dependencies=("Fix Implementation",),
            required_capabilities=_needs(CapabilityCategory.TESTING, "test_generation"),
        ),
        StepBlueprint(
            name="Verification",
            description="Verify bug is fixed",
            type=StepType.HUMAN_REVIEW,
            dependencies=("Regression Testing",),
            required_capabilities=_needs(CapabilityCategory.REVIEW, "code_review"),
        ),
    ),
    estimated_duration_minutes=120,
    required_inputs=("bug_description", "reproduction_steps"),
    expected_outputs=("fix", "tests", "verification"),
)

RESEARCH = WorkflowTemplate(
    id="research",
    name="Research Task",
    description="Workflow for research and investigation",
    type=WorkflowType.RESEARCH,
    steps=(
        StepBlueprint(
            name="Define Scope",
            description="Define research scope and objectives",
            required_capabilities=_needs(CapabilityCategory.ANALYSIS, "system_design"),
        ),
        StepBlueprint(
            name="Information Gathering",
            description="Gather relevant information",
            dependencies=("Define Scope",),
            required_capabilities=_needs(CapabilityCategory.RESEARCH, "web_search"),
        ),
        StepBlueprint(
            name="Analysis",
            description="Analyze findings",
            dependencies=("Information Gathering",),
            required_capabilities=_needs(CapabilityCategory.ANALYSIS, "data_analysis"),
        ),
        StepBlueprint(
            name="Recommendations",
            description="Formulate recommendations",
            dependencies=("Analysis",),
            required_capabilities=_needs(CapabilityCategory.ANALYSIS, "system_design"),
        ),
        StepBlueprint(
            name="Report Generation",
            description="Generate research report",
            dependencies=("Recommendations",),
            required_capabilities=_needs(CapabilityCategory.WRITING, "documentation"),
        ),
    ),
    estimated_duration_minutes=180,
    required_inputs=("research_question", "context"),
    expected_outputs=("report", "recommendations", "evidence"),
)

BUILTIN_TEMPLATES: tuple[WorkflowTemplate, ...] = (FEATURE_DEVELOPMENT, BUG_FIX, RESEARCH)


class BuiltinTemplateProvider:
    """TemplateProvider over the built-in templates.

    Args:
        extra: Additional templates; an id that clashes with a built-in
            replaces it.
    """

    def __init__(self, extra: Iterable[WorkflowTemplate] = ()) -> None:
        self._templates: dict[str, WorkflowTemplate] = {t.id: t for t in BUILTIN_TEMPLATES}
        for template in extra:
            self._templates[template.id] = template

    def get_template(self, template_id: str) -> WorkflowTemplate | None:
        return self._templates.get(template_id)

    def list_templates(self) -> Sequence[WorkflowTemplate]:
        return list(self._templates.values())


__all__ = [
    "BUG_FIX",
    "BUILTIN_TEMPLATES",
    "FEATURE_DEVELOPMENT",
    "RESEARCH",
    "BuiltinTemplateProvider",
]
