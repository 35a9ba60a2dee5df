"""Workflow engine: a state machine over a DAG of steps.

Exports:
    WorkflowEngine: creates workflows and drives their lifecycle
    WorkflowStateMachine, TRANSITIONS: the transition table
    BuiltinTemplateProvider: the built-in template catalogue
    Workflow, WorkflowStep, StepBlueprint, WorkflowTemplate: records
"""

from conductor.workflow.engine import PAUSED_BLOCKER, WorkflowEngine, WorkflowStatusReport
from conductor.workflow.graph import (
    StepGraph,
    dependencies_met,
    pending_dependencies,
    resolve,
    validate_steps,
)
from conductor.workflow.models import (
    ArtifactRecord,
    StepBlueprint,
    StepStatus,
    StepType,
    Trigger,
    Workflow,
    WorkflowMetrics,
    WorkflowState,
    WorkflowStep,
    WorkflowTemplate,
    WorkflowType,
)
from conductor.workflow.state_machine import TRANSITIONS, Transition, WorkflowStateMachine
from conductor.workflow.templates import (
    BUG_FIX,
    BUILTIN_TEMPLATES,
    FEATURE_DEVELOPMENT,
    RESEARCH,
    BuiltinTemplateProvider,
)

__all__ = [
    # Engine
    "PAUSED_BLOCKER",
    "WorkflowEngine",
    "WorkflowStatusReport",
    # State machine
    "TRANSITIONS",
    "Transition",
    "WorkflowStateMachine",
    # Graph
    "StepGraph",
    "dependencies_met",
    "pending_dependencies",
    "resolve",
    "validate_steps",
    # Models
    "ArtifactRecord",
    "StepBlueprint",
    "StepStatus",
    "StepType",
    "Trigger",
    "Workflow",
    "WorkflowMetrics",
    "WorkflowState",
    "WorkflowStep",
    "WorkflowTemplate",
    "WorkflowType",
    # Templates
    "BUG_FIX",
    "BUILTIN_TEMPLATES",
    "FEATURE_DEVELOPMENT",
    "RESEARCH",
    "BuiltinTemplateProvider",
]
