"""Conductor core module - shared types, errors, protocols and concurrency helpers."""

from conductor.core.background import BackgroundDispatcher
from conductor.core.errors import (
    CollaborationClosedError,
    ConductorError,
    ConfigError,
    DependenciesNotMetError,
    DuplicateTaskError,
    GuardNotMetError,
    InvalidAssignmentStateError,
    InvalidStepStateError,
    InvalidTransitionError,
    NoAgentAvailableError,
    OrchestrationError,
    PersistenceError,
    UnknownAgentError,
    UnknownCollaborationError,
    UnknownStepError,
    UnknownTaskError,
    UnknownTemplateError,
    UnknownWorkflowError,
    ValidationError,
    WorkflowError,
    WorkflowValidationError,
)
from conductor.core.locks import LockRegistry
from conductor.core.protocols import (
    Artifact,
    ContextStore,
    EventObserver,
    NullContextStore,
    NullStateStore,
    StateStore,
    TaskContextStatus,
    TaskContextUpdate,
    TemplateProvider,
)
from conductor.core.types import (
    Clock,
    LoadBalancingStrategy,
    Payload,
    Priority,
    Result,
    SuccessRateMode,
    utc_now,
)

__all__ = [
    # Types
    "Result",
    "Payload",
    "Clock",
    "Priority",
    "LoadBalancingStrategy",
    "SuccessRateMode",
    "utc_now",
    # Errors
    "ConductorError",
    "ConfigError",
    "PersistenceError",
    "ValidationError",
    "WorkflowValidationError",
    "WorkflowError",
    "InvalidTransitionError",
    "GuardNotMetError",
    "UnknownWorkflowError",
    "UnknownStepError",
    "UnknownTemplateError",
    "DependenciesNotMetError",
    "InvalidStepStateError",
    "OrchestrationError",
    "UnknownAgentError",
    "UnknownTaskError",
    "DuplicateTaskError",
    "InvalidAssignmentStateError",
    "NoAgentAvailableError",
    "UnknownCollaborationError",
    "CollaborationClosedError",
    # Collaborators
    "ContextStore",
    "StateStore",
    "TemplateProvider",
    "EventObserver",
    "NullContextStore",
    "NullStateStore",
    "TaskContextUpdate",
    "TaskContextStatus",
    "Artifact",
    # Concurrency
    "LockRegistry",
    "BackgroundDispatcher",
]
