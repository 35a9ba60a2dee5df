"""Agent orchestration: registry, selection strategies and collaboration.

Exports:
    AgentOrchestrator: assigns tasks, tracks load and reassigns on failure
    CollaborationChannel: message logs between agents
    create_strategy: builds one of the five load-balancing strategies
    Agent, Capability, CapabilityRequirement, TaskAssignment: records
"""

from conductor.agents.capability import (
    MAX_PROFICIENCY,
    MIN_PROFICIENCY,
    Capability,
    CapabilityCategory,
    CapabilityRequirement,
    first_match,
    matched_capabilities,
)
from conductor.agents.collaboration import (
    BROADCAST,
    CollaborationChannel,
    CollaborationMessage,
    CollaborationSession,
    CollaborationStatus,
    MessageType,
)
from conductor.agents.defaults import default_agents
from conductor.agents.models import (
    Agent,
    AgentPerformance,
    AgentStatus,
    AgentType,
    AssignmentStatus,
    TaskAssignment,
)
from conductor.agents.orchestrator import (
    NO_AGENT_AVAILABLE,
    AgentLoad,
    AgentOrchestrator,
    WorkloadSummary,
)
from conductor.agents.registry import AgentRegistry
from conductor.agents.selection import (
    CapabilityBasedStrategy,
    HybridStrategy,
    LeastLoadedStrategy,
    PerformanceBasedStrategy,
    RoundRobinStrategy,
    SelectionStrategy,
    create_strategy,
)

__all__ = [
    # Orchestrator
    "NO_AGENT_AVAILABLE",
    "AgentLoad",
    "AgentOrchestrator",
    "AgentRegistry",
    "WorkloadSummary",
    "default_agents",
    # Capabilities
    "MAX_PROFICIENCY",
    "MIN_PROFICIENCY",
    "Capability",
    "CapabilityCategory",
    "CapabilityRequirement",
    "first_match",
    "matched_capabilities",
    # Models
    "Agent",
    "AgentPerformance",
    "AgentStatus",
    "AgentType",
    "AssignmentStatus",
    "TaskAssignment",
    # Selection
    "CapabilityBasedStrategy",
    "HybridStrategy",
    "LeastLoadedStrategy",
    "PerformanceBasedStrategy",
    "RoundRobinStrategy",
    "SelectionStrategy",
    "create_strategy",
    # Collaboration
    "BROADCAST",
    "CollaborationChannel",
    "CollaborationMessage",
    "CollaborationSession",
    "CollaborationStatus",
    "MessageType",
]
