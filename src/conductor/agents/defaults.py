"""Built-in agent roster.

Three general-purpose profiles registered by
``AgentOrchestrator.register_default_agents``: an architecture and review
specialist, a versatile implementer, and a fast high-throughput agent.
"""

from __future__ import annotations

from conductor.agents.capability import Capability, CapabilityCategory
from conductor.agents.models import Agent, AgentPerformance, AgentType


def default_agents() -> list[Agent]:
    """Return fresh copies of the built-in agents."""
    return [
        Agent(
            id="claude-3-opus",
            name="Claude (Opus)",
            type=AgentType.CLAUDE,
            capabilities=(
                Capability.of(CapabilityCategory.ANALYSIS, "system_design", 5),
                Capability.of(CapabilityCategory.CODING, "architecture", 5),
                Capability.of(CapabilityCategory.WRITING, "documentation", 5),
                Capability.of(CapabilityCategory.REVIEW, "code_review", 4),
                Capability.of(
                    CapabilityCategory.CODING,
                    "implementation",
                    4,
                    languages=("typescript", "python", "rust", "go"),
                    frameworks=("react", "node", "django", "fastapi"),
                ),
            ),
            max_concurrent_tasks=3,
            performance=AgentPerformance(
                average_completion_time_minutes=30,
                success_rate_percent=95,
                per_skill_success_rate={
                    "system_design": 98,
                    "documentation": 96,
                    "code_review": 94,
                },
            ),
            preferred_task_types=("architecture", "design", "review"),
        ),
        Agent(
            id="gpt-4-turbo",
            name="GPT-4 Turbo",
            type=AgentType.GPT,
            capabilities=(
                Capability.of(CapabilityCategory.CODING, "implementation", 4),
                Capability.of(CapabilityCategory.RESEARCH, "web_search", 5),
                Capability.of(CapabilityCategory.ANALYSIS, "data_analysis", 4),
                Capability.of(CapabilityCategory.TESTING, "test_generation", 4),
                Capability.of(
                    CapabilityCategory.CODING,
                    "debugging",
                    4,
                    languages=("javascript", "python", "java", "c++"),
                    frameworks=("express", "flask", "spring", "tensorflow"),
                ),
            ),
            max_concurrent_tasks=5,
            performance=AgentPerformance(
                average_completion_time_minutes=25,
                success_rate_percent=92,
                per_skill_success_rate={
                    "implementation": 93,
                    "debugging": 91,
                    "test_generation": 90,
                },
            ),
            preferred_task_types=("implementation", "debugging", "testing"),
        ),
        Agent(
            id="gemini-pro",
            name="Gemini Pro",
            type=AgentType.GEMINI,
            capabilities=(
                Capability.of(CapabilityCategory.CODING, "refactoring", 4),
                Capability.of(CapabilityCategory.ANALYSIS, "performance_optimization", 4),
                Capability.of(CapabilityCategory.RESEARCH, "quick_answers", 5),
                Capability.of(
                    CapabilityCategory.CODING,
                    "script_automation",
                    4,
                    languages=("python", "bash", "javascript"),
                    tools=("git", "docker", "kubernetes"),
                ),
            ),
            max_concurrent_tasks=10,
            performance=AgentPerformance(
                average_completion_time_minutes=15,
                success_rate_percent=90,
                per_skill_success_rate={
                    "refactoring": 92,
                    "performance_optimization": 89,
                    "script_automation": 91,
                },
            ),
            preferred_task_types=("refactoring", "optimization", "automation"),
        ),
    ]


__all__ = ["default_agents"]
