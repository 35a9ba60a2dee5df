"""Capability model and matching predicate.

A Capability is something an agent claims it can do ("debugging" in the
coding category at proficiency 5, in Python and Go). A CapabilityRequirement
is what a task asks for; every field is optional and an unset field matches
anything.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from conductor.core.errors import ValidationError

MIN_PROFICIENCY = 1
MAX_PROFICIENCY = 5


class CapabilityCategory(StrEnum):
    """Broad area a capability belongs to."""

    CODING = "coding"
    ANALYSIS = "analysis"
    WRITING = "writing"
    RESEARCH = "research"
    REVIEW = "review"
    TESTING = "testing"
    DEPLOYMENT = "deployment"


@dataclass(frozen=True, slots=True)
class Capability:
    """A skill an agent possesses.

    Attributes:
        category: Broad area of the skill.
        skill: Skill name, e.g. "debugging" or "code-generation".
        proficiency: Self-declared level from 1 (novice) to 5 (expert).
        languages: Programming or natural languages the skill applies to.
        frameworks: Frameworks the skill applies to.
        tools: Tools the agent can use for the skill.
    """

    category: CapabilityCategory
    skill: str
    proficiency: int
    languages: frozenset[str] = field(default_factory=frozenset)
    frameworks: frozenset[str] = field(default_factory=frozenset)
    tools: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not MIN_PROFICIENCY <= self.proficiency <= MAX_PROFICIENCY:
            raise ValidationError(
                f"Proficiency must be between {MIN_PROFICIENCY} and {MAX_PROFICIENCY}",
                field="proficiency",
                value=self.proficiency,
            )
        if not self.skill:
            raise ValidationError("Capability skill must not be empty", field="skill")

    @classmethod
    def of(
        cls,
        category: CapabilityCategory | str,
        skill: str,
        proficiency: int,
        *,
        languages: Iterable[str] = (),
        frameworks: Iterable[str] = (),
        tools: Iterable[str] = (),
    ) -> Capability:
        """Build a capability from loose arguments."""
        return cls(
            category=CapabilityCategory(category),
            skill=skill,
            proficiency=proficiency,
            languages=frozenset(languages),
            frameworks=frozenset(frameworks),
            tools=frozenset(tools),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "skill": self.skill,
            "proficiency": self.proficiency,
            "languages": sorted(self.languages),
            "frameworks": sorted(self.frameworks),
            "tools": sorted(self.tools),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Capability:
        return cls.of(
            data["category"],
            data["skill"],
            data["proficiency"],
            languages=data.get("languages", ()),
            frameworks=data.get("frameworks", ()),
            tools=data.get("tools", ()),
        )


@dataclass(frozen=True, slots=True)
class CapabilityRequirement:
    """What a task needs from an agent.

    Attributes:
        category: Required category, or None for any.
        skill: Required skill name, or None for any.
        languages: At least one of these languages must be supported.
        min_proficiency: Lowest acceptable proficiency, or None for any.
    """

    category: CapabilityCategory | None = None
    skill: str | None = None
    languages: frozenset[str] = field(default_factory=frozenset)
    min_proficiency: int | None = None

    @classmethod
    def of(
        cls,
        *,
        category: CapabilityCategory | str | None = None,
        skill: str | None = None,
        languages: Iterable[str] = (),
        min_proficiency: int | None = None,
    ) -> CapabilityRequirement:
        return cls(
            category=CapabilityCategory(category) if category is not None else None,
            skill=skill,
            languages=frozenset(languages),
            min_proficiency=min_proficiency,
        )

    def is_satisfied_by(self, capability: Capability) -> bool:
        """True when ``capability`` meets every field set on this requirement."""
        if self.category is not None and capability.category != self.category:
            return False
        if self.skill is not None and capability.skill != self.skill:
            return False
        if self.languages and not (self.languages & capability.languages):
            return False
        return self.min_proficiency is None or capability.proficiency >= self.min_proficiency

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value if self.category else None,
            "skill": self.skill,
            "languages": sorted(self.languages),
            "min_proficiency": self.min_proficiency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CapabilityRequirement:
        return cls.of(
            category=data.get("category"),
            skill=data.get("skill"),
            languages=data.get("languages", ()),
            min_proficiency=data.get("min_proficiency"),
        )


def first_match(
    capabilities: Iterable[Capability], requirement: CapabilityRequirement
) -> Capability | None:
    """Return the first capability satisfying ``requirement``, if any."""
    for capability in capabilities:
        if requirement.is_satisfied_by(capability):
            return capability
    return None


def matched_capabilities(
    capabilities: Iterable[Capability], requirements: Iterable[CapabilityRequirement]
) -> list[Capability]:
    """One matching capability per satisfied requirement, in requirement order."""
    capabilities = tuple(capabilities)
    matches = []
    for requirement in requirements:
        match = first_match(capabilities, requirement)
        if match is not None:
            matches.append(match)
    return matches


__all__ = [
    "MAX_PROFICIENCY",
    "MIN_PROFICIENCY",
    "Capability",
    "CapabilityCategory",
    "CapabilityRequirement",
    "first_match",
    "matched_capabilities",
]
