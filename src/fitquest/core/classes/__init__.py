"""
Character class definitions for fitquest.

Each class is described by a ClassDefinition holding its passive skills
and the hooks the XP engine consults.
"""

from .base import ClassDefinition, PassiveSkill, SkillContext
from .registry import CLASS_REGISTRY, get_class_rules

__all__ = [
    "ClassDefinition",
    "PassiveSkill",
    "SkillContext",
    "CLASS_REGISTRY",
    "get_class_rules",
]
