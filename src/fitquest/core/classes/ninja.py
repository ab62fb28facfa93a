"""
Ninja class definition.

Cardio specialist: conditioning work and short, intense sessions.
"""

from ..config import (
    ACTIVITY_CLASS_BONUSES,
    NINJA_GOLPE_RAPIDO,
    NINJA_PASSOS_SILENCIOSOS,
    NINJA_SHORT_WORKOUT_SECONDS,
)
from ..models import CharacterClass
from .base import ClassDefinition, ConditionalSkill, RatioSkill

NINJA = ClassDefinition(
    character_class=CharacterClass.NINJA,
    title="Especialista em Cardio",
    skills=(
        RatioSkill(
            name="Passos Silenciosos",
            description="+20% XP de exercícios de cardio",
            categories=("cardio",),
            rate=NINJA_PASSOS_SILENCIOSOS,
        ),
        ConditionalSkill(
            name="Golpe Rápido",
            description="+10% XP em treinos de até 30 minutos",
            rate=NINJA_GOLPE_RAPIDO,
            condition=lambda ctx: 0 < ctx.duration_seconds <= NINJA_SHORT_WORKOUT_SECONDS,
        ),
    ),
    activity_bonuses=ACTIVITY_CLASS_BONUSES["Ninja"],
)
