"""
Monge class definition.

Calisthenics specialist: bodyweight work and day-after-day consistency.
"""

from ..config import (
    ACTIVITY_CLASS_BONUSES,
    MONGE_DISCIPLINA,
    MONGE_MESTRE_DO_CORPO,
    MONGE_STREAK_THRESHOLD,
)
from ..models import CharacterClass
from .base import ClassDefinition, ConditionalSkill, RatioSkill

MONGE = ClassDefinition(
    character_class=CharacterClass.MONGE,
    title="Especialista em Calistenia",
    skills=(
        RatioSkill(
            name="Mestre do Corpo",
            description="+20% XP de exercícios com peso corporal",
            categories=("bodyweight",),
            rate=MONGE_MESTRE_DO_CORPO,
        ),
        ConditionalSkill(
            name="Disciplina",
            description=f"+10% XP com sequência de {MONGE_STREAK_THRESHOLD}+ dias",
            rate=MONGE_DISCIPLINA,
            condition=lambda ctx: ctx.streak >= MONGE_STREAK_THRESHOLD,
        ),
    ),
    activity_bonuses=ACTIVITY_CLASS_BONUSES["Monge"],
)
