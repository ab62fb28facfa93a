"""
Guerreiro class definition.

Strength specialist: rewarded for loaded compound and isolation work and
for breaking personal records.
"""

from ..config import ACTIVITY_CLASS_BONUSES, GUERREIRO_FORCA_BRUTA, GUERREIRO_SAINDO_DA_JAULA
from ..models import CharacterClass
from .base import ClassDefinition, ConditionalSkill, RatioSkill

GUERREIRO = ClassDefinition(
    character_class=CharacterClass.GUERREIRO,
    title="Especialista em Força",
    skills=(
        RatioSkill(
            name="Força Bruta",
            description="+20% XP de exercícios de musculação",
            categories=("compound", "strength"),
            rate=GUERREIRO_FORCA_BRUTA,
        ),
        ConditionalSkill(
            name="Saindo da Jaula",
            description="+10% XP por bater recorde pessoal",
            rate=GUERREIRO_SAINDO_DA_JAULA,
            condition=lambda ctx: ctx.has_pr,
        ),
    ),
    activity_bonuses=ACTIVITY_CLASS_BONUSES["Guerreiro"],
)
