"""
Paladino class definition.

Sports specialist.  Besides its XP skills, a Paladino scales the XP it
contributes to its guild by a multiplier that grows with cumulative
contribution (1.1 up to 1.3; 1.0 outside a guild).
"""

from ..config import (
    ACTIVITY_CLASS_BONUSES,
    PALADINO_ESPIRITO_DE_EQUIPE,
    PALADINO_GUILD_BASE,
    PALADINO_GUILD_STEPS,
    PALADINO_VARIETY_CATEGORIES,
    PALADINO_VERSATILIDADE,
)
from ..models import CharacterClass
from .base import ClassDefinition, ConditionalSkill, RatioSkill


def guild_multiplier(contribution: float | None) -> float:
    """Guild XP multiplier in [1.0, 1.3] for a cumulative contribution."""
    if contribution is None:
        return 1.0
    for minimum, mult in PALADINO_GUILD_STEPS:
        if contribution >= minimum:
            return mult
    return PALADINO_GUILD_BASE if contribution > 0 else 1.0


PALADINO = ClassDefinition(
    character_class=CharacterClass.PALADINO,
    title="Especialista em Esportes",
    skills=(
        RatioSkill(
            name="Espírito de Equipe",
            description="+30% XP de esportes",
            categories=("sports",),
            rate=PALADINO_ESPIRITO_DE_EQUIPE,
        ),
        ConditionalSkill(
            name="Versatilidade",
            description=f"+10% XP com {PALADINO_VARIETY_CATEGORIES}+ categorias no treino",
            rate=PALADINO_VERSATILIDADE,
            condition=lambda ctx: ctx.distinct_categories >= PALADINO_VARIETY_CATEGORIES,
        ),
    ),
    activity_bonuses=ACTIVITY_CLASS_BONUSES["Paladino"],
    guild_multiplier=guild_multiplier,
)
