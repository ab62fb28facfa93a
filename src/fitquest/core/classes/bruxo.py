"""
Bruxo class definition.

Flexibility and recovery specialist.  The only class allowed to keep a
streak alive across a single missed day (once per ISO week, see
core/streak.py).
"""

from ..config import ACTIVITY_CLASS_BONUSES, BRUXO_FLUXO_ARCANO
from ..models import CharacterClass
from .base import ClassDefinition, RatioSkill

BRUXO = ClassDefinition(
    character_class=CharacterClass.BRUXO,
    title="Especialista em Magia Arcana",
    skills=(
        RatioSkill(
            name="Fluxo Arcano",
            description="+30% XP de flexibilidade e recuperação",
            categories=("flexibility", "recovery"),
            rate=BRUXO_FLUXO_ARCANO,
        ),
    ),
    activity_bonuses=ACTIVITY_CLASS_BONUSES["Bruxo"],
    preserves_streak=True,
)
