"""
Class registry.

Every character class is registered here.  The rules for a user are
resolved once, when their class is known, via get_class_rules(); nothing
downstream re-dispatches on the class name.
"""

from ..models import CharacterClass
from .base import ClassDefinition
from .bruxo import BRUXO
from .guerreiro import GUERREIRO
from .monge import MONGE
from .ninja import NINJA
from .paladino import PALADINO

CLASS_REGISTRY: dict[CharacterClass, ClassDefinition] = {
    definition.character_class: definition
    for definition in (GUERREIRO, MONGE, NINJA, BRUXO, PALADINO)
}


def get_class_rules(user_class: CharacterClass | str | None) -> ClassDefinition | None:
    """
    Return the ClassDefinition for a class, or None for users without one.

    Raises:
        ValueError: If the class name is not registered
    """
    parsed = CharacterClass.parse(user_class)
    if parsed is None:
        return None
    return CLASS_REGISTRY[parsed]
