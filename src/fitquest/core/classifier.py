"""
Exercise classification.

Maps a raw exercise (type label + name) onto the semantic category used
by the class bonus rules.  Resolution order:

1. exact match of the type label in TYPE_CATEGORIES
2. keyword match on the exercise name, checked category by category in
   KEYWORD_PRIORITY order (cardio before compound so "rowing" is cardio
   while "barbell row" stays a compound lift)
3. "strength"

Both lookups are case- and diacritics-insensitive.  Classification never
fails.
"""

import unicodedata
from typing import Final

from .models import Category, ExercisePerformance

DEFAULT_CATEGORY: Final[Category] = "strength"

TYPE_CATEGORIES: Final[dict[str, Category]] = {
    "musculacao": "strength",
    "forca": "strength",
    "strength": "strength",
    "weight training": "strength",
    "composto": "compound",
    "compound": "compound",
    "calistenia": "bodyweight",
    "peso corporal": "bodyweight",
    "bodyweight": "bodyweight",
    "cardio": "cardio",
    "flexibilidade & mobilidade": "flexibility",
    "flexibilidade": "flexibility",
    "mobilidade": "flexibility",
    "flexibility": "flexibility",
    "recuperacao": "recovery",
    "recovery": "recovery",
    "esportes": "sports",
    "esporte": "sports",
    "sports": "sports",
}

CATEGORY_KEYWORDS: Final[dict[Category, tuple[str, ...]]] = {
    "recovery": (
        "foam roll", "liberacao miofascial", "massagem", "massage", "sauna",
        "recuperacao", "recovery", "meditacao", "meditation", "respiracao", "breathing",
    ),
    "flexibility": (
        "alongamento", "stretch", "yoga", "mobilidade", "mobility", "pilates",
    ),
    "cardio": (
        "corrida", "running", "jogging", "esteira", "treadmill", "bicicleta", "bike",
        "cycling", "ciclismo", "spinning", "natacao", "swimming", "rowing", "remo",
        "eliptico", "elliptical", "pular corda", "jump rope", "hiit", "caminhada", "sprint",
    ),
    "sports": (
        "futebol", "soccer", "basquete", "basketball", "volei", "volleyball", "tenis",
        "tennis", "handebol", "jiu-jitsu", "judo", "boxe", "boxing", "muay thai",
        "artes marciais", "escalada", "climbing", "surf",
    ),
    "bodyweight": (
        "flexao", "push-up", "pushup", "barra fixa", "pull-up", "pullup", "chin-up",
        "dip", "mergulho", "prancha", "plank", "burpee", "abdominal", "crunch",
        "muscle-up", "pistol", "calistenia",
    ),
    "compound": (
        "agachamento", "squat", "supino", "bench press", "levantamento terra",
        "deadlift", "terra", "desenvolvimento", "overhead press", "military press",
        "remada", "row", "clean", "snatch", "thruster",
    ),
    "strength": (
        "rosca", "curl", "triceps", "extensora", "flexora", "elevacao lateral",
        "lateral raise", "crucifixo", "fly", "pulldown", "puxada", "panturrilha",
        "calf", "leg press", "halter", "dumbbell", "cable",
    ),
}

KEYWORD_PRIORITY: Final[tuple[Category, ...]] = (
    "recovery", "flexibility", "cardio", "sports", "bodyweight", "compound", "strength"
)


def normalize_text(text: str | None) -> str:
    """Lowercase and strip diacritics ("Musculação" -> "musculacao")."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return " ".join(stripped.lower().split())


def classify_name(name: str | None) -> Category | None:
    """Keyword classification of an exercise name; None when nothing matches."""
    lowered = normalize_text(name)
    if not lowered:
        return None
    for category in KEYWORD_PRIORITY:
        if any(keyword in lowered for keyword in CATEGORY_KEYWORDS[category]):
            return category
    return None


def classify(exercise: ExercisePerformance) -> Category:
    """Semantic category of an exercise."""
    type_key = normalize_text(exercise.exercise_type)
    if type_key in TYPE_CATEGORIES:
        return TYPE_CATEGORIES[type_key]
    return classify_name(exercise.name) or DEFAULT_CATEGORY


def category_counts(exercises: list[ExercisePerformance]) -> dict[Category, int]:
    """Number of exercises per category (categories with zero omitted)."""
    counts: dict[Category, int] = {}
    for exercise in exercises:
        category = classify(exercise)
        counts[category] = counts.get(category, 0) + 1
    return counts


def workout_categories(exercises: list[ExercisePerformance]) -> list[Category]:
    """Distinct categories present in a workout, sorted."""
    return sorted(category_counts(exercises))
