"""
Unit tests for the fitquest rules: classification, class bonuses, streak
and level curves, rank ladder, base workout XP and the helpers around them.

Hand-computed expected values are given in comments.
"""

import warnings

import pytest

from fitquest.core.catalog import achievement_from_dict, load_catalog
from fitquest.core.class_bonus import ClassBonusCalculator, apply_class_bonuses
from fitquest.core.classes.paladino import guild_multiplier
from fitquest.core.classes.registry import CLASS_REGISTRY, get_class_rules
from fitquest.core.classifier import category_counts, classify, normalize_text, workout_categories
from fitquest.core.config import (
    DAILY_XP_CAP,
    MAX_LEVEL,
    POWER_DAY_XP_CAP,
    EngineRules,
    level_for_xp,
    next_rank,
    points_to_next_rank,
    rank_for_points,
    round_xp,
    xp_for_level,
)
from fitquest.core.engine.config_loader import _load_yaml_file, get_default_rules, load_rules
from fitquest.core.errors import CatalogError
from fitquest.core.models import CharacterClass, ExercisePerformance, SetEntry, WorkoutRecord
from fitquest.core.streak import crossed_milestones, get_streak_multiplier
from fitquest.core.xp_engine import calculate_workout_xp, level_info_for
from fitquest.io.cache import TTLCache
from fitquest.io.serializers import (
    ValidationError,
    coerce_number,
    dict_to_workout,
    normalize_difficulty,
    parse_exercise_option,
    parse_sets_string,
)


# ===========================================================================
# Helpers
# ===========================================================================

@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("FITQUEST_HOME", str(tmp_path / "home"))
    get_default_rules.cache_clear()
    yield
    get_default_rules.cache_clear()


def _exercise(name: str, exercise_type: str | None = None, sets: int = 3, weight: float = 0.0) -> ExercisePerformance:
    return ExercisePerformance(
        exercise_id=name.lower(),
        name=name,
        exercise_type=exercise_type,
        sets=[SetEntry(weight=weight, reps=10, completed=True) for _ in range(sets)],
    )


def _workout(*exercises: ExercisePerformance, minutes: int = 0, difficulty: str = "intermediate") -> WorkoutRecord:
    return WorkoutRecord(
        id="w1",
        owner_id="ana",
        exercises=list(exercises),
        duration_seconds=minutes * 60,
        difficulty=difficulty,
    )


# ===========================================================================
# classifier.py
# ===========================================================================

class TestClassifier:
    """type table → name keywords → strength"""

    def test_type_table_wins(self):
        assert classify(_exercise("Supino Reto", "Musculação")) == "strength"
        assert classify(_exercise("Qualquer", "Flexibilidade & Mobilidade")) == "flexibility"
        assert classify(_exercise("Qualquer", "Esportes")) == "sports"

    def test_keyword_match_ignores_case_and_diacritics(self):
        assert classify(_exercise("Flexão de Braço")) == "bodyweight"
        assert classify(_exercise("CORRIDA na esteira")) == "cardio"
        assert classify(_exercise("Meditação guiada")) == "recovery"

    def test_rowing_is_cardio_but_barbell_row_is_compound(self):
        assert classify(_exercise("Rowing machine")) == "cardio"
        assert classify(_exercise("Remada Curvada")) == "compound"

    def test_unknown_defaults_to_strength(self):
        assert classify(_exercise("Xyzzy")) == "strength"
        assert classify(ExercisePerformance(exercise_id="x", name="")) == "strength"

    def test_unknown_type_falls_through_to_keywords(self):
        assert classify(_exercise("Agachamento livre", "Outro")) == "compound"

    def test_normalize_text(self):
        assert normalize_text("  Musculação   PESADA ") == "musculacao pesada"
        assert normalize_text(None) == ""

    def test_category_counts(self):
        counts = category_counts([_exercise("Supino"), _exercise("Agachamento"), _exercise("Corrida")])
        assert counts == {"compound": 2, "cardio": 1}

    def test_workout_categories_are_distinct(self):
        exercises = [_exercise("Corrida"), _exercise("Supino"), _exercise("Agachamento")]
        assert workout_categories(exercises) == ["cardio", "compound"]
        assert workout_categories([]) == []


# ===========================================================================
# class_bonus.py
# ===========================================================================

class TestClassBonuses:
    """bonus = Σ round(base × multiplier) over the skills that fire"""

    def test_no_class_gives_nothing(self):
        result = apply_class_bonuses(100, _workout(_exercise("Supino")), None)
        assert result.bonus_xp == 0
        assert result.breakdown == []

    def test_guerreiro_full_strength_with_pr(self):
        # Força Bruta 0.20 × 1.0 × 100 = 20, Saindo da Jaula 0.10 × 100 = 10
        workout = _workout(_exercise("Supino", "Musculação"), _exercise("Agachamento"))
        result = apply_class_bonuses(100, workout, CharacterClass.GUERREIRO, has_pr=True)
        assert result.bonus_xp == 30
        assert [e.skill for e in result.breakdown] == ["Força Bruta", "Saindo da Jaula"]

    def test_guerreiro_without_pr_only_ratio(self):
        # half the exercises are strength: 0.20 × 0.5 × 100 = 10
        workout = _workout(_exercise("Supino"), _exercise("Corrida"))
        result = apply_class_bonuses(100, workout, "Guerreiro")
        assert result.bonus_xp == 10

    def test_monge_ratio_and_discipline(self):
        # Mestre do Corpo 0.20 × 0.5 × 100 = 10, Disciplina (streak 7) 10
        workout = _workout(_exercise("Flexão"), _exercise("Supino"))
        result = apply_class_bonuses(100, workout, CharacterClass.MONGE, streak=7)
        assert result.bonus_xp == 20

    def test_monge_discipline_needs_streak(self):
        workout = _workout(_exercise("Flexão"))
        result = apply_class_bonuses(100, workout, CharacterClass.MONGE, streak=6)
        assert [e.skill for e in result.breakdown] == ["Mestre do Corpo"]

    def test_ninja_cardio_and_short_workout(self):
        # Passos Silenciosos 0.20 × 1.0 × 50 = 10, Golpe Rápido 0.10 × 50 = 5
        workout = _workout(_exercise("Corrida"), minutes=20)
        result = apply_class_bonuses(50, workout, CharacterClass.NINJA)
        assert result.bonus_xp == 15

    def test_ninja_long_workout_no_quick_strike(self):
        workout = _workout(_exercise("Corrida"), minutes=45)
        result = apply_class_bonuses(50, workout, CharacterClass.NINJA)
        assert [e.skill for e in result.breakdown] == ["Passos Silenciosos"]

    def test_bruxo_flexibility_ratio(self):
        # 0.30 × 2/3 × 100 = 20
        workout = _workout(_exercise("Yoga"), _exercise("Alongamento"), _exercise("Supino"))
        result = apply_class_bonuses(100, workout, CharacterClass.BRUXO)
        assert result.bonus_xp == 20

    def test_paladino_sports_and_variety(self):
        # Espírito de Equipe 0.30 × 1/3 × 90 = 9, Versatilidade 0.10 × 90 = 9
        workout = _workout(_exercise("Futebol"), _exercise("Corrida"), _exercise("Supino"))
        result = apply_class_bonuses(90, workout, CharacterClass.PALADINO)
        assert result.bonus_xp == 18

    def test_zero_base_or_empty_workout(self):
        assert apply_class_bonuses(0, _workout(_exercise("Supino")), "Guerreiro").bonus_xp == 0
        assert apply_class_bonuses(100, _workout(), "Guerreiro", has_pr=True).bonus_xp == 0

    def test_breakdown_sums_to_bonus(self):
        workouts = [
            _workout(_exercise("Supino"), _exercise("Yoga"), _exercise("Futebol"), minutes=25),
            _workout(_exercise("Flexão"), _exercise("Corrida"), _exercise("Sauna"), minutes=10),
            _workout(_exercise("Remada"), _exercise("Burpee"), _exercise("Natação"), _exercise("Tênis")),
        ]
        for user_class in CharacterClass:
            for workout in workouts:
                for base in (7, 33, 101, 250):
                    result = apply_class_bonuses(base, workout, user_class, streak=9, has_pr=True)
                    assert sum(e.bonus_xp for e in result.breakdown) == result.bonus_xp

    def test_activity_bonus_keyword(self):
        # Bruxo yoga 0.40 × 100 = 40
        result = ClassBonusCalculator.for_class("Bruxo").apply_activity_bonus(100, "Yoga ao ar livre")
        assert result.bonus_xp == 40
        assert result.breakdown[0].skill == "Atividade: yoga"

    def test_activity_bonus_no_match(self):
        result = ClassBonusCalculator.for_class("Guerreiro").apply_activity_bonus(100, "yoga")
        assert result.bonus_xp == 0


class TestClassRegistry:
    def test_every_class_registered(self):
        assert set(CLASS_REGISTRY) == set(CharacterClass)

    def test_lookup_is_case_insensitive(self):
        assert get_class_rules("paladino").character_class is CharacterClass.PALADINO

    def test_no_class(self):
        assert get_class_rules(None) is None
        assert get_class_rules("none") is None

    def test_unknown_class_raises(self):
        with pytest.raises(ValueError):
            get_class_rules("Bardo")

    def test_only_bruxo_preserves_streak(self):
        preserving = [c for c in CharacterClass if ClassBonusCalculator.for_class(c).preserves_streak]
        assert preserving == [CharacterClass.BRUXO]


class TestGuildMultiplier:
    """1.0 outside a guild, then 1.1 / 1.2 / 1.3 by cumulative contribution"""

    @pytest.mark.parametrize("contribution,expected", [
        (None, 1.0),
        (0.0, 1.0),
        (1.0, 1.1),
        (499.0, 1.1),
        (500.0, 1.2),
        (999.0, 1.2),
        (1000.0, 1.3),
        (50000.0, 1.3),
    ])
    def test_steps(self, contribution, expected):
        assert guild_multiplier(contribution) == pytest.approx(expected)

    def test_other_classes_do_not_scale(self):
        assert ClassBonusCalculator.for_class("Guerreiro").guild_multiplier(2000.0) == 1.0
        assert ClassBonusCalculator.for_class(None).guild_multiplier(2000.0) == 1.0


# ===========================================================================
# streak.py
# ===========================================================================

class TestStreakMultiplier:
    def test_breakpoints(self):
        assert get_streak_multiplier(0) == 1.0
        assert get_streak_multiplier(2) == 1.0
        assert get_streak_multiplier(3) == pytest.approx(1.05)
        assert get_streak_multiplier(7) == pytest.approx(1.10)
        assert get_streak_multiplier(29) == pytest.approx(1.15)
        assert get_streak_multiplier(100) == pytest.approx(1.50)
        assert get_streak_multiplier(365) == pytest.approx(1.50)

    def test_monotonic(self):
        values = [get_streak_multiplier(s) for s in range(0, 200)]
        assert all(a <= b for a, b in zip(values, values[1:]))
        assert min(values) >= 1.0

    def test_crossed_milestones(self):
        assert crossed_milestones(5, 10) == [7]
        assert crossed_milestones(6, 14) == [7, 14]
        assert crossed_milestones(7, 7) == []
        assert crossed_milestones(0, 100) == [7, 14, 30, 60, 100]


# ===========================================================================
# config.py: level curve and rank ladder
# ===========================================================================

class TestLevelCurve:
    """xp(L) = round(100 × (L − 1)^1.5)"""

    def test_thresholds(self):
        assert xp_for_level(1) == 0
        assert xp_for_level(2) == 100
        assert xp_for_level(3) == 283  # 100 × 2^1.5 = 282.8
        assert xp_for_level(5) == 800

    def test_level_for_xp(self):
        assert level_for_xp(0) == 1
        assert level_for_xp(99) == 1
        assert level_for_xp(100) == 2
        assert level_for_xp(282) == 2
        assert level_for_xp(283) == 3

    def test_capped_at_max_level(self):
        assert level_for_xp(10**9) == MAX_LEVEL

    def test_curve_is_strictly_increasing(self):
        values = [xp_for_level(level) for level in range(1, MAX_LEVEL + 1)]
        assert all(a < b for a, b in zip(values, values[1:]))

    def test_level_info(self):
        info = level_info_for(150)
        assert info.level == 2
        assert info.xp_into_level == 50
        assert info.xp_to_next_level == 133
        assert level_info_for(10**9).next_level_xp is None


class TestRankLadder:
    @pytest.mark.parametrize("points,rank", [
        (0, "Unranked"),
        (9, "Unranked"),
        (10, "E"),
        (49, "E"),
        (50, "D"),
        (100, "C"),
        (250, "B"),
        (999, "A"),
        (1000, "S"),
        (9999, "S"),
    ])
    def test_rank_for_points(self, points, rank):
        assert rank_for_points(points) == rank

    def test_next_rank(self):
        assert next_rank("Unranked") == "E"
        assert next_rank("A") == "S"
        assert next_rank("S") is None

    def test_points_to_next_rank(self):
        assert points_to_next_rank(0) == 10
        assert points_to_next_rank(260) == 240
        assert points_to_next_rank(1000) is None


# ===========================================================================
# xp_engine.py: base workout XP
# ===========================================================================

class TestBaseWorkoutXP:
    """round((min(n,10)·10 + min(sets,40)·2 + min(min,90)) · difficulty)"""

    def test_intermediate_workout(self):
        # (3·10 + 9·2 + 45) × 1.2 = 93 × 1.2 = 111.6 → 112
        workout = _workout(_exercise("A"), _exercise("B"), _exercise("C"), minutes=45)
        assert calculate_workout_xp(workout) == 112

    def test_difficulty_tiers(self):
        workout = _workout(_exercise("A"), _exercise("B"), _exercise("C"), minutes=45)
        assert calculate_workout_xp(workout, "beginner") == 93
        assert calculate_workout_xp(workout, "advanced") == 140  # 139.5 rounds up

    def test_unknown_difficulty_uses_intermediate(self):
        workout = _workout(_exercise("A"), minutes=10, difficulty="heroic")
        assert calculate_workout_xp(workout) == calculate_workout_xp(workout, "intermediate")

    def test_no_exercises_is_zero(self):
        assert calculate_workout_xp(_workout(minutes=60)) == 0

    def test_components_are_capped(self):
        # 15 exercises × 4 sets = 60 sets, 200 min → 100 + 80 + 90 = 270
        exercises = [_exercise(f"E{i}", sets=4) for i in range(15)]
        workout = _workout(*exercises, minutes=200, difficulty="beginner")
        assert calculate_workout_xp(workout) == 270

    def test_incomplete_sets_do_not_count(self):
        exercise = ExercisePerformance(
            exercise_id="a",
            name="A",
            sets=[SetEntry(10, 10, True), SetEntry(10, 10, False)],
        )
        # (10 + 2) × 1.0
        assert calculate_workout_xp(_workout(exercise, difficulty="beginner")) == 12

    def test_caps_defaults(self):
        rules = EngineRules()
        assert rules.daily_xp_cap == DAILY_XP_CAP == 500
        assert rules.power_day_xp_cap == POWER_DAY_XP_CAP == 750


class TestRoundXP:
    def test_half_up(self):
        assert round_xp(2.5) == 3
        assert round_xp(0.5) == 1
        assert round_xp(2.4999) == 2

    def test_never_negative(self):
        assert round_xp(-3.0) == 0
        assert round_xp(0.0) == 0


# ===========================================================================
# engine/config_loader.py
# ===========================================================================

class TestRulesLoader:
    def test_empty_config_gives_defaults(self):
        assert load_rules({}) == EngineRules()

    def test_overrides(self):
        rules = load_rules({
            "caps": {"daily_xp_cap": 400, "power_day_xp_cap": 600},
            "streaks": {"multiplier_steps": [{"min_streak": 2, "multiplier": 1.2}]},
        })
        assert rules.daily_xp_cap == 400
        assert rules.power_day_xp_cap == 600
        assert rules.streak_multiplier_steps == ((2, 1.2),)

    def test_invalid_values_warn_and_fall_back(self):
        with pytest.warns(UserWarning):
            rules = load_rules({"caps": {"daily_xp_cap": 900, "power_day_xp_cap": 100}})
        assert rules == EngineRules()

    def test_malformed_yaml_is_ignored(self, tmp_path):
        bad = tmp_path / "rules.yaml"
        bad.write_text("caps: [unclosed\n")
        with pytest.warns(UserWarning):
            assert _load_yaml_file(bad) == {}

    def test_bundled_rules_match_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FITQUEST_HOME", str(tmp_path))
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert load_rules() == EngineRules()

    def test_default_rules_read_user_overrides(self, tmp_path):
        home = tmp_path / "home"
        home.mkdir()
        (home / "rules.yaml").write_text("caps:\n  daily_xp_cap: 20\n")
        get_default_rules.cache_clear()
        assert get_default_rules().daily_xp_cap == 20
        assert get_default_rules() is get_default_rules()


# ===========================================================================
# catalog.py
# ===========================================================================

def _definition(**overrides) -> dict:
    entry = {
        "id": "cardio-10",
        "name": "Fôlego",
        "category": "workout_categories",
        "rank": "D",
        "points": 25,
        "requirement_type": "category_workouts",
        "workout_category": "cardio",
        "requirement_value": 10,
    }
    entry.update(overrides)
    return entry


class TestCatalog:
    def test_bundled_catalog_loads(self):
        catalog = load_catalog()
        assert "first-workout" in catalog
        assert catalog.get("compound-10").workout_category == "compound"
        assert [d.requirement_value for d in catalog.by_requirement("category_variety")] == [3, 5, 7]

    def test_category_workouts_needs_a_known_category(self):
        assert achievement_from_dict(_definition()).workout_category == "cardio"
        with pytest.raises(ValueError):
            achievement_from_dict(_definition(workout_category=None))
        with pytest.raises(ValueError):
            achievement_from_dict(_definition(workout_category="juggling"))

    def test_other_requirements_ignore_category(self):
        definition = achievement_from_dict(
            _definition(requirement_type="category_variety", workout_category=None, requirement_value=3)
        )
        assert definition.workout_category is None

    def test_broken_user_entry_skipped(self, tmp_path):
        user = tmp_path / "achievements.yaml"
        user.write_text(
            "achievements:\n"
            "  - id: cardio-10\n"
            "    workout_category: juggling\n"
            "  - id: cardio-3\n"
            "    name: Trote\n"
            "    category: workout_categories\n"
            "    rank: E\n"
            "    points: 10\n"
            "    requirement_type: category_workouts\n"
            "    workout_category: cardio\n"
            "    requirement_value: 3\n"
        )
        with pytest.warns(UserWarning, match="cardio-10"):
            catalog = load_catalog(user_path=user)
        assert catalog.get("cardio-10").workout_category == "cardio"
        assert catalog.get("cardio-3").requirement_value == 3

    def test_unknown_achievement(self):
        with pytest.raises(CatalogError):
            load_catalog().get("nope")


# ===========================================================================
# io/serializers.py
# ===========================================================================

class TestSerializers:
    def test_coerce_number(self):
        assert coerce_number("80") == 80.0
        assert coerce_number("80,5") == 80.5
        assert coerce_number(" 12.5 ") == 12.5
        assert coerce_number("abc") == 0.0
        assert coerce_number(None) == 0.0
        assert coerce_number(-5) == 0.0
        assert coerce_number(True) == 0.0

    def test_free_text_sets_become_numbers(self):
        workout = dict_to_workout({
            "id": "w9",
            "exercises": [
                {"name": "Supino", "sets": [{"weight": "80kg", "reps": "8"}, {"weight": "85", "reps": ""}]},
            ],
            "duration_seconds": "oops",
            "difficulty": "Avançado",
        }, owner_id="ana")
        sets = workout.exercises[0].sets
        assert (sets[0].weight, sets[0].reps) == (0.0, 8)
        assert (sets[1].weight, sets[1].reps) == (85.0, 0)
        assert workout.duration_seconds == 0
        assert workout.difficulty == "advanced"
        assert workout.owner_id == "ana"
        assert workout.exercises[0].exercise_id == "Supino"

    def test_workout_without_id_rejected(self):
        with pytest.raises(ValidationError):
            dict_to_workout({"exercises": []})

    def test_difficulty_aliases(self):
        assert normalize_difficulty("iniciante") == "beginner"
        assert normalize_difficulty("Intermediário") == "intermediate"
        assert normalize_difficulty(None) == "intermediate"

    def test_parse_sets_string(self):
        sets = parse_sets_string("80x8, 85x6,12")
        assert [(s.weight, s.reps) for s in sets] == [(80.0, 8), (85.0, 6), (0.0, 12)]
        assert all(s.completed for s in sets)

    def test_parse_sets_string_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_sets_string("heavy")

    def test_parse_exercise_option(self):
        exercise = parse_exercise_option("Supino Reto:Musculação=80x8,82.5x6")
        assert exercise.name == "Supino Reto"
        assert exercise.exercise_id == "supino-reto"
        assert exercise.exercise_type == "Musculação"
        assert exercise.max_weight == 82.5


# ===========================================================================
# io/cache.py
# ===========================================================================

class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTTLCache:
    def test_entries_expire(self):
        timer = FakeTimer()
        cache = TTLCache(maxsize=4, ttl_seconds=10, timer=timer)
        cache.set(("ana", "prs"), {"a": 1})
        timer.now = 9.9
        assert cache.get(("ana", "prs")) == {"a": 1}
        timer.now = 10.0
        assert cache.get(("ana", "prs")) is None

    def test_oldest_entry_evicted(self):
        cache = TTLCache(maxsize=2, ttl_seconds=60, timer=FakeTimer())
        cache.set(("a",), 1)
        cache.set(("b",), 2)
        cache.get(("a",))  # a is now the most recent
        cache.set(("c",), 3)
        assert cache.get(("b",)) is None
        assert cache.get(("a",)) == 1
        assert len(cache) == 2

    def test_invalidate_user(self):
        cache = TTLCache(timer=FakeTimer())
        cache.set(("ana", "prs"), 1)
        cache.set(("ana", "other"), 2)
        cache.set(("bia", "prs"), 3)
        cache.invalidate_user("ana")
        assert cache.get(("ana", "prs")) is None
        assert cache.get(("bia", "prs")) == 3

    def test_maxsize_must_be_positive(self):
        with pytest.raises(ValueError):
            TTLCache(maxsize=0)
