"""Goal-conditioned feedback for the previous day's log per category."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

from daylog.core.categories import DIET, EXERCISE, SLEEP, WATER, UnknownCategoryError


class Goal(str, Enum):
    GENERAL = "general"
    LOSE_WEIGHT = "lose_weight"
    BUILD_MUSCLE = "build_muscle"
    SLEEP_BETTER = "sleep_better"
    HYDRATE_MORE = "hydrate_more"


class Tone(str, Enum):
    POSITIVE = "positive"
    ENCOURAGE = "encourage"
    NEUTRAL = "neutral"


GOAL_LABELS = {
    Goal.LOSE_WEIGHT: ("Lose Weight", "Dial in nutrition for fat loss."),
    Goal.BUILD_MUSCLE: ("Build Muscle", "Focus on training and fueling."),
    Goal.SLEEP_BETTER: ("Improve Sleep", "Prioritise consistent rest."),
    Goal.HYDRATE_MORE: ("Stay Hydrated", "Keep fluids topped up daily."),
    Goal.GENERAL: ("Balanced Health", "Keep everything on an even keel."),
}


@dataclass(frozen=True)
class FeedbackResult:
    message: str
    tone: Tone

    def as_dict(self) -> Dict[str, str]:
        payload = asdict(self)
        payload["tone"] = self.tone.value
        return payload


INITIAL_FEEDBACK: Dict[str, FeedbackResult] = {
    WATER: FeedbackResult("Log a few days to see hydration feedback.", Tone.NEUTRAL),
    DIET: FeedbackResult("Log yesterday's meals to get calorie guidance.", Tone.NEUTRAL),
    EXERCISE: FeedbackResult("Track workouts to unlock tailored coaching.", Tone.NEUTRAL),
    SLEEP: FeedbackResult("Record sleep to get bedtime coaching.", Tone.NEUTRAL),
}

WATER_TARGETS = {Goal.HYDRATE_MORE: 10}
WATER_DEFAULT_TARGET = 8

CALORIE_RANGES = {
    Goal.LOSE_WEIGHT: (1400, 1800),
    Goal.BUILD_MUSCLE: (2200, 2800),
}
CALORIE_DEFAULT_RANGE = (1800, 2200)

SLEEP_RANGE = (7, 9)

CARDIO_TARGETS = {
    Goal.BUILD_MUSCLE: 20,
    Goal.LOSE_WEIGHT: 30,
}
CARDIO_DEFAULT_TARGET = 25


def parse_goal(raw) -> Goal:
    try:
        return Goal(raw)
    except ValueError:
        return Goal.GENERAL


def water_target(goal: Goal) -> int:
    return WATER_TARGETS.get(goal, WATER_DEFAULT_TARGET)


def calorie_range(goal: Goal) -> Tuple[int, int]:
    return CALORIE_RANGES.get(goal, CALORIE_DEFAULT_RANGE)


def sleep_range(goal: Goal) -> Tuple[int, int]:
    return SLEEP_RANGE


def cardio_target(goal: Goal) -> int:
    return CARDIO_TARGETS.get(goal, CARDIO_DEFAULT_TARGET)


def to_number(value) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0


def _fmt(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plural(count, singular, plural) -> str:
    return singular if count == 1 else plural


def water_feedback(goal: Goal, values: Mapping[str, Any] | None) -> FeedbackResult:
    glasses = to_number(values.get("glasses")) if values else 0
    target = water_target(goal)
    if not glasses:
        return FeedbackResult(
            "No water logged yesterday. Capture today's glasses to stay hydrated.",
            Tone.ENCOURAGE,
        )
    amount = f"{_fmt(glasses)} {_plural(glasses, 'glass', 'glasses')}"
    if glasses >= target:
        return FeedbackResult(f"Great job! You drank {amount} yesterday. Keep it up.", Tone.POSITIVE)
    if goal == Goal.LOSE_WEIGHT:
        focus = "Hydration helps fat loss, so aim for "
    elif goal == Goal.HYDRATE_MORE:
        focus = "Let's hit "
    else:
        focus = "Shoot for "
    return FeedbackResult(
        f"Yesterday came in at {amount}. {focus}{target}+ glasses today.",
        Tone.ENCOURAGE,
    )


def diet_feedback(goal: Goal, values: Mapping[str, Any] | None) -> FeedbackResult:
    calories = to_number(values.get("calories")) if values else 0
    low, high = calorie_range(goal)
    if not calories:
        return FeedbackResult(
            "No calories logged yesterday. Log meals to unlock tailored nudges.",
            Tone.ENCOURAGE,
        )
    amount = _fmt(calories)
    if low <= calories <= high:
        return FeedbackResult(f"Right on target at {amount} kcal yesterday. Nice discipline!", Tone.POSITIVE)
    if calories > high:
        if goal == Goal.LOSE_WEIGHT:
            reason = f"To support weight loss aim for {low}-{high} kcal."
        elif goal == Goal.BUILD_MUSCLE:
            reason = f"Lean gains love {low}-{high} kcal of quality fuel."
        else:
            reason = f"A good range is roughly {low}-{high} kcal."
        return FeedbackResult(f"Yesterday we ate {amount} kcal. {reason}", Tone.ENCOURAGE)
    if goal == Goal.BUILD_MUSCLE:
        lift = f"Muscle growth needs at least {low} kcal, so add a solid meal."
    else:
        lift = f"Let's aim for about {low}-{high} kcal to stay energised."
    return FeedbackResult(f"Calories landed at {amount} kcal. {lift}", Tone.ENCOURAGE)


def sleep_feedback(goal: Goal, values: Mapping[str, Any] | None) -> FeedbackResult:
    hours = to_number(values.get("hours")) if values else 0
    low, high = sleep_range(goal)
    if not hours:
        return FeedbackResult(
            "No sleep logged last night. Add it tonight to see recovery tips.",
            Tone.ENCOURAGE,
        )
    amount = f"{_fmt(hours)} {_plural(hours, 'hour', 'hours')}"
    if low <= hours <= high:
        return FeedbackResult(
            f"Last night you slept {amount}, right in the sweet {low}-{high} hour zone.",
            Tone.POSITIVE,
        )
    if hours < low:
        if goal == Goal.SLEEP_BETTER:
            focus = "Let's guard your bedtime and wind down earlier."
        else:
            focus = "Carve out a little more rest to stay sharp."
        return FeedbackResult(
            f"Last night came in at {amount}. Aim for {low}-{high} to feel your best. {focus}",
            Tone.ENCOURAGE,
        )
    return FeedbackResult(
        f"You logged {amount}. If you feel groggy, try settling around {low}-{high} hours.",
        Tone.NEUTRAL,
    )


def exercise_feedback(goal: Goal, values: Mapping[str, Any] | None) -> FeedbackResult:
    completed = bool(values.get("workoutCompleted")) if values else False
    minutes = to_number(values.get("cardioMinutes")) if values else 0
    target = cardio_target(goal)

    if not completed and minutes <= 0:
        if goal == Goal.BUILD_MUSCLE:
            cue = "Lift or move today to build momentum."
        elif goal == Goal.LOSE_WEIGHT:
            cue = "A brisk 30 minute session will keep the scale trending down."
        else:
            cue = "Schedule today's movement to stay consistent."
        return FeedbackResult(f"No workout logged yesterday. {cue}", Tone.ENCOURAGE)

    if completed and minutes >= target:
        return FeedbackResult(
            f"Workout complete with {_fmt(minutes)} min of cardio. Excellent follow through!",
            Tone.POSITIVE,
        )

    if completed:
        remaining = target - minutes
        more = _fmt(remaining) if remaining > 0 else "a few"
        return FeedbackResult(
            f"Workout done! Add {more} more cardio minutes to smash your goal.",
            Tone.ENCOURAGE,
        )

    return FeedbackResult(
        f"Cardio logged at {_fmt(minutes)} min. Pair it with a full workout for even better progress.",
        Tone.ENCOURAGE,
    )


RULES = {
    WATER: water_feedback,
    DIET: diet_feedback,
    EXERCISE: exercise_feedback,
    SLEEP: sleep_feedback,
}


def classify(category: str, goal, values: Mapping[str, Any] | None) -> FeedbackResult:
    try:
        rule = RULES[category]
    except KeyError:
        raise UnknownCategoryError(category) from None
    return rule(parse_goal(goal), values or None)


def build_feedback(goal, entries: Mapping[str, Mapping[str, Any] | None]) -> Dict[str, FeedbackResult]:
    return {category: classify(category, goal, entries.get(category)) for category in RULES}
