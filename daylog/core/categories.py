from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Tuple

from daylog.core.fields import (
    BooleanField,
    ChoiceField,
    ChoiceOption,
    FieldDefinition,
    NumericField,
)

WATER = "water"
DIET = "diet"
EXERCISE = "exercise"
SLEEP = "sleep"


class UnknownCategoryError(KeyError):
    pass


def _plural(count, singular, plural) -> str:
    return singular if count == 1 else plural


def _as_number(value) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip() or 0)
    except ValueError:
        return 0


def _fmt(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class CategoryConfig:
    key: str
    collection: str
    title: str
    instructions: str
    fields: Tuple[FieldDefinition, ...]
    format_summary: Callable[[Mapping], str]
    format_day_value: Callable[[Mapping], str]

    def field(self, key: str) -> FieldDefinition:
        for definition in self.fields:
            if definition.key == key:
                return definition
        raise KeyError(key)


def _water_summary(values):
    amount = _as_number(values.get("glasses", 0))
    if not amount:
        return "No water logged yet"
    return f"{_fmt(amount)} {_plural(amount, 'glass', 'glasses')} of water"


def _water_day(values):
    amount = _as_number(values.get("glasses", 0))
    return f"{_fmt(amount)} gls" if amount > 0 else ""


def _diet_summary(values):
    calories = _as_number(values.get("calories", 0))
    if not calories:
        return "No calories logged yet"
    return f"{_fmt(calories)} kcal"


def _diet_day(values):
    calories = _as_number(values.get("calories", 0))
    return f"{_fmt(calories)}k" if calories > 0 else ""


def _exercise_summary(values):
    completed = bool(values.get("workoutCompleted"))
    minutes = _as_number(values.get("cardioMinutes", 0))
    completed_text = "Workout done" if completed else "Workout skipped"
    if minutes and completed:
        return f"{completed_text} • {_fmt(minutes)} min cardio"
    if minutes:
        return f"{_fmt(minutes)} min of cardio"
    if completed:
        return completed_text
    return "No exercise logged yet"


def _exercise_day(values):
    minutes = _as_number(values.get("cardioMinutes", 0))
    if minutes > 0:
        return f"{_fmt(minutes)}m"
    return "Done" if values.get("workoutCompleted") else ""


def _sleep_summary(values):
    hours = _as_number(values.get("hours", 0))
    if not hours:
        return "No sleep logged yet"
    return f"{_fmt(hours)} {_plural(hours, 'hour', 'hours')} of sleep"


def _sleep_day(values):
    hours = _as_number(values.get("hours", 0))
    return f"{_fmt(hours)}h" if hours > 0 else ""


GLASS_OPTIONS = tuple(
    ChoiceOption(label=f"{count} {_plural(count, 'glass', 'glasses')}", value=count) for count in range(17)
)
HOUR_OPTIONS = tuple(
    ChoiceOption(label=f"{count} {_plural(count, 'hour', 'hours')}", value=count) for count in range(13)
)

CATEGORIES: Dict[str, CategoryConfig] = {
    WATER: CategoryConfig(
        key=WATER,
        collection="waterLogs",
        title="Water Log",
        instructions="Click on the date you would like to log your water on.",
        fields=(
            ChoiceField(
                key="glasses",
                label="How many glasses did you drink?",
                options=GLASS_OPTIONS,
                default=0,
            ),
        ),
        format_summary=_water_summary,
        format_day_value=_water_day,
    ),
    DIET: CategoryConfig(
        key=DIET,
        collection="dietLogs",
        title="Diet Log",
        instructions="Click on the date you would like to log your diet on.",
        fields=(
            NumericField(
                key="calories",
                label="How many calories did you consume?",
                placeholder="Enter total calories",
                unit="kcal",
            ),
        ),
        format_summary=_diet_summary,
        format_day_value=_diet_day,
    ),
    EXERCISE: CategoryConfig(
        key=EXERCISE,
        collection="exerciseLogs",
        title="Exercise Log",
        instructions="Click on the date you would like to log your exercise on.",
        fields=(
            BooleanField(
                key="workoutCompleted",
                label="Workout completed?",
                true_label="Completed",
                false_label="Not yet",
            ),
            NumericField(
                key="cardioMinutes",
                label="Minutes of cardio",
                placeholder="0",
                unit="min",
            ),
        ),
        format_summary=_exercise_summary,
        format_day_value=_exercise_day,
    ),
    SLEEP: CategoryConfig(
        key=SLEEP,
        collection="sleepLogs",
        title="Sleep Log",
        instructions="Click on the date you would like to log your sleep on.",
        fields=(
            ChoiceField(
                key="hours",
                label="How many hours did you sleep?",
                options=HOUR_OPTIONS,
                default=0,
            ),
        ),
        format_summary=_sleep_summary,
        format_day_value=_sleep_day,
    ),
}

CATEGORY_KEYS = tuple(CATEGORIES.keys())


def get_category(key: str) -> CategoryConfig:
    try:
        return CATEGORIES[key]
    except KeyError:
        raise UnknownCategoryError(key) from None
