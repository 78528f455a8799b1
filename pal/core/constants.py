"""
Tunable core constants.

The engine reads blend weights, learning rates, the ZPD band, the mastered
threshold and the logistic scale from an immutable ``CoreConstants`` value.
A ``ConstantsStore`` owns the current value and replaces it atomically;
the module-level default store backs the functional API:

    get_core_constants()          current snapshot
    update_core_constants(...)    validated partial update
    reset_core_constants()        restore initial values
    apply_core_constants_csv(...) parse + update from category,key,value rows

Updates are all-or-nothing: the first invalid field raises
MalformedConfigError and the previous snapshot stays in place.
"""

from __future__ import annotations

import csv
import io
import threading
from typing import Mapping

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from pal.core.errors import MalformedConfigError
from pal.core.models import BlendWeights, LearningRates, Level


class CoreConstants(BaseModel):
    """Immutable configuration snapshot passed into every engine call."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    blend_weights: BlendWeights
    learning_rates: LearningRates
    zpd_range: tuple[float, float] = (0.5, 0.8)
    mastered_threshold: float = 0.8
    scale: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def _check_zpd_order(self) -> CoreConstants:
        zpd_min, zpd_max = self.zpd_range
        if zpd_min > zpd_max:
            raise ValueError(f"ZPD range minimum {zpd_min} exceeds maximum {zpd_max}")
        return self

    @property
    def zpd_min(self) -> float:
        return self.zpd_range[0]

    @property
    def zpd_max(self) -> float:
        return self.zpd_range[1]

    def in_zpd(self, probability: float) -> bool:
        return self.zpd_min <= probability <= self.zpd_max

    def is_mastered(self, probability: float) -> bool:
        return probability >= self.mastered_threshold

    def to_dict(self) -> dict:
        return {
            "blend_weights": self.blend_weights.to_dict(),
            "learning_rates": self.learning_rates.to_dict(),
            "zpd_range": list(self.zpd_range),
            "mastered_threshold": self.mastered_threshold,
            "scale": self.scale,
        }


class ConstantsUpdate(BaseModel):
    """Partial update. Per-level overrides merge onto the current vectors."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")

    blend_weights: dict[str, float] | None = None
    learning_rates: dict[str, float] | None = None
    zpd_range: tuple[float, float] | None = None
    mastered_threshold: float | None = None
    scale: float | None = None

    def is_empty(self) -> bool:
        return not any(value is not None for value in self.model_dump().values())


INITIAL_CORE_CONSTANTS = CoreConstants(
    blend_weights=BlendWeights(
        skill=0.35,
        outcome=0.2,
        competency=0.18,
        domain=0.12,
        subject=0.15,
        grade=0.0,
    ),
    learning_rates=LearningRates(
        skill=0.5,
        outcome=0.08,
        competency=0.04,
        domain=0.04,
        subject=0.05,
        grade=0.0,
    ),
    zpd_range=(0.5, 0.8),
    mastered_threshold=0.8,
    scale=1.0,
)


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "value"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def apply_update(current: CoreConstants, update: ConstantsUpdate | Mapping) -> CoreConstants:
    """
    Merge ``update`` onto ``current`` and validate the result.

    Pure function; raises MalformedConfigError on any invalid field.
    """
    try:
        if not isinstance(update, ConstantsUpdate):
            update = ConstantsUpdate.model_validate(dict(update))

        data = current.model_dump()
        if update.blend_weights is not None:
            data["blend_weights"] = {**data["blend_weights"], **update.blend_weights}
        if update.learning_rates is not None:
            data["learning_rates"] = {**data["learning_rates"], **update.learning_rates}
        if update.zpd_range is not None:
            data["zpd_range"] = update.zpd_range
        if update.mastered_threshold is not None:
            data["mastered_threshold"] = update.mastered_threshold
        if update.scale is not None:
            data["scale"] = update.scale

        return CoreConstants.model_validate(data)
    except ValidationError as e:
        raise MalformedConfigError(f"Invalid core constants: {_describe(e)}") from e


class ConstantsStore:
    """
    Holder of the current CoreConstants.

    Readers get an immutable snapshot; writers swap the whole value under a
    lock, so a reader never observes a half-applied update.
    """

    def __init__(self, initial: CoreConstants = INITIAL_CORE_CONSTANTS):
        self._initial = initial
        self._current = initial
        self._lock = threading.Lock()

    def get(self) -> CoreConstants:
        return self._current

    def update(self, update: ConstantsUpdate | Mapping) -> CoreConstants:
        with self._lock:
            self._current = apply_update(self._current, update)
            logger.info(f"Core constants updated: {self._current.to_dict()}")
            return self._current

    def reset(self) -> CoreConstants:
        with self._lock:
            self._current = self._initial
            logger.info("Core constants reset to initial values")
            return self._current

    def apply_csv(self, csv_text: str) -> CoreConstants:
        with self._lock:
            update = parse_core_constants_csv(csv_text, current=self._current)
            self._current = apply_update(self._current, update)
            logger.info(f"Core constants applied from CSV: {self._current.to_dict()}")
            return self._current


_default_store = ConstantsStore()


def get_constants_store() -> ConstantsStore:
    """Process-wide default store."""
    return _default_store


def get_core_constants() -> CoreConstants:
    return _default_store.get()


def update_core_constants(update: ConstantsUpdate | Mapping | None = None, **fields) -> CoreConstants:
    """
    Validated partial update of the default store.

    Accepts a ConstantsUpdate, a mapping, or keyword fields:
        update_core_constants(zpd_range=(0.6, 0.9), blend_weights={"skill": 0.5})
    """
    if update is None:
        update = fields
    elif fields:
        raise MalformedConfigError("Pass either an update object or keyword fields, not both")
    return _default_store.update(update)


def reset_core_constants() -> CoreConstants:
    return _default_store.reset()


def apply_core_constants_csv(csv_text: str) -> CoreConstants:
    return _default_store.apply_csv(csv_text)


# ============================================================================
# CSV parsing
# ============================================================================

_COEFFICIENT_CATEGORIES = {
    "blendweights": ("blend_weights", "Blend weight"),
    "learningrates": ("learning_rates", "Learning rate"),
}


def _normalize_token(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch.isalnum())


def _parse_number(value: str, label: str, row_number: int) -> float:
    try:
        number = float(value)
    except ValueError:
        raise MalformedConfigError(
            f"{label} must be numeric (row {row_number}, got {value!r})."
        ) from None
    if number != number or number in (float("inf"), float("-inf")):
        raise MalformedConfigError(f"{label} must be a finite number (row {row_number}).")
    return number


def parse_core_constants_csv(
    csv_text: str,
    current: CoreConstants | None = None,
) -> ConstantsUpdate:
    """
    Parse ``category,key,value`` rows into a ConstantsUpdate.

    Categories: blendWeights, learningRates, zpdRange (min/max), masteredThreshold,
    scale. A ZPD row that sets only one bound keeps the other from ``current``.
    """
    rows = [
        [cell.strip() for cell in row]
        for row in csv.reader(io.StringIO(csv_text.replace("\r\n", "\n")))
        if any(cell.strip() for cell in row)
    ]
    if not rows:
        raise MalformedConfigError("Constants CSV is empty.")

    header = [_normalize_token(cell) for cell in rows[0]]
    if len(header) < 3:
        raise MalformedConfigError(
            "Constants CSV header must include at least category,key,value columns."
        )
    if header[:3] != ["category", "key", "value"]:
        raise MalformedConfigError(
            'Constants CSV header must start with "category,key,value" (case insensitive).'
        )

    coefficients: dict[str, dict[str, float]] = {"blend_weights": {}, "learning_rates": {}}
    zpd_min: float | None = None
    zpd_max: float | None = None
    mastered: float | None = None
    scale: float | None = None

    for row_number, row in enumerate(rows[1:], start=2):
        if len(row) < 3:
            raise MalformedConfigError(
                f"Constants CSV row {row_number} must include category,key,value."
            )
        raw_category, raw_key, value = row[0], row[1], row[2]
        category = _normalize_token(raw_category)
        key = _normalize_token(raw_key)

        if category in _COEFFICIENT_CATEGORIES:
            target, label = _COEFFICIENT_CATEGORIES[category]
            try:
                level = Level.parse(key)
            except ValueError:
                raise MalformedConfigError(
                    f'Unknown {label.lower()} key "{raw_key}" on row {row_number}.'
                ) from None
            coefficients[target][level.value] = _parse_number(
                value, f"{label} ({level.value})", row_number
            )
        elif category == "zpdrange":
            if key in ("min", "lower"):
                zpd_min = _parse_number(value, "ZPD range minimum", row_number)
            elif key in ("max", "upper"):
                zpd_max = _parse_number(value, "ZPD range maximum", row_number)
            else:
                raise MalformedConfigError(f'Unknown ZPD range key "{raw_key}" on row {row_number}.')
        elif category == "masteredthreshold":
            mastered = _parse_number(value, "Mastered threshold", row_number)
        elif category == "scale":
            scale = _parse_number(value, "Scale", row_number)
        else:
            raise MalformedConfigError(
                f'Unknown constants category "{raw_category}" on row {row_number}.'
            )

    zpd_range = None
    if zpd_min is not None or zpd_max is not None:
        base = current or get_core_constants()
        zpd_range = (
            zpd_min if zpd_min is not None else base.zpd_min,
            zpd_max if zpd_max is not None else base.zpd_max,
        )

    return ConstantsUpdate(
        blend_weights=coefficients["blend_weights"] or None,
        learning_rates=coefficients["learning_rates"] or None,
        zpd_range=zpd_range,
        mastered_threshold=mastered,
        scale=scale,
    )
