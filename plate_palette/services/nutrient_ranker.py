# plate_palette/services/nutrient_ranker.py
"""
"Why this food matters": pick the most significant nutrients of a food.

Only nutrients in NUTRIENT_INFO are eligible. Each gets a score that
approximates a meaningful fraction of the recommended daily value for a
typical serving; amounts at or below the nutrient's threshold score zero and
are dropped. Measurements are first converted to the nutrient's reference
unit (Vitamin A accepts IU at 0.3 mcg per IU).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

logger = logging.getLogger(__name__)


class NutrientUnit(str, Enum):
    G = "G"
    MG = "MG"
    UG = "UG"
    IU = "IU"
    KCAL = "KCAL"
    KJ = "KJ"


_UNIT_ALIASES = {
    "g": NutrientUnit.G,
    "mg": NutrientUnit.MG,
    "ug": NutrientUnit.UG,
    "mcg": NutrientUnit.UG,
    "µg": NutrientUnit.UG,
    "μg": NutrientUnit.UG,
    "iu": NutrientUnit.IU,
    "kcal": NutrientUnit.KCAL,
    "kj": NutrientUnit.KJ,
}

# grams per unit, for mass conversions
_MASS_IN_GRAMS = {
    NutrientUnit.G: 1.0,
    NutrientUnit.MG: 1e-3,
    NutrientUnit.UG: 1e-6,
}

# Vitamin A: 1 IU == 0.3 mcg retinol
VITAMIN_A_MCG_PER_IU = 0.3


class NutrientMeasurement(BaseModel):
    nutrient_id: int
    value: float
    unit: NutrientUnit

    @field_validator("unit", mode="before")
    @classmethod
    def normalize_unit(cls, v: Any) -> Any:
        if isinstance(v, NutrientUnit):
            return v
        unit = _UNIT_ALIASES.get(str(v or "").strip().lower())
        if unit is None:
            raise ValueError(f"unsupported unit: {v!r}")
        return unit


@dataclass(frozen=True)
class NutrientInfo:
    name: str
    explanation: str
    unit: NutrientUnit
    # score = value * factor when value > threshold (in `unit`), else 0
    factor: float
    threshold: float = 0.0


@dataclass(frozen=True)
class NutrientHighlight:
    name: str
    value: float
    unit: str
    explanation: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "explanation": self.explanation,
        }


NUTRIENT_INFO: Dict[int, NutrientInfo] = {
    1003: NutrientInfo(
        "Protein",
        "Protein helps build and repair tissues, supports your immune system, "
        "and keeps you feeling satisfied after meals.",
        NutrientUnit.G,
        factor=1.5,  # DV 50g
        threshold=3.0,
    ),
    1079: NutrientInfo(
        "Fiber",
        "Fiber supports digestive health, helps maintain steady blood sugar "
        "levels, and keeps you feeling full.",
        NutrientUnit.G,
        factor=2.0,  # DV 28g
        threshold=2.0,
    ),
    1087: NutrientInfo(
        "Calcium",
        "Calcium builds strong bones and teeth, and plays a role in muscle "
        "function and nerve signaling.",
        NutrientUnit.MG,
        factor=1 / 30,  # DV 1300mg
    ),
    1089: NutrientInfo(
        "Iron",
        "Iron helps carry oxygen throughout your body and supports energy "
        "levels and immune function.",
        NutrientUnit.MG,
        factor=1 / 0.5,  # DV 18mg
    ),
    1090: NutrientInfo(
        "Magnesium",
        "Magnesium supports muscle and nerve function, helps maintain steady "
        "energy, and promotes bone health.",
        NutrientUnit.MG,
        factor=1 / 10,  # DV 420mg
    ),
    1092: NutrientInfo(
        "Potassium",
        "Potassium helps regulate blood pressure, supports heart health, and "
        "maintains fluid balance.",
        NutrientUnit.MG,
        factor=1 / 100,  # DV 4700mg
    ),
    1095: NutrientInfo(
        "Zinc",
        "Zinc supports immune function, wound healing, and plays a role in "
        "taste and smell.",
        NutrientUnit.MG,
        factor=1 / 0.3,  # DV 11mg
    ),
    1109: NutrientInfo(
        "Vitamin B12",
        "Vitamin B12 supports nerve function, red blood cell formation, and "
        "energy metabolism.",
        NutrientUnit.UG,
        factor=1 / 0.1,  # DV 2.4mcg
    ),
    1162: NutrientInfo(
        "Vitamin C",
        "Vitamin C supports your immune system, helps your body absorb iron, "
        "and promotes healthy skin.",
        NutrientUnit.MG,
        factor=0.5,  # DV 90mg
        threshold=10.0,
    ),
    1165: NutrientInfo(
        "Vitamin B6",
        "Vitamin B6 supports brain health, helps make neurotransmitters, and "
        "aids in protein metabolism.",
        NutrientUnit.MG,
        factor=1 / 0.05,  # DV 1.7mg
    ),
    1166: NutrientInfo(
        "Folate",
        "Folate supports cell growth and DNA formation, and is especially "
        "important for brain health.",
        NutrientUnit.UG,
        factor=1 / 10,  # DV 400mcg
    ),
    1178: NutrientInfo(
        "Vitamin A",
        "Vitamin A supports vision, immune function, and healthy skin.",
        NutrientUnit.UG,
        factor=1 / 30,  # DV 900mcg
    ),
    1180: NutrientInfo(
        "Vitamin E",
        "Vitamin E acts as an antioxidant, protecting your cells from damage "
        "and supporting immune health.",
        NutrientUnit.MG,
        factor=1 / 0.5,  # DV 15mg
    ),
    1185: NutrientInfo(
        "Vitamin K",
        "Vitamin K is essential for blood clotting and supports bone health.",
        NutrientUnit.UG,
        factor=1 / 5,  # DV 120mcg
    ),
}


def convert_value(
    value: float, unit: NutrientUnit, target: NutrientUnit, nutrient_id: Optional[int] = None
) -> Optional[float]:
    """Convert `value` to `target`; None when the units are incompatible."""
    if unit == target:
        return value
    if unit == NutrientUnit.IU:
        if nutrient_id != 1178:
            return None
        value, unit = value * VITAMIN_A_MCG_PER_IU, NutrientUnit.UG
        if unit == target:
            return value
    if unit in _MASS_IN_GRAMS and target in _MASS_IN_GRAMS:
        return value * _MASS_IN_GRAMS[unit] / _MASS_IN_GRAMS[target]
    return None


def significance_score(measurement: NutrientMeasurement) -> float:
    info = NUTRIENT_INFO.get(measurement.nutrient_id)
    if info is None:
        return 0.0
    amount = convert_value(
        measurement.value, measurement.unit, info.unit, measurement.nutrient_id
    )
    if amount is None or amount <= info.threshold:
        return 0.0
    return amount * info.factor


def parse_nutrients(raw: Any) -> List[NutrientMeasurement]:
    """
    Validate a loosely-shaped nutrient collection.

    Accepts USDA FoodData Central entries (``nutrientId``/``value``/``unitName``),
    the nested detail shape (``nutrient: {id, unitName}``, ``amount``) and our own
    field names. Entries that do not validate are dropped.
    """
    if not raw or not isinstance(raw, list):
        return []

    out: List[NutrientMeasurement] = []
    for item in raw:
        if isinstance(item, NutrientMeasurement):
            out.append(item)
            continue
        if not isinstance(item, dict):
            continue
        nested = item.get("nutrient") if isinstance(item.get("nutrient"), dict) else {}
        candidate = {
            "nutrient_id": item.get("nutrient_id", item.get("nutrientId", nested.get("id"))),
            "value": item.get("value", item.get("amount")),
            "unit": item.get("unit", item.get("unitName", nested.get("unitName"))),
        }
        try:
            out.append(NutrientMeasurement.model_validate(candidate))
        except ValidationError:
            logger.debug("Dropping nutrient entry that failed validation: %r", candidate)
    return out


def top_significant_nutrients(
    nutrients: Iterable[NutrientMeasurement], k: int = 2
) -> List[NutrientHighlight]:
    """
    Return up to `k` eligible nutrients, most significant first.

    Zero-score nutrients never appear and the result is never padded; ties
    keep input order.
    """
    if k < 0:
        raise ValueError("k must be >= 0")

    scored = []
    for measurement in nutrients:
        score = significance_score(measurement)
        if score > 0:
            scored.append((score, measurement))

    # sorted() is stable, so equal scores stay in input order
    ranked = sorted(scored, key=lambda pair: -pair[0])[:k]
    return [
        NutrientHighlight(
            name=NUTRIENT_INFO[m.nutrient_id].name,
            value=m.value,
            unit=m.unit.value,
            explanation=NUTRIENT_INFO[m.nutrient_id].explanation,
        )
        for _, m in ranked
    ]
