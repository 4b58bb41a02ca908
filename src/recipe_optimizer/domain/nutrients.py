"""Nutrient vector domain model."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, fields, replace

NUTRIENT_FIELDS: tuple[str, ...] = (
    "kcal",
    "water_g",
    "protein_g",
    "carbohydrate_g",
    "fat_g",
    "sugars_g",
    "fa_saturated_g",
    "salt_g",
)

NUTRIENT_ALIASES: dict[str, str] = {
    "kcal": "kcal",
    "calories": "kcal",
    "energy": "kcal",
    "water": "water_g",
    "protein": "protein_g",
    "carb": "carbohydrate_g",
    "carbs": "carbohydrate_g",
    "carbohydrate": "carbohydrate_g",
    "carbohydrates": "carbohydrate_g",
    "fat": "fat_g",
    "sugar": "sugars_g",
    "sugars": "sugars_g",
    "sat_fat": "fa_saturated_g",
    "saturated_fat": "fa_saturated_g",
    "fa_saturated": "fa_saturated_g",
    "salt": "salt_g",
}


def canonical_nutrient(name: str) -> str | None:
    """Map a nutrient name or alias to its field name."""
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    if key in NUTRIENT_FIELDS:
        return key
    return NUTRIENT_ALIASES.get(key)


@dataclass(frozen=True)
class NutrientVector:
    """Nutrient profile with a fixed schema; grams except kcal."""

    kcal: float = 0.0
    water_g: float = 0.0
    protein_g: float = 0.0
    carbohydrate_g: float = 0.0
    fat_g: float = 0.0
    sugars_g: float = 0.0
    fa_saturated_g: float = 0.0
    salt_g: float = 0.0

    @classmethod
    def zero(cls) -> "NutrientVector":
        return cls()

    @classmethod
    def from_mapping(cls, data: Mapping[str, float | None]) -> "NutrientVector":
        """Build a vector from a mapping; missing or null values become zero."""
        values = {name: float(data.get(name) or 0.0) for name in NUTRIENT_FIELDS}
        return cls(**values)

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "NutrientVector":
        """Build a vector from values ordered like NUTRIENT_FIELDS."""
        items = [float(value) for value in values]
        if len(items) != len(NUTRIENT_FIELDS):
            raise ValueError(
                f"Expected {len(NUTRIENT_FIELDS)} values, got {len(items)}"
            )
        return cls(*items)

    def __add__(self, other: "NutrientVector") -> "NutrientVector":
        if not isinstance(other, NutrientVector):
            return NotImplemented
        return NutrientVector(*(a + b for a, b in zip(self, other, strict=True)))

    def __sub__(self, other: "NutrientVector") -> "NutrientVector":
        if not isinstance(other, NutrientVector):
            return NotImplemented
        return NutrientVector(*(a - b for a, b in zip(self, other, strict=True)))

    def __mul__(self, scalar: float) -> "NutrientVector":
        if isinstance(scalar, NutrientVector):
            return NotImplemented
        return NutrientVector(*(value * scalar for value in self))

    __rmul__ = __mul__

    def __iter__(self) -> Iterator[float]:
        return (getattr(self, name) for name in NUTRIENT_FIELDS)

    def get(self, name: str) -> float:
        """Return the value of a nutrient field."""
        if name not in NUTRIENT_FIELDS:
            raise KeyError(name)
        return getattr(self, name)

    def with_value(self, name: str, value: float) -> "NutrientVector":
        """Return a copy with one field replaced."""
        if name not in NUTRIENT_FIELDS:
            raise KeyError(name)
        return replace(self, **{name: value})

    def to_dict(self) -> dict[str, float]:
        return {field.name: getattr(self, field.name) for field in fields(self)}

    def validate(self) -> list[str]:
        """Return domain constraint violations; never raises."""
        problems: list[str] = []
        for name in NUTRIENT_FIELDS:
            if getattr(self, name) < 0:
                problems.append(f"{name} is negative")
        if self.sugars_g > self.carbohydrate_g:
            problems.append("sugars_g exceeds carbohydrate_g")
        if self.fa_saturated_g > self.fat_g:
            problems.append("fa_saturated_g exceeds fat_g")
        return problems
