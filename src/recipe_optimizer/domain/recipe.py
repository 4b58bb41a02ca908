"""Recipe domain models."""

from dataclasses import dataclass, field

from recipe_optimizer.domain.nutrients import NutrientVector


@dataclass
class Ingredient:
    """Ingredient with a fixed nutrient density and an adjustable quantity.

    ``density`` holds nutrients per gram and never changes after load.
    ``quantity_g`` is the optimization variable. ``original_quantity_g``
    keeps the loaded quantity for regularization and bounds.
    """

    name: str
    quantity_g: float
    density: NutrientVector
    raw_text: str = ""
    preparation_notes: str = ""
    min_g: float | None = None
    max_g: float | None = None
    adjustable: bool = True
    original_quantity_g: float = field(init=False)

    def __post_init__(self) -> None:
        if self.quantity_g < 0:
            raise ValueError(f"Ingredient '{self.name}' has a negative quantity")
        for bound in (self.min_g, self.max_g):
            if bound is not None and bound < 0:
                raise ValueError(f"Ingredient '{self.name}' has a negative bound")
        if (
            self.min_g is not None
            and self.max_g is not None
            and self.min_g > self.max_g
        ):
            raise ValueError(f"Ingredient '{self.name}' has min_g above max_g")
        self.original_quantity_g = self.quantity_g

    @property
    def lower_bound(self) -> float:
        if not self.adjustable:
            return self.original_quantity_g
        return self.min_g if self.min_g is not None else 0.0

    @property
    def upper_bound(self) -> float:
        if not self.adjustable:
            return self.original_quantity_g
        return self.max_g if self.max_g is not None else float("inf")

    def contribution(self) -> NutrientVector:
        """Return the nutrients supplied at the current quantity."""
        return self.density * self.quantity_g


@dataclass
class Recipe:
    """Recipe owning an ordered list of ingredients."""

    title: str
    ingredients: list[Ingredient]
    instructions: list[str] = field(default_factory=list)

    def quantities(self) -> list[float]:
        return [ingredient.quantity_g for ingredient in self.ingredients]

    def apply_quantities(self, quantities: "list[float] | tuple[float, ...]") -> None:
        """Write a quantity vector back onto the ingredients."""
        if len(quantities) != len(self.ingredients):
            raise ValueError(
                f"Expected {len(self.ingredients)} quantities, got {len(quantities)}"
            )
        for ingredient, quantity in zip(self.ingredients, quantities, strict=True):
            if quantity < 0:
                raise ValueError(
                    f"Refusing negative quantity for '{ingredient.name}'"
                )
            ingredient.quantity_g = float(quantity)


@dataclass(frozen=True)
class NutritionalProfile:
    """Aggregated nutrients of a recipe at its current quantities."""

    total_mass_g: float
    aggregated: NutrientVector
    per_100g: NutrientVector
