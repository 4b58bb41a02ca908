"""Models for the structured recipe document format."""

from pydantic import BaseModel, ConfigDict, Field


class NutritionalInfo(BaseModel):
    """Absolute nutrients of an ingredient at its stated gram quantity."""

    model_config = ConfigDict(extra="allow")

    kcal: float | None = Field(default=None, ge=0.0)
    water_g: float | None = Field(default=None, ge=0.0)
    protein_g: float | None = Field(default=None, ge=0.0)
    carbohydrate_g: float | None = Field(default=None, ge=0.0)
    fat_g: float | None = Field(default=None, ge=0.0)
    sugars_g: float | None = Field(default=None, ge=0.0)
    fa_saturated_g: float | None = Field(default=None, ge=0.0)
    salt_g: float | None = Field(default=None, ge=0.0)


class IngredientDocument(BaseModel):
    """Single ingredient entry of a recipe document."""

    model_config = ConfigDict(extra="allow")

    raw_text: str = ""
    ingredient_name: str
    original_quantity: str = ""
    original_unit: str = ""
    preparation_notes: str = ""
    quantity_grams: float | None = Field(default=None, ge=0.0)
    nutritional_info: NutritionalInfo | None = None
    min_grams: float | None = Field(default=None, ge=0.0)
    max_grams: float | None = Field(default=None, ge=0.0)


class NutrientSummary(BaseModel):
    """Nutrient values without nulls."""

    kcal: float
    water_g: float
    protein_g: float
    carbohydrate_g: float
    fat_g: float
    sugars_g: float
    fa_saturated_g: float
    salt_g: float


class NutritionalProfileDocument(BaseModel):
    """Aggregated and per-100g profile."""

    total_mass_g: float
    aggregated: NutrientSummary
    per_100g: NutrientSummary


class RecipeDocument(BaseModel):
    """Structured recipe as produced by the upstream parser."""

    model_config = ConfigDict(extra="allow")

    recipe_title: str
    ingredients: list[IngredientDocument]
    instructions: list[str] = Field(default_factory=list)


class NutrientOutcomeDocument(BaseModel):
    """Target comparison for one constrained nutrient."""

    baseline: float
    target: float
    achieved: float
    within_tolerance: bool


class OptimizationReportDocument(BaseModel):
    """Serialized optimization report."""

    status: str
    iterations_run: int
    initial_loss: float
    final_loss: float
    achieved_vs_target: dict[str, NutrientOutcomeDocument]
    accepted: int = 0
    rejected: int = 0
    agent_fallbacks: int = 0


class OptimizedRecipeDocument(RecipeDocument):
    """Recipe document with recomputed profile and report."""

    nutritional_profile: NutritionalProfileDocument
    optimization_report: OptimizationReportDocument
