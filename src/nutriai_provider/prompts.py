"""Prompt templates for the nutrition features."""

from __future__ import annotations

JSON_ONLY_SYSTEM_INSTRUCTION = (
    "You are a helpful assistant that returns ONLY valid JSON. "
    "Do not include any text before or after the JSON."
)

_NUTRITION_SCHEMA = """{
  "nutrition": {
    "food_name": "standardized food name",
    "serving_qty": number,
    "serving_unit": "unit (e.g., cup, piece, gram)",
    "calories": number,
    "protein": number,
    "carbs": number,
    "fat": number,
    "fiber": number,
    "sugar": number
  },
  "alternatives": [
    {
      "name": "healthier alternative name",
      "reason": "why it's healthier"
    }
  ]
}"""

_MEAL_PLAN_SCHEMA = """{
  "breakfast": "meal description",
  "lunch": "meal description",
  "dinner": "meal description",
  "snacks": "snack description",
  "totals": { "calories": number, "protein": number, "carbs": number, "fat": number }
}"""


def food_analysis_prompt(food_name: str, weight_grams: float | None = None) -> str:
    weight_clause = ""
    if weight_grams is not None:
        grams = f"{weight_grams:g}"
        weight_clause = (
            "\nIf weight in grams is provided, compute nutrition for EXACTLY that weight, "
            f"ignoring default serving sizes. Use: {grams} grams. "
            f'Set nutrition.serving_qty to {grams} and nutrition.serving_unit to "g".'
        )
    return (
        f'Analyze the nutrition information for "{food_name.strip()}".{weight_clause} '
        f"Provide a JSON response with the following structure:\n{_NUTRITION_SCHEMA}\n"
        "Provide realistic values based on standard serving sizes. "
        "If calories are over 200, suggest 3 alternatives. Otherwise, return an empty alternatives array."
    )


def meal_plan_prompt(*, height_cm: float, weight_kg: float, bmi: float, diet_type: str, goal: str) -> str:
    return f"""Generate a detailed daily meal plan for a person with:
- Height: {height_cm:g}cm
- Weight: {weight_kg:g}kg
- BMI: {bmi:.1f}
- Diet Type: {diet_type}
- Goal: {goal}

Provide a structured meal plan with:
1. Breakfast (with specific foods and portions)
2. Lunch (with specific foods and portions)
3. Dinner (with specific foods and portions)
4. Snacks (2-3 healthy options)

For each meal, also provide estimated totals (daily): calories, protein (g), carbs (g), fat (g).

Return ONLY valid JSON with this structure:
{_MEAL_PLAN_SCHEMA}"""


def suggestion_prompt(query: str, limit: int = 8) -> str:
    return (
        f'Given a partial food query: "{query.strip()}"\n'
        f"Return ONLY a JSON array of up to {limit} likely food names that users commonly mean. "
        'Example: ["chicken breast", "grilled chicken", "chicken salad"].'
    )
