"""Tests for the diet planner's nutrition calculator."""
from __future__ import annotations

import unittest

from careflow.models.nutrition import DietProfile, basal_metabolic_rate, calculate_nutrition


class NutritionCalculatorTests(unittest.TestCase):
    def _profile(self, **overrides) -> DietProfile:
        values = {
            "height": 175,
            "weight": 70,
            "age": 30,
            "gender": "male",
            "activity_level": "moderate",
            "goal": "lose",
            "goal_weight": 65,
            "sugar_level": 90,
        }
        values.update(overrides)
        return DietProfile(**values)

    def test_weight_loss_plan_for_moderately_active_male(self) -> None:
        profile = self._profile()

        self.assertAlmostEqual(basal_metabolic_rate(profile), 1695.667, places=3)

        plan = calculate_nutrition(profile)
        self.assertEqual(plan.calories, 2128)
        self.assertEqual(plan.protein, 160)
        self.assertEqual(plan.carbs, 239)
        self.assertEqual(plan.fats, 59)
        self.assertEqual(plan.sugar_limit, 25)

    def test_gain_goal_adds_calories(self) -> None:
        lose = calculate_nutrition(self._profile(goal="lose"))
        gain = calculate_nutrition(self._profile(goal="gain"))

        self.assertEqual(gain.calories - lose.calories, 1000)

    def test_high_blood_sugar_tightens_sugar_limit(self) -> None:
        plan = calculate_nutrition(self._profile(sugar_level=120))

        self.assertEqual(plan.sugar_limit, 18)

    def test_profile_from_form_rejects_missing_numbers(self) -> None:
        with self.assertRaises(ValueError):
            DietProfile.from_form({"height": 170, "gender": "female"})

        with self.assertRaises(ValueError):
            DietProfile.from_form(
                {"height": 170, "weight": 60, "age": 40, "gender": "female", "activity_level": "extreme"}
            )

    def test_non_finite_values_are_rejected(self) -> None:
        for overrides in ({"height": float("inf")}, {"weight": float("nan")}, {"sugar_level": float("inf")}):
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    self._profile(**overrides)

        with self.assertRaises(ValueError):
            DietProfile.from_form({"height": "1e400", "weight": 70, "age": 30, "gender": "male"})

    def test_plan_serializes_with_micronutrients(self) -> None:
        payload = calculate_nutrition(self._profile(gender="female")).as_dict()

        self.assertIn("vitamins", payload)
        self.assertEqual(payload["minerals"]["iron"], 18)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    unittest.main()
