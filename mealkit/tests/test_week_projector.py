import unittest
from datetime import date

from mealkit.domain.Plan import PlannedRecipe
from mealkit.logic.planning.week_projector import (
    date_label,
    distinct_weeks,
    filter_active,
    heal,
    planned_dates_for_recipe,
    project,
)


def record(recipe_id, assigned, planned=True, **extra):
    week_plan = {"isPlanned": planned, "assignedDate": assigned}
    week_plan.update(extra)
    return {"id": recipe_id, "title": recipe_id.title(), "weekPlan": week_plan}


class TestProject(unittest.TestCase):

    def test_only_planned_records_with_dates(self):
        records = [
            record("soup", "2025-01-08", mealType="dinner", addedByName="Sam"),
            record("stew", "2025-01-09", planned=False),
            record("pie", None),
            {"id": "tacos"},
            record("curry", "not a date"),
        ]
        planned = project(records)
        self.assertEqual(len(planned), 1)
        soup = planned[0]
        self.assertEqual((soup.recipe_id, soup.day, soup.date, soup.week_start),
                         ("soup", "Wednesday", "2025-01-08", "2025-01-06"))
        self.assertEqual(soup.meal_type, "dinner")
        self.assertEqual(soup.added_by_name, "Sam")

    def test_sunday_belongs_to_preceding_monday(self):
        planned = project([record("roast", "2025-01-12")])
        self.assertEqual(planned[0].day, "Sunday")
        self.assertEqual(planned[0].week_start, "2025-01-06")

    def test_empty(self):
        self.assertEqual(project([]), [])


class TestFilterActive(unittest.TestCase):

    def test_stored_week_start_matches(self):
        entries = [PlannedRecipe("a", "Monday", "2025-01-06", "2025-01-06"),
                   PlannedRecipe("b", "Monday", "2025-01-13", "2025-01-13")]
        self.assertEqual([e.recipe_id for e in filter_active(entries, "2025-01-06")], ["a"])

    def test_stale_week_start_falls_back_to_date(self):
        stale = PlannedRecipe("a", "Monday", "2025-01-13", "2025-01-06")
        self.assertEqual(filter_active([stale], "2025-01-13"), [stale])

    def test_missing_week_start_uses_date(self):
        entry = PlannedRecipe("a", "Friday", "2025-01-10")
        self.assertEqual(filter_active([entry], date(2025, 1, 6)), [entry])
        self.assertEqual(filter_active([entry], "2025-01-13"), [])

    def test_heal_recomputes_day_and_week(self):
        healed = heal(PlannedRecipe("a", "Monday", "2025-01-15", "2025-01-06"))
        self.assertEqual((healed.day, healed.week_start), ("Wednesday", "2025-01-13"))


class TestWeeksAndLabels(unittest.TestCase):

    def setUp(self):
        self.today = date(2025, 1, 8)  # Wednesday

    def test_distinct_weeks_always_has_this_and_next_week(self):
        self.assertEqual(distinct_weeks([], self.today), ["2025-01-06", "2025-01-13"])

    def test_distinct_weeks_sorted_with_planned_weeks(self):
        entries = [PlannedRecipe("a", "Tuesday", "2025-01-28"), PlannedRecipe("b", "Friday", "2024-12-27")]
        self.assertEqual(distinct_weeks(entries, self.today),
                         ["2024-12-23", "2025-01-06", "2025-01-13", "2025-01-27"])

    def test_labels_around_week_boundaries(self):
        self.assertEqual(date_label(date(2025, 1, 6), self.today), "Mon")
        self.assertEqual(date_label(date(2025, 1, 12), self.today), "Sun")
        self.assertEqual(date_label(date(2025, 1, 13), self.today), "Next Mon")
        self.assertEqual(date_label(date(2025, 1, 19), self.today), "Next Sun")
        self.assertEqual(date_label(date(2025, 1, 20), self.today), "1/20 Mon")
        self.assertEqual(date_label(date(2025, 1, 5), self.today), "1/5 Sun")

    def test_planned_dates_for_recipe_sorted(self):
        entries = [
            PlannedRecipe("soup", "Monday", "2025-01-13"),
            PlannedRecipe("soup", "Thursday", "2025-01-09"),
            PlannedRecipe("stew", "Friday", "2025-01-10"),
        ]
        self.assertEqual(planned_dates_for_recipe(entries, "soup", self.today), [
            {"dateStr": "2025-01-09", "day": "Thursday", "label": "Thu"},
            {"dateStr": "2025-01-13", "day": "Monday", "label": "Next Mon"},
        ])


if __name__ == '__main__':
    unittest.main()
