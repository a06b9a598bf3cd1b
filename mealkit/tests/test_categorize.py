import unittest

from mealkit.domain.Ingredient import ShoppableIngredient
from mealkit.logic.shopping.list_builder import categorize_shoppable_ingredients


class TestCategorize(unittest.TestCase):

    def test_store_aisle_order_and_empty_buckets_omitted(self):
        items = [
            ShoppableIngredient("cumin", 1, "jar", "Spices"),
            ShoppableIngredient("milk", 1, "carton", "Dairy"),
            ShoppableIngredient("apples", 4, "whole", "Produce"),
            ShoppableIngredient("limes", 2, "whole", "Produce"),
        ]
        categories = categorize_shoppable_ingredients(items)
        self.assertEqual([c.name for c in categories], ["Produce", "Dairy", "Spices"])
        self.assertEqual([i.name for i in categories[0].items], ["apples", "limes"])

    def test_missing_category_goes_to_other(self):
        categories = categorize_shoppable_ingredients([ShoppableIngredient.from_dict({"name": "foil"})])
        self.assertEqual(categories[0].name, "Other")

    def test_unknown_category_is_appended_after_known_ones(self):
        categories = categorize_shoppable_ingredients([
            ShoppableIngredient("sparkling water", 1, "case", "Beverages"),
            ShoppableIngredient("bread", 1, "loaf", "Bakery"),
            ShoppableIngredient("napkins", 1, "pack", "Other"),
        ])
        self.assertEqual([c.name for c in categories], ["Bakery", "Other", "Beverages"])

    def test_empty_list(self):
        self.assertEqual(categorize_shoppable_ingredients([]), [])

    def test_to_dict(self):
        category = categorize_shoppable_ingredients([ShoppableIngredient("kale", 1, "bunch", "Produce")])[0]
        self.assertEqual(category.to_dict()["items"][0]["purchaseUnit"], "bunch")


if __name__ == '__main__':
    unittest.main()
