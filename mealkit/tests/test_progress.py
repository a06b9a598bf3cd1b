import unittest

from mealkit.logic.jobs.progress import StageProgress


class TestStageProgress(unittest.TestCase):

    def test_stages_in_order(self):
        stages = StageProgress()
        reached = []
        for chunk in ['{"ingredients": [', '{"name": "kale", "category": "Produce"},',
                      '{"name": "beef", "category": "Meat"},', '{"name": "milk", "category": "Dairy"}', ']}']:
            reached.extend(p for p, _ in stages.feed(chunk))
        self.assertEqual(reached, [10, 30, 50, 70])

    def test_marker_split_across_chunks(self):
        stages = StageProgress()
        self.assertEqual(stages.feed('{"ingre'), [])
        self.assertEqual([p for p, _ in stages.feed('dients": [')], [10])

    def test_each_stage_fires_once(self):
        stages = StageProgress()
        stages.feed('{"ingredients": [{"category": "Produce"}')
        self.assertEqual(stages.feed(', {"category": "Produce"}, {"category": "Produce"}'), [])

    def test_progress_never_decreases(self):
        stages = StageProgress()
        first = stages.feed('{"ingredients": [{"category": "Dairy"}')
        self.assertEqual([p for p, _ in first], [10, 70])
        self.assertEqual(stages.feed(', {"category": "Produce"}, {"category": "Meat"}'), [])
        self.assertEqual([p for p, _ in stages.feed(', {"category": "Spices"}')], [85])

    def test_custom_stages(self):
        stages = StageProgress([("a", "alpha", 40, "A"), ("b", "beta", 90, "B")])
        self.assertEqual(stages.feed("alpha beta"), [(40, "A"), (90, "B")])


if __name__ == '__main__':
    unittest.main()
