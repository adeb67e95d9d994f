import unittest

import numpy as np

from yolo_post.geometry import box_area, iou, iou_one_to_many


class TestGeometry(unittest.TestCase):
    def test_area(self) -> None:
        self.assertEqual(box_area((10, 20, 30, 60)), 800.0)
        self.assertEqual(box_area((5, 5, 5, 9)), 0.0)

    def test_identical_boxes(self) -> None:
        for box in [(0, 0, 10, 10), (1.5, 2.25, 7.75, 3.125), (40.0, 40.0, 60.0, 60.0)]:
            self.assertEqual(iou(box, box), 1.0)

    def test_disjoint_boxes(self) -> None:
        self.assertEqual(iou((0, 0, 10, 10), (20, 20, 30, 30)), 0.0)
        # Touching edges: zero-width intersection.
        self.assertEqual(iou((0, 0, 10, 10), (10, 0, 20, 10)), 0.0)

    def test_partial_overlap(self) -> None:
        # inter 80, union 100
        self.assertAlmostEqual(iou((0, 0, 10, 10), (0, 0, 10, 8)), 0.8)
        # inter 25, union 175
        self.assertAlmostEqual(iou((0, 0, 10, 10), (5, 5, 15, 15)), 25.0 / 175.0)

    def test_contained_box(self) -> None:
        self.assertAlmostEqual(iou((0, 0, 10, 10), (2, 2, 7, 7)), 25.0 / 100.0)

    def test_symmetry(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(200):
            xy = rng.uniform(0, 100, size=(2, 2))
            wh = rng.uniform(0, 50, size=(2, 2))
            a = (*xy[0], *(xy[0] + wh[0]))
            b = (*xy[1], *(xy[1] + wh[1]))
            self.assertEqual(iou(a, b), iou(b, a))
            self.assertGreaterEqual(iou(a, b), 0.0)
            self.assertLessEqual(iou(a, b), 1.0)

    def test_degenerate_boxes(self) -> None:
        self.assertEqual(iou((5, 5, 5, 5), (5, 5, 5, 5)), 0.0)
        self.assertEqual(iou((0, 0, 0, 10), (0, 0, 0, 10)), 0.0)

    def test_one_to_many_matches_scalar(self) -> None:
        box = np.array([10.0, 10.0, 50.0, 40.0])
        others = np.array(
            [
                [10.0, 10.0, 50.0, 40.0],
                [30.0, 20.0, 70.0, 60.0],
                [100.0, 100.0, 120.0, 130.0],
                [20.0, 20.0, 20.0, 20.0],
            ]
        )
        out = iou_one_to_many(box, others)
        self.assertEqual(out.shape, (4,))
        for value, other in zip(out, others):
            self.assertEqual(float(value), iou(box, other))

    def test_one_to_many_empty(self) -> None:
        out = iou_one_to_many(np.array([0.0, 0.0, 1.0, 1.0]), np.empty((0, 4)))
        self.assertEqual(out.shape, (0,))


if __name__ == "__main__":
    unittest.main()
