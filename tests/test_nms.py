import unittest
from typing import List

import numpy as np

from yolo_post.geometry import iou
from yolo_post.nms import NMSConfig, nms, select_top, suppress
from yolo_post.types import Detection


def _det(x1, y1, x2, y2, score, class_id=0) -> Detection:
    return Detection(
        x1=float(x1),
        y1=float(y1),
        x2=float(x2),
        y2=float(y2),
        cx=(x1 + x2) / 2.0,
        cy=(y1 + y2) / 2.0,
        w=float(x2 - x1),
        h=float(y2 - y1),
        score=float(score),
        class_id=class_id,
        class_name=f"class_{class_id}",
    )


def _random_candidates(n: int, seed: int) -> List[Detection]:
    rng = np.random.default_rng(seed)
    out = []
    for _ in range(n):
        x1, y1 = rng.uniform(0, 200, size=2)
        w, h = rng.uniform(5, 60, size=2)
        out.append(_det(x1, y1, x1 + w, y1 + h, rng.uniform(0.3, 1.0), int(rng.integers(0, 3))))
    return out


class TestNumpyNMS(unittest.TestCase):
    def test_keeps_highest_and_drops_overlap(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [0, 0, 10, 8], [50, 50, 60, 60]], dtype=np.float32)
        scores = np.array([0.7, 0.9, 0.8], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.5))
        self.assertEqual(keep.tolist(), [1, 2])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [0, 0, 10, 8]], dtype=np.float64)
        scores = np.array([0.9, 0.7])
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.8))
        self.assertEqual(keep.tolist(), [0, 1])

    def test_max_detections(self) -> None:
        boxes = np.array([[i * 20, 0, i * 20 + 10, 10] for i in range(5)], dtype=np.float64)
        scores = np.array([0.1, 0.5, 0.3, 0.9, 0.7])
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.5, max_detections=2))
        self.assertEqual(keep.tolist(), [3, 4])

    def test_zero_limit_and_empty_input(self) -> None:
        boxes = np.array([[0, 0, 10, 10]], dtype=np.float64)
        self.assertEqual(nms(boxes, np.array([0.9]), NMSConfig(max_detections=0)).size, 0)
        self.assertEqual(nms(np.empty((0, 4)), np.empty((0,)), NMSConfig()).size, 0)

    def test_config_validation(self) -> None:
        with self.assertRaises(ValueError):
            NMSConfig(iou_threshold=1.5)
        with self.assertRaises(ValueError):
            NMSConfig(max_detections=-1)


class TestSuppress(unittest.TestCase):
    def test_overlapping_lower_score_removed(self) -> None:
        strong = _det(0, 0, 10, 10, 0.9)
        weak = _det(0, 0, 10, 8, 0.7)
        self.assertAlmostEqual(iou(strong.as_xyxy(), weak.as_xyxy()), 0.8)
        out = suppress([weak, strong], iou_threshold=0.5)
        self.assertEqual(out, [strong])

    def test_sorted_descending(self) -> None:
        out = suppress(_random_candidates(60, seed=1), iou_threshold=0.5)
        scores = [d.score for d in out]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_pairwise_iou_bounded(self) -> None:
        for thr in (0.0, 0.3, 0.5, 0.9):
            out = suppress(_random_candidates(80, seed=2), iou_threshold=thr)
            for i in range(len(out)):
                for j in range(i + 1, len(out)):
                    self.assertLessEqual(iou(out[i].as_xyxy(), out[j].as_xyxy()), thr)

    def test_idempotent(self) -> None:
        once = suppress(_random_candidates(80, seed=4), iou_threshold=0.4, output_limit=20)
        twice = suppress(once, iou_threshold=0.4, output_limit=20)
        self.assertEqual(once, twice)

    def test_stable_tie_break(self) -> None:
        a = _det(0, 0, 10, 10, 0.8)
        b = _det(100, 100, 110, 110, 0.8)
        c = _det(1, 1, 10, 10, 0.8)
        self.assertEqual(suppress([a, b, c], 0.5), [a, b])
        self.assertEqual(suppress([c, b, a], 0.5), [c, b])

    def test_deterministic(self) -> None:
        cands = _random_candidates(50, seed=5)
        self.assertEqual(suppress(cands, 0.5), suppress(list(cands), 0.5))

    def test_single_best_detection(self) -> None:
        cands = _random_candidates(30, seed=6)
        out = suppress(cands, 0.5, output_limit=1)
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].score, max(d.score for d in cands))

    def test_input_not_modified(self) -> None:
        cands = _random_candidates(20, seed=7)
        before = list(cands)
        suppress(cands, 0.3)
        self.assertEqual(cands, before)

    def test_empty(self) -> None:
        self.assertEqual(suppress([], 0.5), [])
        self.assertEqual(suppress(_random_candidates(5, seed=8), 0.5, output_limit=0), [])

    def test_negative_limit_rejected(self) -> None:
        with self.assertRaises(ValueError):
            suppress(_random_candidates(3, seed=9), 0.5, output_limit=-1)

    def test_per_class_keeps_overlapping_boxes_of_other_classes(self) -> None:
        person = _det(0, 0, 10, 10, 0.9, class_id=0)
        dog = _det(0, 0, 10, 9, 0.8, class_id=1)
        other_person = _det(0, 0, 10, 9, 0.7, class_id=0)
        self.assertEqual(suppress([person, dog, other_person], 0.5), [person])
        self.assertEqual(suppress([person, dog, other_person], 0.5, class_agnostic=False), [person, dog])


class TestSelectTop(unittest.TestCase):
    def test_topk_without_suppression(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(0, 0, 10, 9, 0.8)
        c = _det(50, 50, 60, 60, 0.3)
        self.assertEqual(select_top([c, b, a], 2), [a, b])
        self.assertEqual(select_top([c, b, a]), [a, b, c])


if __name__ == "__main__":
    unittest.main()
