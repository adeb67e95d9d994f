from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from yolo_post import ClassMode, PostprocessConfig, Postprocessor, TensorLayout


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = [v * 1000.0 for v in values_s]
    ms_sorted = sorted(ms)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def _synthetic_output(n: int, n_classes: int, layout: TensorLayout, seed: int = 0) -> np.ndarray:
    # Row-major [cx, cy, w, h, obj, class_scores...] with normalized geometry.
    rng = np.random.default_rng(seed)
    cxcy = rng.uniform(0.0, 1.0, size=(n, 2))
    wh = rng.uniform(0.01, 0.15, size=(n, 2))
    obj = rng.uniform(0.0, 1.0, size=(n, 1))
    scores = rng.uniform(0.0, 1.0, size=(n, n_classes))
    rows = np.concatenate([cxcy, wh, obj, scores], axis=1).astype(np.float32)
    if layout is TensorLayout.ATTRIBUTE_MAJOR:
        return np.ascontiguousarray(rows.T)
    return rows


def _make_postprocessors(args: argparse.Namespace) -> Tuple[Postprocessor, Postprocessor]:
    base = PostprocessConfig(
        conf_threshold=float(args.conf),
        iou_threshold=float(args.iou),
        max_detections=int(args.max_det),
        layout=TensorLayout(args.layout),
        class_mode=ClassMode.MULTI if args.classes > 1 else ClassMode.SINGLE,
        class_agnostic_nms=not bool(args.per_class_nms),
    )
    post_with_nms = Postprocessor(base)
    post_no_nms = Postprocessor(
        PostprocessConfig(
            conf_threshold=base.conf_threshold,
            iou_threshold=base.iou_threshold,
            max_detections=base.max_detections,
            layout=base.layout,
            class_mode=base.class_mode,
            apply_nms=False,
            class_agnostic_nms=base.class_agnostic_nms,
        )
    )
    return post_with_nms, post_no_nms


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark post-processing latency with NMS vs without NMS (top-K only) on synthetic outputs."
    )
    parser.add_argument("--boxes", type=int, default=8400, help="Number of synthetic predictions.")
    parser.add_argument("--classes", type=int, default=80, help="Number of class score columns.")
    parser.add_argument(
        "--layout",
        default=TensorLayout.ATTRIBUTE_MAJOR.value,
        choices=[m.value for m in TensorLayout],
        help="Layout of the synthetic output.",
    )
    parser.add_argument("--size", type=int, default=640, help="Square image size the boxes are mapped to.")
    parser.add_argument("--conf", type=float, default=0.3, help="Confidence threshold (pre-NMS).")
    parser.add_argument("--iou", type=float, default=0.5, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=300, help="Max detections to keep after NMS/top-K.")
    parser.add_argument("--per-class-nms", action="store_true", help="Use per-class NMS (default is class-agnostic).")
    parser.add_argument("--warmup", type=int, default=10, help="Warmup runs to execute but not record.")
    parser.add_argument("--repeats", type=int, default=100, help="Number of recorded runs.")
    args = parser.parse_args()

    if args.boxes < 1:
        raise ValueError("--boxes must be >= 1")
    if args.classes < 0:
        raise ValueError("--classes must be >= 0")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")
    if args.max_det < 1:
        raise ValueError("--max-det must be >= 1")
    if args.size < 1:
        raise ValueError("--size must be >= 1")

    layout = TensorLayout(args.layout)
    preds = _synthetic_output(int(args.boxes), int(args.classes), layout)
    labels = tuple(f"class_{i}" for i in range(max(int(args.classes), 1)))
    post_with_nms, post_no_nms = _make_postprocessors(args)
    image_size = (int(args.size), int(args.size))

    t_post_nms: List[float] = []
    t_post_no: List[float] = []
    kept_nms = 0
    for i in range(int(args.warmup) + int(args.repeats)):
        t0 = time.perf_counter()
        result = post_with_nms.process(preds, image_size, labels)
        t1 = time.perf_counter()
        _ = post_no_nms.process(preds, image_size, labels)
        t2 = time.perf_counter()

        if i < int(args.warmup):
            continue
        t_post_nms.append(t1 - t0)
        t_post_no.append(t2 - t1)
        kept_nms = len(result)

    print(_format_summary("postprocess_with_nms", _summarize_ms(t_post_nms)))
    print(_format_summary("postprocess_no_nms_topk", _summarize_ms(t_post_no)))
    print(f"boxes={args.boxes} classes={args.classes} layout={layout.value} kept_with_nms={kept_nms}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
