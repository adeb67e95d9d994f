from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

import numpy as np

from yolo_post import (
    ClassMode,
    PostprocessConfig,
    Postprocessor,
    TensorLayout,
    load_class_names,
    load_labels,
    load_postprocess_config,
)


def _load_vocabulary(args: argparse.Namespace):
    if args.labels is not None:
        return load_labels(args.labels, root=Path.cwd())
    if args.metadata is not None:
        return load_class_names(args.metadata, root=Path.cwd())
    return ()


def _make_config(args: argparse.Namespace) -> PostprocessConfig:
    if args.config is not None:
        return load_postprocess_config(Path(args.config))
    return PostprocessConfig(
        conf_threshold=float(args.conf),
        iou_threshold=float(args.iou),
        max_detections=None if args.max_det == 0 else int(args.max_det),
        layout=TensorLayout(args.layout),
        class_mode=None if args.class_mode is None else ClassMode(args.class_mode),
        class_agnostic_nms=not bool(args.per_class_nms),
    )


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Decode a saved raw YOLO output tensor (.npy) into detections and print them as JSON."
    )
    parser.add_argument("tensor", help="Path to a .npy file holding the output for one image.")
    parser.add_argument("--width", type=int, required=True, help="Original image width in pixels.")
    parser.add_argument("--height", type=int, required=True, help="Original image height in pixels.")
    vocab = parser.add_mutually_exclusive_group()
    vocab.add_argument("--labels", default=None, help="Plain-text label file, one class per line.")
    vocab.add_argument("--metadata", default=None, help="YOLO metadata.yaml with a `names:` block.")

    parser.add_argument("--config", default=None, help="JSON postprocess config (overrides the flags below).")
    parser.add_argument("--conf", type=float, default=0.3, help="Confidence threshold (exclusive).")
    parser.add_argument("--iou", type=float, default=0.5, help="IoU threshold for NMS.")
    parser.add_argument("--max-det", type=int, default=0, help="Max detections to keep (0 = no limit).")
    parser.add_argument(
        "--layout",
        default=TensorLayout.ROW_MAJOR.value,
        choices=[m.value for m in TensorLayout],
        help="row_major for (N, 5+C), attribute_major for (5+C, N).",
    )
    parser.add_argument(
        "--class-mode",
        default=None,
        choices=[m.value for m in ClassMode],
        help="Force single/multi class decoding (default: pick from output width and labels).",
    )
    parser.add_argument("--per-class-nms", action="store_true", help="Use per-class NMS (default is class-agnostic).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.max_det < 0:
        raise ValueError("--max-det must be >= 0")

    preds = np.load(args.tensor)
    labels = _load_vocabulary(args)
    post = Postprocessor(_make_config(args))
    result = post.process(preds, image_size=(int(args.width), int(args.height)), labels=labels)

    payload = {
        "image_size": list(result.image_size),
        "stats": {
            "predictions": result.stats.predictions,
            "below_threshold": result.stats.below_threshold,
            "degenerate": result.stats.degenerate,
            "invalid_class": result.stats.invalid_class,
            "kept": result.stats.kept,
        },
        "detections": [d.to_dict() for d in result.detections],
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
