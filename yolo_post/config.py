from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .decode import ClassMode
from .postprocess import PostprocessConfig
from .tensor import TensorLayout


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_bool(payload: Dict[str, Any], key: str, default: bool) -> bool:
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def load_postprocess_config(path: Path) -> PostprocessConfig:
    """
    Read a `PostprocessConfig` from a JSON object such as:

        {"schema_version": 1, "conf_threshold": 0.3, "iou_threshold": 0.5,
         "max_detections": null, "layout": "attribute_major", "class_mode": "single"}
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Postprocess config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid postprocess config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Postprocess config must be a JSON object")

    allowed = {
        "schema_version",
        "conf_threshold",
        "iou_threshold",
        "max_detections",
        "layout",
        "class_mode",
        "apply_nms",
        "class_agnostic_nms",
        "class_ids",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown postprocess config keys: {unknown}")

    if _require_int(payload, "schema_version") != 1:
        raise ValueError("postprocess config schema_version must be 1")

    defaults = PostprocessConfig()

    max_detections = payload.get("max_detections")
    if max_detections is not None and (isinstance(max_detections, bool) or not isinstance(max_detections, int)):
        raise ValueError("max_detections must be an integer or null")

    layout = payload.get("layout", defaults.layout.value)
    try:
        layout = TensorLayout(layout)
    except ValueError as exc:
        raise ValueError(f"layout must be one of {[m.value for m in TensorLayout]}") from exc

    class_mode = payload.get("class_mode")
    if class_mode is not None:
        try:
            class_mode = ClassMode(class_mode)
        except ValueError as exc:
            raise ValueError(f"class_mode must be one of {[m.value for m in ClassMode]} or null") from exc

    class_ids = payload.get("class_ids")
    if class_ids is not None:
        if not isinstance(class_ids, list) or any(isinstance(c, bool) or not isinstance(c, int) for c in class_ids):
            raise ValueError("class_ids must be a list of integers or null")
        class_ids = tuple(class_ids)

    return PostprocessConfig(
        conf_threshold=_optional_number(payload, "conf_threshold", defaults.conf_threshold),
        iou_threshold=_optional_number(payload, "iou_threshold", defaults.iou_threshold),
        max_detections=max_detections,
        layout=layout,
        class_mode=class_mode,
        apply_nms=_optional_bool(payload, "apply_nms", defaults.apply_nms),
        class_agnostic_nms=_optional_bool(payload, "class_agnostic_nms", defaults.class_agnostic_nms),
        class_ids=class_ids,
    )
