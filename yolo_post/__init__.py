"""
Post-processing for single-image YOLO-style detector outputs.

Raw output tensor -> thresholded, pixel-space, clamped boxes -> greedy NMS.
Works on NumPy arrays from any runtime; only NumPy is required.
"""

from .errors import ShapeError
from .types import DecodeStats, Detection, DetectionResult
from .tensor import TensorLayout, TensorView
from .geometry import box_area, iou, iou_one_to_many
from .decode import ClassMode, Decoder, decode
from .nms import NMSConfig, nms, select_top, suppress
from .postprocess import PostprocessConfig, Postprocessor
from .labels import find_project_root, load_class_names, load_labels, resolve_path
from .config import load_postprocess_config
from .detector import Detector, DetectorListener

__all__ = [
    "ShapeError",
    "DecodeStats",
    "Detection",
    "DetectionResult",
    "TensorLayout",
    "TensorView",
    "box_area",
    "iou",
    "iou_one_to_many",
    "ClassMode",
    "Decoder",
    "decode",
    "NMSConfig",
    "nms",
    "select_top",
    "suppress",
    "PostprocessConfig",
    "Postprocessor",
    "find_project_root",
    "load_class_names",
    "load_labels",
    "resolve_path",
    "load_postprocess_config",
    "Detector",
    "DetectorListener",
]
