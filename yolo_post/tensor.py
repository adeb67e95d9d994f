from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from .errors import ShapeError


# cx, cy, w, h, objectness
MIN_ATTRIBUTES = 5


class TensorLayout(str, Enum):
    """
    Physical layout of a single-image YOLO output.

    - ROW_MAJOR: (N, 5 + C), one row per prediction
    - ATTRIBUTE_MAJOR: (5 + C, N), one row per attribute (channels first)
    """

    ROW_MAJOR = "row_major"
    ATTRIBUTE_MAJOR = "attribute_major"


class TensorView:
    """
    Read-only view over a raw output tensor.

    The layout is given by the caller, never guessed from the data. All accessors
    return NumPy views into the original buffer; nothing is copied.

    Per prediction the attributes are [x, y, w, h, objectness, class_scores...]
    with geometry normalized to [0, 1].
    """

    def __init__(
        self,
        preds: np.ndarray,
        layout: Union[TensorLayout, str] = TensorLayout.ROW_MAJOR,
        shape: Optional[Tuple[int, int]] = None,
    ):
        self.layout = TensorLayout(layout)

        p = np.asarray(preds)
        if shape is not None:
            if p.ndim != 1:
                raise ShapeError(f"An explicit shape needs a flat buffer, got array of shape {p.shape}.")
            rows, cols = (int(v) for v in shape)
            if rows < 0 or cols < 0 or rows * cols != p.size:
                raise ShapeError(f"Buffer of {p.size} values does not match declared shape {tuple(shape)}.")
            p = p.reshape(rows, cols)

        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ShapeError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ShapeError(f"Expected a 2-D prediction tensor, got shape {p.shape}.")

        if self.layout is TensorLayout.ROW_MAJOR:
            self._rows = p
        else:
            self._rows = p.T

        if self._rows.shape[1] < MIN_ATTRIBUTES:
            raise ShapeError(
                f"Need at least {MIN_ATTRIBUTES} attributes per prediction, "
                f"got {self._rows.shape[1]} ({self.layout.value}, shape {p.shape})."
            )

    @property
    def num_predictions(self) -> int:
        return int(self._rows.shape[0])

    @property
    def num_attributes(self) -> int:
        return int(self._rows.shape[1])

    @property
    def num_class_scores(self) -> int:
        return self.num_attributes - MIN_ATTRIBUTES

    @property
    def has_class_scores(self) -> bool:
        return self.num_class_scores > 0

    def boxes(self) -> np.ndarray:
        """(N, 4) normalized cx, cy, w, h."""
        return self._rows[:, 0:4]

    def objectness(self) -> np.ndarray:
        return self._rows[:, 4]

    def class_scores(self) -> np.ndarray:
        """(N, C) trailing per-class scores; C may be 0."""
        return self._rows[:, MIN_ATTRIBUTES:]

    def prediction(self, i: int) -> np.ndarray:
        """
        Attributes of prediction `i` as a 1-D view: [x, y, w, h, obj, scores...].
        """

        if not 0 <= i < self.num_predictions:
            raise IndexError(f"Prediction index {i} out of range [0, {self.num_predictions}).")
        return self._rows[i]

    def __len__(self) -> int:
        return self.num_predictions

    def __repr__(self) -> str:
        return (
            f"TensorView(layout={self.layout.value}, predictions={self.num_predictions}, "
            f"attributes={self.num_attributes})"
        )
