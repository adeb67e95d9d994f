from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

import numpy as np

from .decode import ClassMode, Decoder
from .postprocess import PostprocessConfig, Postprocessor
from .tensor import MIN_ATTRIBUTES
from .types import DetectionResult

logger = logging.getLogger(__name__)


class DetectorListener(Protocol):
    def on_empty(self, result: DetectionResult) -> None: ...

    def on_detect(self, result: DetectionResult) -> None: ...


class Detector:
    """
    Owns everything one deployed model needs to produce detections:
    an inference callable, the label vocabulary and the post-processing config.

    Nothing is created lazily or shared globally. Build one explicitly, use it,
    then `close()` it (or use it as a context manager).

    `infer_fn` is the external inference call: it takes whatever input the model
    expects and returns the raw output tensor for one image.
    """

    def __init__(
        self,
        infer_fn: Callable[[Any], np.ndarray],
        labels: Sequence[str],
        cfg: PostprocessConfig = PostprocessConfig(),
        *,
        num_attributes: Optional[int] = None,
        backend: Optional[object] = None,
        listener: Optional[DetectorListener] = None,
    ):
        """
        Args:
            infer_fn: inference call returning the raw tensor
            labels: class names, copied into an immutable tuple
            cfg: post-processing settings
            num_attributes: declared per-prediction width (5 + C) of the model
                output; fixes the class mode up front when `cfg.class_mode` is None
            backend: object behind `infer_fn`; its `close()` is called on close
            listener: optional callbacks notified after each `detect`
        """

        self._infer_fn = infer_fn
        self.labels: Tuple[str, ...] = tuple(labels)
        self.cfg = cfg
        self.backend = backend
        self.listener = listener
        self.post = Postprocessor(cfg)
        self._closed = False

        if not self.labels:
            logger.warning("Detector created with an empty label vocabulary; classes will be reported as Unknown")

        mode = cfg.class_mode
        if mode is None:
            if num_attributes is None:
                # Conventional 5 + C output for this vocabulary.
                num_attributes = MIN_ATTRIBUTES + len(self.labels)
            mode = ClassMode.for_output(num_attributes, len(self.labels))
        self.decoder = Decoder(mode)
        logger.debug("Detector ready: %d labels, class mode %s, layout %s", len(self.labels), mode.value, cfg.layout.value)

    @property
    def class_mode(self) -> ClassMode:
        return self.decoder.mode

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Detector is closed")

    def process(self, preds: np.ndarray, image_size: Tuple[int, int]) -> DetectionResult:
        """
        Post-process an output tensor produced elsewhere.
        """

        self._check_open()
        return self.post.process(preds, image_size, self.labels, decoder=self.decoder)

    def detect(self, inputs: Any, image_size: Tuple[int, int]) -> DetectionResult:
        """
        Run inference on `inputs` and post-process for an image of `image_size` (width, height).

        Errors from inference or decoding propagate; an empty result only means
        nothing was detected.
        """

        self._check_open()
        t0 = time.perf_counter()
        preds = self._infer_fn(inputs)
        inference_ms = (time.perf_counter() - t0) * 1000.0

        result = self.post.process(preds, image_size, self.labels, decoder=self.decoder)
        result = replace(result, inference_ms=inference_ms)

        if self.listener is not None:
            if result.is_empty:
                self.listener.on_empty(result)
            else:
                self.listener.on_detect(result)
        return result

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self.backend, "close", None)
        if callable(close):
            close()
        logger.debug("Detector closed")

    def __enter__(self) -> "Detector":
        self._check_open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
