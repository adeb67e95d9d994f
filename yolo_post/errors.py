class ShapeError(ValueError):
    """
    Raised when a raw output tensor cannot be interpreted as YOLO predictions.
    """
