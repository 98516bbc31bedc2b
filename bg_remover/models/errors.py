class BackgroundRemovalError(ValueError):
    """Base class for invalid input handed to the background remover."""


class InvalidDimensions(BackgroundRemovalError):
    """Declared width/height do not describe the channel data."""


class InvalidThreshold(BackgroundRemovalError):
    """Threshold is negative, NaN/inf or not a number at all."""


class InvalidPixelData(BackgroundRemovalError):
    """Channel values outside 0-255, or a malformed colour."""
