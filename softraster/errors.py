class RasterError(Exception):
    """Base class for every error raised by softraster."""


class BadSizeError(RasterError, ValueError):
    """A framebuffer or texture was created with a negative dimension."""


class BadPositionError(RasterError, IndexError):
    """A pixel read was outside [0, width) x [0, height)."""


class ImageReadError(RasterError, OSError):
    """An image file could not be opened or read."""


class ImageDecodeError(ImageReadError):
    """An image file was read but its contents could not be decoded."""


class ImageWriteError(RasterError, OSError):
    """An image could not be encoded or written."""


class UnsupportedImageTypeError(ImageWriteError):
    """The file extension does not name a supported image format."""


class ModelError(RasterError, ValueError):
    """A model file contained a malformed statement."""
