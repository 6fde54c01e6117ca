from .color import Color, fixed_to_float, float_to_fixed
from .errors import (
    BadPositionError,
    BadSizeError,
    ImageDecodeError,
    ImageReadError,
    ImageWriteError,
    ModelError,
    RasterError,
    UnsupportedImageTypeError,
)
from .framebuffer import Framebuffer
from .texture import FilterMode, Texture, WrapMode
from .rasterizer import draw_line, draw_triangle
from .primitives import Mesh, Triangle
from .io import image_read, image_write, load_model, load_obj, load_ply
from .config import RenderConfig
