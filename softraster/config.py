import os
from dataclasses import dataclass, field

from .color import Color
from .texture import FilterMode, WrapMode

SHADING_MODES = ("flat", "textured")
RASTER_METHODS = ("vectorized", "naive")


def _env_bool(value):
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class RenderConfig:
    """Configuration for the rendering pipeline."""
    width: int = 512
    height: int = 512
    background: Color = field(default_factory=Color.black)
    shading: str = "textured"
    # Light arrives along -z by default, i.e. towards the viewer's screen.
    light_dir: tuple = (0.0, 0.0, -1.0)
    light_intensity: float = 1.0
    wrap_mode: WrapMode = WrapMode.CLAMP_TO_EDGE
    filter_mode: FilterMode = FilterMode.LINEAR
    depth_test: bool = True
    cull_backfaces: bool = True
    method: str = "vectorized"
    parallel: bool = False
    progress: bool = True

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"width and height must be non-negative, got {self.width}x{self.height}")
        if self.shading not in SHADING_MODES:
            raise ValueError(f"shading must be one of {SHADING_MODES}, got {self.shading!r}")
        if self.method not in RASTER_METHODS:
            raise ValueError(f"method must be one of {RASTER_METHODS}, got {self.method!r}")
        if len(self.light_dir) != 3:
            raise ValueError("light_dir must have 3 components")
        self.light_dir = tuple(float(c) for c in self.light_dir)
        self.wrap_mode = WrapMode(self.wrap_mode)
        self.filter_mode = FilterMode(self.filter_mode)

    @classmethod
    def from_env(cls, environ=None, **overrides) -> 'RenderConfig':
        """
        Build a config from SOFTRASTER_* environment variables.
        Recognized: WIDTH, HEIGHT, SHADING, METHOD, WRAP, FILTER, LIGHT_INTENSITY,
        DEPTH_TEST, CULL, PARALLEL, PROGRESS. Keyword overrides win over the environment.
        """
        environ = os.environ if environ is None else environ

        def get(name):
            return environ.get(f"SOFTRASTER_{name}")

        values = {}
        converters = {
            "WIDTH": ("width", int),
            "HEIGHT": ("height", int),
            "SHADING": ("shading", str),
            "METHOD": ("method", str),
            "WRAP": ("wrap_mode", WrapMode),
            "FILTER": ("filter_mode", FilterMode),
            "LIGHT_INTENSITY": ("light_intensity", float),
            "DEPTH_TEST": ("depth_test", _env_bool),
            "CULL": ("cull_backfaces", _env_bool),
            "PARALLEL": ("parallel", _env_bool),
            "PROGRESS": ("progress", _env_bool),
        }
        for env_name, (attr, convert) in converters.items():
            raw = get(env_name)
            if raw is not None:
                values[attr] = convert(raw.strip())
        values.update(overrides)
        return cls(**values)
