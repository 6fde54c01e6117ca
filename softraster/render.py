import numpy as np

import matplotlib.pyplot as plt
import matplotlib.animation as animation
from IPython.display import HTML

from functools import partial
import concurrent.futures
from tqdm import tqdm

from .color import Color
from .config import RenderConfig
from .framebuffer import Framebuffer
from .primitives import Mesh, Triangle
from .rasterizer import draw_triangle
from .utils import Fps, FpsStatus, rotate_mesh

# The viewer looks down -z; larger z is nearer.
VIEW_DIR = np.array([0.0, 0.0, -1.0])


class VertexProcessor:
    """Handles the per-triangle stage of the pipeline: face normals, lighting and culling."""

    @staticmethod
    def _face_normal(positions):
        v0, v1, v2 = positions.astype(np.float64)
        n = np.cross(v2 - v0, v1 - v0)
        norm = np.linalg.norm(n)
        if norm == 0.0:
            return None
        return n / norm

    @staticmethod
    def _vertex_shader_worker(item, light_dir, shading, cull_backfaces):
        """
        Prepares a single triangle for rasterization.
        This is a static method so it can be used with ProcessPoolExecutor.

        Returns:
            dict or None: None when the triangle is degenerate, unlit (flat
                          shading) or back-facing (culling on).
        """
        index, tri = item
        n = VertexProcessor._face_normal(tri.positions)
        if n is None:
            return None  # zero-area triangle

        intensity = float(np.dot(n, light_dir))
        if shading == "flat" and intensity <= 0.0:
            return None
        if cull_backfaces and float(np.dot(n, VIEW_DIR)) <= 0.0:
            return None

        return {
            "index": index,
            "triangle": tri,
            "intensity": intensity,
            "depth": float(np.mean(tri.positions[:, 2])),
        }

    def __init__(self, parallel=False):
        self.executor = concurrent.futures.ProcessPoolExecutor() if parallel else None

    def run_vertex_stage(self, mesh: Mesh, config: RenderConfig):
        """
        Takes a mesh and processes its triangles (in parallel when enabled) to
        produce a list of primitives ready for rasterization.
        """
        worker_fn = partial(VertexProcessor._vertex_shader_worker,
                            light_dir=np.asarray(config.light_dir, dtype=np.float64),
                            shading=config.shading,
                            cull_backfaces=config.cull_backfaces)
        items = [(i, mesh.triangle(i)) for i in range(len(mesh))]

        if self.executor is not None:
            print(f"Number of workers being used: {self.executor._max_workers}")
            results_iterator = self.executor.map(worker_fn, items, chunksize=64)
        else:
            results_iterator = map(worker_fn, items)
        results = list(tqdm(results_iterator, total=len(items), desc="Vertex Processing",
                            disable=not config.progress))

        visible = [r for r in results if r is not None]

        # Sort from back to front; flat triangles are drawn without a depth test
        visible.sort(key=lambda p: p["depth"])
        return visible

    def close(self):
        """Shuts down the process pool executor."""
        if self.executor is not None:
            print("Shutting down vertex processor...")
            self.executor.shutdown()
            self.executor = None


class Renderer:
    def __init__(self, mesh: Mesh, config: RenderConfig = None, texture=None, num_frames: int = 1,
                 figsize=(8, 8)):
        if config is None:
            config = RenderConfig()
        if config.shading == "textured" and texture is None:
            raise ValueError("textured shading needs a texture")
        self.mesh = mesh
        self.config = config
        self.texture = texture
        self.num_frames = num_frames
        self.figsize = figsize
        self.fig = None
        self.ax = None

        # --- Pipeline Components ---
        self.vertex_processor = VertexProcessor(parallel=config.parallel)
        self.framebuffer = Framebuffer(config.width, config.height, config.background)
        self.framebuffer.set_depth_test(config.depth_test)
        self.fps = Fps()

    def draw(self, mesh: Mesh = None) -> Framebuffer:
        """
        Renders `mesh` (default: the renderer's mesh) into the framebuffer and returns it.
        """
        if mesh is None:
            mesh = self.mesh
        config = self.config

        # --- 1. Clear the framebuffer for the new frame ---
        self.framebuffer.clear(config.background)

        # --- 2. Vertex Processing Stage ---
        primitives = self.vertex_processor.run_vertex_stage(mesh, config)

        # --- 3. Rasterization Stage ---
        for prim in tqdm(primitives, desc="Rasterizing", disable=not config.progress):
            self._rasterize(prim)

        status, fps = self.fps.update()
        if status is FpsStatus.UPDATED:
            print(f"FPS: {fps}")
        return self.framebuffer

    def _rasterize(self, prim):
        tri: Triangle = prim["triangle"]
        p0, p1, p2 = tri.positions
        if self.config.shading == "flat":
            i = prim["intensity"] * self.config.light_intensity
            draw_triangle(self.framebuffer, p0, p1, p2, Color.from_float([i, i, i, 1.0]),
                          method=self.config.method)
        else:
            draw_triangle(self.framebuffer, p0, p1, p2,
                          texture=self.texture, uvs=tri.uvs, normals=tri.normals,
                          light_dir=self.config.light_dir,
                          light_intensity=self.config.light_intensity,
                          wrap_mode=self.config.wrap_mode,
                          filter_mode=self.config.filter_mode,
                          method=self.config.method)

    def mesh_at(self, frame_num) -> Mesh:
        """The mesh spun about the y axis by the fraction of a turn reached at `frame_num`."""
        if self.num_frames <= 1:
            return self.mesh
        angle = 2.0 * np.pi * frame_num / self.num_frames
        return rotate_mesh(self.mesh, (0.0, angle, 0.0))

    def render_frame(self, frame_num=0, figsize=None):
        print(f"Rendering frame {frame_num}...")
        self._prepare_plot(figsize)
        return self._render_frame(frame_num)

    def render_animation(self, interval=30, figsize=None):
        """
        Creates and returns an animation of the mesh turning once about the y axis.
        The `_render_frame` method is called for every frame of the animation.
        """
        self._prepare_plot(figsize=figsize)

        ani = animation.FuncAnimation(
            self.fig,
            self._render_frame,
            frames=self.num_frames,
            interval=interval,
            blit=False # Blit must be False on most backends when using ax.clear()
        )

        plt.close(self.fig) # Prevent the static figure from displaying
        return HTML(ani.to_jshtml())

    def save(self, path):
        self.framebuffer.write(path)

    def save_depth(self, path):
        self.framebuffer.write_depth(path)

    def close(self):
        """
        Shuts down the pipeline components. Should be called when rendering is complete
        to release resources, especially for the multiprocessing pool.
        """
        self.vertex_processor.close()
        if self.fig is not None:
            plt.close(self.fig)
            self.fig = None

    def _prepare_plot(self, figsize):
        """Prepares the figure and axes for plotting."""
        if figsize is None:
            figsize = self.figsize
        self.fig, self.ax = plt.subplots(figsize=figsize)

    def _finalize_plot_settings(self):
        """Applies final, common settings to the plot for a given frame."""
        self.ax.set_aspect('equal', adjustable='box')
        self.ax.grid(False)
        self.ax.set_xticks([])
        self.ax.set_yticks([])

    def _render_frame(self, frame_num):
        """
        Renders a single frame by executing the full software rendering pipeline.
        """
        # Clear the previous frame's content
        self.ax.clear()

        print(f"Frame {frame_num}: Running vertex processing...")
        self.draw(self.mesh_at(frame_num))

        # --- 4. Display the final image from the framebuffer ---
        self.ax.imshow(self.framebuffer.get_image().copy())

        self._finalize_plot_settings()

        return self.ax,
