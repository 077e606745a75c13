"""Pan offset and zoom scale of the canvas view."""

from dataclasses import dataclass
from typing import Iterable, Tuple

from thoughtcanvas.geometry import Point, screen_to_world, world_to_screen


MIN_SCALE = 0.1
MAX_SCALE = 3.0
ZOOM_STEP = 0.1
FIT_MARGIN = 50.0


def clamp_scale(scale: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, scale))


@dataclass
class Viewport:
    """Affine map between world and screen: screen = world * scale + offset."""
    offset_x: float = 0.0
    offset_y: float = 0.0
    scale: float = 1.0

    def __post_init__(self):
        self.scale = clamp_scale(self.scale)

    def screen_to_world(self, point: Tuple[float, float]) -> Point:
        return screen_to_world(point, self)

    def world_to_screen(self, point: Tuple[float, float]) -> Point:
        return world_to_screen(point, self)

    def pan_by(self, dx: float, dy: float):
        """Shift the view by a screen-space delta. The world is unbounded."""
        self.offset_x += dx
        self.offset_y += dy

    def zoom_at(self, screen_point: Tuple[float, float], delta_scale: float):
        """Change scale by `delta_scale`, keeping the world point under
        `screen_point` fixed on screen.

        The anchor is preserved even when the new scale saturates at
        MIN_SCALE or MAX_SCALE, since the offset is derived from the clamped
        value.
        """
        anchor = self.screen_to_world(screen_point)
        new_scale = clamp_scale(self.scale + delta_scale)
        self.scale = new_scale
        self.offset_x = screen_point[0] - anchor.x * new_scale
        self.offset_y = screen_point[1] - anchor.y * new_scale

    def zoom_in(self, screen_point: Tuple[float, float]):
        self.zoom_at(screen_point, ZOOM_STEP)

    def zoom_out(self, screen_point: Tuple[float, float]):
        self.zoom_at(screen_point, -ZOOM_STEP)

    def reset_zoom(self, screen_point: Tuple[float, float]):
        """Return to 100% around a screen point."""
        self.zoom_at(screen_point, 1.0 - self.scale)

    def center_on(self, world_point: Tuple[float, float], width: float, height: float):
        """Pan so that `world_point` sits in the middle of a width x height surface."""
        self.offset_x = width / 2 - world_point[0] * self.scale
        self.offset_y = height / 2 - world_point[1] * self.scale

    def zoom_to_fit(self, rects: Iterable[Tuple[float, float, float, float]],
                    width: float, height: float) -> bool:
        """Fit the given world rectangles into the surface. Never zooms past 100%."""
        rects = list(rects)
        if not rects or width <= 0 or height <= 0:
            return False

        min_x = min(r[0] for r in rects)
        min_y = min(r[1] for r in rects)
        max_x = max(r[0] + r[2] for r in rects)
        max_y = max(r[1] + r[3] for r in rects)

        map_width = max_x - min_x + FIT_MARGIN * 2
        map_height = max_y - min_y + FIT_MARGIN * 2

        self.scale = clamp_scale(min(width / map_width, height / map_height, 1.0))
        self.center_on(((min_x + max_x) / 2, (min_y + max_y) / 2), width, height)
        return True
