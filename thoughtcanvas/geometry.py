"""Coordinate transforms and connector geometry for the canvas."""

import math
import random
import string
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from thoughtcanvas.store import Node
    from thoughtcanvas.viewport import Viewport


DEFAULT_NODE_WIDTH = 220.0
DEFAULT_NODE_HEIGHT = 100.0

MAX_CURVATURE = 150.0
CURVATURE_FACTOR = 0.5

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 7


class Point(NamedTuple):
    """A 2D point, in either screen or world space."""
    x: float
    y: float


@dataclass(frozen=True)
class BezierPath:
    """A cubic Bezier curve from `start` to `end`."""
    start: Point
    control1: Point
    control2: Point
    end: Point


def screen_to_world(point: Tuple[float, float], viewport: "Viewport") -> Point:
    """Map a screen-space point into world space."""
    return Point(
        (point[0] - viewport.offset_x) / viewport.scale,
        (point[1] - viewport.offset_y) / viewport.scale,
    )


def world_to_screen(point: Tuple[float, float], viewport: "Viewport") -> Point:
    """Map a world-space point onto the screen (inverse of screen_to_world)."""
    return Point(
        point[0] * viewport.scale + viewport.offset_x,
        point[1] * viewport.scale + viewport.offset_y,
    )


def node_size(node: "Node") -> Tuple[float, float]:
    """Effective width and height of a node, falling back to the defaults."""
    return (node.width or DEFAULT_NODE_WIDTH, node.height or DEFAULT_NODE_HEIGHT)


def node_rect(node: "Node") -> Tuple[float, float, float, float]:
    """World-space (x, y, width, height) of a node."""
    w, h = node_size(node)
    return (node.x, node.y, w, h)


def node_center(node: "Node") -> Point:
    w, h = node_size(node)
    return Point(node.x + w / 2, node.y + h / 2)


def contains_point(node: "Node", px: float, py: float) -> bool:
    """Check if a world-space point is inside a node's rectangle."""
    x, y, w, h = node_rect(node)
    return x <= px <= x + w and y <= py <= y + h


def distance(p1: Tuple[float, float], p2: Tuple[float, float]) -> float:
    return math.hypot(p2[0] - p1[0], p2[1] - p1[1])


def connection_path(start: Tuple[float, float], end: Tuple[float, float]) -> BezierPath:
    """Build the curved connector between two node centres.

    The control points are pulled horizontally (right of the start, left of
    the end) unless the nodes are separated more vertically than
    horizontally, in which case they are pulled vertically (below the start,
    above the end). Equal separations count as horizontal.
    """
    start = Point(*start)
    end = Point(*end)
    curvature = min(distance(start, end) * CURVATURE_FACTOR, MAX_CURVATURE)

    if abs(start.x - end.x) < abs(start.y - end.y):
        cp1 = Point(start.x, start.y + curvature)
        cp2 = Point(end.x, end.y - curvature)
    else:
        cp1 = Point(start.x + curvature, start.y)
        cp2 = Point(end.x - curvature, end.y)

    return BezierPath(start, cp1, cp2, end)


def label_position(start: Tuple[float, float], end: Tuple[float, float]) -> Point:
    """Where a connection label is drawn: the midpoint of its endpoints."""
    return Point((start[0] + end[0]) / 2, (start[1] + end[1]) / 2)


def generate_id(rng: Optional[random.Random] = None) -> str:
    """Short random base-36 identifier."""
    rng = rng or random
    return "".join(rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
