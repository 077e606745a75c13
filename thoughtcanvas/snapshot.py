"""Read-only view of canvas state, rebuilt for every frame."""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple, TYPE_CHECKING

from thoughtcanvas.geometry import (
    BezierPath,
    Point,
    connection_path,
    label_position,
    node_center,
    node_size,
)
from thoughtcanvas.interaction import InteractionController, InteractionMode
from thoughtcanvas.viewport import Viewport

if TYPE_CHECKING:
    from thoughtcanvas.assistant import AIAssistant


@dataclass(frozen=True)
class NodeView:
    id: str
    x: float
    y: float
    width: float
    height: float
    content: str
    kind: str
    color: Optional[str]
    selected: bool
    pending_source: bool


@dataclass(frozen=True)
class ConnectionView:
    id: str
    from_id: str
    to_id: str
    start: Point
    end: Point
    path: BezierPath
    label: Optional[str]
    label_at: Point


@dataclass(frozen=True)
class CanvasSnapshot:
    nodes: Tuple[NodeView, ...]
    connections: Tuple[ConnectionView, ...]
    viewport: Viewport
    selection: FrozenSet[str]
    mode: InteractionMode
    pending_source: Optional[str]
    preview: Optional[Tuple[Point, Point]]
    busy: bool
    busy_message: Optional[str]


def build_snapshot(controller: InteractionController,
                   assistant: Optional["AIAssistant"] = None) -> CanvasSnapshot:
    """Project the controller's store, viewport and gesture state."""
    store = controller.store
    selection = store.selection
    pending = controller.pending_source

    nodes = []
    centers = {}
    for node in store.nodes:
        width, height = node_size(node)
        centers[node.id] = node_center(node)
        nodes.append(NodeView(
            id=node.id,
            x=node.x,
            y=node.y,
            width=width,
            height=height,
            content=node.content,
            kind=node.kind.value,
            color=node.color,
            selected=node.id in selection,
            pending_source=node.id == pending,
        ))

    connections = []
    for conn in store.connections:
        start = centers.get(conn.from_id)
        end = centers.get(conn.to_id)
        if start is None or end is None:
            continue
        connections.append(ConnectionView(
            id=conn.id,
            from_id=conn.from_id,
            to_id=conn.to_id,
            start=start,
            end=end,
            path=connection_path(start, end),
            label=conn.label,
            label_at=label_position(start, end),
        ))

    vp = controller.viewport
    return CanvasSnapshot(
        nodes=tuple(nodes),
        connections=tuple(connections),
        viewport=Viewport(vp.offset_x, vp.offset_y, vp.scale),
        selection=selection,
        mode=controller.mode,
        pending_source=pending,
        preview=controller.preview_line(),
        busy=assistant.busy if assistant else False,
        busy_message=assistant.message if assistant else None,
    )
