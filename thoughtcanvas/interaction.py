"""Pointer, wheel and keyboard interpretation for the canvas.

The controller owns exactly one gesture state at a time:

    Idle                         nothing in progress
    AwaitingConnectionTarget     connect mode, first endpoint picked
    PanningCanvas                pointer captured, moves pan the view
    DraggingNode                 pointer captured, moves drag node(s)

The interaction mode (select / pan / connect) is orthogonal to the state and
only decides which transition a pointer-down takes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from thoughtcanvas.geometry import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    Point,
    node_center,
)
from thoughtcanvas.store import Connection, MindMapStore, Node
from thoughtcanvas.viewport import Viewport

logger = logging.getLogger(__name__)


# Pointer buttons, numbered as GDK numbers them
BUTTON_PRIMARY = 1
BUTTON_MIDDLE = 2
BUTTON_SECONDARY = 3

ZOOM_SENSITIVITY = 0.001

KEY_PAN_MODIFIER = "space"
KEYS_DELETE = ("Delete", "BackSpace")
KEY_ABORT = "Escape"


class InteractionMode(Enum):
    SELECT = "select"
    PAN = "pan"
    CONNECT = "connect"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingConnectionTarget:
    source_id: str


RestingState = Union[Idle, AwaitingConnectionTarget]


@dataclass(frozen=True)
class PanningCanvas:
    resume: RestingState = Idle()


@dataclass(frozen=True)
class DraggingNode:
    node_id: str
    resume: RestingState = Idle()


GestureState = Union[Idle, AwaitingConnectionTarget, PanningCanvas, DraggingNode]


class InteractionController:
    """Turns raw input events into viewport and store mutations."""

    def __init__(self, store: MindMapStore, viewport: Optional[Viewport] = None):
        self.store = store
        self.viewport = viewport or Viewport()
        self.mode = InteractionMode.SELECT
        self.state: GestureState = Idle()

        self.space_held = False
        self.cursor_world = Point(0.0, 0.0)
        self._last_screen = Point(0.0, 0.0)

        # Callbacks
        self.on_changed: Optional[Callable[[], None]] = None
        self.on_connection_created: Optional[Callable[[Connection], None]] = None
        self.on_node_activated: Optional[Callable[[Node], None]] = None

    # ==================== State Queries ====================

    @property
    def captured(self) -> bool:
        """True while a pan or drag owns the pointer."""
        return isinstance(self.state, (PanningCanvas, DraggingNode))

    @property
    def resting_state(self) -> RestingState:
        if isinstance(self.state, (PanningCanvas, DraggingNode)):
            return self.state.resume
        return self.state

    @property
    def pending_source(self) -> Optional[str]:
        resting = self.resting_state
        if isinstance(resting, AwaitingConnectionTarget):
            return resting.source_id
        return None

    def preview_line(self) -> Optional[Tuple[Point, Point]]:
        """Dashed line from the pending source to the cursor, in world space."""
        if self.mode is not InteractionMode.CONNECT or self.pending_source is None:
            return None
        source = self.store.get_node(self.pending_source)
        if source is None:
            return None
        return node_center(source), self.cursor_world

    # ==================== Mode ====================

    def set_mode(self, mode: InteractionMode):
        """Switch mode. A pending connection does not survive a mode change."""
        self.mode = InteractionMode(mode)
        self._set_resting(Idle())
        self._notify_changed()

    def _set_resting(self, resting: RestingState):
        if isinstance(self.state, PanningCanvas):
            self.state = PanningCanvas(resume=resting)
        elif isinstance(self.state, DraggingNode):
            self.state = DraggingNode(self.state.node_id, resume=resting)
        else:
            self.state = resting

    # ==================== Pointer Events ====================

    def pointer_down(self, x: float, y: float, button: int = BUTTON_PRIMARY,
                     shift: bool = False):
        """Handle a button press at screen position (x, y)."""
        if self.captured:
            return

        self._last_screen = Point(x, y)
        self.cursor_world = self.viewport.screen_to_world((x, y))

        if button not in (BUTTON_PRIMARY, BUTTON_MIDDLE):
            return

        target = self.store.node_at(*self.cursor_world)

        if button == BUTTON_MIDDLE or self.space_held or (
                target is None and self.mode is InteractionMode.PAN):
            self.state = PanningCanvas(resume=self.resting_state)
            self._notify_changed()
            return

        if target is None:
            self.store.clear_selection()
            self.state = Idle()
            self._notify_changed()
            return

        if self.mode is InteractionMode.CONNECT:
            self._pick_connection_endpoint(target)
        elif self.mode is InteractionMode.PAN:
            self.state = PanningCanvas(resume=self.resting_state)
        else:
            self.store.select(target.id, additive=shift)
            self.state = DraggingNode(target.id, resume=self.resting_state)
        self._notify_changed()

    def _pick_connection_endpoint(self, target: Node):
        source_id = self.pending_source
        if source_id is None:
            self.state = AwaitingConnectionTarget(target.id)
            return

        self.state = Idle()
        if source_id == target.id:
            logger.debug("Connection from %s aborted", source_id)
            return

        conn = self.store.add_connection(source_id, target.id)
        if conn is not None and self.on_connection_created:
            self.on_connection_created(conn)

    def pointer_move(self, x: float, y: float):
        """Handle pointer motion; deltas are measured from the previous event."""
        dx = x - self._last_screen.x
        dy = y - self._last_screen.y
        self._last_screen = Point(x, y)
        self.cursor_world = self.viewport.screen_to_world((x, y))

        if isinstance(self.state, PanningCanvas):
            self.viewport.pan_by(dx, dy)
            self._notify_changed()
        elif isinstance(self.state, DraggingNode):
            self._drag_by(self.state.node_id, dx / self.viewport.scale, dy / self.viewport.scale)
        elif self.preview_line() is not None:
            self._notify_changed()

    def _drag_by(self, node_id: str, dx: float, dy: float):
        if self.store.get_node(node_id) is None:
            return
        selection = self.store.selection
        if node_id in selection and len(selection) > 1:
            self.store.move_nodes(selection, dx, dy)
        else:
            self.store.move_nodes((node_id,), dx, dy)

    def pointer_up(self, x: float, y: float):
        """Release any capture. A pending connection source is kept."""
        self._last_screen = Point(x, y)
        if self.captured:
            self.state = self.resting_state
            self._notify_changed()

    def double_click(self, x: float, y: float) -> Optional[Node]:
        """Create a node centred on an empty spot, or activate the node hit."""
        world = self.viewport.screen_to_world((x, y))
        target = self.store.node_at(*world)
        if target is not None:
            if self.on_node_activated:
                self.on_node_activated(target)
            return None

        return self.store.add_node(
            (world.x - DEFAULT_NODE_WIDTH / 2, world.y - DEFAULT_NODE_HEIGHT / 2)
        )

    def wheel(self, x: float, y: float, dx: float, dy: float,
              precision_zoom: bool = False) -> bool:
        """Zoom (with the precision modifier) or two-axis pan.

        Always returns True: the toolkit's own scroll/zoom must not run.
        """
        if precision_zoom:
            self.viewport.zoom_at((x, y), -dy * ZOOM_SENSITIVITY)
        else:
            self.viewport.pan_by(-dx, -dy)
        self.cursor_world = self.viewport.screen_to_world((x, y))
        self._notify_changed()
        return True

    # ==================== Keyboard ====================

    def key_pressed(self, key: str) -> bool:
        """Handle a key press by GDK key name. Returns True if consumed."""
        if key == KEY_PAN_MODIFIER:
            self.space_held = True
            return True

        if key == KEY_ABORT:
            if self.pending_source is not None:
                self._set_resting(Idle())
                self._notify_changed()
                return True
            return False

        if key in KEYS_DELETE:
            if self.captured or not self.store.selection:
                return False
            self.store.delete_selected()
            source_id = self.pending_source
            if source_id is not None and self.store.get_node(source_id) is None:
                self._set_resting(Idle())
            self._notify_changed()
            return True

        return False

    def key_released(self, key: str):
        if key == KEY_PAN_MODIFIER:
            self.space_held = False

    # ==================== Actions ====================

    def add_node_at_center(self, width: float, height: float) -> Node:
        """Add an empty node centred in a width x height view."""
        center = self.viewport.screen_to_world((width / 2, height / 2))
        return self.store.add_node(
            (center.x - DEFAULT_NODE_WIDTH / 2, center.y - DEFAULT_NODE_HEIGHT / 2)
        )

    def delete_node(self, node_id: str) -> bool:
        """Delete a node, dropping any gesture that referred to it."""
        deleted = self.store.delete_node(node_id)
        if not deleted:
            return False
        if isinstance(self.state, DraggingNode) and self.state.node_id == node_id:
            self.state = self.state.resume
        if self.pending_source == node_id:
            self._set_resting(Idle())
        self._notify_changed()
        return True

    def _notify_changed(self):
        if self.on_changed:
            self.on_changed()
