"""In-memory entity store for ThoughtCanvas nodes and connections."""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Set, Tuple

from thoughtcanvas.geometry import (
    DEFAULT_NODE_HEIGHT,
    DEFAULT_NODE_WIDTH,
    contains_point,
    generate_id,
)

logger = logging.getLogger(__name__)


class NodeKind(Enum):
    """Variant tag of a node."""
    ROOT = "root"
    CONCEPT = "concept"
    NOTE = "note"
    IMAGE = "image"


@dataclass
class Node:
    """A node on the canvas. Position is the world-space top-left corner."""
    id: str
    x: float = 0.0
    y: float = 0.0
    content: str = ""
    kind: NodeKind = NodeKind.CONCEPT
    width: Optional[float] = None
    height: Optional[float] = None
    color: Optional[str] = None  # hex, e.g. "#6366f1"


@dataclass
class Connection:
    """A link between two nodes. Direction only matters for rendering."""
    id: str
    from_id: str
    to_id: str
    label: Optional[str] = None

    @property
    def endpoints(self) -> FrozenSet[str]:
        return frozenset((self.from_id, self.to_id))

    def touches(self, node_id: str) -> bool:
        return node_id in (self.from_id, self.to_id)


class MindMapStore:
    """Nodes, connections and the selection, kept referentially consistent.

    Every public mutation is applied in a single step and then reported
    through `on_changed`, so an observer never sees a connection whose
    endpoint has been removed or a selected id with no node behind it.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._nodes: List[Node] = []
        self._connections: List[Connection] = []
        self._selection: Set[str] = set()

        # Callbacks
        self.on_changed: Optional[Callable[[], None]] = None

    @classmethod
    def create_default(cls, rng: Optional[random.Random] = None) -> "MindMapStore":
        """A store holding the single "Central Idea" root node."""
        store = cls(rng=rng)
        store._nodes.append(Node(
            id="root",
            x=0.0,
            y=0.0,
            content="Central Idea",
            kind=NodeKind.ROOT,
            width=DEFAULT_NODE_WIDTH,
            height=DEFAULT_NODE_HEIGHT,
        ))
        return store

    # ==================== Queries ====================

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes)

    @property
    def connections(self) -> Tuple[Connection, ...]:
        return tuple(self._connections)

    @property
    def selection(self) -> FrozenSet[str]:
        return frozenset(self._selection)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        for conn in self._connections:
            if conn.id == connection_id:
                return conn
        return None

    def find_connection(self, a: str, b: str) -> Optional[Connection]:
        """Find the connection between two nodes, in either direction."""
        pair = frozenset((a, b))
        for conn in self._connections:
            if conn.endpoints == pair:
                return conn
        return None

    def node_at(self, px: float, py: float) -> Optional[Node]:
        """Topmost node containing the world-space point."""
        for node in reversed(self._nodes):
            if contains_point(node, px, py):
                return node
        return None

    def root_node(self) -> Optional[Node]:
        for node in self._nodes:
            if node.kind is NodeKind.ROOT:
                return node
        return None

    # ==================== Node Operations ====================

    def new_id(self) -> str:
        """Mint an identity not used by any node or connection."""
        taken = {n.id for n in self._nodes} | {c.id for c in self._connections}
        while True:
            candidate = generate_id(self._rng)
            if candidate not in taken:
                return candidate

    def add_node(self, position: Tuple[float, float], kind="concept", content: str = "") -> Node:
        """Create a node with its top-left corner at `position`."""
        node = Node(
            id=self.new_id(),
            x=float(position[0]),
            y=float(position[1]),
            content=content,
            kind=NodeKind(kind),
            width=DEFAULT_NODE_WIDTH,
            height=DEFAULT_NODE_HEIGHT,
        )
        self._nodes.append(node)
        self._notify_changed()
        return node

    def update_node_content(self, node_id: str, content: str) -> bool:
        node = self.get_node(node_id)
        if node is None:
            logger.debug("update_node_content: node %s not found", node_id)
            return False
        node.content = content
        self._notify_changed()
        return True

    def move_nodes(self, node_ids: Iterable[str], dx: float, dy: float):
        """Translate the given nodes by the same world-space displacement."""
        ids = set(node_ids)
        for node in self._nodes:
            if node.id in ids:
                node.x += dx
                node.y += dy
        self._notify_changed()

    def delete_node(self, node_id: str) -> bool:
        """Remove a node together with its connections and selection entry."""
        if self.get_node(node_id) is None:
            logger.debug("delete_node: node %s not found", node_id)
            return False

        self._nodes = [n for n in self._nodes if n.id != node_id]
        self._connections = [c for c in self._connections if not c.touches(node_id)]
        self._selection.discard(node_id)
        self._notify_changed()
        return True

    def delete_selected(self) -> int:
        """Delete every selected node. Returns how many were removed."""
        doomed = set(self._selection)
        if not doomed:
            return 0

        self._nodes = [n for n in self._nodes if n.id not in doomed]
        self._connections = [
            c for c in self._connections
            if c.from_id not in doomed and c.to_id not in doomed
        ]
        self._selection.clear()
        self._notify_changed()
        return len(doomed)

    # ==================== Connection Operations ====================

    def _connection_allowed(self, from_id: str, to_id: str, known_ids: Set[str]) -> bool:
        if from_id == to_id:
            logger.debug("Rejected self-loop on %s", from_id)
            return False
        if from_id not in known_ids or to_id not in known_ids:
            logger.debug("Rejected connection %s -> %s: unknown endpoint", from_id, to_id)
            return False
        if self.find_connection(from_id, to_id) is not None:
            logger.debug("Rejected duplicate connection %s <-> %s", from_id, to_id)
            return False
        return True

    def add_connection(self, from_id: str, to_id: str,
                       label: Optional[str] = None) -> Optional[Connection]:
        """Connect two nodes.

        Returns None (and changes nothing) for a self-loop, an unknown
        endpoint, or a pair that is already connected in either direction.
        """
        known_ids = {n.id for n in self._nodes}
        if not self._connection_allowed(from_id, to_id, known_ids):
            return None

        conn = Connection(id=self.new_id(), from_id=from_id, to_id=to_id, label=label)
        self._connections.append(conn)
        self._notify_changed()
        return conn

    def set_connection_label(self, connection_id: str, label: str) -> bool:
        conn = self.get_connection(connection_id)
        if conn is None:
            logger.debug("set_connection_label: connection %s no longer exists", connection_id)
            return False
        conn.label = label
        self._notify_changed()
        return True

    def append(self, nodes: Iterable[Node], connections: Iterable[Connection]) -> Tuple[List[Node], List[Connection]]:
        """Append a batch of nodes and connections as one change.

        Nodes whose id is already taken and connections that would break the
        pair/endpoint rules are dropped. Returns what was actually added.
        """
        known_ids = {n.id for n in self._nodes} | {c.id for c in self._connections}
        added_nodes: List[Node] = []
        for node in nodes:
            if node.id in known_ids:
                logger.debug("append: node id %s already in use", node.id)
                continue
            known_ids.add(node.id)
            self._nodes.append(node)
            added_nodes.append(node)

        node_ids = {n.id for n in self._nodes}
        added_connections: List[Connection] = []
        for conn in connections:
            if conn.id in known_ids or not self._connection_allowed(conn.from_id, conn.to_id, node_ids):
                continue
            known_ids.add(conn.id)
            self._connections.append(conn)
            added_connections.append(conn)

        if added_nodes or added_connections:
            self._notify_changed()
        return added_nodes, added_connections

    # ==================== Selection ====================

    def select(self, node_id: str, additive: bool = False) -> bool:
        """Select a node, replacing the selection unless `additive`."""
        if self.get_node(node_id) is None:
            return False
        if not additive:
            self._selection.clear()
        self._selection.add(node_id)
        self._notify_changed()
        return True

    def clear_selection(self):
        if self._selection:
            self._selection.clear()
            self._notify_changed()

    def contents(self) -> List[str]:
        """Content of every node, in insertion order."""
        return [n.content for n in self._nodes]

    def _notify_changed(self):
        if self.on_changed:
            self.on_changed()
