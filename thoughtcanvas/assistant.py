"""Glue between the canvas store and the suggestion oracle."""

import logging
import math
import random
from typing import Callable, List, Optional

from thoughtcanvas.geometry import DEFAULT_NODE_HEIGHT, DEFAULT_NODE_WIDTH, node_center
from thoughtcanvas.oracle import Oracle, Suggestion
from thoughtcanvas.store import Connection, MindMapStore, Node, NodeKind

logger = logging.getLogger(__name__)


EXPANSION_RADIUS = 350.0

EXPANDING_MESSAGE = "Expanding thoughts..."
LINKING_MESSAGE = "Linking ideas..."


class AIAssistant:
    """Runs oracle requests and merges their answers into the store.

    All oracle calls share one busy indicator. `busy` stays true while any
    call is outstanding. A node expansion is refused while busy; a label
    request is always sent.
    """

    def __init__(self, store: MindMapStore, oracle: Oracle,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.oracle = oracle
        self.rng = rng or random.Random()
        self._active: List[str] = []

        # Callbacks
        self.on_busy_changed: Optional[Callable[[bool], None]] = None

    @property
    def busy(self) -> bool:
        return bool(self._active)

    @property
    def message(self) -> Optional[str]:
        """Message of the most recently started call that is still running."""
        return self._active[-1] if self._active else None

    def _begin(self, message: str):
        self._active.append(message)
        if len(self._active) == 1:
            self._notify_busy()

    def _end(self, message: str):
        self._active.remove(message)
        if not self._active:
            self._notify_busy()

    def _notify_busy(self):
        if self.on_busy_changed:
            self.on_busy_changed(self.busy)

    # ==================== Expansion ====================

    async def expand_node(self, node_id: str) -> List[Node]:
        """Ask the oracle for related ideas and fan them out around the node.

        Returns the nodes that were added; empty when busy, when the node is
        gone, or when the oracle has nothing (or fails).
        """
        if self.busy:
            logger.debug("expand_node(%s) ignored: a request is already in flight", node_id)
            return []

        node = self.store.get_node(node_id)
        if node is None:
            return []

        self._begin(EXPANDING_MESSAGE)
        try:
            try:
                suggestions = await self.oracle.expand(node.content, self.store.contents())
            except Exception:  # pylint: disable=broad-except
                logger.exception("Expansion of node %s failed", node_id)
                suggestions = []

            if not suggestions:
                return []

            source = self.store.get_node(node_id)
            if source is None:
                logger.info("Node %s was deleted during expansion; discarding %d suggestion(s)",
                            node_id, len(suggestions))
                return []

            nodes, connections = self.layout_suggestions(source, suggestions)
            added, _ = self.store.append(nodes, connections)
            return added
        finally:
            self._end(EXPANDING_MESSAGE)

    def layout_suggestions(self, source: Node, suggestions: List[Suggestion]):
        """Place one node per suggestion on a circle around `source`.

        Angles are evenly spaced, starting from a random angle in [0, pi). Each
        new node is centred on its point of the circle.
        """
        center = node_center(source)
        angle = self.rng.random() * math.pi
        step = (2 * math.pi) / len(suggestions)

        nodes: List[Node] = []
        connections: List[Connection] = []
        taken = set()
        for suggestion in suggestions:
            cx = center.x + EXPANSION_RADIUS * math.cos(angle)
            cy = center.y + EXPANSION_RADIUS * math.sin(angle)
            angle += step

            node = Node(
                id=self._fresh_id(taken),
                x=cx - DEFAULT_NODE_WIDTH / 2,
                y=cy - DEFAULT_NODE_HEIGHT / 2,
                content=suggestion.content,
                kind=NodeKind.CONCEPT,
                width=DEFAULT_NODE_WIDTH,
                height=DEFAULT_NODE_HEIGHT,
            )
            nodes.append(node)
            connections.append(Connection(
                id=self._fresh_id(taken),
                from_id=source.id,
                to_id=node.id,
            ))
        return nodes, connections

    def _fresh_id(self, taken: set) -> str:
        while True:
            candidate = self.store.new_id()
            if candidate not in taken:
                taken.add(candidate)
                return candidate

    # ==================== Labels ====================

    async def request_connection_label(self, from_id: str, to_id: str,
                                       connection_id: Optional[str] = None) -> Optional[str]:
        """Ask the oracle for a linking phrase and store it on the connection.

        The connection may be deleted while the request is in flight; the
        answer is then discarded.
        """
        if connection_id is None:
            conn = self.store.find_connection(from_id, to_id)
            if conn is None:
                return None
            connection_id = conn.id

        from_node = self.store.get_node(from_id)
        to_node = self.store.get_node(to_id)
        if from_node is None or to_node is None:
            return None

        self._begin(LINKING_MESSAGE)
        try:
            try:
                label = await self.oracle.suggest_label(from_node.content, to_node.content)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Label request for %s -> %s failed", from_id, to_id)
                return None

            label = (label or "").strip()
            if not label:
                return None
            if not self.store.set_connection_label(connection_id, label):
                return None
            return label
        finally:
            self._end(LINKING_MESSAGE)
