"""
Tool connection graph.

Typed, directed edges between tool instances. Graph faults (self
connections, cycles) are rejected when the edge is added; execution order
is a topological sort restricted to enabled tools.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from core.enums import ConnectionType
from core.exceptions import CycleError, SelfConnectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolConnection:
    source_id: str
    target_id: str
    type: ConnectionType = ConnectionType.IMAGE


class ToolGraph:
    """
    Edge set over tool ids.

    A pair of tools may carry several edges as long as their types differ.
    """

    def __init__(self):
        self._connections: List[ToolConnection] = []

    def __len__(self) -> int:
        return len(self._connections)

    @property
    def connections(self) -> List[ToolConnection]:
        return list(self._connections)

    def add_connection(
        self, source_id: str, target_id: str, type: ConnectionType = ConnectionType.IMAGE
    ) -> ToolConnection:
        """
        Add an edge.

        Adding an existing (source, target, type) triple is a no-op.

        Raises:
            SelfConnectionError: source and target are the same tool
            CycleError: The edge would close a cycle
        """
        if source_id == target_id:
            raise SelfConnectionError(source_id)

        connection = ToolConnection(source_id, target_id, ConnectionType(type))
        if connection in self._connections:
            return connection

        if self._reaches(target_id, source_id):
            raise CycleError(
                f"Connecting {source_id} -> {target_id} would create a cycle",
                [source_id, target_id],
            )

        self._connections.append(connection)
        logger.debug(f"Connected {source_id} -> {target_id} ({connection.type.value})")
        return connection

    def remove_connection(
        self, source_id: str, target_id: str, type: Optional[ConnectionType] = None
    ) -> int:
        """Remove matching edges (all types when ``type`` is None); returns the count."""
        before = len(self._connections)
        self._connections = [
            c
            for c in self._connections
            if not (c.source_id == source_id and c.target_id == target_id and (type is None or c.type == type))
        ]
        return before - len(self._connections)

    def remove_tool(self, tool_id: str) -> int:
        """Remove every edge touching ``tool_id``; returns the count."""
        before = len(self._connections)
        self._connections = [c for c in self._connections if tool_id not in (c.source_id, c.target_id)]
        removed = before - len(self._connections)
        if removed:
            logger.debug(f"Removed {removed} connection(s) of tool {tool_id}")
        return removed

    def clear_connections(self) -> None:
        self._connections = []

    def connections_to(self, tool_id: str, type: Optional[ConnectionType] = None) -> List[ToolConnection]:
        return [c for c in self._connections if c.target_id == tool_id and (type is None or c.type == type)]

    def connections_from(self, tool_id: str) -> List[ToolConnection]:
        return [c for c in self._connections if c.source_id == tool_id]

    def upstream_of(self, tool_id: str) -> List[str]:
        """
        Transitive upstream tool ids, dependencies first.
        """
        ordered: List[str] = []
        visited: Set[str] = set()

        def visit(node: str) -> None:
            for c in self.connections_to(node):
                if c.source_id not in visited:
                    visited.add(c.source_id)
                    visit(c.source_id)
                    ordered.append(c.source_id)

        visit(tool_id)
        return ordered

    def _reaches(self, start: str, goal: str) -> bool:
        stack, seen = [start], set()
        while stack:
            node = stack.pop()
            if node == goal:
                return True
            if node in seen:
                continue
            seen.add(node)
            stack.extend(c.target_id for c in self._connections if c.source_id == node)
        return False

    def topological_sort(self, tools: Sequence) -> List:
        """
        Enabled tools in dependency order (Kahn's algorithm).

        Edges touching disabled or unknown tools are ignored. Among tools
        that are ready at the same time, the original list order wins.

        Args:
            tools: Tool objects with ``id`` and ``is_enabled``

        Raises:
            CycleError: The enabled subgraph contains a cycle
        """
        enabled = [t for t in tools if t.is_enabled]
        position: Dict[str, int] = {t.id: i for i, t in enumerate(enabled)}
        in_degree = {t.id: 0 for t in enabled}
        children: Dict[str, List[str]] = {t.id: [] for t in enabled}

        for c in set(self._connections):
            if c.source_id in position and c.target_id in position:
                if c.target_id not in children[c.source_id]:
                    children[c.source_id].append(c.target_id)
                    in_degree[c.target_id] += 1

        ready = sorted((tid for tid, deg in in_degree.items() if deg == 0), key=position.get)
        order: List[str] = []
        while ready:
            current = ready.pop(0)
            order.append(current)
            for child in children[current]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    ready.append(child)
            ready.sort(key=position.get)

        if len(order) != len(enabled):
            stuck = [tid for tid, deg in in_degree.items() if deg > 0]
            raise CycleError("Tool connections contain a cycle", stuck)

        return [enabled[position[tid]] for tid in order]
