"""
Node Index

Registry of :class:`~ragseek.schema.IndexNode` objects keyed by id. Edges are
stored as ids, so a child id may point at a node that was never added or has
been deleted; readers skip those.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ragseek.schema import IndexNode
from ragseek.utils.concurrency import ReadWriteLock

logger = logging.getLogger(__name__)


class NodeIndex:
    """Thread-safe in-memory store of hierarchical index nodes."""

    def __init__(self, nodes: Optional[Iterable[IndexNode]] = None) -> None:
        self._lock = ReadWriteLock()
        self._nodes: Dict[str, IndexNode] = {}
        if nodes:
            self.add_many(nodes)

    def add(self, node: IndexNode) -> None:
        """Insert ``node``, replacing any node with the same id."""
        with self._lock.write_lock():
            self._nodes[node.id] = node

    def add_many(self, nodes: Iterable[IndexNode]) -> None:
        nodes = list(nodes)
        with self._lock.write_lock():
            for node in nodes:
                self._nodes[node.id] = node
            total = len(self._nodes)
        logger.debug(f"Registered {len(nodes)} nodes ({total} total)")

    def get(self, node_id: str) -> Optional[IndexNode]:
        with self._lock.read_lock():
            return self._nodes.get(node_id)

    def get_children(self, node_id: str) -> List[IndexNode]:
        """Registered children of ``node_id`` in edge order; dangling ids are skipped."""
        with self._lock.read_lock():
            node = self._nodes.get(node_id)
            if node is None:
                return []
            return [self._nodes[c] for c in node.children if c in self._nodes]

    def delete(self, node_id: str) -> bool:
        with self._lock.write_lock():
            return self._nodes.pop(node_id, None) is not None

    def clear(self) -> None:
        with self._lock.write_lock():
            self._nodes.clear()

    def count(self) -> int:
        with self._lock.read_lock():
            return len(self._nodes)

    def all_nodes(self) -> List[IndexNode]:
        with self._lock.read_lock():
            return list(self._nodes.values())

    def leaf_nodes(self) -> List[IndexNode]:
        with self._lock.read_lock():
            return [node for node in self._nodes.values() if node.is_leaf]

    def __contains__(self, node_id: object) -> bool:
        with self._lock.read_lock():
            return node_id in self._nodes

    def __len__(self) -> int:
        return self.count()
