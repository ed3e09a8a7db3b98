"""Knowledge graph node repository.

Nodes mirror page ancestry: a node's id is its page's id and its depth is
one more than its parent's at the time it was linked. Linking touches only
the parent node, never the whole graph.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from learnwiki.db.connection import Database
from learnwiki.store.schemas import KnowledgeNode

logger = logging.getLogger(__name__)


class KnowledgeRepository:
    """SQLite-backed knowledge nodes of one library."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _row_to_node(self, row: sqlite3.Row) -> KnowledgeNode:
        return KnowledgeNode(
            id=row["id"],
            title=row["title"],
            children=json.loads(row["children"]),
            parent=row["parent"],
            depth=row["depth"],
        )

    def _write(self, node: KnowledgeNode) -> None:
        self.db.execute(
            """
            INSERT OR REPLACE INTO knowledge_nodes (id, title, children, parent, depth)
            VALUES (?, ?, ?, ?, ?)
            """,
            (node.id, node.title, json.dumps(node.children), node.parent, node.depth),
        )

    def get_all(self) -> list[KnowledgeNode]:
        cursor = self.db.execute("SELECT * FROM knowledge_nodes ORDER BY depth, id")
        return [self._row_to_node(row) for row in cursor.fetchall()]

    def get(self, node_id: str) -> Optional[KnowledgeNode]:
        """Fetch a single node. Returns None if not found."""
        row = self.db.execute("SELECT * FROM knowledge_nodes WHERE id = ?", (node_id,)).fetchone()
        return self._row_to_node(row) if row else None

    def save(self, node: KnowledgeNode) -> KnowledgeNode:
        """Insert a node or fully replace the one with the same ID."""
        self._write(node)
        self.db.commit()
        return node

    def save_many(self, nodes: list[KnowledgeNode]) -> None:
        """Persist several nodes in one transaction."""
        with self.db.transaction():
            for node in nodes:
                self._write(node)

    def link(self, node_id: str, title: str, parent_id: Optional[str] = None) -> KnowledgeNode:
        """Add a page to the graph under its parent.

        The parent is fetched by id, the child id is appended to its children
        once, and both nodes are written in a single transaction. Without a
        parent (or when the parent has no node) the page becomes a root. A
        page that already has a node keeps its place and only its title is
        refreshed.
        """
        with self.db.transaction():
            existing = self.get(node_id)
            if existing is not None:
                if existing.title != title:
                    existing = existing.model_copy(update={"title": title})
                    self._write(existing)
                return existing

            parent = self.get(parent_id) if parent_id else None
            if parent is None:
                if parent_id:
                    logger.warning(f"Parent node {parent_id} not found, linking {node_id} as root")
                node = KnowledgeNode(id=node_id, title=title, children=[], parent=None, depth=0)
                self._write(node)
                return node

            node = KnowledgeNode(
                id=node_id, title=title, children=[], parent=parent.id, depth=parent.depth + 1
            )
            if node_id not in parent.children:
                parent = parent.model_copy(update={"children": [*parent.children, node_id]})
            self._write(node)
            self._write(parent)
            return node

    def unlink(self, node_id: str) -> bool:
        """Remove a node, strip it from its parent and detach its children.

        Runs inside the caller's transaction when there is one.
        """
        with self.db.transaction():
            node = self.get(node_id)
            if node is None:
                return False
            if node.parent:
                parent = self.get(node.parent)
                if parent is not None and node_id in parent.children:
                    remaining = [child for child in parent.children if child != node_id]
                    self._write(parent.model_copy(update={"children": remaining}))
            self.db.execute(
                "UPDATE knowledge_nodes SET parent = NULL WHERE parent = ?", (node_id,)
            )
            self.db.execute("DELETE FROM knowledge_nodes WHERE id = ?", (node_id,))
            return True

    def delete(self, node_id: str) -> bool:
        """Delete a node row only."""
        cursor = self.db.execute("DELETE FROM knowledge_nodes WHERE id = ?", (node_id,))
        self.db.commit()
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        cursor = self.db.execute("DELETE FROM knowledge_nodes")
        self.db.commit()
        return cursor.rowcount
