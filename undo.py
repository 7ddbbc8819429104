"""
FlowCanvas - Undo/Redo History
Linear snapshot log. Each entry holds the full graph and pan offset as they
were right after a user action; undo/redo move a cursor through the log.
"""

from typing import Optional
import logging

from models import GraphSnapshot, HistoryEntry


logger = logging.getLogger(__name__)


class HistoryLog:
    """
    Manages the history list and cursor.
    Stores up to max_history entries, evicting the oldest first.
    """

    MAX_HISTORY = 50

    def __init__(self, max_history: int = None):
        if max_history is None:
            max_history = self.MAX_HISTORY
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self.max_history = max_history
        self._entries: list[HistoryEntry] = []
        self._cursor = -1  # before the first entry

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current_entry(self) -> Optional[HistoryEntry]:
        if 0 <= self._cursor < len(self._entries):
            return self._entries[self._cursor]
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def add_entry(self, action: str, description: str, snapshot: GraphSnapshot) -> HistoryEntry:
        """Append an entry after the cursor, dropping any redo branch."""
        if self._cursor < len(self._entries) - 1:
            del self._entries[self._cursor + 1:]

        entry = HistoryEntry(action=action, description=description, snapshot=snapshot.deep_copy())
        self._entries.append(entry)
        self._cursor = len(self._entries) - 1

        # Limit log size
        excess = len(self._entries) - self.max_history
        if excess > 0:
            del self._entries[:excess]
            self._cursor -= excess

        logger.debug("History +%s (%s), %d entries", action, description, len(self._entries))
        return entry

    def undo(self) -> Optional[GraphSnapshot]:
        """Step back one entry. Returns the snapshot to restore, or None."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        return self._checkout()

    def redo(self) -> Optional[GraphSnapshot]:
        """Step forward one entry. Returns the snapshot to restore, or None."""
        if not self.can_redo():
            return None
        self._cursor += 1
        return self._checkout()

    def jump_to_entry(self, entry_id: str) -> Optional[GraphSnapshot]:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                self._cursor = index
                logger.info("Jumped to history entry %d: %s", index, entry.description)
                return self._checkout()
        return None

    def get_entry_at(self, index: int) -> Optional[HistoryEntry]:
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def patch_node(self, node_id: str, **fields) -> int:
        """Overwrite fields of one node in every stored snapshot. Returns entries touched."""
        touched = 0
        for entry in self._entries:
            for node in entry.snapshot.nodes:
                if node.id == node_id:
                    for name, value in fields.items():
                        setattr(node, name, value)
                    touched += 1
        return touched

    def patch_edge(self, edge_id: str, **fields) -> int:
        touched = 0
        for entry in self._entries:
            for edge in entry.snapshot.edges:
                if edge.id == edge_id:
                    for name, value in fields.items():
                        setattr(edge, name, value)
                    touched += 1
        return touched

    def purge_node(self, node_id: str) -> None:
        """Forget a node, and the edges touching it, in every stored snapshot."""
        for entry in self._entries:
            snapshot = entry.snapshot
            snapshot.nodes = [n for n in snapshot.nodes if n.id != node_id]
            snapshot.edges = [e for e in snapshot.edges
                              if e.source_node_id != node_id and e.target_node_id != node_id]
        logger.debug("Purged node %s from %d history entries", node_id, len(self._entries))

    def clear(self) -> None:
        """Clear all history."""
        self._entries.clear()
        self._cursor = -1

    def _checkout(self) -> GraphSnapshot:
        # Callers restore into live objects; the stored snapshot must stay intact.
        return self._entries[self._cursor].snapshot.deep_copy()
