"""Reply forest assembly for threaded discussion display.

Replies are stored flat, each holding an optional parent reply id. The
builder indexes them by id and links children by lookup at build time, so
no stored record ever holds a reference to another record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class ReplyNode:
    """A reply together with its ordered child replies."""

    reply: Any
    child_replies: List["ReplyNode"] = field(default_factory=list)

    @property
    def id(self) -> str:
        return _reply_id(self.reply)

    def walk(self, depth: int = 0) -> Iterable[tuple[int, "ReplyNode"]]:
        """Yield (depth, node) pairs in display order."""
        yield depth, self
        for child in self.child_replies:
            yield from child.walk(depth + 1)


def _field(record: Any, *names: str) -> Any:
    if isinstance(record, dict):
        for name in names:
            if name in record:
                return record[name]
        return None
    for name in names:
        if hasattr(record, name):
            return getattr(record, name)
    return None


def _reply_id(record: Any) -> str:
    return str(_field(record, "id"))


def _parent_id(record: Any) -> Optional[str]:
    parent = _field(record, "parent_reply_id", "parentReplyId")
    return str(parent) if parent else None


def build_reply_tree(replies: Iterable[Any]) -> List[ReplyNode]:
    """Build a forest of reply nodes from a flat collection.

    Accepts ORM rows, pydantic models or plain mappings exposing ``id`` and
    ``parent_reply_id`` (or ``parentReplyId``). Roots and siblings keep the
    input order. A reply whose parent is absent from the collection, refers
    to itself, or would close a cycle is placed at the root. Repeated ids
    after the first occurrence are ignored. The input is never mutated.

    Args:
        replies: Flat replies of a single discussion, in display order

    Returns:
        List[ReplyNode]: Root nodes with nested children
    """
    nodes: List[ReplyNode] = []
    index: Dict[str, int] = {}
    parents: Dict[str, Optional[str]] = {}

    for record in replies:
        reply_id = _reply_id(record)
        if reply_id in index:
            continue
        index[reply_id] = len(nodes)
        parents[reply_id] = _parent_id(record)
        nodes.append(ReplyNode(reply=record))

    roots: List[ReplyNode] = []
    for node in nodes:
        parent_id = parents[node.id]
        if parent_id is None or parent_id not in index or _closes_cycle(node.id, parent_id, parents):
            roots.append(node)
        else:
            nodes[index[parent_id]].child_replies.append(node)

    return roots


def _closes_cycle(reply_id: str, parent_id: str, parents: Dict[str, Optional[str]]) -> bool:
    seen = set()
    current: Optional[str] = parent_id
    while current is not None and current not in seen:
        if current == reply_id:
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def count_nodes(forest: List[ReplyNode]) -> int:
    """Total number of replies in a forest."""
    return sum(1 for root in forest for _ in root.walk())
