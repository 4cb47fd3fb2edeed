from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, List


@dataclass
class UnionFind:
    """
    Disjoint-set forest over node ids.

    One instance lives for exactly one tick; nothing is cached across calls.

    Attributes:
        parent: Mapping node id -> parent id (a root maps to itself).
    """
    parent: Dict[str, str] = field(default_factory=dict)

    def add(self, item: str) -> None:
        self.parent.setdefault(item, item)

    def __contains__(self, item: str) -> bool:
        return item in self.parent

    def find(self, item: str) -> str:
        """
        Return the representative of `item`, compressing the path on the way.

        Unknown ids are their own representative and are not registered.
        """
        if item not in self.parent:
            return item
        root = item
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[item] != root:
            self.parent[item], item = root, self.parent[item]
        return root

    def union(self, a: str, b: str) -> bool:
        """
        Merge the sets of `a` and `b`. Both ids must already be registered.

        Returns:
            True if two distinct sets were merged.
        """
        if a not in self.parent or b not in self.parent:
            return False
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        self.parent[ra] = rb
        return True

    def compress(self) -> None:
        for item in list(self.parent):
            self.find(item)

    def groups(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for item in self.parent:
            out.setdefault(self.find(item), []).append(item)
        return out

    def extend(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)
