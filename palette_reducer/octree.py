"""Adaptive octree over the RGB cube.

Each node holds at most one colour. A node that already holds a colour splits
into eight octants when a second, different colour arrives; the colour that
was there first moves down into its octant and the newcomer follows into its
own. Nodes are never removed, so the tree only grows during a run.
"""
from __future__ import annotations

from typing import Collection, Generic, Iterator, List, Optional, TypeVar

from .vector import Vector3


V = TypeVar("V")

ROOT_CENTER = 128
ROOT_HALF_SIZE = 128


class TreeNode(Generic[V]):
    __slots__ = ("position", "size", "key", "value", "children")

    def __init__(self, position: Vector3, size: float) -> None:
        self.position = position
        self.size = size
        self.key: Optional[Vector3] = None
        self.value: Optional[V] = None
        self.children: Optional[List[TreeNode[V]]] = None

    @classmethod
    def root(cls) -> TreeNode[V]:
        return cls(Vector3(ROOT_CENTER, ROOT_CENTER, ROOT_CENTER), ROOT_HALF_SIZE)

    def __repr__(self) -> str:
        p = self.position
        state = "split" if self.is_split else ("occupied" if self.is_occupied else "empty")
        return f"TreeNode(({p.x}, {p.y}, {p.z}), size={self.size}, {state})"

    @property
    def is_occupied(self) -> bool:
        return self.key is not None

    @property
    def is_split(self) -> bool:
        return self.children is not None

    @property
    def is_empty(self) -> bool:
        return self.key is None and self.children is None

    def key_is(self, key: Vector3) -> bool:
        own = self.key
        return own is not None and own.x == key.x and own.y == key.y and own.z == key.z

    def key_region(self, key: Vector3) -> int:
        """Index (0-7) of the octant holding ``key``: bit 0 x, bit 1 y, bit 2 z."""

        p = self.position
        region = 0
        if key.x > p.x:
            region += 1
        if key.y > p.y:
            region += 2
        if key.z > p.z:
            region += 4
        return region

    def split(self) -> None:
        half = self.size / 2
        p = self.position
        children: List[TreeNode[V]] = []
        for region in range(8):
            dx = half if region & 1 else -half
            dy = half if region & 2 else -half
            dz = half if region & 4 else -half
            children.append(TreeNode(Vector3(p.x + dx, p.y + dy, p.z + dz), half))
        self.children = children

    def insert(self, key: Vector3, value: V) -> None:
        """Store ``value`` under ``key``, splitting this node on collision."""

        node = self
        while True:
            if node.children is None:
                if node.key is None:
                    node.key = key
                    node.value = value
                    return
                if node.key_is(key):
                    node.value = value
                    return
                evicted_key, evicted_value = node.key, node.value
                node.key = None
                node.value = None
                node.split()
                node.children[node.key_region(evicted_key)].insert(evicted_key, evicted_value)
            node = node.children[node.key_region(key)]

    def lookup(self, key: Vector3) -> Optional[V]:
        node: Optional[TreeNode[V]] = self
        while node is not None:
            if node.key_is(key):
                return node.value
            if node.children is None:
                return None
            node = node.children[node.key_region(key)]
        return None

    def __contains__(self, key: Vector3) -> bool:
        node: Optional[TreeNode[V]] = self
        while node is not None:
            if node.key_is(key):
                return True
            if node.children is None:
                return False
            node = node.children[node.key_region(key)]
        return False

    def collect_all(self, excluding: Collection[TreeNode[V]] = ()) -> List[V]:
        """Return every value stored in this subtree, depth first.

        Descendant subtrees rooted at a node in ``excluding`` are skipped. This
        node itself is always visited, even when it is part of ``excluding``.
        """

        values: List[V] = []
        self._collect(excluding, values, first=True)
        return values

    def _collect(self, excluding: Collection[TreeNode[V]], values: List[V], first: bool) -> None:
        if not first and self in excluding:
            return
        if self.key is not None:
            values.append(self.value)
        if self.children is not None:
            for child in self.children:
                child._collect(excluding, values, first=False)

    def valid_children(self) -> List[TreeNode[V]]:
        if self.children is None:
            return []
        return [child for child in self.children if not child.is_empty]

    def iter_nodes(self) -> Iterator[TreeNode[V]]:
        yield self
        if self.children is not None:
            for child in self.children:
                yield from child.iter_nodes()

    def depth(self) -> int:
        """Levels between this node and its deepest non-empty descendant."""

        if self.children is None:
            return 0
        deepest = [child.depth() for child in self.children if not child.is_empty]
        return 1 + max(deepest) if deepest else 0


class SpatialTree(Generic[V]):
    """Octree rooted at the centre of the 0-255 RGB cube."""

    def __init__(self) -> None:
        self.root: TreeNode[V] = TreeNode.root()
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __contains__(self, key: Vector3) -> bool:
        return key in self.root

    def insert(self, key: Vector3, value: V) -> None:
        if key not in self.root:
            self._count += 1
        self.root.insert(key, value)

    def lookup(self, key: Vector3) -> Optional[V]:
        return self.root.lookup(key)

    def depth(self) -> int:
        return self.root.depth()
