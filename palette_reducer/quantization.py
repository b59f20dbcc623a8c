"""Frequency-weighted octree colour reduction.

Colours are bucketed into an adaptive octree while the image is scanned. The
busiest subtrees are then picked greedily with a max-heap, and each picked
subtree is collapsed into the frequency-weighted average of the colours it
still owns.
"""
from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, MutableMapping, Sequence

from .octree import SpatialTree, TreeNode
from .palette_ops import (
    ColorSample,
    ColorTuple,
    PaletteError,
    ZeroOccupancyError,
    color_key,
)
from .priority_queue import PriorityQueue
from .vector import Vector3


logger = logging.getLogger(__name__)

Node = TreeNode[ColorSample]


def recursive_frequency(node: Node, memo: MutableMapping[Node, int]) -> int:
    """Total frequency of every colour stored under ``node``."""

    cached = memo.get(node)
    if cached is not None:
        return cached
    total = sum(sample.frequency for sample in node.collect_all())
    memo[node] = total
    return total


class Selection:
    """Greedy pick order of tree nodes, computed once and sliced per size.

    Nodes are popped from a max-heap keyed by recursive frequency; a popped
    node's non-empty children join the heap only at that moment. A split node
    stops representing any colour once all of its children have been picked,
    so it no longer counts towards the palette size and is left out of
    :meth:`clusters`.
    """

    def __init__(self, tree: SpatialTree[ColorSample], desired: int) -> None:
        self.order: List[Node] = []
        self.frequencies: List[int] = []
        # palette size reached after each pop, non-decreasing
        self._sizes: List[int] = []
        self._pending: Dict[Node, int] = {}
        self._parents: Dict[Node, Node] = {}
        self._run(tree.root, desired)

    def _run(self, root: Node, desired: int) -> None:
        if root.is_empty or desired <= 0:
            return
        memo: Dict[Node, int] = {}
        queue: PriorityQueue[Node] = PriorityQueue()
        queue.push(recursive_frequency(root, memo), root)
        size = 0
        while size < desired and queue:
            node = queue.pop()
            children = node.valid_children()
            for child in children:
                queue.push(recursive_frequency(child, memo), child)
                self._parents[child] = node
            self._pending[node] = len(children)
            self.order.append(node)
            self.frequencies.append(memo[node])
            size += 1
            parent = self._parents.get(node)
            if parent is not None:
                self._pending[parent] -= 1
                if self._pending[parent] == 0:
                    # every colour under the parent now belongs to a child
                    size -= 1
            self._sizes.append(size)
        logger.debug(
            "Selection popped=%s clusters=%s desired=%s", len(self.order), size, desired
        )

    @property
    def size(self) -> int:
        return self._sizes[-1] if self._sizes else 0

    def prefix_length(self, desired: int) -> int:
        """Number of pops needed to reach ``desired`` clusters."""

        if desired <= 0:
            return 0
        idx = bisect.bisect_left(self._sizes, desired)
        return min(idx + 1, len(self.order))

    def clusters(self, desired: int) -> List[Node]:
        prefix = self.order[: self.prefix_length(desired)]
        chosen = set(prefix)
        return [
            node
            for node in prefix
            if not node.is_split or not all(c in chosen for c in node.valid_children())
        ]


def select_top_clusters(tree: SpatialTree[ColorSample], desired: int) -> List[Node]:
    """Pick up to ``desired`` cluster nodes, busiest first."""

    return Selection(tree, desired).clusters(desired)


def merge_cluster(node: Node, excluding: Iterable[Node]) -> ColorSample:
    """Collapse the colours owned by ``node`` into their weighted average.

    Colours under descendants listed in ``excluding`` belong to those
    clusters and are left alone. Every merged sample gets the new colour as
    its replacement.
    """

    if not isinstance(excluding, (set, frozenset, dict)):
        excluding = set(excluding)
    count = 0
    total = Vector3(0, 0, 0)
    members = node.collect_all(excluding)
    for sample in members:
        total.add_in_place(sample.weighted_vector())
        count += sample.frequency
    if count == 0:
        raise ZeroOccupancyError(f"Cluster at {node!r} holds no pixels")
    mean = total.scale(1 / count)
    representative = ColorSample(
        _channel(mean.x), _channel(mean.y), _channel(mean.z), frequency=count
    )
    for sample in members:
        sample.assign_replacement(representative)
    return representative


def _channel(value: float) -> int:
    return max(0, min(255, int(round(value))))


@dataclass(slots=True)
class Palette:
    """Result of one reduction: representative colours and the colour map."""

    colors: List[ColorSample]
    mapping: Dict[int, ColorSample] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.colors)

    def rgb_colors(self) -> List[ColorTuple]:
        return [c.rgb() for c in self.colors]

    def replacement_for(self, color: ColorTuple) -> ColorTuple:
        try:
            return self.mapping[color_key(*color)].rgb()
        except KeyError:
            raise PaletteError(f"Colour {tuple(color)} was not part of the scan") from None


class Quantizer:
    """Owns the colour registry and octree for a single image."""

    def __init__(self) -> None:
        self.colors: Dict[int, ColorSample] = {}
        self.tree: SpatialTree[ColorSample] = SpatialTree()
        self.total_pixels = 0

    @property
    def distinct_colors(self) -> int:
        return len(self.colors)

    def observe(self, color: ColorTuple, count: int = 1) -> ColorSample:
        """Record ``count`` more pixels of ``color``."""

        key = color_key(*color)
        sample = self.colors.get(key)
        if sample is None:
            sample = ColorSample.from_tuple(color)
            self.colors[key] = sample
            self.tree.insert(sample.vector(), sample)
        sample.frequency += count
        self.total_pixels += count
        return sample

    def lookup(self, color: ColorTuple) -> ColorSample | None:
        return self.tree.lookup(Vector3(*color))

    def select(self, desired: int) -> Selection:
        return Selection(self.tree, desired)

    def clear_replacements(self) -> None:
        for sample in self.colors.values():
            sample.replacement = None

    def merge(self, clusters: Sequence[Node]) -> Palette:
        """Merge ``clusters`` and return the resulting palette."""

        self.clear_replacements()
        chosen = set(clusters)
        representatives = [merge_cluster(node, chosen) for node in clusters]
        mapping = {key: sample.replacement for key, sample in self.colors.items()}
        logger.debug(
            "Merged clusters=%s colours=%s", len(representatives), len(mapping)
        )
        return Palette(colors=representatives, mapping=mapping)

    def reduce(self, desired: int, selection: Selection | None = None) -> Palette:
        """Reduce the observed colours to at most ``desired`` representatives.

        ``selection`` may be a superset computed for a larger size; it yields
        the same clusters as a fresh selection for ``desired``.
        """

        if selection is None:
            selection = self.select(desired)
        return self.merge(selection.clusters(desired))

    def mean_squared_error(self, palette: Palette) -> float:
        """Pixel-weighted mean squared RGB distance to the replacement colours."""

        if self.total_pixels == 0:
            return 0.0
        total = 0.0
        for key, sample in self.colors.items():
            replacement = palette.mapping[key]
            total += sample.frequency * sample.vector().squared_distance(replacement.vector())
        return total / self.total_pixels
