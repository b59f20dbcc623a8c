import numpy as np

from palette_reducer.octree import SpatialTree, TreeNode
from palette_reducer.vector import Vector3


def _random_keys(count, low=0, high=256, seed=0):
    rng = np.random.default_rng(seed)
    raw = rng.integers(low, high, size=(count, 3))
    unique = {tuple(int(v) for v in row) for row in raw}
    return [Vector3(*k) for k in sorted(unique)]


def test_root_covers_rgb_cube():
    tree = SpatialTree()
    assert tree.root.position == Vector3(128, 128, 128)
    assert tree.root.size == 128
    assert tree.root.is_empty


def test_every_inserted_key_is_found():
    keys = _random_keys(500, seed=1)
    tree = SpatialTree()
    for i, key in enumerate(keys):
        tree.insert(key, i)
    assert len(tree) == len(keys)
    for i, key in enumerate(keys):
        assert tree.lookup(key) == i
        assert key in tree


def test_missing_key_not_found():
    tree = SpatialTree()
    tree.insert(Vector3(10, 20, 30), "a")
    tree.insert(Vector3(200, 20, 30), "b")
    assert tree.lookup(Vector3(10, 20, 31)) is None
    assert tree.lookup(Vector3(0, 0, 0)) is None
    assert Vector3(11, 20, 30) not in tree


def test_same_key_updates_value():
    tree = SpatialTree()
    tree.insert(Vector3(5, 5, 5), "old")
    tree.insert(Vector3(5, 5, 5), "new")
    assert len(tree) == 1
    assert tree.lookup(Vector3(5, 5, 5)) == "new"
    assert not tree.root.is_split


def test_collision_splits_node():
    tree = SpatialTree()
    tree.insert(Vector3(0, 0, 0), "black")
    assert tree.root.is_occupied
    tree.insert(Vector3(255, 255, 255), "white")
    root = tree.root
    assert root.is_split and not root.is_occupied
    assert len(root.children) == 8
    assert root.children[0].value == "black"
    assert root.children[7].value == "white"
    assert root.children[0].position == Vector3(64, 64, 64)
    assert root.children[7].position == Vector3(192, 192, 192)
    assert all(child.size == 64 for child in root.children)
    assert len(root.valid_children()) == 2


def test_key_region_uses_strict_greater_than():
    node = TreeNode.root()
    assert node.key_region(Vector3(128, 128, 128)) == 0
    assert node.key_region(Vector3(129, 0, 0)) == 1
    assert node.key_region(Vector3(0, 129, 0)) == 2
    assert node.key_region(Vector3(200, 10, 200)) == 5
    assert node.key_region(Vector3(255, 255, 255)) == 7


def test_first_inserted_colour_moves_down_on_split():
    tree = SpatialTree()
    tree.insert(Vector3(10, 10, 10), "first")
    tree.insert(Vector3(20, 10, 10), "second")
    # both fall in the low octant until a centre separates them
    assert not tree.root.is_occupied
    assert len(tree.root.valid_children()) == 1
    assert tree.lookup(Vector3(10, 10, 10)) == "first"
    assert tree.lookup(Vector3(20, 10, 10)) == "second"


def test_collect_all_skips_excluded_descendants_only():
    tree = SpatialTree()
    tree.insert(Vector3(0, 0, 0), "black")
    tree.insert(Vector3(255, 255, 255), "white")
    tree.insert(Vector3(250, 10, 10), "red")
    root = tree.root
    assert sorted(root.collect_all()) == ["black", "red", "white"]
    assert sorted(root.collect_all({root})) == ["black", "red", "white"]
    assert sorted(root.collect_all({root, root.children[7]})) == ["black", "red"]
    white_node = root.children[7]
    assert white_node.collect_all({white_node}) == ["white"]


def test_depth_bounded_for_channels_above_one():
    tree = SpatialTree()
    for key in _random_keys(4000, low=2, seed=2):
        tree.insert(key, None)
    assert tree.depth() <= 8


def test_depth_bounded_for_any_colours():
    tree = SpatialTree()
    for key in _random_keys(4000, seed=3):
        tree.insert(key, None)
    for x in range(4):
        tree.insert(Vector3(x, 0, 0), None)
    assert tree.depth() <= 9


def test_lowest_cell_separates_one_level_deeper():
    tree = SpatialTree()
    tree.insert(Vector3(0, 0, 0), "a")
    tree.insert(Vector3(1, 0, 0), "b")
    assert tree.depth() == 9
    tree = SpatialTree()
    tree.insert(Vector3(254, 0, 0), "a")
    tree.insert(Vector3(255, 0, 0), "b")
    assert tree.depth() <= 8


def test_no_node_has_occupant_and_children():
    tree = SpatialTree()
    for key in _random_keys(300, seed=4):
        tree.insert(key, None)
    for node in tree.root.iter_nodes():
        assert not (node.is_occupied and node.is_split)
