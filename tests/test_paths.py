from models import Course, RoadmapNode
from paths import enumerate_paths, path_key


def node(course_id, *children):
    return RoadmapNode(
        course=Course(id=course_id, name=f"Course {course_id}"),
        is_completed=False,
        is_enrolled=False,
        is_recommended=False,
        children=tuple(children),
    )


def ids(paths):
    return [[n.course_id for n in path] for path in paths]


class TestEnumeratePaths:
    def test_single_node_tree(self):
        assert ids(enumerate_paths([node(1)])) == [[1]]

    def test_diamond_yields_two_paths(self):
        forest = [node(1, node(2, node(4)), node(3, node(4)))]
        assert ids(enumerate_paths(forest)) == [[1, 2, 4], [1, 3, 4]]

    def test_multiple_roots_in_order(self):
        forest = [node(1, node(2)), node(5)]
        assert ids(enumerate_paths(forest)) == [[1, 2], [5]]

    def test_duplicate_paths_dropped_first_kept(self):
        first_leaf = node(2)
        forest = [node(1, first_leaf, node(2))]
        paths = enumerate_paths(forest)
        assert ids(paths) == [[1, 2]]
        assert paths[0][1] is first_leaf

    def test_duplicate_roots_collapse(self):
        forest = [node(1, node(2)), node(1, node(2))]
        assert ids(enumerate_paths(forest)) == [[1, 2]]

    def test_idempotent(self):
        forest = [node(1, node(2, node(4)), node(3, node(4)))]
        assert enumerate_paths(forest) == enumerate_paths(forest)

    def test_empty_forest(self):
        assert enumerate_paths([]) == ()


class TestPathKey:
    def test_joined_ids(self):
        assert path_key([node(1), node(12), node(4)]) == "1-12-4"

    def test_no_prefix_collision(self):
        assert path_key([node(1), node(12)]) != path_key([node(11), node(2)])
