from typing import Iterable

from models import RoadmapNode


def path_key(path: Iterable[RoadmapNode]) -> str:
    """'1-2-4' for the path 1 -> 2 -> 4."""
    return "-".join(str(node.course_id) for node in path)


def _walk(node: RoadmapNode, prefix: tuple[RoadmapNode, ...], out: list[tuple[RoadmapNode, ...]]) -> None:
    current = prefix + (node,)
    if not node.children:
        out.append(current)
        return
    for child in node.children:
        _walk(child, current, out)


def enumerate_paths(forest: Iterable[RoadmapNode]) -> tuple[tuple[RoadmapNode, ...], ...]:
    """
    Every root-to-leaf path of the forest, in depth-first order.

    Paths are deduplicated by their joined course ids; the first occurrence of
    a key is kept and later ones are dropped.
    """
    raw: list[tuple[RoadmapNode, ...]] = []
    for root in forest:
        _walk(root, (), raw)

    unique: list[tuple[RoadmapNode, ...]] = []
    seen: set[str] = set()
    for path in raw:
        key = path_key(path)
        if key in seen:
            continue
        seen.add(key)
        unique.append(path)
    return tuple(unique)
