"""Point location by walking the triangulation."""

from typing import NamedTuple, Optional, Union

import numpy as np

from natinterp2d.errors import LocateError
from natinterp2d.predicates import DEFAULT_EPSILON, Containment, point_in_triangle
from natinterp2d.triangulation import HULL, Triangulation


class Inside(NamedTuple):
    triangle: int


class OnEdge(NamedTuple):
    triangle: int
    edge: int


class OnVertex(NamedTuple):
    site: int


class Outside(NamedTuple):
    """The point is outside the convex hull. ``edge`` of ``triangle`` is the nearest hull edge."""
    triangle: int
    edge: int


Located = Union[Inside, OnEdge, OnVertex, Outside]


def locate(
    point,
    seed_triangle: int,
    triangulation: Triangulation,
    eps: float = DEFAULT_EPSILON,
    max_steps: Optional[int] = None,
) -> Located:
    """Find where ``point`` lies in the triangulation.

    Starting from ``seed_triangle``, repeatedly steps into the neighbor across an edge that has
    the point on its outer side. On a Delaunay triangulation this visibility walk always
    reaches the triangle containing the point.

    Args:
        point: The query coordinates.
        seed_triangle: Triangle to start from, ideally close to the point.
        triangulation: The triangulation to walk.
        eps: Tolerance of the orientation tests.
        max_steps: Maximum number of triangles to visit. Defaults to three times the number of
            triangles.

    Returns:
        One of :class:`Inside`, :class:`OnEdge`, :class:`OnVertex` or :class:`Outside`.

    Raises:
        LocateError: If the walk does not finish within ``max_steps``.
    """
    if max_steps is None:
        max_steps = 3 * triangulation.n_triangles + 3

    points = triangulation.points
    simplices = triangulation.simplices
    t = seed_triangle
    for _ in range(max_steps):
        s = simplices[t]
        kind, index = point_in_triangle(point, points[s[0]], points[s[1]], points[s[2]], eps)
        if kind == Containment.INSIDE:
            return Inside(int(t))
        if kind == Containment.EDGE:
            return OnEdge(int(t), index)
        if kind == Containment.VERTEX:
            return OnVertex(int(s[index]))

        next_t = triangulation.opposite_triangle(t, index)
        if next_t == HULL:
            return Outside(*nearest_hull_edge(point, triangulation))
        t = next_t

    raise LocateError(
        f'Point location did not converge within {max_steps} steps '
        f'starting from triangle {seed_triangle}')


def nearest_hull_edge(point, triangulation: Triangulation):
    """The hull edge closest to ``point`` as a pair ``(triangle, edge)``."""
    hull_triangles = triangulation.hull_edges[:, 0]
    hull_edges = triangulation.hull_edges[:, 1]
    vertices = triangulation.simplices[hull_triangles]
    rows = np.arange(len(vertices))
    a = triangulation.points[vertices[rows, (hull_edges + 1) % 3]]
    b = triangulation.points[vertices[rows, (hull_edges + 2) % 3]]
    p = np.asarray(point, np.float64)

    d = b - a
    t = np.clip(np.sum((p - a) * d, axis=1) / np.sum(d * d, axis=1), 0.0, 1.0)
    dist2 = np.sum((a + t[:, np.newaxis] * d - p) ** 2, axis=1)
    i = int(np.argmin(dist2))
    return int(hull_triangles[i]), int(hull_edges[i])


def edge_parameter(point, a, b) -> float:
    """Position of the projection of ``point`` onto segment a-b, clamped to [0, 1]."""
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length2 = dx * dx + dy * dy
    if length2 == 0:
        return 0.0
    t = ((point[0] - a[0]) * dx + (point[1] - a[1]) * dy) / length2
    return float(min(max(t, 0.0), 1.0))
