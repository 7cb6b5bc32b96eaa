"""Read-only adjacency view of a Delaunay triangulation of the sites."""

import logging

import numpy as np
from scipy.spatial import Delaunay, QhullError

from natinterp2d.errors import InsufficientSitesError
from natinterp2d.predicates import DEFAULT_EPSILON, circumcenters, orientation_det

logger = logging.getLogger(__name__)

# Neighbor index of a hull edge
HULL = -1


class Triangulation:
    """Triangles over site indices, with adjacency across each edge.

    Triangles are stored counterclockwise. Edge ``j`` of a triangle is the one opposite its
    vertex ``j``, running from vertex ``j + 1`` to vertex ``j + 2`` (mod 3), so the interior of
    the triangle is to the left of every edge. ``neighbors[t, j]`` is the triangle on the other
    side of edge ``j`` of triangle ``t``, or :data:`HULL`.

    The accessor methods return plain ints. The per-query loops of the locator and the engine
    read the read-only ``simplices``, ``neighbors`` and ``circumcenters`` arrays directly.

    Args:
        points: Site coordinates. Shape (N, 2).
        simplices: Vertex indices of the triangles, in either orientation. Shape (T, 3).
        neighbors: Adjacent triangle across the edge opposite each vertex, -1 on the convex hull.
            Shape (T, 3).
    """

    def __init__(self, points: np.ndarray, simplices: np.ndarray, neighbors: np.ndarray):
        points = np.array(points, dtype=np.float64)
        simplices = np.array(simplices, dtype=np.int64)
        neighbors = np.array(neighbors, dtype=np.int64)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f'points must have shape (N, 2), got {points.shape}')
        if simplices.ndim != 2 or simplices.shape[1] != 3 or len(simplices) == 0:
            raise ValueError(f'simplices must have shape (T, 3), got {simplices.shape}')
        if neighbors.shape != simplices.shape:
            raise ValueError(
                f'neighbors must have the same shape as simplices, got {neighbors.shape}')

        # Swapping two vertices also swaps the edges opposite them
        clockwise = orientation_det(
            points[simplices[:, 0]].T, points[simplices[:, 1]].T,
            points[simplices[:, 2]].T) < 0
        simplices[clockwise] = simplices[clockwise][:, [0, 2, 1]]
        neighbors[clockwise] = neighbors[clockwise][:, [0, 2, 1]]

        self.points = points
        self.simplices = simplices
        self.neighbors = neighbors
        self.circumcenters = circumcenters(points, simplices)

        self.vertex_to_triangle = np.full(len(points), HULL, dtype=np.int64)
        self.vertex_to_triangle[simplices.ravel()] = np.repeat(np.arange(len(simplices)), 3)

        hull_triangles, hull_edges = np.nonzero(neighbors == HULL)
        self.hull_edges = np.stack([hull_triangles, hull_edges], axis=1)

        for array in (self.points, self.simplices, self.neighbors, self.circumcenters,
                      self.vertex_to_triangle, self.hull_edges):
            array.flags.writeable = False

    @classmethod
    def from_delaunay(cls, delaunay: Delaunay) -> 'Triangulation':
        """Wrap a triangulation computed by :class:`scipy.spatial.Delaunay`."""
        if delaunay.ndim != 2:
            raise ValueError(f'Expected a 2D triangulation, got {delaunay.ndim}D')
        if len(delaunay.coplanar):
            logger.debug(
                '%d sites were not included in the triangulation (duplicates)',
                len(delaunay.coplanar))
        return cls(delaunay.points, delaunay.simplices, delaunay.neighbors)

    @classmethod
    def build(cls, points: np.ndarray, eps: float = DEFAULT_EPSILON) -> 'Triangulation':
        """Compute the Delaunay triangulation of the sites.

        Raises:
            InsufficientSitesError: If there are fewer than 3 sites or all are collinear.
        """
        points = np.ascontiguousarray(points, np.float64)
        check_sites(points, eps)
        try:
            delaunay = Delaunay(points)
        except QhullError as e:
            raise InsufficientSitesError(f'Could not triangulate the sites: {e}') from e
        triangulation = cls.from_delaunay(delaunay)
        logger.debug(
            'Triangulated %d sites into %d triangles (%d hull edges)',
            len(points), triangulation.n_triangles, len(triangulation.hull_edges))
        return triangulation

    @property
    def n_triangles(self) -> int:
        return len(self.simplices)

    @property
    def n_sites(self) -> int:
        return len(self.points)

    def triangle_vertices(self, t: int):
        s = self.simplices[t]
        return int(s[0]), int(s[1]), int(s[2])

    def opposite_triangle(self, t: int, edge: int) -> int:
        """The triangle across edge ``edge`` of ``t``, or :data:`HULL`."""
        return int(self.neighbors[t, edge])

    def any_triangle(self) -> int:
        return 0

    def incident_triangle(self, site: int) -> int:
        """Some triangle having ``site`` as a vertex, or :data:`HULL` if the site was dropped."""
        return int(self.vertex_to_triangle[site])

    def circumcenter(self, t: int):
        c = self.circumcenters[t]
        return float(c[0]), float(c[1])

    def edge_vertices(self, t: int, edge: int):
        """Endpoints of an edge, in counterclockwise order with respect to ``t``."""
        s = self.simplices[t]
        return int(s[(edge + 1) % 3]), int(s[(edge + 2) % 3])

    def shared_edge(self, t: int, other: int) -> int:
        """The edge of ``t`` across which ``other`` lies."""
        row = self.neighbors[t]
        for j in range(3):
            if row[j] == other:
                return j
        raise ValueError(f'Triangles {t} and {other} are not adjacent')

    def is_hull_edge(self, t: int, edge: int) -> bool:
        return bool(self.neighbors[t, edge] == HULL)


def check_sites(points: np.ndarray, eps: float = DEFAULT_EPSILON):
    """Raise :class:`InsufficientSitesError` unless the sites span a triangle.

    Args:
        points: Site coordinates. Shape (N, 2).
        eps: Relative tolerance for the collinearity test.
    """
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f'Sites must have shape (N, 2), got {points.shape}')
    if len(points) < 3:
        raise InsufficientSitesError(
            f'Natural neighbor interpolation needs at least 3 sites, got {len(points)}')
    if not np.all(np.isfinite(points)):
        raise ValueError('Site coordinates must be finite')

    origin = points[0]
    offsets = points - origin
    lengths = np.abs(offsets).sum(axis=1)
    farthest = int(np.argmax(lengths))
    direction = offsets[farthest]
    cross = direction[0] * offsets[:, 1] - direction[1] * offsets[:, 0]
    if lengths[farthest] == 0 or np.all(np.abs(cross) <= eps * lengths[farthest] * lengths):
        raise InsufficientSitesError('All sites are collinear')
