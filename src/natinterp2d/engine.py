"""Sibson coordinates of a located query point.

The weights follow the area-stealing formulation of Lucas ("A Fast and Accurate Algorithm for
Natural Neighbor Interpolation"). The query point is never inserted into the triangulation.
Instead, the triangles whose circumcircle contains the query (the Bowyer-Watson cavity) are
collected, and the boundary of the cavity is walked counterclockwise. Every vertex ``v`` on
the boundary is a natural neighbor, and the part of its Voronoi cell that the query would
take over is the polygon with vertices

* the circumcenter of (q, previous boundary vertex, v),
* the circumcenters of the cavity triangles around ``v``, which are the Voronoi vertices that
  the insertion would destroy,
* the circumcenter of (q, v, next boundary vertex).

All per-query state lives in a :class:`Workspace`, which is allocated once per thread and
reused by every later query on that thread.
"""

import logging
import threading

import numpy as np

from natinterp2d.errors import LocateError, NeighborRingOverflowError
from natinterp2d.locate import Inside, OnEdge, OnVertex, Outside, edge_parameter
from natinterp2d.predicates import DEFAULT_EPSILON, Circle, circumcenter, in_circumcircle
from natinterp2d.triangulation import HULL, Triangulation

logger = logging.getLogger(__name__)


class Workspace:
    """Fixed-capacity scratch buffers for one query at a time.

    Args:
        capacity: Maximum number of natural neighbors. The cavity may hold up to twice as many
            triangles.
        n_triangles: Number of triangles in the triangulation.
    """

    def __init__(self, capacity: int, n_triangles: int):
        self.capacity = capacity
        self.sites = np.zeros(capacity, dtype=np.int64)
        self.weights = np.zeros(capacity, dtype=np.float64)
        self.cavity = np.zeros(2 * capacity, dtype=np.int64)
        # A triangle is in the current cavity iff its stamp equals the current generation
        self.stamps = np.zeros(n_triangles, dtype=np.int64)
        self.generation = 0

    def result(self, n: int):
        """Copies of the first ``n`` entries as ``(sites, weights)``."""
        return self.sites[:n].copy(), self.weights[:n].copy()


class NaturalNeighborEngine:
    """Computes natural neighbors and their Sibson coordinates.

    Args:
        triangulation: The Delaunay triangulation of the sites.
        max_neighbors: Capacity of the natural neighbor ring.
        eps: Tolerance of the geometric predicates.
        area_floor: Relative floor of the total stolen area, see
            :class:`~natinterp2d.InterpolatorConfig`.
    """

    def __init__(
        self,
        triangulation: Triangulation,
        max_neighbors: int = 64,
        eps: float = DEFAULT_EPSILON,
        area_floor: float = 1e-24,
    ):
        self.triangulation = triangulation
        self.max_neighbors = max_neighbors
        self.eps = eps
        extent = np.ptp(triangulation.points, axis=0)
        self.min_total_area = area_floor * float(np.sum(extent ** 2))
        self._local = threading.local()

    def workspace(self) -> Workspace:
        """The scratch buffers of the calling thread."""
        ws = getattr(self._local, 'workspace', None)
        if ws is None:
            ws = Workspace(self.max_neighbors, self.triangulation.n_triangles)
            self._local.workspace = ws
        return ws

    def natural_neighbors(self, point, located, workspace: Workspace = None) -> int:
        """Fill the workspace with the natural neighbors of ``point`` and their weights.

        Args:
            point: The query coordinates.
            located: Result of :func:`~natinterp2d.locate.locate` for the point.
            workspace: Scratch buffers to use. Defaults to those of the calling thread.

        Returns:
            The number ``n`` of neighbors. Their site indices are ``workspace.sites[:n]`` and
            their normalized weights ``workspace.weights[:n]``.

        Raises:
            NeighborRingOverflowError: If there are more than ``max_neighbors`` neighbors.
            LocateError: If the cavity is inconsistent with the triangulation.
        """
        ws = workspace if workspace is not None else self.workspace()
        if isinstance(located, OnVertex):
            return self._single(located.site, ws)
        if isinstance(located, Outside):
            raise ValueError('Points outside the convex hull have no natural neighbors')
        if isinstance(located, OnEdge) and self.triangulation.is_hull_edge(*located):
            # Linear along the hull edge, the limit of the Sibson coordinates there
            return self.edge_weights(point, located.triangle, located.edge, ws)
        if not isinstance(located, (Inside, OnEdge)):
            raise TypeError(f'Unexpected location {located!r}')
        site = self._coincident_vertex(point, located.triangle)
        if site is not None:
            return self._single(site, ws)
        return self._sibson(point, located.triangle, ws)

    def edge_weights(self, point, triangle: int, edge: int, workspace: Workspace = None) -> int:
        """Linear weights of the endpoints of an edge, at the projection of ``point``."""
        ws = workspace if workspace is not None else self.workspace()
        i, j = self.triangulation.edge_vertices(triangle, edge)
        points = self.triangulation.points
        u = edge_parameter(point, points[i], points[j])
        n = 0
        for site, weight in ((i, 1.0 - u), (j, u)):
            if weight > 0:
                ws.sites[n] = site
                ws.weights[n] = weight
                n += 1
        return n

    def _coincident_vertex(self, point, triangle: int):
        """The vertex of ``triangle`` that ``point`` is indistinguishable from, if any.

        Closer than ``eps`` times the longest edge, the circumcenters of the query and a vertex
        are dominated by rounding.
        """
        vertices = self.triangulation.triangle_vertices(triangle)
        corners = self.triangulation.points[list(vertices)]
        edges = corners - np.roll(corners, 1, axis=0)
        longest2 = float(np.max(np.sum(edges ** 2, axis=1)))
        dist2 = np.sum((corners - np.asarray(point, np.float64)) ** 2, axis=1)
        nearest = int(np.argmin(dist2))
        if dist2[nearest] <= self.eps * self.eps * longest2:
            return vertices[nearest]
        return None

    def _single(self, site: int, ws: Workspace) -> int:
        ws.sites[0] = site
        ws.weights[0] = 1.0
        return 1

    def _sibson(self, point, triangle: int, ws: Workspace) -> int:
        points = self.triangulation.points
        simplices = self.triangulation.simplices
        neighbors = self.triangulation.neighbors
        centers = self.triangulation.circumcenters
        qx = float(point[0])
        qy = float(point[1])

        ws.generation += 1
        generation = ws.generation
        stamps = ws.stamps
        cavity = ws.cavity

        # Breadth-first search for the triangles whose circumcircle contains the query
        cavity[0] = triangle
        stamps[triangle] = generation
        n_cavity = 1
        head = 0
        while head < n_cavity:
            t = cavity[head]
            head += 1
            for j in range(3):
                other = neighbors[t, j]
                if other == HULL or stamps[other] == generation:
                    continue
                s = simplices[other]
                circle = in_circumcircle(
                    points[s[0]], points[s[1]], points[s[2]], (qx, qy), self.eps)
                if circle == Circle.INSIDE:
                    if n_cavity == len(cavity):
                        raise NeighborRingOverflowError(self.max_neighbors)
                    stamps[other] = generation
                    cavity[n_cavity] = other
                    n_cavity += 1

        first_triangle, first_edge = self._first_boundary_edge(n_cavity, ws)

        # Walk the cavity boundary. Each boundary edge a -> b is followed by rotating around b
        # (clockwise) through the cavity until the next boundary edge b -> c is found. The
        # circumcenters met on the way, together with the circumcenters of (q, a, b) and
        # (q, b, c), bound the area that b loses. Visiting them clockwise makes the shoelace
        # sum negative.
        max_rotations = 3 * n_cavity + 3
        n_rotations = 0
        n = 0
        total = 0.0
        # Sum of the absolute shoelace terms, the scale of the rounding error in the areas
        magnitude = 0.0
        t, edge = first_triangle, first_edge
        while True:
            s = simplices[t]
            a = points[s[(edge + 1) % 3]]
            b_site = s[(edge + 2) % 3]
            b = points[b_site]
            bx = float(b[0])
            by = float(b[1])

            gx, gy = circumcenter((qx, qy), a, b)
            first_x = prev_x = gx - bx
            first_y = prev_y = gy - by
            area2 = 0.0

            k = (edge + 1) % 3
            while True:
                n_rotations += 1
                if n_rotations > max_rotations:
                    raise LocateError('Natural neighbor cavity is not consistent with the '
                                      'triangulation')
                cx = centers[t, 0] - bx
                cy = centers[t, 1] - by
                area2 += prev_x * cy - cx * prev_y
                magnitude += abs(prev_x * cy) + abs(cx * prev_y)
                prev_x = cx
                prev_y = cy

                other = neighbors[t, k]
                if other == HULL or stamps[other] != generation:
                    break
                k = (self.triangulation.shared_edge(other, t) + 1) % 3
                t = other

            c = points[simplices[t][(k + 2) % 3]]
            gx, gy = circumcenter((qx, qy), b, c)
            gx -= bx
            gy -= by
            area2 += prev_x * gy - gx * prev_y
            area2 += gx * first_y - first_x * gy
            magnitude += (abs(prev_x * gy) + abs(gx * prev_y)
                          + abs(gx * first_y) + abs(first_x * gy))

            if n == ws.capacity:
                raise NeighborRingOverflowError(self.max_neighbors)
            weight = max(-0.5 * area2, 0.0)
            ws.sites[n] = b_site
            ws.weights[n] = weight
            total += weight
            n += 1

            edge = k
            if t == first_triangle and edge == first_edge:
                break

        noise_floor = 0.5 * self.eps * magnitude
        if not np.isfinite(total) or total <= max(self.min_total_area, noise_floor):
            site = self._nearest_in_ring((qx, qy), n, ws)
            logger.warning(
                'Total stolen area %g at (%g, %g) is degenerate, using site %d',
                total, qx, qy, site)
            return self._single(site, ws)

        ws.weights[:n] /= total
        return n

    def _first_boundary_edge(self, n_cavity: int, ws: Workspace):
        neighbors = self.triangulation.neighbors
        for i in range(n_cavity):
            t = ws.cavity[i]
            for j in range(3):
                other = neighbors[t, j]
                if other == HULL or ws.stamps[other] != ws.generation:
                    return int(t), j
        raise LocateError('Natural neighbor cavity has no boundary')

    def _nearest_in_ring(self, point, n: int, ws: Workspace) -> int:
        sites = ws.sites[:n]
        diff = self.triangulation.points[sites] - np.asarray(point)
        return int(sites[np.argmin(np.sum(diff ** 2, axis=1))])
