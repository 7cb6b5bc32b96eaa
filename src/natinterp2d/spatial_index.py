"""Nearest-site lookups used to seed point location."""

import numpy as np
from scipy.spatial import cKDTree

from natinterp2d.triangulation import HULL, Triangulation


class SpatialIndex:
    """k-d tree over the site coordinates.

    Starting the point location walk at a triangle incident to the nearest site keeps the walk
    short regardless of how many sites there are.

    Args:
        points: Site coordinates, or an already built :class:`scipy.spatial.cKDTree`.
        offset: Added to every query before searching, for a tree built in other coordinates
            than the queries are given in.
    """

    def __init__(self, points, offset=None):
        if isinstance(points, cKDTree):
            self.tree = points
        else:
            self.tree = cKDTree(np.ascontiguousarray(points, np.float64))
        if self.tree.m != 2:
            raise ValueError(f'Expected a 2D spatial index, got {self.tree.m}D')
        self.offset = None if offset is None else np.asarray(offset, np.float64)

    @property
    def n_sites(self) -> int:
        return self.tree.n

    def nearest_site(self, point) -> int:
        if self.offset is not None:
            point = np.asarray(point) + self.offset
        _, index = self.tree.query(point)
        return int(index)

    def nearest_sites(self, points: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`nearest_site`. Shape (M,) for points of shape (M, 2)."""
        if self.offset is not None:
            points = np.asarray(points) + self.offset
        _, indices = self.tree.query(points)
        return np.asarray(indices, dtype=np.int64)

    def seed_triangle(self, point, triangulation: Triangulation) -> int:
        """A triangle incident to the site nearest to ``point``.

        Falls back to an arbitrary triangle if that site is not part of the triangulation.
        """
        t = triangulation.incident_triangle(self.nearest_site(point))
        if t == HULL:
            return triangulation.any_triangle()
        return t

    def seed_triangles(self, points: np.ndarray, triangulation: Triangulation) -> np.ndarray:
        """Vectorized :meth:`seed_triangle`. Shape (M,) for points of shape (M, 2)."""
        triangles = triangulation.vertex_to_triangle[self.nearest_sites(points)]
        return np.where(triangles == HULL, triangulation.any_triangle(), triangles)
