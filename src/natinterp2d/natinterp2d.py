import logging
from typing import List, Optional, Tuple

import numpy as np
import scipy.sparse
from scipy.spatial import Delaunay, cKDTree

from natinterp2d.config import ExtrapolationPolicy, InterpolatorConfig
from natinterp2d.engine import NaturalNeighborEngine, Workspace
from natinterp2d.errors import OutOfHullError
from natinterp2d.locate import Outside, locate
from natinterp2d.spatial_index import SpatialIndex
from natinterp2d.triangulation import Triangulation, check_sites

logger = logging.getLogger(__name__)


def interpolate(
    queries: np.ndarray,
    keys: np.ndarray,
    values: np.ndarray,
    config: Optional[InterpolatorConfig] = None,
) -> np.ndarray:
    """
    Interpolates function values at query points using the natural neighbor interpolation method
    :footcite:`sibson1981brief,lucas2021fast`, based on some known values of the function.

    Args:
        queries: The points at which to evaluate the function. Shape (M, 2).
        keys: The points at which the function is known. Shape (N, 2).
        values: The values of the function at the known points. Shape (N, D) or (N,).
        config: Interpolation options, including what happens outside the convex hull of the
            keys. See :class:`InterpolatorConfig`.

    Returns:
        The interpolated values of the function at the query points. Shape (M, D) or (M,),
        depending on the shape of the ``values`` array.
    """
    interpolator = Interpolator(keys, config=config)
    return interpolator.interpolate(queries, values)


def get_weights(
    queries: np.ndarray,
    keys: np.ndarray,
    config: Optional[InterpolatorConfig] = None,
) -> scipy.sparse.csr_matrix:
    """Returns the natural interpolation weights (Sibson coordinates) for the query points,
    given the known data points (keys, data sites).

    Args:
        queries: The points for which to compute the interpolation weights.
        keys: The points at which the function is known (sites)
        config: Interpolation options. See :class:`InterpolatorConfig`.

    Returns:
        The interpolation weights for the query points as a sparse matrix.
    """

    interpolator = Interpolator(keys, config=config)
    return interpolator.get_weights(queries)


class Interpolator:
    """
    Natural neighbor interpolator for 2D data points.

    If the same data points are used for multiple interpolations, it is more efficient to
    create an Interpolator object and use it for multiple interpolations, rather than
    calling the :func:`interpolate` function multiple times. This is because computing the
    Delaunay triangulation of the data points would be wastefully done multiple times.

    The interpolator is immutable after construction and may be queried from several threads
    at once. Each thread gets its own scratch buffers.

    Args:
        data_points: The data points at which the function is known. Shape (N, 2).
        values: Optional default values of the function at the data points, used when
            :meth:`interpolate` is called without values. Shape (N,) or (N, D).
        config: Interpolation options. Defaults to ``InterpolatorConfig()``, which raises
            :class:`~natinterp2d.errors.OutOfHullError` outside the convex hull.
        triangulation: A precomputed Delaunay triangulation of ``data_points``, either a
            :class:`scipy.spatial.Delaunay` or a :class:`~natinterp2d.triangulation.Triangulation`.
        spatial_index: A precomputed :class:`scipy.spatial.cKDTree` (or
            :class:`~natinterp2d.spatial_index.SpatialIndex`) over ``data_points``.

    Raises:
        InsufficientSitesError: If there are fewer than 3 data points or they are all collinear.
    """

    def __init__(
        self,
        data_points: np.ndarray,
        values: Optional[np.ndarray] = None,
        config: Optional[InterpolatorConfig] = None,
        triangulation=None,
        spatial_index=None,
    ):
        self.config = config if config is not None else InterpolatorConfig()
        data_points = np.ascontiguousarray(data_points, np.float64)
        check_sites(data_points, self.config.epsilon)

        # Predicates are better conditioned around the origin
        self._centroid = data_points.mean(axis=0)
        centered = data_points - self._centroid

        if triangulation is None:
            self.triangulation = Triangulation.build(centered, self.config.epsilon)
        elif isinstance(triangulation, (Delaunay, Triangulation)):
            if len(triangulation.points) != len(data_points):
                raise ValueError(
                    f'The triangulation has {len(triangulation.points)} sites, '
                    f'expected {len(data_points)}')
            self.triangulation = Triangulation(
                centered, triangulation.simplices, triangulation.neighbors)
        else:
            raise TypeError(
                f'triangulation must be a scipy.spatial.Delaunay or Triangulation, '
                f'got {type(triangulation).__name__}')

        if spatial_index is None:
            self.spatial_index = SpatialIndex(centered)
        elif isinstance(spatial_index, cKDTree):
            self.spatial_index = SpatialIndex(spatial_index, offset=self._centroid)
        elif isinstance(spatial_index, SpatialIndex):
            self.spatial_index = SpatialIndex(spatial_index.tree, offset=self._centroid)
        else:
            raise TypeError(
                f'spatial_index must be a scipy.spatial.cKDTree or SpatialIndex, '
                f'got {type(spatial_index).__name__}')

        if self.spatial_index.n_sites != len(data_points):
            raise ValueError(
                f'The spatial index has {self.spatial_index.n_sites} sites, '
                f'expected {len(data_points)}')

        self.engine = NaturalNeighborEngine(
            self.triangulation,
            max_neighbors=self.config.max_neighbors,
            eps=self.config.epsilon,
            area_floor=self.config.area_floor)
        self._max_steps = self.config.walk_factor * self.triangulation.n_triangles + 3
        self.values = None if values is None else self._check_values(values)
        logger.debug(
            'Natural neighbor interpolator over %d sites, %d triangles, extrapolation %s',
            len(data_points), self.triangulation.n_triangles, self.config.extrapolation.value)

    @classmethod
    def from_sites(cls, sites, config: Optional[InterpolatorConfig] = None) -> 'Interpolator':
        """Create an interpolator from a sequence of ``((x, y), value)`` pairs."""
        sites = list(sites)
        data_points = np.array([coords for coords, _ in sites], dtype=np.float64).reshape(-1, 2)
        values = np.array([value for _, value in sites], dtype=np.float64)
        return cls(data_points, values, config=config)

    @property
    def n_sites(self) -> int:
        return self.triangulation.n_sites

    def query_weights(self, point) -> List[Tuple[int, float]]:
        """The natural neighbors of a single point and their Sibson coordinates.

        Args:
            point: The query point. Shape (2,).

        Returns:
            A list of ``(site index, weight)`` pairs. The weights are non-negative and sum to
            1. The list is empty for points outside the convex hull under
            ``ExtrapolationPolicy.FILL``.
        """
        point = self._check_queries(np.asarray(point, np.float64))[0]
        centered = point - self._centroid
        seed = self.spatial_index.seed_triangle(centered, self.triangulation)
        ws = self.engine.workspace()
        n = self._natural_neighbors(point, centered, seed, ws)
        return [(int(ws.sites[i]), float(ws.weights[i])) for i in range(n)]

    def get_weights(self, query_points: np.ndarray) -> scipy.sparse.csr_matrix:
        """Compute the natural interpolation weights (Sibson coordinates) for the query points.

        Args:
            query_points: The points for which to compute the interpolation weights.
                Shape (M, 2).

        Returns:
            The interpolation weights for the query points as a sparse matrix of shape (M, N).
            Rows of points outside the convex hull are empty under
            ``ExtrapolationPolicy.FILL``.
        """
        query_points = np.asarray(query_points)
        out_dtype = query_points.dtype if query_points.dtype.kind == 'f' else np.float64
        query_points = self._check_queries(query_points)
        centered = query_points - self._centroid
        seeds = self.spatial_index.seed_triangles(centered, self.triangulation)
        ws = self.engine.workspace()

        indptr = np.zeros(len(query_points) + 1, dtype=np.int64)
        indices = []
        data = []
        for i, point in enumerate(query_points):
            n = self._natural_neighbors(point, centered[i], seeds[i], ws)
            sites, weights = ws.result(n)
            indices.append(sites)
            data.append(weights)
            indptr[i + 1] = indptr[i] + n

        indices = np.concatenate(indices) if indices else np.zeros(0, np.int64)
        data = np.concatenate(data) if data else np.zeros(0, np.float64)
        result = scipy.sparse.csr_matrix(
            (data, indices, indptr), shape=(len(query_points), self.n_sites))
        return result.astype(out_dtype, copy=False)

    def interpolate(self, query_points: np.ndarray, values: Optional[np.ndarray] = None):
        """Interpolate function values at query points using the natural interpolation method.

        Args:
            query_points: The points at which to evaluate the function. Shape (M, 2), or (2,)
                for a single point.
            values: The values of the function at the known points, which were originally passed
                in the constructor. Shape (N, D) or (N,). Defaults to the values given at
                construction.

        Returns:
            The interpolated values of the function at the query points. Shape (M, D) or (M,),
            depending on the shape of the ``values`` array. For a single query point, a float
            or an array of shape (D,).

        Raises:
            OutOfHullError: If a query point is outside the convex hull and the extrapolation
                policy is ``ExtrapolationPolicy.ERROR``.
            NeighborRingOverflowError: If a query point has more than ``max_neighbors``
                natural neighbors.
        """
        if values is None:
            if self.values is None:
                raise ValueError('No values given, neither here nor at construction')
            values = self.values
        else:
            values = self._check_values(values)

        query_points = np.asarray(query_points, np.float64)
        single = query_points.ndim == 1
        query_points = self._check_queries(query_points)
        centered = query_points - self._centroid
        seeds = self.spatial_index.seed_triangles(centered, self.triangulation)
        ws = self.engine.workspace()

        interpolated = np.empty((len(query_points),) + values.shape[1:], dtype=np.float64)
        for i, point in enumerate(query_points):
            n = self._natural_neighbors(point, centered[i], seeds[i], ws)
            if n == 0:
                interpolated[i] = self.config.fill_value
            else:
                interpolated[i] = ws.weights[:n] @ values[ws.sites[:n]]

        if single:
            result = interpolated[0]
            return float(result) if result.ndim == 0 else result
        return interpolated

    def _natural_neighbors(self, point, centered, seed: int, ws: Workspace) -> int:
        located = locate(
            centered, seed, self.triangulation, self.config.epsilon, self._max_steps)

        if isinstance(located, Outside):
            policy = self.config.extrapolation
            if policy is ExtrapolationPolicy.ERROR:
                raise OutOfHullError(point)
            if policy is ExtrapolationPolicy.FILL:
                return 0
            return self.engine.edge_weights(centered, located.triangle, located.edge, ws)

        return self.engine.natural_neighbors(centered, located, ws)

    def _check_values(self, values) -> np.ndarray:
        values = np.asarray(values, np.float64)
        if values.ndim not in (1, 2) or len(values) != self.n_sites:
            raise ValueError(
                f'values must have shape ({self.n_sites},) or ({self.n_sites}, D), '
                f'got {values.shape}')
        return values

    def _check_queries(self, query_points: np.ndarray) -> np.ndarray:
        query_points = np.ascontiguousarray(query_points, np.float64)
        if query_points.ndim == 1:
            query_points = query_points[np.newaxis]
        if query_points.ndim != 2 or query_points.shape[1] != 2:
            raise ValueError(f'Query points must have shape (M, 2) or (2,), got {query_points.shape}')
        if not np.all(np.isfinite(query_points)):
            raise ValueError('Query points must be finite')
        return query_points
