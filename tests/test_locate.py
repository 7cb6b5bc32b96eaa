import numpy as np
import pytest

from natinterp2d.errors import LocateError
from natinterp2d.locate import (
    Inside,
    OnEdge,
    OnVertex,
    Outside,
    edge_parameter,
    locate,
    nearest_hull_edge,
)
from natinterp2d.predicates import Containment, point_in_triangle
from natinterp2d.triangulation import Triangulation


@pytest.fixture()
def grid():
    xs = np.arange(5, dtype=np.float64)
    points = np.array(np.meshgrid(xs, xs)).reshape(2, -1).T
    return Triangulation.build(points)


def site_at(tri, x, y):
    return int(np.flatnonzero((tri.points[:, 0] == x) & (tri.points[:, 1] == y))[0])


class TestLocate:
    def test_inside_from_every_seed(self, grid):
        query = (2.3, 1.6)
        results = {locate(query, seed, grid) for seed in range(grid.n_triangles)}
        assert len(results) == 1
        located = results.pop()
        assert isinstance(located, Inside)
        s = grid.simplices[located.triangle]
        kind, _ = point_in_triangle(query, *grid.points[s])
        assert kind == Containment.INSIDE

    def test_on_vertex(self, grid):
        for seed in range(grid.n_triangles):
            assert locate((3.0, 2.0), seed, grid) == OnVertex(site_at(grid, 3, 2))

    def test_on_edge(self, grid):
        located = locate((1.5, 2.0), 0, grid)
        assert isinstance(located, OnEdge)
        i, j = grid.edge_vertices(located.triangle, located.edge)
        assert {i, j} == {site_at(grid, 1, 2), site_at(grid, 2, 2)}
        assert not grid.is_hull_edge(located.triangle, located.edge)

    def test_on_hull_edge(self, grid):
        located = locate((0.0, 2.5), grid.n_triangles - 1, grid)
        assert isinstance(located, OnEdge)
        assert grid.is_hull_edge(located.triangle, located.edge)

    def test_outside(self, grid):
        located = locate((2.5, -3.0), grid.n_triangles - 1, grid)
        assert isinstance(located, Outside)
        assert grid.is_hull_edge(located.triangle, located.edge)
        i, j = grid.edge_vertices(located.triangle, located.edge)
        assert {i, j} == {site_at(grid, 2, 0), site_at(grid, 3, 0)}

    def test_step_limit(self, grid):
        seed = grid.incident_triangle(site_at(grid, 0, 0))
        with pytest.raises(LocateError):
            locate((3.6, 3.3), seed, grid, max_steps=1)

    def test_default_limit_suffices(self, grid):
        rng = np.random.RandomState(0)
        for query in rng.uniform(0, 4, (50, 2)):
            assert isinstance(locate(query, 0, grid), (Inside, OnEdge, OnVertex))


class TestNearestHullEdge:
    def test_nearest(self, grid):
        t, edge = nearest_hull_edge((6.0, 1.5), grid)
        i, j = grid.edge_vertices(t, edge)
        assert {i, j} == {site_at(grid, 4, 1), site_at(grid, 4, 2)}

    def test_beyond_corner(self, grid):
        t, edge = nearest_hull_edge((-1.0, -2.0), grid)
        i, j = grid.edge_vertices(t, edge)
        assert site_at(grid, 0, 0) in (i, j)


class TestEdgeParameter:
    def test_projection(self):
        assert edge_parameter((2.5, 7.0), (0.0, 0.0), (10.0, 0.0)) == 0.25

    def test_clamped(self):
        assert edge_parameter((-5.0, 1.0), (0.0, 0.0), (10.0, 0.0)) == 0.0
        assert edge_parameter((15.0, 1.0), (0.0, 0.0), (10.0, 0.0)) == 1.0

    def test_degenerate_edge(self):
        assert edge_parameter((1.0, 1.0), (0.0, 0.0), (0.0, 0.0)) == 0.0
