import logging
import threading

import numpy as np
import pytest

from natinterp2d.engine import NaturalNeighborEngine, Workspace
from natinterp2d.errors import NeighborRingOverflowError
from natinterp2d.locate import Inside, OnEdge, OnVertex, Outside, locate
from natinterp2d.triangulation import Triangulation


def make_engine(points, **kwargs):
    tri = Triangulation.build(np.asarray(points, dtype=np.float64))
    return NaturalNeighborEngine(tri, **kwargs)


def weights_at(engine, point):
    point = np.asarray(point, dtype=np.float64)
    located = locate(point, 0, engine.triangulation)
    ws = engine.workspace()
    n = engine.natural_neighbors(point, located, ws)
    return dict(zip(*(arr.tolist() for arr in ws.result(n))))


def octagon():
    angles = np.arange(8) * 2 * np.pi / 8
    return np.stack([np.cos(angles), np.sin(angles)], axis=1)


class TestWorkspace:
    def test_result_is_a_copy(self):
        ws = Workspace(4, 10)
        ws.sites[:2] = [3, 7]
        ws.weights[:2] = [0.25, 0.75]
        sites, weights = ws.result(2)
        ws.sites[0] = 9
        assert sites.tolist() == [3, 7]
        assert weights.tolist() == [0.25, 0.75]

    def test_cavity_capacity(self):
        ws = Workspace(5, 10)
        assert len(ws.sites) == 5
        assert len(ws.cavity) == 10
        assert len(ws.stamps) == 10

    def test_reused_within_a_thread(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        assert engine.workspace() is engine.workspace()

    def test_separate_per_thread(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        main = engine.workspace()
        other = []
        thread = threading.Thread(target=lambda: other.append(engine.workspace()))
        thread.start()
        thread.join()
        assert other[0] is not main

    def test_generation_advances(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        ws = engine.workspace()
        before = ws.generation
        weights_at(engine, (1.0, 1.0))
        weights_at(engine, (1.0, 2.0))
        assert ws.generation == before + 2


class TestNaturalNeighbors:
    def test_right_triangle(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        weights = weights_at(engine, (1.0, 1.0))
        assert weights == pytest.approx({0: 0.5, 1: 0.25, 2: 0.25})

    def test_interior_edge(self):
        engine = make_engine([[0, 0], [2, 0], [2, 2], [0, 2]])
        located = locate((1.0, 1.0), 0, engine.triangulation)
        assert isinstance(located, OnEdge)
        weights = weights_at(engine, (1.0, 1.0))
        assert weights == pytest.approx({0: 0.25, 1: 0.25, 2: 0.25, 3: 0.25})

    def test_on_vertex(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        ws = engine.workspace()
        n = engine.natural_neighbors((4.0, 0.0), OnVertex(1), ws)
        assert n == 1
        assert ws.sites[0] == 1
        assert ws.weights[0] == 1.0

    def test_hull_edge_is_linear(self):
        engine = make_engine([[0, 0], [2, 0], [2, 2], [0, 2]])
        weights = weights_at(engine, (0.5, 0.0))
        assert weights == pytest.approx({0: 0.75, 1: 0.25})

    def test_outside_has_no_neighbors(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        located = locate((5.0, 5.0), 0, engine.triangulation)
        assert isinstance(located, Outside)
        with pytest.raises(ValueError):
            engine.natural_neighbors((5.0, 5.0), located)

    def test_unknown_location(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        with pytest.raises(TypeError):
            engine.natural_neighbors((1.0, 1.0), (0, 1))

    def test_repeated_queries_agree(self):
        rng = np.random.RandomState(3)
        engine = make_engine(rng.uniform(-1, 1, (60, 2)))
        queries = rng.uniform(-0.5, 0.5, (10, 2))
        first = [weights_at(engine, q) for q in queries]
        second = [weights_at(engine, q) for q in queries]
        assert first == second

    def test_reproduces_query_position(self):
        rng = np.random.RandomState(8)
        engine = make_engine(rng.uniform(-1, 1, (80, 2)))
        points = engine.triangulation.points
        for query in rng.uniform(-0.5, 0.5, (20, 2)):
            weights = weights_at(engine, query)
            assert sum(weights.values()) == pytest.approx(1.0)
            assert all(w >= 0 for w in weights.values())
            position = sum(w * points[site] for site, w in weights.items())
            np.testing.assert_allclose(position, query, atol=1e-10)

    def test_edge_weights_drop_zero_entries(self):
        engine = make_engine([[0, 0], [2, 0], [2, 2], [0, 2]])
        t, edge = engine.triangulation.hull_edges[0]
        i, j = engine.triangulation.edge_vertices(t, edge)
        start = engine.triangulation.points[i]
        ws = engine.workspace()
        n = engine.edge_weights(start, t, edge, ws)
        assert n == 1
        assert ws.sites[0] == i
        assert ws.weights[0] == 1.0


class TestOverflow:
    def test_ring_overflow(self):
        engine = make_engine(octagon(), max_neighbors=4)
        located = locate((0.0, 0.0), 0, engine.triangulation)
        assert isinstance(located, (Inside, OnEdge))
        with pytest.raises(NeighborRingOverflowError) as excinfo:
            engine.natural_neighbors((0.0, 0.0), located)
        assert excinfo.value.capacity == 4

    def test_enough_capacity(self):
        engine = make_engine(octagon(), max_neighbors=8)
        weights = weights_at(engine, (0.0, 0.0))
        assert sorted(weights) == list(range(8))
        assert list(weights.values()) == pytest.approx([0.125] * 8)


class TestDegenerateArea:
    def test_falls_back_to_nearest_site(self, caplog):
        # The stolen area at (1, 1) is 9, far below the floor
        engine = make_engine([[0, 0], [4, 0], [0, 4]], area_floor=1.0)
        with caplog.at_level(logging.WARNING, logger='natinterp2d.engine'):
            weights = weights_at(engine, (1.0, 1.0))
        assert weights == {0: 1.0}
        assert 'degenerate' in caplog.text

    def test_query_next_to_a_site(self):
        engine = make_engine([[0, 0], [4, 0], [4, 4], [0, 4], [1.5, 2.0]])
        for offset in [(1e-13, 2e-13), (-3e-14, 1e-14), (2e-14, -5e-14)]:
            assert weights_at(engine, (1.5 + offset[0], 2.0 + offset[1])) == {4: 1.0}

    def test_query_near_a_site_keeps_all_neighbors(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        weights = weights_at(engine, (1e-6, 2e-6))
        assert sorted(weights) == [0, 1, 2]
        assert weights[0] == pytest.approx(1.0, abs=1e-4)
        assert sum(weights.values()) == pytest.approx(1.0)

    def test_snapping_disabled_without_tolerance(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]], eps=0.0)
        assert engine._coincident_vertex((1e-13, 2e-13), 0) is None

    def test_default_floor_is_tiny(self):
        engine = make_engine([[0, 0], [4, 0], [0, 4]])
        assert engine.min_total_area == pytest.approx(32e-24)
