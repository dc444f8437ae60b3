"""Tests for the Triangle-backed terrain triangulation."""
import numpy as np
import pytest

from noise_pathfinder.terrain.triangulator import (
    TerrainMeshBuilder, TriangleTriangulator, TriangulationError,
)

# Plane z = x over a 10 x 10 square
CORNERS = [(0, 0, 0), (10, 0, 10), (10, 10, 10), (0, 10, 0)]


def _has_edge(mesh, a, b):
    for tri in mesh.triangles:
        coords = {tuple(mesh.vertices[i][:2]) for i in tri}
        if a in coords and b in coords:
            return True
    return False


class TestTriangleTriangulator:
    def test_square(self):
        mesh = TriangleTriangulator().triangulate(CORNERS, [])
        assert mesh.num_vertices == 4
        assert mesh.num_triangles == 2

    def test_duplicate_points_merged(self):
        mesh = TriangleTriangulator().triangulate(CORNERS + [(0, 0, 0)], [])
        assert mesh.num_vertices == 4

    def test_elevations_kept(self):
        mesh = TriangleTriangulator().triangulate(CORNERS, [])
        assert np.allclose(mesh.vertices[:, 2], mesh.vertices[:, 0])

    def test_max_area_refines(self):
        mesh = TriangleTriangulator().triangulate(CORNERS, [], max_area=5.0)
        assert mesh.num_triangles > 2
        for i in range(mesh.num_triangles):
            (x0, y0, _), (x1, y1, _), (x2, y2, _) = mesh.triangle_vertices(i)
            area = abs((x1 - x0) * (y2 - y0) - (x2 - x0) * (y1 - y0)) / 2.0
            assert area <= 5.0 + 1e-9

    def test_tiny_max_area_refines(self):
        corners = [(0, 0, 0), (1e-3, 0, 0), (1e-3, 1e-3, 0), (0, 1e-3, 0)]
        mesh = TriangleTriangulator().triangulate(corners, [], max_area=1e-7)
        assert mesh.num_triangles > 2
        for i in range(mesh.num_triangles):
            (x0, y0, _), (x1, y1, _), (x2, y2, _) = mesh.triangle_vertices(i)
            area = abs((x1 - x0) * (y2 - y0) - (x2 - x0) * (y1 - y0)) / 2.0
            assert area <= 1e-7 * (1 + 1e-6)

    def test_steiner_points_interpolated(self):
        mesh = TriangleTriangulator().triangulate(CORNERS, [], max_area=5.0)
        assert np.allclose(mesh.vertices[:, 2], mesh.vertices[:, 0])

    def test_breakline_is_an_edge(self):
        line = [(0, 10, 0), (10, 0, 10)]
        mesh = TriangleTriangulator().triangulate(CORNERS, [line])
        assert _has_edge(mesh, (0.0, 10.0), (10.0, 0.0))

    def test_breakline_vertices_added(self):
        line = [(2, 2, 2), (8, 3, 8)]
        mesh = TriangleTriangulator().triangulate(CORNERS, [line])
        assert mesh.num_vertices == 6
        assert _has_edge(mesh, (2.0, 2.0), (8.0, 3.0))

    def test_too_few_points(self):
        with pytest.raises(TriangulationError):
            TriangleTriangulator().triangulate([(0, 0, 0), (1, 0, 0)], [])

    def test_collinear_points(self):
        with pytest.raises(TriangulationError):
            TriangleTriangulator().triangulate(
                [(0, 0, 0), (1, 1, 0), (2, 2, 0), (3, 3, 0)], [],
            )


class TestTerrainMeshBuilder:
    def test_build(self):
        builder = TerrainMeshBuilder()
        for point in CORNERS:
            builder.add_vertex(point)
        mesh = builder.build()
        assert mesh.num_triangles == 2

    def test_2d_vertices_at_zero(self):
        builder = TerrainMeshBuilder()
        for x, y, _ in CORNERS:
            builder.add_vertex((x, y))
        mesh = builder.build()
        assert np.allclose(mesh.vertices[:, 2], 0.0)

    def test_negative_area_rejected(self):
        with pytest.raises(TriangulationError):
            TerrainMeshBuilder().set_max_area(-1.0)
