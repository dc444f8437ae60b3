"""Tests for scene feeding, finishing and scene queries."""
import logging
import math

import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from noise_pathfinder.config import NO_ID, IntersectionType
from noise_pathfinder.scene.builder import SceneBuilder
from noise_pathfinder.scene.scene import Scene
from noise_pathfinder.terrain.triangulator import TriangulationError, Triangulator


class FailingTriangulator(Triangulator):
    def triangulate(self, points, lines, max_area=0.0):
        raise TriangulationError("boom")


def flat_terrain(builder, size=10.0, z=10.0):
    for x, y in [(0, 0), (size, 0), (size, size), (0, size)]:
        builder.add_terrain_point((x, y, z))


def walls_of(scene, kind):
    return [w for w in scene.walls if w.type == kind]


class TestFeeding:
    def test_add_building(self):
        builder = SceneBuilder()
        building = builder.add_building(box(0, 0, 10, 10), height=5.0,
                                        alphas=[0.1, 0.2], primary_key=42)
        assert building is not None
        assert builder.building_count == 1
        assert building.height == 5.0
        assert building.alphas == (0.1, 0.2)
        assert building.primary_key == 42

    def test_building_from_coordinates(self):
        builder = SceneBuilder()
        assert builder.add_building([(0, 0), (10, 0), (10, 10), (0, 10)]) is not None
        assert math.isnan(builder.buildings[0].height)

    def test_self_intersecting_building_rejected(self, caplog):
        builder = SceneBuilder()
        bow_tie = [(0, 0), (10, 10), (10, 0), (0, 10)]
        assert builder.add_building(bow_tie, height=5.0) is None
        assert builder.building_count == 0
        assert "simple Polygon" in caplog.text

    def test_degenerate_building_rejected(self):
        builder = SceneBuilder()
        assert builder.add_building([(0, 0), (10, 0)]) is None
        assert builder.building_count == 0

    def test_non_polygon_ground_rejected(self):
        builder = SceneBuilder()
        assert builder.add_ground_effect([(0, 0), (1, 1)], 0.5) is None

    def test_envelope(self):
        builder = SceneBuilder()
        assert builder.envelope is None
        builder.add_building(box(0, 0, 10, 10), 5.0)
        builder.add_receiver((50, -20, 4))
        builder.add_terrain_line([(-5, 3, 0), (2, 3, 0)])
        assert builder.envelope == (-5.0, -20.0, 50.0, 10.0)

    def test_clear_buildings(self):
        builder = SceneBuilder()
        builder.add_building(box(0, 0, 10, 10), 5.0)
        builder.clear_buildings()
        assert builder.building_count == 0

    def test_short_terrain_line_ignored(self, caplog):
        builder = SceneBuilder()
        builder.add_terrain_line([(0, 0, 0)])
        assert "at least 2 points" in caplog.text


class TestFinish:
    def test_empty_scene(self):
        scene = SceneBuilder().finish()
        assert isinstance(scene, Scene)
        assert scene.building_count == 0
        assert scene.mesh is None
        assert len(scene.walls) == 0
        assert scene.envelope is None

    def test_feeding_after_finish_is_ignored(self, caplog):
        builder = SceneBuilder()
        builder.finish()
        assert builder.is_finished
        with caplog.at_level(logging.WARNING):
            assert builder.add_building(box(0, 0, 1, 1), 5.0) is None
            builder.add_terrain_point((0, 0, 0))
            builder.add_source((1, 1, 1))
        assert builder.building_count == 0
        assert "feeding is finished" in caplog.text

    def test_second_finish_returns_same_scene(self, caplog):
        builder = SceneBuilder()
        scene = builder.finish()
        assert builder.finish() is scene
        assert "already finished" in caplog.text

    def test_triangulation_failure(self, caplog):
        builder = SceneBuilder(triangulator=FailingTriangulator())
        flat_terrain(builder)
        assert builder.finish() is None
        assert "Unable to triangulate" in caplog.text

    def test_too_few_terrain_points(self):
        builder = SceneBuilder()
        builder.add_terrain_point((0, 0, 0))
        builder.add_terrain_point((1, 0, 0))
        assert builder.finish() is None

    def test_building_walls_lifted_to_height(self):
        builder = SceneBuilder()
        builder.add_building(box(0, 0, 10, 10), height=5.0)
        scene = builder.finish()
        walls = walls_of(scene, IntersectionType.BUILDING)
        assert len(walls) == 4
        for wall in walls:
            assert wall.origin_id == 0
            assert wall.p0[2] == 5.0 and wall.p1[2] == 5.0

    def test_building_vertex_elevation_kept(self):
        builder = SceneBuilder()
        builder.add_building(
            Polygon([(0, 0, 2), (10, 0, 2), (10, 10, 3), (0, 10, 3)]), height=5.0,
        )
        scene = builder.finish()
        zs = {w.p0[2] for w in scene.walls}
        assert zs == {2.0, 3.0}

    def test_building_hole_walls(self):
        builder = SceneBuilder()
        courtyard = Polygon(
            [(0, 0), (10, 0), (10, 10), (0, 10)],
            [[(4, 4), (6, 4), (6, 6), (4, 6)]],
        )
        builder.add_building(courtyard, height=8.0)
        scene = builder.finish()
        assert len(walls_of(scene, IntersectionType.BUILDING)) == 8

    def test_ground_walls_have_no_elevation(self):
        builder = SceneBuilder()
        builder.add_ground_effect(box(0, 0, 10, 10), 0.5)
        builder.add_ground_effect(
            MultiPolygon([box(20, 0, 30, 10), box(40, 0, 50, 10)]), 1.0,
        )
        scene = builder.finish()
        walls = walls_of(scene, IntersectionType.GROUND_EFFECT)
        assert len(walls) == 12
        assert sorted({w.origin_id for w in walls}) == [0, 1]
        assert all(not w.has_z for w in walls)

    def test_terrain_boundary_walls(self):
        builder = SceneBuilder()
        flat_terrain(builder)
        scene = builder.finish()
        assert scene.mesh.num_triangles == 2
        assert len(walls_of(scene, IntersectionType.TERRAIN)) == 4

    def test_scene_collections_are_immutable(self):
        builder = SceneBuilder()
        builder.add_building(box(0, 0, 10, 10), 5.0)
        scene = builder.finish()
        assert isinstance(scene.buildings, tuple)
        assert isinstance(scene.walls, tuple)


class TestSceneQueries:
    def test_query_sources(self):
        builder = SceneBuilder()
        builder.add_source((0, 0, 1))
        builder.add_source((100, 100, 1))
        scene = builder.finish()
        assert scene.query_sources((-1, -1, 1, 1)) == [0]
        assert scene.query_sources((-1, -1, 101, 101)) == [0, 1]
        assert scene.query_sources((40, 40, 60, 60)) == []

    def test_query_walls(self):
        builder = SceneBuilder()
        builder.add_building(box(0, 0, 10, 10), 5.0)
        builder.add_building(box(100, 100, 110, 110), 5.0)
        scene = builder.finish()
        hits = scene.query_walls((-1, -1, 11, 11))
        assert len(hits) == 4
        assert all(scene.walls[i].origin_id == 0 for i in hits)

    def test_terrain_z_flat(self):
        builder = SceneBuilder()
        flat_terrain(builder, z=10.0)
        scene = builder.finish()
        assert scene.terrain_z(5, 5) == pytest.approx(10.0)

    def test_terrain_z_outside_mesh(self):
        builder = SceneBuilder()
        flat_terrain(builder, z=10.0)
        scene = builder.finish()
        assert scene.terrain_z(60, 5) == pytest.approx(10.0)

    def test_terrain_z_without_terrain(self):
        assert SceneBuilder().finish().terrain_z(3, 4) == 0.0

    def test_terrain_lookup_gives_up(self, caplog):
        builder = SceneBuilder()
        flat_terrain(builder)
        scene = builder.finish()
        assert math.isnan(scene.terrain_z(1e15, 0))
        assert "No terrain triangle" in caplog.text

    def test_building_at(self):
        builder = SceneBuilder()
        builder.add_building(box(0, 0, 10, 10), 5.0)
        builder.add_building(box(20, 0, 30, 10), 5.0)
        scene = builder.finish()
        assert scene.building_at(25, 5) == 1
        assert scene.building_at(15, 5) == NO_ID

    def test_ground_effect_at_last_wins(self):
        builder = SceneBuilder()
        builder.add_ground_effect(box(0, 0, 10, 10), 0.2)
        builder.add_ground_effect(box(5, 0, 15, 10), 0.8)
        scene = builder.finish()
        assert scene.ground_effect_at(7, 5) == 1
        assert scene.ground_effect_at(2, 5) == 0
        assert scene.ground_effect_at(50, 5) is None

    def test_vertices_and_triangles_without_terrain(self):
        scene = SceneBuilder().finish()
        assert scene.vertices.shape == (0, 3)
        assert scene.triangles.shape == (0, 3)
