"""Tests for DXF scene ingestion."""
import math

import ezdxf
import pytest

from noise_pathfinder.config import IntersectionType
from noise_pathfinder.dxf.reader import load_modelspace, read_dxf_scene
from noise_pathfinder.scene.builder import SceneBuilder


def make_doc():
    doc = ezdxf.new("R2010")
    for name in ("BUILDINGS", "TERRAIN", "GROUND_SOFT", "GROUND_HARD"):
        doc.layers.add(name)
    msp = doc.modelspace()
    msp.add_lwpolyline(
        [(4, -2), (6, -2), (6, 2), (4, 2)], close=True,
        dxfattribs={"layer": "BUILDINGS", "thickness": 5.0},
    )
    for x, y in [(-10, -10), (20, -10), (20, 10), (-10, 10)]:
        msp.add_point((x, y, 1.0), dxfattribs={"layer": "TERRAIN"})
    msp.add_line((-10, 0, 1.0), (20, 0, 1.0), dxfattribs={"layer": "TERRAIN"})
    msp.add_lwpolyline(
        [(-5, -5), (2, -5), (2, 5), (-5, 5)], close=True,
        dxfattribs={"layer": "GROUND_SOFT"},
    )
    return doc


class TestLoadModelspace:
    def test_counts(self):
        counts = load_modelspace(make_doc().modelspace(), SceneBuilder())
        assert counts["buildings"] == 1
        assert counts["terrain_points"] == 4
        assert counts["terrain_lines"] == 1
        assert counts["ground_effects"] == 1

    def test_thickness_is_height(self):
        builder = SceneBuilder()
        load_modelspace(make_doc().modelspace(), builder)
        assert builder.buildings[0].height == 5.0

    def test_no_thickness_means_unknown_height(self):
        doc = ezdxf.new("R2010")
        doc.modelspace().add_lwpolyline(
            [(0, 0), (1, 0), (1, 1), (0, 1)], close=True,
            dxfattribs={"layer": "BUILDINGS"},
        )
        builder = SceneBuilder()
        load_modelspace(doc.modelspace(), builder)
        assert math.isnan(builder.buildings[0].height)

    def test_open_building_ignored(self, caplog):
        doc = ezdxf.new("R2010")
        doc.modelspace().add_lwpolyline(
            [(0, 0), (1, 0), (1, 1)], dxfattribs={"layer": "BUILDINGS"},
        )
        builder = SceneBuilder()
        counts = load_modelspace(doc.modelspace(), builder)
        assert counts["buildings"] == 0
        assert "Open polyline" in caplog.text

    def test_custom_ground_layers(self):
        builder = SceneBuilder()
        load_modelspace(make_doc().modelspace(), builder,
                        ground_layers={"ground_soft": 0.6})
        scene = builder.finish()
        assert scene.ground_effects[0].coefficient == 0.6

    def test_3d_polyline_breakline(self):
        doc = ezdxf.new("R2010")
        doc.modelspace().add_polyline3d(
            [(0, 0, 1), (5, 5, 2), (10, 0, 3)], dxfattribs={"layer": "TERRAIN"},
        )
        counts = load_modelspace(doc.modelspace(), SceneBuilder())
        assert counts["terrain_lines"] == 1

    def test_other_layers_ignored(self):
        doc = ezdxf.new("R2010")
        doc.modelspace().add_point((0, 0, 0))
        counts = load_modelspace(doc.modelspace(), SceneBuilder())
        assert sum(counts.values()) == 0


class TestReadFile:
    def test_read_and_profile(self, tmp_path):
        path = tmp_path / "scene.dxf"
        make_doc().saveas(path)
        builder = read_dxf_scene(path)
        scene = builder.finish()
        assert scene.building_count == 1
        assert scene.ground_effects[0].coefficient == 1.0

        profile = scene.get_profile((0, 1, 2), (10, 1, 2))
        kinds = [p.type for p in profile]
        assert kinds.count(IntersectionType.BUILDING) == 2
        assert kinds.count(IntersectionType.GROUND_EFFECT) == 1
        assert profile.source.ground_coef == 1.0

    def test_feeds_given_builder(self, tmp_path):
        path = tmp_path / "scene.dxf"
        make_doc().saveas(path)
        builder = SceneBuilder()
        assert read_dxf_scene(path, builder) is builder

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_dxf_scene(tmp_path / "missing.dxf")

    def test_not_a_dxf(self, tmp_path):
        path = tmp_path / "bad.dxf"
        path.write_text("this is not a drawing")
        with pytest.raises(ValueError):
            read_dxf_scene(path)
