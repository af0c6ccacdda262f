"""Tests for the in-process renderer, the room scene and the demo CLI.

Tests cover:
- Runtime seeding and repeated initialisation
- Time-remaining estimates
- Sequential rendering and progress reporting
- Room scene layout
- Command-line parsing and time formatting
"""

import importlib
import math

import numpy as np
import pytest
import taichi as ti
import taichi.math as tm


class TestRuntime:
    """Tests for per-process runtime setup."""

    def test_seed_is_31_bit(self):
        from src.lumen.core.runtime import make_seed

        for _ in range(8):
            assert 0 <= make_seed() <= 0x7FFFFFFF

    def test_second_init_is_noop(self):
        """Test that the session's runtime is kept."""
        from src.lumen.core.runtime import init_taichi

        assert init_taichi(seed=7) == -1

    @pytest.mark.parametrize(
        "module",
        [
            "src.lumen.geometry.sphere",
            "src.lumen.geometry.plane",
            "src.lumen.geometry.cylinder",
            "src.lumen.geometry.mesh",
            "src.lumen.materials.mirror",
            "src.lumen.materials.dielectric",
            "src.lumen.materials.diffuse",
            "src.lumen.materials.texture",
            "src.lumen.materials.registry",
            "src.lumen.scene.intersection",
            "src.lumen.core.integrator",
            "src.lumen.camera.viewport",
        ],
    )
    def test_kernel_modules_import(self, module):
        """Test that modules declaring Taichi functions and kernels load."""
        assert importlib.import_module(module) is not None


class TestEstimateRemaining:
    """Tests for estimate_remaining."""

    def test_unknown_before_progress(self):
        from src.lumen.core.render import estimate_remaining

        assert math.isinf(estimate_remaining(0.0, 3.0))

    def test_linear_extrapolation(self):
        from src.lumen.core.render import estimate_remaining

        assert abs(estimate_remaining(0.25, 10.0) - 30.0) < 1e-9
        assert estimate_remaining(1.0, 10.0) == 0.0


class TestRender:
    """Tests for the sequential render entry point."""

    def test_render_fills_film_and_reports_rows(self):
        from src.lumen.camera.pinhole import PinholeCamera
        from src.lumen.core.render import render
        from src.lumen.geometry.sphere import Sphere
        from src.lumen.geometry.transform import Transform
        from src.lumen.materials.diffuse import Diffuse
        from src.lumen.scene.manager import Scene

        scene = Scene([Sphere(Diffuse.emitter((0.2, 0.4, 0.6)), Transform.scaling(10.0))])
        camera = PinholeCamera(lookfrom=(0.0, 0.0, 0.0), lookat=(1.0, 0.0, 0.0), width=5, height=4)

        updates = []
        film = render(scene, camera, 2, callback=lambda fraction, eta: updates.append((fraction, eta)))

        assert film.data.shape == (4, 5, 3)
        assert np.allclose(film.data, [0.2, 0.4, 0.6], atol=1e-5)
        assert [f for f, _ in updates] == [0.25, 0.5, 0.75, 1.0]
        assert updates[-1][1] == 0.0

    def test_render_uses_settings(self):
        """Test that the ambient radiance reaches escaping paths."""
        from src.lumen.camera.pinhole import PinholeCamera
        from src.lumen.core.render import render
        from src.lumen.core.settings import RenderSettings
        from src.lumen.scene.manager import Scene

        camera = PinholeCamera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0), width=3, height=2)
        film = render(Scene(), camera, 1, settings=RenderSettings(ambient=(0.1, 0.1, 0.1)))
        assert np.allclose(film.data, 0.1, atol=1e-6)


class TestRoomScene:
    """Tests for the room demo scene."""

    def test_layout(self):
        from src.lumen.materials.diffuse import Diffuse
        from src.lumen.materials.mirror import Mirror
        from src.lumen.scene.room import RoomParams, create_room_scene

        scene, camera = create_room_scene(RoomParams(width=40, height=30, light_intensity=3.0))
        assert len(scene) == 7
        assert isinstance(scene[0].material, Mirror)
        assert isinstance(scene[1].material, Diffuse)
        assert scene[2].material.emission == (3.0, 3.0, 3.0)
        assert not any(g.material.is_emitter for i, g in enumerate(scene) if i != 2 and isinstance(g.material, Diffuse))
        assert (camera.width, camera.height) == (40, 30)
        assert camera.lookfrom == (3.0, 1.0, 0.0)

    def test_wall_distances(self):
        """Test the distances from the camera to the ceiling, floor and back wall."""
        from src.lumen.scene.intersection import intersect_ray, load_scene
        from src.lumen.scene.room import create_room_scene

        scene, camera = create_room_scene()
        load_scene(scene)

        up = intersect_ray(camera.lookfrom, (0.0, 1.0, 0.0))
        assert up.geometry == 2
        assert abs(up.t - 9.0) < 1e-4

        down = intersect_ray(camera.lookfrom, (0.0, -1.0, 0.0))
        assert down.geometry == 3
        assert abs(down.t - 4.0) < 1e-4

        back = intersect_ray(camera.lookfrom, (-1.0, 0.0, 0.0))
        assert back.geometry == 6
        assert abs(back.t - 13.0) < 1e-4

    def test_floor_bounces_never_hit_floor(self):
        """Test that continuation rays offset off the floor do not hit it again."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.scene.intersection import intersect_scene, load_scene
        from src.lumen.scene.room import create_room_scene

        scene, camera = create_room_scene()
        load_scene(scene)

        n = 4096
        first = ti.field(dtype=ti.i32, shape=n)
        second = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def bounce_off_floor():
            for i in range(n):
                origin = vec3(3.0, 1.0, 0.0)
                target = vec3(ti.random() * 16.0 - 8.0, -3.0, ti.random() * 16.0 - 8.0)
                hit = intersect_scene(Ray(origin=origin, direction=tm.normalize(target - origin)))
                first[i] = hit.geometry
                second[i] = -2
                if hit.geometry == 3:
                    d = tm.normalize(vec3(ti.random() - 0.5, ti.random() + 1e-3, ti.random() - 0.5))
                    bounce = intersect_scene(Ray(origin=hit.point + d * 1e-3, direction=d))
                    second[i] = bounce.geometry

        bounce_off_floor()
        on_floor = first.to_numpy() == 3
        assert on_floor.sum() > n // 2
        assert (second.to_numpy()[on_floor] != 3).all()

    def test_small_render_is_finite(self):
        from src.lumen.core.render import render
        from src.lumen.scene.room import RoomParams, create_room_scene

        scene, camera = create_room_scene(RoomParams(width=8, height=6))
        film = render(scene, camera, 2)
        assert np.all(np.isfinite(film.data))
        assert np.all(film.data >= 0.0)
        assert film.data.max() > 0.0


class TestRenderSceneCli:
    """Tests for the demo command line."""

    def test_defaults(self):
        from examples.render_scene import parse_args

        args = parse_args([])
        assert (args.width, args.height, args.samples, args.output) == (400, 300, 32, "image.png")
        assert args.workers is None
        assert not args.sequential
        assert args.gamma == 1.0
        assert args.tone_map == "none"

    def test_positional_and_options(self):
        from examples.render_scene import parse_args

        args = parse_args(["64", "48", "4", "out.png", "--workers", "3", "--sequential", "--tone-map", "reinhard"])
        assert (args.width, args.height, args.samples, args.output) == (64, 48, 4, "out.png")
        assert args.workers == 3
        assert args.sequential
        assert args.tone_map == "reinhard"

    def test_format_hms(self):
        from examples.render_scene import format_hms

        assert format_hms(0.0) == "0:00:00"
        assert format_hms(3725.9) == "1:02:05"
        assert format_hms(float("inf")) == "--:--:--"
        assert format_hms(float("nan")) == "--:--:--"

    def test_sequential_render_to_file(self, tmp_path):
        from PIL import Image as PILImage

        from examples.render_scene import main

        output = tmp_path / "room.png"
        assert main(["8", "6", "1", str(output), "--sequential", "--quiet"]) == 0
        with PILImage.open(output) as img:
            assert img.size == (8, 6)
