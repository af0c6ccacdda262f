"""Unit tests for object-space primitive intersection.

Tests cover:
- Unit sphere: outside hit, miss, inside start, texture coordinates
- Plane: side test, rectangle and annulus extents
- Cylinder: wall hit, height clipping, far-root retry, axis-parallel rays
- Triangles: watertight test, barycentrics, mesh validation
"""

import math

import numpy as np
import pytest
import taichi as ti


def _local_hit_fields():
    return (
        ti.field(dtype=ti.i32, shape=()),
        ti.field(dtype=ti.f32, shape=()),
        ti.Vector.field(3, dtype=ti.f32, shape=()),
        ti.Vector.field(3, dtype=ti.f32, shape=()),
        ti.Vector.field(2, dtype=ti.f32, shape=()),
    )


class TestSphere:
    """Tests for intersect_sphere_local."""

    def test_hit_from_outside(self):
        """Test a head-on ray hitting the near side at t = 4."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.sphere import intersect_sphere_local

        found, t, point, normal, uv = _local_hit_fields()

        @ti.kernel
        def test_kernel():
            hit = intersect_sphere_local(Ray(origin=vec3(0.0, 0.0, 5.0), direction=vec3(0.0, 0.0, -1.0)))
            found[None] = hit.found
            t[None] = hit.t
            point[None] = hit.point
            normal[None] = hit.normal
            uv[None] = hit.uv

        test_kernel()
        assert found[None] == 1
        assert abs(t[None] - 4.0) < 1e-5
        assert abs(point[None][2] - 1.0) < 1e-5
        assert abs(normal[None][2] - 1.0) < 1e-5
        # n = (0, 0, 1): atan2(0, 1) = 0 maps to u = 0.5, equator maps to v = 0.5
        assert abs(uv[None][0] - 0.5) < 1e-5
        assert abs(uv[None][1] - 0.5) < 1e-5

    def test_miss(self):
        """Test a ray passing beside the sphere."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.sphere import intersect_sphere_local

        found = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            hit = intersect_sphere_local(Ray(origin=vec3(5.0, 0.0, 5.0), direction=vec3(0.0, 0.0, -1.0)))
            found[None] = hit.found

        test_kernel()
        assert found[None] == 0

    def test_sphere_behind_ray(self):
        """Test that a sphere entirely behind the origin is not hit."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.sphere import intersect_sphere_local

        found = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            hit = intersect_sphere_local(Ray(origin=vec3(0.0, 0.0, 5.0), direction=vec3(0.0, 0.0, 1.0)))
            found[None] = hit.found

        test_kernel()
        assert found[None] == 0

    def test_inside_reports_far_root(self):
        """Test that a ray from the centre hits the shell at t = 1."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.sphere import intersect_sphere_local

        found, t, point, normal, uv = _local_hit_fields()

        @ti.kernel
        def test_kernel():
            hit = intersect_sphere_local(Ray(origin=vec3(0.0), direction=vec3(0.0, 1.0, 0.0)))
            found[None] = hit.found
            t[None] = hit.t
            normal[None] = hit.normal
            uv[None] = hit.uv

        test_kernel()
        assert found[None] == 1
        assert abs(t[None] - 1.0) < 1e-5
        assert abs(normal[None][1] - 1.0) < 1e-5
        assert abs(uv[None][1] - 1.0) < 1e-5


class TestPlane:
    """Tests for intersect_plane_local."""

    def _trace(self, origin, direction, kind, extent):
        from src.lumen.core.ray import Ray, vec2, vec3
        from src.lumen.geometry.plane import intersect_plane_local

        found, t, point, normal, uv = _local_hit_fields()

        @ti.kernel
        def test_kernel(o: vec3, d: vec3, k: ti.i32, e: vec2):
            hit = intersect_plane_local(Ray(origin=o, direction=ti.math.normalize(d)), k, e)
            found[None] = hit.found
            t[None] = hit.t
            point[None] = hit.point
            normal[None] = hit.normal
            uv[None] = hit.uv

        test_kernel(vec3(*origin), vec3(*direction), int(kind), vec2(*extent))
        return found[None], t[None], point[None], normal[None], uv[None]

    def test_rect_hit_from_above(self):
        from src.lumen.geometry.plane import ExtentType

        found, t, point, normal, uv = self._trace((0.25, 0.0, 2.0), (0.0, 0.0, -1.0), ExtentType.RECT, (1.0, 1.0))
        assert found == 1
        assert abs(t - 2.0) < 1e-5
        assert abs(normal[2] - 1.0) < 1e-6
        assert abs(uv[0] - 0.75) < 1e-5
        assert abs(uv[1] - 0.5) < 1e-5

    def test_rect_hit_from_below(self):
        """Test that rays approaching from -z also hit."""
        from src.lumen.geometry.plane import ExtentType

        found, t, _, _, _ = self._trace((0.0, 0.0, -3.0), (0.0, 0.0, 1.0), ExtentType.RECT, (1.0, 1.0))
        assert found == 1
        assert abs(t - 3.0) < 1e-5

    def test_moving_away_misses(self):
        from src.lumen.geometry.plane import ExtentType

        found, _, _, _, _ = self._trace((0.0, 0.0, 2.0), (0.0, 0.0, 1.0), ExtentType.RECT, (1.0, 1.0))
        assert found == 0

    def test_parallel_misses(self):
        from src.lumen.geometry.plane import ExtentType

        found, _, _, _, _ = self._trace((0.0, 0.0, 1.0), (1.0, 0.0, 0.0), ExtentType.RECT, (1.0, 1.0))
        assert found == 0

    def test_outside_rect_misses(self):
        from src.lumen.geometry.plane import ExtentType

        found, _, _, _, _ = self._trace((0.6, 0.0, 1.0), (0.0, 0.0, -1.0), ExtentType.RECT, (1.0, 1.0))
        assert found == 0

    def test_annulus_ring(self):
        """Test the inner hole, the ring and the outside of an annulus."""
        from src.lumen.geometry.plane import ExtentType

        hole, _, _, _, _ = self._trace((0.2, 0.0, 1.0), (0.0, 0.0, -1.0), ExtentType.ANNULUS, (0.5, 1.0))
        ring, _, _, _, uv = self._trace((0.75, 0.0, 1.0), (0.0, 0.0, -1.0), ExtentType.ANNULUS, (0.5, 1.0))
        outside, _, _, _, _ = self._trace((1.5, 0.0, 1.0), (0.0, 0.0, -1.0), ExtentType.ANNULUS, (0.5, 1.0))
        assert hole == 0
        assert ring == 1
        assert outside == 0
        # Halfway across the ring
        assert abs(uv[1] - 0.5) < 1e-5

    def test_extent_validation(self):
        from src.lumen.geometry.plane import AnnulusExtent, RectExtent

        with pytest.raises(ValueError):
            RectExtent(0.0, 1.0)
        with pytest.raises(ValueError):
            AnnulusExtent(inner=1.0, outer=0.5)


class TestCylinder:
    """Tests for intersect_cylinder_local."""

    def _trace(self, origin, direction):
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.cylinder import intersect_cylinder_local

        found, t, point, normal, uv = _local_hit_fields()

        @ti.kernel
        def test_kernel(o: vec3, d: vec3):
            hit = intersect_cylinder_local(Ray(origin=o, direction=ti.math.normalize(d)))
            found[None] = hit.found
            t[None] = hit.t
            point[None] = hit.point
            normal[None] = hit.normal
            uv[None] = hit.uv

        test_kernel(vec3(*origin), vec3(*direction))
        return found[None], t[None], point[None], normal[None], uv[None]

    def test_wall_hit(self):
        found, t, point, normal, uv = self._trace((5.0, 0.0, 0.0), (-1.0, 0.0, 0.0))
        assert found == 1
        assert abs(t - 4.0) < 1e-5
        assert abs(normal[0] - 1.0) < 1e-5
        assert abs(normal[2]) < 1e-6
        assert abs(uv[1] - 0.5) < 1e-5

    def test_clipped_above(self):
        found, _, _, _, _ = self._trace((5.0, 0.0, 0.8), (-1.0, 0.0, 0.0))
        assert found == 0

    def test_far_root_retry(self):
        """Test a ray entering through the open top and hitting the inside wall."""
        # Near root at x = 1 is at z = 0.94 (clipped); far root at x = -1 is at z = 0.14
        found, _, point, _, _ = self._trace((1.4, 0.0, 1.1), (-1.0, 0.0, -0.4))
        assert found == 1
        assert abs(point[0] + 1.0) < 1e-4
        assert abs(point[2] - 0.14) < 1e-4

    def test_axis_parallel_misses(self):
        found, _, _, _, _ = self._trace((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert found == 0


class TestTriangle:
    """Tests for intersect_triangle."""

    def test_hit_barycentrics_sum_to_one(self):
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.mesh import intersect_triangle

        out = ti.field(dtype=ti.f32, shape=5)

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(0.2, 0.3, 1.0), direction=vec3(0.0, 0.0, -1.0))
            found, t, b0, b1, b2 = intersect_triangle(
                ray, vec3(0.0, 0.0, 0.0), vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0)
            )
            out[0] = found
            out[1] = t
            out[2] = b0
            out[3] = b1
            out[4] = b2

        test_kernel()
        assert out[0] == 1
        assert abs(out[1] - 1.0) < 1e-5
        assert abs(out[2] + out[3] + out[4] - 1.0) < 1e-5
        # Point (0.2, 0.3) = 0.5 * p0 + 0.2 * p1 + 0.3 * p2
        assert abs(out[2] - 0.5) < 1e-5
        assert abs(out[3] - 0.2) < 1e-5
        assert abs(out[4] - 0.3) < 1e-5

    def test_miss_outside_and_behind(self):
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.mesh import intersect_triangle

        out = ti.field(dtype=ti.i32, shape=2)

        @ti.kernel
        def test_kernel():
            p0 = vec3(0.0, 0.0, 0.0)
            p1 = vec3(1.0, 0.0, 0.0)
            p2 = vec3(0.0, 1.0, 0.0)
            outside = Ray(origin=vec3(0.8, 0.8, 1.0), direction=vec3(0.0, 0.0, -1.0))
            behind = Ray(origin=vec3(0.2, 0.2, 1.0), direction=vec3(0.0, 0.0, 1.0))
            found, t, b0, b1, b2 = intersect_triangle(outside, p0, p1, p2)
            out[0] = found
            found, t, b0, b1, b2 = intersect_triangle(behind, p0, p1, p2)
            out[1] = found

        test_kernel()
        assert out[0] == 0
        assert out[1] == 0

    def test_shared_edge_is_watertight(self):
        """Test that rays across a shared diagonal hit at least one triangle."""
        from src.lumen.core.ray import Ray, vec3
        from src.lumen.geometry.mesh import intersect_triangle

        n = 257
        hits = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                s = ti.cast(i, ti.f32) / (n - 1)
                ray = Ray(origin=vec3(s, s, 1.0), direction=vec3(0.0, 0.0, -1.0))
                a, t0, u0, v0, w0 = intersect_triangle(
                    ray, vec3(0.0, 0.0, 0.0), vec3(1.0, 0.0, 0.0), vec3(1.0, 1.0, 0.0)
                )
                b, t1, u1, v1, w1 = intersect_triangle(
                    ray, vec3(0.0, 0.0, 0.0), vec3(1.0, 1.0, 0.0), vec3(0.0, 1.0, 0.0)
                )
                hits[i] = a + b

        test_kernel()
        assert (hits.to_numpy() >= 1).all()


class TestTriangleMesh:
    """Tests for TriangleMesh construction."""

    def test_flat_normals_when_missing(self):
        from src.lumen.geometry.mesh import TriangleMesh
        from src.lumen.materials.diffuse import Diffuse

        mesh = TriangleMesh(
            material=Diffuse(),
            positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]],
            faces=[[0, 1, 2]],
        )
        points, normals, uvs = mesh.corner_arrays()
        assert points.shape == (1, 3, 3)
        assert np.allclose(normals, [0.0, 0.0, 1.0])
        assert np.allclose(uvs, 0.0)

    def test_cube(self):
        from src.lumen.geometry.mesh import TriangleMesh
        from src.lumen.materials.diffuse import Diffuse

        cube = TriangleMesh.cube(Diffuse())
        points, normals, uvs = cube.corner_arrays()
        assert cube.triangle_count == 12
        assert np.allclose(np.abs(points), 0.5)
        assert np.allclose(np.linalg.norm(normals, axis=2), 1.0)

    def test_index_out_of_range(self):
        from src.lumen.geometry.mesh import TriangleMesh
        from src.lumen.materials.diffuse import Diffuse

        with pytest.raises(ValueError):
            TriangleMesh(material=Diffuse(), positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]], faces=[[0, 1, 3]])

    def test_bad_position_shape(self):
        from src.lumen.geometry.mesh import TriangleMesh
        from src.lumen.materials.diffuse import Diffuse

        with pytest.raises(ValueError):
            TriangleMesh(material=Diffuse(), positions=[[0, 0], [1, 0]], faces=[[0, 1, 1]])

    def test_angle_fraction_range(self):
        """Test that angle_fraction spans [0, 1]."""
        from src.lumen.core.ray import angle_fraction

        out = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            out[0] = angle_fraction(0.0, 1.0)
            out[1] = angle_fraction(1.0, 0.0)
            out[2] = angle_fraction(-1.0, 0.0)

        test_kernel()
        assert abs(out[0] - 0.5) < 1e-6
        assert abs(out[1] - 0.75) < 1e-6
        assert abs(out[2] - 0.25) < 1e-6
        assert not math.isnan(out[0])
