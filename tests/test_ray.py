"""Unit tests for ray structures and shared vector helpers.

Tests cover:
- Ray evaluation and transforms
- Quadratic solving and root selection
- Reflection, refraction and Fresnel reflectance
- Cosine-weighted hemisphere sampling
"""

import math

import taichi as ti


class TestRayBasics:
    """Tests for ray evaluation and transforms."""

    def test_ray_at(self):
        """Test point evaluation along a ray."""
        from src.lumen.core.ray import Ray, ray_at, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 2.5)

        test_kernel()
        p = result[None]
        assert abs(p[0] - 1.0) < 1e-6
        assert abs(p[1] - 2.0) < 1e-6
        assert abs(p[2] - 0.5) < 1e-6

    def test_transform_ray_translates_origin_only(self):
        """Test that translation moves the origin but not the direction."""
        from src.lumen.core.ray import Ray, transform_ray, vec3
        from src.lumen.geometry.transform import Transform

        matrix = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        matrix[None] = Transform.translation(2.0, -1.0, 0.5).model_world.tolist()
        origin = ti.Vector.field(3, dtype=ti.f32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            moved = transform_ray(Ray(origin=vec3(0.0), direction=vec3(0.0, 1.0, 0.0)), matrix[None])
            origin[None] = moved.origin
            direction[None] = moved.direction

        test_kernel()
        o = origin[None]
        d = direction[None]
        assert abs(o[0] - 2.0) < 1e-6
        assert abs(o[1] + 1.0) < 1e-6
        assert abs(o[2] - 0.5) < 1e-6
        assert abs(d[1] - 1.0) < 1e-6

    def test_transform_ray_renormalizes_direction(self):
        """Test that a scaled direction comes back unit length."""
        from src.lumen.core.ray import Ray, transform_ray, vec3
        from src.lumen.geometry.transform import Transform

        matrix = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
        matrix[None] = Transform.scaling(3.0).model_world.tolist()
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            moved = transform_ray(Ray(origin=vec3(0.0), direction=vec3(1.0, 0.0, 0.0)), matrix[None])
            direction[None] = moved.direction

        test_kernel()
        d = direction[None]
        assert abs(d[0] - 1.0) < 1e-6
        assert abs(d[1]) < 1e-6
        assert abs(d[2]) < 1e-6


class TestQuadratic:
    """Tests for solve_quadratic and pick_root."""

    def test_two_roots_ordered(self):
        """Test (t - 1)(t - 3) = 0 gives roots 1 and 3 in order."""
        from src.lumen.core.ray import solve_quadratic

        out = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            found, t0, t1 = solve_quadratic(1.0, -4.0, 3.0)
            out[0] = found
            out[1] = t0
            out[2] = t1

        test_kernel()
        assert out[0] == 1
        assert abs(out[1] - 1.0) < 1e-5
        assert abs(out[2] - 3.0) < 1e-5

    def test_negative_discriminant(self):
        """Test that t^2 + 1 = 0 has no real root."""
        from src.lumen.core.ray import solve_quadratic

        out = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            found, t0, t1 = solve_quadratic(1.0, 0.0, 1.0)
            out[None] = found

        test_kernel()
        assert out[None] == 0

    def test_degenerate_leading_coefficient(self):
        """Test that a = 0 is reported as no solution."""
        from src.lumen.core.ray import solve_quadratic

        out = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            found, t0, t1 = solve_quadratic(0.0, 2.0, -1.0)
            out[None] = found

        test_kernel()
        assert out[None] == 0

    def test_pick_root_prefers_near_positive(self):
        """Test root selection for ahead, straddling and behind cases."""
        from src.lumen.core.ray import pick_root

        out = ti.field(dtype=ti.f32, shape=(3, 3))

        @ti.kernel
        def test_kernel():
            found, t, far = pick_root(1.0, 3.0)
            out[0, 0] = found
            out[0, 1] = t
            out[0, 2] = far
            found, t, far = pick_root(-1.0, 2.0)
            out[1, 0] = found
            out[1, 1] = t
            out[1, 2] = far
            found, t, far = pick_root(-3.0, -1.0)
            out[2, 0] = found
            out[2, 1] = t
            out[2, 2] = far

        test_kernel()
        assert out[0, 0] == 1 and abs(out[0, 1] - 1.0) < 1e-6 and out[0, 2] == 0
        assert out[1, 0] == 1 and abs(out[1, 1] - 2.0) < 1e-6 and out[1, 2] == 1
        assert out[2, 0] == 0


class TestScatteringHelpers:
    """Tests for reflect, refract and Fresnel reflectance."""

    def test_reflect_is_involution(self):
        """Test that reflecting twice returns the original direction."""
        from src.lumen.core.ray import reflect, vec3

        once = ti.Vector.field(3, dtype=ti.f32, shape=())
        twice = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            n = vec3(0.0, 1.0, 0.0)
            wo = ti.math.normalize(vec3(1.0, 1.0, 0.0))
            once[None] = reflect(wo, n)
            twice[None] = reflect(reflect(wo, n), n)

        test_kernel()
        r = once[None]
        inv_sqrt2 = 1.0 / math.sqrt(2.0)
        assert abs(r[0] + inv_sqrt2) < 1e-5
        assert abs(r[1] - inv_sqrt2) < 1e-5
        w = twice[None]
        assert abs(w[0] - inv_sqrt2) < 1e-5
        assert abs(w[1] - inv_sqrt2) < 1e-5

    def test_refract_normal_incidence_goes_straight(self):
        """Test that a head-on ray passes straight through."""
        from src.lumen.core.ray import refract, vec3

        tir = ti.field(dtype=ti.i32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            total, d = refract(vec3(0.0, 1.0, 0.0), vec3(0.0, 1.0, 0.0), 1.0, 1.5)
            tir[None] = total
            direction[None] = d

        test_kernel()
        d = direction[None]
        assert tir[None] == 0
        assert abs(d[1] + 1.0) < 1e-5

    def test_refract_follows_snell(self):
        """Test n1 sin(theta_i) = n2 sin(theta_t) at 45 degrees."""
        from src.lumen.core.ray import refract, vec3

        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            wo = ti.math.normalize(vec3(1.0, 1.0, 0.0))
            total, d = refract(wo, vec3(0.0, 1.0, 0.0), 1.0, 1.5)
            direction[None] = d

        test_kernel()
        d = direction[None]
        sin_t = abs(d[0])
        assert abs(math.sin(math.pi / 4.0) - 1.5 * sin_t) < 1e-4
        assert d[1] < 0.0

    def test_refract_total_internal_reflection(self):
        """Test that a grazing ray inside glass is reflected."""
        from src.lumen.core.ray import refract, vec3

        tir = ti.field(dtype=ti.i32, shape=())
        direction = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            # Direction toward the viewer lies inside (below the outward normal)
            wo = ti.math.normalize(vec3(1.0, -0.2, 0.0))
            total, d = refract(wo, vec3(0.0, 1.0, 0.0), 1.0, 1.5)
            tir[None] = total
            direction[None] = d

        test_kernel()
        d = direction[None]
        assert tir[None] == 1
        # Mirrored about the flipped normal: stays below the surface
        assert d[1] < 0.0
        assert d[0] < 0.0

    def test_fresnel_normal_incidence(self):
        """Test F = ((n1 - n2) / (n1 + n2))^2 head-on."""
        from src.lumen.core.ray import fresnel_dielectric

        out = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            out[0] = fresnel_dielectric(1.0, 1.0, 1.5)
            out[1] = fresnel_dielectric(-1.0, 1.0, 1.5)

        test_kernel()
        expected = ((1.0 - 1.5) / (1.0 + 1.5)) ** 2
        assert abs(out[0] - expected) < 1e-5
        assert abs(out[1] - expected) < 1e-5

    def test_fresnel_total_internal_reflection_is_one(self):
        """Test that leaving glass past the critical angle reflects fully."""
        from src.lumen.core.ray import fresnel_dielectric

        out = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            out[None] = fresnel_dielectric(-0.2, 1.0, 1.5)

        test_kernel()
        assert abs(out[None] - 1.0) < 1e-6

    def test_fresnel_in_unit_range(self):
        """Test that reflectance stays in [0, 1] across angles."""
        from src.lumen.core.ray import fresnel_dielectric

        n = 64
        out = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                cos_i = -1.0 + 2.0 * (ti.cast(i, ti.f32) + 0.5) / n
                out[i] = fresnel_dielectric(cos_i, 1.0, 1.5)

        test_kernel()
        values = out.to_numpy()
        assert (values >= 0.0).all()
        assert (values <= 1.0).all()


class TestHemisphereSampling:
    """Statistical tests for cosine-weighted sampling."""

    def test_samples_in_hemisphere_and_unit_length(self):
        """Test that every sample is a unit vector around the normal."""
        from src.lumen.core.ray import cosine_sample_hemisphere, vec3

        n = 4096
        samples = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                samples[i] = cosine_sample_hemisphere(vec3(0.0, 0.0, 1.0))

        test_kernel()
        values = samples.to_numpy()
        lengths = (values**2).sum(axis=1) ** 0.5
        assert abs(lengths - 1.0).max() < 1e-4
        assert (values[:, 2] >= -1e-6).all()

    def test_mean_cosine(self):
        """Test E[cos] = 2/3 for a cosine-weighted distribution."""
        from src.lumen.core.ray import cosine_sample_hemisphere, vec3

        n = 8192
        samples = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                samples[i] = cosine_sample_hemisphere(ti.math.normalize(vec3(1.0, 1.0, 0.0)))

        test_kernel()
        values = samples.to_numpy()
        normal = [1.0 / math.sqrt(2.0), 1.0 / math.sqrt(2.0), 0.0]
        cosines = values @ normal
        assert abs(cosines.mean() - 2.0 / 3.0) < 0.03
