"""Ray, hit and interaction structures plus shared kernel math.

This module provides the Taichi structs passed between geometry, materials
and the integrator, and the vector helpers they share: 4x4 transforms of
points and directions, the numerically stable quadratic, reflection,
refraction, exact dielectric Fresnel reflectance and cosine-weighted
hemisphere sampling.

Directions follow a single convention: ``incoming`` and ``outgoing`` both
point away from the surface point, so ``incoming == -ray.direction`` at a hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> @ti.kernel
    ... def bounce() -> ti.f32:
    ...     n = vec3(0.0, 0.0, 1.0)
    ...     wo = tm.normalize(vec3(1.0, 0.0, 1.0))
    ...     return reflect(wo, n).x  # -0.7071
"""

import taichi as ti
import taichi.math as tm

# Type aliases using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3
mat3 = tm.mat3
mat4 = tm.mat4

# Hit distance reported when a ray misses
NO_HIT = tm.inf


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3, unit length).
    """

    origin: vec3
    direction: vec3


@ti.dataclass
class LocalHit:
    """Result of a primitive's object-space intersection test.

    Object-space distances are not comparable with world distances, so only
    the local point is reported; the caller recomputes world ``t``.

    Attributes:
        found: 1 if the primitive was hit, 0 otherwise.
        t: Object-space distance along the unit local direction.
        point: Object-space hit point.
        normal: Object-space unit normal (not flipped toward the ray).
        uv: Texture coordinates at the hit.
    """

    found: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    uv: vec2


@ti.dataclass
class Hit:
    """Nearest intersection of a ray with a scene.

    Attributes:
        t: World distance along the ray. NO_HIT (+inf) for a miss; otherwise
            finite and positive.
        point: World-space hit point.
        normal: World-space unit surface normal.
        incoming: Unit direction back toward the ray origin (-ray.direction).
        uv: Texture coordinates.
        geometry: Index of the intersected geometry, -1 for a miss.
    """

    t: ti.f32
    point: vec3
    normal: vec3
    incoming: vec3
    uv: vec2
    geometry: ti.i32


@ti.dataclass
class Interaction:
    """Sampled scattering state at one hit.

    Attributes:
        normal: World-space surface normal as reported by the geometry.
        incoming: Unit direction toward the previous path vertex.
        outgoing: Sampled unit direction for the next path segment.
        pdf: Probability density of the sampled direction (or branch).
        transfer: Throughput factor applied to light arriving along outgoing.
        emission: Radiance emitted toward incoming.
        uv: Texture coordinates.
    """

    normal: vec3
    incoming: vec3
    outgoing: vec3
    pdf: ti.f32
    transfer: vec3
    emission: vec3
    uv: vec2


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point ray.origin + t * ray.direction."""
    return ray.origin + t * ray.direction


@ti.func
def miss() -> Hit:
    """The no-intersection sentinel."""
    return Hit(
        t=NO_HIT,
        point=vec3(0.0),
        normal=vec3(0.0),
        incoming=vec3(0.0),
        uv=vec2(0.0),
        geometry=-1,
    )


@ti.func
def local_miss() -> LocalHit:
    """An empty object-space result."""
    return LocalHit(found=0, t=0.0, point=vec3(0.0), normal=vec3(0.0), uv=vec2(0.0))


# =============================================================================
# Transforms
# =============================================================================


@ti.func
def transform_point(m: mat4, p: vec3) -> vec3:
    """Apply an affine 4x4 transform to a point (w = 1)."""
    return vec3(
        m[0, 0] * p.x + m[0, 1] * p.y + m[0, 2] * p.z + m[0, 3],
        m[1, 0] * p.x + m[1, 1] * p.y + m[1, 2] * p.z + m[1, 3],
        m[2, 0] * p.x + m[2, 1] * p.y + m[2, 2] * p.z + m[2, 3],
    )


@ti.func
def transform_direction(m: mat4, d: vec3) -> vec3:
    """Apply the linear part of a 4x4 transform to a direction (w = 0)."""
    return vec3(
        m[0, 0] * d.x + m[0, 1] * d.y + m[0, 2] * d.z,
        m[1, 0] * d.x + m[1, 1] * d.y + m[1, 2] * d.z,
        m[2, 0] * d.x + m[2, 1] * d.y + m[2, 2] * d.z,
    )


@ti.func
def transform_ray(ray: Ray, m: mat4) -> Ray:
    """Transform a ray: origin affinely, direction linearly and renormalised."""
    return Ray(
        origin=transform_point(m, ray.origin),
        direction=tm.normalize(transform_direction(m, ray.direction)),
    )


# =============================================================================
# Root finding
# =============================================================================


@ti.func
def solve_quadratic(a: ti.f32, b: ti.f32, c: ti.f32):
    """Solve a*t^2 + b*t + c = 0 with the cancellation-free formula.

    Uses q = -0.5 * (b + sign(b) * sqrt(b^2 - 4ac)), t0 = q / a, t1 = c / q,
    swapped so that t0 <= t1.

    Args:
        a: Quadratic coefficient.
        b: Linear coefficient.
        c: Constant term.

    Returns:
        Tuple (found, t0, t1). found is 0 when there is no real root or the
        equation is degenerate (a or q vanish).
    """
    found = 0
    t0 = 0.0
    t1 = 0.0
    discriminant = b * b - 4.0 * a * c
    if discriminant >= 0.0 and ti.abs(a) > 1e-12:
        root = ti.sqrt(discriminant)
        q = -0.5 * (b + root)
        if b < 0.0:
            q = -0.5 * (b - root)
        if q != 0.0:
            found = 1
            t0 = q / a
            t1 = c / q
            if t0 > t1:
                temp = t0
                t0 = t1
                t1 = temp
    return found, t0, t1


@ti.func
def pick_root(t0: ti.f32, t1: ti.f32):
    """Prefer the smaller positive root, else the larger one.

    Returns:
        Tuple (found, t, used_far). found is 0 when both roots are <= 0.
    """
    found = 0
    used_far = 0
    t = t0
    if t <= 0.0:
        t = t1
        used_far = 1
    if t > 0.0:
        found = 1
    return found, t, used_far


@ti.func
def angle_fraction(y: ti.f32, x: ti.f32) -> ti.f32:
    """Map atan2(y, x) from [-pi, pi] onto [0, 1]."""
    return (ti.atan2(y, x) + tm.pi) / (2.0 * tm.pi)


# =============================================================================
# Scattering helpers
# =============================================================================


@ti.func
def face_toward(n: vec3, w: vec3) -> vec3:
    """Return n flipped, if needed, into the hemisphere that contains w."""
    result = n
    if tm.dot(n, w) < 0.0:
        result = -n
    return result


@ti.func
def reflect(wo: vec3, n: vec3) -> vec3:
    """Mirror wo about n. Both point away from the surface.

    Applying it twice gives back wo.
    """
    return -wo + 2.0 * tm.dot(wo, n) * n


@ti.func
def refract(wo: vec3, n: vec3, eta_external: ti.f32, eta_internal: ti.f32):
    """Refract wo through an interface with the given indices.

    n is the geometric outward normal; wo may lie on either side of it.
    When wo is on the inside the indices are swapped.

    Returns:
        Tuple (total_internal, direction). On total internal reflection the
        direction is the mirror reflection instead.
    """
    normal = n
    eta = eta_external / eta_internal
    cos_i = tm.dot(normal, wo)
    if cos_i < 0.0:
        normal = -normal
        cos_i = -cos_i
        eta = eta_internal / eta_external

    sin2_i = ti.max(0.0, 1.0 - cos_i * cos_i)
    sin2_t = eta * eta * sin2_i

    total_internal = 0
    direction = reflect(wo, normal)
    if sin2_t >= 1.0:
        total_internal = 1
    else:
        cos_t = ti.sqrt(1.0 - sin2_t)
        direction = tm.normalize(-wo * eta + normal * (eta * cos_i - cos_t))
    return total_internal, direction


@ti.func
def fresnel_dielectric(cos_i: ti.f32, eta_external: ti.f32, eta_internal: ti.f32) -> ti.f32:
    """Exact Fresnel reflectance of a dielectric for unpolarised light.

    A negative cosine means the ray leaves the medium, so the indices swap.
    Total internal reflection and a vanishing denominator both yield 1.

    Args:
        cos_i: Cosine between the direction toward the viewer and the
            outward normal.
        eta_external: Index of refraction outside the surface.
        eta_internal: Index of refraction inside the surface.

    Returns:
        Reflectance in [0, 1].
    """
    eta_i = eta_external
    eta_t = eta_internal
    cos_theta_i = cos_i
    if cos_theta_i < 0.0:
        eta_i = eta_internal
        eta_t = eta_external
        cos_theta_i = -cos_theta_i
    cos_theta_i = ti.min(cos_theta_i, 1.0)

    sin_theta_i = ti.sqrt(ti.max(0.0, 1.0 - cos_theta_i * cos_theta_i))
    sin_theta_t = eta_i / eta_t * sin_theta_i

    reflectance = 1.0
    if sin_theta_t < 1.0:
        cos_theta_t = ti.sqrt(ti.max(0.0, 1.0 - sin_theta_t * sin_theta_t))
        parl_den = eta_t * cos_theta_i + eta_i * cos_theta_t
        perp_den = eta_i * cos_theta_i + eta_t * cos_theta_t
        if parl_den > 0.0 and perp_den > 0.0:
            r_parl = (eta_t * cos_theta_i - eta_i * cos_theta_t) / parl_den
            r_perp = (eta_i * cos_theta_i - eta_t * cos_theta_t) / perp_den
            reflectance = 0.5 * (r_parl * r_parl + r_perp * r_perp)
    return reflectance


@ti.func
def concentric_sample_disk() -> vec2:
    """Map a uniform square sample onto the unit disk (Shirley-Chiu)."""
    offset = vec2(ti.random(ti.f32) * 2.0 - 1.0, ti.random(ti.f32) * 2.0 - 1.0)
    result = vec2(0.0)
    if offset.x != 0.0 or offset.y != 0.0:
        r = 0.0
        theta = 0.0
        if ti.abs(offset.x) > ti.abs(offset.y):
            r = offset.x
            theta = (tm.pi / 4.0) * (offset.y / offset.x)
        else:
            r = offset.y
            theta = (tm.pi / 2.0) - (tm.pi / 4.0) * (offset.x / offset.y)
        result = r * vec2(ti.cos(theta), ti.sin(theta))
    return result


@ti.func
def cosine_sample_hemisphere(n: vec3) -> vec3:
    """Sample a unit direction around n with density cos(theta) / pi."""
    helper = vec3(0.0, 1.0, 0.0)
    if ti.abs(n.x) < 0.5:
        helper = vec3(1.0, 0.0, 0.0)
    b1 = tm.normalize(tm.cross(n, helper))
    b2 = tm.cross(b1, n)

    d = concentric_sample_disk()
    z = ti.sqrt(ti.max(0.0, 1.0 - d.x * d.x - d.y * d.y))
    return tm.normalize(b1 * d.x + b2 * d.y + n * z)
