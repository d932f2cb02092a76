"""Ray data structure and vector utilities for the Whitted-style tracer.

This module provides the Ray dataclass together with the small set of vector
helpers the integrator needs: safe normalization, mirror reflection, Snell
refraction with a total-internal-reflection flag, self-intersection offsets
and an orthonormal basis builder. Everything is a Taichi function so it can
be called from inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Unit length
            wherever the ray is intersected or shaded.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def safe_normalize(v: vec3) -> vec3:
    """Normalize a vector, leaving zero-length input unchanged.

    Args:
        v: The input vector.

    Returns:
        v / |v|, or v itself when its length is zero.
    """
    len_sq = tm.dot(v, v)
    result = v
    if len_sq > 0.0:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        incident - 2 (incident . normal) normal.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, outward_normal: vec3, ior: ti.f32):
    """Refract an incident direction through an interface using Snell's law.

    The outward normal is the geometric normal pointing out of the denser
    medium. Whether the ray is entering or leaving is decided from the sign
    of incident . outward_normal: entering uses eta = 1 / ior, leaving swaps
    the indices and flips the normal.

    Args:
        incident: The incoming unit direction.
        outward_normal: Unit normal pointing out of the object.
        ior: Index of refraction of the object's medium (outside is 1.0).

    Returns:
        A tuple (direction, valid). valid is 0 on total internal reflection,
        in which case direction is the zero vector.
    """
    cos_i = tm.clamp(tm.dot(incident, outward_normal), -1.0, 1.0)
    eta_i = 1.0
    eta_t = ior
    n = outward_normal
    if cos_i > 0.0:
        # Leaving the medium
        eta_i = ior
        eta_t = 1.0
        n = -outward_normal
    else:
        cos_i = -cos_i

    eta = eta_i / eta_t
    k = 1.0 - eta * eta * (1.0 - cos_i * cos_i)

    direction = vec3(0.0, 0.0, 0.0)
    valid = 0
    if k >= 0.0:
        direction = safe_normalize(eta * incident + (eta * cos_i - ti.sqrt(k)) * n)
        valid = 1
    return direction, valid


@ti.func
def offset_origin(point: vec3, normal: vec3, direction: vec3, bias: ti.f32) -> vec3:
    """Offset a secondary ray origin off the surface it starts from.

    The point is pushed along the normal on the side the new ray travels
    toward, so reflected rays start above the surface and transmitted rays
    start below it.

    Args:
        point: The intersection point.
        normal: The geometric surface normal.
        direction: The direction of the new ray.
        bias: Offset distance.

    Returns:
        The offset origin point.
    """
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + bias * offset_dir


@ti.func
def build_onb(normal: vec3):
    """Build an orthonormal tangent frame around a unit normal.

    Returns:
        A tuple (tangent, bitangent) perpendicular to normal and each other.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = safe_normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent


@ti.func
def safe_pow(base: ti.f32, exponent: ti.f32) -> ti.f32:
    """Raise base to exponent, returning 0 for non-positive bases."""
    result = 0.0
    if base > 0.0:
        result = ti.pow(base, exponent)
    return result
