"""Geometry module for shape primitives.

Components:
    sphere: Analytic sphere primitive with ray-sphere intersection

Intersection routines are Taichi functions (@ti.func) that are inlined into
the rendering kernels. Spheres are the only primitive.
"""

from .sphere import HitRecord, Sphere, hit_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
]
