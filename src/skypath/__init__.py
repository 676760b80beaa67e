"""Taichi path tracer for sphere scenes under a procedural sky.

This package renders still images of analytic spheres using stochastic path
tracing, with support for:
- Thin-lens camera with depth of field
- Lambertian, metal (with fuzz) and dielectric materials
- Reproducible renders from a single seed
- PPM (P3) and PNG output

Subpackages:
    core: Ray utilities, random streams, integrator and render driver
    geometry: Sphere primitive and ray-sphere intersection
    materials: Scattering models and material registries
    scene: Scene management, intersection and built-in scenes
    camera: Thin-lens camera with ray generation
    output: Gamma correction and image writers

Subpackages create Taichi fields on import, so import them after ti.init().
"""

__version__ = "0.1.0"
