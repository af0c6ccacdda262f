"""Taichi-based offline Monte Carlo path tracer.

This package renders scenes of transformed primitives (spheres, planes,
cylinders, triangle meshes) with mirror, dielectric, diffuse and mixed
materials, either sequentially or across a pool of worker processes that
each render a horizontal band of the image.

Subpackages:
    core: Taichi runtime setup, ray structures, the path integrator and
        the sequential render entry point
    geometry: Transforms and primitive shapes with local-space intersection
    materials: Material and texture descriptions plus kernel-side sampling
    scene: Scene composition, field upload and nearest-hit queries
    camera: Pinhole camera and the Film accumulator
    parallel: Worker pool and region orchestrator
    preview: Tone mapping and PNG export

Modules that hold Taichi fields (scene.intersection, materials.registry,
camera.viewport, core.integrator) must be imported after the runtime has
been initialised with core.runtime.init_taichi().
"""

__version__ = "0.1.0"
