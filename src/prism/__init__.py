"""Taichi-based Whitted-style ray tracer.

This package renders scenes of transformed spheres, planes, boxes and
polygon meshes with Phong shading, hard shadows from point lights, and
recursive mirror reflection. Textures may be constant colors, checker
patterns or images.

Subpackages:
    core: Rays, transforms, the shading integrator and the render loop
    geometry: Shape primitives and intersection algorithms
    materials: Phong materials and textures
    scene: Entities, lights, scene management and a demo scene
    camera: Pinhole camera with ray generation
    preview: Image export and preview utilities
"""

__version__ = "0.1.0"
