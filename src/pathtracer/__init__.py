"""Monte Carlo path tracer for sphere scenes, built on Taichi.

The renderer traces camera rays through a list of analytic spheres, scatters
them off diffuse, metal, dielectric and normal-visualization materials up to a
bounce limit, averages many samples per pixel and writes gamma-corrected
8-bit PPM or PNG images.

Subpackages:
    core: Random streams, vector algebra, rays, the integrator and the
        progressive renderer
    geometry: Sphere primitive and ray-sphere intersection
    materials: Scattering models and their parameter registries
    scene: Sphere storage, closest-hit queries, scene manager and presets
    camera: Thin-lens camera with depth of field
    preview: Image quantization and PPM/PNG export

Taichi must be initialized with ``ti.init()`` before importing the
subpackages, since they allocate Taichi fields at import time.
"""

__version__ = "0.1.0"
