"""Linear colour to display colour conversion.

Colours are linear ``vec3`` values while the renderer accumulates them. The
conversion to display bytes happens exactly once, when the averaged pixel
colour leaves the pipeline:

    1. clamp each component to [0, 1]
    2. gamma-2 encode (square root)
    3. scale to the 8-bit range

Both a Taichi version (per pixel, inside kernels) and a NumPy version (whole
images, on the host) are provided; they produce identical bytes.
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import vec3

# Scale factor that maps 1.0 to 255 while keeping 0.999... below 256
BYTE_SCALE = 255.999


@ti.func
def gamma_encode(color: vec3) -> vec3:
    """Clamp a linear colour to [0, 1] and apply gamma-2 encoding."""
    return tm.sqrt(tm.clamp(color, 0.0, 1.0))


@ti.func
def color_to_rgb8(color: vec3) -> ti.math.ivec3:
    """Convert a linear colour to an (r, g, b) byte triple.

    Args:
        color: Linear colour, components nominally in [0, 1].

    Returns:
        Integer vector with components in [0, 255].
    """
    encoded = gamma_encode(color)
    return ti.cast(BYTE_SCALE * encoded, ti.i32)


def linear_to_rgb8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to gamma-encoded 8-bit bytes.

    Args:
        image: Linear image array of shape (H, W, 3).

    Returns:
        Array of shape (H, W, 3) with dtype uint8.
    """
    image = np.nan_to_num(np.asarray(image, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    encoded = np.sqrt(np.clip(image, 0.0, 1.0))
    return (BYTE_SCALE * encoded).astype(np.uint8)
