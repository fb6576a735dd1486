"""Image export utilities for rendered images.

Supported formats:
    - PNG (8-bit RGB via Pillow)
    - PPM (binary P6, written directly)

Linear float images are gamma-2 encoded on the way out (see core.color);
uint8 images are written unchanged.

Example:
    >>> from src.pathtracer.preview.export import save_png
    >>> from src.pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> save_png(renderer.get_image_uint8(), "output.png")
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.pathtracer.core.color import linear_to_rgb8


def image_to_uint8(image: npt.NDArray[np.generic]) -> npt.NDArray[np.uint8]:
    """Convert an image to display bytes.

    Args:
        image: Either a linear float image of shape (H, W, 3), which is
            clamped and gamma-2 encoded, or an already encoded uint8 image.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If the image does not have shape (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")
    if image.dtype == np.uint8:
        return image
    return linear_to_rgb8(image)


def save_png(image: npt.NDArray[np.generic], filepath: str | Path) -> None:
    """Save an image as an 8-bit RGB PNG file."""
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(filepath, format="PNG")


def save_ppm(image: npt.NDArray[np.generic], filepath: str | Path) -> None:
    """Save an image as a binary PPM (P6) file.

    Rows are written top to bottom, pixels left to right.
    """
    data = np.ascontiguousarray(image_to_uint8(image))
    height, width, _ = data.shape
    with open(filepath, "wb") as f:
        f.write(f"P6\n{width} {height}\n255\n".encode("ascii"))
        f.write(data.tobytes())


def save_image(image: npt.NDArray[np.generic], filepath: str | Path) -> None:
    """Save an image, choosing PPM for a .ppm suffix and PNG otherwise."""
    if Path(filepath).suffix.lower() == ".ppm":
        save_ppm(image, filepath)
    else:
        save_png(image, filepath)


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
