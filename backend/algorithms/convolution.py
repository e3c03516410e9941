"""
convolution.py — 3x3 image filters and 2D pooling for the CNN widgets.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict
import numpy as np

from .common import InvalidInput, parse_enum


class ConvKernel(Enum):
    EDGE = "edge"
    SHARPEN = "sharpen"
    BOX_BLUR = "box_blur"
    EMBOSS = "emboss"
    IDENTITY = "identity"

    @property
    def weights(self) -> np.ndarray:
        return np.array(_KERNELS[self], dtype=float)


_KERNELS = {
    ConvKernel.EDGE: [[0, -1, 0], [-1, 4, -1], [0, -1, 0]],
    ConvKernel.SHARPEN: [[0, -1, 0], [-1, 5, -1], [0, -1, 0]],
    ConvKernel.BOX_BLUR: [[1 / 9] * 3] * 3,
    ConvKernel.EMBOSS: [[-2, -1, 0], [-1, 1, 1], [0, 1, 2]],
    ConvKernel.IDENTITY: [[0, 0, 0], [0, 1, 0], [0, 0, 0]],
}


def _kernel_weights(kernel: Any) -> np.ndarray:
    if isinstance(kernel, (ConvKernel, str)):
        return parse_enum(ConvKernel, kernel).weights
    w = np.asarray(kernel, dtype=float)
    if w.shape != (3, 3):
        raise InvalidInput(f"kernel must be 3x3, got shape {w.shape}")
    return w


def _as_image(image) -> np.ndarray:
    img = np.asarray(image, dtype=float)
    if img.ndim not in (2, 3) or img.shape[0] < 3 or img.shape[1] < 3:
        raise InvalidInput(f"image must be at least 3x3 (HxW or HxWxC), got shape {img.shape}")
    return img


def convolve(image, kernel: Any = "edge") -> np.ndarray:
    """
    Apply a 3x3 kernel to every interior pixel. Border pixels stay 0 and
    results are rounded and clamped to [0, 255], like an 8-bit canvas.
    Colour images (HxWxC) are filtered channel by channel.
    """
    img = _as_image(image)
    w = _kernel_weights(kernel)
    h, wd = img.shape[:2]
    out = np.zeros_like(img)
    acc = np.zeros((h - 2, wd - 2) + img.shape[2:])
    for ky in range(3):
        for kx in range(3):
            acc += w[ky, kx] * img[ky:ky + h - 2, kx:kx + wd - 2]
    out[1:-1, 1:-1] = acc
    return np.clip(np.rint(out), 0, 255).astype(int)


def receptive_field(image, x: int, y: int, kernel: Any = "edge") -> Dict[str, Any]:
    """The 3x3 neighbourhood and weighted sum behind output pixel (x, y).

    Colour images report the first channel.
    """
    img = _as_image(image)
    if img.ndim == 3:
        img = img[:, :, 0]
    h, wd = img.shape
    if not (1 <= x < wd - 1 and 1 <= y < h - 1):
        raise InvalidInput(f"({x}, {y}) is on the border or outside a {wd}x{h} image")
    w = _kernel_weights(kernel)
    patch = img[y - 1:y + 2, x - 1:x + 2]
    terms = [(float(patch[i, j]), float(w[i, j]))
             for i in range(3) for j in range(3) if w[i, j] != 0]
    total = float(np.sum(patch * w))
    return {"patch": patch.tolist(), "weights": w.tolist(), "terms": terms,
            "total": total, "output": int(min(255, max(0, round(total))))}


class PoolMode(Enum):
    MAX = "max"
    MEAN = "mean"


def pool(grid, mode: Any = "max", size: int = 2, stride: int = 2) -> np.ndarray:
    """Slide a size x size window with the given stride; mean is rounded half up."""
    g = np.asarray(grid, dtype=float)
    if g.ndim != 2:
        raise InvalidInput(f"grid must be 2D, got shape {g.shape}")
    mode = parse_enum(PoolMode, mode)
    size, stride = int(size), int(stride)
    if size < 1 or stride < 1 or g.shape[0] < size or g.shape[1] < size:
        raise InvalidInput(f"cannot pool a {g.shape} grid with size={size}, stride={stride}")
    out_h = (g.shape[0] - size) // stride + 1
    out_w = (g.shape[1] - size) // stride + 1
    out = np.empty((out_h, out_w))
    for oy in range(out_h):
        for ox in range(out_w):
            window = g[oy * stride:oy * stride + size, ox * stride:ox * stride + size]
            if mode is PoolMode.MAX:
                out[oy, ox] = window.max()
            else:
                out[oy, ox] = np.floor(window.mean() + 0.5)
    return out
