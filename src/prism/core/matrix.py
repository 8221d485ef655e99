"""4x4 affine transforms for entity placement.

Matrices are built and inverted on the host as row-major ``numpy`` arrays of
shape (4, 4) and float64 precision, then uploaded to Taichi matrix fields for
use in kernels. Composition is ordinary matrix multiplication and reads
right-to-left: ``a @ b`` applies ``b`` first.

Inversion uses cofactor expansion and reports a singular matrix by returning
``None`` rather than raising, so callers decide whether singularity is fatal.

Example:
    >>> from prism.core.matrix import Axis, invert, rotation, scaling
    >>> m = rotation(Axis.Y, 45.0) @ scaling((2.0, 1.0, 1.0))
    >>> m_inv = invert(m)
"""

import math
from enum import IntEnum
from functools import reduce

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prism.core.ray import point3, vec3

Matrix4 = npt.NDArray[np.float64]

# Tolerance used by intersection code for parallel / degenerate tests
EPSILON = 1e-6


class Axis(IntEnum):
    """Coordinate axis for rotations."""

    X = 0
    Y = 1
    Z = 2


# =============================================================================
# Host-side construction
# =============================================================================


def identity() -> Matrix4:
    """Return the 4x4 identity matrix."""
    return np.identity(4, dtype=np.float64)


def translation(offset: tuple[float, float, float]) -> Matrix4:
    """Translation by ``offset``; affects points, leaves vectors unchanged."""
    m = identity()
    m[0, 3], m[1, 3], m[2, 3] = offset
    return m


def scaling(factors: tuple[float, float, float]) -> Matrix4:
    """Non-uniform scale along X, Y and Z."""
    m = identity()
    m[0, 0], m[1, 1], m[2, 2] = factors
    return m


def rotation(axis: Axis, degrees: float) -> Matrix4:
    """Rotation by signed ``degrees`` about a coordinate axis.

    Positive angles rotate counter-clockwise when looking from the positive
    end of the axis toward the origin.
    """
    theta = math.radians(degrees)
    c = math.cos(theta)
    s = math.sin(theta)
    m = identity()
    axis = Axis(axis)
    if axis == Axis.X:
        m[1, 1], m[1, 2] = c, -s
        m[2, 1], m[2, 2] = s, c
    elif axis == Axis.Y:
        m[0, 0], m[0, 2] = c, s
        m[2, 0], m[2, 2] = -s, c
    else:
        m[0, 0], m[0, 1] = c, -s
        m[1, 0], m[1, 1] = s, c
    return m


def compose(*matrices: Matrix4) -> Matrix4:
    """Multiply matrices left to right; the rightmost is applied first."""
    return reduce(np.matmul, matrices, identity())


def _det3(m: npt.NDArray[np.float64]) -> float:
    return float(
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )


def _minor(m: Matrix4, row: int, col: int) -> npt.NDArray[np.float64]:
    return np.delete(np.delete(m, row, axis=0), col, axis=1)


def determinant(m: Matrix4) -> float:
    """Determinant by cofactor expansion along the first row."""
    return sum(
        (-1.0) ** col * m[0, col] * _det3(_minor(m, 0, col)) for col in range(4)
    )


def invert(m: Matrix4) -> Matrix4 | None:
    """Invert a 4x4 matrix via its adjugate.

    Args:
        m: Matrix to invert.

    Returns:
        The inverse, or None when the determinant is exactly zero.
    """
    m = np.asarray(m, dtype=np.float64)
    det = determinant(m)
    if det == 0.0:
        return None

    cofactors = np.empty((4, 4), dtype=np.float64)
    for row in range(4):
        for col in range(4):
            cofactors[row, col] = (-1.0) ** (row + col) * _det3(_minor(m, row, col))
    return cofactors.T / det


def apply_to_point(m: Matrix4, p: tuple[float, float, float]) -> tuple[float, float, float]:
    """Transform a position (homogeneous w=1)."""
    r = m @ np.array([p[0], p[1], p[2], 1.0])
    return (float(r[0]), float(r[1]), float(r[2]))


def apply_to_vector(m: Matrix4, v: tuple[float, float, float]) -> tuple[float, float, float]:
    """Transform a direction (homogeneous w=0)."""
    r = m @ np.array([v[0], v[1], v[2], 0.0])
    return (float(r[0]), float(r[1]), float(r[2]))


def to_taichi(m: Matrix4) -> ti.Matrix:
    """Convert a host matrix to a Taichi 4x4 matrix for field assignment."""
    return ti.Matrix(np.asarray(m, dtype=np.float32).tolist())


# =============================================================================
# Kernel-side application
# =============================================================================


@ti.func
def transform_point(m: tm.mat4, p: point3) -> point3:
    """Apply an affine transform to a position (w=1)."""
    r = m @ tm.vec4(p.x, p.y, p.z, 1.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_vector(m: tm.mat4, v: vec3) -> vec3:
    """Apply an affine transform to a direction (w=0)."""
    r = m @ tm.vec4(v.x, v.y, v.z, 0.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_normal(normal_matrix: tm.mat4, n: vec3) -> vec3:
    """Lift a surface normal with the inverse-transpose matrix and renormalize."""
    return tm.normalize(transform_vector(normal_matrix, n))
