"""Transform utilities - homogeneous matrices, XYZ Euler angles, quaternions.

All matrices are 4x4 float64 in column-vector convention (``p' = M @ p``).
Euler angles use the intrinsic XYZ order of the rendering side, so a bone's
local matrix is ``T(offset) @ Rx @ Ry @ Rz @ S(scale)``. Quaternions are
stored (w, x, y, z).
"""

from functools import reduce
from typing import Sequence, Union
import numpy as np

EPSILON = 1e-8
TWO_PI = 2.0 * np.pi
GIMBAL_LIMIT = 0.9999999

Vector3 = Union[Sequence[float], np.ndarray]


def normalize(v: np.ndarray) -> np.ndarray:
    """Normalize vector, return zero vector if length is zero."""
    v = np.asarray(v, dtype=np.float64)
    length = np.linalg.norm(v)
    if length < EPSILON:
        return np.zeros_like(v)
    return v / length


def skew(v: Vector3) -> np.ndarray:
    """3x3 cross-product matrix, ``skew(a) @ b == cross(a, b)``."""
    x, y, z = v
    return np.array([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0]
    ], dtype=np.float64)


def translation_matrix(offset: Vector3) -> np.ndarray:
    m = np.eye(4, dtype=np.float64)
    m[:3, 3] = offset
    return m


def scale_matrix(scale: Vector3) -> np.ndarray:
    m = np.eye(4, dtype=np.float64)
    m[0, 0], m[1, 1], m[2, 2] = scale
    return m


def rot_x(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.0, c, -s, 0.0],
        [0.0, s, c, 0.0],
        [0.0, 0.0, 0.0, 1.0]
    ], dtype=np.float64)


def rot_y(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, 0.0, s, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [-s, 0.0, c, 0.0],
        [0.0, 0.0, 0.0, 1.0]
    ], dtype=np.float64)


def rot_z(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, -s, 0.0, 0.0],
        [s, c, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0]
    ], dtype=np.float64)


_AXIS_ROTATIONS = (rot_x, rot_y, rot_z)


def axis_rotation(axis: int, angle: float) -> np.ndarray:
    """Rotation about a principal axis (0=X, 1=Y, 2=Z)."""
    return _AXIS_ROTATIONS[axis](angle)


def axis_angle_matrix(axis: Vector3, angle: float) -> np.ndarray:
    """Rotation of ``angle`` radians about an arbitrary axis (Rodrigues)."""
    axis = normalize(axis)
    m = np.eye(4, dtype=np.float64)
    if not axis.any():
        return m
    k = skew(axis)
    m[:3, :3] += np.sin(angle) * k + (1.0 - np.cos(angle)) * (k @ k)
    return m


def rot_xyz(x: float, y: float, z: float) -> np.ndarray:
    """Euler XYZ rotation, ``Rx @ Ry @ Rz``."""
    return rot_x(x) @ rot_y(y) @ rot_z(z)


def compose(offset: Vector3, rotation: Vector3, scale: Vector3) -> np.ndarray:
    """Local transform ``T @ Rx @ Ry @ Rz @ S``."""
    return translation_matrix(offset) @ rot_xyz(*rotation) @ scale_matrix(scale)


def mul(*matrices: np.ndarray) -> np.ndarray:
    """Multiply matrices left to right."""
    return reduce(np.matmul, matrices, np.eye(4, dtype=np.float64))


def cancel_scaling(m: np.ndarray) -> np.ndarray:
    """Copy of ``m`` with unit-length basis columns."""
    m = np.array(m, dtype=np.float64)
    for i in range(3):
        length = np.linalg.norm(m[:3, i])
        if length > EPSILON:
            m[:3, i] /= length
    return m


def cancel_translate(m: np.ndarray) -> np.ndarray:
    """Copy of ``m`` without translation."""
    m = np.array(m, dtype=np.float64)
    m[:3, 3] = 0.0
    return m


def get_rotation_xyz(m: np.ndarray) -> np.ndarray:
    """
    Extract XYZ Euler angles from a pure rotation matrix (3x3 or 4x4).

    Strip scale first with cancel_scaling() when the matrix may carry it.
    In gimbal lock (|y| = pi/2) the Z angle is folded into X.
    """
    m13 = m[0, 2]
    y = np.arcsin(np.clip(m13, -1.0, 1.0))
    if abs(m13) < GIMBAL_LIMIT:
        x = np.arctan2(-m[1, 2], m[2, 2])
        z = np.arctan2(-m[0, 1], m[0, 0])
    else:
        x = np.arctan2(m[2, 1], m[1, 1])
        z = 0.0
    return np.array([x, y, z], dtype=np.float64)


def rotation_vector(r: np.ndarray) -> np.ndarray:
    """
    Minimal rotation vector (axis * angle, angle in [0, pi]) of a rotation.

    Accepts 3x3 or 4x4; only the upper-left block is read.
    """
    r = np.asarray(r, dtype=np.float64)[:3, :3]
    vee = np.array([r[2, 1] - r[1, 2], r[0, 2] - r[2, 0], r[1, 0] - r[0, 1]])
    cos_angle = np.clip((np.trace(r) - 1.0) * 0.5, -1.0, 1.0)
    angle = np.arccos(cos_angle)

    if angle < 1e-6:
        return 0.5 * vee

    if np.pi - angle < 1e-4:
        # sin(angle) ~ 0: recover the axis from the symmetric part
        sym = (r + np.eye(3)) * 0.5
        column = int(np.argmax(np.diag(sym)))
        axis = normalize(sym[:, column])
        if np.dot(axis, vee) < 0.0:
            axis = -axis
        return axis * angle

    return vee * (angle / (2.0 * np.sin(angle)))


def rot_wrap(angle):
    """Wrap an angle (or array of angles) into (-pi, pi]."""
    return angle - TWO_PI * np.ceil((angle - np.pi) / TWO_PI)


def matrix_to_quaternion(m: np.ndarray) -> np.ndarray:
    """Convert a rotation matrix (3x3 or 4x4) to quaternion."""
    r = np.asarray(m, dtype=np.float64)[:3, :3]
    trace = r[0, 0] + r[1, 1] + r[2, 2]

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (r[2, 1] - r[1, 2]) * s
        y = (r[0, 2] - r[2, 0]) * s
        z = (r[1, 0] - r[0, 1]) * s
    elif r[0, 0] > r[1, 1] and r[0, 0] > r[2, 2]:
        s = 2.0 * np.sqrt(1.0 + r[0, 0] - r[1, 1] - r[2, 2])
        w = (r[2, 1] - r[1, 2]) / s
        x = 0.25 * s
        y = (r[0, 1] + r[1, 0]) / s
        z = (r[0, 2] + r[2, 0]) / s
    elif r[1, 1] > r[2, 2]:
        s = 2.0 * np.sqrt(1.0 + r[1, 1] - r[0, 0] - r[2, 2])
        w = (r[0, 2] - r[2, 0]) / s
        x = (r[0, 1] + r[1, 0]) / s
        y = 0.25 * s
        z = (r[1, 2] + r[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + r[2, 2] - r[0, 0] - r[1, 1])
        w = (r[1, 0] - r[0, 1]) / s
        x = (r[0, 2] + r[2, 0]) / s
        y = (r[1, 2] + r[2, 1]) / s
        z = 0.25 * s

    return np.array([w, x, y, z], dtype=np.float64)


def quaternion_to_matrix(q: np.ndarray) -> np.ndarray:
    """Convert quaternion to a 4x4 rotation matrix."""
    w, x, y, z = normalize(q)
    m = np.eye(4, dtype=np.float64)
    m[:3, :3] = [
        [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
        [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
        [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)]
    ]
    return m


def euler_to_quaternion(rotation: Vector3) -> np.ndarray:
    return matrix_to_quaternion(rot_xyz(*rotation))


def quaternion_to_euler(q: np.ndarray) -> np.ndarray:
    """Convert quaternion to XYZ Euler angles in radians."""
    return get_rotation_xyz(quaternion_to_matrix(q))


def quaternion_slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    """Spherical interpolation along the shorter arc."""
    q0 = normalize(q0)
    q1 = normalize(q1)
    dot = float(np.dot(q0, q1))
    if dot < 0.0:
        q1 = -q1
        dot = -dot

    if dot > 0.9995:
        return normalize(q0 + t * (q1 - q0))

    theta = np.arccos(dot)
    sin_theta = np.sin(theta)
    return (np.sin((1.0 - t) * theta) * q0 + np.sin(t * theta) * q1) / sin_theta
