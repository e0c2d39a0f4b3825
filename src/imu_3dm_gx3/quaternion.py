from __future__ import annotations

import math

import numpy as np


# Quaternion convention in this project:
# - ndarray shape (4,)
# - order: [w, x, y, z]
# - q and -q are the same rotation; q_from_rotation_matrix returns w >= 0
# - vector rotation: v_world = q ⊗ [0, v_body] ⊗ conj(q) == R @ v_body


def q_normalize(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=float).reshape(4)
    n = float(np.linalg.norm(q))
    if n <= 0.0:
        return np.array([1.0, 0.0, 0.0, 0.0], dtype=float)
    return q / n


def q_conj(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=float).reshape(4)
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=float)


def q_mul(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    q1 = np.asarray(q1, dtype=float).reshape(4)
    q2 = np.asarray(q2, dtype=float).reshape(4)
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
    ], dtype=float)


def q_rotate(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    q = q_normalize(q)
    v = np.asarray(v, dtype=float).reshape(3)
    qv = np.array([0.0, v[0], v[1], v[2]], dtype=float)
    out = q_mul(q_mul(q, qv), q_conj(q))
    return out[1:4]


def q_from_axis_angle(axis: np.ndarray, angle_rad: float) -> np.ndarray:
    axis = np.asarray(axis, dtype=float).reshape(3)
    n = float(np.linalg.norm(axis))
    if n <= 0.0:
        return np.array([1.0, 0.0, 0.0, 0.0], dtype=float)
    a = axis / n
    s = math.sin(angle_rad * 0.5)
    return q_normalize(np.array([math.cos(angle_rad * 0.5), a[0]*s, a[1]*s, a[2]*s], dtype=float))


def q_from_rotation_matrix(R: np.ndarray) -> np.ndarray:
    """
    Rotation matrix -> unit quaternion [w, x, y, z].

    Picks the largest of trace, R00, R11, R22 so the square root is taken of
    the biggest of 4w^2, 4x^2, 4y^2, 4z^2 and never of a near-zero term.
    R may be only approximately orthonormal (device output); the result is
    renormalized rather than R being re-orthonormalized.
    """
    m = np.asarray(R, dtype=float).reshape(3, 3)
    trace = float(m[0, 0] + m[1, 1] + m[2, 2])
    diag = (float(m[0, 0]), float(m[1, 1]), float(m[2, 2]))

    if trace >= max(diag):
        t = math.sqrt(max(0.0, 1.0 + trace))
        w = 0.5 * t
        s = 0.5 / t if t > 0.0 else 0.0
        q = np.array([
            w,
            (m[2, 1] - m[1, 2]) * s,
            (m[0, 2] - m[2, 0]) * s,
            (m[1, 0] - m[0, 1]) * s,
        ], dtype=float)
    else:
        i = int(np.argmax(diag))
        j = (i + 1) % 3
        k = (j + 1) % 3
        t = math.sqrt(max(0.0, m[i, i] - m[j, j] - m[k, k] + 1.0))
        s = 0.5 / t if t > 0.0 else 0.0
        q = np.zeros(4, dtype=float)
        q[0] = (m[k, j] - m[j, k]) * s
        q[1 + i] = 0.5 * t
        q[1 + j] = (m[j, i] + m[i, j]) * s
        q[1 + k] = (m[k, i] + m[i, k]) * s

    q = q_normalize(q)
    if q[0] < 0.0:
        q = -q
    return q


def q_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    w, x, y, z = q_normalize(q)
    return np.array([
        [1.0 - 2.0*(y*y + z*z), 2.0*(x*y - w*z), 2.0*(x*z + w*y)],
        [2.0*(x*y + w*z), 1.0 - 2.0*(x*x + z*z), 2.0*(y*z - w*x)],
        [2.0*(x*z - w*y), 2.0*(y*z + w*x), 1.0 - 2.0*(x*x + y*y)],
    ], dtype=float)
