#!/usr/bin/env python3
"""Helpers for building scene geometry as plain arrays."""

from typing import Optional, Tuple

import numpy as np


def faces_from_polygon_list(polygons) -> np.ndarray:
    """Parse the flat polygon encoding [n, i0, .., i(n-1), n, ...] into (M,n).

    All polygons must share the same size. An empty input yields a (0,3) array.
    """
    flat = np.asarray(polygons, dtype=np.int64).reshape(-1)
    if flat.size == 0:
        return np.zeros((0, 3), dtype=np.int32)
    n = int(flat[0])
    if n <= 0 or flat.size % (n + 1) != 0:
        raise ValueError(f'Malformed polygon list of length {flat.size} for polygon size {n}')
    rows = flat.reshape(-1, n + 1)
    if not np.all(rows[:, 0] == n):
        raise ValueError('Mixed polygon sizes are not supported')
    return rows[:, 1:].astype(np.int32)


def triangulate_faces(faces) -> np.ndarray:
    """Fan-triangulate (M,k) convex polygons into (M*(k-2),3) triangles."""
    f = np.asarray(faces, dtype=np.int32)
    if f.size == 0:
        return np.zeros((0, 3), dtype=np.int32)
    k = f.shape[1]
    if k == 3:
        return f
    if k < 3:
        raise ValueError(f'Polygons need at least 3 vertices, got {k}')
    tris = [np.stack([f[:, 0], f[:, j], f[:, j + 1]], axis=1) for j in range(1, k - 1)]
    # Keep triangles of the same polygon adjacent.
    return np.stack(tris, axis=1).reshape(-1, 3)


def polyline_segments(n_points: int) -> np.ndarray:
    """Return (n-1,2) index pairs joining consecutive points."""
    if n_points < 2:
        return np.zeros((0, 2), dtype=np.int32)
    i = np.arange(n_points - 1, dtype=np.int32)
    return np.stack([i, i + 1], axis=1)


def unit_normal(normal, tol: float = 1e-9) -> Optional[np.ndarray]:
    n = np.asarray(normal, dtype=np.float64).reshape(3)
    norm = float(np.linalg.norm(n))
    if norm < tol:
        return None
    return n / norm


def closest_point_on_plane(normal, distance: float, point, tol: float = 1e-9) -> Optional[np.ndarray]:
    """Project point onto the plane n.x = d.

    Returns None when the normal is too short to define a plane.
    """
    n = unit_normal(normal, tol)
    if n is None:
        return None
    # Keep the plane fixed when rescaling a non-unit normal.
    d = float(distance) / float(np.linalg.norm(np.asarray(normal, dtype=np.float64)))
    p = np.asarray(point, dtype=np.float64).reshape(3)
    return p - (float(n @ p) - d) * n


def _plane_basis(n: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # Any vector not parallel to n seeds the in-plane basis.
    seed = np.array([1.0, 0.0, 0.0]) if abs(n[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    u = np.cross(n, seed)
    u /= np.linalg.norm(u)
    v = np.cross(n, u)
    return u, v


def build_plane_as_arrays(normal, distance: float, size: float = 1.0, tol: float = 1e-9) -> tuple:
    """Return (vertices 4x3, triangles 2x3, center 3) for a square plane patch.

    The patch is centered at the point of the plane closest to the origin.
    A degenerate normal yields empty arrays and a None center.
    """
    n = unit_normal(normal, tol)
    if n is None:
        return np.zeros((0, 3)), np.zeros((0, 3), dtype=np.int32), None
    d = float(distance) / float(np.linalg.norm(np.asarray(normal, dtype=np.float64)))
    center = n * d
    u, v = _plane_basis(n)
    h = float(size) / 2.0
    verts = np.array([
        center - h * u - h * v,
        center + h * u - h * v,
        center + h * u + h * v,
        center - h * u + h * v,
    ], dtype=np.float64)
    tris = np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int32)
    return verts, tris, center


def image_size_from_intrinsics(K) -> Tuple[int, int]:
    """Guess (width, height) from the principal point when no image is known."""
    K = np.asarray(K, dtype=np.float64).reshape(3, 3)
    return int(round(2.0 * K[0, 2])), int(round(2.0 * K[1, 2]))


def build_frustum_as_arrays(K, width: int, height: int, scale: float = 1.0) -> tuple:
    """Return (points 5x3, lines 8x2) of a camera frustum in the camera frame.

    Point 0 is the optical center, points 1..4 are the near plane corners at
    depth `scale` in image order: top-left, top-right, bottom-right, bottom-left.
    """
    K = np.asarray(K, dtype=np.float64).reshape(3, 3)
    fx, fy, cx, cy = K[0, 0], K[1, 1], K[0, 2], K[1, 2]
    s = float(scale)
    pixels = np.array([[0.0, 0.0], [width, 0.0], [width, height], [0.0, height]])
    corners = np.empty((4, 3), dtype=np.float64)
    corners[:, 0] = (pixels[:, 0] - cx) / fx * s
    corners[:, 1] = (pixels[:, 1] - cy) / fy * s
    corners[:, 2] = s
    points = np.vstack([np.zeros((1, 3)), corners])
    lines = np.array([
        [0, 1], [0, 2], [0, 3], [0, 4],  # apex to corners
        [1, 2], [2, 3], [3, 4], [4, 1],  # near plane
    ], dtype=np.int32)
    return points, lines


def build_axes_as_arrays(scale: float = 1.0) -> tuple:
    """Return (points, lines, colors) of an RGB frame of reference."""
    s = float(scale)
    points = np.array([[0, 0, 0], [s, 0, 0], [0, s, 0], [0, 0, s]], dtype=np.float64)
    lines = np.array([[0, 1], [0, 2], [0, 3]], dtype=np.int32)
    colors = np.eye(3, dtype=np.float64)
    return points, lines, colors


def texture_coordinates(pixels, width: int, height: int) -> np.ndarray:
    """Normalize (N,2) image coordinates to [0,1] texture coordinates."""
    px = np.asarray(pixels, dtype=np.float64).reshape(-1, 2)
    return np.clip(px / np.array([float(width), float(height)]), 0.0, 1.0)


def convex_hull_2d(points) -> np.ndarray:
    """Indices of the 2D convex hull of (N,2) points, counter-clockwise.

    Monotone chain; collinear points on the hull are dropped.
    """
    p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    order = np.lexsort((p[:, 1], p[:, 0]))

    def cross(o, a, b):
        return (p[a, 0] - p[o, 0]) * (p[b, 1] - p[o, 1]) - (p[a, 1] - p[o, 1]) * (p[b, 0] - p[o, 0])

    def half(indices):
        chain = []
        for i in indices:
            while len(chain) >= 2 and cross(chain[-2], chain[-1], i) <= 0:
                chain.pop()
            chain.append(int(i))
        return chain

    if order.size < 3:
        return order.astype(np.int64)
    lower = half(order)
    upper = half(order[::-1])
    return np.asarray(lower[:-1] + upper[:-1], dtype=np.int64)


def mean_face_normal(vertices, faces) -> Optional[np.ndarray]:
    """Area-weighted unit normal of the given faces, None if degenerate."""
    v = np.asarray(vertices, dtype=np.float64)
    f = triangulate_faces(faces)
    if f.shape[0] == 0:
        return None
    n = np.cross(v[f[:, 1]] - v[f[:, 0]], v[f[:, 2]] - v[f[:, 0]]).sum(axis=0)
    return unit_normal(n)


def build_convex_hull_as_arrays(points, direction, tol: float = 1e-9) -> tuple:
    """Return (points Kx3, lines Kx2) of the hull of points projected along direction.

    The points are flattened onto the plane through their centroid orthogonal
    to direction, and the hull is drawn as a closed loop in that plane. Fewer
    than three non-collinear points, or a degenerate direction, give empty
    arrays.
    """
    empty = np.zeros((0, 3)), np.zeros((0, 2), dtype=np.int32)
    n = unit_normal(direction, tol)
    p = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if n is None or p.shape[0] < 3:
        return empty
    center = p.mean(axis=0)
    u, v = _plane_basis(n)
    uv = np.stack([(p - center) @ u, (p - center) @ v], axis=1)
    hull = convex_hull_2d(uv)
    if hull.size < 3:
        return empty
    loop = center + uv[hull, 0:1] * u + uv[hull, 1:2] * v
    i = np.arange(hull.size, dtype=np.int32)
    lines = np.stack([i, (i + 1) % hull.size], axis=1)
    return loop, lines
