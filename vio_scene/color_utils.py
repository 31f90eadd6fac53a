#!/usr/bin/env python3
"""Color utilities: cluster palette, mesh coloring by clusters and by height."""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from .datamodel import TriangleCluster

logger = logging.getLogger(__name__)

NEUTRAL_GRAY = (0.5, 0.5, 0.5)

# Cyclic palette for cluster ids. Never contains NEUTRAL_GRAY.
CLUSTER_PALETTE = (
    (1.0, 0.0, 0.0),   # red
    (0.0, 1.0, 0.0),   # green
    (0.0, 0.0, 1.0),   # blue
    (1.0, 1.0, 0.0),   # yellow
    (0.0, 1.0, 1.0),   # cyan
    (1.0, 0.0, 1.0),   # magenta
    (1.0, 0.5, 0.0),   # orange
    (0.5, 0.0, 1.0),   # purple
    (0.0, 0.5, 0.25),  # dark green
    (0.6, 0.3, 0.1),   # brown
)


def color_by_id(cluster_id: int) -> Tuple[float, float, float]:
    """Deterministic color for a cluster id."""
    return CLUSTER_PALETTE[abs(int(cluster_id)) % len(CLUSTER_PALETTE)]


def validate_clusters(clusters: Sequence[TriangleCluster], n_faces: int) -> bool:
    """Return True if every face index of every cluster is in [0, n_faces)."""
    for cluster in clusters:
        ids = np.asarray(cluster.face_ids, dtype=np.int64)
        if ids.size == 0:
            continue
        bad = ids[(ids < 0) | (ids >= n_faces)]
        if bad.size:
            logger.warning('Cluster %s references face %d outside [0, %d)',
                           cluster.cluster_id, int(bad[0]), n_faces)
            return False
    return True


def color_faces_by_clusters(n_faces: int, clusters: Sequence[TriangleCluster]) -> np.ndarray:
    """Return (M,3) face colors. Faces in no cluster are gray; last cluster wins."""
    face_colors = np.tile(np.asarray(NEUTRAL_GRAY, dtype=np.float64), (n_faces, 1))
    for cluster in clusters or []:
        ids = np.asarray(cluster.face_ids, dtype=np.int64)
        if ids.size == 0:
            continue
        face_colors[ids] = color_by_id(cluster.cluster_id)
    return face_colors


def vertex_colors_from_faces(n_vertices: int, faces: np.ndarray, face_colors: np.ndarray) -> np.ndarray:
    """Give each vertex the color of the last face (in face order) that uses it.

    A vertex shared by faces of different clusters therefore takes whichever
    owning face comes last. Unreferenced vertices stay gray.
    """
    vertex_colors = np.tile(np.asarray(NEUTRAL_GRAY, dtype=np.float64), (n_vertices, 1))
    f = np.asarray(faces, dtype=np.int64)
    if f.size == 0:
        return vertex_colors
    k = f.shape[1]
    flat = f.reshape(-1)
    owner = np.repeat(np.arange(f.shape[0]), k)
    # First hit in the reversed list is the last reference in face order.
    uniq, first_rev = np.unique(flat[::-1], return_index=True)
    last_pos = flat.size - 1 - first_rev
    vertex_colors[uniq] = face_colors[owner[last_pos]]
    return vertex_colors


def color_mesh_by_clusters(
    vertices: np.ndarray,
    faces: np.ndarray,
    clusters: Sequence[TriangleCluster] = (),
    out: Optional[np.ndarray] = None,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Color a mesh by triangle clusters.

    Returns (vertex_colors Nx3, face_colors Mx3), or None when there are no
    faces, in which case `out` is left untouched and nothing should be drawn.
    If `out` is given it receives the vertex colors in place.
    Face indices are trusted: run validate_clusters() upstream.
    """
    f = np.asarray(faces) if faces is not None else np.zeros((0, 3))
    if f.size == 0:
        return None
    n_vertices = int(np.asarray(vertices).shape[0])
    face_colors = color_faces_by_clusters(f.shape[0], clusters)
    vertex_colors = vertex_colors_from_faces(n_vertices, f, face_colors)
    if out is not None:
        out[...] = vertex_colors
        vertex_colors = out
    return vertex_colors, face_colors


def _percentile_range(z: np.ndarray, lo: float = 2.0, hi: float = 98.0) -> Tuple[float, float]:
    if z.size == 0:
        return 0.0, 1.0
    zl = float(np.percentile(z, lo))
    zh = float(np.percentile(z, hi))
    if zh <= zl:
        zh = zl + 1.0
    return zl, zh


def _hsv_to_rgb(h: float, s: float, v: float) -> Tuple[float, float, float]:
    """Convert HSV (0-1) to RGB (0-1)."""
    if s <= 1e-12:
        return v, v, v
    h = (h % 1.0) * 6.0
    i = int(np.floor(h))
    f = h - i
    p = v * (1.0 - s)
    q = v * (1.0 - s * f)
    t = v * (1.0 - s * (1.0 - f))
    if i == 0:
        r, g, b = v, t, p
    elif i == 1:
        r, g, b = q, v, p
    elif i == 2:
        r, g, b = p, v, t
    elif i == 3:
        r, g, b = p, q, v
    elif i == 4:
        r, g, b = t, p, v
    else:
        r, g, b = v, p, q
    return float(r), float(g), float(b)


def color_vertices_by_height(
    vertices: np.ndarray,
    bands: int = 64,
    sat: float = 0.95,
    val: float = 1.0,
) -> np.ndarray:
    """Rainbow colors by vertex height (Z), for meshes drawn without clusters.

    - Hue traverses 0..0.92 across the 2nd..98th percentile of height
    - Heights are quantized to `bands` steps
    """
    v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    if v.shape[0] == 0:
        return np.zeros((0, 3), dtype=np.float64)
    z = v[:, 2]
    zl, zh = _percentile_range(z)
    t = np.clip((z - zl) / (zh - zl), 0.0, 1.0)
    b = max(2, min(int(bands), 256))
    q = np.floor(t * b).astype(int)
    q[q == b] = b - 1
    hues = np.linspace(0.0, 0.92, b, endpoint=True)
    table = np.array([_hsv_to_rgb(h, sat, val) for h in hues], dtype=np.float64)
    return table[q]
