#!/usr/bin/env python3
"""Write mesh snapshots to PLY files with Open3D."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import open3d as o3d

from .mesh_utils import triangulate_faces

logger = logging.getLogger(__name__)

ACCUMULATED_MESH_NAME = 'mesh_accumulated.ply'


def to_triangle_mesh(vertices: np.ndarray, faces: np.ndarray, colors: Optional[np.ndarray] = None) -> o3d.geometry.TriangleMesh:
    mesh = o3d.geometry.TriangleMesh()
    mesh.vertices = o3d.utility.Vector3dVector(np.asarray(vertices, dtype=np.float64).reshape(-1, 3))
    mesh.triangles = o3d.utility.Vector3iVector(triangulate_faces(faces))
    if colors is not None and len(colors) > 0:
        mesh.vertex_colors = o3d.utility.Vector3dVector(np.asarray(colors, dtype=np.float64).reshape(-1, 3))
    return mesh


class MeshLogger:
    """Logs either one PLY per frame or a single mesh accumulated over frames."""

    def __init__(self, output_dir):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._acc_vertices = np.zeros((0, 3), dtype=np.float64)
        self._acc_colors = np.zeros((0, 3), dtype=np.float64)
        self._acc_faces = np.zeros((0, 3), dtype=np.int32)

    def frame_path(self, timestamp) -> Path:
        return self.output_dir / f'mesh_{timestamp}.ply'

    @property
    def accumulated_path(self) -> Path:
        return self.output_dir / ACCUMULATED_MESH_NAME

    def log_mesh(self, vertices, colors, faces, timestamp, accumulated: bool = False) -> Optional[Path]:
        """Write the mesh and return the written path, or None for an empty mesh."""
        f = triangulate_faces(faces)
        if f.shape[0] == 0:
            logger.debug('Empty mesh at %s, nothing logged', timestamp)
            return None
        v = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        c = np.asarray(colors, dtype=np.float64).reshape(-1, 3) if colors is not None else np.full_like(v, 0.5)
        if accumulated:
            offset = self._acc_vertices.shape[0]
            self._acc_vertices = np.vstack([self._acc_vertices, v])
            self._acc_colors = np.vstack([self._acc_colors, c])
            self._acc_faces = np.vstack([self._acc_faces, f + offset])
            path = self.accumulated_path
            mesh = to_triangle_mesh(self._acc_vertices, self._acc_faces, self._acc_colors)
        else:
            path = self.frame_path(timestamp)
            mesh = to_triangle_mesh(v, f, c)
        if not o3d.io.write_triangle_mesh(str(path), mesh, write_ascii=False):
            logger.error('Failed to write mesh to %s', path)
            return None
        logger.info('Logged mesh with %d vertices to %s', len(mesh.vertices), path)
        return path


def read_ply_mesh(path) -> o3d.geometry.TriangleMesh:
    mesh = o3d.io.read_triangle_mesh(str(path))
    if len(mesh.triangles) == 0:
        logger.warning('PLY mesh %s has no triangles', path)
    return mesh
