#!/usr/bin/env python3
"""Per-frame scene composition.

The composer is the only place deciding whether a scene object is created,
updated in place or removed. It owns the registry, the trajectory and the plane
constraint index, and hands a SceneUpdate to whatever backend draws it.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Set

import numpy as np

from .color_utils import color_by_id, color_mesh_by_clusters, color_vertices_by_height, validate_clusters
from .config import VisualizerConfig
from .datamodel import FrameInput, LandmarkType, SceneUpdate, TriangleCluster, Widget, WidgetKind
from .mesh_utils import (
    build_axes_as_arrays, build_convex_hull_as_arrays, mean_face_normal, texture_coordinates, triangulate_faces,
)
from .mode_utils import should_draw_mesh, should_draw_scene
from .plane_constraints import PlaneConstraintIndex
from .scene_registry import SceneRegistry
from .trajectory import CURRENT_FRUSTUM_ID, TrajectoryTracker, is_frustum_id

logger = logging.getLogger(__name__)

MESH_ID = 'Mesh'
POINT_CLOUD_ID = 'Point Cloud'
WORLD_FRAME_ID = 'World Frame'

LANDMARK_COLORS = {
    LandmarkType.SMART: (1.0, 1.0, 1.0),
    LandmarkType.PROJECTION: (0.0, 1.0, 0.0),
}
CLOUD_COLOR = (1.0, 1.0, 1.0)

CONVEX_HULL_PREFIX = 'Convex Hull '


def convex_hull_id(cluster_id: int) -> str:
    return f'{CONVEX_HULL_PREFIX}{cluster_id}'


def is_convex_hull_id(widget_id: str) -> bool:
    return widget_id.startswith(CONVEX_HULL_PREFIX)


class SceneComposer:
    def __init__(self, config: Optional[VisualizerConfig] = None):
        self.config = config or VisualizerConfig()
        cfg = self.config
        self.registry = SceneRegistry()
        self.trajectory = TrajectoryTracker(cfg.trajectory_capacity, cfg.frustum_scale)
        self.planes = PlaneConstraintIndex(self.registry, cfg.plane_size, cfg.normal_tolerance)
        self.intrinsics = np.asarray(cfg.intrinsics, dtype=np.float64).reshape(3, 3)
        self.mesh_logger = None
        if cfg.log_mesh or cfg.log_accumulated_mesh:
            from .mesh_logger import MeshLogger
            self.mesh_logger = MeshLogger(cfg.output_dir)
        self.frame_count = 0

    def spin_once(self, frame: FrameInput) -> SceneUpdate:
        """Compose one frame and return the full widget set plus removals."""
        if should_draw_scene(self.config.visualization_type):
            self._update_world_frame()
            self._update_trajectory(frame)
            mesh_lmk_ids = self._update_mesh(frame)
            self._update_planes(frame)
            self._update_point_cloud(frame, mesh_lmk_ids)
        self.frame_count += 1
        update = SceneUpdate(self.registry.snapshot(), self.registry.drain_removals(), frame.timestamp)
        logger.debug('Frame %d at %s: %d widgets, %d removals',
                     self.frame_count, frame.timestamp, len(update.widgets), len(update.removals))
        return update

    # --- steps ---
    def _update_world_frame(self):
        if not self.config.show_axes or self.registry.contains(WORLD_FRAME_ID):
            return
        points, lines, colors = build_axes_as_arrays(self.config.axes_scale)
        self.registry.upsert(WORLD_FRAME_ID, Widget(
            WORLD_FRAME_ID, WidgetKind.LINE,
            {'points': points, 'lines': lines, 'colors': colors}, transform=np.eye(4)))

    def _update_trajectory(self, frame: FrameInput):
        if frame.pose is not None:
            self.trajectory.add_pose(frame.pose, frame.timestamp)
        if len(self.trajectory) == 0:
            return
        n_last = self.config.n_last_frustums
        widgets = self.trajectory.render_full(self.intrinsics, frame.frustum_image, n_last)
        wanted = {w.id for w in widgets}
        for widget_id in self.registry.ids():
            if is_frustum_id(widget_id) and widget_id not in wanted:
                self.registry.remove(widget_id)
        for widget in widgets:
            self.registry.upsert(widget.id, widget)
        # Without trajectory frustums the current camera is still shown.
        if n_last == 0:
            current = self.trajectory.render_current(self.intrinsics, frame.frustum_image)
            self.registry.upsert(current.id, current)
        else:
            self.registry.remove(CURRENT_FRUSTUM_ID)

    def _update_mesh(self, frame: FrameInput) -> Set[int]:
        """Draw the frame's mesh; return the landmark ids of its vertices."""
        mesh = frame.mesh
        if not should_draw_mesh(self.config.visualization_type) or mesh is None or mesh.n_faces == 0:
            self.registry.remove(MESH_ID)
            self._update_convex_hulls([], None, None)
            return set()
        cfg = self.config
        vertices = np.asarray(mesh.vertices, dtype=np.float64)
        faces = np.asarray(mesh.faces)
        clusters_valid = validate_clusters(frame.clusters, mesh.n_faces)
        face_colors = None
        if cfg.color_mesh_by_clusters:
            if not clusters_valid:
                logger.warning('Dropping mesh at %s: invalid triangle clusters', frame.timestamp)
                self.registry.remove(MESH_ID)
                self._update_convex_hulls([], None, None)
                return set()
            vertex_colors, face_colors = color_mesh_by_clusters(vertices, faces, frame.clusters)
        elif cfg.color_mesh_by_height:
            vertex_colors = color_vertices_by_height(vertices)
        elif mesh.vertex_colors is not None:
            vertex_colors = np.asarray(mesh.vertex_colors, dtype=np.float64)
        else:
            vertex_colors, face_colors = color_mesh_by_clusters(vertices, faces)

        payload = {
            'points': vertices,
            'polygons': faces,
            'triangles': triangulate_faces(faces),
            'colors': vertex_colors,
        }
        if face_colors is not None:
            payload['face_colors'] = face_colors
        tcoords = mesh.tcoords
        if tcoords is None and mesh.texture is not None and mesh.pixels is not None:
            height, width = np.asarray(mesh.texture).shape[:2]
            tcoords = texture_coordinates(mesh.pixels, width, height)
        if tcoords is not None:
            payload['tcoords'] = np.asarray(tcoords, dtype=np.float64).reshape(-1, 2)
            if mesh.texture is not None:
                payload['texture'] = mesh.texture
        self.registry.upsert(MESH_ID, Widget(MESH_ID, WidgetKind.MESH, payload))
        self._update_convex_hulls(frame.clusters if clusters_valid else [], vertices, faces)

        if self.mesh_logger is not None:
            if cfg.log_mesh:
                self.mesh_logger.log_mesh(vertices, vertex_colors, faces, frame.timestamp)
            if cfg.log_accumulated_mesh:
                self.mesh_logger.log_mesh(vertices, vertex_colors, faces, frame.timestamp, accumulated=True)

        if mesh.vertex_lmk_ids is None:
            return set()
        return {int(i) for i in np.asarray(mesh.vertex_lmk_ids).reshape(-1)}

    def _update_convex_hulls(self, clusters: List[TriangleCluster], vertices, faces):
        """Outline each cluster by its 2D hull along the cluster normal."""
        wanted = set()
        if self.config.visualize_convex_hulls:
            for cluster in clusters:
                ids = np.asarray(cluster.face_ids, dtype=np.int64)
                if ids.size == 0:
                    continue
                cluster_faces = faces[ids]
                direction = cluster.direction
                if direction is None:
                    direction = mean_face_normal(vertices, cluster_faces)
                if direction is None:
                    continue
                points, lines = build_convex_hull_as_arrays(
                    vertices[np.unique(cluster_faces)], direction, self.config.normal_tolerance)
                if lines.shape[0] == 0:
                    continue
                widget_id = convex_hull_id(cluster.cluster_id)
                colors = np.tile(color_by_id(cluster.cluster_id), (lines.shape[0], 1))
                self.registry.upsert(widget_id, Widget(
                    widget_id, WidgetKind.LINE,
                    {'points': points, 'lines': lines, 'colors': colors}, transform=np.eye(4)))
                wanted.add(widget_id)
        for widget_id in self.registry.ids():
            if is_convex_hull_id(widget_id) and widget_id not in wanted:
                self.registry.remove(widget_id)

    def _update_planes(self, frame: FrameInput):
        cfg = self.config
        self.planes.mark_all_out_of_window()
        for plane in frame.planes:
            self.planes.upsert_plane(plane, with_label=cfg.visualize_plane_labels)
            live: List[int] = []
            if cfg.visualize_plane_constraints:
                for lmk_id in plane.lmk_ids:
                    point = frame.landmarks.get(lmk_id)
                    if point is None:
                        continue
                    line_id = self.planes.add_constraint(
                        plane.plane_id, lmk_id, plane.normal, plane.distance, point)
                    if line_id is not None:
                        live.append(lmk_id)
            self.planes.prune_stale(plane.plane_id, live)
        for plane_id in self.planes.planes_out_of_window():
            self.planes.remove_plane(plane_id)

    def _update_point_cloud(self, frame: FrameInput, mesh_lmk_ids: Set[int]):
        ids = [lmk_id for lmk_id in frame.landmarks if lmk_id not in mesh_lmk_ids]
        if not ids:
            self.registry.remove(POINT_CLOUD_ID)
            return
        points = np.array([np.asarray(frame.landmarks[i], dtype=np.float64).reshape(3) for i in ids])
        colors = np.array([LANDMARK_COLORS.get(frame.landmark_types.get(i), CLOUD_COLOR) for i in ids])
        self.registry.upsert(POINT_CLOUD_ID, Widget(
            POINT_CLOUD_ID, WidgetKind.POINT_CLOUD,
            {'points': points, 'colors': colors, 'ids': np.asarray(ids, dtype=np.int64),
             'point_size': float(self.config.point_size)}))

    # --- extras ---
    def visualize_ply_mesh(self, path, widget_id: str = 'PLY Mesh') -> bool:
        """Load a PLY file as a mesh widget. Returns False if it has no triangles."""
        from .mesh_logger import read_ply_mesh
        mesh = read_ply_mesh(path)
        if len(mesh.triangles) == 0:
            return False
        payload = {
            'points': np.asarray(mesh.vertices),
            'triangles': np.asarray(mesh.triangles),
        }
        if mesh.has_vertex_colors():
            payload['colors'] = np.asarray(mesh.vertex_colors)
        self.registry.upsert(widget_id, Widget(widget_id, WidgetKind.MESH, payload))
        return True
