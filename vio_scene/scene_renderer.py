#!/usr/bin/env python3
"""Open3D rendering(Scene) backend that applies a SceneUpdate by widget name.

The composer decides what exists; this class only mirrors it into an Open3D
scene: geometries are added or replaced under the widget id, removals are
dropped if present. Window handling stays outside: by default an
OffscreenRenderer owns the scene, but any Open3DScene-like object can be given.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import numpy as np
import open3d as o3d

from .datamodel import SceneUpdate, Widget, WidgetKind

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ' image'


def _material(kind: WidgetKind, point_size: float = 2.0, line_width: float = 1.0):
    mr = o3d.visualization.rendering.MaterialRecord()
    if kind in (WidgetKind.LINE, WidgetKind.FRUSTUM):
        mr.shader = 'unlitLine'
        mr.line_width = float(line_width)
    elif kind == WidgetKind.POINT_CLOUD:
        mr.shader = 'defaultUnlit'
        mr.point_size = float(point_size)
    else:
        mr.shader = 'defaultLitTransparency' if kind == WidgetKind.PLANE else 'defaultLit'
        if kind == WidgetKind.PLANE:
            mr.base_color = [1.0, 1.0, 1.0, 0.5]
    return mr


def widget_to_geometry(widget: Widget):
    """Build the Open3D geometry for a widget, or None for kinds without one."""
    p = widget.payload
    if widget.kind == WidgetKind.POINT_CLOUD:
        pcd = o3d.geometry.PointCloud()
        pcd.points = o3d.utility.Vector3dVector(np.asarray(p['points'], dtype=np.float64))
        if 'colors' in p:
            pcd.colors = o3d.utility.Vector3dVector(np.asarray(p['colors'], dtype=np.float64))
        return pcd
    if widget.kind in (WidgetKind.LINE, WidgetKind.FRUSTUM):
        ls = o3d.geometry.LineSet()
        ls.points = o3d.utility.Vector3dVector(np.asarray(p['points'], dtype=np.float64))
        ls.lines = o3d.utility.Vector2iVector(np.asarray(p['lines'], dtype=np.int32))
        if 'colors' in p:
            ls.colors = o3d.utility.Vector3dVector(np.asarray(p['colors'], dtype=np.float64))
        return ls
    if widget.kind in (WidgetKind.MESH, WidgetKind.PLANE):
        mesh = o3d.geometry.TriangleMesh()
        mesh.vertices = o3d.utility.Vector3dVector(np.asarray(p['points'], dtype=np.float64))
        mesh.triangles = o3d.utility.Vector3iVector(np.asarray(p['triangles'], dtype=np.int32))
        if 'colors' in p:
            mesh.vertex_colors = o3d.utility.Vector3dVector(np.asarray(p['colors'], dtype=np.float64))
        if p.get('tcoords') is not None:
            # Open3D expects one uv per triangle corner.
            tcoords = np.asarray(p['tcoords'], dtype=np.float64)
            triangles = np.asarray(p['triangles'], dtype=np.int64)
            mesh.triangle_uvs = o3d.utility.Vector2dVector(tcoords[triangles].reshape(-1, 2))
        mesh.compute_vertex_normals()
        return mesh
    return None


def widget_material(widget: Widget):
    """Material for a widget; a mesh carrying a texture gets it as albedo."""
    p = widget.payload
    mr = _material(widget.kind, float(p.get('point_size', 2.0)))
    if widget.kind == WidgetKind.MESH and p.get('texture') is not None and p.get('tcoords') is not None:
        mr.albedo_img = o3d.geometry.Image(np.ascontiguousarray(p['texture']))
    return mr


def frustum_image_geometry(widget: Widget):
    """Textured near-plane quad for a frustum carrying an image, else None."""
    p = widget.payload
    if widget.kind != WidgetKind.FRUSTUM or p.get('image') is None:
        return None, None
    corners = np.asarray(p['points'], dtype=np.float64)[1:5]
    tcoords = np.asarray(p['tcoords'], dtype=np.float64)
    quad = o3d.geometry.TriangleMesh()
    quad.vertices = o3d.utility.Vector3dVector(corners)
    quad.triangles = o3d.utility.Vector3iVector(np.array([[0, 1, 2], [0, 2, 3]], dtype=np.int32))
    quad.triangle_uvs = o3d.utility.Vector2dVector(tcoords[[0, 1, 2, 0, 2, 3]])
    mr = o3d.visualization.rendering.MaterialRecord()
    mr.shader = 'defaultUnlit'
    mr.albedo_img = o3d.geometry.Image(np.ascontiguousarray(p['image']))
    return quad, mr


class Open3DSceneBackend:
    def __init__(self, width: int = 1280, height: int = 720, background=(0.1, 0.1, 0.1), scene=None):
        self.width = int(width)
        self.height = int(height)
        self.background = tuple(float(x) for x in background)
        self._renderer: Optional[o3d.visualization.rendering.OffscreenRenderer] = None
        self._scene = scene
        self._added: Dict[str, WidgetKind] = {}
        self.labels: Dict[str, Widget] = {}

    def ensure_scene(self):
        if self._scene is None:
            r = o3d.visualization.rendering.OffscreenRenderer(self.width, self.height)
            r.scene.set_background(list(self.background) + [1.0])
            self._renderer = r
            self._scene = r.scene
        return self._scene

    def _remove(self, name: str):
        scene = self.ensure_scene()
        if name in self._added or scene.has_geometry(name):
            scene.remove_geometry(name)
        self._added.pop(name, None)

    def _add(self, name: str, geometry, material, widget: Widget):
        scene = self.ensure_scene()
        # Replace rather than update: geometry sizes change between frames.
        self._remove(name)
        scene.add_geometry(name, geometry, material)
        self._added[name] = widget.kind
        if widget.transform is not None:
            scene.set_geometry_transform(name, np.asarray(widget.transform, dtype=np.float64))
        if not widget.visible:
            scene.show_geometry(name, False)

    def apply(self, update: SceneUpdate):
        """Mirror one frame's widget set and removals into the scene."""
        for widget_id in update.removals:
            self.labels.pop(widget_id, None)
            self._remove(widget_id)
            self._remove(widget_id + IMAGE_SUFFIX)
        for widget in update.widgets.values():
            if widget.kind == WidgetKind.TEXT:
                # Open3DScene has no 3D text; keep labels for GUI front ends.
                self.labels[widget.id] = widget
                continue
            geometry = widget_to_geometry(widget)
            if geometry is None:
                continue
            material = widget_material(widget)
            self._add(widget.id, geometry, material, widget)
            quad, quad_material = frustum_image_geometry(widget)
            if quad is not None:
                self._add(widget.id + IMAGE_SUFFIX, quad, quad_material, widget)
            else:
                self._remove(widget.id + IMAGE_SUFFIX)
        logger.debug('Scene now holds %d geometries, %d labels', len(self._added), len(self.labels))

    def geometry_names(self):
        return list(self._added.keys())

    def render_to_image(self):
        if self._renderer is None:
            return None
        return self._renderer.render_to_image()
