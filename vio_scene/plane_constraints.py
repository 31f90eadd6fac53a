#!/usr/bin/env python3
"""Planes and the landmark-to-plane connector lines drawn for them.

Each (plane, landmark) pair owns at most one line widget. Line ids come from a
per-plane counter, so a landmark that keeps observing a plane keeps its line
and only the line's end points move.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from .color_utils import color_by_id
from .datamodel import Plane, Widget, WidgetKind
from .mesh_utils import build_plane_as_arrays, closest_point_on_plane
from .scene_registry import SceneRegistry

logger = logging.getLogger(__name__)

CONSTRAINT_COLOR = (1.0, 0.0, 0.0)


def plane_widget_id(plane_id: int) -> str:
    return f'Plane {plane_id}'


def plane_label_id(plane_id: int) -> str:
    return f'Plane Label {plane_id}'


class PlaneConstraintIndex:
    def __init__(self, registry: SceneRegistry, plane_size: float = 1.0, normal_tolerance: float = 1e-9):
        self.registry = registry
        self.plane_size = float(plane_size)
        self.normal_tolerance = float(normal_tolerance)
        self._planes: Dict[int, Plane] = {}
        self._plane_lines: Dict[int, Dict[int, str]] = {}  # plane -> lmk -> line id
        self._line_count: Dict[int, int] = {}
        self._in_window: Dict[int, bool] = {}

    def live_planes(self) -> List[int]:
        return list(self._planes.keys())

    def is_live(self, plane_id: int) -> bool:
        return plane_id in self._planes

    def constraints(self, plane_id: int) -> Dict[int, str]:
        return dict(self._plane_lines.get(plane_id, {}))

    def line_id(self, plane_id: int, lmk_id: int) -> Optional[str]:
        return self._plane_lines.get(plane_id, {}).get(lmk_id)

    # --- per-frame window flags ---
    def mark_all_out_of_window(self):
        for plane_id in self._in_window:
            self._in_window[plane_id] = False

    def planes_out_of_window(self) -> List[int]:
        return [pid for pid, seen in self._in_window.items() if not seen]

    # --- planes ---
    def upsert_plane(self, plane: Plane, with_label: bool = True) -> Optional[Widget]:
        """Register the plane as observed this frame and draw it.

        Returns the plane widget, or None when the normal is degenerate (the
        plane stays registered but has nothing to draw).
        """
        pid = plane.plane_id
        if pid not in self._planes:
            logger.info('New plane %d (cluster %d)', pid, plane.cluster_id)
        self._planes[pid] = plane
        self._in_window[pid] = True

        verts, tris, center = build_plane_as_arrays(
            plane.normal, plane.distance, self.plane_size, self.normal_tolerance)
        if center is None:
            logger.warning('Plane %d has a degenerate normal, not drawn', pid)
            self.registry.remove(plane_widget_id(pid))
            self.registry.remove(plane_label_id(pid))
            return None

        color = color_by_id(plane.cluster_id)
        widget = Widget(
            plane_widget_id(pid), WidgetKind.PLANE,
            {'points': verts, 'triangles': tris, 'colors': np.tile(color, (verts.shape[0], 1))},
            transform=np.eye(4))
        widget = self.registry.upsert(widget.id, widget)

        if with_label:
            T = np.eye(4)
            T[:3, 3] = center
            label = Widget(
                plane_label_id(pid), WidgetKind.TEXT,
                {'text': f'Plane {pid}', 'colors': np.asarray([color])},
                transform=T)
            self.registry.upsert(label.id, label)
        else:
            self.registry.remove(plane_label_id(pid))
        return widget

    def remove_plane(self, plane_id: int) -> List[str]:
        """Remove the plane, its label and all its lines; forget its bookkeeping."""
        removed = self._remove_lines(plane_id, list(self._plane_lines.get(plane_id, {}).keys()))
        for wid in (plane_widget_id(plane_id), plane_label_id(plane_id)):
            if self.registry.remove(wid):
                removed.append(wid)
        self._planes.pop(plane_id, None)
        self._plane_lines.pop(plane_id, None)
        self._line_count.pop(plane_id, None)
        self._in_window.pop(plane_id, None)
        logger.info('Removed plane %d (%d widgets)', plane_id, len(removed))
        return removed

    # --- constraints ---
    def add_constraint(self, plane_id: int, lmk_id: int, normal, distance: float, point) -> Optional[str]:
        """Draw or move the line from a landmark to its closest point on the plane.

        Returns the line id, or None when the normal is degenerate.
        """
        closest = closest_point_on_plane(normal, distance, point, self.normal_tolerance)
        if closest is None:
            logger.debug('Skipping constraint %d->%d: degenerate normal', lmk_id, plane_id)
            return None
        if plane_id not in self._planes:
            self._planes[plane_id] = Plane(plane_id, np.asarray(normal, dtype=np.float64), float(distance))
            self._in_window[plane_id] = True

        lines = self._plane_lines.setdefault(plane_id, {})
        line_id = lines.get(lmk_id)
        if line_id is None:
            line_nr = self._line_count.get(plane_id, 0)
            self._line_count[plane_id] = line_nr + 1
            line_id = f'Line {plane_id}-{line_nr}'
            lines[lmk_id] = line_id

        points = np.vstack([np.asarray(point, dtype=np.float64).reshape(3), closest])
        widget = Widget(
            line_id, WidgetKind.LINE,
            {'points': points, 'lines': np.array([[0, 1]], dtype=np.int32),
             'colors': np.asarray([CONSTRAINT_COLOR])},
            transform=np.eye(4))
        self.registry.upsert(line_id, widget)
        return line_id

    def prune_stale(self, plane_id: int, live_lmk_ids: Iterable[int]) -> List[str]:
        """Remove the plane's lines whose landmark is not in live_lmk_ids."""
        live = set(live_lmk_ids)
        stale = [lmk for lmk in self._plane_lines.get(plane_id, {}) if lmk not in live]
        return self._remove_lines(plane_id, stale)

    def _remove_lines(self, plane_id: int, lmk_ids: List[int]) -> List[str]:
        lines = self._plane_lines.get(plane_id, {})
        removed = []
        for lmk in lmk_ids:
            line_id = lines.pop(lmk, None)
            if line_id is not None and self.registry.remove(line_id):
                removed.append(line_id)
        return removed
