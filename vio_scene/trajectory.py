#!/usr/bin/env python3
"""Bounded camera trajectory and the widgets that draw it."""

from __future__ import annotations

from collections import deque
from typing import List, Optional

import numpy as np

from .datamodel import PoseSample, Widget, WidgetKind
from .mesh_utils import build_frustum_as_arrays, image_size_from_intrinsics, polyline_segments

TRAJECTORY_ID = 'Trajectory'
CURRENT_FRUSTUM_ID = 'Camera Pose with Frustum'
FRUSTUM_PREFIX = 'Frustum '

TRAJECTORY_COLOR = (0.0, 0.8, 1.0)
FRUSTUM_COLOR = (1.0, 1.0, 1.0)

# Near plane corners as texture coordinates (u right, v down), same order as
# build_frustum_as_arrays.
FRUSTUM_TCOORDS = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])


def frustum_id(sample: PoseSample) -> str:
    return f'{FRUSTUM_PREFIX}{sample.seq}'


def is_frustum_id(widget_id: str) -> bool:
    return widget_id.startswith(FRUSTUM_PREFIX)


class TrajectoryTracker:
    """Append-only FIFO of the last `capacity` camera poses."""

    def __init__(self, capacity: int = 1000, frustum_scale: float = 0.2):
        if int(capacity) < 1:
            raise ValueError(f'Trajectory capacity must be positive, got {capacity}')
        self.capacity = int(capacity)
        self.frustum_scale = float(frustum_scale)
        self._poses: deque = deque(maxlen=self.capacity)
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._poses)

    def poses(self) -> List[PoseSample]:
        return list(self._poses)

    @property
    def latest(self) -> Optional[PoseSample]:
        return self._poses[-1] if self._poses else None

    def add_pose(self, transform, timestamp: float = 0.0) -> PoseSample:
        T = np.array(transform, dtype=np.float64).reshape(4, 4)
        T.setflags(write=False)
        sample = PoseSample(seq=self._next_seq, timestamp=float(timestamp), transform=T)
        self._next_seq += 1
        # deque(maxlen) drops the oldest entry.
        self._poses.append(sample)
        return sample

    def clear(self):
        self._poses.clear()

    def _frustum_widget(self, widget_id: str, sample: PoseSample, K, image=None) -> Widget:
        if image is not None:
            height, width = np.asarray(image).shape[:2]
        else:
            width, height = image_size_from_intrinsics(K)
        points, lines = build_frustum_as_arrays(K, width, height, self.frustum_scale)
        payload = {
            'points': points,
            'lines': lines,
            'colors': np.tile(FRUSTUM_COLOR, (lines.shape[0], 1)),
        }
        if image is not None:
            payload['image'] = image
            payload['tcoords'] = FRUSTUM_TCOORDS.copy()
        return Widget(widget_id, WidgetKind.FRUSTUM, payload, transform=np.array(sample.transform))

    def render_trajectory(self) -> Optional[Widget]:
        """Polyline through every stored position, or None with fewer than 2 poses."""
        if len(self._poses) < 2:
            return None
        points = np.array([s.position for s in self._poses], dtype=np.float64)
        lines = polyline_segments(points.shape[0])
        payload = {
            'points': points,
            'lines': lines,
            'colors': np.tile(TRAJECTORY_COLOR, (lines.shape[0], 1)),
        }
        return Widget(TRAJECTORY_ID, WidgetKind.LINE, payload, transform=np.eye(4))

    def render_full(self, intrinsics, image=None, n_last_frustums: Optional[int] = None) -> List[Widget]:
        """Polyline over all poses plus one frustum per pose (or the last N).

        Only the most recent frustum is textured with `image`; without an image
        every frustum is a bare wireframe.
        """
        widgets: List[Widget] = []
        polyline = self.render_trajectory()
        if polyline is not None:
            widgets.append(polyline)
        samples = list(self._poses)
        if n_last_frustums is not None:
            samples = samples[-int(n_last_frustums):] if n_last_frustums > 0 else []
        for i, sample in enumerate(samples):
            img = image if i == len(samples) - 1 else None
            widgets.append(self._frustum_widget(frustum_id(sample), sample, intrinsics, img))
        return widgets

    def render_current(self, intrinsics, image=None) -> Optional[Widget]:
        """Frustum at the latest pose under a fixed id so it moves in place."""
        if not self._poses:
            return None
        return self._frustum_widget(CURRENT_FRUSTUM_ID, self._poses[-1], intrinsics, image)
