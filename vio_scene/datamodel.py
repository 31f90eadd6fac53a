#!/usr/bin/env python3
"""Data model shared by the registry, the trackers and the composer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .mesh_utils import faces_from_polygon_list


class WidgetKind(str, Enum):
    POINT_CLOUD = 'point_cloud'
    MESH = 'mesh'
    LINE = 'line'
    PLANE = 'plane'
    FRUSTUM = 'frustum'
    TEXT = 'text'


class LandmarkType(str, Enum):
    SMART = 'smart'
    PROJECTION = 'projection'


@dataclass(eq=False)
class Widget:
    """Named renderable scene object.

    transform is a 4x4 homogeneous pose; None means "keep whatever pose the
    registry already holds for this id".
    payload holds numpy buffers keyed by name (points, lines, triangles,
    colors, text, image, ...).
    """
    id: str
    kind: WidgetKind
    payload: Dict[str, object] = field(default_factory=dict)
    transform: Optional[np.ndarray] = None
    visible: bool = True


@dataclass(frozen=True, eq=False)
class PoseSample:
    seq: int
    timestamp: float
    transform: np.ndarray  # 4x4 camera-to-world

    @property
    def position(self) -> np.ndarray:
        return self.transform[:3, 3]


@dataclass(eq=False)
class Plane:
    plane_id: int
    normal: np.ndarray
    distance: float
    cluster_id: int = 1
    lmk_ids: List[int] = field(default_factory=list)


@dataclass(eq=False)
class TriangleCluster:
    cluster_id: int
    face_ids: Sequence[int] = field(default_factory=list)
    direction: Optional[np.ndarray] = None  # dominant face normal, if known


@dataclass(eq=False)
class Mesh:
    """Triangulated surface rebuilt each frame from upstream output.

    faces is either (M,k) or the flat polygon list [k, i0, .., k, ...].
    Texture coordinates come from tcoords, or from the 2D mesh pixels when a
    texture image is given.
    """
    vertices: np.ndarray                      # (N,3)
    faces: np.ndarray                         # (M,k) indices into vertices
    vertex_colors: Optional[np.ndarray] = None
    tcoords: Optional[np.ndarray] = None      # (N,2) in [0,1]
    vertex_lmk_ids: Optional[np.ndarray] = None
    texture: Optional[np.ndarray] = None      # (H,W,3) image
    pixels: Optional[np.ndarray] = None       # (N,2) image coordinates of the vertices

    def __post_init__(self):
        if self.faces is not None and np.asarray(self.faces).ndim == 1:
            self.faces = faces_from_polygon_list(self.faces)

    @property
    def n_faces(self) -> int:
        return 0 if self.faces is None else int(np.asarray(self.faces).shape[0])

    @property
    def n_vertices(self) -> int:
        return 0 if self.vertices is None else int(np.asarray(self.vertices).shape[0])


@dataclass(eq=False)
class FrameInput:
    """One synchronized frame from the VIO/mesher stages."""
    timestamp: float
    pose: Optional[np.ndarray] = None
    mesh: Optional[Mesh] = None
    clusters: List[TriangleCluster] = field(default_factory=list)
    landmarks: Mapping[int, np.ndarray] = field(default_factory=dict)
    landmark_types: Mapping[int, LandmarkType] = field(default_factory=dict)
    planes: List[Plane] = field(default_factory=list)
    frustum_image: Optional[np.ndarray] = None


@dataclass(eq=False)
class SceneUpdate:
    """What the rendering backend must show after one frame."""
    widgets: Dict[str, Widget]
    removals: List[str]
    timestamp: float = 0.0

    def __contains__(self, widget_id: str) -> bool:
        return widget_id in self.widgets
