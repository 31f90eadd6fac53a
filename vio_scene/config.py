#!/usr/bin/env python3
"""Visualizer configuration with YAML loading."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .mode_utils import MESH_MODE, VISUALIZATION_TYPES, normalize_mode

logger = logging.getLogger(__name__)

# EuRoC-like pinhole camera, used when no intrinsics are configured.
DEFAULT_INTRINSICS = [[458.0, 0.0, 360.0], [0.0, 458.0, 240.0], [0.0, 0.0, 1.0]]


@dataclass
class VisualizerConfig:
    visualization_type: str = MESH_MODE
    trajectory_capacity: int = 1000
    n_last_frustums: int = 10
    frustum_scale: float = 0.2
    intrinsics: List[List[float]] = field(default_factory=lambda: [list(r) for r in DEFAULT_INTRINSICS])
    color_mesh_by_clusters: bool = True
    color_mesh_by_height: bool = False
    plane_size: float = 1.0
    visualize_plane_labels: bool = True
    visualize_plane_constraints: bool = True
    visualize_convex_hulls: bool = False
    normal_tolerance: float = 1e-9
    point_size: float = 2.0
    show_axes: bool = True
    axes_scale: float = 1.0
    log_mesh: bool = False
    log_accumulated_mesh: bool = False
    output_dir: Optional[str] = None

    def __post_init__(self):
        self.visualization_type = normalize_mode(self.visualization_type)
        if self.visualization_type not in VISUALIZATION_TYPES:
            raise ValueError(
                f'visualization_type must be one of {VISUALIZATION_TYPES}, got {self.visualization_type!r}')
        if int(self.trajectory_capacity) < 1:
            raise ValueError('trajectory_capacity must be >= 1')
        if int(self.n_last_frustums) < 0:
            raise ValueError('n_last_frustums must be >= 0')
        if len(self.intrinsics) != 3 or any(len(r) != 3 for r in self.intrinsics):
            raise ValueError('intrinsics must be a 3x3 matrix')
        if (self.log_mesh or self.log_accumulated_mesh) and not self.output_dir:
            raise ValueError('output_dir is required when mesh logging is enabled')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VisualizerConfig':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f'Unknown visualizer config keys: {unknown}')
        return cls(**data)


def load_config(path) -> VisualizerConfig:
    """Load a VisualizerConfig from a YAML file. An empty file gives defaults."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f'Visualizer config not found: {p}')
    data = yaml.safe_load(p.read_text(encoding='utf-8')) or {}
    if not isinstance(data, dict):
        raise ValueError(f'Visualizer config {p} must be a mapping')
    cfg = VisualizerConfig.from_dict(data)
    logger.info('Configuration loaded from %s', p)
    return cfg


def save_config(cfg: VisualizerConfig, path) -> None:
    Path(path).write_text(yaml.safe_dump(cfg.to_dict(), sort_keys=False), encoding='utf-8')
