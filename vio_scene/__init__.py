"""Scene state for VIO visualization: trajectory, mesh, planes and constraints."""

from .composer import SceneComposer
from .config import VisualizerConfig, load_config
from .datamodel import FrameInput, Mesh, Plane, SceneUpdate, TriangleCluster, Widget, WidgetKind
from .scene_registry import SceneRegistry

__all__ = [
    'SceneComposer',
    'VisualizerConfig',
    'load_config',
    'FrameInput',
    'Mesh',
    'Plane',
    'SceneUpdate',
    'TriangleCluster',
    'Widget',
    'WidgetKind',
    'SceneRegistry',
]
