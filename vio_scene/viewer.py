#!/usr/bin/env python3
"""Replay a synthetic VIO sequence through the scene composer."""

import argparse
import logging
from typing import Iterator

import numpy as np

from .composer import SceneComposer
from .config import VisualizerConfig, load_config
from .datamodel import FrameInput, LandmarkType, Mesh, Plane, TriangleCluster

logger = logging.getLogger(__name__)


def _grid_mesh(nx: int, ny: int, spacing: float, z: float = 0.0) -> tuple:
    xs, ys = np.meshgrid(np.arange(nx) * spacing, np.arange(ny) * spacing)
    vertices = np.stack([xs.ravel(), ys.ravel(), np.full(xs.size, z)], axis=1)
    faces = []
    for j in range(ny - 1):
        for i in range(nx - 1):
            a = j * nx + i
            faces.append([a, a + 1, a + nx])
            faces.append([a + 1, a + nx + 1, a + nx])
    faces = np.asarray(faces, dtype=np.int32)
    # Upstream meshers emit polygons as a flat [3, i0, i1, i2, 3, ...] list.
    polygons = np.hstack([np.full((faces.shape[0], 1), 3, dtype=np.int32), faces]).ravel()
    return vertices, polygons


def synthetic_frames(n_frames: int, radius: float = 2.0) -> Iterator[FrameInput]:
    """Camera orbiting a floor mesh; a wall plane is seen during the first half."""
    vertices, polygons = _grid_mesh(5, 5, 0.5)
    vertex_lmk_ids = np.arange(vertices.shape[0])
    n_faces = polygons.size // 4
    half = n_faces // 2
    up = np.array([0.0, 0.0, 1.0])
    floor = TriangleCluster(0, list(range(half)), direction=up)
    rest = TriangleCluster(1, list(range(half, n_faces)), direction=up)
    wall_lmks = {100 + k: np.array([3.0 + 0.05 * k, 0.5 * k, 1.0]) for k in range(4)}

    for t in range(n_frames):
        angle = 2.0 * np.pi * t / max(n_frames, 1)
        T = np.eye(4)
        T[:3, 3] = [radius * np.cos(angle) + 1.0, radius * np.sin(angle) + 1.0, 1.5]
        landmarks = {int(i): vertices[i] for i in vertex_lmk_ids}
        planes = []
        if t < n_frames // 2:
            # One wall landmark drops out of tracking every frame.
            visible = {k: v for k, v in wall_lmks.items() if k - 100 >= t % 4}
            landmarks.update(visible)
            planes.append(Plane(7, np.array([1.0, 0.0, 0.0]), 3.0, cluster_id=2, lmk_ids=list(visible)))
        yield FrameInput(
            timestamp=float(t),
            pose=T,
            mesh=Mesh(vertices, polygons, vertex_lmk_ids=vertex_lmk_ids),
            clusters=[floor, rest],
            landmarks=landmarks,
            landmark_types={k: LandmarkType.PROJECTION for k in wall_lmks},
            planes=planes,
        )


def main(args=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--config', help='YAML visualizer config')
    parser.add_argument('--frames', type=int, default=20)
    parser.add_argument('--offscreen', action='store_true', help='Mirror the scene into an Open3D offscreen renderer')
    parser.add_argument('--log-level', default='INFO')
    opts = parser.parse_args(args)

    logging.basicConfig(
        level=getattr(logging, str(opts.log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    cfg = load_config(opts.config) if opts.config else VisualizerConfig()
    composer = SceneComposer(cfg)
    backend = None
    if opts.offscreen:
        from .scene_renderer import Open3DSceneBackend
        backend = Open3DSceneBackend()

    update = None
    for frame in synthetic_frames(opts.frames):
        update = composer.spin_once(frame)
        if backend is not None:
            backend.apply(update)
    if update is not None:
        logger.info('Replayed %d frames, final scene has %d widgets', opts.frames, len(update.widgets))
    return 0


if __name__ == '__main__':
    main()
