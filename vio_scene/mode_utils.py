#!/usr/bin/env python3
"""Small helpers to isolate visualization-type specific behavior."""

MESH_MODE = 'mesh2dto3dsparse'
POINTCLOUD_MODE = 'pointcloud'
NONE_MODE = 'none'

VISUALIZATION_TYPES = (MESH_MODE, POINTCLOUD_MODE, NONE_MODE)


def normalize_mode(mode: str) -> str:
    return str(mode).strip().lower()


def is_mesh_mode(mode: str) -> bool:
    return normalize_mode(mode) == MESH_MODE


def should_draw_scene(mode: str) -> bool:
    """Return False when visualization is switched off entirely."""
    return normalize_mode(mode) != NONE_MODE


def should_draw_mesh(mode: str) -> bool:
    """Only the mesh mode turns upstream meshes into widgets."""
    return is_mesh_mode(mode)
