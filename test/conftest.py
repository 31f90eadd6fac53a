#!/usr/bin/env python3
import importlib
import os
import sys
import types

import numpy as np
import pytest

# Allow running the tests from a source checkout without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


class RecordingScene:
    """Stands in for Open3DScene: records geometry calls by name."""

    def __init__(self):
        self.geoms = {}
        self.transforms = {}
        self.hidden = set()
        self.background = None
        self.log = []

    def set_background(self, color):
        self.background = color

    def add_geometry(self, name, geom, mat):
        assert name not in self.geoms, f'duplicate geometry {name}'
        self.log.append(('add', name))
        self.geoms[name] = (geom, mat)

    def remove_geometry(self, name):
        self.log.append(('remove', name))
        self.geoms.pop(name, None)

    def has_geometry(self, name):
        return name in self.geoms

    def set_geometry_transform(self, name, T):
        self.transforms[name] = T

    def show_geometry(self, name, show):
        if not show:
            self.hidden.add(name)


def make_o3d_stub(call_log: dict):
    o3d = types.SimpleNamespace()

    class _Geometry:
        def __init__(self):
            self.normals_computed = False

        def compute_vertex_normals(self):
            self.normals_computed = True

    class _Image:
        def __init__(self, data):
            self.data = data

    class _Mat:
        def __init__(self):
            self.shader = ''
            self.point_size = 0.0
            self.line_width = 0.0
            self.base_color = None
            self.albedo_img = None

    class _Off:
        def __init__(self, w, h):
            call_log['offscreen'].append((w, h))
            self.scene = RecordingScene()

        def render_to_image(self):
            call_log['render'].append('image')
            return object()

    def _write_triangle_mesh(path, mesh, write_ascii=False):
        call_log['write'].append((path, mesh))
        return True

    o3d.geometry = types.SimpleNamespace(
        PointCloud=_Geometry, LineSet=_Geometry, TriangleMesh=_Geometry, Image=_Image)
    o3d.utility = types.SimpleNamespace(
        Vector3dVector=np.asarray, Vector3iVector=np.asarray,
        Vector2iVector=np.asarray, Vector2dVector=np.asarray)
    o3d.io = types.SimpleNamespace(write_triangle_mesh=_write_triangle_mesh)
    o3d.visualization = types.SimpleNamespace(
        rendering=types.SimpleNamespace(OffscreenRenderer=_Off, MaterialRecord=_Mat))
    return o3d


@pytest.fixture
def o3d_stub(monkeypatch):
    """Replace open3d with a recording stub. Returns the call log."""
    call_log = {'offscreen': [], 'render': [], 'write': []}
    monkeypatch.setitem(sys.modules, 'open3d', make_o3d_stub(call_log))
    return call_log


@pytest.fixture
def load_with_o3d_stub(o3d_stub):
    """Import a fresh copy of a vio_scene module bound to the open3d stub.

    The previously imported module (if any) is put back afterwards.
    """
    import vio_scene
    saved = {}

    def _load(name):
        full = f'vio_scene.{name}'
        if full not in saved:
            saved[full] = (sys.modules.pop(full, None), vio_scene.__dict__.pop(name, None))
        return importlib.import_module(full)

    yield _load
    for full, (module, attr) in saved.items():
        name = full.rsplit('.', 1)[1]
        sys.modules.pop(full, None)
        vio_scene.__dict__.pop(name, None)
        if module is not None:
            sys.modules[full] = module
        if attr is not None:
            setattr(vio_scene, name, attr)


@pytest.fixture
def recording_scene():
    return RecordingScene()
