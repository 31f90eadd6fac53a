#!/usr/bin/env python3
"""Open3DSceneBackend mirrors widget sets and removals into a scene by name.

No GUI or real rendering: open3d is replaced by a stub and a recording scene
stands in for Open3DScene.
"""

import numpy as np
import pytest

from vio_scene.composer import SceneComposer
from vio_scene.config import VisualizerConfig
from vio_scene.datamodel import FrameInput, Mesh, Plane, SceneUpdate, Widget, WidgetKind

VERTS = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]], dtype=float)
QUAD = np.array([[0, 1, 3, 2]], dtype=np.int32)


@pytest.fixture
def sr(load_with_o3d_stub):
    return load_with_o3d_stub('scene_renderer')


def _pose(x):
    T = np.eye(4)
    T[0, 3] = x
    return T


def test_widget_to_geometry_kinds(sr):
    pc = Widget('p', WidgetKind.POINT_CLOUD, {'points': np.zeros((2, 3)), 'colors': np.ones((2, 3))})
    assert len(sr.widget_to_geometry(pc).points) == 2
    ln = Widget('l', WidgetKind.LINE, {'points': np.zeros((2, 3)), 'lines': np.array([[0, 1]])})
    assert len(sr.widget_to_geometry(ln).lines) == 1
    tx = Widget('t', WidgetKind.TEXT, {'text': 'hi'})
    assert sr.widget_to_geometry(tx) is None


def test_offscreen_renderer_created_on_first_apply(sr, o3d_stub):
    backend = sr.Open3DSceneBackend(width=320, height=240)
    assert backend.render_to_image() is None
    backend.apply(SceneUpdate({}, ['never added']))
    assert o3d_stub['offscreen'] == [(320, 240)]
    assert backend.render_to_image() is not None


def test_apply_adds_replaces_and_removes(sr, recording_scene):
    scene = recording_scene
    backend = sr.Open3DSceneBackend(scene=scene)
    comp = SceneComposer(VisualizerConfig(show_axes=False))
    lmk = {1: np.array([0.0, 0.0, 2.0])}
    plane = Plane(1, np.array([0.0, 0.0, 1.0]), 0.0, lmk_ids=[1])
    backend.apply(comp.spin_once(FrameInput(0.0, pose=_pose(0.0), landmarks=lmk, planes=[plane])))
    assert 'Plane 1' in scene.geoms
    assert scene.geoms['Plane 1'][1].shader == 'defaultLitTransparency'
    assert 'Plane Label 1' in backend.labels
    np.testing.assert_allclose(scene.transforms['Frustum 0'], _pose(0.0))
    # Same ids on the next frame are replaced, never duplicated
    backend.apply(comp.spin_once(FrameInput(1.0, pose=_pose(1.0), landmarks=lmk, planes=[plane])))
    assert ('remove', 'Plane 1') in scene.log
    backend.apply(comp.spin_once(FrameInput(2.0, pose=_pose(2.0), landmarks=lmk)))
    assert 'Plane 1' not in scene.geoms
    assert 'Plane Label 1' not in backend.labels
    assert not any(name.startswith('Line 1-') for name in scene.geoms)
    assert set(backend.geometry_names()) == set(scene.geoms)


def test_removal_of_unknown_widget_is_ignored(sr, recording_scene):
    backend = sr.Open3DSceneBackend(scene=recording_scene)
    backend.apply(SceneUpdate({}, ['never added']))
    assert recording_scene.geoms == {}


def test_point_cloud_material_uses_point_size(sr, recording_scene):
    backend = sr.Open3DSceneBackend(scene=recording_scene)
    cloud = Widget('Point Cloud', WidgetKind.POINT_CLOUD, {'points': np.zeros((3, 3)), 'point_size': 4.0})
    backend.apply(SceneUpdate({cloud.id: cloud}, []))
    mat = recording_scene.geoms['Point Cloud'][1]
    assert mat.shader == 'defaultUnlit'
    assert mat.point_size == 4.0


def test_frustum_image_adds_textured_quad_and_hidden_widget(sr, recording_scene):
    scene = recording_scene
    backend = sr.Open3DSceneBackend(scene=scene)
    comp = SceneComposer(VisualizerConfig(show_axes=False))
    img = np.zeros((480, 720, 3), dtype=np.uint8)
    update = comp.spin_once(FrameInput(0.0, pose=_pose(0.0), frustum_image=img))
    update.widgets['Frustum 0'].visible = False
    backend.apply(update)
    quad, mat = scene.geoms['Frustum 0' + sr.IMAGE_SUFFIX]
    assert quad.triangle_uvs.shape == (6, 2)
    assert mat.albedo_img.data is not None
    assert 'Frustum 0' in scene.hidden
    backend.apply(comp.spin_once(FrameInput(1.0, pose=_pose(1.0))))
    assert 'Frustum 0' + sr.IMAGE_SUFFIX not in scene.geoms


def test_textured_mesh_gets_uvs_and_albedo(sr, recording_scene):
    backend = sr.Open3DSceneBackend(scene=recording_scene)
    comp = SceneComposer(VisualizerConfig(show_axes=False, color_mesh_by_clusters=False))
    texture = np.full((10, 20, 3), 200, dtype=np.uint8)
    pixels = np.array([[0, 0], [20, 0], [0, 10], [20, 10]], dtype=float)
    backend.apply(comp.spin_once(FrameInput(0.0, mesh=Mesh(VERTS, QUAD, texture=texture, pixels=pixels))))
    geom, mat = recording_scene.geoms['Mesh']
    # Quad 0-1-3-2 fans into (0,1,3) and (0,3,2), one uv per corner
    np.testing.assert_allclose(
        geom.triangle_uvs, [[0, 0], [1, 0], [1, 1], [0, 0], [1, 1], [0, 1]])
    assert mat.albedo_img.data.shape == (10, 20, 3)
    assert geom.normals_computed


def test_untextured_mesh_has_no_albedo(sr, recording_scene):
    backend = sr.Open3DSceneBackend(scene=recording_scene)
    comp = SceneComposer(VisualizerConfig(show_axes=False))
    backend.apply(comp.spin_once(FrameInput(0.0, mesh=Mesh(VERTS, QUAD))))
    geom, mat = recording_scene.geoms['Mesh']
    assert mat.albedo_img is None
    assert not hasattr(geom, 'triangle_uvs')
