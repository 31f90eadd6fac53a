#!/usr/bin/env python3
from vio_scene.mode_utils import is_mesh_mode, normalize_mode, should_draw_mesh, should_draw_scene


def test_is_mesh_mode():
    assert is_mesh_mode('mesh2dTo3dSparse')
    assert is_mesh_mode(' MESH2DTO3DSPARSE ')
    assert not is_mesh_mode('pointcloud')


def test_normalize_mode():
    assert normalize_mode(' PointCloud ') == 'pointcloud'


def test_should_draw():
    assert should_draw_mesh('mesh2dto3dsparse') is True
    assert should_draw_mesh('pointcloud') is False
    assert should_draw_scene('pointcloud') is True
    assert should_draw_scene('none') is False
