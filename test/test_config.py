#!/usr/bin/env python3
import pytest
from vio_scene.config import VisualizerConfig, load_config, save_config


def test_defaults_are_valid():
    cfg = VisualizerConfig()
    assert cfg.visualization_type == 'mesh2dto3dsparse'
    assert cfg.n_last_frustums == 10


def test_load_yaml(tmp_path):
    p = tmp_path / 'viz.yaml'
    p.write_text('visualization_type: PointCloud\ntrajectory_capacity: 5\nshow_axes: false\n')
    cfg = load_config(p)
    assert cfg.visualization_type == 'pointcloud'
    assert cfg.trajectory_capacity == 5
    assert cfg.show_axes is False


def test_empty_yaml_gives_defaults(tmp_path):
    p = tmp_path / 'empty.yaml'
    p.write_text('')
    assert load_config(p).trajectory_capacity == VisualizerConfig().trajectory_capacity


def test_save_and_reload(tmp_path):
    p = tmp_path / 'out.yaml'
    save_config(VisualizerConfig(plane_size=3.5), p)
    assert load_config(p).plane_size == 3.5


def test_rejects_bad_values(tmp_path):
    p = tmp_path / 'bad.yaml'
    p.write_text('not_a_key: 1\n')
    with pytest.raises(ValueError):
        load_config(p)
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / 'missing.yaml')
    with pytest.raises(ValueError):
        VisualizerConfig(visualization_type='voxels')
    with pytest.raises(ValueError):
        VisualizerConfig(log_mesh=True)
    with pytest.raises(ValueError):
        VisualizerConfig(intrinsics=[[1.0, 0.0], [0.0, 1.0]])
