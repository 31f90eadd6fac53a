#!/usr/bin/env python3
import numpy as np
from vio_scene.datamodel import Widget, WidgetKind
from vio_scene.scene_registry import SceneRegistry


def _line(wid, x=0.0, transform=None):
    pts = np.array([[0.0, 0.0, 0.0], [x, 0.0, 0.0]])
    return Widget(wid, WidgetKind.LINE, {'points': pts, 'lines': np.array([[0, 1]])}, transform=transform)


def test_upsert_twice_keeps_single_latest_widget():
    reg = SceneRegistry()
    w1 = _line('a', 1.0, np.eye(4))
    w2 = _line('a', 2.0, np.eye(4) * 2.0)
    reg.upsert('a', w1)
    reg.upsert('a', w2)
    assert len(reg) == 1
    assert reg.get('a').payload['points'][1, 0] == 2.0
    np.testing.assert_allclose(reg.get('a').transform, np.eye(4) * 2.0)


def test_upsert_without_transform_keeps_existing_pose():
    reg = SceneRegistry()
    T = np.eye(4)
    T[:3, 3] = [1.0, 2.0, 3.0]
    reg.upsert('cloud', _line('cloud', 1.0, T))
    reg.upsert('cloud', _line('cloud', 5.0))
    np.testing.assert_allclose(reg.get('cloud').transform, T)
    np.testing.assert_allclose(reg.get('cloud').payload['points'][1], [5.0, 0.0, 0.0])


def test_remove_absent_is_noop():
    reg = SceneRegistry()
    reg.upsert('a', _line('a'))
    assert reg.remove('missing') is False
    assert len(reg) == 1
    assert reg.drain_removals() == []


def test_remove_is_idempotent_and_reported_once():
    reg = SceneRegistry()
    reg.upsert('a', _line('a'))
    reg.drain_removals()
    assert reg.remove('a') is True
    assert reg.remove('a') is False
    assert not reg.contains('a')
    assert reg.drain_removals() == ['a']
    assert reg.drain_removals() == []


def test_recreate_in_same_frame_cancels_removal():
    reg = SceneRegistry()
    reg.upsert('a', _line('a'))
    reg.remove('a')
    reg.upsert('a', _line('a', 3.0))
    assert reg.contains('a')
    assert reg.drain_removals() == []


def test_iteration_follows_insertion_order():
    reg = SceneRegistry()
    for wid in ['c', 'a', 'b']:
        reg.upsert(wid, _line(wid))
    reg.upsert('a', _line('a', 9.0))
    assert reg.ids() == ['c', 'a', 'b']
    assert [w.id for w in reg] == ['c', 'a', 'b']
    assert list(reg.snapshot()) == ['c', 'a', 'b']


def test_upsert_stores_a_copy_and_leaves_caller_widget_alone():
    reg = SceneRegistry()
    T = np.eye(4) * 3.0
    reg.upsert('a', _line('a', 1.0, T))
    w = _line('other', 2.0)
    stored = reg.upsert('a', w)
    assert w.id == 'other' and w.transform is None
    assert stored is not w and stored.id == 'a'
    np.testing.assert_allclose(stored.transform, T)


def test_widget_created_and_removed_before_drain_is_not_reported():
    reg = SceneRegistry()
    reg.upsert('seen', _line('seen'))
    reg.drain_removals()
    reg.upsert('transient', _line('transient'))
    reg.remove('transient')
    reg.remove('seen')
    assert reg.drain_removals() == ['seen']
    reg.upsert('next', _line('next'))
    reg.drain_removals()
    reg.remove('next')
    assert reg.drain_removals() == ['next']
