#!/usr/bin/env python3
import os, sys, numpy as np
# Allow running directly from source tree
BASE = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, BASE)
from vio_scene.composer import SceneComposer
from vio_scene.config import VisualizerConfig
from vio_scene.datamodel import FrameInput, Plane


def main():
    comp = SceneComposer(VisualizerConfig(show_axes=False))
    lmk = {1: np.array([0.0, 0.0, 2.0])}
    p1 = Plane(1, np.array([0.0, 0.0, 1.0]), 0.0, lmk_ids=[1])
    comp.spin_once(FrameInput(0.0, landmarks=lmk, planes=[p1]))
    comp.spin_once(FrameInput(1.0, landmarks=lmk, planes=[p1]))
    update = comp.spin_once(FrameInput(2.0, landmarks=lmk, planes=[]))
    left = [w for w in update.widgets if 'Plane' in w or w.startswith('Line 1-')]
    assert not left, f'plane widgets left behind: {left}'
    assert len(update.removals) == 3, f'unexpected removals: {update.removals}'
    print('OK: plane, label and constraint line retired together.')


if __name__ == '__main__':
    main()
