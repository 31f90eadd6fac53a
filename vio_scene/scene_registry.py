#!/usr/bin/env python3
"""Name-keyed store of the widgets currently in the scene."""

from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterator, List, Optional, Set

from .datamodel import Widget

logger = logging.getLogger(__name__)


class SceneRegistry:
    """Single source of truth for what the scene shows this frame.

    Iteration follows insertion order. Removals are remembered until drained so
    the composer can hand them to the rendering backend; only ids the backend
    has already been given (by a previous drain) are reported.
    """

    def __init__(self):
        self._widgets: Dict[str, Widget] = {}
        self._removed: List[str] = []
        self._emitted: Set[str] = set()

    def __len__(self) -> int:
        return len(self._widgets)

    def __iter__(self) -> Iterator[Widget]:
        return iter(list(self._widgets.values()))

    def __contains__(self, widget_id: str) -> bool:
        return widget_id in self._widgets

    def contains(self, widget_id: str) -> bool:
        return widget_id in self._widgets

    def get(self, widget_id: str) -> Optional[Widget]:
        return self._widgets.get(widget_id)

    def ids(self) -> List[str]:
        return list(self._widgets.keys())

    def upsert(self, widget_id: str, widget: Widget) -> Widget:
        """Store a copy of widget under widget_id and return the stored copy.

        An update without an explicit transform keeps the pose of the widget it
        replaces. The caller's widget is left untouched.
        """
        transform = widget.transform
        existing = self._widgets.get(widget_id)
        if existing is not None and transform is None:
            transform = existing.transform
        stored = dataclasses.replace(widget, id=widget_id, transform=transform)
        # Re-created in the same frame: the backend must not drop it.
        if widget_id in self._removed:
            self._removed.remove(widget_id)
        self._widgets[widget_id] = stored
        return stored

    def remove(self, widget_id: str) -> bool:
        """Delete widget_id if present. Absent ids are ignored."""
        if self._widgets.pop(widget_id, None) is None:
            return False
        self._removed.append(widget_id)
        logger.debug('Removed widget %s', widget_id)
        return True

    def snapshot(self) -> Dict[str, Widget]:
        return dict(self._widgets)

    def drain_removals(self) -> List[str]:
        """Return removals of previously emitted ids and mark the current set emitted."""
        out = [widget_id for widget_id in self._removed if widget_id in self._emitted]
        self._removed = []
        self._emitted = set(self._widgets)
        return out

    def clear(self):
        for widget_id in list(self._widgets):
            self.remove(widget_id)
