from __future__ import annotations
from typing import Iterable, Tuple

from .base import Passive


class SlideSwitch(Passive):
    """
    Single-pole double-throw switch, nodes [terminal 1, common, terminal 2].

    A closed contact is an ideal short: it merges node classes in the topology
    resolver instead of being stamped.
    """

    def internal_shorts(self) -> Iterable[Tuple[str, str]]:
        t1, common, t2 = (self.element.node_id(i) for i in range(3))
        position = str(self.element.prop("switchPosition", "left")).lower()
        other = t2 if position == "right" else t1
        if common is not None and other is not None:
            yield common, other


class PushButton(Passive):
    """
    Momentary push button.

    The four-pin part always ties Terminal 1a-1b and 2a-2b; `pressed` joins
    side 1 to side 2. A two-pin part joins nodes[0] and nodes[1] when pressed.
    """

    def internal_shorts(self) -> Iterable[Tuple[str, str]]:
        el = self.element
        labels = ("Terminal 1a", "Terminal 1b", "Terminal 2a", "Terminal 2b")
        n1a, n1b, n2a, n2b = (el.node(label) for label in labels)
        pressed = bool(el.prop("pressed", False))
        if n1a is None and n2a is None:
            if pressed and len(el.nodes) >= 2:
                yield el.node_id(0), el.node_id(1)
            return
        if n1a is not None and n1b is not None:
            yield n1a.id, n1b.id
        if n2a is not None and n2b is not None:
            yield n2a.id, n2b.id
        if pressed:
            side1 = n1a or n1b
            side2 = n2a or n2b
            if side1 is not None and side2 is not None:
                yield side1.id, side2.id
