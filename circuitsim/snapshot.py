"""
Snapshot model exchanged with the editing layer once per tick.

The editor hands over plain mappings in camelCase (`fromNodeId`, `parentId`, ...).
They are parsed into frozen dataclasses here and written back with `to_dict()`;
keys the simulator does not understand (position, color, joints) ride along in
`extra` untouched.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, asdict, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import math
import re


CONTROLLER_TYPES = ("microbit", "microbitWithBreakout")

# Meter reading written for an infinite resistance.
OVERLOAD = "OL"


class SnapshotError(ValueError):
    """Raised when a snapshot entry cannot be interpreted at all."""


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _camel_dict(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {_camel(k) if isinstance(k, str) else k: _camel_dict(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_camel_dict(v) for v in obj]
    return obj


def _from_mapping(cls, data: Mapping[str, Any]):
    names = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in data.items():
        snake = _snake(key)
        if snake in names:
            kwargs[snake] = value
    return cls(**kwargs)


@dataclass(frozen=True)
class Node:
    """
    One electrical terminal of an element.

    Attributes:
        id: Unique terminal id.
        parent_id: Id of the owning element.
        placeholder: Optional role label ("GND", "3.3V", "P0", "Anode", ...).
        polarity: Optional "positive"/"negative" hint for two-terminal sources.
    """
    id: str
    parent_id: str | None = None
    placeholder: str | None = None
    polarity: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        if "id" not in data:
            raise SnapshotError("Node entry is missing 'id'.")
        return _from_mapping(cls, data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "parentId": self.parent_id}
        if self.placeholder is not None:
            out["placeholder"] = self.placeholder
        if self.polarity is not None:
            out["polarity"] = self.polarity
        return out


@dataclass(frozen=True)
class Wire:
    id: str
    from_node_id: str | None
    to_node_id: str | None
    deleted: bool = False
    hidden: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Wire":
        known = {"id", "fromNodeId", "toNodeId", "deleted", "hidden"}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(
            id=str(data.get("id", "")),
            from_node_id=data.get("fromNodeId"),
            to_node_id=data.get("toNodeId"),
            deleted=bool(data.get("deleted", False)),
            hidden=bool(data.get("hidden", False)),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "fromNodeId": self.from_node_id,
            "toNodeId": self.to_node_id,
            "deleted": self.deleted,
            "hidden": self.hidden,
        }


@dataclass(frozen=True)
class ChannelResult:
    """Per-die electrical readout of an RGB LED."""
    forward_voltage: float = 0.0
    reverse_voltage: float = 0.0
    current: float = 0.0
    power: float = 0.0


@dataclass(frozen=True)
class Computed:
    """
    Electrical quantities derived for one element in one tick.

    `voltage` is the terminal voltage (first node minus second node, or the
    forward drop for LEDs); `current` and `power` follow the element's own
    convention (delivered for sources, dissipated for loads).

    An ohmmeter reads `inf` on an open circuit and `nan` in a powered circuit.
    `to_dict()` writes these as "OL" (overload, as a meter display shows it)
    and null, so the editor mapping stays strict JSON.
    """
    current: float = 0.0
    voltage: float = 0.0
    power: float = 0.0
    measurement: float = 0.0
    shorted: bool = False
    supply_mode: str | None = None
    forward_voltage: float | None = None
    reverse_voltage: float | None = None
    explosion_current_estimate: float | None = None
    channels: Mapping[str, ChannelResult] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Computed":
        data = dict(data)
        if "measurement" in data:
            data["measurement"] = _measurement_from_json(data["measurement"])
        channels = data.get("channels")
        if isinstance(channels, Mapping):
            data["channels"] = {
                ch: v if isinstance(v, ChannelResult) else _from_mapping(ChannelResult, v)
                for ch, v in channels.items()
            }
        return _from_mapping(cls, data)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        out = _camel_dict({k: v for k, v in data.items() if v is not None})
        out["measurement"] = _measurement_to_json(self.measurement)
        return out


def _measurement_to_json(value: float) -> float | str | None:
    if math.isnan(value):
        return None
    if math.isinf(value):
        return OVERLOAD if value > 0 else "-" + OVERLOAD
    return value


def _measurement_from_json(value: Any) -> float:
    if value is None:
        return math.nan
    if value == OVERLOAD:
        return math.inf
    if value == "-" + OVERLOAD:
        return -math.inf
    return float(value)


@dataclass(frozen=True)
class LedRuntime:
    """
    Time-evolving state of one LED die.

    `seed` drives both the flicker phase and the explosion delay so a given
    element always fails the same way.
    """
    brightness: float = 0.0
    thermal_energy: float = 0.0
    exploded: bool = False
    visual_state: str = "off"
    seed: int = 0
    flicker_seed: float = 0.0
    pending_explosion_at: float | None = None
    smoke_started_at: float | None = None
    failure_reason: str | None = None
    explosion_current: float | None = None
    last_update_at: float | None = None


@dataclass(frozen=True)
class MotorRuntime:
    angular_speed: float = 0.0
    rpm: float = 0.0
    last_update_at: float | None = None


RGB_CHANNELS = ("red", "green", "blue")


def _runtime_from_dict(data: Mapping[str, Any] | None) -> Dict[str, Any]:
    if not data:
        return {}
    out: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, (LedRuntime, MotorRuntime)):
            out[key] = value
        elif key == "led" and isinstance(value, Mapping):
            out[key] = _from_mapping(LedRuntime, value)
        elif key == "motor" and isinstance(value, Mapping):
            out[key] = _from_mapping(MotorRuntime, value)
        elif key == "rgbled" and isinstance(value, Mapping):
            out[key] = {
                ch: (v if isinstance(v, LedRuntime) else _from_mapping(LedRuntime, v))
                for ch, v in value.items()
                if ch in RGB_CHANNELS
            }
        else:
            out[key] = value
    return out


def _runtime_to_dict(runtime: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in runtime.items():
        if isinstance(value, (LedRuntime, MotorRuntime)):
            out[key] = _camel_dict(asdict(value))
        elif isinstance(value, Mapping):
            out[key] = {
                k: _camel_dict(asdict(v)) if isinstance(v, LedRuntime) else v
                for k, v in value.items()
            }
        else:
            out[key] = value
    return out


@dataclass(frozen=True)
class Element:
    """
    A placed component.

    The solver reads only `type`, `properties`, the node ids/labels and, for
    LEDs and motors, the previous `runtime`. `controller` mirrors the state an
    attached controller simulator reports (driven pins, LED matrix).
    """
    id: str
    type: str
    nodes: Tuple[Node, ...] = ()
    properties: Mapping[str, Any] = field(default_factory=dict)
    computed: Computed | None = None
    runtime: Mapping[str, Any] = field(default_factory=dict)
    controller: Mapping[str, Any] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Element":
        if "id" not in data or "type" not in data:
            raise SnapshotError(f"Element entry needs 'id' and 'type': {dict(data)!r}")
        known = {"id", "type", "nodes", "properties", "computed", "runtime", "controller"}
        computed = data.get("computed")
        if isinstance(computed, Mapping):
            computed = Computed.from_dict(computed)
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            nodes=tuple(n if isinstance(n, Node) else Node.from_dict(n) for n in data.get("nodes") or ()),
            properties=dict(data.get("properties") or {}),
            computed=computed if isinstance(computed, Computed) else None,
            runtime=_runtime_from_dict(data.get("runtime")),
            controller=data.get("controller"),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            **self.extra,
            "id": self.id,
            "type": self.type,
            "nodes": [n.to_dict() for n in self.nodes],
            "properties": dict(self.properties),
            "runtime": _runtime_to_dict(self.runtime),
        }
        if self.computed is not None:
            out["computed"] = self.computed.to_dict()
        if self.controller is not None:
            out["controller"] = self.controller
        return out

    # ---- terminal lookup ----
    def node_id(self, index: int) -> str | None:
        if 0 <= index < len(self.nodes):
            return self.nodes[index].id
        return None

    def node(self, label: str) -> Node | None:
        for n in self.nodes:
            if n.placeholder == label:
                return n
        return None

    def nodes_with(self, prefix: str) -> List[Node]:
        prefix = prefix.upper()
        return [n for n in self.nodes if n.placeholder and n.placeholder.upper().startswith(prefix)]

    def prop(self, name: str, default: Any = None) -> Any:
        value = self.properties.get(name)
        return default if value is None else value

    # ---- functional updates ----
    def with_computed(self, computed: Computed | None) -> "Element":
        return replace(self, computed=computed)

    def with_runtime(self, **entries: Any) -> "Element":
        return replace(self, runtime={**self.runtime, **entries})


def coerce_elements(items: Iterable[Element | Mapping[str, Any]]) -> List[Element]:
    """
    Accept dataclasses or raw mappings and return a list of `Element`.

    Raises:
        SnapshotError: If an entry lacks id/type or two elements share an id.
    """
    out: List[Element] = []
    seen: set[str] = set()
    for item in items:
        el = item if isinstance(item, Element) else Element.from_dict(item)
        if el.id in seen:
            raise SnapshotError(f"Duplicate element id '{el.id}'.")
        seen.add(el.id)
        out.append(el)
    return out


def coerce_wires(items: Iterable[Wire | Mapping[str, Any]]) -> List[Wire]:
    return [w if isinstance(w, Wire) else Wire.from_dict(w) for w in items]


def led_runtime(element: Element, channel: Optional[str] = None) -> LedRuntime | None:
    if channel is None:
        return element.runtime.get("led")
    return (element.runtime.get("rgbled") or {}).get(channel)
