from __future__ import annotations
from typing import Dict, Tuple

from ...behavior.led import (
    RGB_FORWARD_VOLTAGE,
    RGB_SERIES_RESISTANCE,
    led_parameters,
)
from ...snapshot import RGB_CHANNELS, ChannelResult, Computed, led_runtime
from .base import Die, StaticElement, StampData


def _exploded(element, channel=None) -> bool:
    rt = led_runtime(element, channel)
    return bool(rt is not None and rt.exploded)


class Led(StaticElement):
    """
    Single-colour LED. nodes[0] is the cathode and nodes[1] the anode unless
    the nodes carry "Cathode"/"Anode" labels.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        cathode = element.node("Cathode")
        anode = element.node("Anode")
        self.cathode = cathode.id if cathode is not None else element.node_id(0)
        self.anode = anode.id if anode is not None else element.node_id(1)
        vf, rs = led_parameters(element.properties)
        self.die = Die(
            key=self.name,
            anode=self.anode,
            cathode=self.cathode,
            vf=vf,
            rs=rs,
            exploded=_exploded(element),
        )

    def dies(self) -> Tuple[Die, ...]:
        return (self.die,)

    def stamp(self, data: StampData) -> None:
        self.die.stamp(data)

    def results(self, solution) -> Computed:
        fwd = self.die.forward_voltage(solution)
        i = self.die.current(solution)
        return Computed(
            current=i,
            voltage=fwd,
            power=fwd * i,
            forward_voltage=fwd,
            reverse_voltage=max(0.0, -fwd),
        )


class RgbLed(StaticElement):
    """
    Three dies sharing one common terminal, nodes [red, common, green, blue].

    `rgbLedType` "common-anode" flips every die; the default is common cathode.
    """

    def __init__(self, element, config) -> None:
        super().__init__(element, config)
        common = element.node_id(1)
        pins = {"red": element.node_id(0), "green": element.node_id(2), "blue": element.node_id(3)}
        common_anode = str(element.prop("rgbLedType", "common-cathode")).lower() == "common-anode"
        self.channel_dies: Dict[str, Die] = {}
        for ch in RGB_CHANNELS:
            anode, cathode = (common, pins[ch]) if common_anode else (pins[ch], common)
            self.channel_dies[ch] = Die(
                key=f"{self.name}:{ch}",
                anode=anode,
                cathode=cathode,
                vf=RGB_FORWARD_VOLTAGE[ch],
                rs=RGB_SERIES_RESISTANCE[ch],
                exploded=_exploded(element, ch),
            )

    def dies(self) -> Tuple[Die, ...]:
        return tuple(self.channel_dies.values())

    def stamp(self, data: StampData) -> None:
        for die in self.channel_dies.values():
            die.stamp(data)

    def results(self, solution) -> Computed:
        channels = {}
        for ch, die in self.channel_dies.items():
            fwd = die.forward_voltage(solution)
            i = die.current(solution)
            channels[ch] = ChannelResult(
                forward_voltage=fwd,
                reverse_voltage=max(0.0, -fwd),
                current=i,
                power=fwd * i,
            )
        return Computed(
            current=sum(c.current for c in channels.values()),
            voltage=max(c.forward_voltage for c in channels.values()),
            power=sum(c.power for c in channels.values()),
            channels=channels,
        )
