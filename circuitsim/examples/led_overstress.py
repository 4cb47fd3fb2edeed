"""
LED overstress timeline.

A blue LED on a 5 V bench supply through a series resistor that puts it
slightly above its 20 mA rating: thermal energy climbs, the LED flickers
("hot"), the explosion timer arms and the die finally blows. Afterwards the
solver reports the current an intact LED would have drawn.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[2]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import matplotlib.pyplot as plt
import numpy as np

from circuitsim import Simulation
from circuitsim.bridge import InlineDispatcher


def main() -> None:
    elements = [
        {"id": "psu", "type": "powersupply", "properties": {"vSet": 5.0, "iLimit": 1.0},
         "nodes": [{"id": "psu-n", "placeholder": "Negative"}, {"id": "psu-p", "placeholder": "Positive"}]},
        {"id": "r1", "type": "resistor", "properties": {"resistance": 94.0},
         "nodes": [{"id": "r1-a"}, {"id": "r1-b"}]},
        {"id": "led1", "type": "led", "properties": {"color": "blue"},
         "nodes": [{"id": "led1-c", "placeholder": "Cathode"}, {"id": "led1-a", "placeholder": "Anode"}]},
    ]
    wires = [
        {"id": "w1", "fromNodeId": "psu-p", "toNodeId": "r1-a"},
        {"id": "w2", "fromNodeId": "r1-b", "toNodeId": "led1-a"},
        {"id": "w3", "fromNodeId": "led1-c", "toNodeId": "psu-n"},
    ]

    dt = 0.02
    t, energy, brightness, current = [], [], [], []
    with Simulation(dispatcher=InlineDispatcher()) as sim:
        for k in range(400):
            now_ms = k * dt * 1e3
            elements = sim.step(elements, wires, dt=dt, now_ms=now_ms)
            led = next(el for el in elements if el.id == "led1")
            rt = led.runtime["led"]
            t.append(now_ms / 1e3)
            energy.append(rt.thermal_energy)
            brightness.append(rt.brightness)
            current.append(led.computed.current)
            if rt.exploded:
                print(f"Exploded at t = {now_ms / 1e3:.2f} s ({rt.failure_reason})")
                break

        elements = sim.step(elements, wires, dt=dt, now_ms=(k + 1) * dt * 1e3)
        led = next(el for el in elements if el.id == "led1")
        print(f"Estimated current if intact: {led.computed.explosion_current_estimate * 1e3:.1f} mA")

    fig, axes = plt.subplots(3, 1, sharex=True, figsize=(7, 6))
    axes[0].plot(t, np.array(current) * 1e3)
    axes[0].set_ylabel("I [mA]")
    axes[1].plot(t, energy)
    axes[1].set_ylabel("Thermal energy")
    axes[2].plot(t, brightness)
    axes[2].set_ylabel("Brightness")
    axes[2].set_xlabel("Time [s]")
    for ax in axes:
        ax.grid(True)
    fig.suptitle("LED overstress")
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
