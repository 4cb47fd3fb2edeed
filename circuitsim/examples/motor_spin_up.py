"""
DC motor spin-up on a 3 V cell.

The rotor accelerates under k_t * i; its back-EMF k_e * omega then lowers
the winding current until torque and friction balance.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[2]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import matplotlib.pyplot as plt

from circuitsim import Simulation
from circuitsim.bridge import InlineDispatcher


def main() -> None:
    elements = [
        {"id": "cell", "type": "cell3v",
         "nodes": [{"id": "cell-n", "placeholder": "Negative"}, {"id": "cell-p", "placeholder": "Positive"}]},
        {"id": "m1", "type": "dcmotor", "nodes": [{"id": "m1-a"}, {"id": "m1-b"}]},
    ]
    wires = [
        {"id": "w1", "fromNodeId": "cell-p", "toNodeId": "m1-a"},
        {"id": "w2", "fromNodeId": "m1-b", "toNodeId": "cell-n"},
    ]

    dt = 0.05
    t, rpm, current = [], [], []
    with Simulation(dispatcher=InlineDispatcher()) as sim:
        for k in range(600):
            elements = sim.step(elements, wires, dt=dt, now_ms=k * dt * 1e3)
            motor = next(el for el in elements if el.id == "m1")
            t.append(k * dt)
            rpm.append(motor.runtime["motor"].rpm)
            current.append(motor.computed.current)

    print(f"Final speed: {rpm[-1]:.0f} rpm, current {current[-1] * 1e3:.1f} mA")

    fig, (ax1, ax2) = plt.subplots(2, 1, sharex=True, figsize=(7, 5))
    ax1.plot(t, rpm)
    ax1.set_ylabel("Speed [rpm]")
    ax2.plot(t, [i * 1e3 for i in current])
    ax2.set_ylabel("Current [mA]")
    ax2.set_xlabel("Time [s]")
    for ax in (ax1, ax2):
        ax.grid(True)
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
