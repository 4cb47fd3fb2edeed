"""
DC example: 9 V battery (1.45 Ω internal) driving a 1 kΩ resistor.

Expected: I ≈ 8.99 mA, P_R ≈ 80.8 mW. A voltmeter across the resistor and an
ammeter in series read the same operating point. The resistance is then swept
and the load line plotted.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parents[2]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import matplotlib.pyplot as plt
import numpy as np

from circuitsim import solve


def node(element_id: str, suffix: str, label: str | None = None) -> dict:
    return {"id": f"{element_id}-{suffix}", "parentId": element_id, "placeholder": label}


def build(resistance: float) -> tuple[list[dict], list[dict]]:
    elements = [
        {"id": "bat", "type": "battery",
         "nodes": [node("bat", "n", "Negative"), node("bat", "p", "Positive")]},
        {"id": "amm", "type": "multimeter", "properties": {"mode": "current"},
         "nodes": [node("amm", "p", "Positive"), node("amm", "n", "Negative")]},
        {"id": "r1", "type": "resistor", "properties": {"resistance": resistance},
         "nodes": [node("r1", "a"), node("r1", "b")]},
        {"id": "vm", "type": "multimeter", "properties": {"mode": "voltage"},
         "nodes": [node("vm", "p", "Positive"), node("vm", "n", "Negative")]},
    ]
    wires = [
        {"id": "w1", "fromNodeId": "bat-p", "toNodeId": "amm-p"},
        {"id": "w2", "fromNodeId": "amm-n", "toNodeId": "r1-a"},
        {"id": "w3", "fromNodeId": "r1-b", "toNodeId": "bat-n"},
        {"id": "w4", "fromNodeId": "vm-p", "toNodeId": "r1-a"},
        {"id": "w5", "fromNodeId": "vm-n", "toNodeId": "r1-b"},
    ]
    return elements, wires


def main() -> None:
    elements, wires = build(1000.0)
    by_id = {el.id: el for el in solve(elements, wires)}

    r1 = by_id["r1"].computed
    print(f"I_R1     = {r1.current * 1e3:.3f} mA")
    print(f"P_R1     = {r1.power * 1e3:.2f} mW")
    print(f"Ammeter  = {by_id['amm'].computed.measurement * 1e3:.3f} mA")
    print(f"Voltmeter= {by_id['vm'].computed.measurement:.3f} V")

    sweep = np.logspace(0, 4, 60)
    currents, voltages = [], []
    for r in sweep:
        solved = {el.id: el for el in solve(*build(float(r)))}
        currents.append(solved["r1"].computed.current)
        voltages.append(solved["vm"].computed.measurement)

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.plot(np.array(currents) * 1e3, voltages, marker=".")
    ax.set_xlabel("Load current [mA]")
    ax.set_ylabel("Terminal voltage [V]")
    ax.set_title("9 V battery load line")
    ax.grid(True)
    fig.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
