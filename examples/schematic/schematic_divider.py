"""
Example: Compiling a Drawn Schematic

The editor hands over components with absolute pin coordinates and
wires as polylines. compile_schematic() merges coincident points into
nodes, numbers them and returns a ready solver.

        (0,0) +-----wire-----+ (100,0)
              |              |
             [V1]           [R1]
              |              |
        (0,100)+            + (100,50) --- wire --- (100,60)
              |                                         |
             GND (0,120)                              [R2]
                                                        |
                                                    (100,100) --- wire back to (0,100)
"""
import logging

from circuitforge.engine import compile_schematic, point_voltages, Point

SCHEMATIC = {
    "components": [
        {"id": "V1", "kind": "VDC", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 100}], "params": {"V": "12"}},
        {"id": "R1", "kind": "R", "pins": [{"x": 100, "y": 0}, {"x": 100, "y": 50}], "params": {"R": "1k"}},
        {"id": "R2", "kind": "R", "pins": [{"x": 100, "y": 60}, {"x": 100, "y": 100}], "params": {"R": "2k"}},
        {"id": "G1", "kind": "GND", "pins": [{"x": 0, "y": 120}]},
    ],
    "wires": [
        {"points": [{"x": 0, "y": 0}, {"x": 100, "y": 0}]},
        {"points": [{"x": 0, "y": 100}, {"x": 100, "y": 100}]},
        {"points": [{"x": 0, "y": 100}, {"x": 0, "y": 120}]},
        {"points": [{"x": 100, "y": 50}, {"x": 100, "y": 60}]},
    ],
}


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("=" * 60)
    print("Schematic -> Netlist -> DC Solve")
    print("=" * 60)

    netlist, solver = compile_schematic(SCHEMATIC)

    print("\n   Nodes:")
    for node in netlist.nodes:
        print(f"     {node.id}: {node.name}")

    print("\n   Devices:")
    for spec in netlist.devices:
        print(f"     {spec.name:<4} {spec.kind:<4} nodes={spec.nodes}")

    result = solver.run_dc()
    print(f"\n   DC converged={result.converged} in {result.iterations} iterations")
    for name, v in solver.node_voltages().items():
        print(f"     V({name}) = {v:.4f} V")

    print("\n   Wire colouring (voltage per point):")
    for p, v in point_voltages(netlist, solver, netlist.point_to_node).items():
        print(f"     ({p.x:>5}, {p.y:>5}) -> {v:.3f} V")

    print(f"\n   I(V1) = {solver.branch_current('V1') * 1e3:.3f} mA")
    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
