"""
Example: Voltage Divider

Demonstrates the voltage divider rule: V_out = V_in * R2 / (R1 + R2)

Two examples:
1. Simple 2-resistor divider at several resistor ratios
2. 4-resistor divider chain showing multiple tap points

Components used: Resistor, DCVoltageSource
"""
from circuitforge.engine import Solver, Resistor, DCVoltageSource


def build_simple_divider(V_in=10.0, R1=10e3, R2=10e3):
    """Build a simple 2-resistor voltage divider.

    Circuit:
        Vs ---[R1]---+---[R2]--- GND
                     |
                    Vout
    """
    solver = Solver()
    n_top = solver.add_node("top")
    n_mid = solver.add_node("mid")

    solver.add_device(DCVoltageSource(n_top, 0, V_in, name="vs"))
    solver.add_device(Resistor(n_top, n_mid, R1, name="R1"))
    solver.add_device(Resistor(n_mid, 0, R2, name="R2"))
    solver.finalize()

    return solver, {"top": n_top, "mid": n_mid}


def build_chain_divider(V_in=10.0, R_val=10e3):
    """Build a 4-resistor chain divider with multiple taps.

    Circuit:
        Vs ---[R1]---+---[R2]---+---[R3]---+---[R4]--- GND
                     |          |          |
                   tap1       tap2       tap3
    """
    solver = Solver()
    names = ["top", "tap1", "tap2", "tap3"]
    nodes = {name: solver.add_node(name) for name in names}

    solver.add_device(DCVoltageSource(nodes["top"], 0, V_in, name="vs"))
    chain = [nodes[name] for name in names] + [0]
    for i, (a, b) in enumerate(zip(chain, chain[1:]), start=1):
        solver.add_device(Resistor(a, b, R_val, name=f"R{i}"))
    solver.finalize()

    return solver, nodes


def simulate_simple_divider(V_in=10.0, R1=10e3, R2=10e3):
    """Solve the DC operating point and return the output voltage."""
    solver, nodes = build_simple_divider(V_in, R1, R2)
    solver.run_dc()
    return solver.voltage(nodes["mid"])


def simulate_chain_divider(V_in=10.0, R_val=10e3):
    """Solve the chain divider and return tap voltages."""
    solver, nodes = build_chain_divider(V_in, R_val)
    solver.run_dc()
    return {name: solver.voltage(nodes[name]) for name in ("tap1", "tap2", "tap3")}


def main():
    print("=" * 60)
    print("Voltage Divider Example")
    print("=" * 60)

    V_in = 10.0

    print("\n1. Simple Voltage Divider")
    print("-" * 40)
    for R1, R2 in [(10e3, 10e3), (10e3, 20e3), (1e3, 2e3)]:
        v_out = simulate_simple_divider(V_in=V_in, R1=R1, R2=R2)
        expected = V_in * R2 / (R1 + R2)
        print(f"   R1={R1:>7.0f}  R2={R2:>7.0f}  Vout={v_out:.4f} V  (expected {expected:.4f} V)")

    print("\n2. 4-Resistor Chain (equal 10k resistors)")
    print("-" * 40)
    taps = simulate_chain_divider(V_in=V_in)
    print(f"   Tap 1 (75%):      {taps['tap1']:.4f} V (expected: {V_in*0.75:.2f})")
    print(f"   Tap 2 (50%):      {taps['tap2']:.4f} V (expected: {V_in*0.50:.2f})")
    print(f"   Tap 3 (25%):      {taps['tap3']:.4f} V (expected: {V_in*0.25:.2f})")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
