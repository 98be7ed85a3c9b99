"""
Example: NMOS Inverter with Resistive Load

    VDD ---[R_load]---+--- Vout
                      |
                   D  |
               G --|[ NMOS
                   S  |
                      |
                     GND

Sweeps the gate voltage and prints the DC transfer curve. Each point
is a separate Newton-Raphson solve seeded from the previous one.

Components used: Resistor, DCVoltageSource, MOSFET
"""
import jax.numpy as jnp

from circuitforge.engine import Solver, Resistor, DCVoltageSource, MOSFET


def build_inverter(v_in, vdd=5.0, r_load=10e3):
    solver = Solver()
    n_vdd = solver.add_node("vdd")
    n_in = solver.add_node("in")
    n_out = solver.add_node("out")

    solver.add_device(DCVoltageSource(n_vdd, 0, vdd, name="VDD"))
    solver.add_device(DCVoltageSource(n_in, 0, v_in, name="VIN"))
    solver.add_device(Resistor(n_vdd, n_out, r_load, name="RL"))
    solver.add_device(MOSFET("NMOS", n_out, n_in, 0, name="M1"))
    solver.finalize()
    return solver, n_out


def transfer_curve(v_in_values, vdd=5.0, r_load=10e3):
    """DC output voltage and drain current for each gate voltage."""
    points = []
    for v_in in v_in_values:
        solver, n_out = build_inverter(float(v_in), vdd, r_load)
        result = solver.run_dc()
        m1 = solver.device("M1")
        points.append((
            float(v_in),
            solver.voltage(n_out),
            m1.drain_current(solver.solution),
            result.iterations,
            result.converged,
        ))
    return points


def main():
    print("=" * 60)
    print("NMOS Inverter (KP = 140uA/V^2, VTO = 0.7V, R_load = 10k)")
    print("=" * 60)

    print(f"\n   {'Vin':>5}  {'Vout':>8}  {'Id (uA)':>9}  {'iters':>5}")
    for v_in, v_out, i_d, iters, converged in transfer_curve(jnp.linspace(0.0, 5.0, 11)):
        flag = "" if converged else "  (not converged)"
        print(f"   {v_in:>5.2f}  {v_out:>8.4f}  {i_d * 1e6:>9.2f}  {iters:>5d}{flag}")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
