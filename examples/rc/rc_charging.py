"""
Example: RC Charging

A 5V step charges a capacitor through a resistor:

    V_c(t) = V_s * (1 - exp(-t / RC))

Backward Euler lags the analytic curve slightly; the error shrinks
with the time step.

Components used: Resistor, Capacitor, DCVoltageSource
"""
import math

from circuitforge.engine import (
    Solver, SolverOptions, Resistor, Capacitor, DCVoltageSource, run_transient,
)


def build_rc(V_s=5.0, R_val=1e3, C_val=1e-6, dt=1e-5):
    """
    Circuit:
        Vs ---[R]---+--- Vc
                    |
                   [C]
                    |
                   GND
    """
    solver = Solver(SolverOptions(dt=dt))
    n_in = solver.add_node("in")
    n_cap = solver.add_node("cap")

    solver.add_device(DCVoltageSource(n_in, 0, V_s, name="vs"))
    solver.add_device(Resistor(n_in, n_cap, R_val, name="R1"))
    solver.add_device(Capacitor(n_cap, 0, C_val, name="C1"))
    solver.finalize()
    return solver, n_cap


def simulate_rc(V_s=5.0, R_val=1e3, C_val=1e-6, dt=1e-5, n_tau=5):
    solver, n_cap = build_rc(V_s, R_val, C_val, dt)
    tau = R_val * C_val
    return run_transient(solver, n_tau * tau, probes=(n_cap,)), n_cap, tau


def main():
    print("=" * 60)
    print("RC Charging Example (R = 1k, C = 1uF, tau = 1ms)")
    print("=" * 60)

    V_s = 5.0
    wave, n_cap, tau = simulate_rc(V_s=V_s)
    trace = wave.trace(n_cap)
    steps_per_tau = len(wave.time) // 5

    print(f"\n   {'t/tau':>6}  {'simulated':>10}  {'analytic':>10}")
    for k in range(1, 6):
        i = k * steps_per_tau - 1
        t = float(wave.time[i])
        analytic = V_s * (1 - math.exp(-t / tau))
        print(f"   {t / tau:>6.2f}  {float(trace[i]):>10.4f}  {analytic:>10.4f}")

    print("\n   Effect of time step at t = tau:")
    for dt in (1e-4, 1e-5, 1e-6):
        wave, n_cap, tau = simulate_rc(V_s=V_s, dt=dt, n_tau=1)
        v = float(wave.trace(n_cap)[-1])
        err = abs(v - V_s * (1 - math.exp(-1)))
        print(f"   dt = {dt:.0e}:  Vc = {v:.4f} V  (error {err:.2e} V)")

    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
