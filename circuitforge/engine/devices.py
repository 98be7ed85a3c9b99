"""
Device models and their MNA stamps.

Every device implements the same capability set for both analyses:
    stamp_dc(G, I, solution)                  -> (G, I)
    stamp_transient(G, I, solution, dt, time) -> (G, I)
    update_state(solution, dt)                 snapshot history after a solve
    get_node_indices()                         node ids the device touches
    assign_extra(start_index)                  claim branch-current unknowns

G and I are immutable JAX arrays, so stamps return the updated pair.
Node 0 is ground and never has a row or column; node n maps to row n - 1.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import NamedTuple, Mapping, Sequence
import math

import jax.numpy as jnp
from jax import Array

from .mos_models import MosModel, model_card
from .units import parse_value

R_MIN = 1e-12
C_MIN = 1e-15
L_MIN = 1e-12

DEVICE_KINDS = ("R", "C", "L", "VDC", "VAC", "MOS")


class UnknownDeviceError(ValueError):
    """Raised when a netlist names a device kind without a model."""


def _index(node: int) -> int | None:
    """Matrix row of a node, None for ground."""
    return node - 1 if node > 0 else None


def _voltage(solution: Array, node: int) -> Array:
    """Voltage of a node in a solution vector (ground is 0V)."""
    if node > 0:
        return solution[node - 1]
    return jnp.array(0.0)


def _add_entries(G: Array, entries: list[tuple[int, int, object]]) -> Array:
    """Scatter-add (row, col, value) entries into G in one update."""
    if not entries:
        return G
    rows, cols, vals = zip(*entries)
    return G.at[jnp.array(rows), jnp.array(cols)].add(jnp.array(vals, dtype=G.dtype))


def _stamp_conductance(G: Array, n1: int, n2: int, g) -> Array:
    """
    Stamp conductance g between nodes n1 and n2.

    G[a, a] += g, G[b, b] += g, G[a, b] -= g, G[b, a] -= g
    with ground rows and columns dropped.
    """
    a, b = _index(n1), _index(n2)
    entries = []
    if a is not None:
        entries.append((a, a, g))
    if b is not None:
        entries.append((b, b, g))
    if a is not None and b is not None:
        entries.append((a, b, -g))
        entries.append((b, a, -g))
    return _add_entries(G, entries)


def _stamp_current(I: Array, n1: int, n2: int, i) -> Array:
    """Stamp a current source pushing i into n1 and drawing it from n2."""
    idx = []
    vals = []
    a, b = _index(n1), _index(n2)
    if a is not None:
        idx.append(a)
        vals.append(i)
    if b is not None:
        idx.append(b)
        vals.append(-i)
    if not idx:
        return I
    return I.at[jnp.array(idx)].add(jnp.array(vals, dtype=I.dtype))


def _stamp_branch(G: Array, n_plus: int, n_minus: int, k: int) -> Array:
    """
    Stamp the incidence of branch unknown k between two nodes.

    The branch current leaves n_plus, flows through the element and
    enters n_minus; row k reads v(n_plus) - v(n_minus).
    """
    a, b = _index(n_plus), _index(n_minus)
    entries = []
    if a is not None:
        entries.append((a, k, 1.0))
        entries.append((k, a, 1.0))
    if b is not None:
        entries.append((b, k, -1.0))
        entries.append((k, b, -1.0))
    return _add_entries(G, entries)


class Device(ABC):
    """Base class for all circuit elements."""

    kind: str = ""
    extra_vars: int = 0  # branch-current unknowns beyond node voltages

    def __init__(self, name: str = ""):
        self.name = name
        self.branch_index: int | None = None

    def assign_extra(self, start_index: int) -> int:
        """
        Claim extra_vars contiguous unknowns starting at start_index.

        Returns:
            The next free unknown index
        """
        if self.extra_vars == 0:
            return start_index
        self.branch_index = start_index
        return start_index + self.extra_vars

    @abstractmethod
    def stamp_dc(self, G: Array, I: Array, solution: Array) -> tuple[Array, Array]:
        """Stamp the DC operating point equations."""

    @abstractmethod
    def stamp_transient(
        self, G: Array, I: Array, solution: Array, dt: float, time: float
    ) -> tuple[Array, Array]:
        """Stamp the backward-Euler equations for one time step."""

    def update_state(self, solution: Array, dt: float) -> None:
        """Snapshot history from an accepted solution (stateless by default)."""

    @abstractmethod
    def get_node_indices(self) -> tuple[int, ...]:
        """Node ids this device is connected to."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, nodes={self.get_node_indices()})"


class Resistor(Device):
    kind = "R"

    def __init__(self, n1: int, n2: int, R: float, *, name: str = ""):
        super().__init__(name)
        self.n1 = n1
        self.n2 = n2
        self.R = max(R_MIN, R)

    def stamp_dc(self, G, I, solution):
        return _stamp_conductance(G, self.n1, self.n2, 1.0 / self.R), I

    def stamp_transient(self, G, I, solution, dt, time):
        return self.stamp_dc(G, I, solution)

    def get_node_indices(self):
        return (self.n1, self.n2)


class Capacitor(Device):
    """
    Capacitor with backward-Euler companion model.

    Open circuit at DC. In transient it becomes a conductance C/dt in
    parallel with a current source (C/dt) * v_prev.
    """
    kind = "C"

    def __init__(self, n1: int, n2: int, C: float, *, ic: float = 0.0, name: str = ""):
        super().__init__(name)
        self.n1 = n1
        self.n2 = n2
        self.C = max(C_MIN, C)
        self.v_prev = float(ic)

    def stamp_dc(self, G, I, solution):
        return G, I

    def stamp_transient(self, G, I, solution, dt, time):
        g_eq = self.C / dt
        i_eq = g_eq * self.v_prev
        G = _stamp_conductance(G, self.n1, self.n2, g_eq)
        I = _stamp_current(I, self.n1, self.n2, i_eq)
        return G, I

    def update_state(self, solution, dt):
        self.v_prev = float(_voltage(solution, self.n1) - _voltage(solution, self.n2))

    def get_node_indices(self):
        return (self.n1, self.n2)


class Inductor(Device):
    """
    Inductor with its branch current as an MNA unknown.

    DC: zero-volt short. Transient (backward Euler):
        v(n1) - v(n2) - (L/dt) * i = -(L/dt) * i_prev
    """
    kind = "L"
    extra_vars = 1

    def __init__(self, n1: int, n2: int, L: float, *, ic: float = 0.0, name: str = ""):
        super().__init__(name)
        self.n1 = n1
        self.n2 = n2
        self.L = max(L_MIN, L)
        self.i_prev = float(ic)

    def stamp_dc(self, G, I, solution):
        return _stamp_branch(G, self.n1, self.n2, self.branch_index), I

    def stamp_transient(self, G, I, solution, dt, time):
        k = self.branch_index
        r_eq = self.L / dt
        G = _stamp_branch(G, self.n1, self.n2, k)
        G = G.at[k, k].add(-r_eq)
        I = I.at[k].add(-r_eq * self.i_prev)
        return G, I

    def update_state(self, solution, dt):
        if self.branch_index is None:
            return
        self.i_prev = float(solution[self.branch_index])

    def get_node_indices(self):
        return (self.n1, self.n2)


class _VoltageSource(Device):
    """Shared MNA stamp enforcing v(n_plus) - v(n_minus) = value."""
    extra_vars = 1

    def __init__(self, n_plus: int, n_minus: int, *, name: str = ""):
        super().__init__(name)
        self.n_plus = n_plus
        self.n_minus = n_minus

    def _stamp_value(self, G: Array, I: Array, value: float) -> tuple[Array, Array]:
        k = self.branch_index
        G = _stamp_branch(G, self.n_plus, self.n_minus, k)
        I = I.at[k].add(value)
        return G, I

    def get_node_indices(self):
        return (self.n_plus, self.n_minus)


class DCVoltageSource(_VoltageSource):
    kind = "VDC"

    def __init__(self, n_plus: int, n_minus: int, voltage: float, *, name: str = ""):
        super().__init__(n_plus, n_minus, name=name)
        self.voltage = voltage

    def stamp_dc(self, G, I, solution):
        return self._stamp_value(G, I, self.voltage)

    def stamp_transient(self, G, I, solution, dt, time):
        return self._stamp_value(G, I, self.voltage)


class ACVoltageSource(_VoltageSource):
    """Sine source: offset + v_peak * sin(2*pi*freq*t + phase). DC sees offset only."""
    kind = "VAC"

    def __init__(
        self,
        n_plus: int,
        n_minus: int,
        *,
        v_peak: float = 1.0,
        freq: float = 1.0,
        phase: float = 0.0,
        offset: float = 0.0,
        name: str = "",
    ):
        super().__init__(n_plus, n_minus, name=name)
        self.v_peak = v_peak
        self.freq = freq
        self.phase = phase
        self.offset = offset

    def value_at(self, time: float) -> float:
        return self.offset + self.v_peak * math.sin(2 * math.pi * self.freq * time + self.phase)

    def stamp_dc(self, G, I, solution):
        return self._stamp_value(G, I, self.offset)

    def stamp_transient(self, G, I, solution, dt, time):
        return self._stamp_value(G, I, self.value_at(time))


class MosOperatingPoint(NamedTuple):
    """Drain current and its Jacobian entries at one bias point."""
    ids: Array  # drain-to-source current (A)
    gm: Array   # d(ids)/d(vgs) (S)
    gds: Array  # d(ids)/d(vds) (S)


def square_law(vgs, vds, vth, k, lam) -> MosOperatingPoint:
    """
    Level-1 square-law drain current with channel-length modulation, for vds >= 0.

    Regions (vgt = vgs - vth):
        off:        vgs <= vth             ids = 0
        triode:     vds <  vgt             ids = k*(vgt*vds - vds^2/2)*(1 + lam*vds)
        saturation: vds >= vgt             ids = k/2*vgt^2*(1 + lam*vds)

    gm and gds are the exact partial derivatives, so ids and gds are
    continuous at the triode/saturation boundary. Pure jnp, so the
    result can be differentiated or jitted.
    """
    vgs = jnp.asarray(vgs, dtype=float)
    vds = jnp.asarray(vds, dtype=float)
    vgt = vgs - vth
    clm = 1.0 + lam * vds

    lin = vgt * vds - 0.5 * vds * vds
    triode_ids = k * lin * clm
    triode_gm = k * vds * clm
    triode_gds = k * (vgt - vds) * clm + k * lin * lam

    sat_ids = 0.5 * k * vgt * vgt * clm
    sat_gm = k * vgt * clm
    sat_gds = 0.5 * k * vgt * vgt * lam

    on = vgs > vth
    triode = vds < vgt

    def region(triode_val, sat_val):
        return jnp.where(on, jnp.where(triode, triode_val, sat_val), 0.0)

    return MosOperatingPoint(
        ids=region(triode_ids, sat_ids),
        gm=region(triode_gm, sat_gm),
        gds=region(triode_gds, sat_gds),
    )


class MOSFET(Device):
    """
    Quasi-static level-1 MOSFET (no gate or junction capacitance).

    Stamps the Newton companion model linearized at the given solution:
        i_d = gm*(vg - vs) + gds*(vd - vs) + s*(ids - gm*vgs - gds*vds)
    with s = +1 for NMOS and -1 for PMOS, and vgs/vds sign-flipped for PMOS.

    The channel is symmetric: when the polarity-corrected vds is negative
    the drain and source terminals swap roles, so square_law only ever
    sees vds >= 0.
    """
    kind = "MOS"

    def __init__(
        self,
        polarity: str,
        nd: int,
        ng: int,
        ns: int,
        params: Mapping[str, object] | None = None,
        *,
        name: str = "",
    ):
        super().__init__(name)
        self.model: MosModel = model_card(polarity, params)
        self.polarity = polarity.upper()
        self.nd = nd
        self.ng = ng
        self.ns = ns
        self.sign = -1.0 if self.polarity == "PMOS" else 1.0
        self.vth = self.sign * self.model.VTO
        self.k = self.model.KP * self.model.W / max(self.model.L, L_MIN)

    def terminals(self, solution: Array) -> tuple[int, int]:
        """(drain, source) node ids acting at a solution, swapped when reverse biased."""
        vd = _voltage(solution, self.nd)
        vs = _voltage(solution, self.ns)
        if float(self.sign * (vd - vs)) < 0:
            return self.ns, self.nd
        return self.nd, self.ns

    def bias(self, solution: Array) -> tuple[Array, Array]:
        """Polarity-corrected (vgs, vds) of the oriented channel; vds >= 0."""
        nd, ns = self.terminals(solution)
        vd = _voltage(solution, nd)
        vg = _voltage(solution, self.ng)
        vs = _voltage(solution, ns)
        return self.sign * (vg - vs), self.sign * (vd - vs)

    def operating_point(self, solution: Array) -> MosOperatingPoint:
        vgs, vds = self.bias(solution)
        return square_law(vgs, vds, self.vth, self.k, self.model.LAMBDA)

    def drain_current(self, solution: Array) -> float:
        """Current flowing into the drain terminal (A)."""
        i_d = float(self.sign * self.operating_point(solution).ids)
        nd, _ = self.terminals(solution)
        return i_d if nd == self.nd else -i_d

    def _stamp_companion(self, G: Array, I: Array, solution: Array) -> tuple[Array, Array]:
        nd, ns = self.terminals(solution)
        vgs, vds = self.bias(solution)
        op = square_law(vgs, vds, self.vth, self.k, self.model.LAMBDA)
        gm, gds = op.gm, op.gds
        i_eq = self.sign * (op.ids - gm * vgs - gds * vds)

        d, g, s = _index(nd), _index(self.ng), _index(ns)
        entries = []
        if d is not None:
            if g is not None:
                entries.append((d, g, gm))
            if s is not None:
                entries.append((d, s, -(gm + gds)))
            entries.append((d, d, gds))
        if s is not None:
            if g is not None:
                entries.append((s, g, -gm))
            if d is not None:
                entries.append((s, d, -gds))
            entries.append((s, s, gm + gds))
        G = _add_entries(G, entries)
        # i_eq flows drain -> source inside the device
        I = _stamp_current(I, ns, nd, i_eq)
        return G, I

    def stamp_dc(self, G, I, solution):
        return self._stamp_companion(G, I, solution)

    def stamp_transient(self, G, I, solution, dt, time):
        return self._stamp_companion(G, I, solution)

    def get_node_indices(self):
        return (self.nd, self.ng, self.ns)


_PIN_COUNT = {"R": 2, "C": 2, "L": 2, "VDC": 2, "VAC": 2, "MOS": 3}


def create_device(
    kind: str,
    nodes: Sequence[int],
    params: Mapping[str, object] | None = None,
    *,
    name: str = "",
) -> Device:
    """
    Instantiate a device model from a netlist entry.

    Args:
        kind: One of DEVICE_KINDS
        nodes: Node ids in pin order (MOS: drain, gate, source)
        params: Component params; missing keys take per-kind defaults
        name: Component id, kept for probing

    Raises:
        UnknownDeviceError: kind has no model
        ValueError: wrong number of nodes for the kind
    """
    if kind not in _PIN_COUNT:
        raise UnknownDeviceError(f"Unknown device type {kind!r}")
    if len(nodes) != _PIN_COUNT[kind]:
        raise ValueError(f"{kind} device {name!r} expects {_PIN_COUNT[kind]} nodes, got {len(nodes)}")

    params = params or {}

    def value(key: str, default: float) -> float:
        v = params.get(key)
        return default if v is None else parse_value(v)

    if kind == "R":
        return Resistor(nodes[0], nodes[1], value("R", 1e3), name=name)
    elif kind == "C":
        return Capacitor(nodes[0], nodes[1], value("C", 1e-6), ic=value("IC", 0.0), name=name)
    elif kind == "L":
        return Inductor(nodes[0], nodes[1], value("L", 1e-3), ic=value("IC", 0.0), name=name)
    elif kind == "VDC":
        return DCVoltageSource(nodes[0], nodes[1], value("V", 0.0), name=name)
    elif kind == "VAC":
        return ACVoltageSource(
            nodes[0],
            nodes[1],
            v_peak=value("vPeak", 1.0),
            freq=value("freq", 1.0),
            phase=value("phase", 0.0),
            offset=value("offset", 0.0),
            name=name,
        )
    elif kind == "MOS":
        polarity = str(params.get("type") or "NMOS")
        return MOSFET(polarity, nodes[0], nodes[1], nodes[2], params, name=name)
    raise AssertionError(f"device kind {kind!r} listed without a constructor")
