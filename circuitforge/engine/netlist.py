"""
Netlist compiler: schematic graph -> numbered nodes + device list.

Pins and wire vertices are exact-match coordinates. Two points are the
same electrical node only if they share identical coordinates or are
chained together by wire segments; there is no snapping tolerance, so
the editor must snap to its grid before compiling.
"""

from __future__ import annotations
from typing import NamedTuple, Any, Mapping, Iterable
import logging

from .devices import create_device
from .options import SolverOptions
from .solver import Node, Solver

logger = logging.getLogger(__name__)

GROUND_KIND = "GND"


class Point(NamedTuple):
    x: float
    y: float


class Pin(NamedTuple):
    """A component terminal at an absolute schematic coordinate."""
    x: float
    y: float
    net_label: str | None = None

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


class Component(NamedTuple):
    """
    A placed schematic symbol.

    kind is a device factory key ("R", "C", "L", "VDC", "VAC", "MOS")
    or "GND" for a ground symbol. Pin order follows the device model
    (MOS: drain, gate, source).
    """
    id: str
    kind: str
    pins: tuple[Pin, ...]
    params: Mapping[str, Any] | None = None


class Wire(NamedTuple):
    """A wire drawn as a polyline through its vertices."""
    points: tuple[Point, ...]


class Schematic(NamedTuple):
    components: tuple[Component, ...] = ()
    wires: tuple[Wire, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Schematic:
        """
        Build a schematic from the editor's plain-data form:

            {"components": [{"id", "kind", "pins": [{"x", "y", "netLabel"?}], "params"}],
             "wires": [{"points": [{"x", "y"}, ...]}]}
        """
        components = []
        for i, comp in enumerate(data.get("components", ())):
            pins = tuple(
                Pin(p["x"], p["y"], p.get("netLabel"))
                for p in comp.get("pins", ())
            )
            components.append(Component(
                id=str(comp.get("id", f"{comp['kind']}{i}")),
                kind=comp["kind"],
                pins=pins,
                params=dict(comp.get("params") or {}),
            ))
        wires = tuple(
            Wire(tuple(Point(p["x"], p["y"]) for p in wire.get("points", ())))
            for wire in data.get("wires", ())
        )
        return cls(tuple(components), wires)


class DeviceSpec(NamedTuple):
    """A device bound to compiled node ids, ready for the device factory."""
    name: str
    kind: str
    nodes: tuple[int, ...]
    params: Mapping[str, Any]


class Netlist(NamedTuple):
    nodes: tuple[Node, ...]
    devices: tuple[DeviceSpec, ...]
    point_to_node: dict[Point, int]

    @property
    def num_nodes(self) -> int:
        """Number of non-ground nodes."""
        return len(self.nodes) - 1


class UnionFind:
    """
    Disjoint sets over schematic coordinates.

    Points are interned into a dense index arena on first sight;
    the forest itself works on those indices.
    """

    def __init__(self):
        self._index: dict[Point, int] = {}
        self._points: list[Point] = []
        self._parent: list[int] = []
        self._size: list[int] = []

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, point: Point) -> bool:
        return point in self._index

    @property
    def points(self) -> tuple[Point, ...]:
        """All registered points, in registration order."""
        return tuple(self._points)

    def add(self, point: Point) -> int:
        """Register a point as a singleton (no-op if known). Returns its index."""
        idx = self._index.get(point)
        if idx is None:
            idx = len(self._points)
            self._index[point] = idx
            self._points.append(point)
            self._parent.append(idx)
            self._size.append(1)
        return idx

    def find(self, point: Point) -> int:
        """Index of the root of point's set."""
        i = self.add(point)
        parent = self._parent
        while parent[i] != i:
            parent[i] = parent[parent[i]]  # path halving
            i = parent[i]
        return i

    def union(self, a: Point, b: Point) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return
        if self._size[ra] < self._size[rb]:
            ra, rb = rb, ra
        self._parent[rb] = ra
        self._size[ra] += self._size[rb]

    def connected(self, a: Point, b: Point) -> bool:
        return self.find(a) == self.find(b)


def _is_ground_label(pin: Pin) -> bool:
    return pin.net_label is not None and pin.net_label.upper() == GROUND_KIND


def compile_netlist(schematic: Schematic) -> Netlist:
    """
    Merge pins and wires into electrical nodes and bind devices to them.

    Every set containing a ground pin (a GND symbol pin or a pin labelled
    "GND") becomes node 0. The remaining sets are numbered 1, 2, ... in
    the order their first point was registered: component pins first,
    then wire vertices. The numbering is stable for one schematic but not
    across edits.

    Returns:
        Netlist with nodes (GND, N001, N002, ...), one DeviceSpec per
        non-ground component and the node id of every registered point
    """
    uf = UnionFind()
    ground_keys: set[Point] = set()

    for comp in schematic.components:
        for pin in comp.pins:
            uf.add(pin.point)
            if comp.kind == GROUND_KIND or _is_ground_label(pin):
                ground_keys.add(pin.point)

    for wire in schematic.wires:
        for a, b in zip(wire.points, wire.points[1:]):
            uf.union(a, b)
        for p in wire.points:
            uf.add(p)

    # Ground sets first so that numbering has no gaps
    node_of_root = {uf.find(p): 0 for p in ground_keys}
    next_id = 1
    for p in uf.points:
        root = uf.find(p)
        if root not in node_of_root:
            node_of_root[root] = next_id
            next_id += 1

    nodes = (Node(0, "GND"),) + tuple(Node(i, f"N{i:03d}") for i in range(1, next_id))
    point_to_node = {p: node_of_root[uf.find(p)] for p in uf.points}

    devices = tuple(
        DeviceSpec(
            name=comp.id,
            kind=comp.kind,
            nodes=tuple(point_to_node[pin.point] for pin in comp.pins),
            params=dict(comp.params or {}),
        )
        for comp in schematic.components
        if comp.kind != GROUND_KIND
    )

    logger.info(
        f"Compiled netlist: {len(uf)} points, {next_id - 1} nodes, {len(devices)} devices"
        + ("" if ground_keys else " (no ground)")
    )
    return Netlist(nodes, devices, point_to_node)


def build_solver(netlist: Netlist, options: SolverOptions | None = None) -> Solver:
    """
    Create and finalize a solver for a compiled netlist.

    Raises:
        UnknownDeviceError: a device kind has no model
    """
    solver = Solver(options)
    for node in netlist.nodes[1:]:
        node_id = solver.add_node(node.name)
        assert node_id == node.id, "netlist node ids must be contiguous"
    for spec in netlist.devices:
        solver.add_device(create_device(spec.kind, spec.nodes, spec.params, name=spec.name))
    solver.finalize()
    return solver


def compile_schematic(
    schematic: Schematic | Mapping[str, Any],
    options: SolverOptions | None = None,
) -> tuple[Netlist, Solver]:
    """Compile a schematic (or its plain-data form) straight to a finalized solver."""
    if not isinstance(schematic, Schematic):
        schematic = Schematic.from_dict(schematic)
    netlist = compile_netlist(schematic)
    return netlist, build_solver(netlist, options)


def point_voltages(netlist: Netlist, solver: Solver, points: Iterable[Point]) -> dict[Point, float]:
    """Voltage at schematic coordinates, for coloring wires and pins."""
    return {p: solver.voltage(netlist.point_to_node[p]) for p in points}
