"""
Test: netlist compilation from schematic graphs.

Validates:
- Union-find merging of pins and wire vertices (exact coordinates only)
- Ground handling and gap-free node numbering
- Device binding and the netlist -> solver bridge
"""
import pytest


def _part(id, kind, *pins, **params):
    from circuitforge.engine import Component, Pin

    return Component(id, kind, tuple(Pin(x, y) for x, y in pins), params)


def _wire(*points):
    from circuitforge.engine import Wire, Point

    return Wire(tuple(Point(x, y) for x, y in points))


def _divider():
    """
    V1+ (0,0) ---- (100,0) R1 (100,50) ---- (100,60) R2 (100,100)
    V1- (0,100) -- (100,100), GND at (0,120)
    """
    from circuitforge.engine import Schematic

    components = (
        _part("V1", "VDC", (0, 0), (0, 100), V=10.0),
        _part("R1", "R", (100, 0), (100, 50), R=1e3),
        _part("R2", "R", (100, 60), (100, 100), R=1e3),
        _part("G1", "GND", (0, 120)),
    )
    wires = (
        _wire((0, 0), (100, 0)),
        _wire((0, 100), (100, 100)),
        _wire((0, 100), (0, 120)),
        _wire((100, 50), (100, 60)),
    )
    return Schematic(components, wires)


class TestUnionFind:

    def test_singletons(self):
        from circuitforge.engine import UnionFind, Point

        uf = UnionFind()
        a, b = Point(0, 0), Point(1, 0)
        assert uf.add(a) == 0
        assert uf.add(b) == 1
        assert uf.add(a) == 0
        assert len(uf) == 2
        assert not uf.connected(a, b)

    def test_union_is_transitive(self):
        from circuitforge.engine import UnionFind, Point

        uf = UnionFind()
        pts = [Point(i, 0) for i in range(5)]
        uf.union(pts[0], pts[1])
        uf.union(pts[3], pts[4])
        uf.union(pts[1], pts[4])

        assert uf.connected(pts[0], pts[3])
        assert not uf.connected(pts[0], pts[2])

    def test_find_registers_unknown_points(self):
        from circuitforge.engine import UnionFind, Point

        uf = UnionFind()
        p = Point(3, 4)
        assert p not in uf
        uf.find(p)
        assert p in uf
        assert uf.points == (p,)

    def test_exact_match_only(self):
        from circuitforge.engine import UnionFind, Point

        uf = UnionFind()
        uf.union(Point(0, 0), Point(10, 0))
        assert not uf.connected(Point(10, 0), Point(10.000001, 0))
        # equal numeric values are the same key
        assert uf.connected(Point(0.0, 0.0), Point(10, 0))


class TestCompile:

    def test_divider_nodes(self):
        from circuitforge.engine import compile_netlist

        net = compile_netlist(_divider())

        assert [n.name for n in net.nodes] == ["GND", "N001", "N002"]
        assert [n.id for n in net.nodes] == [0, 1, 2]
        assert net.num_nodes == 2

    def test_divider_devices(self):
        from circuitforge.engine import compile_netlist

        net = compile_netlist(_divider())
        devices = {d.name: d for d in net.devices}

        assert set(devices) == {"V1", "R1", "R2"}
        assert devices["V1"].nodes == (1, 0)
        assert devices["R1"].nodes == (1, 2)
        assert devices["R2"].nodes == (2, 0)
        assert devices["R1"].kind == "R"
        assert devices["V1"].params == {"V": 10.0}

    def test_point_to_node_covers_wire_vertices(self):
        from circuitforge.engine import compile_netlist, Point

        net = compile_netlist(_divider())
        assert net.point_to_node[Point(0, 120)] == 0
        assert net.point_to_node[Point(100, 100)] == 0
        assert net.point_to_node[Point(100, 0)] == 1
        assert net.point_to_node[Point(100, 60)] == 2

    def test_pins_on_same_coordinate_connect_without_wires(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic((
            _part("R1", "R", (0, 0), (50, 0)),
            _part("R2", "R", (50, 0), (100, 0)),
            _part("G", "GND", (100, 0)),
        ))
        net = compile_netlist(sch)
        devices = {d.name: d.nodes for d in net.devices}

        assert devices["R1"][1] == devices["R2"][0]
        assert devices["R2"][1] == 0

    def test_pin_in_middle_of_segment_is_not_connected(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic(
            (
                _part("R1", "R", (0, 0), (0, 50)),
                _part("R2", "R", (50, 0), (50, 50)),
            ),
            (_wire((0, 0), (100, 0)),),
        )
        net = compile_netlist(sch)
        devices = {d.name: d.nodes for d in net.devices}
        assert devices["R1"][0] != devices["R2"][0]

    def test_polyline_connects_every_vertex(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic(
            (
                _part("R1", "R", (0, 0), (0, 50)),
                _part("R2", "R", (100, 100), (100, 150)),
            ),
            (_wire((0, 0), (50, 0), (50, 100), (100, 100)),),
        )
        net = compile_netlist(sch)
        devices = {d.name: d.nodes for d in net.devices}
        assert devices["R1"][0] == devices["R2"][0]

    def test_ground_listed_last_leaves_no_gap(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic(
            (
                _part("R1", "R", (0, 0), (10, 0)),
                _part("V1", "VDC", (0, 0), (20, 0), V=1.0),
                _part("G1", "GND", (20, 0)),
            ),
            (_wire((10, 0), (20, 0)),),
        )
        net = compile_netlist(sch)

        assert net.num_nodes == 1
        devices = {d.name: d.nodes for d in net.devices}
        assert devices["R1"] == (1, 0)
        assert devices["V1"] == (1, 0)

    def test_multiple_ground_symbols_share_node_zero(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic((
            _part("R1", "R", (0, 0), (0, 10)),
            _part("G1", "GND", (0, 10)),
            _part("R2", "R", (0, 0), (5, 10)),
            _part("G2", "GND", (5, 10)),
        ))
        net = compile_netlist(sch)
        devices = {d.name: d.nodes for d in net.devices}
        assert devices["R1"] == (1, 0)
        assert devices["R2"] == (1, 0)

    def test_gnd_net_label(self):
        from circuitforge.engine import compile_netlist, Schematic, Component, Pin

        sch = Schematic((
            Component("R1", "R", (Pin(0, 0), Pin(0, 10, net_label="gnd")), {"R": 1e3}),
            Component("V1", "VDC", (Pin(0, 0), Pin(0, 10)), {"V": 1.0}),
        ))
        net = compile_netlist(sch)
        devices = {d.name: d.nodes for d in net.devices}
        assert devices["R1"] == (1, 0)
        assert devices["V1"] == (1, 0)

    def test_unconnected_components_get_own_nodes(self):
        from circuitforge.engine import compile_netlist, Schematic

        sch = Schematic((
            _part("R1", "R", (0, 0), (0, 10)),
            _part("R2", "R", (50, 0), (50, 10)),
        ))
        net = compile_netlist(sch)
        assert net.num_nodes == 4
        assert [d.nodes for d in net.devices] == [(1, 2), (3, 4)]

    def test_ground_symbols_are_not_devices(self):
        from circuitforge.engine import compile_netlist

        net = compile_netlist(_divider())
        assert all(d.kind != "GND" for d in net.devices)


class TestFromDict:

    def test_matches_typed_schematic(self):
        from circuitforge.engine import compile_netlist, Schematic

        data = {
            "components": [
                {"id": "V1", "kind": "VDC", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 100}], "params": {"V": 10.0}},
                {"id": "R1", "kind": "R", "pins": [{"x": 100, "y": 0}, {"x": 100, "y": 50}], "params": {"R": 1e3}},
                {"id": "R2", "kind": "R", "pins": [{"x": 100, "y": 60}, {"x": 100, "y": 100}], "params": {"R": 1e3}},
                {"id": "G1", "kind": "GND", "pins": [{"x": 0, "y": 120}]},
            ],
            "wires": [
                {"points": [{"x": 0, "y": 0}, {"x": 100, "y": 0}]},
                {"points": [{"x": 0, "y": 100}, {"x": 100, "y": 100}]},
                {"points": [{"x": 0, "y": 100}, {"x": 0, "y": 120}]},
                {"points": [{"x": 100, "y": 50}, {"x": 100, "y": 60}]},
            ],
        }
        from_dict = compile_netlist(Schematic.from_dict(data))
        typed = compile_netlist(_divider())

        assert from_dict.nodes == typed.nodes
        assert from_dict.devices == typed.devices

    def test_net_label_and_missing_fields(self):
        from circuitforge.engine import Schematic

        sch = Schematic.from_dict({
            "components": [{"kind": "R", "pins": [{"x": 1, "y": 2, "netLabel": "GND"}]}],
        })
        comp = sch.components[0]
        assert comp.id == "R0"
        assert comp.params == {}
        assert comp.pins[0].net_label == "GND"
        assert sch.wires == ()


class TestBuildSolver:

    def test_solver_layout(self):
        from circuitforge.engine import compile_netlist, build_solver

        net = compile_netlist(_divider())
        solver = build_solver(net)

        assert solver.finalized
        assert [n.name for n in solver.nodes] == ["GND", "N001", "N002"]
        assert solver.num_unknowns == 3  # 2 nodes + V1 branch
        assert solver.device("V1").branch_index == 2

    def test_unknown_kind_raises(self):
        from circuitforge.engine import compile_netlist, build_solver, Schematic, UnknownDeviceError

        sch = Schematic((
            _part("D1", "DIODE", (0, 0), (0, 10)),
            _part("G", "GND", (0, 10)),
        ))
        with pytest.raises(UnknownDeviceError):
            build_solver(compile_netlist(sch))

    def test_schematic_without_ground_cannot_be_solved(self):
        from circuitforge.engine import compile_schematic, NoReferenceNodeError

        data = {
            "components": [
                {"id": "V1", "kind": "VDC", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 10}], "params": {"V": 5}},
                {"id": "R1", "kind": "R", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 10}], "params": {"R": "1k"}},
            ],
            "wires": [],
        }
        netlist, solver = compile_schematic(data)
        assert netlist.num_nodes == 2

        with pytest.raises(NoReferenceNodeError):
            solver.run_dc()
        with pytest.raises(NoReferenceNodeError):
            solver.step_transient(solver.dt)

    def test_compile_schematic_from_dict(self):
        from circuitforge.engine import compile_schematic, point_voltages, Point

        data = {
            "components": [
                {"id": "V1", "kind": "VDC", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 10}], "params": {"V": "9"}},
                {"id": "R1", "kind": "R", "pins": [{"x": 0, "y": 0}, {"x": 0, "y": 10}], "params": {"R": "1k"}},
                {"id": "G", "kind": "GND", "pins": [{"x": 0, "y": 10}]},
            ],
            "wires": [],
        }
        netlist, solver = compile_schematic(data)
        assert solver.run_dc().converged

        volts = point_voltages(netlist, solver, [Point(0, 0), Point(0, 10)])
        assert volts[Point(0, 0)] == pytest.approx(9.0, abs=1e-6)
        assert volts[Point(0, 10)] == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
