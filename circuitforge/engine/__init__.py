"""CircuitForge simulation engine.

Schematic -> netlist -> MNA solver, with DC operating point and
fixed-step backward-Euler transient analysis.

Devices:
    - Resistor, Capacitor, Inductor: passive components
    - DCVoltageSource, ACVoltageSource: independent sources
    - MOSFET: level-1 square-law NMOS/PMOS

Netlist:
    - Schematic, Component, Pin, Wire, Point: editor-side graph
    - compile_netlist, build_solver: union-find node merging and solver construction
"""

from .units import parse_value
from .mos_models import MosModel, MOS_MODEL_DEFAULTS, model_card
from .devices import (
    Device,
    Resistor,
    Capacitor,
    Inductor,
    DCVoltageSource,
    ACVoltageSource,
    MOSFET,
    MosOperatingPoint,
    square_law,
    create_device,
    DEVICE_KINDS,
    UnknownDeviceError,
)
from .options import SolverOptions
from .solver import (
    Solver,
    Node,
    NewtonResult,
    gaussian_solve,
    SingularMatrixError,
    NoReferenceNodeError,
)
from .netlist import (
    Point,
    Pin,
    Component,
    Wire,
    Schematic,
    DeviceSpec,
    Netlist,
    UnionFind,
    compile_netlist,
    build_solver,
    compile_schematic,
    point_voltages,
)
from .analysis import Waveform, run_transient

__all__ = [
    # Values and models
    "parse_value",
    "MosModel",
    "MOS_MODEL_DEFAULTS",
    "model_card",
    # Devices
    "Device",
    "Resistor",
    "Capacitor",
    "Inductor",
    "DCVoltageSource",
    "ACVoltageSource",
    "MOSFET",
    "MosOperatingPoint",
    "square_law",
    "create_device",
    "DEVICE_KINDS",
    # Solver
    "SolverOptions",
    "Solver",
    "Node",
    "NewtonResult",
    "gaussian_solve",
    # Netlist
    "Point",
    "Pin",
    "Component",
    "Wire",
    "Schematic",
    "DeviceSpec",
    "Netlist",
    "UnionFind",
    "compile_netlist",
    "build_solver",
    "compile_schematic",
    "point_voltages",
    # Analysis
    "Waveform",
    "run_transient",
    # Errors
    "SingularMatrixError",
    "NoReferenceNodeError",
    "UnknownDeviceError",
]
