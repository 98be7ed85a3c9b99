"""CircuitForge - schematic-driven MNA circuit simulator built on JAX.

The engine compiles a drawn schematic (components + wires) into a
node/branch system and solves it with Newton-Raphson over a dense
Modified Nodal Analysis matrix:
    - DC operating point
    - Fixed-step transient analysis (backward Euler)

Usage:
    from circuitforge.engine import Schematic, compile_netlist, build_solver
"""

import logging

import jax

__version__ = "0.1.0"
__all__ = ["engine", "__version__"]

logger = logging.getLogger("circuitforge")

# Residual tolerances of 1e-6 on volt-scale unknowns are below float32 resolution.
jax.config.update("jax_enable_x64", True)
logger.debug("Using 64-bit float precision")
