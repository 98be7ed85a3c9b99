"""Default level-1 MOS process parameters (SPICE-like model cards)."""

from __future__ import annotations
from typing import NamedTuple, Mapping

from .units import parse_value


class MosModel(NamedTuple):
    """
    Level-1 MOS model card.

    Only KP, VTO, LAMBDA, W and L enter the square-law drain current;
    the remaining fields describe body effect and parasitics and are kept
    so that imported cards round-trip.
    """
    level: int
    KP: float      # transconductance parameter kPrime (A/V^2)
    VTO: float     # zero-bias threshold (V)
    GAMMA: float
    PHI: float
    LAMBDA: float  # channel-length modulation (1/V)
    UO: float
    TOX: float
    NSUB: float
    LD: float
    CJ: float
    CJSW: float
    PB: float
    MJ: float
    MJSW: float
    CGDO: float
    JS: float
    W: float = 1e-6  # channel width (m)
    L: float = 1e-6  # channel length (m)


MOS_MODEL_DEFAULTS: dict[str, MosModel] = {
    "NMOS": MosModel(
        level=1,
        KP=140e-6,
        VTO=0.7,
        GAMMA=0.45,
        PHI=0.9,
        LAMBDA=0.1,
        UO=350,
        TOX=9e-9,
        NSUB=9e14,
        LD=0.08e-6,
        CJ=0.56e-3,
        CJSW=0.35e-11,
        PB=0.9,
        MJ=0.45,
        MJSW=0.2,
        CGDO=0.4e-9,
        JS=1.0e-8,
    ),
    "PMOS": MosModel(
        level=1,
        KP=40e-6,
        VTO=-0.8,
        GAMMA=0.4,
        PHI=0.8,
        LAMBDA=0.2,
        UO=100,
        TOX=9e-9,
        NSUB=5e14,
        LD=0.09e-6,
        CJ=0.94e-3,
        CJSW=0.32e-11,
        PB=0.9,
        MJ=0.5,
        MJSW=0.3,
        CGDO=0.3e-9,
        JS=0.5e-8,
    ),
}

# Schematic editors name KP after the textbook symbol
_ALIASES = {"kPrime": "KP"}


def model_card(polarity: str, params: Mapping[str, object] | None = None) -> MosModel:
    """
    Build the model card for a transistor.

    Args:
        polarity: "NMOS" or "PMOS" (case-insensitive)
        params: Component params; keys naming card fields override defaults,
            all other keys are ignored

    Returns:
        MosModel with overrides applied
    """
    key = polarity.upper()
    if key not in MOS_MODEL_DEFAULTS:
        raise ValueError(f"Unknown MOSFET polarity {polarity!r} (expected NMOS or PMOS)")
    card = MOS_MODEL_DEFAULTS[key]
    if not params:
        return card

    overrides = {}
    for name, value in params.items():
        field = _ALIASES.get(name, name)
        if field in MosModel._fields and field != "level" and value is not None:
            overrides[field] = parse_value(value)
    return card._replace(**overrides)
