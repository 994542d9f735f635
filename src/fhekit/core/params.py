"""Schemes, parameter presets and option structs."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ..engine.base import CompressionMode

logger = logging.getLogger(__name__)

DEFAULT_PLAIN_MODULUS = 786433


class Scheme(Enum):
    """Supported encryption schemes."""

    INTEGER = "BFV"  # Exact batched integers
    APPROX_REAL = "CKKS"  # Approximate reals with a global scale

    @classmethod
    def from_name(cls, name: "str | Scheme") -> "Scheme":
        """Resolve ``"BFV"``/``"CKKS"`` (or a member name) to a scheme."""
        if isinstance(name, Scheme):
            return name
        key = str(name).strip().upper()
        for scheme in cls:
            if key in (scheme.value, scheme.name):
                return scheme
        raise ValueError(f"Unknown scheme: {name!r}")


class SecurityTier(Enum):
    """Named parameter presets."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Parameters:
    """Cryptographic configuration consumed once to build a context."""

    poly_degree: int
    coeff_modulus: int
    plain_modulus: int = DEFAULT_PLAIN_MODULUS
    scale: float = 2.0**54

    def __post_init__(self) -> None:
        if self.poly_degree <= 0 or self.poly_degree & (self.poly_degree - 1):
            raise ValueError(
                f"poly_degree must be a positive power of two, got {self.poly_degree}"
            )

    def slot_capacity(self, scheme: Scheme) -> int:
        """Number of values one plaintext holds under ``scheme``."""
        if scheme is Scheme.APPROX_REAL:
            return self.poly_degree // 2
        return self.poly_degree


_PRESETS: dict[SecurityTier, Parameters] = {
    SecurityTier.LOW: Parameters(
        poly_degree=4096,
        coeff_modulus=4096,
        plain_modulus=DEFAULT_PLAIN_MODULUS,
        scale=2.0**54,  # max 109 - 55
    ),
    SecurityTier.MEDIUM: Parameters(
        poly_degree=8192,
        coeff_modulus=8192,
        plain_modulus=DEFAULT_PLAIN_MODULUS,
        scale=2.0**163,  # max 218 - 55
    ),
    SecurityTier.HIGH: Parameters(
        poly_degree=16384,
        coeff_modulus=16384,
        plain_modulus=DEFAULT_PLAIN_MODULUS,
        scale=2.0**383,  # max 438 - 55
    ),
}


def preset_for(tier: "str | SecurityTier" = SecurityTier.LOW) -> Parameters:
    """
    Recommended parameters for a security tier.

    Args:
        tier: ``"low"``, ``"medium"`` or ``"high"``; anything else means low

    Returns:
        Fixed parameter bundle for the tier
    """
    if isinstance(tier, SecurityTier):
        return _PRESETS[tier]
    try:
        return _PRESETS[SecurityTier(str(tier).lower())]
    except ValueError:
        logger.warning(f"Unknown security tier {tier!r}, falling back to 'low'")
        return _PRESETS[SecurityTier.LOW]


DecompositionBitCount = Literal["max"] | int


def _resolve_dbc(value: DecompositionBitCount) -> int | None:
    if value == "max":
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(
            f"decomposition_bit_count must be 'max' or a positive int, got {value!r}"
        )
    return value


@dataclass(frozen=True)
class RelinKeyOptions:
    """Options for relinearization key generation."""

    decomposition_bit_count: DecompositionBitCount = "max"
    size: int = 1

    def resolve(self) -> tuple[int | None, int]:
        """Return ``(decomposition_bit_count or None for engine max, size)``."""
        if self.size < 1:
            raise ValueError(f"size must be at least 1, got {self.size}")
        return _resolve_dbc(self.decomposition_bit_count), self.size


@dataclass(frozen=True)
class GaloisKeyOptions:
    """Options for rotation (Galois) key generation."""

    decomposition_bit_count: DecompositionBitCount = "max"

    def resolve(self) -> int | None:
        return _resolve_dbc(self.decomposition_bit_count)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Per-instance settings for `HE`."""

    compression: CompressionMode = CompressionMode.DEFLATE
    security: str = "low"
    debug_vectors: bool = False
