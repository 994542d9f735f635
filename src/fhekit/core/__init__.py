"""Core orchestration: handles, parameters, context, keys and pipelines."""

from .containers import ElementType
from .context import Context, ContextInitializer, Modulus
from .encryption import ApproxRealPipeline, CipherText, IntegerPipeline, PlainText
from .handle import NativeHandle
from .keys import GaloisKeys, KeyKind, KeyManager, PublicKey, RelinKeys, SecretKey
from .orchestrator import HE
from .params import (
    GaloisKeyOptions,
    OrchestratorConfig,
    Parameters,
    RelinKeyOptions,
    Scheme,
    SecurityTier,
    preset_for,
)

__all__ = [
    "HE",
    "ApproxRealPipeline",
    "CipherText",
    "Context",
    "ContextInitializer",
    "ElementType",
    "GaloisKeyOptions",
    "GaloisKeys",
    "IntegerPipeline",
    "KeyKind",
    "KeyManager",
    "Modulus",
    "NativeHandle",
    "OrchestratorConfig",
    "Parameters",
    "PlainText",
    "PublicKey",
    "RelinKeyOptions",
    "RelinKeys",
    "Scheme",
    "SecretKey",
    "SecurityTier",
    "preset_for",
]
