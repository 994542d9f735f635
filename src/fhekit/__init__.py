"""Homomorphic encryption orchestration over a native engine."""

from .core import (
    HE,
    CipherText,
    ElementType,
    GaloisKeyOptions,
    OrchestratorConfig,
    Parameters,
    PlainText,
    RelinKeyOptions,
    Scheme,
    SecurityTier,
    preset_for,
)
from .core.errors import (
    ElementTypeError,
    FhekitError,
    InvalidParametersError,
    MissingKeyError,
    NativeOperationError,
    OversizedInputError,
    SchemeMismatchError,
    SerializationError,
    UninitializedContextError,
    UninitializedKeyError,
    UseAfterReleaseError,
)
from .engine import CompressionMode, NativeEngine, NativeKind

__version__ = "0.1.0"

__all__ = [
    "HE",
    "CipherText",
    "CompressionMode",
    "ElementType",
    "ElementTypeError",
    "FhekitError",
    "GaloisKeyOptions",
    "InvalidParametersError",
    "MissingKeyError",
    "NativeEngine",
    "NativeKind",
    "NativeOperationError",
    "OrchestratorConfig",
    "OversizedInputError",
    "Parameters",
    "PlainText",
    "RelinKeyOptions",
    "Scheme",
    "SchemeMismatchError",
    "SecurityTier",
    "SerializationError",
    "UninitializedContextError",
    "UninitializedKeyError",
    "UseAfterReleaseError",
    "preset_for",
]
