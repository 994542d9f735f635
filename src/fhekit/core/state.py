"""Per-orchestrator mutable state shared by the pipeline stages."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..engine.base import NativeEngine
from .errors import UninitializedContextError, UninitializedKeyError
from .handle import NativeHandle
from .params import OrchestratorConfig, Parameters, Scheme

if TYPE_CHECKING:
    from .context import Context, Modulus
    from .keys import GaloisKeys, PublicKey, RelinKeys, SecretKey

logger = logging.getLogger(__name__)

# Released in this order when the context is torn down
_OWNED_ATTRS = (
    "encryptor",
    "decryptor",
    "key_generator",
    "public_key",
    "secret_key",
    "relin_keys",
    "galois_keys",
    "batch_encoder",
    "integer_encoder",
    "ckks_encoder",
    "context",
    "plain_modulus",
)


@dataclass
class OrchestratorState:
    """
    Everything one orchestrator instance owns.

    Instances are never shared; each pipeline stage receives the state it
    operates on explicitly.
    """

    engine: NativeEngine
    config: OrchestratorConfig

    scheme: Scheme | None = None
    parameters: Parameters | None = None

    context: "Context | None" = None
    plain_modulus: "Modulus | None" = None
    batch_encoder: NativeHandle | None = None
    integer_encoder: NativeHandle | None = None
    ckks_encoder: NativeHandle | None = None

    key_generator: NativeHandle | None = None
    encryptor: NativeHandle | None = None
    decryptor: NativeHandle | None = None

    public_key: "PublicKey | None" = None
    secret_key: "SecretKey | None" = None
    relin_keys: "RelinKeys | None" = None
    galois_keys: "GaloisKeys | None" = None

    def require_context(self) -> "Context":
        if self.context is None or self.context.is_released:
            raise UninitializedContextError(
                "No context: call initialize() before this operation"
            )
        return self.context

    def require(self, attr: str) -> NativeHandle:
        """Return a live owned handle or raise `UninitializedKeyError`."""
        self.require_context()
        handle = getattr(self, attr)
        if handle is None or handle.is_released:
            raise UninitializedKeyError(f"No {attr.replace('_', ' ')} available")
        return handle

    def install(self, attr: str, handle_cls: type[NativeHandle], instance) -> NativeHandle:
        """
        Adopt a native reference into the slot ``attr``.

        A live handle already in the slot takes the new reference through
        `inject`, which frees the previous one first.
        """
        current = getattr(self, attr)
        if current is not None and not current.is_released:
            current.inject(instance)
            return current
        handle = handle_cls(self.engine, instance)
        setattr(self, attr, handle)
        return handle

    def release_attrs(self, *attrs: str) -> None:
        for attr in attrs:
            handle = getattr(self, attr)
            if handle is not None:
                handle.release()
                setattr(self, attr, None)

    def reset(self) -> None:
        """Release every owned handle and forget the active scheme."""
        self.release_attrs(*_OWNED_ATTRS)
        self.scheme = None
        self.parameters = None
