"""The `HE` orchestrator: one context, its keys and the scheme pipelines."""

import logging
from typing import Any

import numpy as np
import torch

from ..engine.base import CompressionMode, NativeEngine
from .containers import ElementType, print_matrix, print_vector
from .context import Context, ContextInitializer
from .encryption import CipherText, PlainText, pipeline_for
from .errors import SchemeMismatchError, translate_native_errors
from .keys import GaloisKeys, KeyKind, KeyManager, PublicKey, RelinKeys, SecretKey
from .params import (
    DecompositionBitCount,
    GaloisKeyOptions,
    OrchestratorConfig,
    Parameters,
    RelinKeyOptions,
    Scheme,
    preset_for,
)
from .state import OrchestratorState

logger = logging.getLogger(__name__)


def default_engine() -> NativeEngine:
    """The SEAL engine, imported on first use."""
    from ..engine.seal import SealEngine

    return SealEngine()


class HE:
    """
    Homomorphic encryption orchestrator.

    Owns exactly one context and at most one instance of each key kind.
    Instances share nothing, so independent workers can each use their own.

    Example:
        ```python
        he = HE()
        he.initialize("BFV", he.create_params("low"))
        he.generate_keys()
        cipher_text = he.encrypt([1, 2, 3], "int32")
        values = he.decrypt(cipher_text)
        cipher_text.release()
        he.release()
        ```
    """

    def __init__(
        self,
        engine: NativeEngine | None = None,
        config: OrchestratorConfig | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            engine: Native engine, `SealEngine` by default
            config: Orchestrator settings
        """
        self.state = OrchestratorState(
            engine=engine if engine is not None else default_engine(),
            config=config or OrchestratorConfig(),
        )
        self.keys = KeyManager(self.state)
        self._initializer = ContextInitializer()

    # Parameters and context

    def create_params(self, security: str | None = None) -> Parameters:
        """Recommended parameters for ``security`` (config default when omitted)."""
        return preset_for(security or self.state.config.security)

    def initialize(
        self, scheme: Scheme | str = Scheme.INTEGER, parameters: Parameters | None = None
    ) -> Context:
        """
        Build the context for ``scheme``.

        Re-initializing releases the previous context and all held key material.
        """
        return self._initializer.initialize(
            self.state, scheme, parameters or self.create_params()
        )

    @property
    def engine(self) -> NativeEngine:
        return self.state.engine

    @property
    def scheme(self) -> Scheme | None:
        return self.state.scheme

    @property
    def parameters(self) -> Parameters | None:
        return self.state.parameters

    @property
    def context(self) -> Context:
        return self.state.require_context()

    @property
    def slot_count(self) -> int:
        """Values per plaintext under the active scheme."""
        self.state.require_context()
        return self.state.parameters.slot_capacity(self.state.scheme)

    # Keys

    @property
    def public_key(self) -> PublicKey | None:
        return self.state.public_key

    @property
    def secret_key(self) -> SecretKey | None:
        return self.state.secret_key

    @property
    def relin_keys(self) -> RelinKeys | None:
        return self.state.relin_keys

    @property
    def galois_keys(self) -> GaloisKeys | None:
        return self.state.galois_keys

    def generate_keys(self) -> None:
        self.keys.generate_keys()

    def generate_relin_keys(
        self, decomposition_bit_count: DecompositionBitCount = "max", size: int = 1
    ) -> None:
        self.keys.generate_relin_keys(RelinKeyOptions(decomposition_bit_count, size))

    def generate_galois_keys(self, decomposition_bit_count: DecompositionBitCount = "max") -> None:
        self.keys.generate_galois_keys(GaloisKeyOptions(decomposition_bit_count))

    generate_rotation_keys = generate_galois_keys

    def load_public_key(self, encoded: str) -> None:
        self.keys.load(KeyKind.PUBLIC, encoded)

    def load_secret_key(self, encoded: str) -> None:
        self.keys.load(KeyKind.SECRET, encoded)

    def load_relin_keys(self, encoded: str) -> None:
        self.keys.load(KeyKind.RELIN, encoded)

    def load_galois_keys(self, encoded: str) -> None:
        self.keys.load(KeyKind.GALOIS, encoded)

    load_rotation_keys = load_galois_keys

    def save_public_key(self, compression: CompressionMode | None = None) -> str:
        return self.keys.save(KeyKind.PUBLIC, compression)

    def save_secret_key(self, compression: CompressionMode | None = None) -> str:
        return self.keys.save(KeyKind.SECRET, compression)

    def save_relin_keys(self, compression: CompressionMode | None = None) -> str:
        return self.keys.save(KeyKind.RELIN, compression)

    def save_galois_keys(self, compression: CompressionMode | None = None) -> str:
        return self.keys.save(KeyKind.GALOIS, compression)

    save_rotation_keys = save_galois_keys

    # Encryption

    def encrypt(
        self,
        value: Any,
        element_type: ElementType | str = ElementType.INT32,
        scale: float | None = None,
    ) -> CipherText:
        """
        Encode and encrypt ``value`` with the active scheme.

        Args:
            value: Scalar or array-like input
            element_type: Element type tag, e.g. ``"int32"`` or ``"float64"``
            scale: Encoding scale override for CKKS

        Returns:
            Tagged ciphertext; the caller must release it
        """
        return pipeline_for(self.state).encrypt(value, element_type, scale)

    def decrypt(self, cipher_text: CipherText) -> np.ndarray:
        """Decrypt and decode ``cipher_text`` to an array of its original length."""
        return pipeline_for(self.state).decrypt(cipher_text)

    def encrypt_tensor(
        self,
        tensor: torch.Tensor,
        element_type: ElementType | str = ElementType.FLOAT64,
        scale: float | None = None,
    ) -> CipherText:
        """Encrypt a torch tensor, flattened in row-major order."""
        return self.encrypt(tensor.flatten(), element_type, scale)

    def decrypt_tensor(
        self, cipher_text: CipherText, dtype: torch.dtype = torch.float32
    ) -> torch.Tensor:
        """Decrypt ``cipher_text`` into a 1-D torch tensor."""
        array = self.decrypt(cipher_text)
        return torch.tensor(array.astype(np.float64), dtype=dtype)

    def save_cipher_text(
        self, cipher_text: CipherText, compression: CompressionMode | None = None
    ) -> str:
        """Serialize a ciphertext. Its tags travel separately."""
        return cipher_text.save(compression or self.state.config.compression)

    def load_cipher_text(
        self,
        encoded: str,
        vector_size: int,
        element_type: ElementType | str = ElementType.INT32,
        scheme: Scheme | str | None = None,
    ) -> CipherText:
        """
        Deserialize a ciphertext bound to the current context.

        Args:
            encoded: String from `save_cipher_text`
            vector_size: Original element count recorded at encryption
            element_type: Original element type
            scheme: Scheme it was produced under, the active one by default
        """
        context = self.state.require_context()
        return CipherText.load(
            self.engine,
            context.instance,
            encoded,
            vector_size=vector_size,
            element_type=ElementType.from_name(element_type),
            scheme=Scheme.from_name(scheme) if scheme is not None else self.state.scheme,
        )

    def encode_integer(self, value: int) -> PlainText:
        """Encode a single integer with the integer encoder (BFV only)."""
        encoder = self._integer_encoder()
        with translate_native_errors("encode integer"):
            return PlainText(self.engine, self.engine.encode_integer(encoder.instance, value))

    def decode_integer(self, plaintext: PlainText) -> int:
        encoder = self._integer_encoder()
        with translate_native_errors("decode integer"):
            return self.engine.decode_integer(encoder.instance, plaintext.instance)

    def _integer_encoder(self):
        self.state.require_context()
        if self.state.scheme is not Scheme.INTEGER:
            raise SchemeMismatchError(
                f"The integer encoder requires BFV, active scheme is {self.state.scheme.value}"
            )
        return self.state.require("integer_encoder")

    # Diagnostics

    def print_vector(self, vector: Any, print_size: int = 4, precision: int = 5) -> str:
        return print_vector(vector, print_size=print_size, precision=precision)

    def print_matrix(self, vector: Any, row_size: int | None = None) -> str:
        if row_size is None:
            row_size = max(self.slot_count // 2, 1)
        return print_matrix(vector, row_size)

    # Lifetime

    def release(self) -> None:
        """Release the context and every held key. Safe to call repeatedly."""
        self.state.reset()

    def __enter__(self) -> "HE":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
