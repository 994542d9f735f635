"""Interface to the native homomorphic encryption engine.

fhekit never does lattice math itself. Everything below is delegated to an
engine implementation; the core only owns the returned references, routes
calls and tags results.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..core.params import Scheme


class CompressionMode(Enum):
    """Compression applied to serialized native objects."""

    NONE = "none"
    DEFLATE = "deflate"


class NativeKind(Enum):
    """Kinds of native objects that can be loaded from an encoded string."""

    MODULUS = "modulus"
    PUBLIC_KEY = "public_key"
    SECRET_KEY = "secret_key"
    RELIN_KEYS = "relin_keys"
    GALOIS_KEYS = "galois_keys"
    PLAINTEXT = "plaintext"
    CIPHERTEXT = "ciphertext"


class NativeEngine(ABC):
    """
    Synchronous, fallible calls into a native HE library.

    Every ``make_*``/producing method returns a fresh native reference that
    the caller owns and must hand back through `release`.
    """

    name: str = "abstract"

    # Modulus

    @abstractmethod
    def make_modulus(self, value: int) -> Any: ...

    @abstractmethod
    def modulus_value(self, modulus: Any) -> int: ...

    @abstractmethod
    def modulus_bit_count(self, modulus: Any) -> int: ...

    @abstractmethod
    def modulus_is_zero(self, modulus: Any) -> bool: ...

    @abstractmethod
    def modulus_is_prime(self, modulus: Any) -> bool: ...

    # Parameters and context

    @abstractmethod
    def coeff_modulus(self, poly_degree: int, hint: int) -> Any:
        """Recommended coefficient modulus chain for ``hint`` at 128-bit security."""

    @abstractmethod
    def make_parameters(
        self,
        scheme: "Scheme",
        poly_degree: int,
        coeff_modulus: Any,
        plain_modulus: Any | None = None,
    ) -> Any: ...

    @abstractmethod
    def make_context(self, parameters: Any, expand_mod_chain: bool = True) -> Any: ...

    @abstractmethod
    def parameters_set(self, context: Any) -> bool: ...

    @abstractmethod
    def parameter_error(self, context: Any) -> str: ...

    # Encoders

    @abstractmethod
    def make_batch_encoder(self, context: Any) -> Any: ...

    @abstractmethod
    def make_integer_encoder(self, context: Any) -> Any: ...

    @abstractmethod
    def make_ckks_encoder(self, context: Any) -> Any: ...

    @abstractmethod
    def slot_count(self, encoder: Any) -> int: ...

    @abstractmethod
    def batch_encode(self, encoder: Any, values: Sequence[int], signed: bool) -> Any: ...

    @abstractmethod
    def batch_decode(self, encoder: Any, plaintext: Any, signed: bool) -> list[int]: ...

    @abstractmethod
    def ckks_encode(self, encoder: Any, values: Sequence[float], scale: float) -> Any: ...

    @abstractmethod
    def ckks_decode(self, encoder: Any, plaintext: Any) -> list[float]: ...

    @abstractmethod
    def encode_integer(self, encoder: Any, value: int) -> Any: ...

    @abstractmethod
    def decode_integer(self, encoder: Any, plaintext: Any) -> int: ...

    # Keys

    @abstractmethod
    def make_key_generator(self, context: Any, secret_key: Any | None = None) -> Any: ...

    @abstractmethod
    def public_key(self, key_generator: Any) -> Any: ...

    @abstractmethod
    def secret_key(self, key_generator: Any) -> Any: ...

    @abstractmethod
    def relin_keys(
        self, key_generator: Any, decomposition_bit_count: int | None, size: int
    ) -> Any: ...

    @abstractmethod
    def galois_keys(self, key_generator: Any, decomposition_bit_count: int | None) -> Any: ...

    # Encryption

    @abstractmethod
    def make_encryptor(self, context: Any, public_key: Any) -> Any: ...

    @abstractmethod
    def make_decryptor(self, context: Any, secret_key: Any) -> Any: ...

    @abstractmethod
    def encrypt(self, encryptor: Any, plaintext: Any) -> Any: ...

    @abstractmethod
    def decrypt(self, decryptor: Any, ciphertext: Any) -> Any: ...

    # Serialization and lifetime

    @abstractmethod
    def save(self, obj: Any, compression: CompressionMode) -> str: ...

    @abstractmethod
    def load(self, kind: NativeKind, context: Any, encoded: str) -> Any: ...

    @abstractmethod
    def release(self, obj: Any) -> None:
        """Free a native reference. Called exactly once per reference."""
