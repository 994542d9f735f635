"""Scheme-dispatched encode/encrypt and decrypt/decode pipelines."""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import numpy as np

from ..engine.base import NativeEngine, NativeKind
from .containers import (
    ElementType,
    from_native,
    normalize,
    pack,
    print_matrix,
    print_vector,
    resize,
    to_native,
)
from .errors import (
    ElementTypeError,
    OversizedInputError,
    SchemeMismatchError,
    translate_native_errors,
)
from .handle import SerializableHandle
from .params import Scheme
from .state import OrchestratorState

logger = logging.getLogger(__name__)


class PlainText(SerializableHandle):
    """An encoded, unencrypted container."""

    kind = NativeKind.PLAINTEXT


class CipherText(SerializableHandle):
    """
    An encrypted container tagged with what is needed to decode it.

    Attributes:
        vector_size: Element count before the encoder padded to full slots
        element_type: Element type of the original container
        scheme: Scheme the ciphertext was produced under
    """

    kind = NativeKind.CIPHERTEXT

    def __init__(
        self,
        engine: NativeEngine,
        instance: Any,
        vector_size: int = 0,
        element_type: ElementType = ElementType.INT32,
        scheme: Scheme = Scheme.INTEGER,
    ) -> None:
        super().__init__(engine, instance)
        if vector_size < 0:
            raise ValueError(f"vector_size must be non-negative, got {vector_size}")
        self._vector_size = vector_size
        self._element_type = ElementType.from_name(element_type)
        self._scheme = Scheme.from_name(scheme)

    @property
    def vector_size(self) -> int:
        self._ensure_live()
        return self._vector_size

    @property
    def element_type(self) -> ElementType:
        self._ensure_live()
        return self._element_type

    @property
    def scheme(self) -> Scheme:
        self._ensure_live()
        return self._scheme

    def __repr__(self) -> str:
        state = "released" if self.is_released else "live"
        return (
            f"<CipherText {state} scheme={self._scheme.value} "
            f"type={self._element_type.value} size={self._vector_size}>"
        )


class SchemePipeline(ABC):
    """
    Encode/encrypt and decrypt/decode steps shared by both schemes.

    Subclasses only supply the element type check and the encode/decode
    calls; validation, tagging and truncation live here so the two schemes
    cannot drift apart.
    """

    scheme: ClassVar[Scheme]

    def __init__(self, state: OrchestratorState) -> None:
        self.state = state

    @property
    def engine(self) -> NativeEngine:
        return self.state.engine

    def check_element_type(self, element_type: ElementType) -> None:
        return None

    def check_values(self, array: np.ndarray, element_type: ElementType) -> None:
        return None

    @abstractmethod
    def encode(self, array: np.ndarray, element_type: ElementType, scale: float | None) -> PlainText:
        ...

    @abstractmethod
    def decode(self, plaintext: PlainText, element_type: ElementType) -> list:
        ...

    def slot_capacity(self) -> int:
        return self.state.parameters.slot_capacity(self.scheme)

    def encrypt(
        self,
        value: Any,
        element_type: ElementType | str = ElementType.INT32,
        scale: float | None = None,
    ) -> CipherText:
        """
        Encode and encrypt ``value``.

        Args:
            value: Scalar or array-like input
            element_type: Element type tag of the packed container
            scale: Encoding scale override (approximate-real scheme only)

        Returns:
            Tagged ciphertext owned by the caller

        Raises:
            OversizedInputError: If the input has more elements than slots
            ElementTypeError: If the values or type do not suit the scheme
        """
        self.state.require_context()
        element_type = ElementType.from_name(element_type)
        array = normalize(value)

        capacity = self.slot_capacity()
        if len(array) > capacity:
            raise OversizedInputError(
                f"Input of {len(array)} elements exceeds the {capacity} slots "
                f"available for poly_degree={self.state.parameters.poly_degree}"
            )

        self.check_element_type(element_type)
        array = pack(array, element_type)
        self.check_values(array, element_type)
        encryptor = self.state.require("encryptor")
        self._preview("Encrypting", array)

        with self.encode(array, element_type, scale) as plaintext:
            with translate_native_errors("encrypt"):
                ref = self.engine.encrypt(encryptor.instance, plaintext.instance)

        # Encoders pad to full slot capacity; keep the original size
        return CipherText(
            self.engine,
            ref,
            vector_size=len(array),
            element_type=element_type,
            scheme=self.scheme,
        )

    def decrypt(self, cipher_text: CipherText) -> np.ndarray:
        """
        Decrypt and decode ``cipher_text`` back to its original length.

        Raises:
            SchemeMismatchError: If the ciphertext was produced under another scheme
        """
        self.state.require_context()
        if cipher_text.scheme is not self.scheme:
            raise SchemeMismatchError(
                f"Ciphertext was encrypted with {cipher_text.scheme.value}, "
                f"active scheme is {self.scheme.value}"
            )
        decryptor = self.state.require("decryptor")

        with translate_native_errors("decrypt"):
            ref = self.engine.decrypt(decryptor.instance, cipher_text.instance)
        with PlainText(self.engine, ref) as plaintext:
            values = self.decode(plaintext, cipher_text.element_type)

        array = resize(
            from_native(values, cipher_text.element_type), cipher_text.vector_size
        )
        self._preview("Decrypted", array)
        return array

    def _preview(self, label: str, array: np.ndarray) -> None:
        if self.state.config.debug_vectors and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"{label} {self.scheme.value} vector: {print_vector(array)}")


class IntegerPipeline(SchemePipeline):
    """Exact batched integers through the batch encoder."""

    scheme = Scheme.INTEGER

    def check_element_type(self, element_type: ElementType) -> None:
        if not element_type.is_integer:
            raise ElementTypeError(
                f"{self.scheme.value} only encodes integer element types, "
                f"got {element_type.value}"
            )

    def check_values(self, array: np.ndarray, element_type: ElementType) -> None:
        """Reject values the batch encoder would reduce modulo the plain modulus."""
        if not array.size:
            return
        t = self.state.parameters.plain_modulus
        if element_type.is_signed:
            low, high = -((t - 1) // 2), (t - 1) // 2
        else:
            low, high = 0, t - 1
        smallest, largest = int(array.min()), int(array.max())
        if smallest < low or largest > high:
            raise ElementTypeError(
                f"Values in [{smallest}, {largest}] do not fit plain_modulus={t}: "
                f"{element_type.value} under {self.scheme.value} holds [{low}, {high}]"
            )

    def encode(self, array: np.ndarray, element_type: ElementType, scale: float | None) -> PlainText:
        if scale is not None:
            logger.debug(f"Ignoring scale={scale} for {self.scheme.value}")
        encoder = self.state.require("batch_encoder")
        with translate_native_errors("batch encode"):
            ref = self.engine.batch_encode(
                encoder.instance, to_native(array), signed=element_type.is_signed
            )
        return PlainText(self.engine, ref)

    def decode(self, plaintext: PlainText, element_type: ElementType) -> list:
        encoder = self.state.require("batch_encoder")
        with translate_native_errors("batch decode"):
            return self.engine.batch_decode(
                encoder.instance, plaintext.instance, signed=element_type.is_signed
            )

    def _preview(self, label: str, array: np.ndarray) -> None:
        super()._preview(label, array)
        if self.state.config.debug_vectors and logger.isEnabledFor(logging.DEBUG):
            row_size = max(self.slot_capacity() // 2, 1)
            logger.debug(f"{label} as matrix:\n{print_matrix(array, row_size)}")


class ApproxRealPipeline(SchemePipeline):
    """Approximate reals through the CKKS encoder and a global scale."""

    scheme = Scheme.APPROX_REAL

    def encode(self, array: np.ndarray, element_type: ElementType, scale: float | None) -> PlainText:
        encoder = self.state.require("ckks_encoder")
        scale = scale if scale is not None else self.state.parameters.scale
        with translate_native_errors("ckks encode"):
            ref = self.engine.ckks_encode(
                encoder.instance, to_native(array.astype(np.float64)), scale
            )
        return PlainText(self.engine, ref)

    def decode(self, plaintext: PlainText, element_type: ElementType) -> list:
        encoder = self.state.require("ckks_encoder")
        with translate_native_errors("ckks decode"):
            return self.engine.ckks_decode(encoder.instance, plaintext.instance)


PIPELINES: dict[Scheme, type[SchemePipeline]] = {
    Scheme.INTEGER: IntegerPipeline,
    Scheme.APPROX_REAL: ApproxRealPipeline,
}


def pipeline_for(state: OrchestratorState) -> SchemePipeline:
    """The pipeline of the state's active scheme."""
    state.require_context()
    return PIPELINES[state.scheme](state)
