"""Generation, injection and serialization of key material."""

import logging
from enum import Enum
from typing import Any, ClassVar

from ..engine.base import CompressionMode, NativeKind
from .errors import (
    MissingKeyError,
    SerializationError,
    UninitializedKeyError,
    translate_native_errors,
)
from .handle import NativeHandle, SerializableHandle
from .params import GaloisKeyOptions, RelinKeyOptions
from .state import OrchestratorState

logger = logging.getLogger(__name__)


class KeyKind(Enum):
    """The four kinds of key material an orchestrator holds."""

    PUBLIC = "public_key"
    SECRET = "secret_key"
    RELIN = "relin_keys"
    GALOIS = "galois_keys"


class KeyMaterial(SerializableHandle):
    """A key bound to a context."""

    key_kind: ClassVar[KeyKind]


class PublicKey(KeyMaterial):
    kind = NativeKind.PUBLIC_KEY
    key_kind = KeyKind.PUBLIC


class SecretKey(KeyMaterial):
    kind = NativeKind.SECRET_KEY
    key_kind = KeyKind.SECRET


class RelinKeys(KeyMaterial):
    kind = NativeKind.RELIN_KEYS
    key_kind = KeyKind.RELIN


class GaloisKeys(KeyMaterial):
    kind = NativeKind.GALOIS_KEYS
    key_kind = KeyKind.GALOIS


KEY_CLASSES: dict[KeyKind, type[KeyMaterial]] = {
    cls.key_kind: cls for cls in (PublicKey, SecretKey, RelinKeys, GaloisKeys)
}


class KeyManager:
    """
    Owns the key material of one orchestrator state.

    New native objects are always fully built before anything already held is
    replaced, so a failed call leaves the previous keys, encryptor and
    decryptor exactly as they were.
    """

    def __init__(self, state: OrchestratorState) -> None:
        self.state = state

    @property
    def engine(self):
        return self.state.engine

    def get(self, kind: KeyKind) -> KeyMaterial:
        """Return held key material of ``kind``."""
        return self.state.require(kind.value)

    def has(self, kind: KeyKind) -> bool:
        handle = getattr(self.state, kind.value)
        return handle is not None and not handle.is_released

    def _discard(self, refs: list[Any]) -> None:
        for ref in reversed(refs):
            self.engine.release(ref)

    def generate_keys(self) -> None:
        """Generate a fresh public/secret key pair and bind encryptor and decryptor."""
        context = self.state.require_context()
        engine = self.engine
        logger.info("Generating public and secret keys")

        staged: list[Any] = []
        try:
            with translate_native_errors("generate keys"):
                keygen = engine.make_key_generator(context.instance)
                staged.append(keygen)
                public_key = engine.public_key(keygen)
                staged.append(public_key)
                secret_key = engine.secret_key(keygen)
                staged.append(secret_key)
                encryptor = engine.make_encryptor(context.instance, public_key)
                staged.append(encryptor)
                decryptor = engine.make_decryptor(context.instance, secret_key)
                staged.append(decryptor)
        except BaseException:
            self._discard(staged)
            raise

        self.state.install("key_generator", NativeHandle, keygen)
        self.state.install("public_key", PublicKey, public_key)
        self.state.install("secret_key", SecretKey, secret_key)
        self.state.install("encryptor", NativeHandle, encryptor)
        self.state.install("decryptor", NativeHandle, decryptor)

    def _key_generator(self) -> NativeHandle:
        """Key generator for auxiliary keys, rebuilt from the secret key if needed."""
        self.state.require_context()
        keygen = self.state.key_generator
        if keygen is not None and not keygen.is_released:
            return keygen
        secret_key = self.get(KeyKind.SECRET)
        with translate_native_errors("create key generator"):
            ref = self.engine.make_key_generator(
                self.state.context.instance, secret_key.instance
            )
        return self.state.install("key_generator", NativeHandle, ref)

    def generate_relin_keys(self, options: RelinKeyOptions | None = None) -> None:
        """
        Generate relinearization keys.

        Args:
            options: Decomposition bit count and number of keys
        """
        decomposition_bit_count, size = (options or RelinKeyOptions()).resolve()
        keygen = self._key_generator()
        logger.info(f"Generating relinearization keys (size={size})")
        with translate_native_errors("generate relin keys"):
            ref = self.engine.relin_keys(keygen.instance, decomposition_bit_count, size)
        self.state.install("relin_keys", RelinKeys, ref)

    def generate_galois_keys(self, options: GaloisKeyOptions | None = None) -> None:
        """Generate Galois keys for slot rotations."""
        decomposition_bit_count = (options or GaloisKeyOptions()).resolve()
        keygen = self._key_generator()
        logger.info("Generating Galois keys")
        with translate_native_errors("generate galois keys"):
            ref = self.engine.galois_keys(keygen.instance, decomposition_bit_count)
        self.state.install("galois_keys", GaloisKeys, ref)

    def load(self, kind: KeyKind, encoded: str) -> KeyMaterial:
        """
        Replace key material of ``kind`` with a deserialized one.

        Loading a public key re-binds the encryptor; loading a secret key
        re-binds the decryptor and resets the key generator.

        Raises:
            SerializationError: If ``encoded`` is malformed; held keys are untouched
        """
        context = self.state.require_context()
        engine = self.engine
        if not isinstance(encoded, str) or not encoded:
            raise SerializationError(f"Expected a non-empty encoded string for {kind.value}")

        with translate_native_errors(f"load {kind.value}", SerializationError):
            ref = engine.load(KEY_CLASSES[kind].kind, context.instance, encoded)

        staged: list[Any] = [ref]
        try:
            with translate_native_errors(f"bind {kind.value}"):
                if kind is KeyKind.PUBLIC:
                    bound = ("encryptor", engine.make_encryptor(context.instance, ref))
                    staged.append(bound[1])
                elif kind is KeyKind.SECRET:
                    bound = ("decryptor", engine.make_decryptor(context.instance, ref))
                    staged.append(bound[1])
                    keygen = engine.make_key_generator(context.instance, ref)
                    staged.append(keygen)
                else:
                    bound = None
        except BaseException:
            self._discard(staged)
            raise

        key = self.state.install(kind.value, KEY_CLASSES[kind], ref)
        if bound is not None:
            self.state.install(bound[0], NativeHandle, bound[1])
        if kind is KeyKind.SECRET:
            self.state.install("key_generator", NativeHandle, keygen)
        logger.info(f"Loaded {kind.value.replace('_', ' ')}")
        return key

    def save(self, kind: KeyKind, compression: CompressionMode | None = None) -> str:
        """
        Serialize held key material of ``kind``.

        Raises:
            MissingKeyError: If no key of that kind is held
        """
        try:
            key = self.get(kind)
        except UninitializedKeyError as e:
            raise MissingKeyError(str(e)) from e
        return key.save(compression or self.state.config.compression)

    def release_keys(self) -> None:
        """Release all key material and the objects bound to it."""
        self.state.release_attrs(
            "encryptor",
            "decryptor",
            "key_generator",
            "public_key",
            "secret_key",
            "relin_keys",
            "galois_keys",
        )
