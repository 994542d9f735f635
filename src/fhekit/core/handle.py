"""Single-owner wrappers around opaque native engine objects."""

import logging
from typing import Any, ClassVar, Generic, TypeVar

from ..engine.base import CompressionMode, NativeEngine, NativeKind
from .errors import SerializationError, UseAfterReleaseError, translate_native_errors

logger = logging.getLogger(__name__)

T = TypeVar("T")

H = TypeVar("H", bound="SerializableHandle")


class NativeHandle(Generic[T]):
    """
    Owns exactly one native engine object.

    The handle is live from construction until the first `release()`.
    Releasing frees the native object through the engine once; further
    calls are no-ops. Any other access after release raises
    `UseAfterReleaseError`.
    """

    def __init__(self, engine: NativeEngine, instance: T) -> None:
        """
        Take ownership of a native reference.

        Args:
            engine: Engine that created the reference and knows how to free it
            instance: Raw native reference; the caller must not free it
        """
        if instance is None:
            raise ValueError(f"{type(self).__name__} requires a native instance")
        self._engine = engine
        self._instance: T | None = instance
        self._released = False

    @classmethod
    def acquire(cls, engine: NativeEngine, instance: T, **kwargs: Any):
        """Alternate constructor mirroring `inject`/`release`."""
        return cls(engine, instance, **kwargs)

    @property
    def engine(self) -> NativeEngine:
        return self._engine

    @property
    def is_released(self) -> bool:
        return self._released

    @property
    def instance(self) -> T:
        """The owned native reference."""
        self._ensure_live()
        return self._instance

    def inject(self, instance: T) -> None:
        """
        Replace the owned reference.

        The old reference is freed before the new one is adopted. Ownership of
        ``instance`` moves to this handle.

        Args:
            instance: Incoming native reference
        """
        self._ensure_live()
        if instance is None:
            raise ValueError(f"Cannot inject an empty instance into {type(self).__name__}")
        if instance is self._instance:
            return
        old = self._instance
        self._instance = None
        self._engine.release(old)
        self._instance = instance

    def release(self) -> None:
        """Free the native object. Safe to call any number of times."""
        if self._released:
            return
        instance = self._instance
        self._instance = None
        self._released = True
        self._engine.release(instance)
        logger.debug(f"Released {type(self).__name__}")

    def _ensure_live(self) -> None:
        if self._released:
            raise UseAfterReleaseError(
                f"{type(self).__name__} has already been released"
            )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"<{type(self).__name__} {state}>"


class SerializableHandle(NativeHandle[T]):
    """A handle whose native object can travel as an encoded string."""

    kind: ClassVar[NativeKind]

    def save(self, compression: CompressionMode | None = None) -> str:
        """
        Serialize the owned object.

        Args:
            compression: Compression mode, engine default when omitted

        Returns:
            Encoded string owned by the engine format

        Raises:
            SerializationError: If the engine cannot serialize the object
        """
        instance = self.instance
        with translate_native_errors(f"save {self.kind.value}", SerializationError):
            return self._engine.save(instance, compression or CompressionMode.DEFLATE)

    @classmethod
    def load(
        cls: type[H], engine: NativeEngine, context: Any, encoded: str, **kwargs: Any
    ) -> H:
        """
        Build a new handle from an encoded string.

        Args:
            engine: Engine to load with
            context: Raw native context the object is bound to
            encoded: String produced by `save`

        Raises:
            SerializationError: If the blob is malformed or incompatible
        """
        if not isinstance(encoded, str) or not encoded:
            raise SerializationError(f"Expected a non-empty encoded string for {cls.__name__}")
        with translate_native_errors(f"load {cls.kind.value}", SerializationError):
            instance = engine.load(cls.kind, context, encoded)
        return cls(engine, instance, **kwargs)
