"""Error taxonomy and native error translation."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class FhekitError(Exception):
    """Base class for every error raised by fhekit."""


class InvalidParametersError(FhekitError, ValueError):
    """The native engine rejected the encryption parameters."""


class UninitializedContextError(FhekitError, RuntimeError):
    """An operation needs a context but `initialize` was never called."""


class UninitializedKeyError(FhekitError, LookupError):
    """An operation needs key material that has not been generated or loaded."""


class UseAfterReleaseError(FhekitError, RuntimeError):
    """A native handle was used after it had been released."""


class OversizedInputError(FhekitError, ValueError):
    """The input holds more elements than the active scheme has slots."""


class SchemeMismatchError(FhekitError, ValueError):
    """A ciphertext was produced under a scheme other than the active one."""


class SerializationError(FhekitError, ValueError):
    """An encoded blob could not be produced or consumed."""


class MissingKeyError(UninitializedKeyError, SerializationError):
    """Saving a key kind that is not currently held."""


class ElementTypeError(FhekitError, TypeError):
    """Element type unsupported by the scheme, or values outside its range."""


class NativeOperationError(FhekitError, RuntimeError):
    """Any other failure reported by the native engine."""


@contextmanager
def translate_native_errors(
    operation: str, error_cls: type[FhekitError] = NativeOperationError
) -> Iterator[None]:
    """
    Translate engine exceptions raised inside the block.

    fhekit errors pass through untouched; anything else is logged and
    re-raised as ``error_cls`` with the engine message preserved.

    Args:
        operation: Short name of the native call, used in the log line
        error_cls: Error type to raise for foreign exceptions
    """
    try:
        yield
    except FhekitError:
        raise
    except Exception as e:
        logger.error(f"Native operation '{operation}' failed: {e}")
        raise error_cls(str(e)) from e
