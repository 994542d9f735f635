"""Native engine backed by Microsoft SEAL through TenSEAL's low-level `sealapi`."""

import base64
import logging
import os
import tempfile
import uuid
import zlib
from collections.abc import Sequence
from typing import Any

import tenseal.sealapi as sealapi

from ..core.params import Scheme
from .base import CompressionMode, NativeEngine, NativeKind

logger = logging.getLogger(__name__)

# Envelope: magic, format version, compression byte, SEAL payload
_MAGIC = b"FK"
_FORMAT_VERSION = 1
_MODE_BYTES = {CompressionMode.NONE: 0, CompressionMode.DEFLATE: 1}
_BYTE_MODES = {v: k for k, v in _MODE_BYTES.items()}

_CONSTRUCTORS = {
    NativeKind.MODULUS: sealapi.Modulus,
    NativeKind.PUBLIC_KEY: sealapi.PublicKey,
    NativeKind.SECRET_KEY: sealapi.SecretKey,
    NativeKind.RELIN_KEYS: sealapi.RelinKeys,
    NativeKind.GALOIS_KEYS: sealapi.GaloisKeys,
    NativeKind.PLAINTEXT: sealapi.Plaintext,
    NativeKind.CIPHERTEXT: sealapi.Ciphertext,
}


def _seal_temp_path() -> str:
    """Temp file path for SEAL (de)serialization, preferring RAM-backed /dev/shm."""
    shm_dir = "/dev/shm"
    if os.path.isdir(shm_dir) and os.access(shm_dir, os.W_OK):
        return os.path.join(shm_dir, f"fhekit_{uuid.uuid4().hex}.bin")
    return os.path.join(tempfile.gettempdir(), f"fhekit_{uuid.uuid4().hex}.bin")


class _IntegerEncoder:
    """Scalar integer encoding on top of the batch encoder (slot 0)."""

    def __init__(self, context: Any) -> None:
        self.batch_encoder = sealapi.BatchEncoder(context)


class SealEngine(NativeEngine):
    """
    SEAL engine via `tenseal.sealapi`.

    SEAL objects only serialize to files from Python, so `save`/`load` go
    through a temp file and wrap the payload in a small versioned envelope
    before base64 encoding.
    """

    name = "seal"

    def __init__(self, sec_level: Any = None) -> None:
        """
        Initialize the SEAL engine.

        Args:
            sec_level: SEAL security level, 128-bit classical by default
        """
        self.sec_level = sec_level if sec_level is not None else sealapi.SEC_LEVEL_TYPE.TC128

    def make_modulus(self, value: int) -> Any:
        return sealapi.Modulus(int(value))

    def modulus_value(self, modulus: Any) -> int:
        return int(modulus.value())

    def modulus_bit_count(self, modulus: Any) -> int:
        return int(modulus.bit_count())

    def modulus_is_zero(self, modulus: Any) -> bool:
        return bool(modulus.is_zero())

    def modulus_is_prime(self, modulus: Any) -> bool:
        return bool(modulus.is_prime())

    def coeff_modulus(self, poly_degree: int, hint: int) -> Any:
        return sealapi.CoeffModulus.BFVDefault(hint, self.sec_level)

    def make_parameters(
        self,
        scheme: Scheme,
        poly_degree: int,
        coeff_modulus: Any,
        plain_modulus: Any | None = None,
    ) -> Any:
        scheme_type = (
            sealapi.SCHEME_TYPE.BFV if scheme is Scheme.INTEGER else sealapi.SCHEME_TYPE.CKKS
        )
        parms = sealapi.EncryptionParameters(scheme_type)
        parms.set_poly_modulus_degree(poly_degree)
        parms.set_coeff_modulus(coeff_modulus)
        if plain_modulus is not None:
            parms.set_plain_modulus(plain_modulus)
        return parms

    def make_context(self, parameters: Any, expand_mod_chain: bool = True) -> Any:
        return sealapi.SEALContext(parameters, expand_mod_chain, self.sec_level)

    def parameters_set(self, context: Any) -> bool:
        return bool(context.parameters_set())

    def parameter_error(self, context: Any) -> str:
        return str(context.parameters_error_message())

    def make_batch_encoder(self, context: Any) -> Any:
        return sealapi.BatchEncoder(context)

    def make_integer_encoder(self, context: Any) -> Any:
        return _IntegerEncoder(context)

    def make_ckks_encoder(self, context: Any) -> Any:
        return sealapi.CKKSEncoder(context)

    def slot_count(self, encoder: Any) -> int:
        if isinstance(encoder, _IntegerEncoder):
            return 1
        return int(encoder.slot_count())

    def batch_encode(self, encoder: Any, values: Sequence[int], signed: bool) -> Any:
        plaintext = sealapi.Plaintext()
        encoder.encode([int(v) for v in values], plaintext)
        return plaintext

    def batch_decode(self, encoder: Any, plaintext: Any, signed: bool) -> list[int]:
        if signed:
            return list(encoder.decode_int64(plaintext))
        return list(encoder.decode_uint64(plaintext))

    def ckks_encode(self, encoder: Any, values: Sequence[float], scale: float) -> Any:
        plaintext = sealapi.Plaintext()
        encoder.encode([float(v) for v in values], float(scale), plaintext)
        return plaintext

    def ckks_decode(self, encoder: Any, plaintext: Any) -> list[float]:
        return list(encoder.decode_double(plaintext))

    def encode_integer(self, encoder: Any, value: int) -> Any:
        return self.batch_encode(encoder.batch_encoder, [int(value)], signed=True)

    def decode_integer(self, encoder: Any, plaintext: Any) -> int:
        return int(self.batch_decode(encoder.batch_encoder, plaintext, signed=True)[0])

    def make_key_generator(self, context: Any, secret_key: Any | None = None) -> Any:
        if secret_key is None:
            return sealapi.KeyGenerator(context)
        return sealapi.KeyGenerator(context, secret_key)

    def public_key(self, key_generator: Any) -> Any:
        public_key = sealapi.PublicKey()
        key_generator.create_public_key(public_key)
        return public_key

    def secret_key(self, key_generator: Any) -> Any:
        return key_generator.secret_key()

    def relin_keys(
        self, key_generator: Any, decomposition_bit_count: int | None, size: int
    ) -> Any:
        # SEAL >= 3.4 fixes both knobs internally
        if size != 1:
            raise ValueError(f"SEAL only generates relinearization keys of size 1, got {size}")
        if decomposition_bit_count is not None:
            logger.debug(
                f"Ignoring decomposition_bit_count={decomposition_bit_count} for SEAL"
            )
        relin_keys = sealapi.RelinKeys()
        key_generator.create_relin_keys(relin_keys)
        return relin_keys

    def galois_keys(self, key_generator: Any, decomposition_bit_count: int | None) -> Any:
        if decomposition_bit_count is not None:
            logger.debug(
                f"Ignoring decomposition_bit_count={decomposition_bit_count} for SEAL"
            )
        galois_keys = sealapi.GaloisKeys()
        key_generator.create_galois_keys(galois_keys)
        return galois_keys

    def make_encryptor(self, context: Any, public_key: Any) -> Any:
        return sealapi.Encryptor(context, public_key)

    def make_decryptor(self, context: Any, secret_key: Any) -> Any:
        return sealapi.Decryptor(context, secret_key)

    def encrypt(self, encryptor: Any, plaintext: Any) -> Any:
        ciphertext = sealapi.Ciphertext()
        encryptor.encrypt(plaintext, ciphertext)
        return ciphertext

    def decrypt(self, decryptor: Any, ciphertext: Any) -> Any:
        plaintext = sealapi.Plaintext()
        decryptor.decrypt(ciphertext, plaintext)
        return plaintext

    def save(self, obj: Any, compression: CompressionMode) -> str:
        fname = _seal_temp_path()
        try:
            obj.save(fname)
            with open(fname, "rb") as f:
                payload = f.read()
        finally:
            if os.path.exists(fname):
                os.unlink(fname)

        if compression is CompressionMode.DEFLATE:
            payload = zlib.compress(payload)
        header = _MAGIC + bytes([_FORMAT_VERSION, _MODE_BYTES[compression]])
        return base64.b64encode(header + payload).decode("ascii")

    def load(self, kind: NativeKind, context: Any, encoded: str) -> Any:
        raw = base64.b64decode(encoded.encode("ascii"), validate=True)
        if len(raw) < 4 or raw[:2] != _MAGIC:
            raise ValueError("Encoded data is not an fhekit SEAL blob")
        if raw[2] != _FORMAT_VERSION:
            raise ValueError(f"Unsupported blob format version {raw[2]}")
        if raw[3] not in _BYTE_MODES:
            raise ValueError(f"Unknown compression byte {raw[3]}")
        payload = raw[4:]
        if _BYTE_MODES[raw[3]] is CompressionMode.DEFLATE:
            payload = zlib.decompress(payload)

        fname = _seal_temp_path()
        try:
            with open(fname, "wb") as f:
                f.write(payload)
            obj = _CONSTRUCTORS[kind]()
            if kind is NativeKind.MODULUS:
                obj.load(fname)
            else:
                obj.load(context, fname)
            return obj
        finally:
            if os.path.exists(fname):
                os.unlink(fname)

    def release(self, obj: Any) -> None:
        # pybind11 frees the SEAL object once the last Python reference is gone;
        # handles drop theirs before calling this.
        return None
