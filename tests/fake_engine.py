"""In-memory native engine used by the unit tests.

It performs no cryptography. Plaintexts and ciphertexts carry their slot
values plus the identity of the key pair and context they belong to, which is
enough to check routing, tagging and ownership. Every object it hands out is
tracked so tests can assert that nothing leaks and nothing is freed twice.
"""

import base64
import itertools
import json
import zlib

from fhekit.core.params import Scheme
from fhekit.engine.base import CompressionMode, NativeEngine, NativeKind

SERIALIZABLE = {kind.value for kind in NativeKind}
VALID_DEGREES = {1024, 2048, 4096, 8192, 16384, 32768}


class DoubleFreeError(AssertionError):
    pass


class FakeObject:
    _ids = itertools.count(1)

    def __init__(self, kind: str, **data) -> None:
        self.kind = kind
        self.data = data
        self.id = next(self._ids)
        self.freed = False

    def __repr__(self) -> str:
        return f"<FakeObject {self.kind}#{self.id}{' freed' if self.freed else ''}>"


def _is_prime(n: int) -> bool:
    if n < 2:
        return False
    i = 2
    while i * i <= n:
        if n % i == 0:
            return False
        i += 1
    return True


class FakeEngine(NativeEngine):
    name = "fake"

    def __init__(self, fail_on=()) -> None:
        self.live: dict[int, FakeObject] = {}
        self.freed_count = 0
        self.calls: list[str] = []
        self.fail_on = set(fail_on)

    # bookkeeping

    def _call(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"fake native failure in {name}")

    def _new(self, kind: str, **data) -> FakeObject:
        obj = FakeObject(kind, **data)
        self.live[obj.id] = obj
        return obj

    def _use(self, obj, kind: str | None = None) -> FakeObject:
        if not isinstance(obj, FakeObject):
            raise TypeError(f"not a native object: {obj!r}")
        if obj.freed:
            raise AssertionError(f"use after free of {obj!r}")
        if kind is not None and obj.kind != kind:
            raise TypeError(f"expected {kind}, got {obj.kind}")
        return obj

    def live_count(self, kind: str | None = None) -> int:
        return sum(1 for obj in self.live.values() if kind is None or obj.kind == kind)

    # modulus

    def make_modulus(self, value):
        self._call("make_modulus")
        if value < 0 or value >= 2**61:
            raise ValueError("value can be at most 61-bit")
        return self._new("modulus", value=int(value))

    def modulus_value(self, modulus):
        return self._use(modulus, "modulus").data["value"]

    def modulus_bit_count(self, modulus):
        return self._use(modulus, "modulus").data["value"].bit_length()

    def modulus_is_zero(self, modulus):
        return self._use(modulus, "modulus").data["value"] == 0

    def modulus_is_prime(self, modulus):
        return _is_prime(self._use(modulus, "modulus").data["value"])

    # parameters and context

    def coeff_modulus(self, poly_degree, hint):
        self._call("coeff_modulus")
        if hint not in VALID_DEGREES:
            raise ValueError("no default coeff_modulus for this poly_modulus_degree")
        return self._new("coeff_modulus", degree=hint)

    def make_parameters(self, scheme, poly_degree, coeff_modulus, plain_modulus=None):
        self._call("make_parameters")
        coeff = self._use(coeff_modulus, "coeff_modulus")
        plain = self._use(plain_modulus, "modulus").data["value"] if plain_modulus else None
        return self._new(
            "parameters",
            scheme=scheme.value,
            poly_degree=poly_degree,
            coeff_degree=coeff.data["degree"],
            plain_modulus=plain,
        )

    def make_context(self, parameters, expand_mod_chain=True):
        self._call("make_context")
        p = self._use(parameters, "parameters").data
        error = ""
        if p["poly_degree"] not in VALID_DEGREES:
            error = "poly_modulus_degree is invalid"
        elif p["coeff_degree"] != p["poly_degree"]:
            error = "coeff_modulus is too large for poly_modulus_degree"
        elif p["scheme"] == Scheme.INTEGER.value:
            t = p["plain_modulus"]
            if not _is_prime(t) or t % (2 * p["poly_degree"]) != 1:
                error = "plain_modulus does not support batching"
        signature = f"{p['scheme']}:{p['poly_degree']}:{p['plain_modulus']}"
        return self._new(
            "context",
            scheme=p["scheme"],
            poly_degree=p["poly_degree"],
            plain_modulus=p["plain_modulus"],
            signature=signature,
            expand_mod_chain=expand_mod_chain,
            error=error,
        )

    def parameters_set(self, context):
        return not self._use(context, "context").data["error"]

    def parameter_error(self, context):
        self._call("parameter_error")
        return self._use(context, "context").data["error"]

    # encoders

    def _encoder(self, kind, context, slots):
        ctx = self._use(context, "context").data
        return self._new(
            kind,
            slots=slots,
            plain_modulus=ctx["plain_modulus"],
            context=ctx["signature"],
        )

    def make_batch_encoder(self, context):
        self._call("make_batch_encoder")
        return self._encoder("batch_encoder", context, context.data["poly_degree"])

    def make_integer_encoder(self, context):
        self._call("make_integer_encoder")
        return self._encoder("integer_encoder", context, 1)

    def make_ckks_encoder(self, context):
        self._call("make_ckks_encoder")
        return self._encoder("ckks_encoder", context, context.data["poly_degree"] // 2)

    def slot_count(self, encoder):
        return self._use(encoder).data["slots"]

    def _plaintext(self, encoder, values, scale=None):
        return self._new(
            "plaintext",
            slots=list(values),
            scale=scale,
            context=encoder.data["context"],
        )

    def batch_encode(self, encoder, values, signed):
        self._call("batch_encode")
        enc = self._use(encoder, "batch_encoder")
        n, t = enc.data["slots"], enc.data["plain_modulus"]
        if len(values) > n:
            raise ValueError("values_matrix size is too large")
        return self._plaintext(enc, [int(v) % t for v in values] + [0] * (n - len(values)))

    def batch_decode(self, encoder, plaintext, signed):
        self._call("batch_decode")
        enc = self._use(encoder, "batch_encoder")
        t = enc.data["plain_modulus"]
        slots = self._use(plaintext, "plaintext").data["slots"]
        if signed:
            return [v - t if v > (t - 1) // 2 else v for v in slots]
        return list(slots)

    def ckks_encode(self, encoder, values, scale):
        self._call("ckks_encode")
        enc = self._use(encoder, "ckks_encoder")
        n = enc.data["slots"]
        if len(values) > n:
            raise ValueError("values has invalid size")
        if scale <= 0:
            raise ValueError("scale out of bounds")
        return self._plaintext(enc, [float(v) for v in values] + [0.0] * (n - len(values)), scale)

    def ckks_decode(self, encoder, plaintext):
        self._call("ckks_decode")
        self._use(encoder, "ckks_encoder")
        slots = self._use(plaintext, "plaintext").data["slots"]
        # approximate scheme: small deterministic error
        return [v + (1e-7 if i % 2 else -1e-7) for i, v in enumerate(slots)]

    def encode_integer(self, encoder, value):
        self._call("encode_integer")
        enc = self._use(encoder, "integer_encoder")
        return self._plaintext(enc, [int(value) % enc.data["plain_modulus"]])

    def decode_integer(self, encoder, plaintext):
        self._call("decode_integer")
        t = self._use(encoder, "integer_encoder").data["plain_modulus"]
        v = self._use(plaintext, "plaintext").data["slots"][0]
        return v - t if v > (t - 1) // 2 else v

    # keys

    def make_key_generator(self, context, secret_key=None):
        self._call("make_key_generator")
        ctx = self._use(context, "context").data
        if secret_key is not None:
            token = self._use(secret_key, "secret_key").data["token"]
        else:
            token = f"key{next(FakeObject._ids)}"
        return self._new("key_generator", token=token, context=ctx["signature"])

    def _key(self, kind, key_generator, **extra):
        keygen = self._use(key_generator, "key_generator").data
        return self._new(kind, token=keygen["token"], context=keygen["context"], **extra)

    def public_key(self, key_generator):
        self._call("public_key")
        return self._key("public_key", key_generator)

    def secret_key(self, key_generator):
        self._call("secret_key")
        return self._key("secret_key", key_generator)

    def relin_keys(self, key_generator, decomposition_bit_count, size):
        self._call("relin_keys")
        return self._key(
            "relin_keys", key_generator, size=size, decomposition_bit_count=decomposition_bit_count
        )

    def galois_keys(self, key_generator, decomposition_bit_count):
        self._call("galois_keys")
        return self._key(
            "galois_keys", key_generator, decomposition_bit_count=decomposition_bit_count
        )

    # encryption

    def _bound(self, kind, context, key, key_kind):
        ctx = self._use(context, "context").data
        k = self._use(key, key_kind).data
        if k["context"] != ctx["signature"]:
            raise ValueError(f"{key_kind} is not valid for encryption parameters")
        return self._new(kind, token=k["token"], context=ctx["signature"], scheme=ctx["scheme"])

    def make_encryptor(self, context, public_key):
        self._call("make_encryptor")
        return self._bound("encryptor", context, public_key, "public_key")

    def make_decryptor(self, context, secret_key):
        self._call("make_decryptor")
        return self._bound("decryptor", context, secret_key, "secret_key")

    def encrypt(self, encryptor, plaintext):
        self._call("encrypt")
        enc = self._use(encryptor, "encryptor").data
        pt = self._use(plaintext, "plaintext").data
        if pt["context"] != enc["context"]:
            raise ValueError("plain is not valid for encryption parameters")
        return self._new(
            "ciphertext",
            token=enc["token"],
            context=enc["context"],
            slots=list(pt["slots"]),
            scale=pt["scale"],
        )

    def decrypt(self, decryptor, ciphertext):
        self._call("decrypt")
        dec = self._use(decryptor, "decryptor").data
        ct = self._use(ciphertext, "ciphertext").data
        if ct["context"] != dec["context"]:
            raise ValueError("encrypted is not valid for encryption parameters")
        slots = list(ct["slots"])
        if ct["token"] != dec["token"]:
            slots = [v * 7 + 3 for v in reversed(slots)]
        return self._new("plaintext", slots=slots, scale=ct["scale"], context=ct["context"])

    # serialization and lifetime

    def save(self, obj, compression):
        self._call("save")
        obj = self._use(obj)
        if obj.kind not in SERIALIZABLE:
            raise TypeError(f"{obj.kind} is not serializable")
        payload = json.dumps({"kind": obj.kind, "data": obj.data}).encode()
        mode = "0"
        if compression is CompressionMode.DEFLATE:
            payload = zlib.compress(payload)
            mode = "1"
        return f"FAKE1{mode}:" + base64.b64encode(payload).decode("ascii")

    def load(self, kind, context, encoded):
        self._call("load")
        if not encoded.startswith("FAKE1") or encoded[6:7] != ":":
            raise ValueError("invalid blob header")
        payload = base64.b64decode(encoded[7:], validate=True)
        if encoded[5] == "1":
            payload = zlib.decompress(payload)
        blob = json.loads(payload)
        if blob["kind"] != kind.value:
            raise ValueError(f"blob holds {blob['kind']}, expected {kind.value}")
        data = blob["data"]
        if "context" in data:
            ctx = self._use(context, "context").data
            if data["context"] != ctx["signature"]:
                raise ValueError("loaded object is not valid for encryption parameters")
        return self._new(kind.value, **data)

    def release(self, obj):
        if not isinstance(obj, FakeObject):
            raise TypeError(f"not a native object: {obj!r}")
        if obj.freed:
            raise DoubleFreeError(f"{obj!r} freed twice")
        obj.freed = True
        del self.live[obj.id]
        self.freed_count += 1
