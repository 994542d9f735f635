"""Command line round-trip and key export tool."""

import argparse
import logging
import os
from datetime import datetime

import numpy as np

from .core.containers import ElementType
from .core.errors import FhekitError
from .core.orchestrator import HE
from .core.params import OrchestratorConfig, Scheme
from .engine.base import CompressionMode, NativeEngine
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fhekit",
        description="Encrypt and decrypt a test vector with BFV or CKKS",
    )

    # Scheme configuration
    parser.add_argument(
        "--scheme",
        choices=[s.value for s in Scheme],
        default=Scheme.INTEGER.value,
        help="Encryption scheme",
    )
    parser.add_argument(
        "--security",
        choices=["low", "medium", "high"],
        default="low",
        help="Parameter preset",
    )
    parser.add_argument(
        "--length", type=int, default=16, help="Length of the test vector 0..N-1"
    )
    parser.add_argument(
        "--element-type",
        choices=[t.value for t in ElementType],
        default=None,
        help="Element type (int32 for BFV, float64 for CKKS by default)",
    )

    # Keys
    parser.add_argument(
        "--relin", action="store_true", help="Also generate relinearization keys"
    )
    parser.add_argument(
        "--galois", action="store_true", help="Also generate Galois keys"
    )
    parser.add_argument(
        "--export-keys",
        metavar="DIR",
        default=None,
        help="Write the saved keys to DIR",
    )
    parser.add_argument(
        "--compression",
        choices=[m.value for m in CompressionMode],
        default=CompressionMode.DEFLATE.value,
        help="Compression mode for exported keys",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level",
    )
    parser.add_argument("--log-file", default=None, help="Optional log file")
    parser.add_argument(
        "--debug-vectors",
        action="store_true",
        help="Log vector previews at DEBUG level",
    )
    return parser


def export_keys(he: HE, directory: str) -> list[str]:
    """Write every held key to ``directory`` and return the file paths."""
    os.makedirs(directory, exist_ok=True)
    savers = {
        "public_key": he.save_public_key,
        "secret_key": he.save_secret_key,
        "relin_keys": he.save_relin_keys,
        "galois_keys": he.save_galois_keys,
    }
    written = []
    for name, save in savers.items():
        if getattr(he, name) is None:
            continue
        path = os.path.join(directory, f"{name}.b64")
        with open(path, "w") as f:
            f.write(save())
        written.append(path)
        logger.info(f"Saved {name} to {path}")
    return written


def main(argv: list[str] | None = None, engine: NativeEngine | None = None) -> int:
    """Entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    scheme = Scheme.from_name(args.scheme)
    element_type = args.element_type or (
        "int32" if scheme is Scheme.INTEGER else "float64"
    )
    config = OrchestratorConfig(
        compression=CompressionMode(args.compression),
        security=args.security,
        debug_vectors=args.debug_vectors,
    )

    print("=" * 70)
    print(f"FHEKIT ROUND TRIP ({scheme.value}, security={args.security})")
    print("=" * 70)

    start_time = datetime.now()
    try:
        with HE(engine=engine, config=config) as he:
            he.initialize(scheme, he.create_params())
            he.generate_keys()
            if args.relin:
                he.generate_relin_keys()
            if args.galois:
                he.generate_galois_keys()

            values = np.arange(args.length)
            with he.encrypt(values, element_type) as cipher_text:
                decrypted = he.decrypt(cipher_text)

            if scheme is Scheme.INTEGER:
                matched = np.array_equal(decrypted, values)
            else:
                matched = np.allclose(decrypted, values, atol=1e-3)

            print(f"Input:     {he.print_vector(values)}")
            print(f"Decrypted: {he.print_vector(decrypted)}")

            if args.export_keys:
                for path in export_keys(he, args.export_keys):
                    print(f"Wrote {path}")

    except FhekitError as e:
        logger.error(f"Round trip failed: {e}")
        print(f"\nRound trip failed: {e}")
        return 1

    print(f"Elapsed: {datetime.now() - start_time}")
    if not matched:
        print("Round trip MISMATCH")
        return 1
    print("Round trip OK")
    return 0
