"""Context construction for the integer and approximate-real schemes."""

import logging

from ..engine.base import NativeEngine, NativeKind
from .errors import InvalidParametersError, translate_native_errors
from .handle import NativeHandle, SerializableHandle
from .params import Parameters, Scheme
from .state import OrchestratorState

logger = logging.getLogger(__name__)


class Modulus(SerializableHandle):
    """A native small modulus, e.g. the plaintext modulus of the integer scheme."""

    kind = NativeKind.MODULUS

    @classmethod
    def create(cls, engine: NativeEngine, value: int) -> "Modulus":
        with translate_native_errors("create modulus", InvalidParametersError):
            return cls(engine, engine.make_modulus(value))

    @property
    def value(self) -> int:
        return self._engine.modulus_value(self.instance)

    @property
    def bit_count(self) -> int:
        return self._engine.modulus_bit_count(self.instance)

    @property
    def is_zero(self) -> bool:
        return self._engine.modulus_is_zero(self.instance)

    @property
    def is_prime(self) -> bool:
        return self._engine.modulus_is_prime(self.instance)


class Context(NativeHandle):
    """Validated parameter set bound to the native engine."""

    def __init__(
        self, engine: NativeEngine, instance, scheme: Scheme, parameters: Parameters
    ) -> None:
        super().__init__(engine, instance)
        self.scheme = scheme
        self.parameters = parameters

    @property
    def parameters_set(self) -> bool:
        """Whether the engine accepted the parameters."""
        return self._engine.parameters_set(self.instance)


class ContextInitializer:
    """Builds the context and encoders for a scheme and installs them into a state."""

    def initialize(
        self, state: OrchestratorState, scheme: Scheme | str, parameters: Parameters
    ) -> Context:
        """
        Build a context for ``scheme`` from ``parameters``.

        Any previous context, encoders and key material held by ``state`` are
        released first. Caller-owned plaintexts and ciphertexts are not.

        Args:
            state: Orchestrator state to install into
            scheme: Scheme to activate
            parameters: Parameter bundle

        Returns:
            The new context

        Raises:
            InvalidParametersError: If the engine rejects the parameters
        """
        scheme = Scheme.from_name(scheme)
        engine = state.engine
        logger.info(
            f"Creating {scheme.value} context: poly_degree={parameters.poly_degree}, "
            f"coeff_modulus={parameters.coeff_modulus}, "
            f"plain_modulus={parameters.plain_modulus if scheme is Scheme.INTEGER else '-'}"
        )

        if state.context is not None:
            logger.warning("Re-initializing: releasing previous context and key material")
            state.reset()

        built: list[NativeHandle] = []
        try:
            plain_modulus = None
            if scheme is Scheme.INTEGER:
                plain_modulus = Modulus.create(engine, parameters.plain_modulus)
                built.append(plain_modulus)

            with translate_native_errors("build context", InvalidParametersError):
                with NativeHandle(
                    engine,
                    engine.coeff_modulus(parameters.poly_degree, parameters.coeff_modulus),
                ) as coeff_modulus, NativeHandle(
                    engine,
                    engine.make_parameters(
                        scheme,
                        parameters.poly_degree,
                        coeff_modulus.instance,
                        plain_modulus.instance if plain_modulus is not None else None,
                    ),
                ) as native_params:
                    context = Context(
                        engine,
                        engine.make_context(native_params.instance, expand_mod_chain=True),
                        scheme,
                        parameters,
                    )
                    built.append(context)

            if not context.parameters_set:
                with translate_native_errors("read parameter error", InvalidParametersError):
                    message = engine.parameter_error(context.instance)
                logger.error(f"Engine rejected parameters: {message}")
                raise InvalidParametersError(message)

            encoders = {}
            with translate_native_errors("create encoders"):
                if scheme is Scheme.INTEGER:
                    encoders["integer_encoder"] = NativeHandle(
                        engine, engine.make_integer_encoder(context.instance)
                    )
                    built.append(encoders["integer_encoder"])
                    encoders["batch_encoder"] = NativeHandle(
                        engine, engine.make_batch_encoder(context.instance)
                    )
                    built.append(encoders["batch_encoder"])
                else:
                    encoders["ckks_encoder"] = NativeHandle(
                        engine, engine.make_ckks_encoder(context.instance)
                    )
                    built.append(encoders["ckks_encoder"])
        except BaseException:
            for handle in reversed(built):
                handle.release()
            raise

        state.scheme = scheme
        state.parameters = parameters
        state.context = context
        state.plain_modulus = plain_modulus
        for attr, handle in encoders.items():
            setattr(state, attr, handle)

        logger.info(f"{scheme.value} context ready")
        return context
