"""Unit tests for context initialization."""

import pytest

from fake_engine import FakeEngine
from fhekit import (
    HE,
    InvalidParametersError,
    NativeOperationError,
    Parameters,
    Scheme,
    SerializationError,
    UninitializedContextError,
    preset_for,
)
from fhekit.core.context import Modulus


class TestModulus:
    """Test cases for the modulus wrapper."""

    def test_properties(self, engine):
        modulus = Modulus.create(engine, 786433)

        assert modulus.value == 786433
        assert modulus.bit_count == 20
        assert modulus.is_prime
        assert not modulus.is_zero

    def test_zero(self, engine):
        assert Modulus.create(engine, 0).is_zero

    def test_invalid_value(self, engine):
        """Test that engine rejections surface as invalid parameters."""
        with pytest.raises(InvalidParametersError, match="61-bit"):
            Modulus.create(engine, 2**62)

    def test_save_load(self, engine):
        """Test that a modulus survives a save/load cycle."""
        encoded = Modulus.create(engine, 65537).save()
        loaded = Modulus.load(engine, None, encoded)

        assert loaded.value == 65537

    def test_load_garbage(self, engine):
        with pytest.raises(SerializationError):
            Modulus.load(engine, None, "not a modulus")


class TestContextInitializer:
    """Test cases for building contexts."""

    def test_integer_scheme(self, he, engine):
        """Test the BFV path builds plain modulus, context and both encoders."""
        context = he.initialize("BFV", preset_for("low"))

        assert he.scheme is Scheme.INTEGER
        assert context.parameters_set
        assert context.instance.data["expand_mod_chain"] is True
        assert he.state.plain_modulus.value == 786433
        assert he.state.batch_encoder is not None
        assert he.state.integer_encoder is not None
        assert he.state.ckks_encoder is None

    def test_approx_real_scheme(self, he, engine):
        """Test the CKKS path skips the plain modulus and builds a real encoder."""
        he.initialize(Scheme.APPROX_REAL, preset_for("low"))

        assert he.scheme is Scheme.APPROX_REAL
        assert he.state.plain_modulus is None
        assert he.state.ckks_encoder is not None
        assert he.state.batch_encoder is None
        assert engine.live_count("modulus") == 0

    def test_transient_objects_released(self, he, engine):
        """Test that coefficient modulus and parameter objects do not outlive the build."""
        he.initialize("BFV", preset_for("low"))

        assert engine.live_count("coeff_modulus") == 0
        assert engine.live_count("parameters") == 0
        assert engine.live_count("context") == 1

    def test_default_parameters(self, he):
        he.initialize("CKKS")
        assert he.parameters == preset_for("low")

    def test_invalid_plain_modulus(self, he, engine):
        """Test that engine validation failures carry the diagnostic and leak nothing."""
        params = Parameters(poly_degree=4096, coeff_modulus=4096, plain_modulus=786432)

        with pytest.raises(InvalidParametersError, match="plain_modulus does not support batching"):
            he.initialize("BFV", params)

        assert engine.live_count() == 0
        with pytest.raises(UninitializedContextError):
            _ = he.context

    def test_mismatched_coeff_modulus(self, he):
        params = Parameters(poly_degree=4096, coeff_modulus=8192)

        with pytest.raises(InvalidParametersError, match="coeff_modulus"):
            he.initialize("CKKS", params)

    def test_native_failure_is_invalid_parameters(self, he):
        params = Parameters(poly_degree=4096, coeff_modulus=3000)

        with pytest.raises(InvalidParametersError, match="no default coeff_modulus"):
            he.initialize("CKKS", params)

    def test_unreadable_parameter_error(self):
        """Test that failing to read the engine diagnostic still reports invalid parameters."""
        engine = FakeEngine(fail_on={"parameter_error"})
        he = HE(engine=engine)
        params = Parameters(poly_degree=4096, coeff_modulus=4096, plain_modulus=786432)

        with pytest.raises(InvalidParametersError, match="parameter_error"):
            he.initialize("BFV", params)
        assert engine.live_count() == 0

    def test_encoder_failure_releases_context(self):
        engine = FakeEngine(fail_on={"make_batch_encoder"})
        he = HE(engine=engine)
        with pytest.raises(NativeOperationError, match="make_batch_encoder"):
            he.initialize("BFV", preset_for("low"))
        assert engine.live_count() == 0

    def test_reinitialize_releases_previous_state(self, bfv, engine):
        """Test that a new context replaces the old one together with its keys."""
        old_context = bfv.context
        bfv.generate_relin_keys()

        bfv.initialize("CKKS", preset_for("low"))

        assert old_context.is_released
        assert engine.live_count("context") == 1
        assert engine.live_count("public_key") == 0
        assert engine.live_count("relin_keys") == 0
        assert engine.live_count("batch_encoder") == 0
        assert bfv.public_key is None

    def test_context_before_initialize(self, he):
        with pytest.raises(UninitializedContextError):
            _ = he.context
