"""Tests for the astrokalman.config module."""

import jax
import jax.numpy as jnp
import pytest

from astrokalman.config import get_dtype, set_dtype
from astrokalman.orbits import mean_motion


@pytest.fixture(autouse=True)
def reset_dtype():
    """Restore float64 after each test."""
    yield
    set_dtype(jnp.float64)


class TestGetSetDtype:
    def test_default_dtype(self):
        assert get_dtype() == jnp.float64

    def test_set_float32(self):
        set_dtype(jnp.float32)
        assert get_dtype() == jnp.float32

    def test_roundtrip(self):
        for dtype in (jnp.float32, jnp.float64):
            set_dtype(dtype)
            assert get_dtype() == dtype

    def test_invalid_dtype_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.int32)

    def test_float16_rejected(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype(jnp.float16)

    def test_invalid_dtype_string_raises(self):
        with pytest.raises(ValueError, match="Unsupported dtype"):
            set_dtype("float32")

    def test_x64_enabled(self):
        assert jax.config.jax_enable_x64 is True


class TestDtypePropagation:
    def test_float64_output(self):
        assert mean_motion(7000e3).dtype == jnp.float64

    def test_float32_output(self):
        set_dtype(jnp.float32)
        assert mean_motion(7000e3).dtype == jnp.float32
