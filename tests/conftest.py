import jax.numpy as jnp
import pytest

from astrokalman.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    test_config.py switches to float32 in some tests; this fixture restores
    the default for everything else.
    """
    set_dtype(jnp.float64)
