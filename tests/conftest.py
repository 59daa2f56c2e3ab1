from __future__ import annotations

import sys

import pytest


@pytest.fixture
def small_int_limit():
    """Lower the int->str digit limit so an over-long int is cheap to build."""
    if not hasattr(sys, "set_int_max_str_digits"):
        pytest.skip("interpreter has no int string limit")
    old = sys.get_int_max_str_digits()
    sys.set_int_max_str_digits(640)
    yield 640
    sys.set_int_max_str_digits(old)
