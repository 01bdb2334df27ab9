"""Shared fixtures for the PyUnbox test-suite."""

import io

import pytest

from pyunbox.bytecode.assembler import Assembler
from pyunbox.logging import LogLevel, UnboxLogger, get_logger, set_logger


@pytest.fixture
def logger():
    """A logger that records everything and prints nothing to the terminal."""
    return UnboxLogger(level=LogLevel.TRACE, color=False, stream=io.StringIO())


@pytest.fixture(autouse=True)
def quiet_global_logger():
    previous = get_logger()
    set_logger(UnboxLogger(level=LogLevel.QUIET, color=False, stream=io.StringIO()))
    yield
    set_logger(previous)


@pytest.fixture
def constant_add():
    """return 1 + 2"""
    asm = Assembler("constant_add")
    asm.load_const(1).load_const(2).emit("BINARY_ADD").emit("RETURN_VALUE")
    return asm.assemble()
