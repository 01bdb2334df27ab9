"""Abstract execution: opcode dispatch and the fixed-point driver."""
from pyunbox.execution.dispatcher import OpcodeDispatcher, OpcodeResult, opcode_handler
from pyunbox.execution.interpreter import AbstractInterpreter
__all__ = ["AbstractInterpreter", "OpcodeDispatcher", "OpcodeResult", "opcode_handler"]
