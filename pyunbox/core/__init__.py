"""Core data model: abstract values, provenance, regions and interpreter state."""
from pyunbox.core.blocks import BlockInfo, RegionFlags, RegionKind
from pyunbox.core.cow import CowVector
from pyunbox.core.sources import (
    AbstractSource,
    AbstractValueWithSources,
    ConstSource,
    IntermediateSource,
    LocalSource,
    SourceArena,
)
from pyunbox.core.state import AbstractLocalInfo, InterpreterState
from pyunbox.core.values import (
    AbstractValue,
    AbstractValueKind,
    Any,
    ConstantValue,
    SizedValue,
    Undefined,
    to_abstract,
    value_of_kind,
)
__all__ = [
    "BlockInfo",
    "RegionFlags",
    "RegionKind",
    "CowVector",
    "AbstractSource",
    "AbstractValueWithSources",
    "ConstSource",
    "IntermediateSource",
    "LocalSource",
    "SourceArena",
    "AbstractLocalInfo",
    "InterpreterState",
    "AbstractValue",
    "AbstractValueKind",
    "Any",
    "ConstantValue",
    "SizedValue",
    "Undefined",
    "to_abstract",
    "value_of_kind",
]
