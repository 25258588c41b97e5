"""Capability and followed-operand queries over a built :class:`TableSet`.

These are the Python-side equivalents of the routines the emitter writes
out, so the generated C++ and the model answer the same questions.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Optional, Tuple

from .model import EnumKey, Operand, Section

if TYPE_CHECKING:
    from .builder import TableSet


class CapabilityShape(Enum):
    FIXED = "fixed"
    NONE = "none"
    PER_VALUE = "per-value"


FIXED_CAPABILITIES: Mapping[Section, str] = MappingProxyType(
    {
        Section.SamplerAddressingMode: "Kernel",
        Section.SamplerFilterMode: "Kernel",
        Section.ImageChannelOrder: "Kernel",
        Section.ImageChannelDataType: "Kernel",
        Section.FPFastMathMode: "Kernel",
        Section.RoundingMode: "Kernel",
        Section.LinkageType: "Linkage",
        Section.AccessQualifier: "Kernel",
        Section.FunctionParameterAttribute: "Kernel",
        Section.GroupOperation: "Kernel",
        Section.KernelEnqueueFlags: "Kernel",
        Section.KernelProfilingInfo: "Kernel",
    }
)

NO_CAPABILITY_SECTIONS = (
    Section.SelectionControl,
    Section.LoopControl,
    Section.FunctionControl,
    Section.MemoryAccess,
    Section.Scope,
)

PER_VALUE_SECTIONS = (
    Section.ExecutionModel,
    Section.AddressModel,
    Section.MemoryModel,
    Section.ExecutionMode,
    Section.StorageClass,
    Section.Dim,
    Section.ImageFormat,
    Section.ImageOperand,
    Section.Decoration,
    Section.BuiltIn,
    Section.MemorySemantics,
)

FOLLOWED_OPERAND_SECTIONS = (
    Section.ExecutionMode,
    Section.Decoration,
    Section.LoopControl,
    Section.MemoryAccess,
)


def capability_shape(section: Section) -> Optional[CapabilityShape]:
    if section in FIXED_CAPABILITIES:
        return CapabilityShape.FIXED
    if section in NO_CAPABILITY_SECTIONS:
        return CapabilityShape.NONE
    if section in PER_VALUE_SECTIONS:
        return CapabilityShape.PER_VALUE
    return None


def required_capabilities(tables: TableSet, section: Section, key: EnumKey) -> Tuple[str, ...]:
    """Return the capability a value needs, as a tuple of at most one name.

    The section's shape wins over per-value data: NONE sections always
    answer ``()`` and FIXED sections always answer their fixed capability.
    """
    shape = capability_shape(section)
    if shape is None:
        raise LookupError(f"{section.name} has no capability lookup")
    value = tables.lookup(section, key)
    if shape is CapabilityShape.FIXED:
        return (FIXED_CAPABILITIES[section],)
    if shape is CapabilityShape.NONE:
        return ()
    # Mask aliases answer with the first value sharing the opcode, as the switch does.
    primary = tables.by_value[(section, value.value)].primary_capability
    return (primary.name,) if primary is not None else ()


def followed_operands(tables: TableSet, section: Section, key: EnumKey) -> Tuple[Operand, ...]:
    """Return the operands that must follow a value, in declaration order.

    Like the generated switch, anything not listed answers with no operands.
    """
    if section not in FOLLOWED_OPERAND_SECTIONS:
        return ()
    try:
        value = tables.lookup(section, key)
    except KeyError:
        return ()
    return value.followed_operands
