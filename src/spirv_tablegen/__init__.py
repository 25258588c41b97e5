"""Compile a SPIR-V grammar record store into backend lookup tables."""

from .address_spaces import NOT_APPLICABLE, AddressSpaceMap, GLSLAddressSpace, OpenCLAddressSpace
from .builder import TableSet, build_tables
from .emitter import emit_tables
from .errors import DuplicateOpcode, MalformedGrammarEntry, TableGenError, UnresolvedReference
from .lookups import CapabilityShape, capability_shape, followed_operands, required_capabilities
from .model import (
    EnumValue,
    IdType,
    Instruction,
    InstructionClass,
    InstructionSet,
    Operand,
    OperandTag,
    Section,
    TypeExtension,
    TypeQualifier,
)
from .records import Grammar, RecordStore, load_grammar, populate

__all__ = [
    "NOT_APPLICABLE",
    "AddressSpaceMap",
    "CapabilityShape",
    "DuplicateOpcode",
    "EnumValue",
    "GLSLAddressSpace",
    "Grammar",
    "IdType",
    "Instruction",
    "InstructionClass",
    "InstructionSet",
    "MalformedGrammarEntry",
    "OpenCLAddressSpace",
    "Operand",
    "OperandTag",
    "RecordStore",
    "Section",
    "TableGenError",
    "TableSet",
    "TypeExtension",
    "TypeQualifier",
    "UnresolvedReference",
    "build_tables",
    "capability_shape",
    "emit_tables",
    "followed_operands",
    "load_grammar",
    "populate",
    "required_capabilities",
]
