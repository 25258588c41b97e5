"""Descriptor types for SPIR-V operands, enumerants and instructions.

Every descriptor is a frozen dataclass. Records are turned into descriptors
once per run, the builder sorts and cross-links them, and nothing mutates
them afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


class Section(IntEnum):
    MagicNumber = 1
    SourceLanguage = 2
    ExecutionModel = 3
    AddressModel = 4
    MemoryModel = 5
    ExecutionMode = 6
    StorageClass = 7
    Dim = 8
    SamplerAddressingMode = 9
    SamplerFilterMode = 10
    ImageFormat = 11
    ImageChannelOrder = 12
    ImageChannelDataType = 13
    ImageOperand = 14
    FPFastMathMode = 15
    RoundingMode = 16
    LinkageType = 17
    AccessQualifier = 18
    FunctionParameterAttribute = 19
    Decoration = 20
    BuiltIn = 21
    SelectionControl = 22
    LoopControl = 23
    FunctionControl = 24
    MemorySemantics = 25
    MemoryAccess = 26
    Scope = 27
    GroupOperation = 28
    KernelEnqueueFlags = 29
    KernelProfilingInfo = 30
    Capabilities = 31


MASK_SECTIONS = frozenset(
    {
        Section.ImageOperand,
        Section.FPFastMathMode,
        Section.SelectionControl,
        Section.LoopControl,
        Section.FunctionControl,
        Section.MemorySemantics,
        Section.MemoryAccess,
        Section.KernelProfilingInfo,
    }
)

# At most this many alternative capabilities may gate one enumerant.
MAX_ENUM_CAPABILITIES = 3


class OperandTag(IntEnum):
    ID = 1
    IMM = 2
    ENUM = 3


class TypeQualifier(IntEnum):
    Type = 0  # the id names a type
    Var = 1
    Const = 2
    SpecConst = 3


class TypeExtension(IntEnum):
    Scalar = 0
    AliasesExist = 1
    Pointer = 2
    VecScal = 3
    Vector = 4
    Matrix = 5
    PointerVector = 6
    Array = 7
    RuntimeArray = 8
    StructVecScal2 = 9


class IdType(IntEnum):
    Invalid = 0
    Any = 1
    Void = 2
    # Fundamental
    Bool = 3
    Int = 4
    Float = 5
    Int32 = 6
    Float16 = 7
    Float32 = 8
    Sint = 9
    Uint = 10
    # Heterogeneous composite
    Struct = 11
    Function = 12
    # Opaque
    Forward = 13
    Opaque = 14
    Image = 15
    Sampler = 16
    SampledImage = 17
    Pipe = 18
    PipeStorage = 19
    ReserveId = 20
    # Host
    Event = 21
    DeviceEvent = 22
    Queue = 23
    NamedBarrier = 24
    InstructionSet = 25
    Label = 26
    String = 27
    DecorationGroup = 28
    NDRange = 29


class InstructionSet(IntEnum):
    Core = 0
    OpenCL = 1
    GLSL = 2


class InstructionClass(IntEnum):
    Miscellaneous = 0
    Debug = 1
    Annotation = 2
    Extension = 3
    ModeSetting = 4
    TypeDeclaration = 5
    ConstantCreation = 6
    Memory = 7
    Function = 8
    Image = 9
    Conversion = 10
    Composite = 11
    Arithmetic = 12
    Bit = 13
    Relational = 14
    Derivative = 15
    ControlFlow = 16
    Atomic = 17
    Primitive = 18
    Barrier = 19
    Group = 20
    DeviceSideEnqueue = 21
    Pipe = 22
    NonUniform = 23
    Reserved = 24


# 23-bit all-ones, the width of the result index field in the emitted table.
NO_RESULT = 0x7FFFFF


@dataclass(frozen=True)
class Operand:
    """Shape of one operand slot.

    ``payload`` is an :class:`IdType` for id operands and a :class:`Section`
    for enumerated operands; immediates carry no payload.
    """

    name: str
    tag: OperandTag
    qualifier: TypeQualifier = TypeQualifier.Type
    extension: TypeExtension = TypeExtension.Scalar
    payload: int = 0
    literal: Optional[str] = None

    @property
    def id_type(self) -> IdType:
        if self.tag is not OperandTag.ID:
            raise TypeError(f"operand '{self.name}' is {self.tag.name}, not an id")
        return IdType(self.payload)

    @property
    def section(self) -> Section:
        if self.tag is not OperandTag.ENUM:
            raise TypeError(f"operand '{self.name}' is {self.tag.name}, not an enum")
        return Section(self.payload)

    @property
    def packed(self) -> Tuple[int, int]:
        """Return ``(tag | qual << 2 | ext << 4, payload)`` as two bytes."""
        head = int(self.tag) | (int(self.qualifier) << 2) | (int(self.extension) << 4)
        return head, int(self.payload)


@dataclass(frozen=True)
class EnumValue:
    name: str
    section: Section
    value: int
    capabilities: Tuple["EnumValue", ...] = ()
    is_mask: bool = False
    is_id: bool = False
    followed_operands: Tuple[Operand, ...] = ()
    address_spaces: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False
    )

    @property
    def primary_capability(self) -> Optional["EnumValue"]:
        # Alternatives beyond the first are carried but never consulted.
        return self.capabilities[0] if self.capabilities else None


@dataclass(frozen=True)
class Instruction:
    name: str
    opcode: int
    ext_opcode: int = 0
    word_count: int = 1
    result_index: Optional[int] = None
    is_terminator: bool = False
    category: InstructionClass = InstructionClass.Miscellaneous
    variable_length: bool = False
    instruction_set: InstructionSet = InstructionSet.Core
    operands: Tuple[Operand, ...] = ()
    capabilities: Tuple[EnumValue, ...] = ()

    @property
    def sort_key(self) -> Tuple[int, int]:
        return self.opcode, self.ext_opcode

    @property
    def has_result(self) -> bool:
        return self.result_index is not None


EnumKey = Union[str, int]
