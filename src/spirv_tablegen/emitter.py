"""C++ emission for SPIR-V grammar tables.

Each ``emit_*`` function renders one independent part of the generated
include from a built :class:`TableSet`; :func:`emit_tables` concatenates
them. None of them can fail: malformed input never gets past the builder.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterable, List, Sequence, Tuple, Type

from .address_spaces import ENVIRONMENTS
from .builder import TableSet
from .lookups import (
    FIXED_CAPABILITIES,
    FOLLOWED_OPERAND_SECTIONS,
    NO_CAPABILITY_SECTIONS,
    PER_VALUE_SECTIONS,
)
from .model import (
    MASK_SECTIONS,
    NO_RESULT,
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

HEADER_PREFIX = "//===----------------------------------------------------------------------===//\n"
HEADER_SUFFIX = "//===----------------------------------------------------------------------===//\n"
LICENSE_BANNER = (
    "// This file is auto-generated. Do not edit manually.\n"
    "// Use spirv-tablegen to regenerate.\n"
)
NAMESPACE = "spirv"

# MagicNumber has a single value and is never emitted as an enumeration.
ENUM_SECTIONS = tuple(s for s in Section if s is not Section.MagicNumber)


def cpp_identifier(section: Section, name: str) -> str:
    if name[:1].isdigit():
        return f"{section.name}{name}"
    return name


def enum_ref(value: EnumValue) -> str:
    return f"{value.section.name}::{cpp_identifier(value.section, value.name)}"


def capability_ref(name: str) -> str:
    return f"{Section.Capabilities.name}::{name}"


def hex_byte(value: int) -> str:
    return f"0x{value & 0xFF:02x}"


def operand_expr(operand: Operand) -> str:
    head, payload = operand.packed
    return f"Operand({hex_byte(head)}, {hex_byte(payload)})"


def unique_values(values: Iterable[EnumValue]) -> List[EnumValue]:
    """Drop mask aliases so every opcode gets one switch case."""
    seen = set()
    result = []
    for value in values:
        if value.value in seen:
            continue
        seen.add(value.value)
        result.append(value)
    return result


def nested_enum(name: str, enum: Type[IntEnum], underlying: str = "unsigned char") -> List[str]:
    lines = [f"    enum class {name} : {underlying}", "    {"]
    for member in enum:
        lines.append(f"        {member.name} = {int(member)},")
    lines.append("    };")
    return lines


def emit_prelude() -> str:
    lines = [
        HEADER_PREFIX.rstrip(),
        "// Auto-generated SPIR-V grammar tables.",
        LICENSE_BANNER.rstrip(),
        HEADER_SUFFIX.rstrip(),
        "#pragma once",
        "",
        "#include \"llvm/ADT/ArrayRef.h\"",
        "#include <algorithm>",
        "#include <array>",
        "#include <cassert>",
        "#include <cstdint>",
        "#include <utility>",
        "",
        f"namespace {NAMESPACE}",
        "{",
        "enum class SpecSection : unsigned",
        "{",
    ]
    for section in Section:
        lines.append(f"    {section.name} = {int(section)},")
    lines.append("};")
    lines.append("")
    lines.append("struct Operand")
    lines.append("{")
    lines.extend(nested_enum("Tag", OperandTag))
    lines.extend(nested_enum("Type", IdType))
    lines.extend(nested_enum("TypeQual", TypeQualifier))
    lines.extend(nested_enum("TypeExt", TypeExtension))
    lines.extend(
        [
            "",
            "    // tag in bits 0-1, qualifier in bits 2-3, extension in bits 4-7",
            "    unsigned char TagQualExt;",
            "    unsigned char TypeSpecSection;",
            "",
            "    constexpr Operand(unsigned char a, unsigned char b) : TagQualExt(a), TypeSpecSection(b) {}",
            "",
            "    constexpr Tag tag() const { return static_cast<Tag>(TagQualExt & 0x3); }",
            "    constexpr TypeQual qualifier() const { return static_cast<TypeQual>((TagQualExt >> 2) & 0x3); }",
            "    constexpr TypeExt ext() const { return static_cast<TypeExt>((TagQualExt >> 4) & 0xf); }",
            "",
            "    Type type() const",
            "    {",
            "        assert(tag() == Tag::ID);",
            "        return static_cast<Type>(TypeSpecSection);",
            "    }",
            "",
            "    SpecSection specsection() const",
            "    {",
            "        assert(tag() == Tag::ENUM);",
            "        return static_cast<SpecSection>(TypeSpecSection);",
            "    }",
            "};",
            "",
            "using OperandList = llvm::ArrayRef<Operand>;",
        ]
    )
    return "\n".join(lines) + "\n"


def mask_operators(name: str) -> List[str]:
    lines = []
    for op in ("|", "&"):
        lines.append(f"inline constexpr {name} operator{op}({name} a, {name} b)")
        lines.append("{")
        lines.append(
            f"    return static_cast<{name}>(static_cast<unsigned>(a) {op} static_cast<unsigned>(b));"
        )
        lines.append("}")
    return lines


def emit_enums(tables: TableSet) -> str:
    lines: List[str] = []
    for section in ENUM_SECTIONS:
        name = section.name
        lines.append(f"enum class {name} : unsigned")
        lines.append("{")
        for value in tables.section(section):
            lines.append(f"    {cpp_identifier(section, value.name)} = {value.value},")
        if section is Section.StorageClass:
            lines.append("    NotApplicable = ~0u,")
        lines.append("};")
        if section in MASK_SECTIONS:
            lines.extend(mask_operators(name))
        lines.append("")
    lines.append("using CapVec = llvm::ArrayRef<Capabilities>;")
    return "\n".join(lines) + "\n"


def static_return(kind: str, name: str, items: Sequence[Tuple[str, str]], indent: str) -> List[str]:
    """Render ``static const kind name[] = {...}; return name;`` with per-item comments."""
    lines = [f"{indent}static const {kind} {name}[] = {{"]
    for expr, comment in items:
        suffix = f" // {comment}" if comment else ""
        lines.append(f"{indent}    {expr},{suffix}")
    lines.append(f"{indent}}};")
    lines.append(f"{indent}return {name};")
    return lines


def emit_enum_capability(tables: TableSet) -> str:
    lines: List[str] = []
    for section, capability in FIXED_CAPABILITIES.items():
        if not tables.section(section):
            continue
        lines.append(f"inline CapVec getRequiredCapabilities({section.name})")
        lines.append("{")
        lines.extend(static_return("Capabilities", "caps", [(capability_ref(capability), "")], "    "))
        lines.append("}")
        lines.append("")
    for section in NO_CAPABILITY_SECTIONS:
        lines.append(f"inline CapVec getRequiredCapabilities({section.name})")
        lines.append("{")
        lines.append("    return {};")
        lines.append("}")
        lines.append("")
    for section in PER_VALUE_SECTIONS:
        lines.append(f"inline CapVec getRequiredCapabilities({section.name} e)")
        lines.append("{")
        lines.append("    switch (e)")
        lines.append("    {")
        for value in unique_values(tables.section(section)):
            primary = value.primary_capability
            if primary is None:
                continue
            lines.append(f"        case {enum_ref(value)}:")
            lines.append("        {")
            lines.extend(
                static_return("Capabilities", "caps", [(capability_ref(primary.name), "")], "            ")
            )
            lines.append("        }")
        lines.append("        default:")
        lines.append("            break;")
        lines.append("    }")
        lines.append("    return {};")
        lines.append("}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def emit_followed_literals(tables: TableSet) -> str:
    lines = [
        "template <typename E> inline OperandList getFollowedLiterals(E)",
        "{",
        "    return {};",
        "}",
        "",
    ]
    for section in FOLLOWED_OPERAND_SECTIONS:
        name = section.name
        lines.append(f"template <> inline OperandList getFollowedLiterals<{name}>({name} e)")
        lines.append("{")
        lines.append("    switch (e)")
        lines.append("    {")
        for value in unique_values(tables.section(section)):
            if not value.followed_operands:
                continue
            items = [(operand_expr(op), op.name) for op in value.followed_operands]
            lines.append(f"        case {enum_ref(value)}:")
            lines.append("        {")
            lines.extend(static_return("Operand", "ops", items, "            "))
            lines.append("        }")
        lines.append("        default:")
        lines.append("            break;")
        lines.append("    }")
        lines.append("    return {};")
        lines.append("}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def instruction_row(inst: Instruction, operand_index: int, capability_index: int) -> str:
    result = NO_RESULT if inst.result_index is None else inst.result_index
    fields = [
        str(inst.opcode),
        str(inst.ext_opcode),
        str(inst.word_count),
        hex(result) if result == NO_RESULT else str(result),
        "1" if inst.is_terminator else "0",
        str(int(inst.category)),
        "1" if inst.variable_length else "0",
        str(int(inst.instruction_set)),
        str(operand_index),
        str(len(inst.operands)),
        str(capability_index),
        str(len(inst.capabilities)),
        f"\"{inst.name}\"",
    ]
    return "    {" + ", ".join(fields) + "},"


def emit_instruction_pools(prefix: str, instructions: Sequence[Instruction]) -> List[str]:
    operands: List[str] = []
    capabilities: List[str] = []
    rows: List[str] = []
    for inst in instructions:
        rows.append(instruction_row(inst, len(operands), len(capabilities)))
        operands.extend(f"    {operand_expr(op)}, // {inst.name} {op.name}" for op in inst.operands)
        capabilities.extend(f"    {enum_ref(cap)}," for cap in inst.capabilities)

    lines = [f"inline constexpr std::array<Operand, {len(operands)}> k{prefix}Operands = {{{{"]
    lines.extend(operands)
    lines.append("}};")
    lines.append("")
    lines.append(
        f"inline constexpr std::array<Capabilities, {len(capabilities)}> k{prefix}Capabilities = {{{{"
    )
    lines.extend(capabilities)
    lines.append("}};")
    lines.append("")
    lines.append("// Sorted by (Op, Op2) for lookupInstruction.")
    lines.append(
        f"inline constexpr std::array<InstructionInfo, {len(rows)}> k{prefix}Instructions = {{{{"
    )
    lines.extend(rows)
    lines.append("}};")
    lines.append("")
    return lines


def set_switch(
    signature: str, sets: Sequence[InstructionSet], body: str, fallback: str, subject: str
) -> List[str]:
    lines = [signature, "{", f"    switch ({subject})", "    {"]
    for iset in sets:
        lines.append(f"        case InstructionSet::{iset.name}:")
        lines.append("            " + body.format(prefix=iset.name) + ";")
    lines.extend(["        default:", "            break;", "    }", f"    return {fallback};", "}", ""])
    return lines


def emit_instruction_tables(tables: TableSet) -> str:
    lines = ["enum class InstructionSet : unsigned char", "{"]
    for iset in InstructionSet:
        lines.append(f"    {iset.name} = {int(iset)},")
    lines.extend(["};", "", "enum class InstructionClass : unsigned char", "{"])
    for cls in InstructionClass:
        lines.append(f"    {cls.name} = {int(cls)},")
    lines.extend(
        [
            "};",
            "",
            f"inline constexpr unsigned kNoResultId = {hex(NO_RESULT)};",
            "",
            "struct InstructionInfo",
            "{",
            "    unsigned Op;",
            "    unsigned Op2;",
            "    unsigned BaseWordCount;",
            "    unsigned ResultIdIndex : 23;",
            "    unsigned BBTerminator : 1;",
            "    unsigned InstClass : 5;",
            "    unsigned VariableLength : 1;",
            "    unsigned ISetVal : 2;",
            "    uint16_t OperandIndex;",
            "    uint16_t OperandCount;",
            "    uint16_t CapabilityIndex;",
            "    uint16_t CapabilityCount;",
            "    const char *Name;",
            "};",
            "",
        ]
    )

    sets = [iset for iset in InstructionSet if tables.instruction_set(iset)]
    for iset in sets:
        lines.extend(emit_instruction_pools(iset.name, tables.instruction_set(iset)))

    lines.extend(
        set_switch(
            "inline llvm::ArrayRef<InstructionInfo> getInstructions(InstructionSet set)",
            sets,
            "return k{prefix}Instructions",
            "{}",
            "set",
        )
    )
    lines.extend(
        set_switch(
            "inline OperandList getOperands(const InstructionInfo &info)",
            sets,
            "return OperandList(k{prefix}Operands.data() + info.OperandIndex, info.OperandCount)",
            "{}",
            "static_cast<InstructionSet>(info.ISetVal)",
        )
    )
    lines.extend(
        set_switch(
            "inline CapVec getRequiredCapabilities(const InstructionInfo &info)",
            sets,
            "return CapVec(k{prefix}Capabilities.data() + info.CapabilityIndex, info.CapabilityCount)",
            "{}",
            "static_cast<InstructionSet>(info.ISetVal)",
        )
    )
    lines.extend(
        [
            "inline const InstructionInfo *lookupInstruction(InstructionSet set, unsigned op, unsigned op2 = 0)",
            "{",
            "    llvm::ArrayRef<InstructionInfo> table = getInstructions(set);",
            "    const std::pair<unsigned, unsigned> key(op, op2);",
            "    auto it = std::lower_bound(",
            "        table.begin(), table.end(), key,",
            "        [](const InstructionInfo &info, const std::pair<unsigned, unsigned> &k) {",
            "            return std::make_pair(info.Op, info.Op2) < k;",
            "        });",
            "    if (it == table.end() || it->Op != op || it->Op2 != op2)",
            "        return nullptr;",
            "    return it;",
            "}",
            "",
        ]
    )

    positions: Dict[Tuple[InstructionSet, Tuple[int, int]], int] = {}
    for iset in sets:
        for index, inst in enumerate(tables.instruction_set(iset)):
            positions[(iset, inst.sort_key)] = index
    merged = [
        f"    {{InstructionSet::{inst.instruction_set.name}, "
        f"{positions[(inst.instruction_set, inst.sort_key)]}}}, // {inst.name}"
        for inst in tables.merged_instructions()
    ]
    lines.append("// Every instruction set merged in (Op, Op2, set) order.")
    lines.append(
        "inline constexpr std::array<std::pair<InstructionSet, uint16_t>, "
        f"{len(merged)}> kInstructionOrder = {{{{"
    )
    lines.extend(merged)
    lines.append("}};")
    return "\n".join(lines) + "\n"


def emit_storage_class_tables(tables: TableSet) -> str:
    lines: List[str] = []
    for env, spaces in ENVIRONMENTS.items():
        mapping = tables.address_spaces[env]
        name = f"{env}AddressSpace"
        lines.append(f"enum class {name} : int")
        lines.append("{")
        for member in spaces:
            literal = "~0" if member.name == "NotApplicable" else str(int(member))
            lines.append(f"    {member.name} = {literal},")
        lines.append("};")
        lines.append("")

        pairs = list(mapping.pairs())
        lines.append(f"inline StorageClass getSPIRVStorageClass({name} as)")
        lines.append("{")
        lines.append("    switch (as)")
        lines.append("    {")
        for storage_class, space in pairs:
            value = tables.lookup(Section.StorageClass, storage_class)
            lines.append(f"        case {name}::{space.name}:")
            lines.append(f"            return {enum_ref(value)};")
        lines.extend(["        default:", "            break;", "    }"])
        lines.append("    return StorageClass::NotApplicable;")
        lines.append("}")
        lines.append("")

        lines.append(f"inline {name} get{name}(StorageClass sc)")
        lines.append("{")
        lines.append("    switch (sc)")
        lines.append("    {")
        for storage_class, space in pairs:
            value = tables.lookup(Section.StorageClass, storage_class)
            lines.append(f"        case {enum_ref(value)}:")
            lines.append(f"            return {name}::{space.name};")
        lines.extend(["        default:", "            break;", "    }"])
        lines.append(f"    return {name}::NotApplicable;")
        lines.append("}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def emit_tables(tables: TableSet) -> str:
    parts = [
        emit_prelude(),
        emit_enums(tables),
        emit_enum_capability(tables),
        emit_followed_literals(tables),
        emit_instruction_tables(tables),
        emit_storage_class_tables(tables),
        f"}} // namespace {NAMESPACE}\n",
    ]
    return "\n".join(parts)
