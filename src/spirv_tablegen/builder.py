"""Sort, validate and cross-link populated grammar descriptors."""

from __future__ import annotations

import bisect
import heapq
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .address_spaces import AddressSpaceMap, build_address_space_maps
from .errors import DuplicateOpcode, MalformedGrammarEntry, UnresolvedReference
from .lookups import FIXED_CAPABILITIES
from .model import MASK_SECTIONS, EnumKey, EnumValue, Instruction, InstructionSet, Operand, Section
from .records import EnumRecord, Grammar, InstructionRecord


@dataclass(frozen=True)
class TableSet:
    """Immutable, sorted view of one grammar, ready for lookup and emission."""

    enums: Mapping[Section, Tuple[EnumValue, ...]]
    instructions: Mapping[InstructionSet, Tuple[Instruction, ...]]
    operands: Mapping[str, Operand]
    address_spaces: Mapping[str, AddressSpaceMap]
    by_value: Mapping[Tuple[Section, int], EnumValue]
    by_name: Mapping[Tuple[Section, str], EnumValue]

    def section(self, section: Section) -> Tuple[EnumValue, ...]:
        return self.enums.get(section, ())

    def lookup(self, section: Section, key: EnumKey) -> EnumValue:
        """Find an enumerant by name or by opcode."""
        if isinstance(key, EnumValue):
            key = key.name
        index = self.by_name if isinstance(key, str) else self.by_value
        try:
            return index[(section, key)]
        except KeyError:
            raise KeyError(f"{section.name} has no value {key!r}") from None

    def instruction_set(self, instruction_set: InstructionSet) -> Tuple[Instruction, ...]:
        return self.instructions.get(instruction_set, ())

    def find_instruction(
        self, instruction_set: InstructionSet, opcode: int, ext_opcode: int = 0
    ) -> Optional[Instruction]:
        table = self.instruction_set(instruction_set)
        key = (opcode, ext_opcode)
        pos = bisect.bisect_left(table, key, key=lambda inst: inst.sort_key)
        if pos < len(table) and table[pos].sort_key == key:
            return table[pos]
        return None

    def merged_instructions(self) -> Iterator[Instruction]:
        """Iterate every instruction set as one ``(op, op2, set)`` ordered stream."""
        streams = [self.instructions[iset] for iset in sorted(self.instructions)]
        return heapq.merge(
            *streams, key=lambda inst: inst.sort_key + (int(inst.instruction_set),)
        )


def sort_section(section: Section, records: Sequence[EnumRecord]) -> List[EnumRecord]:
    ordered = sorted(records, key=lambda rec: (rec.value, rec.name))
    seen: Dict[str, EnumRecord] = {}
    for rec in ordered:
        if rec.name in seen:
            raise MalformedGrammarEntry(
                rec.entry, f"{section.name} already has a value named '{rec.name}'"
            )
        seen[rec.name] = rec
    if section in MASK_SECTIONS:
        return ordered
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.value == cur.value:
            raise DuplicateOpcode(section.name, cur.value, (prev.name, cur.name))
    return ordered


def sort_instructions(
    instruction_set: InstructionSet, records: Sequence[InstructionRecord]
) -> List[InstructionRecord]:
    ordered = sorted(records, key=lambda rec: (rec.opcode, rec.ext_opcode))
    for prev, cur in zip(ordered, ordered[1:]):
        if (prev.opcode, prev.ext_opcode) == (cur.opcode, cur.ext_opcode):
            raise DuplicateOpcode(
                instruction_set.name,
                (cur.opcode, cur.ext_opcode),
                (prev.name, cur.name),
                what="instruction opcode",
            )
    return ordered


class TableBuilder:
    """Turns a populated :class:`Grammar` into a :class:`TableSet`."""

    def __init__(self, grammar: Grammar) -> None:
        self.grammar = grammar
        self._capabilities: Dict[str, EnumValue] = {}

    def _operand(self, entry: str, name: str) -> Operand:
        try:
            return self.grammar.operands[name]
        except KeyError:
            raise UnresolvedReference(entry, name, "operand") from None

    def _capability(self, entry: str, name: str) -> EnumValue:
        try:
            return self._capabilities[name]
        except KeyError:
            raise UnresolvedReference(entry, name, "capability") from None

    def _make_enum(self, rec: EnumRecord) -> EnumValue:
        return EnumValue(
            name=rec.name,
            section=rec.section,
            value=rec.value,
            capabilities=tuple(self._capability(rec.entry, c) for c in rec.capabilities),
            is_mask=rec.is_mask,
            is_id=rec.is_id,
            followed_operands=tuple(self._operand(rec.entry, o) for o in rec.followed),
            address_spaces=MappingProxyType(dict(rec.address_spaces)),
        )

    def _build_capabilities(self, records: Sequence[EnumRecord]) -> Tuple[EnumValue, ...]:
        # Capabilities may depend on each other; build in dependency order.
        pending = {rec.name: rec for rec in records}
        known = set(pending)
        built: Dict[str, EnumValue] = {}

        def build(name: str, chain: Tuple[str, ...]) -> EnumValue:
            if name in built:
                return built[name]
            rec = pending[name]
            for dep in rec.capabilities:
                if dep not in known or dep in chain:
                    raise UnresolvedReference(rec.entry, dep, "capability")
                build(dep, chain + (name,))
            value = self._make_enum(rec)
            built[name] = value
            self._capabilities[name] = value
            return value

        for rec in records:
            build(rec.name, ())
        return tuple(built[rec.name] for rec in records)

    def build(self) -> TableSet:
        enums: Dict[Section, Tuple[EnumValue, ...]] = {}
        cap_records = sort_section(
            Section.Capabilities, self.grammar.enums.get(Section.Capabilities, [])
        )
        enums[Section.Capabilities] = self._build_capabilities(cap_records)
        for section, capability in FIXED_CAPABILITIES.items():
            if self.grammar.enums.get(section):
                self._capability(section.name, capability)

        for section in Section:
            if section is Section.Capabilities:
                continue
            records = sort_section(section, self.grammar.enums.get(section, []))
            enums[section] = tuple(self._make_enum(rec) for rec in records)

        instructions: Dict[InstructionSet, Tuple[Instruction, ...]] = {}
        for iset in InstructionSet:
            records = self.grammar.instructions.get(iset)
            if not records:
                continue
            instructions[iset] = tuple(
                self._make_instruction(rec) for rec in sort_instructions(iset, records)
            )

        by_value: Dict[Tuple[Section, int], EnumValue] = {}
        by_name: Dict[Tuple[Section, str], EnumValue] = {}
        for section, values in enums.items():
            for value in values:
                by_value.setdefault((section, value.value), value)
                by_name.setdefault((section, value.name), value)

        return TableSet(
            enums=MappingProxyType(enums),
            instructions=MappingProxyType(instructions),
            operands=MappingProxyType(dict(self.grammar.operands)),
            address_spaces=MappingProxyType(
                build_address_space_maps(enums[Section.StorageClass])
            ),
            by_value=MappingProxyType(by_value),
            by_name=MappingProxyType(by_name),
        )

    def _make_instruction(self, rec: InstructionRecord) -> Instruction:
        return Instruction(
            name=rec.name,
            opcode=rec.opcode,
            ext_opcode=rec.ext_opcode,
            word_count=rec.word_count,
            result_index=rec.result_index,
            is_terminator=rec.is_terminator,
            category=rec.category,
            variable_length=rec.variable_length,
            instruction_set=rec.instruction_set,
            operands=tuple(self._operand(rec.entry, o) for o in rec.operands),
            capabilities=tuple(self._capability(rec.entry, c) for c in rec.capabilities),
        )


def build_tables(grammar: Grammar) -> TableSet:
    return TableBuilder(grammar).build()
