"""Grammar record store and descriptor population.

The grammar is a YAML document whose top-level keys are record classes::

    Operand:
      LiteralInteger: {tag: IMM}
    EnumValue:
      StorageClass.Function: {section: StorageClass, value: 7}
    Instruction:
      OpNop: {opcode: 0, word_count: 1, category: Miscellaneous}

Entry names are unique across classes. Cross references (capabilities,
followed operands, instruction operands) are entry or enumerant names and
stay unresolved here; the builder binds them.
"""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type, TypeVar

import yaml

from .address_spaces import ENVIRONMENTS
from .errors import MalformedGrammarEntry
from .model import (
    MASK_SECTIONS,
    MAX_ENUM_CAPABILITIES,
    IdType,
    InstructionClass,
    InstructionSet,
    Operand,
    OperandTag,
    Section,
    TypeExtension,
    TypeQualifier,
)

RECORD_CLASSES = ("Operand", "EnumValue", "Instruction")

E = TypeVar("E", bound=IntEnum)

_MISSING: Any = object()


@dataclass(frozen=True)
class Record:
    name: str
    cls: str
    fields: Mapping[str, Any]


class RecordStore:
    """Read-only view of grammar records, queried by entry name."""

    def __init__(self, records: Mapping[str, Record]) -> None:
        self._records = dict(records)

    @classmethod
    def from_mapping(cls, data: Any, *, source: str = "<grammar>") -> "RecordStore":
        if not isinstance(data, dict):
            raise MalformedGrammarEntry(source, "grammar must be a mapping of record classes")
        records: Dict[str, Record] = {}
        for record_cls, entries in data.items():
            if record_cls not in RECORD_CLASSES:
                raise MalformedGrammarEntry(source, f"unknown record class '{record_cls}'")
            if entries is None:
                continue
            if not isinstance(entries, dict):
                raise MalformedGrammarEntry(source, f"'{record_cls}' must map entry names to fields")
            for name, fields in entries.items():
                name = str(name)
                if fields is None:
                    fields = {}
                if not isinstance(fields, dict):
                    raise MalformedGrammarEntry(name, "fields must be a mapping")
                if name in records:
                    raise MalformedGrammarEntry(name, "entry defined more than once")
                records[name] = Record(name, record_cls, dict(fields))
        return cls(records)

    @classmethod
    def load(cls, path: pathlib.Path) -> "RecordStore":
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except OSError as exc:
            raise MalformedGrammarEntry(str(path), f"cannot read grammar: {exc.strerror}") from exc
        except yaml.YAMLError as exc:
            raise MalformedGrammarEntry(str(path), f"invalid YAML: {exc}") from exc
        return cls.from_mapping(data or {}, source=str(path))

    def __contains__(self, name: str) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, name: str) -> Record:
        try:
            return self._records[name]
        except KeyError:
            raise KeyError(f"no grammar entry named '{name}'") from None

    def names(self, cls: str) -> List[str]:
        # Sorted so population never depends on document order.
        return sorted(name for name, rec in self._records.items() if rec.cls == cls)

    def records(self, cls: str) -> Iterator[Record]:
        for name in self.names(cls):
            yield self._records[name]

    # -- typed field access ------------------------------------------------

    def _field(self, name: str, key: str, default: Any) -> Any:
        fields = self.get(name).fields
        if key in fields and fields[key] is not None:
            return fields[key]
        if default is _MISSING:
            raise MalformedGrammarEntry(name, f"missing required field '{key}'")
        return default

    def get_int(self, name: str, key: str, default: Any = _MISSING) -> Any:
        value = self._field(name, key, default)
        if value is default:
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedGrammarEntry(name, f"field '{key}' must be an integer, got {value!r}")
        if value < 0:
            raise MalformedGrammarEntry(name, f"field '{key}' must not be negative")
        return value

    def get_str(self, name: str, key: str, default: Any = _MISSING) -> Any:
        value = self._field(name, key, default)
        if value is default:
            return value
        if not isinstance(value, str):
            raise MalformedGrammarEntry(name, f"field '{key}' must be a string, got {value!r}")
        return value

    def get_bool(self, name: str, key: str, default: Any = _MISSING) -> Any:
        value = self._field(name, key, default)
        if not isinstance(value, bool):
            raise MalformedGrammarEntry(name, f"field '{key}' must be true or false, got {value!r}")
        return value

    def get_list(self, name: str, key: str) -> List[str]:
        value = self._field(name, key, [])
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise MalformedGrammarEntry(name, f"field '{key}' must be a list of names")
        return list(value)

    def get_mapping(self, name: str, key: str) -> Dict[str, str]:
        value = self._field(name, key, {})
        if not isinstance(value, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in value.items()
        ):
            raise MalformedGrammarEntry(name, f"field '{key}' must map names to names")
        return dict(value)

    def get_enum(self, name: str, key: str, enum: Type[E], default: Any = _MISSING) -> E:
        value = self.get_str(name, key, default)
        if isinstance(value, enum):
            return value
        try:
            return enum[value]
        except KeyError:
            raise MalformedGrammarEntry(
                name, f"unknown {enum.__name__} '{value}' in field '{key}'"
            ) from None


@dataclass(frozen=True)
class EnumRecord:
    name: str
    section: Section
    value: int
    capabilities: Tuple[str, ...] = ()
    is_mask: bool = False
    is_id: bool = False
    followed: Tuple[str, ...] = ()
    address_spaces: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)
    entry: str = ""


@dataclass(frozen=True)
class InstructionRecord:
    name: str
    opcode: int
    ext_opcode: int
    word_count: int
    result_index: Optional[int]
    is_terminator: bool
    category: InstructionClass
    variable_length: bool
    instruction_set: InstructionSet
    operands: Tuple[str, ...] = ()
    capabilities: Tuple[str, ...] = ()
    entry: str = ""


@dataclass
class Grammar:
    """Unsorted, unresolved descriptors as populated from a record store."""

    operands: Dict[str, Operand] = field(default_factory=dict)
    enums: Dict[Section, List[EnumRecord]] = field(default_factory=dict)
    instructions: Dict[InstructionSet, List[InstructionRecord]] = field(default_factory=dict)


def populate_operand(store: RecordStore, name: str) -> Operand:
    tag = store.get_enum(name, "tag", OperandTag)
    payload = 0
    if tag is OperandTag.ID:
        payload = int(store.get_enum(name, "type", IdType))
    elif tag is OperandTag.ENUM:
        payload = int(store.get_enum(name, "section", Section))
    return Operand(
        name=store.get_str(name, "name", name),
        tag=tag,
        qualifier=store.get_enum(name, "qualifier", TypeQualifier, TypeQualifier.Type),
        extension=store.get_enum(name, "ext", TypeExtension, TypeExtension.Scalar),
        payload=payload,
        literal=store.get_str(name, "literal", None),
    )


def populate_enum(store: RecordStore, name: str) -> EnumRecord:
    section = store.get_enum(name, "section", Section)
    capabilities = store.get_list(name, "capabilities")
    if len(capabilities) > MAX_ENUM_CAPABILITIES:
        raise MalformedGrammarEntry(
            name, f"at most {MAX_ENUM_CAPABILITIES} capabilities, got {len(capabilities)}"
        )
    is_mask = section in MASK_SECTIONS
    if store.get_bool(name, "mask", is_mask) != is_mask:
        kind = "a mask" if is_mask else "not a mask"
        raise MalformedGrammarEntry(name, f"{section.name} is {kind} section")
    address_spaces = store.get_mapping(name, "address_spaces")
    if address_spaces and section is not Section.StorageClass:
        raise MalformedGrammarEntry(name, "only StorageClass values map to address spaces")
    for env, space in address_spaces.items():
        if env not in ENVIRONMENTS:
            raise MalformedGrammarEntry(name, f"unknown execution environment '{env}'")
        if space not in ENVIRONMENTS[env].__members__ or space == "NotApplicable":
            raise MalformedGrammarEntry(name, f"{env} has no address space '{space}'")
    return EnumRecord(
        name=store.get_str(name, "name", name.rsplit(".", 1)[-1]),
        section=section,
        value=store.get_int(name, "value"),
        capabilities=tuple(capabilities),
        is_mask=is_mask,
        is_id=store.get_bool(name, "id", False),
        followed=tuple(store.get_list(name, "followed")),
        address_spaces=address_spaces,
        entry=name,
    )


def populate_instruction(store: RecordStore, name: str) -> InstructionRecord:
    operands = store.get_list(name, "operands")
    result_index = store.get_int(name, "result", None)
    if result_index is not None and result_index >= len(operands):
        raise MalformedGrammarEntry(
            name, f"result index {result_index} is outside its {len(operands)} operands"
        )
    instruction_set = store.get_enum(name, "set", InstructionSet, InstructionSet.Core)
    ext_opcode = store.get_int(name, "ext_opcode", 0)
    if instruction_set is InstructionSet.Core and ext_opcode != 0:
        raise MalformedGrammarEntry(name, f"core instructions take no ext_opcode, got {ext_opcode}")
    return InstructionRecord(
        name=store.get_str(name, "name", name),
        opcode=store.get_int(name, "opcode"),
        ext_opcode=ext_opcode,
        word_count=store.get_int(name, "word_count"),
        result_index=result_index,
        is_terminator=store.get_bool(name, "terminator", False),
        category=store.get_enum(name, "category", InstructionClass),
        variable_length=store.get_bool(name, "variable_length", False),
        instruction_set=instruction_set,
        operands=tuple(operands),
        capabilities=tuple(store.get_list(name, "capabilities")),
        entry=name,
    )


def populate(store: RecordStore) -> Grammar:
    grammar = Grammar()
    for name in store.names("Operand"):
        grammar.operands[name] = populate_operand(store, name)
    for name in store.names("EnumValue"):
        record = populate_enum(store, name)
        grammar.enums.setdefault(record.section, []).append(record)
    for name in store.names("Instruction"):
        inst = populate_instruction(store, name)
        grammar.instructions.setdefault(inst.instruction_set, []).append(inst)
    return grammar


def load_grammar(path: pathlib.Path) -> Grammar:
    return populate(RecordStore.load(path))
