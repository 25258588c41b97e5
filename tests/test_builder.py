"""Table ordering, duplicate detection and reference resolution."""

import pytest

from conftest import build
from spirv_tablegen import DuplicateOpcode, MalformedGrammarEntry, UnresolvedReference
from spirv_tablegen.builder import sort_section
from spirv_tablegen.model import MASK_SECTIONS, InstructionSet, Section
from spirv_tablegen.records import EnumRecord


class TestOrdering:
    def test_non_mask_sections_strictly_ascending(self, bundled):
        for section in Section:
            if section in MASK_SECTIONS:
                continue
            values = [v.value for v in bundled.section(section)]
            assert values == sorted(set(values)), section.name

    def test_mask_sections_ascending(self, bundled):
        for section in MASK_SECTIONS:
            values = [v.value for v in bundled.section(section)]
            assert values == sorted(values), section.name

    def test_mask_alias_kept(self, bundled):
        names = [v.name for v in bundled.section(Section.MemorySemantics) if v.value == 0]
        assert names == ["None", "Relaxed"]
        assert bundled.lookup(Section.MemorySemantics, 0).name == "None"

    def test_instructions_strictly_ascending(self, bundled):
        for iset in (InstructionSet.Core, InstructionSet.OpenCL):
            keys = [inst.sort_key for inst in bundled.instruction_set(iset)]
            assert keys
            assert keys == sorted(set(keys))

    def test_every_instruction_found(self, bundled):
        for iset, table in bundled.instructions.items():
            for inst in table:
                assert bundled.find_instruction(iset, *inst.sort_key) is inst

    def test_absent_instruction(self, bundled):
        assert bundled.find_instruction(InstructionSet.Core, 9999) is None
        assert bundled.find_instruction(InstructionSet.OpenCL, 12, 2) is None
        assert bundled.find_instruction(InstructionSet.GLSL, 12, 0) is None

    def test_extended_instruction(self, bundled):
        sqrt = bundled.find_instruction(InstructionSet.OpenCL, 12, 61)
        assert sqrt.name == "sqrt"
        assert bundled.find_instruction(InstructionSet.Core, 12).name == "OpExtInst"

    def test_merged_order(self, bundled):
        merged = list(bundled.merged_instructions())
        keys = [inst.sort_key + (int(inst.instruction_set),) for inst in merged]
        assert keys == sorted(keys)
        assert len(merged) == sum(len(t) for t in bundled.instructions.values())

    def test_unused_sets_absent(self, bundled):
        assert InstructionSet.GLSL not in bundled.instructions
        assert bundled.instruction_set(InstructionSet.GLSL) == ()


class TestDuplicates:
    def test_duplicate_instruction_opcode(self, data):
        data["Instruction"]["OpAlsoNop"] = {"opcode": 0, "word_count": 1, "category": "Miscellaneous"}
        with pytest.raises(DuplicateOpcode) as info:
            build(data)
        assert info.value.where == "Core"
        assert info.value.opcode == (0, 0)

    def test_same_opcode_other_set(self, data):
        data["Instruction"]["OpenCL.acos"] = {
            "name": "acos", "set": "OpenCL", "opcode": 0, "word_count": 1,
            "category": "Arithmetic",
        }
        tables = build(data)
        assert tables.find_instruction(InstructionSet.OpenCL, 0).name == "acos"

    def test_duplicate_enum_value(self, data):
        data["EnumValue"]["Scope.Device2"] = {"section": "Scope", "value": 1}
        with pytest.raises(DuplicateOpcode, match="Scope"):
            build(data)

    def test_plain_section_cannot_opt_into_aliases(self, data):
        data["EnumValue"]["Scope.Device"]["mask"] = True
        data["EnumValue"]["Scope.Device2"] = {"section": "Scope", "value": 1, "mask": True}
        with pytest.raises(MalformedGrammarEntry, match="Scope is not a mask section"):
            build(data)

    def test_duplicate_check_follows_section(self):
        records = [
            EnumRecord("Device", Section.Scope, 1, is_mask=True),
            EnumRecord("Device2", Section.Scope, 1, is_mask=True),
        ]
        with pytest.raises(DuplicateOpcode):
            sort_section(Section.Scope, records)

    def test_mask_section_alias(self, data):
        data["EnumValue"]["MemorySemantics.None"] = {"section": "MemorySemantics", "value": 0}
        data["EnumValue"]["MemorySemantics.Relaxed"] = {"section": "MemorySemantics", "value": 0}
        values = build(data).section(Section.MemorySemantics)
        assert [v.name for v in values] == ["None", "Relaxed"]
        assert all(v.is_mask for v in values)

    def test_duplicate_name_in_section(self, data):
        data["EnumValue"]["Other.Device"] = {"section": "Scope", "value": 7}
        with pytest.raises(MalformedGrammarEntry, match="already has a value named 'Device'"):
            build(data)


class TestResolution:
    def test_capability_dependencies(self, data):
        tables = build(data)
        shader = tables.lookup(Section.Capabilities, "Shader")
        assert shader.primary_capability is tables.lookup(Section.Capabilities, "Matrix")

    def test_capability_declared_after_dependant(self, data):
        data["EnumValue"]["Capability.Aardvark"] = {
            "section": "Capabilities", "value": 90, "capabilities": ["Zebra"],
        }
        data["EnumValue"]["Capability.Zebra"] = {"section": "Capabilities", "value": 91}
        tables = build(data)
        assert tables.lookup(Section.Capabilities, 90).primary_capability.name == "Zebra"

    def test_unknown_capability(self, data):
        data["EnumValue"]["Scope.Device"]["capabilities"] = ["Missing"]
        with pytest.raises(UnresolvedReference) as info:
            build(data)
        assert info.value.kind == "capability"
        assert info.value.reference == "Missing"

    def test_capability_cycle(self, data):
        data["EnumValue"]["Capability.Matrix"]["capabilities"] = ["Shader"]
        with pytest.raises(UnresolvedReference):
            build(data)

    def test_unknown_operand(self, data):
        data["Instruction"]["OpUndef"]["operands"] = ["IdResultType", "IdMissing"]
        with pytest.raises(UnresolvedReference) as info:
            build(data)
        assert info.value.kind == "operand"
        assert info.value.entry == "OpUndef"

    def test_unknown_followed_operand(self, data):
        data["EnumValue"]["ExecutionMode.LocalSize"] = {
            "section": "ExecutionMode", "value": 17, "followed": ["LiteralInteger", "Missing"],
        }
        with pytest.raises(UnresolvedReference) as info:
            build(data)
        assert info.value.kind == "operand"
        assert info.value.reference == "Missing"
        assert info.value.entry == "ExecutionMode.LocalSize"

    def test_fixed_section_needs_its_capability(self, data):
        data["EnumValue"]["LinkageType.Export"] = {"section": "LinkageType", "value": 0}
        with pytest.raises(UnresolvedReference, match="'Linkage'"):
            build(data)

    def test_instruction_operands_resolved(self, data):
        undef = build(data).find_instruction(InstructionSet.Core, 1)
        assert [op.name for op in undef.operands] == ["IdResultType", "IdResult"]


class TestTableSet:
    def test_lookup_by_name_value_and_descriptor(self, bundled):
        function = bundled.lookup(Section.StorageClass, "Function")
        assert bundled.lookup(Section.StorageClass, 7) is function
        assert bundled.lookup(Section.StorageClass, function) is function

    def test_lookup_missing(self, bundled):
        with pytest.raises(KeyError):
            bundled.lookup(Section.StorageClass, "Nowhere")
        with pytest.raises(KeyError):
            bundled.lookup(Section.Scope, 99)

    def test_read_only(self, bundled):
        with pytest.raises(TypeError):
            bundled.enums[Section.Scope] = ()

    def test_empty_section(self, data):
        assert build(data).section(Section.Dim) == ()
