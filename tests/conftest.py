import copy

import pytest

from spirv_tablegen import RecordStore, build_tables, populate
from spirv_tablegen.tablegen import GRAMMAR_DEFAULT
from spirv_tablegen.records import load_grammar

# Smallest grammar the builder accepts with something in every record class.
MINIMAL_GRAMMAR = {
    "Operand": {
        "LiteralInteger": {"tag": "IMM"},
        "IdResultType": {"tag": "ID", "qualifier": "Type", "type": "Any"},
        "IdResult": {"tag": "ID", "qualifier": "Var", "type": "Any"},
    },
    "EnumValue": {
        "Capability.Matrix": {"section": "Capabilities", "value": 0},
        "Capability.Shader": {"section": "Capabilities", "value": 1, "capabilities": ["Matrix"]},
        "Capability.Kernel": {"section": "Capabilities", "value": 6},
        "Scope.Device": {"section": "Scope", "value": 1, "id": True},
        "Scope.Workgroup": {"section": "Scope", "value": 2, "id": True},
    },
    "Instruction": {
        "OpNop": {"opcode": 0, "word_count": 1, "category": "Miscellaneous"},
        "OpUndef": {
            "opcode": 1,
            "word_count": 3,
            "category": "Miscellaneous",
            "operands": ["IdResultType", "IdResult"],
            "result": 1,
        },
    },
}


def grammar_data():
    """Return a private copy of the minimal grammar for a test to edit."""
    return copy.deepcopy(MINIMAL_GRAMMAR)


def build(data):
    return build_tables(populate(RecordStore.from_mapping(data)))


@pytest.fixture
def data():
    return grammar_data()


@pytest.fixture(scope="session")
def bundled():
    return build_tables(load_grammar(GRAMMAR_DEFAULT))
