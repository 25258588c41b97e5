"""StorageClass and native address-space correspondence."""

import pytest

from conftest import build
from spirv_tablegen import (
    NOT_APPLICABLE,
    GLSLAddressSpace,
    MalformedGrammarEntry,
    OpenCLAddressSpace,
)
from spirv_tablegen.model import Section


@pytest.fixture(scope="module")
def opencl(bundled):
    return bundled.address_spaces["OpenCL"]


@pytest.fixture(scope="module")
def glsl(bundled):
    return bundled.address_spaces["GLSL"]


class TestOpenCL:
    def test_function_is_private(self, opencl):
        assert opencl.address_space("Function") is OpenCLAddressSpace.Private
        assert opencl.storage_class(OpenCLAddressSpace.Private) == "Function"

    def test_uniform_constant_is_constant(self, opencl):
        assert opencl.address_space("UniformConstant") is OpenCLAddressSpace.Constant
        assert opencl.storage_class("Constant") == "UniformConstant"

    def test_unlisted_storage_class(self, opencl):
        assert opencl.address_space("Input") is OpenCLAddressSpace.NotApplicable
        assert opencl.address_space("NoSuchClass") is OpenCLAddressSpace.NotApplicable

    def test_unlisted_address_space(self, opencl):
        assert opencl.storage_class(OpenCLAddressSpace.NotApplicable) == NOT_APPLICABLE
        assert opencl.storage_class(42) == NOT_APPLICABLE
        assert opencl.storage_class("Shared") == NOT_APPLICABLE

    def test_listed_pairs(self, opencl):
        assert dict(opencl.pairs()) == {
            "Function": OpenCLAddressSpace.Private,
            "CrossWorkgroup": OpenCLAddressSpace.Global,
            "Workgroup": OpenCLAddressSpace.Local,
            "UniformConstant": OpenCLAddressSpace.Constant,
            "Generic": OpenCLAddressSpace.Generic,
        }

    def test_pairs_in_address_space_order(self, opencl):
        spaces = [space for _, space in opencl.pairs()]
        assert spaces == sorted(spaces)

    def test_round_trip_storage_class(self, opencl):
        for storage_class in opencl.forward:
            assert opencl.storage_class(opencl.address_space(storage_class)) == storage_class

    def test_round_trip_address_space(self, opencl):
        for space in opencl.inverse:
            assert opencl.address_space(opencl.storage_class(int(space))) is space

    def test_descriptor_input(self, bundled, opencl):
        workgroup = bundled.lookup(Section.StorageClass, "Workgroup")
        assert opencl.address_space(workgroup) is OpenCLAddressSpace.Local


class TestGLSL:
    def test_pairs(self, glsl):
        assert dict(glsl.pairs()) == {
            "Function": GLSLAddressSpace.Private,
            "UniformConstant": GLSLAddressSpace.Constant,
        }

    def test_opencl_only_class(self, glsl):
        assert glsl.address_space("CrossWorkgroup") is GLSLAddressSpace.NotApplicable
        assert glsl.storage_class(1) == NOT_APPLICABLE


def test_space_claimed_twice(data):
    data["EnumValue"]["StorageClass.Function"] = {
        "section": "StorageClass", "value": 7, "address_spaces": {"OpenCL": "Private"},
    }
    data["EnumValue"]["StorageClass.Private"] = {
        "section": "StorageClass", "value": 6, "address_spaces": {"OpenCL": "Private"},
    }
    with pytest.raises(MalformedGrammarEntry, match="already maps to"):
        build(data)


def test_no_pairs(data):
    tables = build(data)
    assert list(tables.address_spaces["OpenCL"].pairs()) == []
    assert tables.address_spaces["GLSL"].address_space("Function") is GLSLAddressSpace.NotApplicable
