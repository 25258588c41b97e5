"""StorageClass to native address-space correspondence.

Each execution environment has its own address-space numbering. The pairs
themselves come from the ``address_spaces`` field of StorageClass values,
so both directions are derived from one table and stay consistent.
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Type, Union

from .errors import MalformedGrammarEntry

if TYPE_CHECKING:
    from .model import EnumValue


class OpenCLAddressSpace(IntEnum):
    Private = 0
    Global = 1
    Local = 2
    Constant = 3
    Generic = 4
    NotApplicable = -1


class GLSLAddressSpace(IntEnum):
    Private = 0
    Constant = 3
    NotApplicable = -1


ENVIRONMENTS: Mapping[str, Type[IntEnum]] = MappingProxyType(
    {
        "OpenCL": OpenCLAddressSpace,
        "GLSL": GLSLAddressSpace,
    }
)

# Returned by the inverse direction for address spaces with no StorageClass.
NOT_APPLICABLE = "NotApplicable"


class AddressSpaceMap:
    """Total mapping between StorageClass names and one environment's spaces."""

    def __init__(self, environment: str, forward: Mapping[str, IntEnum]) -> None:
        self.environment = environment
        self.spaces = ENVIRONMENTS[environment]
        self.forward: Mapping[str, IntEnum] = MappingProxyType(dict(forward))
        self.inverse: Mapping[IntEnum, str] = MappingProxyType(
            {space: sc for sc, space in forward.items()}
        )

    def address_space(self, storage_class: Union[str, "EnumValue"]) -> IntEnum:
        name = getattr(storage_class, "name", storage_class)
        return self.forward.get(name, self.spaces["NotApplicable"])

    def storage_class(self, address_space: Union[str, int, IntEnum]) -> str:
        if isinstance(address_space, str):
            space = self.spaces.__members__.get(address_space)
        else:
            try:
                space = self.spaces(address_space)
            except ValueError:
                space = None
        if space is None:
            return NOT_APPLICABLE
        return self.inverse.get(space, NOT_APPLICABLE)

    def pairs(self):
        """Yield ``(storage_class, address_space)`` in address-space order."""
        for space in sorted(self.inverse):
            yield self.inverse[space], space


def build_address_space_maps(storage_classes: Iterable["EnumValue"]) -> Dict[str, AddressSpaceMap]:
    forward: Dict[str, Dict[str, IntEnum]] = {env: {} for env in ENVIRONMENTS}
    claimed: Dict[str, Dict[IntEnum, str]] = {env: {} for env in ENVIRONMENTS}
    for value in storage_classes:
        for env, space_name in value.address_spaces.items():
            space = ENVIRONMENTS[env][space_name]
            owner = claimed[env].get(space)
            if owner is not None and owner != value.name:
                raise MalformedGrammarEntry(
                    value.name, f"{env} address space {space_name} already maps to {owner}"
                )
            claimed[env][space] = value.name
            forward[env][value.name] = space
    return {env: AddressSpaceMap(env, forward[env]) for env in ENVIRONMENTS}
