# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Per-connection model information used to filter command values.
"""

from __future__ import annotations

from ..internal_types import *
from .command_dictionary import CommandDictionary

def model_sets_for_model(model: str, dictionary: CommandDictionary) -> FrozenSet[str]:
    """Returns the names of all model sets the given model belongs to.

    A model belongs to a set if the model string contains any member of the
    set as a substring.
    """
    return frozenset(
        set_name for set_name, members in dictionary.model_sets.items()
        if any(member in model for member in members)
      )

class DeviceContext:
    """The model of the connected receiver and the model sets it belongs to"""
    model: str
    model_sets: FrozenSet[str]

    def __init__(self, model: str, model_sets: Iterable[str]):
        self.model = model
        self.model_sets = frozenset(model_sets)

    @classmethod
    def for_model(cls, model: str, dictionary: CommandDictionary) -> Self:
        return cls(model, model_sets_for_model(model, dictionary))

    def allows(self, models: Optional[str]) -> bool:
        """True if a value or range tagged with the given model set applies to this device.
           Untagged entries apply to every device."""
        return models is None or models in self.model_sets

    def __str__(self) -> str:
        return f"DeviceContext({self.model}: {sorted(self.model_sets)})"

    def __repr__(self) -> str:
        return str(self)
