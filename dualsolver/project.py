"""
DualSolver — Project document

The data the application keeps between calculations: the equation source
text and the externally defined variables, arranged in ordered groups (the
desktop UI shows one column per group).  Variable values are stored in base
units; ``si_prefix`` only affects how a value is shown and typed in.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterator, List, Optional, Sequence

from dualsolver.config import SI_PREFIXES, SiPrefix, prefix_map


@dataclass
class VariableDefinition:
    id: int
    name: str
    value: float = 0.0
    locked: bool = False
    imag: float = 0.0
    si_prefix: str = ""
    unit: str = ""
    description: str = ""

    @property
    def complex_value(self) -> complex:
        return complex(self.value, self.imag)

    def prefix_factor(self, prefixes: Sequence[SiPrefix] = SI_PREFIXES) -> float:
        return prefix_map(prefixes).get(self.si_prefix, 1.0)

    def display_value(self, prefixes: Sequence[SiPrefix] = SI_PREFIXES) -> complex:
        """Value expressed in the variable's own SI prefix."""
        return self.complex_value / self.prefix_factor(prefixes)

    def with_value(self, value: complex) -> "VariableDefinition":
        value = complex(value)
        return replace(self, value=value.real, imag=value.imag)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariableDefinition":
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        if "id" not in known or "name" not in known:
            raise ValueError("Variable entries need an 'id' and a 'name'.")
        return cls(**known)


@dataclass
class Project:
    source_code: str = ""
    variables: List[List[VariableDefinition]] = field(
        default_factory=lambda: [[], []])
    next_id: int = 1

    def all_variables(self) -> List[VariableDefinition]:
        return [v for group in self.variables for v in group]

    def _locate(self, variable_id: int) -> Iterator[tuple]:
        for g, group in enumerate(self.variables):
            for i, v in enumerate(group):
                if v.id == variable_id:
                    yield g, i

    def get_variable(self, variable_id: int) -> Optional[VariableDefinition]:
        for g, i in self._locate(variable_id):
            return self.variables[g][i]
        return None

    # ── Editing ────────────────────────────────────────────────────────

    def add_variable(self, name: str, group: int = 0,
                     **fields: Any) -> VariableDefinition:
        while len(self.variables) <= group:
            self.variables.append([])
        variable = VariableDefinition(id=self.next_id, name=name, **fields)
        self.next_id += 1
        self.variables[group].append(variable)
        return variable

    def update_variable(self, variable_id: int, **changes: Any) -> VariableDefinition:
        for g, i in self._locate(variable_id):
            updated = replace(self.variables[g][i], **changes)
            self.variables[g][i] = updated
            return updated
        raise KeyError(f"No variable with id {variable_id}")

    def remove_variable(self, variable_id: int) -> None:
        for g, i in self._locate(variable_id):
            del self.variables[g][i]
            return
        raise KeyError(f"No variable with id {variable_id}")

    def move_variable(self, variable_id: int, group: int, index: int) -> None:
        """Drag-and-drop: put the variable at *index* of *group*."""
        variable = self.get_variable(variable_id)
        if variable is None:
            raise KeyError(f"No variable with id {variable_id}")
        self.remove_variable(variable_id)
        while len(self.variables) <= group:
            self.variables.append([])
        self.variables[group].insert(index, variable)

    def apply_result(self, source_code: str,
                     variables: Sequence[VariableDefinition]) -> None:
        """Take over the patched source and the solved variable values."""
        self.source_code = source_code
        solved = {v.id: v for v in variables}
        self.variables = [[solved.get(v.id, v) for v in group]
                          for group in self.variables]

    # ── Serialisation ──────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceCode": self.source_code,
            "variables": [[v.to_dict() for v in group] for group in self.variables],
            "nextId": self.next_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        groups = [[VariableDefinition.from_dict(v) for v in group]
                  for group in data.get("variables", [[], []])]
        ids = [v.id for group in groups for v in group]
        next_id = int(data.get("nextId", max(ids, default=0) + 1))
        return cls(
            source_code=data.get("sourceCode", ""),
            variables=groups or [[], []],
            next_id=max(next_id, max(ids, default=0) + 1),
        )
