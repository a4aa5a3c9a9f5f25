"""
Field State Module

Holds the authoritative per-field (value, error, is_required) triples of a
form and the immutable initial snapshot used for reset and dirty-checking.

State Rules:
============
- Every field present at construction always has an entry.
- Fields introduced later by a patch are accepted and kept until reset.
- error == '' means the field has no known violation.
- is_required reflects the static required list plus whichever conditional
  clauses matched when the field's controlling field last changed.
"""

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from formstate.conditional_logic import (
    DependencyMap, ParsedSchema, dependents_of, evaluate_required_fields,
)
from formstate.utils import get_value


@dataclass
class FieldState:
    """State of a single field."""
    value: Any = ''
    error: str = ''
    is_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'error': self.error,
            'is_required': self.is_required,
        }


class FieldStateStore:
    """Ordered field name -> FieldState mapping with an initial snapshot."""

    def __init__(self, initial_values: Mapping[str, Any],
                 parsed: Optional[ParsedSchema] = None,
                 dependency_map: Optional[DependencyMap] = None):
        self.parsed = parsed or ParsedSchema()
        self.dependency_map: DependencyMap = dependency_map or {}

        values = dict(initial_values or {})
        required = evaluate_required_fields(self.parsed, list(values), values)
        fields = {
            name: FieldState(
                value=copy.deepcopy(value),
                error='',
                is_required=required[name],
            )
            for name, value in values.items()
        }

        # Never mutated after this point; reset() hands out copies
        self._initial: Mapping[str, FieldState] = MappingProxyType(copy.deepcopy(fields))
        self._fields: Dict[str, FieldState] = fields

    # Mapping-style access

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def get(self, name: str) -> Optional[FieldState]:
        return self._fields.get(name)

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    @property
    def initial(self) -> Mapping[str, FieldState]:
        """A read-only copy of the initial snapshot."""
        return MappingProxyType(copy.deepcopy(dict(self._initial)))

    @property
    def state(self) -> Dict[str, FieldState]:
        """A copy of the current form state."""
        return copy.deepcopy(self._fields)

    def values(self) -> Dict[str, Any]:
        """Raw current values, without coercion."""
        return {name: f.value for name, f in self._fields.items()}

    # Mutations

    def set_values(self, patch: Mapping[str, Any]) -> List[str]:
        """
        Apply a value patch.

        Untouched fields keep their value and error. When a patched field
        controls conditional clauses, the is_required flag of each of its
        dependents is re-evaluated against the new values.

        Args:
            patch: Field name to new value

        Returns:
            The patched field names in patch order
        """
        changed = []
        for name, value in patch.items():
            current = self._fields.get(name)
            if current is None:
                self._fields[name] = FieldState(value=value)
            else:
                current.value = value
            changed.append(name)

        self.refresh_required(changed)
        return changed

    def refresh_required(self, controlling_fields: List[str]):
        """Re-evaluate is_required for dependents of the given fields."""
        values = self.values()
        for name in controlling_fields:
            dependents = [d for d in dependents_of(self.dependency_map, name) if d in self._fields]
            for dependent, required in evaluate_required_fields(self.parsed, dependents, values).items():
                self._fields[dependent].is_required = required

    def set_error(self, name: str, message: str):
        """Set one field's error; unknown fields are ignored."""
        target = self._fields.get(name)
        if target is not None:
            target.error = message or ''

    def apply_errors(self, field_errors: Mapping[str, str], clear_missing: bool = False):
        """
        Write resolved messages into the state.

        Args:
            field_errors: Field name to message
            clear_missing: Clear every field not in field_errors (full
                validation); otherwise other fields keep their errors
        """
        for name, target in self._fields.items():
            if name in field_errors:
                target.error = field_errors[name] or ''
            elif clear_missing:
                target.error = ''

    def clear_errors(self):
        for target in self._fields.values():
            target.error = ''

    def reset(self):
        """Restore the initial snapshot verbatim."""
        self._fields = copy.deepcopy(dict(self._initial))

    # Derived views

    @property
    def data(self) -> Dict[str, Any]:
        """Field name to current value, with None coerced to ''."""
        return {name: get_value(f.value) for name, f in self._fields.items()}

    @property
    def is_dirty(self) -> bool:
        """True if any value differs from its initial value."""
        for name, current in self._fields.items():
            initial = self._initial.get(name)
            if initial is None or current.value != initial.value:
                return True
        return False

    @property
    def is_valid(self) -> bool:
        """True if no field currently holds an error."""
        return not any(f.error for f in self._fields.values())

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Convert the state to plain dictionaries."""
        return {name: f.to_dict() for name, f in self._fields.items()}
