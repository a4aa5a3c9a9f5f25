"""
Form Module

The public handle of a schema-validated form. Wires the field state store,
the revalidation scheduler, the validator and the error resolver together.

Operations:
===========
- set(patch): update values; arms debounced validation of the first field
- on_blur(field): validate that one field now
- validate(): validate every field; returns ValidateResult
- reset(): restore the initial snapshot
- set_errors(errors): merge externally sourced raw errors

No exception escapes these operations. The only failure signal callers see
is is_valid False plus the per-field error strings.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from formstate.conditional_logic import (
    analyze_dependencies, controlling_fields_for, get_dependency_summary,
    parse_schema,
)
from formstate.config import UNKNOWN_FIELDS_REJECT, coerce_options
from formstate.error_resolver import ErrorResolver, ViolationKind
from formstate.field_state import FieldState, FieldStateStore
from formstate.form_logger import FormLogger, ResolutionEvent
from formstate.scheduler import DebounceScheduler, EditToken
from formstate.utils import get_value
from formstate.validation import FormValidator, ValidatorCache, coerce_error_records


logger = logging.getLogger(__name__)


@dataclass
class ValidateResult:
    """Outcome of a full-form validation."""
    is_valid: bool
    data: Optional[Dict[str, Any]] = None
    errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'data': self.data,
            'errors': dict(self.errors),
        }


class Form:
    """A form's state plus the operations that change it."""

    def __init__(self, initial_values: Mapping[str, Any], schema: Dict[str, Any], options: Any = None):
        """
        Create a form.

        Args:
            initial_values: Field name to initial value
            schema: JSON schema of the record
            options: FormOptions, a mapping of option names, or None

        Raises:
            jsonschema.SchemaError: If the schema itself is invalid
        """
        self.options = coerce_options(options)
        self.schema = schema
        self.form_logger = FormLogger(debug=self.options.debug)

        self.validator: FormValidator = self.options.validator or self._build_validator()
        self.parsed = parse_schema(schema)
        self.dependency_map = analyze_dependencies(schema)
        self.resolver = ErrorResolver(self.parsed, self.options.user_defined_messages, self.form_logger)

        self.store = FieldStateStore(initial_values, self.parsed, self.dependency_map)
        self.scheduler = DebounceScheduler(
            self.options.debounce_time,
            self._validate_field,
            self.options.timer_factory,
        )

        self._external_errors: List[Dict[str, Any]] = []
        if self.options.errors:
            self.external_errors = self.options.errors

    def _build_validator(self) -> FormValidator:
        cache = self.options.validator_cache or ValidatorCache()
        return cache.get(self.schema, self.options.custom_keywords)

    # Read accessors

    @property
    def state(self) -> Dict[str, FieldState]:
        """Copy of the current field states."""
        return self.store.state

    @property
    def data(self) -> Dict[str, Any]:
        return self.store.data

    @property
    def is_valid(self) -> bool:
        """True if no field currently holds an error; does not re-validate."""
        return self.store.is_valid

    @property
    def is_dirty(self) -> bool:
        return self.store.is_dirty

    @property
    def pending_edit(self) -> Optional[EditToken]:
        return self.scheduler.pending

    def __getitem__(self, name: str) -> FieldState:
        """A copy of one field's state."""
        target = self.store.get(name)
        if target is None:
            raise KeyError(name)
        return copy.deepcopy(target)

    # Operations

    def set(self, patch: Mapping[str, Any]):
        """
        Update field values.

        The first accepted key becomes the field whose validation is debounced.

        Args:
            patch: Field name to new value
        """
        try:
            accepted = self._accepted_patch(patch or {})
            if not accepted:
                return

            changed = self.store.set_values(accepted)
            if self.options.should_debounce_and_validate:
                self.scheduler.schedule(changed[0])
        except Exception:
            logger.exception('Failed to apply form patch')

    def _accepted_patch(self, patch: Mapping[str, Any]) -> Dict[str, Any]:
        if self.options.unknown_fields != UNKNOWN_FIELDS_REJECT:
            return dict(patch)

        accepted = {}
        for name, value in patch.items():
            if name in self.parsed.properties:
                accepted[name] = value
            else:
                logger.warning(f'Ignoring field {name!r}: not declared in schema properties')
                self.form_logger.log(ResolutionEvent.UNKNOWN_FIELD, {'field': name})
        return accepted

    def on_blur(self, field_name: str):
        """Validate one field immediately."""
        if field_name not in self.store:
            self.form_logger.log(ResolutionEvent.UNKNOWN_FIELD, {'field': field_name})
            return
        self._validate_field(field_name)

    def _field_scope_data(self, field_name: str) -> Dict[str, Any]:
        """The field's value plus the values its conditional clauses test."""
        data = {}
        for name in controlling_fields_for(self.parsed, field_name):
            target = self.store.get(name)
            if target is not None:
                data[name] = get_value(target.value)
        data[field_name] = get_value(self.store.get(field_name).value)
        return data

    def _validate_field(self, field_name: str):
        """Validate one field and write only that field's error."""
        try:
            if field_name not in self.store:
                return
            result = self.validator.validate(self._field_scope_data(field_name))
            message = '' if result.is_valid else self._field_message(field_name, result.errors)
            self.store.set_error(field_name, message)
        except Exception:
            logger.exception(f'Validation of field {field_name!r} failed')
            self.form_logger.error(ResolutionEvent.UNEXPECTED_FAILURE, {'field': field_name})

    def _field_message(self, field_name: str, errors: List[Any]) -> str:
        """
        Message for one field out of a field-scoped validation.

        The scoped data holds only the field and its controlling fields, so
        a clause that fails on another field it requires would otherwise pin
        its structural error on this one. Structural errors count only when
        the run produced no direct error at all.
        """
        resolution = self.resolver.resolve(errors)
        direct = {}
        for resolved in resolution.get_by_kind(ViolationKind.SCHEMA):
            direct[resolved.field] = resolved.message
        if direct:
            return direct.get(field_name, '')
        return resolution.field_errors.get(field_name, '')

    def validate(self) -> ValidateResult:
        """
        Validate every field.

        On success every error is cleared and the data is returned. On
        failure every field's error is overwritten: fields with a resolved
        message get it, all others are cleared.

        Returns:
            ValidateResult
        """
        try:
            data = self.store.data
            result = self.validator.validate(data)

            if result.is_valid:
                self.store.clear_errors()
                self.form_logger.log(ResolutionEvent.VALIDATION_PASSED)
                return ValidateResult(is_valid=True, data=data)

            field_errors = self.resolver.resolve_field_errors(result.errors)
            self.store.apply_errors(field_errors, clear_missing=True)
            self.form_logger.log(ResolutionEvent.VALIDATION_FAILED, {
                'fields': sorted(field_errors),
                'keywords': sorted(result.get_errors_by_keyword()),
            })
            return ValidateResult(is_valid=False, data=None, errors=field_errors)
        except Exception:
            logger.exception('Form validation failed unexpectedly')
            self.form_logger.error(ResolutionEvent.UNEXPECTED_FAILURE)
            return ValidateResult(is_valid=False, data=None)

    def reset(self):
        """Restore values and errors to the initial snapshot."""
        try:
            self.scheduler.cancel()
            self.store.reset()
        except Exception:
            logger.exception('Failed to reset form')

    def set_errors(self, errors: List[Any]):
        """
        Merge externally sourced raw errors into the state.

        Only fields named by the resolution are updated.

        Args:
            errors: ErrorRecords or wire dictionaries
        """
        try:
            self.store.apply_errors(self.resolver.resolve_field_errors(errors))
        except Exception:
            logger.exception('Failed to apply external errors')

    @property
    def external_errors(self) -> List[Dict[str, Any]]:
        """The externally sourced errors last applied."""
        return list(self._external_errors)

    @external_errors.setter
    def external_errors(self, errors: List[Any]):
        """Apply external errors when they differ from the last applied ones."""
        try:
            incoming = [e.to_dict() for e in coerce_error_records(errors)]
        except Exception:
            logger.exception('Failed to read external errors')
            return
        if incoming == self._external_errors:
            return
        self._external_errors = incoming
        if incoming:
            self.set_errors(incoming)

    def flush(self) -> bool:
        """Run a pending debounced validation now."""
        return self.scheduler.flush()

    def is_required(self, field_name: str) -> bool:
        target = self.store.get(field_name)
        return bool(target and target.is_required)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the form to dictionaries for debugging."""
        return {
            'state': self.store.to_dict(),
            'data': self.data,
            'is_valid': self.is_valid,
            'is_dirty': self.is_dirty,
            'conditions': get_dependency_summary(self.schema, self.data),
        }
