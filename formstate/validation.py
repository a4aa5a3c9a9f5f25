"""
Schema validation for form data.

The validator compiles a JSON schema once and checks plain data objects
against it, reporting every violation as an ErrorRecord in the conventional
JSON-Schema error shape:

    {
        "instancePath": "/title",              # '' for root-level violations
        "schemaPath": "#/properties/title/minLength",
        "keyword": "minLength",
        "params": {"limit": 3},
        "message": "'Hi' is too short"
    }

Params per keyword:
===================
- minLength, maxLength, minimum, maximum, exclusive bounds, min/maxItems,
  min/maxProperties: limit
- required: missingProperty
- enum: allowedValues
- const: allowedValue
- type: type
- format: format
- pattern: pattern
- multipleOf: multipleOf

Conditional Clauses:
====================
jsonschema reports violations inside an active 'then' branch at
'#/allOf/<n>/then/...' and does not report the branch itself. After the
last leaf error of such a clause one structural record is emitted:

    {"instancePath": "", "schemaPath": "#/allOf/<n>/if", "keyword": "if",
     "params": {"failingKeyword": "then"}, "message": 'must match "then" schema'}

Custom keywords are added by extending the Draft 7 validator class for this
validator only; no process-wide registry is touched.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from jsonschema import Draft7Validator, FormatChecker, validators
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError

from formstate.utils import parse_json_pointer, schema_fingerprint, short_hash, to_json_pointer


logger = logging.getLogger(__name__)

LIMIT_KEYWORDS = [
    'minLength', 'maxLength',
    'minimum', 'maximum', 'exclusiveMinimum', 'exclusiveMaximum',
    'minItems', 'maxItems',
    'minProperties', 'maxProperties',
]

IF_KEYWORD = 'if'
IF_MESSAGE = 'must match "then" schema'


@dataclass
class ErrorRecord:
    """A single raw violation reported by the validator."""
    instance_path: str = ''
    schema_path: str = ''
    keyword: str = ''
    params: Dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ErrorRecord':
        """Build from wire (camelCase) or snake_case keys."""
        if not data:
            return cls()
        params = data.get('params')
        return cls(
            instance_path=data.get('instancePath', data.get('instance_path', '')) or '',
            schema_path=data.get('schemaPath', data.get('schema_path', '')) or '',
            keyword=data.get('keyword', '') or '',
            params=dict(params) if isinstance(params, Mapping) else {},
            message=data.get('message'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire shape."""
        result = {
            'instancePath': self.instance_path,
            'schemaPath': self.schema_path,
            'keyword': self.keyword,
            'params': dict(self.params),
        }
        if self.message is not None:
            result['message'] = self.message
        return result

    @property
    def instance_tokens(self) -> List[str]:
        return parse_json_pointer(self.instance_path)

    @property
    def schema_tokens(self) -> List[str]:
        return parse_json_pointer(self.schema_path)


def coerce_error_records(errors: Optional[Iterable[Any]]) -> List[ErrorRecord]:
    """Accept ErrorRecords or wire dictionaries; anything else is skipped."""
    records = []
    for error in errors or []:
        if isinstance(error, ErrorRecord):
            records.append(error)
        elif isinstance(error, Mapping):
            records.append(ErrorRecord.from_dict(error))
        else:
            logger.warning(f'Ignoring error of unsupported type {type(error).__name__}')
    return records


@dataclass
class ValidationResult:
    """Container for validation results."""
    errors: List[ErrorRecord] = field(default_factory=list)
    is_valid: bool = True

    def add_error(self, error: ErrorRecord):
        """Add a validation error."""
        self.errors.append(error)
        self.is_valid = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            'ok': self.is_valid,
            'errors': [e.to_dict() for e in self.errors],
        }

    def get_errors_by_keyword(self) -> Dict[str, List[ErrorRecord]]:
        """Group errors by failing keyword."""
        by_keyword: Dict[str, List[ErrorRecord]] = {}
        for error in self.errors:
            by_keyword.setdefault(error.keyword, []).append(error)
        return by_keyword


def _missing_property(error: JsonSchemaValidationError) -> Optional[str]:
    """Recover which required property a 'required' error is about."""
    instance = error.instance if isinstance(error.instance, dict) else {}
    missing = [p for p in error.validator_value or [] if p not in instance]
    for name in missing:
        # jsonschema renders "'<name>' is a required property"
        if error.message.startswith(repr(name)):
            return name
    return missing[0] if missing else None


def error_params(error: JsonSchemaValidationError) -> Dict[str, Any]:
    """
    Derive the params of an error from its keyword and keyword value.

    Args:
        error: jsonschema validation error

    Returns:
        Params dictionary (empty for keywords without params)
    """
    keyword = error.validator
    value = error.validator_value

    if keyword in LIMIT_KEYWORDS:
        return {'limit': value}
    if keyword == 'required':
        return {'missingProperty': _missing_property(error)}
    if keyword == 'enum':
        return {'allowedValues': list(value) if isinstance(value, (list, tuple)) else [value]}
    if keyword == 'const':
        return {'allowedValue': value}
    if keyword == 'type':
        return {'type': ','.join(value) if isinstance(value, (list, tuple)) else value}
    if keyword == 'format':
        return {'format': value}
    if keyword == 'pattern':
        return {'pattern': value}
    if keyword == 'multipleOf':
        return {'multipleOf': value}
    return {}


def error_record_from_exception(error: JsonSchemaValidationError) -> ErrorRecord:
    """Convert a jsonschema error into an ErrorRecord."""
    return ErrorRecord(
        instance_path=to_json_pointer(list(error.absolute_path)),
        schema_path=to_json_pointer(list(error.absolute_schema_path), prefix='#'),
        keyword=str(error.validator),
        params=error_params(error),
        message=error.message,
    )


def _then_clause_index(schema_path: List[Any]) -> Optional[int]:
    """Index n when the path runs through allOf/<n>/then at the top level."""
    if len(schema_path) >= 3 and schema_path[0] == 'allOf' and schema_path[2] == 'then':
        index = schema_path[1]
        if isinstance(index, int):
            return index
    return None


def structural_if_record(clause_index: int) -> ErrorRecord:
    """The record reported for an active 'then' branch that failed."""
    return ErrorRecord(
        instance_path='',
        schema_path=to_json_pointer(['allOf', clause_index, IF_KEYWORD], prefix='#'),
        keyword=IF_KEYWORD,
        params={'failingKeyword': 'then'},
        message=IF_MESSAGE,
    )


class FormValidator:
    """A compiled schema, owned by the form (or shared explicitly)."""

    def __init__(self, schema: Dict[str, Any],
                 custom_keywords: Optional[Mapping[str, Callable]] = None):
        """
        Compile a schema.

        Args:
            schema: JSON schema dictionary
            custom_keywords: Keyword name to jsonschema keyword function
                (validator, value, instance, schema) yielding ValidationErrors

        Raises:
            jsonschema.SchemaError: If the schema itself is invalid
        """
        self.schema = schema
        self.custom_keywords: Dict[str, Callable] = dict(custom_keywords or {})

        validator_class = Draft7Validator
        if self.custom_keywords:
            validator_class = validators.extend(Draft7Validator, validators=self.custom_keywords)

        validator_class.check_schema(schema)
        self._validator = validator_class(schema, format_checker=FormatChecker())

    @property
    def keyword_names(self) -> List[str]:
        return sorted(self.custom_keywords)

    def iter_errors(self, data: Any) -> List[ErrorRecord]:
        """
        Collect every violation of data, in report order.

        Args:
            data: Plain data object

        Returns:
            List of ErrorRecords, with a structural record after the leaf
            errors of each failing conditional clause
        """
        records: List[ErrorRecord] = []
        emitted = set()
        open_clause = None

        for error in self._validator.iter_errors(data):
            clause_index = _then_clause_index(list(error.absolute_schema_path))
            if open_clause is not None and clause_index != open_clause and open_clause not in emitted:
                records.append(structural_if_record(open_clause))
                emitted.add(open_clause)
            open_clause = clause_index
            records.append(error_record_from_exception(error))

        if open_clause is not None and open_clause not in emitted:
            records.append(structural_if_record(open_clause))

        return records

    def validate(self, data: Any) -> ValidationResult:
        """
        Validate a data object.

        Args:
            data: Plain data object

        Returns:
            ValidationResult with errors if any
        """
        result = ValidationResult()
        for record in self.iter_errors(data):
            result.add_error(record)
        return result


class ValidatorCache:
    """Compiled validators keyed by schema fingerprint and custom keywords."""

    def __init__(self):
        self._validators: Dict[Tuple[str, Tuple], FormValidator] = {}

    @staticmethod
    def _key(schema: Dict[str, Any], custom_keywords: Optional[Mapping[str, Callable]]) -> Tuple[str, Tuple]:
        keywords = tuple(sorted((name, id(fn)) for name, fn in (custom_keywords or {}).items()))
        return schema_fingerprint(schema), keywords

    def get(self, schema: Dict[str, Any],
            custom_keywords: Optional[Mapping[str, Callable]] = None) -> FormValidator:
        """
        Get the compiled validator for a schema, compiling it on first use.

        Args:
            schema: JSON schema dictionary
            custom_keywords: Keyword plugins the validator is built with

        Returns:
            FormValidator
        """
        key = self._key(schema, custom_keywords)
        validator = self._validators.get(key)
        if validator is None:
            validator = FormValidator(schema, custom_keywords)
            self._validators[key] = validator
            logger.debug(
                f'Compiled validator for schema {short_hash(key[0])} '
                f'(custom keywords: {", ".join(validator.keyword_names) or "none"})'
            )
        return validator

    def invalidate(self, schema: Optional[Dict[str, Any]] = None):
        """
        Drop cached validators.

        Args:
            schema: Drop only validators of this schema; None drops all
        """
        if schema is None:
            self._validators.clear()
            return
        fingerprint = schema_fingerprint(schema)
        for key in [k for k in self._validators if k[0] == fingerprint]:
            del self._validators[key]

    def __len__(self) -> int:
        return len(self._validators)

    def __contains__(self, schema: Dict[str, Any]) -> bool:
        fingerprint = schema_fingerprint(schema)
        return any(k[0] == fingerprint for k in self._validators)
