"""
Schema-driven form state.

Keeps per-field values, errors and required flags for a record described by a
JSON schema, and reconciles raw validation errors into field messages.

Features:
- Partial (single-field) and full-record validation
- Debounced re-validation on change, immediate re-validation on blur
- Conditionally required fields from allOf/if/then rules
- Message template overrides per keyword
"""

from typing import Any, Dict, Mapping

from formstate.config import FormOptions
from formstate.error_resolver import ErrorResolver, resolve_errors
from formstate.field_state import FieldState
from formstate.form import Form, ValidateResult
from formstate.keywords import DEFAULT_KEYWORDS
from formstate.validation import ErrorRecord, FormValidator, ValidatorCache


__all__ = [
    'DEFAULT_KEYWORDS',
    'ErrorRecord',
    'ErrorResolver',
    'FieldState',
    'Form',
    'FormOptions',
    'FormValidator',
    'ValidateResult',
    'ValidatorCache',
    'create_form',
    'resolve_errors',
]


def create_form(initial_values: Mapping[str, Any], schema: Dict[str, Any], options: Any = None, **kwargs) -> Form:
    """
    Form factory.

    Args:
        initial_values: Field name to initial value
        schema: JSON schema of the record
        options: FormOptions or a mapping of option names
        **kwargs: Option names given directly; they override options

    Returns:
        Form handle
    """
    if kwargs:
        merged = dict(vars(options)) if isinstance(options, FormOptions) else dict(options or {})
        merged.update(kwargs)
        options = merged
    return Form(initial_values, schema, options)
