"""
Message Templates Module

Turns a validator error's keyword and params into a plain-English message.

Templates are pure functions of the error params. Callers may override any
keyword's template; an override sharing a keyword with a default replaces it.
A minLength of 1 is rendered as a generic required message so that
'minLength: 1' can mark a conditionally required string field.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional


logger = logging.getLogger(__name__)

UNKNOWN_VALIDATION_ERROR = 'Unknown validation error'
REQUIRED_MESSAGE = 'This field is required.'

MessageTemplate = Callable[[Dict[str, Any]], str]


def _required(params: Dict[str, Any]) -> str:
    return f'{params.get("missingProperty")} is required.'


def _min_length(params: Dict[str, Any]) -> str:
    if params.get('limit') == 1:
        return REQUIRED_MESSAGE
    return f'Should be at least {params.get("limit")} characters long.'


def _max_length(params: Dict[str, Any]) -> str:
    return f'Should not exceed {params.get("limit")} characters.'


def _pattern(params: Dict[str, Any]) -> str:
    return 'Invalid format.'


def _minimum(params: Dict[str, Any]) -> str:
    return f'Should be greater than or equal to {params.get("limit")}.'


def _maximum(params: Dict[str, Any]) -> str:
    return f'Should be less than or equal to {params.get("limit")}.'


def _enum(params: Dict[str, Any]) -> str:
    allowed = params.get('allowedValues') or []
    return f'{", ".join(str(v) for v in allowed)} are the only allowed values.'


def _type(params: Dict[str, Any]) -> str:
    return f'Should be of type {params.get("type")}.'


def _format(params: Dict[str, Any]) -> str:
    return f'Should be in {params.get("format")} format.'


DEFAULT_MESSAGES: Dict[str, MessageTemplate] = {
    'required': _required,
    'minLength': _min_length,
    'maxLength': _max_length,
    'pattern': _pattern,
    'minimum': _minimum,
    'maximum': _maximum,
    'enum': _enum,
    'type': _type,
    'format': _format,
}


def _accepts_params(template: Callable) -> bool:
    """True unless the template is a zero-argument callable."""
    try:
        signature = inspect.signature(template)
    except (TypeError, ValueError):
        return True
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            return True
    return False


def merge_messages(overrides: Optional[Mapping[str, Callable]] = None) -> Dict[str, MessageTemplate]:
    """
    Merge caller-supplied templates over the defaults.

    Args:
        overrides: Keyword to template; templates may take the params dict or
            no arguments at all

    Returns:
        Merged keyword to template table
    """
    merged: Dict[str, MessageTemplate] = dict(DEFAULT_MESSAGES)
    for keyword, template in (overrides or {}).items():
        if not callable(template):
            # A plain string is a constant message
            merged[keyword] = (lambda text: lambda params: text)(str(template))
        elif _accepts_params(template):
            merged[keyword] = template
        else:
            merged[keyword] = (lambda fn: lambda params: fn())(template)
    return merged


def render_message(keyword: str, params: Optional[Dict[str, Any]],
                   raw_message: Optional[str] = None,
                   messages: Optional[Mapping[str, MessageTemplate]] = None) -> str:
    """
    Render the message for one error.

    Args:
        keyword: Failing schema keyword
        params: Keyword params of the error
        raw_message: Validator-supplied message, used when no template matches
        messages: Template table (defaults when None)

    Returns:
        Message string; never empty
    """
    table = messages if messages is not None else DEFAULT_MESSAGES
    template = table.get(keyword)

    if template is None:
        return raw_message or UNKNOWN_VALIDATION_ERROR

    try:
        return str(template(dict(params or {})))
    except Exception:
        logger.warning(f'Message template for {keyword!r} failed', exc_info=True)
        return UNKNOWN_VALIDATION_ERROR
