"""
Error Resolver Module

Maps raw validator errors to form fields and renders their messages.

Field Resolution Order:
=======================
1. instancePath is non-empty: the field is its first segment
   ('/address/street' -> 'address').
2. 'required' error at the root: the field is params.missingProperty.
3. schemaPath runs through 'allOf/<n>/if': the error is structural. The
   field is the target of the parsed clause allOf[n] (see
   conditional_logic for the tie-break policy).
4. Anything else is unresolvable and dropped.

Deduplication:
==============
Fields receive messages in encounter order. A direct error for a field
replaces any earlier message for it. A structural error for a field that
already holds a message is redundant and suppressed, so leaf violations win
over "the active branch requires this" violations.

Violation Kinds:
================
- SCHEMA: field-addressable constraint failure
- STRUCTURAL_CONDITIONAL: 'if' clause failure resolved through the schema
- REDUNDANT_CONDITIONAL: structural failure suppressed by a direct one
- UNRESOLVABLE: no field could be found; never surfaced to callers
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from formstate.conditional_logic import ParsedSchema, parse_schema
from formstate.form_logger import FormLogger, ResolutionEvent
from formstate.messages import MessageTemplate, merge_messages, render_message
from formstate.validation import ErrorRecord, coerce_error_records


class ViolationKind(str, Enum):
    """How an error was (or was not) attached to a field."""
    SCHEMA = 'schema'
    STRUCTURAL_CONDITIONAL = 'structural_conditional'
    REDUNDANT_CONDITIONAL = 'redundant_conditional'
    UNRESOLVABLE = 'unresolvable'


@dataclass
class ResolvedError:
    """Resolution outcome for one raw error."""
    error: ErrorRecord
    kind: ViolationKind
    field: Optional[str] = None
    message: str = ''


@dataclass
class ResolutionResult:
    """Field messages plus the per-error trail that produced them."""
    field_errors: Dict[str, str] = field(default_factory=dict)
    resolved: List[ResolvedError] = field(default_factory=list)

    def get_by_kind(self, kind: ViolationKind) -> List[ResolvedError]:
        return [r for r in self.resolved if r.kind == kind]


def conditional_clause_index(error: ErrorRecord) -> Optional[int]:
    """
    Find the clause index of an error raised by a conditional's 'if'.

    Args:
        error: Raw error

    Returns:
        n when the schema path contains 'allOf/<n>/if', else None
    """
    tokens = error.schema_tokens
    for i in range(len(tokens) - 2):
        if tokens[i] == 'allOf' and tokens[i + 1].isdigit() and tokens[i + 2] == 'if':
            return int(tokens[i + 1])
    return None


def direct_field_name(error: ErrorRecord) -> Optional[str]:
    """Field named by the error itself, without consulting the schema."""
    tokens = error.instance_tokens
    if tokens and tokens[0]:
        return tokens[0]
    if error.keyword == 'required':
        missing = error.params.get('missingProperty')
        if isinstance(missing, str) and missing:
            return missing
    return None


def field_name_for(error: ErrorRecord, parsed: ParsedSchema) -> Tuple[Optional[str], ViolationKind]:
    """
    Resolve the field an error belongs to.

    Args:
        error: Raw error
        parsed: Parsed schema used for structural resolution

    Returns:
        (field name or None, violation kind)
    """
    name = direct_field_name(error)
    if name:
        return name, ViolationKind.SCHEMA

    clause_index = conditional_clause_index(error)
    if clause_index is not None:
        clause = parsed.clause_at(clause_index)
        target = clause.target_field() if clause else None
        if target:
            return target, ViolationKind.STRUCTURAL_CONDITIONAL

    return None, ViolationKind.UNRESOLVABLE


class ErrorResolver:
    """Resolves raw errors against one schema and one message table."""

    def __init__(self, schema: Union[Mapping[str, Any], ParsedSchema],
                 message_overrides: Optional[Mapping[str, Any]] = None,
                 form_logger: Optional[FormLogger] = None):
        self.parsed = schema if isinstance(schema, ParsedSchema) else parse_schema(schema)
        self.messages: Dict[str, MessageTemplate] = merge_messages(message_overrides)
        self.form_logger = form_logger or FormLogger()

    def resolve(self, errors: Iterable[Any]) -> ResolutionResult:
        """
        Resolve a list of raw errors.

        Args:
            errors: ErrorRecords or wire dictionaries

        Returns:
            ResolutionResult; field_errors maps field name to message
        """
        result = ResolutionResult()
        claimed = set()

        for error in coerce_error_records(errors):
            name, kind = field_name_for(error, self.parsed)

            if kind is ViolationKind.UNRESOLVABLE:
                result.resolved.append(ResolvedError(error=error, kind=kind))
                self.form_logger.log(ResolutionEvent.UNRESOLVED, {
                    'keyword': error.keyword,
                    'schema_path': error.schema_path,
                })
                continue

            if kind is ViolationKind.STRUCTURAL_CONDITIONAL and name in claimed:
                result.resolved.append(ResolvedError(
                    error=error, kind=ViolationKind.REDUNDANT_CONDITIONAL, field=name,
                ))
                self.form_logger.log(ResolutionEvent.SUPPRESSED, {
                    'field': name,
                    'schema_path': error.schema_path,
                })
                continue

            message = render_message(error.keyword, error.params, error.message, self.messages)
            result.field_errors[name] = message
            claimed.add(name)
            result.resolved.append(ResolvedError(error=error, kind=kind, field=name, message=message))

            event = ResolutionEvent.STRUCTURAL if kind is ViolationKind.STRUCTURAL_CONDITIONAL else ResolutionEvent.RESOLVED
            self.form_logger.log(event, {'field': name, 'keyword': error.keyword, 'message': message})

        return result

    def resolve_field_errors(self, errors: Iterable[Any]) -> Dict[str, str]:
        return self.resolve(errors).field_errors


def resolve_errors(errors: Iterable[Any], schema: Mapping[str, Any],
                   message_overrides: Optional[Mapping[str, Any]] = None,
                   debug: bool = False) -> Dict[str, str]:
    """
    Resolve raw errors to field messages in one call.

    Args:
        errors: ErrorRecords or wire dictionaries
        schema: JSON schema the errors were produced against
        message_overrides: Keyword to message template overrides
        debug: Log resolution decisions

    Returns:
        Field name to message
    """
    resolver = ErrorResolver(schema, message_overrides, FormLogger(debug=debug))
    return resolver.resolve_field_errors(errors)
