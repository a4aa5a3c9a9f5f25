"""
Conditional Logic Module

Determines which fields are currently required when a schema carries
conditional rules, and which clause a structural error belongs to.

Conditional Rule Shape:
=======================

    "allOf": [
        {
            "if":   {"properties": {"<controlling field>": {"const": <value>}}},
            "then": {"required": [<dependent>, ...],
                     "properties": {<dependent>: {...}, ...}}
        },
        ...
    ]

1. Every allOf entry is parsed into a ConditionalClause, keeping its index so
   errors carrying '#/allOf/<n>/if' can be traced back to it.
2. A clause contributes to the dependency map only if its 'if' names exactly
   one controlling property. Anything else is skipped silently.
3. Several clauses naming the same controlling field accumulate their
   dependents in declaration order.
4. A clause matches when the controlling field is present in the values and
   equals the clause's const under JSON Schema equality (booleans never equal
   numbers). A missing controlling field never matches.

Target Field Tie-Break:
=======================
When a structural error must be attached to a field, the clause's 'then'
is consulted in this fixed order:

1. REQUIRED_FIRST: the first entry of then.required, if non-empty
2. FIRST_PROPERTY: the first declared key of then.properties
3. Otherwise the clause has no target and the error is unresolvable
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import Draft7Validator

from formstate.utils import schema_fingerprint


DependencyMap = Dict[str, List[str]]

_NO_CONST = object()


class TieBreakPolicy(str, Enum):
    """Steps used to pick a clause's target field."""
    REQUIRED_FIRST = 'required_first'
    FIRST_PROPERTY = 'first_property'


# Fixed tie-break order - this never changes
TIE_BREAK_ORDER: List[TieBreakPolicy] = [
    TieBreakPolicy.REQUIRED_FIRST,
    TieBreakPolicy.FIRST_PROPERTY,
]


@dataclass(frozen=True)
class ConditionalClause:
    """One allOf entry of a schema."""
    index: int
    controlling_field: Optional[str] = None
    expected_value: Any = _NO_CONST
    then_required: Tuple[str, ...] = ()
    then_properties: Tuple[str, ...] = ()

    @property
    def is_conditional(self) -> bool:
        """True when the clause names exactly one controlling field."""
        return self.controlling_field is not None

    @property
    def has_expected_value(self) -> bool:
        return self.expected_value is not _NO_CONST

    def matches(self, values: Mapping[str, Any]) -> bool:
        """
        Check whether this clause's 'if' holds for the given values.

        Args:
            values: Field name to current value

        Returns:
            True if the controlling field is present and equals the const
        """
        if not self.is_conditional or not self.has_expected_value:
            return False
        if self.controlling_field not in values:
            return False
        # const equality as the validator applies it: True is not 1, False is not 0
        return Draft7Validator({'const': self.expected_value}).is_valid(values[self.controlling_field])

    def target_field(self) -> Optional[str]:
        """Pick the field a structural error on this clause belongs to."""
        for policy in TIE_BREAK_ORDER:
            if policy is TieBreakPolicy.REQUIRED_FIRST and self.then_required:
                return self.then_required[0]
            if policy is TieBreakPolicy.FIRST_PROPERTY and self.then_properties:
                return self.then_properties[0]
        return None


@dataclass(frozen=True)
class ParsedSchema:
    """The parts of a schema the form engine reasons about."""
    properties: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()
    clauses: Tuple[ConditionalClause, ...] = field(default_factory=tuple)

    def clause_at(self, index: int) -> Optional[ConditionalClause]:
        """Get the clause parsed from allOf[index], if any."""
        for clause in self.clauses:
            if clause.index == index:
                return clause
        return None

    def conditional_clauses(self) -> List[ConditionalClause]:
        return [c for c in self.clauses if c.is_conditional]


def _string_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def parse_clause(index: int, entry: Any) -> ConditionalClause:
    """
    Parse one allOf entry into a ConditionalClause.

    Args:
        index: Position of the entry in allOf
        entry: The raw entry

    Returns:
        ConditionalClause; controlling_field is None when the entry has no
        'if' or its 'if' does not name exactly one property
    """
    if not isinstance(entry, dict):
        return ConditionalClause(index=index)

    then = entry.get('then')
    then_required: Tuple[str, ...] = ()
    then_properties: Tuple[str, ...] = ()
    if isinstance(then, dict):
        then_required = _string_list(then.get('required'))
        if isinstance(then.get('properties'), dict):
            then_properties = tuple(then['properties'].keys())

    controlling_field = None
    expected_value = _NO_CONST
    if_clause = entry.get('if')
    if isinstance(if_clause, dict) and isinstance(if_clause.get('properties'), dict):
        if_properties = if_clause['properties']
        if len(if_properties) == 1:
            controlling_field, condition = next(iter(if_properties.items()))
            if isinstance(condition, dict) and 'const' in condition:
                expected_value = condition['const']

    return ConditionalClause(
        index=index,
        controlling_field=controlling_field,
        expected_value=expected_value,
        then_required=then_required,
        then_properties=then_properties,
    )


def parse_schema(schema: Mapping[str, Any]) -> ParsedSchema:
    """
    Parse a schema's top-level properties, static required list and allOf.

    Args:
        schema: JSON schema dictionary

    Returns:
        ParsedSchema
    """
    if not isinstance(schema, Mapping):
        return ParsedSchema()

    properties = schema.get('properties')
    all_of = schema.get('allOf')

    return ParsedSchema(
        properties=tuple(properties.keys()) if isinstance(properties, dict) else (),
        required=_string_list(schema.get('required')),
        clauses=tuple(
            parse_clause(i, entry) for i, entry in enumerate(all_of)
        ) if isinstance(all_of, list) else (),
    )


# Dependency maps keyed by schema fingerprint, oldest evicted first
DEPENDENCY_CACHE_SIZE = 128
_DEPENDENCY_CACHE: Dict[str, DependencyMap] = {}


def analyze_dependencies(schema: Mapping[str, Any]) -> DependencyMap:
    """
    Build the map from controlling field to dependent fields.

    Dependents are appended in clause declaration order; duplicates are kept
    and left to the caller (see dependents_of). The result depends only on
    the schema and is cached, up to DEPENDENCY_CACHE_SIZE schemas.

    Args:
        schema: JSON schema dictionary

    Returns:
        Mapping of controlling field name to dependent field names
    """
    cache_key = schema_fingerprint(schema)
    if cache_key not in _DEPENDENCY_CACHE:
        dependency_map: DependencyMap = {}
        for clause in parse_schema(schema).conditional_clauses():
            dependency_map.setdefault(clause.controlling_field, []).extend(clause.then_required)
        _DEPENDENCY_CACHE[cache_key] = dependency_map
        while len(_DEPENDENCY_CACHE) > DEPENDENCY_CACHE_SIZE:
            del _DEPENDENCY_CACHE[next(iter(_DEPENDENCY_CACHE))]

    # Callers get their own lists
    return {k: list(v) for k, v in _DEPENDENCY_CACHE[cache_key].items()}


def clear_cache(schema: Optional[Mapping[str, Any]] = None) -> None:
    """
    Drop cached dependency maps.

    Args:
        schema: Drop only this schema's map; None drops all
    """
    if schema is None:
        _DEPENDENCY_CACHE.clear()
        return
    _DEPENDENCY_CACHE.pop(schema_fingerprint(schema), None)


def dependents_of(dependency_map: DependencyMap, field_name: str) -> List[str]:
    """Dependents of a controlling field, first occurrence wins."""
    seen = set()
    result = []
    for name in dependency_map.get(field_name, []):
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result


def controlling_fields_for(parsed: ParsedSchema, field_name: str) -> List[str]:
    """
    Controlling fields of every clause whose 'then' mentions field_name.

    Args:
        parsed: Parsed schema
        field_name: A dependent field

    Returns:
        Controlling field names in clause order, without duplicates
    """
    result = []
    for clause in parsed.conditional_clauses():
        mentioned = field_name in clause.then_required or field_name in clause.then_properties
        if not mentioned or clause.controlling_field == field_name:
            continue
        if clause.controlling_field not in result:
            result.append(clause.controlling_field)
    return result


def is_field_required(parsed: ParsedSchema, field_name: str, values: Mapping[str, Any]) -> bool:
    """
    Check whether a field is currently required.

    A field is required when the schema lists it statically or when a
    conditional clause that currently matches lists it in then.required.

    Args:
        parsed: Parsed schema
        field_name: Field to check
        values: Field name to current value

    Returns:
        True if the field is required
    """
    if field_name in parsed.required:
        return True
    for clause in parsed.conditional_clauses():
        if field_name in clause.then_required and clause.matches(values):
            return True
    return False


def evaluate_required_fields(parsed: ParsedSchema, field_names: List[str],
                             values: Mapping[str, Any]) -> Dict[str, bool]:
    """
    Evaluate is_required for several fields at once.

    Args:
        parsed: Parsed schema
        field_names: Fields to evaluate
        values: Field name to current value

    Returns:
        Field name to required flag
    """
    return {name: is_field_required(parsed, name, values) for name in field_names}


def get_dependency_summary(schema: Mapping[str, Any], values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Summarise the conditional rules of a schema against current values.

    Args:
        schema: JSON schema dictionary
        values: Field name to current value

    Returns:
        Dictionary with the dependency map and per-clause match detail
    """
    parsed = parse_schema(schema)
    return {
        'dependencies': analyze_dependencies(schema),
        'clauses_detail': [
            {
                'index': c.index,
                'controlling_field': c.controlling_field,
                'expected_value': c.expected_value if c.has_expected_value else None,
                'then_required': list(c.then_required),
                'target_field': c.target_field(),
                'matches': c.matches(values),
            }
            for c in parsed.clauses
        ],
    }
