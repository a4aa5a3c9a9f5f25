"""
Form configuration.

Options accepted by create_form(). Defaults come from the environment where a
deployment may want to tune them without code changes:

- FORMSTATE_DEBOUNCE_TIME: debounce delay in milliseconds (default 500)
- FORMSTATE_DEBUG: 'true' enables diagnostic logging of resolution decisions

Options may be given as a FormOptions instance or as a plain mapping using
either snake_case names or the camelCase names of the public interface.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional


UNKNOWN_FIELDS_PASS_THROUGH = 'pass_through'
UNKNOWN_FIELDS_REJECT = 'reject'
UNKNOWN_FIELD_POLICIES = [UNKNOWN_FIELDS_PASS_THROUGH, UNKNOWN_FIELDS_REJECT]

DEFAULT_DEBOUNCE_TIME = 500

# camelCase names of the public interface -> FormOptions attribute
OPTION_ALIASES = {
    'customKeywords': 'custom_keywords',
    'userDefinedMessages': 'user_defined_messages',
    'shouldDebounceAndValidate': 'should_debounce_and_validate',
    'debounceTime': 'debounce_time',
    'unknownFields': 'unknown_fields',
    'validatorCache': 'validator_cache',
    'timerFactory': 'timer_factory',
}


def _env_debounce_time() -> int:
    raw = os.environ.get('FORMSTATE_DEBOUNCE_TIME', '')
    try:
        return int(raw) if raw else DEFAULT_DEBOUNCE_TIME
    except ValueError:
        return DEFAULT_DEBOUNCE_TIME


def _env_debug() -> bool:
    return os.environ.get('FORMSTATE_DEBUG', 'false').lower() in ('true', '1', 'yes', 'on')


@dataclass
class FormOptions:
    """Per-form configuration."""
    custom_keywords: Dict[str, Callable] = field(default_factory=dict)
    errors: List[Any] = field(default_factory=list)
    user_defined_messages: Dict[str, Callable] = field(default_factory=dict)
    should_debounce_and_validate: bool = True
    debounce_time: int = field(default_factory=_env_debounce_time)
    debug: bool = field(default_factory=_env_debug)
    unknown_fields: str = UNKNOWN_FIELDS_PASS_THROUGH

    # Collaborators; built per form when not supplied
    validator: Optional[Any] = None
    validator_cache: Optional[Any] = None
    timer_factory: Optional[Callable] = None

    def __post_init__(self):
        if self.unknown_fields not in UNKNOWN_FIELD_POLICIES:
            raise ValueError(
                f'unknown_fields must be one of: {", ".join(UNKNOWN_FIELD_POLICIES)}'
            )
        if self.debounce_time is None or self.debounce_time < 0:
            self.debounce_time = DEFAULT_DEBOUNCE_TIME

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> 'FormOptions':
        """
        Build options from a mapping.

        Args:
            mapping: Option names to values; None gives all defaults

        Returns:
            FormOptions instance

        Raises:
            TypeError: If an option name is not recognised
        """
        if not mapping:
            return cls()

        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in mapping.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise TypeError(f'Unknown form option: {key}')
            if value is None and name in ('custom_keywords', 'user_defined_messages', 'errors'):
                continue
            kwargs[name] = value
        return cls(**kwargs)


def coerce_options(options: Any) -> FormOptions:
    """Accept FormOptions, a mapping, or None."""
    if isinstance(options, FormOptions):
        return options
    return FormOptions.from_mapping(options)
