"""
Custom keyword plugins.

Each plugin is a jsonschema keyword function taking
(validator, keyword_value, instance, schema) and yielding ValidationErrors.
Plugins are opt-in: pass them to a form through the custom_keywords option.

    form = create_form({'title': ''}, schema, {'custom_keywords': DEFAULT_KEYWORDS})

Keywords are ignored when their schema value is falsy, and only apply to
strings.
"""

import re
from typing import Any, Callable, Dict, Iterator

from jsonschema.exceptions import ValidationError


SECURE_STRING_PATTERN = re.compile(r'^[A-Za-z0-9\-!?_ ]*$')
YOUTUBE_URL_PATTERN = re.compile(
    r'^(https?://)?(www\.|m\.)?'
    r'(youtube\.com/(watch\?(.*&)?v=|embed/|shorts/|v/)|youtu\.be/)'
    r'[A-Za-z0-9_-]{11}([?&#].*)?$'
)

SECURE_STRING_MESSAGE = (
    'The string contains characters that are not alphanumeric, a dash, an '
    'exclamation mark, a question mark, an underscore, or a space'
)
YOUTUBE_URL_MESSAGE = 'Invalid YouTube URL'


def secure_string(validator: Any, enabled: Any, instance: Any, schema: Dict[str, Any]) -> Iterator[ValidationError]:
    """Reject strings with characters outside the safe set."""
    if not enabled or not isinstance(instance, str):
        return
    if not SECURE_STRING_PATTERN.match(instance):
        yield ValidationError(SECURE_STRING_MESSAGE)


def is_youtube_url(validator: Any, enabled: Any, instance: Any, schema: Dict[str, Any]) -> Iterator[ValidationError]:
    """Require a YouTube watch, short or embed URL."""
    if not enabled or not isinstance(instance, str):
        return
    if not YOUTUBE_URL_PATTERN.match(instance.strip()):
        yield ValidationError(YOUTUBE_URL_MESSAGE)


DEFAULT_KEYWORDS: Dict[str, Callable] = {
    'secure-string': secure_string,
    'is-youtube-url': is_youtube_url,
}
