"""
Diagnostic logging for error resolution.

Resolution decisions (which field an error was attached to, which errors were
suppressed or dropped) are only interesting while debugging a schema, so they
are emitted through a FormLogger that is silent unless the form was created
with debug enabled. Genuine failures are logged by the callers through their
module loggers regardless of the debug flag.
"""

import logging
from typing import Any, Dict, Optional


LOGGER_NAME = 'formstate'
LOG_PREFIX = '[formstate]'


class ResolutionEvent:
    """Constants for logged resolution events."""
    RESOLVED = 'error_resolved'
    STRUCTURAL = 'structural_error_resolved'
    SUPPRESSED = 'redundant_error_suppressed'
    UNRESOLVED = 'unresolvable_error_dropped'
    UNKNOWN_FIELD = 'unknown_field'
    VALIDATION_PASSED = 'validation_passed'
    VALIDATION_FAILED = 'validation_failed'
    UNEXPECTED_FAILURE = 'unexpected_failure'


class FormLogger:
    """Debug-gated logger for a single form."""

    def __init__(self, debug: bool = False, logger: Optional[logging.Logger] = None):
        self.is_enabled = debug
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def log(self, event: str, details: Optional[Dict[str, Any]] = None):
        """Log a resolution event when enabled."""
        if not self.is_enabled:
            return
        if details:
            rendered = ' '.join(f'{k}={v!r}' for k, v in sorted(details.items()))
            self.logger.info(f'{LOG_PREFIX} {event} {rendered}')
        else:
            self.logger.info(f'{LOG_PREFIX} {event}')

    def error(self, event: str, details: Optional[Dict[str, Any]] = None):
        """Log a failure event when enabled."""
        if not self.is_enabled:
            return
        self.logger.error(f'{LOG_PREFIX} {event} {details or ""}'.rstrip())
