"""
Message Template Tests

Tests for message rendering:
- Default templates per keyword
- The minLength soft-required special case
- Caller overrides
- Fallbacks
"""

import unittest

from formstate.messages import (
    DEFAULT_MESSAGES, REQUIRED_MESSAGE, UNKNOWN_VALIDATION_ERROR,
    merge_messages, render_message,
)


class TestDefaultMessages(unittest.TestCase):
    """Test the default template table."""

    def test_required(self):
        self.assertEqual(render_message('required', {'missingProperty': 'title'}), 'title is required.')

    def test_min_length(self):
        self.assertEqual(
            render_message('minLength', {'limit': 3}),
            'Should be at least 3 characters long.',
        )

    def test_min_length_of_one_reads_as_required(self):
        self.assertEqual(render_message('minLength', {'limit': 1}), REQUIRED_MESSAGE)
        self.assertEqual(REQUIRED_MESSAGE, 'This field is required.')

    def test_max_length(self):
        self.assertEqual(render_message('maxLength', {'limit': 10}), 'Should not exceed 10 characters.')

    def test_pattern(self):
        self.assertEqual(render_message('pattern', {'pattern': '^a'}), 'Invalid format.')

    def test_minimum_and_maximum(self):
        self.assertEqual(render_message('minimum', {'limit': 1}), 'Should be greater than or equal to 1.')
        self.assertEqual(render_message('maximum', {'limit': 9}), 'Should be less than or equal to 9.')

    def test_enum(self):
        self.assertEqual(
            render_message('enum', {'allowedValues': ['a', 'b']}),
            'a, b are the only allowed values.',
        )

    def test_type_and_format(self):
        self.assertEqual(render_message('type', {'type': 'string'}), 'Should be of type string.')
        self.assertEqual(render_message('format', {'format': 'uri'}), 'Should be in uri format.')

    def test_covers_documented_keywords(self):
        self.assertEqual(
            sorted(DEFAULT_MESSAGES),
            sorted(['required', 'minLength', 'maxLength', 'pattern', 'minimum',
                    'maximum', 'enum', 'type', 'format']),
        )


class TestFallbacks(unittest.TestCase):
    """Test rendering without a matching template."""

    def test_raw_message_used_without_template(self):
        self.assertEqual(render_message('secure-string', {}, 'Not secure'), 'Not secure')

    def test_unknown_placeholder(self):
        self.assertEqual(render_message('mystery', {}), UNKNOWN_VALIDATION_ERROR)

    def test_failing_template_gives_placeholder(self):
        def broken(params):
            raise KeyError('limit')

        messages = merge_messages({'minLength': broken})
        self.assertEqual(
            render_message('minLength', {'limit': 3}, 'raw', messages),
            UNKNOWN_VALIDATION_ERROR,
        )


class TestOverrides(unittest.TestCase):
    """Test caller-supplied templates."""

    def test_zero_argument_override(self):
        messages = merge_messages({'minLength': lambda: 'Monkey message'})
        self.assertEqual(render_message('minLength', {'limit': 3}, None, messages), 'Monkey message')

    def test_params_override(self):
        messages = merge_messages({'required': lambda p: f'Please fill in {p["missingProperty"]}'})
        self.assertEqual(
            render_message('required', {'missingProperty': 'title'}, None, messages),
            'Please fill in title',
        )

    def test_string_override(self):
        messages = merge_messages({'pattern': 'Letters only.'})
        self.assertEqual(render_message('pattern', {}, None, messages), 'Letters only.')

    def test_new_keyword_override(self):
        messages = merge_messages({'secure-string': lambda: 'Unsafe characters.'})
        self.assertEqual(render_message('secure-string', {}, 'raw', messages), 'Unsafe characters.')

    def test_defaults_untouched(self):
        merge_messages({'minLength': lambda: 'Monkey message'})
        self.assertEqual(render_message('minLength', {'limit': 3}), 'Should be at least 3 characters long.')


if __name__ == '__main__':
    unittest.main()
