"""
Field State Store Tests

Tests for the per-field state store:
- Initial required flags
- Patching values and refreshing dependents
- The initial snapshot survives mutation of anything handed out
"""

import unittest

from formstate.conditional_logic import analyze_dependencies, parse_schema
from formstate.field_state import FieldState, FieldStateStore


SCHEMA = {
    'type': 'object',
    'required': ['title'],
    'properties': {
        'title': {'type': 'string'},
        'locationType': {'type': 'string'},
        'location': {'type': 'string'},
    },
    'allOf': [{
        'if': {'properties': {'locationType': {'const': 'onsite'}}},
        'then': {'required': ['location']},
    }],
}


def make_store(values):
    return FieldStateStore(values, parse_schema(SCHEMA), analyze_dependencies(SCHEMA))


class TestFieldStateStore(unittest.TestCase):

    def setUp(self):
        self.store = make_store({'title': 'Hello', 'locationType': 'remote', 'location': ''})

    def test_initial_required_flags(self):
        self.assertTrue(self.store.get('title').is_required)
        self.assertFalse(self.store.get('location').is_required)

    def test_set_values_refreshes_dependents(self):
        changed = self.store.set_values({'locationType': 'onsite'})
        self.assertEqual(changed, ['locationType'])
        self.assertTrue(self.store.get('location').is_required)

    def test_initial_snapshot_cannot_be_changed_through_initial(self):
        self.store.initial['title'].value = 'mutated'
        self.store.initial['title'].error = 'mutated'
        self.store.set_values({'title': 'Changed'})
        self.store.reset()
        self.assertEqual(self.store.get('title'), FieldState('Hello', '', True))

    def test_initial_snapshot_cannot_be_changed_through_state(self):
        state = self.store.state
        state['title'].value = 'mutated'
        self.store.reset()
        self.assertEqual(self.store.get('title').value, 'Hello')
        self.assertFalse(self.store.is_dirty)

    def test_initial_is_read_only(self):
        with self.assertRaises(TypeError):
            self.store.initial['title'] = FieldState()

    def test_apply_errors(self):
        self.store.set_error('location', 'old')
        self.store.apply_errors({'title': 'bad'})
        self.assertEqual(self.store.get('location').error, 'old')
        self.store.apply_errors({'title': 'bad'}, clear_missing=True)
        self.assertEqual(self.store.get('location').error, '')
        self.assertFalse(self.store.is_valid)


if __name__ == '__main__':
    unittest.main()
