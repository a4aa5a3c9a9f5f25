"""
Unit tests for custom keyword plugins.
"""

import pytest

from formstate.keywords import (
    SECURE_STRING_MESSAGE, YOUTUBE_URL_MESSAGE, is_youtube_url, secure_string,
)


class TestSecureString:
    @pytest.mark.parametrize('value', ['Hello world', 'what-is_this?!', '', 'ABC123'])
    def test_accepts_safe_strings(self, value):
        assert list(secure_string(None, True, value, {})) == []

    @pytest.mark.parametrize('value', ['<script>', 'a;b', 'Hi, World', 'café'])
    def test_rejects_unsafe_strings(self, value):
        errors = list(secure_string(None, True, value, {}))
        assert len(errors) == 1
        assert errors[0].message == SECURE_STRING_MESSAGE

    def test_disabled_keyword_is_ignored(self):
        assert list(secure_string(None, False, '<script>', {})) == []

    def test_non_strings_are_ignored(self):
        assert list(secure_string(None, True, 42, {})) == []


class TestYoutubeUrl:
    @pytest.mark.parametrize('value', [
        'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
        'https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ',
        'https://youtu.be/dQw4w9WgXcQ',
        'https://www.youtube.com/embed/dQw4w9WgXcQ',
        'https://www.youtube.com/shorts/dQw4w9WgXcQ',
        'youtube.com/watch?v=dQw4w9WgXcQ&t=42',
    ])
    def test_accepts_youtube_urls(self, value):
        assert list(is_youtube_url(None, True, value, {})) == []

    @pytest.mark.parametrize('value', [
        'https://vimeo.com/123456',
        'https://www.youtube.com/watch?v=short',
        'not a url',
    ])
    def test_rejects_other_urls(self, value):
        errors = list(is_youtube_url(None, True, value, {}))
        assert [e.message for e in errors] == [YOUTUBE_URL_MESSAGE]

    def test_disabled_keyword_is_ignored(self):
        assert list(is_youtube_url(None, False, 'nope', {})) == []
