"""Unit tests for the session ownership cookie."""
import logging

import pytest

from processor.session import (
    COOKIE_NAME,
    MAX_AGE_SECONDS,
    build_set_cookie_header,
    decode_session_value,
    encode_session_value,
    is_owned,
    merge_ids,
    parse_session_ids,
)


class TestEncodeDecode:
    """Test cases for the cookie value codec."""

    def test_encode_is_url_encoded_json_array(self):
        """Test ids become a URL-encoded JSON array."""
        assert encode_session_value(['a', 'b']) == '%5B%22a%22%2C%22b%22%5D'

    def test_decode_reads_encoded_value(self):
        """Test decoding an encoded value yields the ids."""
        assert decode_session_value('%5B%22frukost-2026-06-21-0800%22%5D') == [
            'frukost-2026-06-21-0800'
        ]

    @pytest.mark.parametrize("raw", [
        None,
        '',
        42,
        '%7Bbroken',
        'not-json',
        '%7B%22a%22%3A1%7D',
        '%22just-a-string%22',
        '[' * 2000,
        '%5B' * 5000,
    ])
    def test_decode_malformed_yields_empty(self, raw):
        """Test absent, malformed or non-array values never raise."""
        assert decode_session_value(raw) == []

    def test_decode_filters_bad_entries(self):
        """Test non-string and empty entries are dropped."""
        assert decode_session_value('%5B%22x%22%2C1%2C%22%22%2Cnull%2C%22y%22%5D') == ['x', 'y']

    def test_decode_logs_malformed_at_debug(self, caplog):
        """Test parse failures are logged at low severity only."""
        with caplog.at_level(logging.DEBUG, logger='processor.session'):
            decode_session_value('%7Bbroken')
        assert all(record.levelno == logging.DEBUG for record in caplog.records)
        assert caplog.records


class TestParseSessionIds:
    """Test cases for reading the cookie out of a Cookie header."""

    def test_finds_cookie_among_others(self):
        """Test the session cookie is located among other cookies."""
        header = f"theme=dark; {COOKIE_NAME}=%5B%22a%22%5D; lang=sv"
        assert parse_session_ids(header) == ['a']

    @pytest.mark.parametrize("header", [None, '', 'theme=dark', 123])
    def test_missing_cookie_yields_empty(self, header):
        """Test headers without the cookie give an empty set."""
        assert parse_session_ids(header) == []


class TestBuildSetCookieHeader:
    """Test cases for the Set-Cookie header."""

    def test_attributes(self):
        """Test path, lifetime and SameSite, and that it stays script-readable."""
        header = build_set_cookie_header(['a'])
        assert header == (
            f"{COOKIE_NAME}=%5B%22a%22%5D; Path=/; Max-Age={MAX_AGE_SECONDS}; "
            "Secure; SameSite=Strict"
        )
        assert 'HttpOnly' not in header
        assert MAX_AGE_SECONDS == 7 * 24 * 60 * 60

    def test_domain_appended_when_given(self):
        """Test the optional Domain attribute."""
        header = build_set_cookie_header(['a'], 'sommar.example.com')
        assert header.endswith('; Domain=sommar.example.com')

    def test_header_round_trips_through_parser(self):
        """Test a browser echoing the cookie back yields the same ids."""
        ids = ['frukost-2026-06-21-0800', 'kvallsmys-2026-06-22-2030']
        value = build_set_cookie_header(ids).split(';')[0]
        assert parse_session_ids(value) == ids


class TestMergeIds:
    """Test cases for merge_ids and the ownership check."""

    def test_appends_new_id(self):
        """Test a new id is appended at the end."""
        assert merge_ids(['a', 'b'], 'c') == ['a', 'b', 'c']

    def test_existing_id_not_duplicated(self):
        """Test a present id leaves order unchanged."""
        assert merge_ids(['a', 'b'], 'a') == ['a', 'b']

    @pytest.mark.parametrize("existing", [[], ['x'], ['x', 'y', 'z']])
    def test_merge_is_idempotent(self, existing):
        """Test merging the same id twice equals merging it once."""
        once = merge_ids(existing, 'y')
        assert merge_ids(once, 'y') == once

    @pytest.mark.parametrize("existing", [None, 'a', {'a': 1}])
    def test_non_list_counts_as_empty(self, existing):
        """Test non-list input is treated as empty."""
        assert merge_ids(existing, 'a') == ['a']

    def test_does_not_mutate_input(self):
        """Test the existing list is left alone."""
        existing = ['a']
        merge_ids(existing, 'b')
        assert existing == ['a']

    def test_is_owned(self):
        """Test ownership is plain membership."""
        assert is_owned(['a', 'b'], 'b')
        assert not is_owned(['a', 'b'], 'c')
