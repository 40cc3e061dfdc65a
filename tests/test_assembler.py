"""Message assembly from streamed chunks."""

import pytest

from contracts import FetchError
from webmail_relay.assembler import (
    AssemblyState,
    MessageAssembler,
    decode_header_value,
    parse_header_block,
)
from webmail_relay.events import Channel


class TestMessageAssembler:
    """State machine for one in-flight message."""

    def test_starts_pending(self):
        assembler = MessageAssembler(7)
        assert assembler.state is AssemblyState.PENDING
        assert assembler.record is None

    def test_chunks_accumulate_in_order(self):
        assembler = MessageAssembler(7)
        assembler.feed(Channel.TEXT, b"Hello, ")
        assert assembler.state is AssemblyState.ACCUMULATING
        assembler.feed(Channel.HEADER, b"Subject: Hi\r\n")
        assembler.feed(Channel.TEXT, b"world")
        assembler.feed(Channel.HEADER, b"From: a@example.com\r\n\r\n")

        assert assembler.end(Channel.TEXT) is None
        assert assembler.state is AssemblyState.BODY_COMPLETE

        record = assembler.end(Channel.HEADER)
        assert assembler.state is AssemblyState.FINALIZED
        assert record.id == 7
        assert record.body == "Hello, world"
        assert record.headers == {"subject": ["Hi"], "from": ["a@example.com"]}

    def test_header_first_completion(self):
        assembler = MessageAssembler(1)
        assembler.feed(Channel.HEADER, b"Subject: x\r\n\r\n")
        assert assembler.end(Channel.HEADER) is None
        assert assembler.state is AssemblyState.HEADER_COMPLETE

    def test_multibyte_split_across_chunks(self):
        assembler = MessageAssembler(1)
        encoded = "café".encode("utf-8")
        assembler.feed(Channel.TEXT, encoded[:4])
        assembler.feed(Channel.TEXT, encoded[4:])
        assembler.end(Channel.HEADER)
        record = assembler.end(Channel.TEXT)
        assert record.body == "café"

    def test_string_chunks_accepted(self):
        assembler = MessageAssembler(1)
        assembler.feed(Channel.TEXT, "plain text")
        assembler.end(Channel.HEADER)
        assert assembler.end(Channel.TEXT).body == "plain text"

    def test_empty_header_channel_finalizes(self):
        """A header section with no data still yields a record."""
        assembler = MessageAssembler(4)
        assembler.feed(Channel.TEXT, b"body only")
        assembler.end(Channel.HEADER)
        record = assembler.end(Channel.TEXT)
        assert record.headers == {}
        assert record.body == "body only"

    def test_chunk_after_channel_end_is_fault(self):
        assembler = MessageAssembler(2)
        assembler.end(Channel.TEXT)
        with pytest.raises(FetchError):
            assembler.feed(Channel.TEXT, b"late")

    def test_channel_ended_twice_is_fault(self):
        assembler = MessageAssembler(2)
        assembler.end(Channel.HEADER)
        with pytest.raises(FetchError):
            assembler.end(Channel.HEADER)

    def test_no_mutation_after_finalize(self):
        assembler = MessageAssembler(2)
        assembler.end(Channel.HEADER)
        record = assembler.end(Channel.TEXT)
        with pytest.raises(FetchError):
            assembler.feed(Channel.HEADER, b"Subject: again\r\n")
        assert assembler.record is record


class TestHeaderParsing:
    def test_multiple_values_kept_in_order(self):
        raw = b"From: first@example.com\r\nFrom: second@example.com\r\n\r\n"
        assert parse_header_block(raw)["from"] == [
            "first@example.com",
            "second@example.com",
        ]

    def test_names_lower_cased(self):
        raw = b"SUBJECT: Loud\r\nDate: Tue, 02 Jan 2024 09:00:00 +0000\r\n\r\n"
        headers = parse_header_block(raw)
        assert headers["subject"] == ["Loud"]
        assert headers["date"] == ["Tue, 02 Jan 2024 09:00:00 +0000"]

    def test_folded_header_unfolded(self):
        raw = b"Subject: a long\r\n subject line\r\n\r\n"
        assert parse_header_block(raw)["subject"] == ["a long subject line"]

    def test_encoded_words_decoded(self):
        raw = b"Subject: =?utf-8?q?Caf=C3=A9?= menu\r\n\r\n"
        assert parse_header_block(raw)["subject"] == ["Café menu"]

    def test_blank_block(self):
        assert parse_header_block(b"\r\n") == {}
        assert parse_header_block(b"") == {}

    def test_unknown_charset_falls_back(self):
        assert decode_header_value("=?x-no-such-charset?q?abc?=") == "abc"

    def test_malformed_encoded_word_kept_raw(self):
        assert decode_header_value("=?utf-8?b?a?=") == "=?utf-8?b?a?="

    def test_malformed_encoded_word_in_block(self):
        raw = b"Subject: =?utf-8?b?a?=\r\nFrom: spam@example.com\r\n\r\n"
        headers = parse_header_block(raw)
        assert headers["subject"] == ["=?utf-8?b?a?="]
        assert headers["from"] == ["spam@example.com"]
