"""
Property-based tests for Directory and its flat text serialization.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from endpoint_directory.directory import Directory, format_timestamp, parse_timestamp
from endpoint_directory.endpoint import Endpoint
from endpoint_directory.exceptions import ParseError


# Strategies for generating valid test data

@st.composite
def endpoint_strategy(draw) -> Endpoint:
    """Generate endpoints on a small set of example hosts."""
    index = draw(st.integers(min_value=1, max_value=999))
    network = draw(st.sampled_from([None, "prime.example.net", "beta.example.net"]))
    port = draw(st.integers(min_value=1, max_value=65535))
    return Endpoint(host=f"s{index}.example.net", port=port, network=network)


timestamp_strategy = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)


@st.composite
def directory_strategy(draw) -> Directory:
    """Generate directories with up to 12 endpoints."""
    endpoints = draw(st.lists(endpoint_strategy(), min_size=0, max_size=12))
    return Directory.create(endpoints, timestamp=draw(timestamp_strategy))


class TestSerializationRoundTripProperty:
    """
    Property-based tests for directory serialization.
    """

    @given(directory=directory_strategy())
    @settings(max_examples=100)
    def test_parse_of_serialize_is_identity(self, directory: Directory) -> None:
        """
        *For any* directory, parsing its serialized form SHALL yield an equal
        directory with the same endpoint order.
        """
        restored = Directory.parse(directory.serialize())

        assert restored == directory
        assert list(restored) == list(directory)

    @given(directory=directory_strategy())
    @settings(max_examples=50)
    def test_properties_use_one_based_server_keys(self, directory: Directory) -> None:
        """
        *For any* directory, each endpoint SHALL be stored under server.N,
        numbered from 1 in order.
        """
        props = directory.to_properties()

        assert props["timestamp"] == format_timestamp(directory.timestamp)
        for index, endpoint in enumerate(directory, start=1):
            assert props[f"server.{index}"] == str(endpoint)
        assert f"server.{len(directory) + 1}" not in props

    def test_server_keys_are_ordered_numerically(self) -> None:
        text = (
            "timestamp=2021-05-01T10:00:00+00:00\n"
            "server.10=s10.example.net\n"
            "server.2=s2.example.net\n"
            "server.1=s1.example.net\n"
        )
        directory = Directory.parse(text)

        assert [e.host for e in directory] == [
            "s1.example.net",
            "s2.example.net",
            "s10.example.net",
        ]

    def test_comments_and_unknown_keys_are_ignored(self) -> None:
        text = (
            "# a comment\n"
            "version=3\n"
            "timestamp=2021-05-01T10:00:00Z\n"
            "server.1=s1.example.net:5222\n"
            "server.x=ignored\n"
        )
        directory = Directory.parse(text.encode("utf-8"))

        assert len(directory) == 1
        assert directory.timestamp == datetime(2021, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_timestamp_without_zone_is_utc(self) -> None:
        assert parse_timestamp("2021-05-01T10:00:00") == datetime(
            2021, 5, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_timestamp_is_truncated_to_seconds(self) -> None:
        stamp = datetime(2021, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)
        directory = Directory.create([], timestamp=stamp)

        assert directory.timestamp.microsecond == 0

    def test_create_stamps_now(self) -> None:
        before = datetime.now(timezone.utc).replace(microsecond=0)
        directory = Directory.create([Endpoint.parse("s3.example.net")])
        after = datetime.now(timezone.utc)

        assert before <= directory.timestamp <= after


class TestMalformedContentProperty:
    """
    Tests for rejection of malformed serialized directories.
    """

    @pytest.mark.parametrize("text, code", [
        ("server.1=s1.example.net\n", "missing_timestamp"),
        ("timestamp=\nserver.1=s1.example.net\n", "missing_timestamp"),
        ("timestamp=yesterday\n", "invalid_timestamp"),
        ("timestamp=0001-01-01T00:00:00+01:00\nserver.1=a.example\n", "invalid_timestamp"),
        ("timestamp=9999-12-31T23:59:59-01:00\n", "invalid_timestamp"),
        ("timestamp=2021-05-01T10:00:00Z\nserver.1=bad host\n", "invalid_endpoint"),
        ("timestamp=2021-05-01T10:00:00Z\nserver.1=\n", "invalid_endpoint"),
    ])
    def test_malformed_text(self, text: str, code: str) -> None:
        with pytest.raises(ParseError) as exc_info:
            Directory.parse(text)
        assert exc_info.value.code == code

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            Directory.parse(b"timestamp=\xff\xfe\n")
        assert exc_info.value.code == "invalid_encoding"


class TestDirectoryOrderingProperty:
    """
    Property-based tests for timestamp comparison and endpoint picking.
    """

    @given(stamp=timestamp_strategy, seconds=st.integers(min_value=1, max_value=10**6))
    @settings(max_examples=100)
    def test_is_newer_than_is_strict(self, stamp: datetime, seconds: int) -> None:
        """
        *For any* two timestamps, is_newer_than SHALL be a strict comparison:
        equal timestamps are neither newer.
        """
        older = Directory.create([], timestamp=stamp)
        same = Directory.create([], timestamp=stamp)
        newer = Directory.create([], timestamp=stamp + timedelta(seconds=seconds))

        assert newer.is_newer_than(older)
        assert not older.is_newer_than(newer)
        assert not same.is_newer_than(older)
        assert not older.is_newer_than(same)

    @given(directory=directory_strategy(), seed=st.integers())
    @settings(max_examples=100)
    def test_pick_random_returns_a_member(self, directory: Directory, seed: int) -> None:
        """
        *For any* directory, pick_random SHALL return one of its endpoints,
        or None when it is empty.
        """
        picked = directory.pick_random(random.Random(seed))

        if len(directory) == 0:
            assert picked is None
        else:
            assert picked in directory.endpoints

    def test_pick_random_reaches_every_endpoint(self) -> None:
        endpoints = [Endpoint.parse(f"s{i}.example.net") for i in range(1, 4)]
        directory = Directory.create(endpoints)
        rng = random.Random(7)

        picked = {directory.pick_random(rng) for _ in range(200)}

        assert picked == set(endpoints)
