"""
Property-based tests for endpoint resolution.
"""

import random
from datetime import datetime, timezone
from io import StringIO

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from endpoint_directory.directory import Directory
from endpoint_directory.endpoint import Endpoint
from endpoint_directory.enums import LogLevel
from endpoint_directory.exceptions import NoEndpointAvailableError
from endpoint_directory.logger import StructuredLogger
from endpoint_directory.resolver import require_endpoint, resolve_endpoint


STAMP = datetime(2021, 1, 1, tzinfo=timezone.utc)


@st.composite
def directory_strategy(draw) -> Directory:
    """Generate directories, possibly empty."""
    indexes = draw(st.lists(st.integers(min_value=1, max_value=50), max_size=5))
    return Directory.create([Endpoint.parse(f"s{i}.example.net") for i in indexes], timestamp=STAMP)


override_strategy = st.builds(
    Endpoint,
    host=st.sampled_from(["override.example.net", "10.0.0.1", "[::1]"]),
    port=st.integers(min_value=1, max_value=65535),
)


class TestOverrideProperty:
    """
    Property-based tests for the configured server override.
    """

    @given(
        override=override_strategy,
        directory=st.one_of(st.none(), directory_strategy()),
    )
    @settings(max_examples=100)
    def test_override_always_wins(self, override: Endpoint, directory) -> None:
        """
        *For any* override endpoint and any directory (including none or an
        empty one), resolution SHALL return the override.
        """
        assert resolve_endpoint(override, directory) == override

    def test_string_override_is_parsed(self) -> None:
        empty = Directory.create([], timestamp=STAMP)

        assert resolve_endpoint("override.example.net:1234", empty) == Endpoint(
            host="override.example.net", port=1234
        )

    def test_invalid_override_is_ignored_and_logged(self) -> None:
        logger = StructuredLogger(output_stream=StringIO())
        directory = Directory.create([Endpoint.parse("s1.example.net")], timestamp=STAMP)

        endpoint = resolve_endpoint("bad host:99999", directory, logger=logger)

        assert endpoint == Endpoint.parse("s1.example.net")
        warnings = [entry for entry in logger.entries if entry.level is LogLevel.WARN]
        assert len(warnings) == 1
        assert warnings[0].component == "Resolver"


class TestDirectoryPickProperty:
    """
    Property-based tests for picking from the directory.
    """

    @given(directory=directory_strategy(), seed=st.integers())
    @settings(max_examples=100)
    def test_pick_is_member_or_none(self, directory: Directory, seed: int) -> None:
        """
        *For any* directory without override, the result SHALL be one of its
        endpoints, or None when it is empty.
        """
        endpoint = resolve_endpoint(None, directory, rng=random.Random(seed))

        if len(directory) == 0:
            assert endpoint is None
        else:
            assert endpoint in directory.endpoints

    def test_no_directory_gives_none(self) -> None:
        assert resolve_endpoint(None, None) is None
        assert resolve_endpoint("", None) is None

    def test_require_endpoint_raises_when_nothing_to_contact(self) -> None:
        with pytest.raises(NoEndpointAvailableError) as exc_info:
            require_endpoint(None, Directory.create([], timestamp=STAMP))
        assert exc_info.value.code == "no_endpoint"
        assert exc_info.value.details == {"directory_size": 0}

    def test_require_endpoint_returns_pick(self) -> None:
        directory = Directory.create([Endpoint.parse("s1.example.net")], timestamp=STAMP)

        assert require_endpoint(None, directory) == Endpoint.parse("s1.example.net")
