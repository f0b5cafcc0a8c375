"""
Tests for warden/utils/duration.py

Covers parsing and formatting of the duration tokens used for timed
mutes and bans.
"""

import pytest

from warden.core.constants import MAX_SANCTION_DURATION_MS, MS_PER_DAY, MS_PER_MINUTE
from warden.utils.duration import format_duration, is_valid_duration_ms, parse_duration


# =============================================================================
# parse_duration() Tests
# =============================================================================

class TestParseDuration:
    """Tests for parse_duration function."""

    def test_parse_minutes(self):
        assert parse_duration("30m") == 1_800_000

    def test_parse_day(self):
        assert parse_duration("1d") == 86_400_000

    def test_parse_each_unit(self):
        assert parse_duration("45s") == 45_000
        assert parse_duration("2h") == 7_200_000
        assert parse_duration("1w") == 7 * MS_PER_DAY

    def test_parse_is_case_insensitive(self):
        assert parse_duration("30M") == 30 * MS_PER_MINUTE
        assert parse_duration("1D") == MS_PER_DAY

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_duration("  10m ") == 10 * MS_PER_MINUTE

    def test_cap_is_inclusive(self):
        assert parse_duration("30d") == MAX_SANCTION_DURATION_MS

    @pytest.mark.parametrize("token", ["31d", "5w", "721h"])
    def test_over_cap_is_invalid(self, token):
        assert parse_duration(token) is None

    @pytest.mark.parametrize("token", ["0m", "0s", "00d"])
    def test_zero_is_invalid(self, token):
        assert parse_duration(token) is None

    @pytest.mark.parametrize("token", ["5x", "m", "10", "1h30m", "1 h", "-5m", "", None, "1.5h"])
    def test_malformed_is_invalid(self, token):
        assert parse_duration(token) is None


# =============================================================================
# format_duration() Tests
# =============================================================================

class TestFormatDuration:
    """Tests for format_duration function."""

    def test_ninety_seconds_floors_to_minutes(self):
        assert format_duration(90_000) == "1m"

    def test_one_hour(self):
        assert format_duration(3_600_000) == "1h"

    def test_seconds(self):
        assert format_duration(45_000) == "45s"

    def test_days_and_weeks(self):
        assert format_duration(3 * MS_PER_DAY) == "3d"
        assert format_duration(14 * MS_PER_DAY) == "2w"

    def test_none_is_permanent(self):
        assert format_duration(None) == "Permanent"

    def test_parsed_value_formats_back(self):
        assert format_duration(parse_duration("30m")) == "30m"


class TestIsValidDurationMs:

    def test_bounds(self):
        assert is_valid_duration_ms(1)
        assert is_valid_duration_ms(MAX_SANCTION_DURATION_MS)
        assert not is_valid_duration_ms(0)
        assert not is_valid_duration_ms(-1)
        assert not is_valid_duration_ms(MAX_SANCTION_DURATION_MS + 1)
        assert not is_valid_duration_ms(None)
