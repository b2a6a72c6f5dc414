"""
Tests for provider payload validation.
"""

from datetime import datetime, timedelta, timezone

from airrisk.models import UpstreamPayload
from airrisk.validation import ValidationResult, is_number, parse_timestamp, validate


class TestValidationResult:
    def test_empty_result_is_valid(self):
        result = ValidationResult()
        assert result.is_valid()
        assert not result.has_warnings()
        assert str(result) == "ValidationResult(OK)"

    def test_errors_and_warnings(self):
        result = ValidationResult()
        result.add_error("bad")
        result.add_warning("odd")
        assert not result.is_valid()
        assert result.has_warnings()
        assert str(result) == "ValidationResult(Errors: 1, Warnings: 1)"


class TestHelpers:
    def test_is_number(self):
        assert is_number(3)
        assert is_number(2.5)
        assert not is_number(True)
        assert not is_number("12")
        assert not is_number(float("nan"))
        assert not is_number(None)

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2024-01-15T10:00:00+07:00")
        assert parsed == datetime(2024, 1, 15, 3, 0, tzinfo=timezone.utc)

    def test_parse_timestamp_zulu_and_naive(self):
        assert parse_timestamp("2024-01-15T03:00:00Z").tzinfo is not None
        assert parse_timestamp("2024-01-15T03:00:00").tzinfo == timezone.utc

    def test_parse_timestamp_invalid(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp("") is None
        assert parse_timestamp(1705287600) is None


class TestValidate:
    """Test validate()."""

    def test_valid_payload(self, feed_payload, now):
        result = validate(feed_payload, now=now)
        assert result.is_valid()
        assert not result.has_warnings()

    def test_does_not_modify_payload(self, feed_payload, now):
        before = repr(feed_payload)
        validate(feed_payload, now=now)
        assert repr(feed_payload) == before

    def test_accepts_parsed_payload(self, feed_payload, now):
        assert validate(UpstreamPayload.from_json(feed_payload), now=now).is_valid()

    def test_not_a_mapping(self):
        result = validate(["aqi", 87])
        assert not result.is_valid()
        assert "expected a JSON object" in result.errors[0]

    def test_missing_aqi(self, feed_payload, now):
        del feed_payload["aqi"]
        result = validate(feed_payload, now=now)
        assert result.errors == ["AQI value is required"]

    def test_non_numeric_aqi(self, feed_payload, now):
        # WAQI reports "-" for stations without a current value
        feed_payload["aqi"] = "-"
        result = validate(feed_payload, now=now)
        assert not result.is_valid()
        assert "not numeric" in result.errors[0]

    def test_aqi_out_of_range(self, feed_payload, now):
        feed_payload["aqi"] = 501
        assert not validate(feed_payload, now=now).is_valid()
        feed_payload["aqi"] = -1
        assert not validate(feed_payload, now=now).is_valid()

    def test_aqi_range_is_inclusive(self, feed_payload, now):
        feed_payload["aqi"] = 500
        assert validate(feed_payload, now=now).is_valid()
        feed_payload["aqi"] = 0
        assert validate(feed_payload, now=now).is_valid()

    def test_implausible_pm25_is_a_warning(self, feed_payload, now):
        feed_payload["iaqi"]["pm25"]["v"] = 1500
        result = validate(feed_payload, now=now)
        assert result.is_valid()
        assert any("PM2.5" in w for w in result.warnings)

    def test_invalid_coordinates(self, feed_payload, now):
        feed_payload["city"]["geo"] = [95.0, 200.0]
        result = validate(feed_payload, now=now)
        assert len(result.errors) == 2

    def test_missing_geo_is_allowed(self, feed_payload, now):
        del feed_payload["city"]["geo"]
        assert validate(feed_payload, now=now).is_valid()

    def test_invalid_timestamp_is_a_warning(self, feed_payload, now):
        feed_payload["time"]["iso"] = "not-a-date"
        result = validate(feed_payload, now=now)
        assert result.is_valid()
        assert "Invalid timestamp format" in result.warnings[0]

    def test_old_data_is_a_warning(self, feed_payload, now):
        feed_payload["time"]["iso"] = (now - timedelta(hours=3)).isoformat()
        result = validate(feed_payload, now=now)
        assert result.is_valid()
        assert result.warnings == ["Data is more than 2 hours old"]
