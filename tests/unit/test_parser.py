"""
Unit tests for the realtime and ranged response parsers
"""

import pytest

from core.exceptions import MetricValueError, ParseError, RowShapeError
from ingestion.parser import parse_ranged, parse_realtime, parse_response
from schemas.record import RangedRecord, RealtimeRecord
from schemas.response import RangedResponse, RawTableResponse, RealtimeResponse
from tests.fakes import make_table


class TestParseRealtime:
    """Test narrow realtime tables"""

    def test_one_record_per_row(self, realtime_table):
        records = parse_realtime(realtime_table)

        assert records == [
            RealtimeRecord(value=10, dimension_name="US", metric_name="activeUsers"),
            RealtimeRecord(value=3, dimension_name="FR", metric_name="activeUsers"),
        ]

    def test_dimensions_joined_and_sanitized(self):
        table = make_table(
            ["rt:country", "rt:deviceCategory", "rt:activeUsers"],
            [["United States", "DESKTOP", "25"], ["Côte d'Ivoire", "mobile", "-2"]]
        )

        records = parse_realtime(table)

        assert [r.dimension_name for r in records] == ["UnitedStates_DESKTOP", "CtedIvoire_mobile"]
        assert [r.value for r in records] == [25, -2]

    def test_metric_name_from_last_header(self):
        table = make_table(["rt:source", "rt:pageviews"], [["google", "1"]])

        assert parse_realtime(table)[0].metric_name == "pageviews"

    def test_single_column_has_empty_dimension(self):
        table = make_table(["rt:activeUsers"], [["99"]])

        assert parse_realtime(table) == [
            RealtimeRecord(value=99, dimension_name="", metric_name="activeUsers")
        ]

    @pytest.mark.parametrize("rows", [[], [[]]])
    def test_empty_response(self, rows):
        table = make_table(["rt:country", "rt:activeUsers"], rows)

        assert parse_realtime(table) == []

    @pytest.mark.parametrize("bad_value", ["3.5", "ten", "", " 4", "1_000", "٣"])
    def test_non_integer_metric_fails_batch(self, bad_value):
        table = make_table(
            ["rt:country", "rt:activeUsers"],
            [["US", "10"], ["FR", bad_value], ["DE", "4"]]
        )

        with pytest.raises(MetricValueError) as exc_info:
            parse_realtime(table)

        assert exc_info.value.context["row_index"] == 1
        assert exc_info.value.context["cell_value"] == bad_value

    def test_row_header_mismatch(self):
        table = make_table(["rt:country", "rt:activeUsers"], [["US", "10"], ["FR"]])

        with pytest.raises(RowShapeError) as exc_info:
            parse_realtime(table)

        assert exc_info.value.context["row_index"] == 1
        assert exc_info.value.context["header_count"] == 2

    def test_rows_without_headers(self):
        table = make_table([], [["US", "10"]])

        with pytest.raises(ParseError):
            parse_realtime(table)


class TestParseRanged:
    """Test wide ranged tables"""

    def test_example_row(self):
        table = make_table(["ga:date", "ga:pageviews"], [["20230115", "42"]])

        assert parse_ranged(table) == [
            RangedRecord(data={"date": "20230115", "pageviews": "42"})
        ]

    def test_all_columns_kept_as_raw_strings(self, ranged_table):
        records = parse_ranged(ranged_table)

        assert len(records) == 2
        for record, row in zip(records, ranged_table.rows):
            assert len(record.data) == len(ranged_table.column_headers)
            assert list(record.data.values()) == row
        assert records[0].data == {
            "date": "20230115",
            "pagePath": "/home",
            "pageviews": "42",
            "sessions": "7",
        }

    def test_non_numeric_values_allowed(self):
        table = make_table(["ga:date", "ga:avgTime"], [["not-a-date", "1.5e3"]])

        assert parse_ranged(table)[0].data == {"date": "not-a-date", "avgTime": "1.5e3"}

    def test_colliding_keys_last_column_wins(self):
        table = make_table(["ga:users", "rt:users"], [["1", "2"]])

        records = parse_ranged(table)

        assert records[0].data == {"users": "2"}

    @pytest.mark.parametrize("rows", [[], [[]]])
    def test_empty_response(self, rows):
        table = make_table(["ga:date", "ga:pageviews"], rows)

        assert parse_ranged(table) == []

    def test_row_header_mismatch(self):
        table = make_table(["ga:date", "ga:pageviews"], [["20230115", "42", "extra"]])

        with pytest.raises(RowShapeError):
            parse_ranged(table)


class TestParseResponse:
    """Test dispatch on the response kind"""

    def test_realtime_dispatch(self, realtime_table):
        records = parse_response(RealtimeResponse(table=realtime_table))

        assert all(isinstance(r, RealtimeRecord) for r in records)

    def test_ranged_dispatch(self, realtime_table):
        records = parse_response(RangedResponse(table=realtime_table))

        assert records == [
            RangedRecord(data={"country": "US", "activeUsers": "10"}),
            RangedRecord(data={"country": "FR", "activeUsers": "3"}),
        ]

    def test_unknown_kind(self):
        with pytest.raises(ParseError):
            parse_response(RawTableResponse())
