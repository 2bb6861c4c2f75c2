"""
Unit tests for source configuration, the YAML loader and relative dates
"""

from datetime import date

import pytest
from pydantic import ValidationError

from core.config import Settings, load_source_configs
from core.exceptions import ConfigError
from ingestion.dates import resolve_date_expression, subtract_months
from ingestion.sinks import HTTPEventSink, InMemoryEventSink, LoggingEventSink, build_sink
from schemas.source import SourceConfig, SourceMode


class TestSourceConfig:
    """Test SourceConfig parsing"""

    def test_comma_joined_lists(self):
        source = SourceConfig(
            name="rt",
            ids="ga:1234",
            metrics="rt:activeUsers, rt:pageviews",
            dimensions="rt:country,,rt:city ",
            schedule="@every 1m"
        )

        assert source.ids == ["ga:1234"]
        assert source.metrics == ["rt:activeUsers", "rt:pageviews"]
        assert source.dimensions == ["rt:country", "rt:city"]
        assert source.mode == SourceMode.REALTIME

    def test_legacy_keys_and_type_tag(self):
        source = SourceConfig(**{
            "name": "charge",
            "googleanalytics_ids": "ga:1234",
            "googleanalytics_metrics": "ga:pageviews",
            "googleanalytics_dimensions": "ga:date",
            "googleanalytics_type": "gaservice",
            "googleanalytics_starttime": "2monthsAgo",
            "googleanalytics_endtime": "today",
            "google_credentials_file": "/etc/creds.json",
            "schedule": "0 0 * * * *",
        })

        assert source.mode == SourceMode.RANGED
        assert source.start_time == "2monthsAgo"
        assert source.end_time == "today"
        assert source.credentials_file == "/etc/creds.json"

    @pytest.mark.parametrize("tag", [None, "", "realtime", "REALTIME"])
    def test_realtime_mode(self, tag):
        source = SourceConfig(name="a", schedule="@hourly", mode=tag)

        assert source.mode == SourceMode.REALTIME

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="a", schedule="@hourly", mode="weekly")

    def test_empty_lists_allowed_until_run(self):
        source = SourceConfig(name="a", schedule="@hourly")

        assert source.ids == []
        assert source.credentials_file is None

    def test_blank_schedule_rejected(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="a", schedule="   ")

    def test_immutable(self):
        source = SourceConfig(name="a", schedule="@hourly")

        with pytest.raises(ValidationError):
            source.name = "b"


class TestLoadSourceConfigs:
    """Test the YAML source loader"""

    def test_sources_key(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(
            "sources:\n"
            "  - name: realtime\n"
            "    ids: ga:1\n"
            "    metrics: rt:activeUsers\n"
            "    dimensions: rt:country\n"
            "    schedule: '*/5 * * * *'\n"
            "    tags: [web]\n"
            "  - name: daily\n"
            "    googleanalytics_ids: ga:1\n"
            "    googleanalytics_metrics: [ga:pageviews]\n"
            "    googleanalytics_dimensions: [ga:date]\n"
            "    googleanalytics_type: gaservice\n"
            "    schedule: '@daily'\n"
        )

        sources = load_source_configs(str(path))

        assert [s.name for s in sources] == ["realtime", "daily"]
        assert sources[0].tags == ["web"]
        assert sources[1].mode == SourceMode.RANGED

    def test_bare_list(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("- name: a\n  schedule: '@hourly'\n")

        assert [s.name for s in load_source_configs(str(path))] == ["a"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("")

        assert load_source_configs(str(path)) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_source_configs(str(tmp_path / "nope.yaml"))

        assert "not found" in exc_info.value.message

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("sources: [unclosed\n")

        with pytest.raises(ConfigError):
            load_source_configs(str(path))

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("sources:\n  - name: a\n")

        with pytest.raises(ConfigError) as exc_info:
            load_source_configs(str(path))

        assert exc_info.value.context["entry_index"] == 0

    def test_duplicate_names(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(
            "sources:\n"
            "  - {name: a, schedule: '@hourly'}\n"
            "  - {name: a, schedule: '@daily'}\n"
        )

        with pytest.raises(ConfigError) as exc_info:
            load_source_configs(str(path))

        assert exc_info.value.context["first_index"] == 0

    def test_scalar_document_rejected(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("just a string\n")

        with pytest.raises(ConfigError):
            load_source_configs(str(path))


class TestRelativeDates:
    """Test <N>monthsAgo resolution"""

    @pytest.mark.parametrize(
        "today, months, expected",
        [
            (date(2024, 5, 31), 3, date(2024, 2, 29)),
            (date(2023, 5, 31), 3, date(2023, 2, 28)),
            (date(2024, 1, 15), 1, date(2023, 12, 15)),
            (date(2024, 1, 15), 25, date(2021, 12, 15)),
            (date(2024, 1, 15), 0, date(2024, 1, 15)),
        ],
    )
    def test_subtract_months(self, today, months, expected):
        assert subtract_months(today, months) == expected

    def test_months_ago_expression(self):
        assert resolve_date_expression("3monthsAgo", date(2024, 5, 31)) == "2024-02-29"

    @pytest.mark.parametrize("expression", ["today", "yesterday", "30daysAgo", "2024-01-01"])
    def test_other_expressions_pass_through(self, expression):
        assert resolve_date_expression(expression, date(2024, 5, 31)) == expression

    def test_none(self):
        assert resolve_date_expression(None, date(2024, 5, 31)) is None


class TestBuildSink:
    """Test sink selection from settings"""

    @pytest.mark.asyncio
    async def test_http(self):
        sink = build_sink(Settings(SINK_TYPE="http", SINK_URL="http://es:9200/", SINK_INDEX="ga"))

        assert isinstance(sink, HTTPEventSink)
        assert sink.url == "http://es:9200/ga/_doc"
        await sink.close()

    def test_logging_and_memory(self):
        assert isinstance(build_sink(Settings(SINK_TYPE="logging")), LoggingEventSink)
        assert isinstance(build_sink(Settings(SINK_TYPE="MEMORY")), InMemoryEventSink)

    def test_unknown(self):
        with pytest.raises(ConfigError):
            build_sink(Settings(SINK_TYPE="kafka"))
