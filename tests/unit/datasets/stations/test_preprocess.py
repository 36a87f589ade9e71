"""
Unit tests for StationPreprocessor.
"""

import pandas as pd
import pytest

from school_stations.datasets.stations.preprocess import StationPreprocessor, preprocess_stations


class TestStationPreprocessor:
    """Test cases for StationPreprocessor class."""

    @pytest.fixture
    def preprocessor(self, test_config):
        return StationPreprocessor(test_config)

    @pytest.fixture
    def raw_df(self):
        return pd.DataFrame(
            {
                "Station": [
                    "Flinders Street[1]",
                    "Southern Cross",
                    "Station",
                    "",
                    "Southern Cross",
                    "Glenferrie, Hawthorn",
                ],
                "Line(s)": ["All lines", "All lines", "Line(s)", "x", "All lines", "Lilydale"],
                "Zone": ["1", "1", "Zone", "1", "1", "1"],
                "Opened": ["1854", "1859", "Opened", "", "1859", "1882"],
            }
        )

    def test_dataset_name(self, preprocessor):
        assert preprocessor.get_dataset_name() == "stations"

    def test_transform(self, preprocessor, raw_df):
        result = preprocessor.run(raw_df, execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert result.success is True
        assert list(df.columns) == ["name", "lines", "zone", "geocode_query"]
        assert df["name"].tolist() == ["Flinders Street", "Southern Cross", "Glenferrie"]
        assert df.loc[0, "geocode_query"] == (
            "Flinders Street railway station, Victoria, Australia"
        )

    def test_drop_reasons(self, preprocessor, raw_df):
        result = preprocessor.run(raw_df)
        assert result.drop_reasons == {"missing_name": 2, "duplicates": 1}
        assert result.rows_dropped == 3
        assert [r["reason"] for r in result.dropped_records] == [
            "missing_name",
            "missing_name",
            "duplicates",
        ]

    def test_custom_query_template(self, test_config, raw_df):
        preprocessor = StationPreprocessor(test_config, query_template="{name} Station, VIC")
        preprocessor.run(raw_df)
        assert preprocessor.get_data().loc[1, "geocode_query"] == "Southern Cross Station, VIC"

    def test_missing_name_column_fails(self, preprocessor):
        result = preprocessor.run(pd.DataFrame({"Platforms": ["1"]}))
        assert result.success is False
        assert "Available columns" in result.error_message

    def test_name_only_table(self, preprocessor):
        preprocessor.run(pd.DataFrame({"Name": ["Frankston"]}))
        assert list(preprocessor.get_data().columns) == ["name", "geocode_query"]

    def test_convenience_function(self, test_config, raw_df):
        result = preprocess_stations(raw_df, "2024-01-15", test_config)
        assert result["rows_output"] == 3
