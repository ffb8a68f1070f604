"""Tests for the time-aligned series buffer."""

import numpy as np
import pytest

from oracleview.marketdata.series import SeriesBuffer


class TestSeriesBuffer:

    def test_rows_merge_across_assets_at_same_time(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 1000, 142.5)
        buf.add_sample("MSOL/USD", 1000, 171.2)

        assert len(buf) == 1
        row = buf.get_rows()[0]
        assert row.time == 1000
        assert row.prices == {"SOL/USD": 142.5, "MSOL/USD": 171.2}

    def test_same_asset_same_time_last_write_wins(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 1000, 1.0)
        buf.add_sample("SOL/USD", 1000, 2.0)

        assert len(buf) == 1
        assert buf.price_at("SOL/USD", 1000) == 2.0

    def test_out_of_order_samples_are_kept_sorted(self):
        buf = SeriesBuffer()
        for t in (1005, 1001, 1003, 1002):
            buf.add_sample("SOL/USD", t, float(t))

        times = [r.time for r in buf.get_rows()]
        assert times == [1001, 1002, 1003, 1005]
        assert 1003 in buf
        assert 1004 not in buf

    def test_bounded_to_most_recent_rows(self):
        buf = SeriesBuffer(max_length=100)
        for t in range(250):
            buf.add_sample("SOL/USD", t, float(t))

        assert len(buf) == 100
        times = buf.get_times()
        assert times[0] == 150
        assert times[-1] == 249

    def test_sample_older_than_full_window_is_dropped(self):
        buf = SeriesBuffer(max_length=3)
        for t in (10, 11, 12):
            buf.add_sample("SOL/USD", t, 1.0)

        assert buf.add_sample("SOL/USD", 5, 1.0) is False
        assert list(buf.get_times()) == [10, 11, 12]

    def test_late_sample_inside_window_evicts_oldest(self):
        buf = SeriesBuffer(max_length=3)
        for t in (10, 12, 13):
            buf.add_sample("SOL/USD", t, 1.0)

        assert buf.add_sample("MSOL/USD", 11, 2.0) is True
        assert list(buf.get_times()) == [11, 12, 13]

    def test_get_prices_aligns_with_times(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 1, 10.0)
        buf.add_sample("MSOL/USD", 2, 20.0)
        buf.add_sample("SOL/USD", 3, 11.0)

        sol = buf.get_prices("SOL/USD")
        assert sol.dtype == np.float64
        assert sol[0] == pytest.approx(10.0)
        assert np.isnan(sol[1])
        assert sol[2] == pytest.approx(11.0)
        assert list(buf.get_prices("SOL/USD", count=1)) == [11.0]

    def test_latest_time_for(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 1, 10.0)
        buf.add_sample("MSOL/USD", 2, 20.0)

        assert buf.latest_time_for("SOL/USD") == 1
        assert buf.latest_time_for("MSOL/USD") == 2
        assert buf.latest_time_for("BNSOL/USD") is None
        assert buf.assets == {"SOL/USD", "MSOL/USD"}

    def test_rows_are_copies(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 1, 10.0)

        rows = buf.get_rows()
        rows[0].prices["SOL/USD"] = 999.0
        assert buf.price_at("SOL/USD", 1) == 10.0

    def test_row_display_time_and_dict(self):
        buf = SeriesBuffer()
        buf.add_sample("SOL/USD", 3661, 10.0)

        row = buf.latest
        assert row.display_time == "01:01:01"
        assert row.to_dict() == {"time": 3661, "display_time": "01:01:01", "SOL/USD": 10.0}

    def test_empty(self):
        buf = SeriesBuffer()
        assert buf.latest is None
        assert len(buf.get_times()) == 0

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            SeriesBuffer(max_length=0)
