"""
Tests for yearly total aggregation and result set construction.
"""

import pytest

from app.engine.aggregator import aggregate_yearly_total, build_result_set
from app.engine.response_parser import HtmlTableParser, TabDelimitedParser
from app.models.pvgis import MonthlyRecord

from fakes import MONTHLY_VALUES, html_body, tab_body


def _months(ed=1.0, em=30.0, hd=2.0, hm=60.0, sdm=0.5):
    return [
        MonthlyRecord(month=m, Ed=ed, Em=em, Hd=hd, Hm=hm, SDm=sdm)
        for m in range(1, 13)
    ]


class TestAggregateYearlyTotal:
    def test_twelve_ones(self):
        total = aggregate_yearly_total(_months(ed=1.0))
        assert total.Ed == 12.0

    def test_each_field_summed(self):
        total = aggregate_yearly_total(_months())
        assert total.Em == pytest.approx(360.0)
        assert total.Hd == pytest.approx(24.0)
        assert total.Hm == pytest.approx(720.0)
        assert total.SDm == pytest.approx(6.0)

    def test_missing_sdm_counts_as_zero(self):
        total = aggregate_yearly_total(_months(sdm=None))
        assert total.SDm == 0.0

    def test_requires_twelve_months(self):
        with pytest.raises(ValueError, match="12 monthly records"):
            aggregate_yearly_total(_months()[:11])

    def test_decimal_sum_is_exact(self):
        total = aggregate_yearly_total(_months(ed=0.1, sdm=0.1))
        assert total.Ed == 1.2
        assert total.SDm == 1.2

    def test_sample_site_sum_is_exact(self):
        monthly = [
            MonthlyRecord(month=m, Ed=ed, Em=em, Hd=hd, Hm=hm, SDm=sdm)
            for m, (ed, em, hd, hm, sdm) in enumerate(MONTHLY_VALUES, start=1)
        ]
        assert aggregate_yearly_total(monthly).Ed == 38.46

    def test_daily_average_is_summed(self):
        # Ed is summed across months, matching what PVGIS clients have always reported
        total = aggregate_yearly_total(_months(ed=3.0))
        assert total.Ed == 36.0


class TestBuildResultSet:
    def test_from_tab_parse(self):
        result = build_result_set(TabDelimitedParser().parse(tab_body()))
        assert [r.month for r in result.monthly] == list(range(1, 13))
        assert result.yearly_total.Ed == pytest.approx(sum(v[0] for v in MONTHLY_VALUES))
        assert result.yearly_total.SDm == pytest.approx(sum(v[4] for v in MONTHLY_VALUES))
        assert result.fixed_system_losses is not None
        assert result.reported_total is None

    def test_from_html_parse(self):
        result = build_result_set(HtmlTableParser().parse(html_body()))
        assert result.yearly_total.Em == pytest.approx(sum(v[1] for v in MONTHLY_VALUES))
        assert result.yearly_total.SDm == 0.0
        # Upstream's own total is kept alongside, never substituted
        assert result.reported_total.e == 1170.0

    def test_incomplete_parse_rejected(self):
        parsed = TabDelimitedParser().parse(tab_body(months=range(1, 12)))
        with pytest.raises(ValueError, match="month 12"):
            build_result_set(parsed)
