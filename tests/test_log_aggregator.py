"""Tests for log_aggregator.py — product, period, zone and nutrient statistics."""

import pytest

from log_aggregator import (
    amount_applied, amount_unit, available_years, catalog_nutrients_per_m2, filter_by_year,
    last_activity, monthly_cost_by_tenant, monthly_cost_by_type, monthly_nutrients,
    most_frequent_products, period_stats, product_stats, total_cost, usage_stats, zone_stats,
    zone_nutrients_per_m2,
)


# ── Period statistics ──

class TestPeriodStats:
    def test_monthly_and_yearly_buckets(self, make_entry):
        logs = [make_entry('a', '2024-03-05', 'X', 100.0), make_entry('b', '2024-03-20', 'X', 50.0)]
        stats = period_stats(logs)
        assert stats['monthly'] == [{'period': '2024-03', 'cost': 150.0}]
        assert stats['yearly'] == [{'period': '2024', 'cost': 150.0}]
        assert stats['daily'] == [
            {'period': '2024-03-05', 'cost': 100.0},
            {'period': '2024-03-20', 'cost': 50.0},
        ]

    def test_year_filter_without_matches(self, make_entry):
        logs = [make_entry('a', '2024-03-05', 'X', 100.0)]
        stats = period_stats(logs, year='2023')
        assert stats == {'daily': [], 'monthly': [], 'yearly': []}

    def test_empty_log(self):
        assert period_stats([]) == {'daily': [], 'monthly': [], 'yearly': []}

    def test_sorted_ascending(self, sample_logs):
        periods = [p['period'] for p in period_stats(sample_logs)['daily']]
        assert periods == sorted(periods)


# ── Aggregation identity ──

class TestAggregationIdentity:
    def test_product_period_and_raw_totals_agree(self, sample_logs):
        raw = sum(e['total_cost'] for e in sample_logs)
        by_product = sum(p['total_cost'] for p in product_stats(sample_logs))
        stats = period_stats(sample_logs)
        for key in ('daily', 'monthly', 'yearly'):
            assert sum(p['cost'] for p in stats[key]) == pytest.approx(raw)
        assert by_product == pytest.approx(raw)
        assert total_cost(sample_logs) == pytest.approx(raw)


# ── Product statistics ──

class TestProductStats:
    def test_sorted_by_cost(self, sample_logs):
        stats = product_stats(sample_logs)
        assert [s['product'] for s in stats] == ['Green Slow 21-0-0', 'Fairway 16-2-12', 'Liquid 10-0-0']
        assert stats[0]['count'] == 2
        assert stats[0]['total_cost'] == pytest.approx(150.0)

    def test_year_filter(self, sample_logs):
        stats = product_stats(sample_logs, year='2023')
        assert [s['product'] for s in stats] == ['Liquid 10-0-0']

    def test_most_frequent(self, sample_logs):
        ranked = most_frequent_products(sample_logs, limit=1)
        assert ranked == [product_stats(sample_logs)[0]]
        assert len(most_frequent_products(sample_logs)) == 3

    def test_empty(self):
        assert product_stats([]) == []
        assert most_frequent_products([]) == []


# ── Amount applied ──

class TestAmountApplied:
    def test_stored_amount_preferred(self, make_entry):
        entry = make_entry('a', '2024-01-01', 'X', 1.0, amount_applied=7.5, amount_unit='L')
        assert amount_applied(entry) == 7.5
        assert amount_unit(entry) == 'L'

    def test_fallback_from_area_and_rate(self, make_entry):
        entry = make_entry('a', '2024-01-01', 'X', 1.0, area=200.0)
        assert amount_applied(entry) == pytest.approx(2.0)
        assert amount_unit(entry) == 'kg'

    def test_liquid_unit_from_application_unit(self, make_entry):
        entry = make_entry('a', '2024-01-01', 'X', 1.0, application_unit='ml/㎡')
        assert amount_unit(entry) == 'L'

    def test_usage_stats(self, sample_logs):
        stats = usage_stats(sample_logs)
        by_name = {s['product']: s for s in stats}
        assert by_name['Liquid 10-0-0']['unit'] == 'L'
        assert by_name['Green Slow 21-0-0']['total_amount'] == pytest.approx(2.0)
        assert stats[0]['total_amount'] >= stats[-1]['total_amount']


# ── Zones ──

class TestZones:
    def test_zone_stats_cover_all_zones(self, sample_logs):
        stats = zone_stats(sample_logs)
        assert [s['zone'] for s in stats] == ['green', 'tee', 'fairway']
        assert stats[0]['count'] == 2
        assert stats[2]['total_cost'] == pytest.approx(80.0)

    def test_zone_nutrients_per_m2(self, sample_logs):
        result = zone_nutrients_per_m2(sample_logs, {'green': 1000, 'tee': 0, 'fairway': 2000})
        assert result['green']['N'] == pytest.approx(0.315)
        assert result['tee']['N'] == 0
        assert result['fairway']['K'] == pytest.approx(0.12)


# ── Monthly nutrients ──

class TestMonthlyNutrients:
    def test_twelve_months(self, sample_logs):
        series = monthly_nutrients(sample_logs, '2024')
        assert len(series) == 12
        assert series[0]['month'] == '2024-01'
        assert series[11]['month'] == '2024-12'

    def test_per_entry_area(self, sample_logs):
        series = monthly_nutrients(sample_logs, '2024')
        # (210 + 105) g over 100 ㎡ each
        assert series[2]['N'] == pytest.approx(3.15)
        assert series[4]['K'] == pytest.approx(1.2)

    def test_usage_filter(self, sample_logs):
        series = monthly_nutrients(sample_logs, '2024', usage='fairway')
        assert series[2]['N'] == 0
        assert series[4]['N'] == pytest.approx(1.6)

    def test_skips_zero_area(self, make_entry):
        logs = [make_entry('a', '2024-06-01', 'X', 1.0, area=0, n=50.0)]
        assert all(m['N'] == 0 for m in monthly_nutrients(logs, 2024))


# ── Catalog-dependent views ──

class TestCatalogViews:
    def test_cost_by_type_with_unknown_product(self, sample_logs, catalog):
        logs = sample_logs + [{'id': 'x', 'date': '2024-05-09', 'product': 'Gone', 'total_cost': 5.0}]
        months = {m['month']: m for m in monthly_cost_by_type(logs, catalog)}
        assert months['2024-03']['slow-release'] == pytest.approx(150.0)
        assert months['2024-05']['water-soluble'] == pytest.approx(80.0)
        assert months['2024-05']['other'] == pytest.approx(5.0)

    def test_catalog_miss_is_zero_filled(self, sample_logs, catalog):
        logs = sample_logs + [{'id': 'x', 'date': '2024-05-09', 'product': 'Gone',
                               'application_rate': 10}]
        results = catalog_nutrients_per_m2(logs, catalog)
        assert len(results) == len(logs)
        miss = results[-1]
        assert miss['found'] is False
        assert all(v == 0 for v in miss['nutrients'].values())
        assert results[0]['nutrients']['N'] == pytest.approx(2.1)

    def test_monthly_cost_by_tenant(self, sample_logs, make_entry):
        summaries = [
            {'username': 'a', 'logs': sample_logs},
            {'username': 'b', 'logs': [make_entry('z', '2024-03-01', 'X', 10.0)]},
        ]
        months = monthly_cost_by_tenant(summaries, start_date='2024-01-01', end_date='2024-12-31')
        march = next(m for m in months if m['month'] == '2024-03')
        assert march['costs'] == {'a': 150.0, 'b': 10.0}
        assert all(m['month'].startswith('2024') for m in months)


# ── Helpers ──

class TestHelpers:
    def test_available_years(self, sample_logs):
        assert available_years(sample_logs) == ['2024', '2023']

    def test_last_activity(self, sample_logs):
        assert last_activity(sample_logs) == '2024-05-02'
        assert last_activity([]) is None

    def test_filter_by_year_all(self, sample_logs):
        assert filter_by_year(sample_logs, 'all') == sample_logs
        assert len(filter_by_year(sample_logs, '2024')) == 3
