# ========================
# tests/test_pipeline.py
# ========================

import unittest
import sys
import os
import csv
import json
import tempfile
from collections import defaultdict

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.pipeline.cleaning import DataCleaner, split_composite_field, most_recent_com_date, parse_number
from src.pipeline.transformation import MarketShareAggregator
from src.pipeline.profiling import DatasetProfiler
from src.pipeline.storage import DataSaver
from src.pipeline.orchestrator import TurbineMarketPipeline
from src.pipeline.exceptions import AggregationError, FieldParseError
from src.utils.config import Config
from src.utils.data_generator import DataGenerator


def turbine(manufacturer, year, capacity=1500.0):
    """A cleaned record with only the fields the aggregator reads."""
    return {
        'manufacturer': manufacturer,
        'most_recent_com_date': year,
        'turbine_rated_capacity_k_w': capacity,
    }


class TestFieldSplitting(unittest.TestCase):

    def test_three_commissioning_years(self):
        self.assertEqual(split_composite_field("2005/2006/2012", "/", 3), [2005, 2006, 2012])

    def test_token_count_matches_non_null_fields(self):
        """k numeric tokens fill exactly the first k fields, in order."""
        cases = [
            ("2010", [2010, None, None]),
            ("2010/2011", [2010, 2011, None]),
            ("2010/2011/2013", [2010, 2011, 2013]),
        ]
        for value, expected in cases:
            result = split_composite_field(value, "/", 3)
            self.assertEqual(result, expected, f"Failed for value: {value}")
            self.assertEqual(sum(v is not None for v in result), value.count("/") + 1)

    def test_turbine_number_pair(self):
        self.assertEqual(split_composite_field("3/12", "/", 2), [3, 12])

    def test_unparseable_tokens_become_none(self):
        stats = defaultdict(int)
        self.assertEqual(split_composite_field("20O5/2006", "/", 3, stats), [None, 2006, None])
        self.assertEqual(stats['parse_failures'], 1)

    def test_extra_tokens_are_discarded(self):
        stats = defaultdict(int)
        result = split_composite_field("2001/2002/2003/2004", "/", 3, stats)
        self.assertEqual(result, [2001, 2002, 2003])
        self.assertEqual(stats['truncated_fields'], 1)

    def test_missing_and_blank_values(self):
        self.assertEqual(split_composite_field(None, "/", 2), [None, None])
        self.assertEqual(split_composite_field("  ", "/", 2), [None, None])
        self.assertEqual(split_composite_field("2005/", "/", 3), [2005, None, None])

    def test_numeric_cell_value(self):
        """Columns inferred as numeric by the loader still split."""
        self.assertEqual(split_composite_field(2012, "/", 3), [2012, None, None])

    def test_parse_number(self):
        self.assertEqual(parse_number(" 12 "), 12)
        self.assertEqual(parse_number("1.5"), 1.5)
        self.assertEqual(parse_number("2005.0"), 2005)
        self.assertIsInstance(parse_number("2005.0"), int)
        for bad in ("abc", "", "nan", "inf"):
            with self.assertRaises(FieldParseError):
                parse_number(bad)


class TestMostRecentComDate(unittest.TestCase):

    def test_maximum_of_present_years(self):
        self.assertEqual(most_recent_com_date([2005, 2006, 2012]), 2012)
        self.assertEqual(most_recent_com_date([2012, None, 2005]), 2012)
        self.assertEqual(most_recent_com_date([None, 2008, None]), 2008)

    def test_all_missing(self):
        self.assertIsNone(most_recent_com_date([None, None, None]))


class TestDataCleaner(unittest.TestCase):

    def setUp(self):
        self.cleaner = DataCleaner()

    def test_cleaner_valid_record(self):
        raw_record = {
            'objectid': 7,
            'manufacturer': '  Vestas ',
            'turbine_rated_capacity_k_w': 1650,
            'commissioning_date': '2005/2006/2012',
            'turbine_number_in_project': '3/12',
            'province_territory': 'Ontario',
        }

        cleaned_record = self.cleaner.clean_record(raw_record)

        self.assertIsNotNone(cleaned_record)
        self.assertEqual(cleaned_record['manufacturer'], 'Vestas')
        self.assertEqual(cleaned_record['turbine_rated_capacity_k_w'], 1650.0)
        self.assertEqual(cleaned_record['com_date_1'], 2005)
        self.assertEqual(cleaned_record['com_date_2'], 2006)
        self.assertEqual(cleaned_record['com_date_3'], 2012)
        self.assertEqual(cleaned_record['most_recent_com_date'], 2012)
        self.assertEqual(cleaned_record['turbine_number'], 3)
        self.assertEqual(cleaned_record['number_of_turbines_in_project'], 12)
        self.assertEqual(cleaned_record['province_territory'], 'Ontario')
        self.assertNotIn('commissioning_date', cleaned_record)
        self.assertNotIn('turbine_number_in_project', cleaned_record)

    def test_cleaner_missing_manufacturer(self):
        raw_record = {
            'manufacturer': '   ',
            'turbine_rated_capacity_k_w': 1650,
            'commissioning_date': '2005',
            'turbine_number_in_project': '1/1',
        }
        self.assertIsNone(self.cleaner.clean_record(raw_record))
        self.assertEqual(self.cleaner.get_statistics()['records_dropped'], 1)

    def test_capacity_validation(self):
        capacity_tests = [
            (1500, 1500.0),
            ('2300', 2300.0),
            (0, None),
            (-5, None),
            ('unknown', None),
            (None, None),
        ]
        for input_val, expected in capacity_tests:
            result = self.cleaner._clean_capacity(input_val)
            self.assertEqual(result, expected, f"Failed for capacity: {input_val}")

    def test_record_without_year_is_kept(self):
        raw_record = {
            'manufacturer': 'GE',
            'turbine_rated_capacity_k_w': None,
            'commissioning_date': None,
            'turbine_number_in_project': None,
        }
        cleaned_record = self.cleaner.clean_record(raw_record)
        self.assertIsNotNone(cleaned_record)
        self.assertIsNone(cleaned_record['most_recent_com_date'])
        self.assertIsNone(cleaned_record['turbine_number'])
        self.assertEqual(self.cleaner.get_statistics()['records_without_year'], 1)

    def test_clean_records_statistics(self):
        records = [
            {'manufacturer': 'Vestas', 'turbine_rated_capacity_k_w': 'n/a',
             'commissioning_date': '2001/2002/2003/2004', 'turbine_number_in_project': '1/4'},
            {'manufacturer': None, 'turbine_rated_capacity_k_w': 1500,
             'commissioning_date': '2010', 'turbine_number_in_project': '2/4'},
            {'manufacturer': 'Enercon', 'turbine_rated_capacity_k_w': 2300,
             'commissioning_date': 'TBD', 'turbine_number_in_project': '3/4'},
        ]
        cleaned = self.cleaner.clean_records(records)
        stats = self.cleaner.get_statistics()

        self.assertEqual(len(cleaned), 2)
        self.assertEqual(stats['records_processed'], 3)
        self.assertEqual(stats['records_dropped'], 1)
        self.assertEqual(stats['truncated_fields'], 1)
        self.assertEqual(stats['parse_failures'], 2)  # 'n/a' capacity and 'TBD' year
        self.assertEqual(stats['records_without_year'], 1)

    def test_most_recent_date_invariant(self):
        """most_recent_com_date is set iff a year is present, and is their maximum."""
        for value in ['2012/2005', '2005', None, 'x/2009/2007', 'x/y/z']:
            record = self.cleaner.clean_record({
                'manufacturer': 'GE', 'turbine_rated_capacity_k_w': 1500,
                'commissioning_date': value, 'turbine_number_in_project': '1/1',
            })
            years = [record[f] for f in ('com_date_1', 'com_date_2', 'com_date_3') if record[f] is not None]
            if years:
                self.assertEqual(record['most_recent_com_date'], max(years))
            else:
                self.assertIsNone(record['most_recent_com_date'])


class TestMarketShareAggregator(unittest.TestCase):

    def setUp(self):
        self.aggregator = MarketShareAggregator(top_k=2)

    def test_two_manufacturer_proportions(self):
        records = [turbine('Vestas', 2010, 100.0), turbine('Enercon', 2010, 300.0)]
        shares = {row['manufacturer']: row for row in self.aggregator.aggregate(records)}

        self.assertAlmostEqual(shares['Vestas']['prop_capacity_added'], 0.25)
        self.assertAlmostEqual(shares['Enercon']['prop_capacity_added'], 0.75)
        self.assertAlmostEqual(shares['Vestas']['prop_turbines_added'], 0.5)
        self.assertEqual(shares['Vestas']['annual_capacity_added'], 400.0)
        self.assertEqual(shares['Enercon']['annual_turbines_added'], 2)

    def test_ranking_and_others_collapse(self):
        records = (
            [turbine('Vestas', 2010)] * 5
            + [turbine('Enercon', 2010)] * 3
            + [turbine('GE', 2011)] * 2
            + [turbine('Bonus', 2011)]
        )
        shares = self.aggregator.aggregate(records)
        rankings = {row['manufacturer']: row for row in self.aggregator.rankings}

        self.assertEqual(rankings['Vestas']['rank'], 1)
        self.assertEqual(rankings['Enercon']['rank'], 2)
        self.assertEqual(rankings['GE']['rank'], 3)
        self.assertEqual(rankings['GE']['market_label'], 'Others')
        self.assertEqual(rankings['GE']['market_rank'], 3)
        self.assertEqual(rankings['Bonus']['market_rank'], 3)

        others_2011 = [row for row in shares if row['year'] == 2011]
        self.assertEqual(len(others_2011), 1)
        self.assertEqual(others_2011[0]['manufacturer'], 'Others')
        self.assertEqual(others_2011[0]['turbines_added'], 3)
        self.assertEqual(others_2011[0]['rank'], 3)
        self.assertAlmostEqual(others_2011[0]['prop_turbines_added'], 1.0)

    def test_label_set_bounded_by_k_plus_one(self):
        records = [turbine(f"Maker {i}", 2000 + i % 4) for i in range(20)]
        shares = self.aggregator.aggregate(records)
        labels = {row['manufacturer'] for row in shares}
        self.assertLessEqual(len(labels), self.aggregator.top_k + 1)

    def test_ties_at_boundary_are_broken_by_name(self):
        records = [turbine('Vestas', 2010)] * 3 + [turbine('Enercon', 2010)] * 2 + [turbine('Acciona', 2010)] * 2
        shares = self.aggregator.aggregate(records)
        rankings = {row['manufacturer']: row for row in self.aggregator.rankings}

        self.assertEqual(list(self.aggregator.top_manufacturers), ['Vestas', 'Acciona'])
        self.assertEqual(rankings['Acciona']['rank'], 2)
        self.assertEqual(rankings['Enercon']['rank'], 2)  # dense rank is shared
        self.assertEqual(rankings['Enercon']['market_label'], 'Others')
        # Collapsed manufacturers sort after the top-K, whatever their dense rank
        self.assertEqual(rankings['Enercon']['market_rank'], 3)
        self.assertEqual(rankings['Acciona']['market_rank'], 2)

        ranks = {row['manufacturer']: row['rank'] for row in shares}
        self.assertEqual(ranks, {'Vestas': 1, 'Acciona': 2, 'Others': 3})
        self.assertEqual([row['manufacturer'] for row in shares], ['Vestas', 'Acciona', 'Others'])

    def test_others_rank_differs_from_dense_rank(self):
        records = (
            [turbine('Vestas', 2012)] * 4
            + [turbine('Enercon', 2012)] * 3
            + [turbine('GE', 2012)] * 2
            + [turbine('Bonus', 2012)]
        )
        aggregator = MarketShareAggregator(top_k=1)
        shares = aggregator.aggregate(records)
        rankings = {row['manufacturer']: row for row in aggregator.rankings}

        self.assertEqual(rankings['Bonus']['rank'], 4)
        self.assertEqual(rankings['Bonus']['market_rank'], 2)
        self.assertEqual(rankings['GE']['market_rank'], 2)
        self.assertEqual(
            [(row['manufacturer'], row['rank']) for row in shares],
            [('Vestas', 1), ('Others', 2)]
        )

    def test_proportions_sum_to_one(self):
        records = DataCleaner().clean_records(
            DataGenerator(seed=7).generate_records(800, error_rate=0.2)['records']
        )
        shares = self.aggregator.aggregate(records)

        by_year = defaultdict(list)
        for row in shares:
            by_year[row['year']].append(row)
        for year, rows in by_year.items():
            self.assertAlmostEqual(sum(r['prop_turbines_added'] for r in rows), 1.0, delta=1e-6)
            if rows[0]['annual_capacity_added']:
                self.assertAlmostEqual(sum(r['prop_capacity_added'] for r in rows), 1.0, delta=1e-6)

    def test_null_capacity_counts_as_zero(self):
        records = [turbine('Vestas', 2010, None), turbine('Enercon', 2010, 200.0)]
        shares = {row['manufacturer']: row for row in self.aggregator.aggregate(records)}

        self.assertEqual(shares['Vestas']['capacity_added'], 0.0)
        self.assertAlmostEqual(shares['Enercon']['prop_capacity_added'], 1.0)
        self.assertAlmostEqual(shares['Vestas']['prop_turbines_added'], 0.5)

    def test_zero_annual_capacity_gives_none(self):
        records = [turbine('Vestas', 1995, None), turbine('Enercon', 1995, None)]
        shares = self.aggregator.aggregate(records)

        for row in shares:
            self.assertIsNone(row['prop_capacity_added'])
            self.assertAlmostEqual(row['prop_turbines_added'], 0.5)

    def test_records_without_year_are_excluded(self):
        records = [turbine('Vestas', None)] * 4 + [turbine('Enercon', 2010)]
        shares = self.aggregator.aggregate(records)

        self.assertEqual(len(shares), 1)
        self.assertEqual(self.aggregator.records_without_year, 4)
        # Ranking still counts every turbine
        self.assertEqual(self.aggregator.rankings[0]['manufacturer'], 'Vestas')

    def test_one_row_per_year_and_manufacturer(self):
        records = [turbine('Vestas', 2010)] * 3 + [turbine('Vestas', 2011)] * 2 + [turbine('Enercon', 2010)]
        shares = self.aggregator.aggregate(records)
        keys = [(row['year'], row['manufacturer']) for row in shares]

        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(keys, [(2010, 'Vestas'), (2010, 'Enercon'), (2011, 'Vestas')])

    def test_annual_totals(self):
        records = [turbine('Vestas', 2010, 100.0)] * 2 + [turbine('Enercon', 2012, 50.0)]
        self.aggregator.aggregate(records)
        totals = self.aggregator.annual_totals

        self.assertEqual([row['year'] for row in totals], [2010, 2012])
        self.assertEqual(totals[1]['cumulative_capacity'], 250.0)
        self.assertEqual(totals[1]['cumulative_turbines'], 3)

    def test_missing_manufacturer_raises(self):
        with self.assertRaises(AggregationError):
            self.aggregator.aggregate([turbine(None, 2010)])

    def test_invalid_top_k(self):
        with self.assertRaises(AggregationError):
            MarketShareAggregator(top_k=0)

    def test_annual_aggregation_requires_ranking(self):
        with self.assertRaises(AggregationError):
            MarketShareAggregator(top_k=2).aggregate_annual([turbine('Vestas', 2010)])


class TestDatasetProfiler(unittest.TestCase):

    def test_numeric_and_text_columns(self):
        records = [
            {'manufacturer': 'Vestas', 'turbine_rated_capacity_k_w': 1000.0},
            {'manufacturer': 'Vestas', 'turbine_rated_capacity_k_w': None},
            {'manufacturer': 'GE', 'turbine_rated_capacity_k_w': 3000.0},
        ]
        profiler = DatasetProfiler()
        profile = profiler.profile(records)

        capacity = profile['columns']['turbine_rated_capacity_k_w']
        self.assertEqual(profile['row_count'], 3)
        self.assertEqual(capacity['type'], 'numeric')
        self.assertEqual(capacity['missing'], 1)
        self.assertEqual(capacity['mean'], 2000.0)
        self.assertEqual(capacity['max'], 3000.0)

        manufacturer = profile['columns']['manufacturer']
        self.assertEqual(manufacturer['type'], 'text')
        self.assertEqual(manufacturer['unique'], 2)
        self.assertEqual(manufacturer['most_common'][0], ('Vestas', 2))

        self.assertEqual(profiler.missing_value_counts(profile), {'turbine_rated_capacity_k_w': 1})

    def test_non_finite_values_count_as_missing(self):
        values = [float('nan'), 48.0, float('inf'), 50.0, None]
        stats = DatasetProfiler().describe_column(values)

        self.assertEqual(stats['type'], 'numeric')
        self.assertEqual(stats['count'], 2)
        self.assertEqual(stats['missing'], 3)
        self.assertEqual(stats['min'], 48.0)
        self.assertEqual(stats['mean'], 49.0)

    def test_json_outputs_reject_nan(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            saver = DataSaver(temp_dir)
            with self.assertRaises(ValueError):
                saver.save_summary({'mean': float('nan')})


class TestEndToEnd(unittest.TestCase):
    """Run the whole pipeline on a synthetic dataset written to disk."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.input_file = os.path.join(self.temp_dir.name, 'turbines.csv')
        self.output_dir = os.path.join(self.temp_dir.name, 'out')
        DataGenerator(seed=42).generate_dataset(self.input_file, num_rows=2000, error_rate=0.15)

    def test_pipeline_run(self):
        config = Config({'top_k_manufacturers': 4})
        pipeline = TurbineMarketPipeline(source=self.input_file, output_dir=self.output_dir, config=config)

        self.assertTrue(pipeline.validate_input())
        results = pipeline.run()

        self.assertEqual(results['pipeline_status'], 'completed')
        self.assertEqual(len(results['processing_stats']['top_manufacturers']), 4)
        labels = {row['manufacturer'] for row in results['annual_shares']}
        self.assertLessEqual(len(labels), 5)

        for key in ('annual_manufacturer_shares', 'manufacturer_rankings', 'annual_totals',
                    'dataset_profile', 'data_dictionary', 'summary'):
            self.assertTrue(os.path.exists(results['saved_files'][key]), key)

        with open(results['saved_files']['annual_manufacturer_shares'], newline='') as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), len(results['annual_shares']))

        with open(results['saved_files']['summary']) as f:
            summary = json.load(f)
        self.assertEqual(summary['data_quality_stats']['records_processed'], 2000)

    def test_validate_input_missing_file(self):
        pipeline = TurbineMarketPipeline(source=os.path.join(self.temp_dir.name, 'missing.csv'))
        self.assertFalse(pipeline.validate_input())


if __name__ == '__main__':
    unittest.main()
