# -*- coding: ascii -*-
"""Test table, library and query I/O."""

import json
import os
import shutil
import tempfile
import unittest

from nmrassembly.fragment import Fragment, FragmentError
from nmrassembly.io_utils import (
    SolutionSink, iter_source_records, load_library, load_queries, read_smiles_lines,
    read_table, save_library, write_json, write_table,
)
from tests import CleanLogsTestCase


class TestTables(CleanLogsTestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.records = [
            {'query_id': 'q1', 'smiles': 'ClCCBr', 'atom_count': 4, 'shifts': [45.0, 33.0]},
            {'query_id': 'q1', 'smiles': 'ClCCCl', 'atom_count': 4, 'shifts': [45.0]},
        ]

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_csv_round_trip(self):
        path = os.path.join(self.tmpdir, 'out', 'solutions.csv')
        write_table(self.records, path)
        rows = read_table(path)
        self.assertEqual([r['smiles'] for r in rows], ['ClCCBr', 'ClCCCl'])
        self.assertEqual(rows[0]['shifts'], [45.0, 33.0])
        self.assertNotIn('shifts_json', rows[0])

    def test_parquet_round_trip(self):
        path = os.path.join(self.tmpdir, 'solutions.parquet')
        write_table(self.records, path)
        rows = read_table(path)
        self.assertEqual(rows[1]['shifts'], [45.0])
        self.assertEqual(int(rows[1]['atom_count']), 4)

    def test_empty_table_keeps_columns(self):
        path = os.path.join(self.tmpdir, 'empty.csv')
        write_table([], path, columns=['query_id', 'smiles', 'shifts_json'])
        with open(path, 'r', encoding='ascii') as f:
            self.assertEqual(f.readline().strip(), 'query_id,smiles,shifts_json')
        self.assertEqual(read_table(path), [])

    def test_unsupported_format(self):
        with self.assertRaises(ValueError):
            write_table(self.records, os.path.join(self.tmpdir, 'out.txt'))

    def test_missing_table(self):
        self.assertEqual(read_table(os.path.join(self.tmpdir, 'none.csv')), [])

    def test_source_records(self):
        path = os.path.join(self.tmpdir, 'sources.csv')
        write_table([{'smiles': 'ClCCBr', 'shifts': {'1': 45.0, '2': 33.0}}], path)
        self.assertEqual(list(iter_source_records(path)), [('ClCCBr', {1: 45.0, 2: 33.0})])

    def test_source_records_need_mapping(self):
        path = os.path.join(self.tmpdir, 'sources.csv')
        write_table([{'smiles': 'ClCCBr', 'shifts': [45.0, 33.0]}], path)
        with self.assertRaises(FragmentError):
            list(iter_source_records(path))


class TestLibraryAndQueries(CleanLogsTestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_library_round_trip(self):
        fragments = [
            Fragment.from_smiles("[CH](Cl)Br", {0: 40.0}),
            Fragment.from_smiles("c1cc[cH]cc1", {0: 128.5}, max_sphere=2),
        ]
        path = os.path.join(self.tmpdir, 'library.json')
        save_library(fragments, path)
        loaded = load_library(path)
        self.assertEqual(len(loaded), 2)
        self.assertEqual(loaded[0].open_atoms, [0])
        self.assertEqual(loaded[0].spectrum.shifts, [40.0])
        self.assertEqual(loaded[1].max_sphere, 2)
        self.assertTrue(all(b.GetIsAromatic() for b in loaded[1].mol.GetBonds()))

    def test_malformed_library(self):
        path = os.path.join(self.tmpdir, 'library.json')
        write_json({'atoms': []}, path)
        with self.assertRaises(FragmentError):
            load_library(path)
        write_json([{'atoms': [{'hydrogens': 1}]}], path)
        with self.assertRaises(FragmentError):
            load_library(path)

    def test_load_queries(self):
        path = os.path.join(self.tmpdir, 'queries.json')
        with open(path, 'w', encoding='ascii') as f:
            json.dump([{'id': 'q1', 'shifts': [45.0, 33.0]}, {'nucleus': '15N', 'shifts': [120.0]}], f)
        queries = load_queries(path)
        self.assertEqual([q for q, _ in queries], ['q1', 'query1'])
        self.assertEqual(queries[0][1].shifts, [45.0, 33.0])
        self.assertEqual(queries[1][1].nucleus, '15N')


class TestSolutionSink(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_lines_flushed(self):
        sink = SolutionSink.for_run(self.tmpdir, 'q1', 3)
        sink.write('CCO')
        # readable before close
        self.assertEqual(read_smiles_lines(sink.path), ['CCO'])
        sink.write('CCN')
        sink.close()
        sink.close()
        self.assertEqual(sink.count, 2)
        self.assertEqual(read_smiles_lines(sink.path), ['CCO', 'CCN'])
        self.assertEqual(os.path.basename(sink.path), 'results_q1_temp_3.smiles')


if __name__ == '__main__':
    unittest.main()
