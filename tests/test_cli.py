"""
test_cli.py: Unit tests for the command line front end.
"""

import contextlib
import io
import unittest
import kvload.cli as cli
import kvload.param as param
import kvload.ratectl as ratectl
from kvload.client import InMemoryClient
from kvload.sequence import RequestType


class ParserTest(unittest.TestCase):
    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        self.assertEqual(len(args.sequence), 5)
        self.assertEqual(args.engines, 1)
        self.assertEqual(args.keys, 0)
        self.assertIsNone(args.variable)

    def test_options(self):
        args = cli.build_parser().parse_args(["-s", "G:3,D", "-n", "3", "-k", "50",
                                              "--offset-del", "1000", "--variable", "100,200"])
        self.assertEqual(args.sequence.items[0].req_type, RequestType.GET)
        self.assertEqual(args.sequence.items[0].num_requests, 3)
        self.assertEqual(args.variable, [100, 200])

    def test_invalid_sequence(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                cli.build_parser().parse_args(["-s", "X:1"])


class BuildEnginesTest(unittest.TestCase):
    def test_offsets(self):
        args = cli.build_parser().parse_args(["-n", "3", "-k", "50", "--offset-del", "1000",
                                              "--offset-get", "7", "--seed", "1"])
        engines = cli.build_engines(args, InMemoryClient())
        self.assertEqual(len(engines), 3)
        self.assertEqual([e.rec_store.offset_del for e in engines], [1000, 1050, 1100])
        self.assertEqual([e.rec_store.offset_get for e in engines], [7, 7, 7])

    def test_large_range(self):
        args = cli.build_parser().parse_args(["-n", "2", "-k", str(param.MAX_DELETES * 3)])
        engines = cli.build_engines(args, InMemoryClient())
        self.assertEqual(engines[1].rec_store.offset_del, param.MAX_DELETES)

    def test_variable(self):
        args = cli.build_parser().parse_args(["--variable", "100,200"])
        eng = cli.build_engines(args, InMemoryClient())[0]
        eng.initialize()
        self.assertIsInstance(eng._rate_ctl, ratectl.VariableRateController)


class MainTest(unittest.TestCase):
    def test_main(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = cli.main(["-d", "1", "-k", "20", "--offset-get", "100", "--preload", "-s", "G:1,D:1",
                             "--report", "0", "-r", "500", "-l", "8", "-m", "8", "--seed", "3"])
        self.assertEqual(code, 0)
        self.assertIn("Total statistics:", out.getvalue())
