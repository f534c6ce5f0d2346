"""
test_runner.py: Unit tests for the multi-engine runner.
"""

import io
import random
import time
import unittest
import kvload.client as client
import kvload.engine as engine
import kvload.runner as runner
import kvload.valuegen as valuegen
from kvload.sequence import RequestType, WorkloadItem, RequestSequence, parse_sequence


def make_engines(store_client, seq, count, num_keys=0):
    engines = []
    for i in range(count):
        rng = random.Random(i)
        rdgen = valuegen.RandomGen(rng, value_min_len=4, value_max_len=8, ttl=600)
        engines.append(engine.TestEngine(store_client, rdgen, parse_sequence(seq),
                                         num_keys=num_keys,
                                         offset_del=i * num_keys,
                                         num_req_per_second=2000,
                                         rng=rng))
    return engines


class RunnerTest(unittest.TestCase):
    def test_dynamic(self):
        store_client = client.InMemoryClient()
        engines = make_engines(store_client, "C:1,G:1,U:1,S:1,D:1", 2)
        out = io.StringIO()
        run = runner.Runner(engines, report_interval=0.1, out=out)
        stats = run.run(0.5)
        self.assertTrue(run.cancel.is_set())
        for eng in engines:
            self.assertEqual(eng.state, engine.EngineState.STOPPED)
            self.assertTrue(eng.done.is_set())
        self.assertGreater(stats.get_request_count(RequestType.CREATE), 0)
        self.assertEqual(stats.get_error_count(), 0)
        self.assertEqual(stats.get_request_count(),
                         sum(eng.stats.get_request_count() for eng in engines))
        self.assertIn("Moving statistics:", out.getvalue())

    def test_preloaded_restore(self):
        store_client = client.InMemoryClient()
        client.preload(store_client, 60)
        engines = make_engines(store_client, "D:1", 2, num_keys=30)
        run = runner.Runner(report_interval=0)
        run.add_engines(engines)
        stats = run.run(0.3)
        for eng in engines:
            self.assertTrue(eng.rec_store.delete_exhausted())
            self.assertEqual(eng.restored, 30)
        self.assertEqual(stats.get_request_count(RequestType.DESTROY), 60)
        self.assertEqual(stats.get_request_count(RequestType.CREATE), 60)
        self.assertEqual(len(store_client), 60)

    def test_engines_stop_early(self):
        # Every read misses, so each preloaded engine trips its circuit breaker
        engines = make_engines(client.InMemoryClient(), "G:1", 2, num_keys=10)
        run = runner.Runner(engines, report_interval=0)
        stats = run.run(0)
        self.assertEqual(stats.get_error_count(), 2 * 101)
        self.assertEqual(stats.get_request_count(RequestType.CREATE), 0)

    def test_engine_failure_raised(self):
        engines = make_engines(client.InMemoryClient(), "C:1,G:1", 2)
        engines[1].sequence = RequestSequence([WorkloadItem("bogus", 1)])
        run = runner.Runner(engines, report_interval=0)
        start = time.monotonic()
        with self.assertRaises(ValueError):
            run.run(30)
        self.assertLess(time.monotonic() - start, 30)
        self.assertTrue(run.cancel.is_set())
        self.assertEqual(len(run.errors), 1)
        for eng in engines:
            self.assertEqual(eng.state, engine.EngineState.STOPPED)
            self.assertTrue(eng.done.is_set())
