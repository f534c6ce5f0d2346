"""
runner.py: Top level runner driving several test engines.
"""

import logging
import sys
import threading
import time

import progressbar

import kvload.param as param
from kvload.stats import Statistics

logger = logging.getLogger(__name__)


class Runner(object):
    def __init__(self, engines=None, progress=False,
                 report_interval=param.DEFAULT_REPORT_INTERVAL,
                 out=None, clock=time.monotonic):
        self._engines = list(engines) if engines is not None else []
        self._progress = progress
        self._report_interval = report_interval
        self._out = out
        self._clock = clock
        self.cancel = threading.Event()
        self.errors = []

    def _run_engine(self, engine):
        try:
            engine.run(self.cancel)
        except Exception as e:
            logger.exception("Engine failed")
            self.errors.append(e)
            self.cancel.set()

    def add_engine(self, engine):
        self._engines.append(engine)

    def add_engines(self, engines):
        self._engines.extend(engines)

    def _report_moving_stats(self):
        stats = Statistics(self._clock)
        for engine in self._engines:
            stats.merge(engine.moving_stats)
            engine.moving_stats.reset()
        stats.dump("Moving statistics:", self._out if self._out is not None else sys.stdout)

    def _wait(self, duration):
        """
        Wait ``duration`` secs, or until every engine stopped. A
        non-positive ``duration`` waits for the engines only.
        """
        start = self._clock()
        last_report = start
        if self._progress and duration > 0:
            progress = progressbar.ProgressBar(max_value=duration).start()
        try:
            while not self.errors and \
                    not all(engine.done.is_set() for engine in self._engines):
                now = self._clock()
                elapsed = now - start
                if duration > 0 and elapsed >= duration:
                    break
                if self._progress and duration > 0:
                    progress.update(min(elapsed, duration))
                if self._report_interval > 0 and now - last_report >= self._report_interval:
                    self._report_moving_stats()
                    last_report = now
                time.sleep(param.RUNNER_TICK)
        finally:
            if self._progress and duration > 0:
                progress.finish()

    def run(self, duration):
        """
        Run all engines for ``duration`` secs, then cancel them and wait
        for them to restore their data. Returns merged statistics. An
        exception raised by any engine cancels the others and is raised
        again once they all stopped.
        """
        threads = []
        for i, engine in enumerate(self._engines):
            engine.initialize()
            thread = threading.Thread(target=self._run_engine,
                                      args=(engine,),
                                      name="engine-{}".format(i),
                                      daemon=True)
            threads.append(thread)

        logger.info("Starting %d engines", len(threads))
        for thread in threads:
            thread.start()
        try:
            self._wait(duration)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.cancel.set()
            for thread in threads:
                thread.join()
        logger.info("All engines stopped")
        if self.errors:
            raise self.errors[0]

        stats = Statistics(self._clock)
        for engine in self._engines:
            stats.merge(engine.stats)
        return stats
