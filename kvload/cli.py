"""
cli.py: Command line load driver.
"""

import argparse
import logging
import random
import sys

import kvload.client as client
import kvload.engine as engine
import kvload.param as param
import kvload.runner as runner
import kvload.sequence as sequence
import kvload.valuegen as valuegen

logger = logging.getLogger(__name__)


def parse_rates(text):
    try:
        return [int(rate) for rate in text.split(',') if rate.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError("invalid rate list: " + text)


def build_parser():
    parser = argparse.ArgumentParser(description="Key-value store load driver")
    parser.add_argument('-s', '--sequence', type=sequence.parse_sequence,
                        default=param.DEFAULT_SEQUENCE,
                        help="request sequence, e.g. C:1,G:2,U:1,S:1,D:1")
    parser.add_argument('-n', '--engines', type=int, default=1, help="number of engines")
    parser.add_argument('-d', '--duration', type=int, default=param.DEFAULT_DURATION,
                        help="duration of the run (s), 0 to run until interrupted")
    parser.add_argument('-r', '--rate', type=int, default=param.DEFAULT_REQUESTS_PER_SECOND,
                        help="target requests per second per engine")
    parser.add_argument('-k', '--keys', type=int, default=0,
                        help="number of preloaded keys per engine, 0 to create keys during the run")
    parser.add_argument('--offset-get', type=int, default=0, help="first preloaded key index for reads")
    parser.add_argument('--offset-del', type=int, default=0, help="first preloaded key index for deletes")
    parser.add_argument('-l', '--value-min', type=int, default=param.DEFAULT_VALUE_MIN_LEN,
                        help="minimum payload length")
    parser.add_argument('-m', '--value-max', type=int, default=param.DEFAULT_VALUE_MAX_LEN,
                        help="maximum payload length")
    parser.add_argument('-t', '--ttl', type=int, default=param.DEFAULT_TTL, help="record TTL (s)")
    parser.add_argument('--disable-get-ttl', action='store_true', help="send reads without TTL")
    parser.add_argument('--variable', type=parse_rates, default=None,
                        help="variable throughput schedule, e.g. 1000,2000,4000,2000")
    parser.add_argument('--seed', type=int, default=None, help="random seed")
    parser.add_argument('--client', default="",
                        help="store client factory as module:callable (default: in-memory store)")
    parser.add_argument('--preload', action='store_true',
                        help="write the preloaded key range before the run")
    parser.add_argument('--progress', action='store_true', help="display progress bar")
    parser.add_argument('--report', type=int, default=param.DEFAULT_REPORT_INTERVAL,
                        help="moving statistics report interval (s), 0 to disable")
    parser.add_argument('-v', '--verbose', action='store_true', help="debug logging")
    return parser


def build_engines(args, store_client):
    seeder = random.Random(args.seed)
    engines = []
    for i in range(args.engines):
        rng = random.Random(seeder.getrandbits(64))
        rdgen = valuegen.RandomGen(rng,
                                   value_min_len=args.value_min,
                                   value_max_len=args.value_max,
                                   ttl=args.ttl,
                                   disable_get_ttl=args.disable_get_ttl,
                                   throughputs=args.variable)
        # Engines delete disjoint slices of the preloaded range
        offset_del = args.offset_del + i * min(args.keys, param.MAX_DELETES)
        engines.append(engine.TestEngine(store_client,
                                         rdgen,
                                         args.sequence,
                                         num_keys=args.keys,
                                         offset_get=args.offset_get,
                                         offset_del=offset_del,
                                         num_req_per_second=args.rate,
                                         rng=rng))
    return engines


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s")

    if args.client:
        store_client = client.load_client(args.client)
    else:
        store_client = client.InMemoryClient(default_ttl=args.ttl)

    if args.preload and args.keys > 0:
        num_deletes = args.engines * min(args.keys, param.MAX_DELETES)
        logger.info("Preloading %d read keys and %d delete keys", args.keys, num_deletes)
        client.preload(store_client, args.keys, args.offset_get, ttl=args.ttl)
        client.preload(store_client, num_deletes, args.offset_del, ttl=args.ttl)

    run = runner.Runner(build_engines(args, store_client),
                        progress=args.progress,
                        report_interval=args.report)
    stats = run.run(args.duration)
    stats.dump("Total statistics:")
    return 0 if stats.get_request_count() > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
