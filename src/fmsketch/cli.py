"""fmsketch CLI entry point.

Usage:
    fmsketch count [FILE ...] [--partitions N] [--seed S] [--threshold T]
    fmsketch merge BLOB [BLOB ...]

`count` counts distinct lines (trailing newline stripped) across the
given files, or stdin when none are given. `--save` writes the
resulting state so it can be merged later with `merge`.
"""
import argparse
import logging
import sys
from collections.abc import Iterator

from fmsketch.analytics.accumulator import finalize, mode
from fmsketch.analytics.codec import deserialize, serialize
from fmsketch.analytics.counter import DistinctCounter
from fmsketch.analytics.merge import merge_all
from fmsketch.config import DEFAULT_PROMOTE_THRESHOLD, SketchConfig
from fmsketch.errors import FMSketchError

log = logging.getLogger(__name__)


def _add_common_config(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--seed", type=int, default=0,
        help="MurmurHash3 seed; merged states must share it (default: 0)",
    )
    p.add_argument(
        "--threshold", type=int, default=DEFAULT_PROMOTE_THRESHOLD,
        help=f"Distinct values counted exactly before sketching "
             f"(default: {DEFAULT_PROMOTE_THRESHOLD})",
    )


def _add_count_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "count",
        help="Count distinct lines in files or stdin.",
    )
    p.add_argument("files", nargs="*", help="Input files (default: stdin)")
    p.add_argument(
        "--partitions", type=int, default=1,
        help="Split the input round-robin into N independently counted "
             "partitions, then merge (default: 1)",
    )
    p.add_argument(
        "--save", metavar="PATH",
        help="Write the final serialized state to PATH.",
    )
    _add_common_config(p)


def _add_merge_parser(subparsers: argparse._SubParsersAction) -> None:
    p = subparsers.add_parser(
        "merge",
        help="Merge serialized states and print the combined count.",
    )
    p.add_argument("blobs", nargs="+", help="Files written by `count --save`")
    p.add_argument(
        "--save", metavar="PATH",
        help="Write the merged state to PATH.",
    )


def _read_lines(files: list[str]) -> Iterator[str]:
    if not files:
        for line in sys.stdin:
            yield line.rstrip("\n")
        return
    for path in files:
        with open(path, encoding="utf-8") as fh:
            for line in fh:
                yield line.rstrip("\n")


def _run_count(args: argparse.Namespace) -> None:
    config = SketchConfig(promote_threshold=args.threshold, seed=args.seed)
    if args.partitions < 1:
        raise ValueError(f"--partitions must be >= 1, got {args.partitions}")

    counters = [DistinctCounter(config) for _ in range(args.partitions)]
    for i, line in enumerate(_read_lines(args.files)):
        counters[i % args.partitions].add(line)

    total = counters[0]
    for other in counters[1:]:
        total.merge(other)

    log.debug("observed %d lines", total.values_observed)
    print(f"distinct: {total.count()}")
    print(f"mode: {total.mode.name.lower()}")
    if args.save:
        with open(args.save, "wb") as fh:
            fh.write(total.to_bytes())


def _run_merge(args: argparse.Namespace) -> None:
    states = []
    for path in args.blobs:
        with open(path, "rb") as fh:
            states.append(deserialize(fh.read()))
    state = merge_all(states, states[0].config)
    print(f"distinct: {finalize(state)}")
    print(f"mode: {mode(state).name.lower()}")
    if args.save:
        with open(args.save, "wb") as fh:
            fh.write(serialize(state))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="fmsketch",
        description="Flajolet-Martin distinct counting.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log promotion and merge decisions.",
    )
    subparsers = parser.add_subparsers(dest="command")

    _add_count_parser(subparsers)
    _add_merge_parser(subparsers)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        if args.command == "count":
            _run_count(args)
        elif args.command == "merge":
            _run_merge(args)
    except (FMSketchError, ValueError, OSError) as exc:
        print(f"fmsketch: error: {exc}", file=sys.stderr)
        sys.exit(1)
