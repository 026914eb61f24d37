from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from .config import AddressSet, ConfigurationError, ProbeConfig
from .log import setup_logging
from .render import build_table, render_table
from .report import LogReporter
from .scheduler import run_forever
from .stats import RoundOutcome
from .util import iso_timestamp, now_utc


class _AddressAction(argparse.Action):
    """Feed every -a value into one AddressSet, rejecting empty targets."""

    def __call__(self, parser, namespace, values, option_string=None):
        addrs = getattr(namespace, self.dest, None)
        if not isinstance(addrs, AddressSet):
            addrs = AddressSet()
            setattr(namespace, self.dest, addrs)
        try:
            addrs.add(values)
        except ConfigurationError as e:
            parser.error(f"argument {option_string}: {e}")


def _summary_printer(ascii_mode: bool):
    def _print(generation: int, outcomes: List[RoundOutcome]) -> None:
        title = f"ding generation {generation} @ {iso_timestamp(now_utc())}"
        sys.stderr.write(render_table(build_table(outcomes, title, ascii_mode=ascii_mode)))
        sys.stderr.flush()
    return _print


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="ding",
        description="Differential time-stamped ping: batches of ICMP echoes to many hosts, one JSON record per batch.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("-a", "--addr", dest="addrs", action=_AddressAction, default=None,
                    help="Address(es) to ping, comma separated; may be repeated")
    ap.add_argument("-i", "--interval", type=float, default=10.0, help="Seconds between pings for each address")
    ap.add_argument("-b", "--batch", type=float, default=60.0, help="Length of each batch of pings in seconds")
    ap.add_argument("-n", "--count", type=int, default=5, help="Number of ICMP packets in each batch")
    ap.add_argument("--priv", action=argparse.BooleanOptionalAction, default=True,
                    help="Use raw sockets (requires setcap cap_net_raw=+ep or equivalent)")
    ap.add_argument("--log-level", default="INFO", help="Minimum level of emitted records")
    ap.add_argument("--log-file", default=None, help="Also append JSON records to this file (rotated)")
    ap.add_argument("--summary", action="store_true", help="Print a table to stderr after every generation")
    ap.add_argument("--ascii", action="store_true", help="Use ASCII borders for --summary")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if not args.addrs:
        ap.error("at least one address is required (-a)")
    try:
        config = ProbeConfig(
            count=int(args.count),
            interval=float(args.interval),
            timeout=float(args.batch),
            privileged=bool(args.priv),
        )
    except ConfigurationError as e:
        ap.error(str(e))

    setup_logging(sys.stdout, level=args.log_level, log_file=args.log_file)
    logger.debug("probing {} every batch of {}s", args.addrs, config.timeout)

    try:
        asyncio.run(
            run_forever(
                args.addrs,
                config,
                LogReporter(),
                on_generation=_summary_printer(args.ascii) if args.summary else None,
            )
        )
    except KeyboardInterrupt:
        # graceful stop on Ctrl+C
        return 130
    except Exception as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
