from __future__ import annotations

import argparse, logging, sys
from typing import List, Optional

from deltacheck import dispatcher
from deltacheck.config import DEFAULT_MAX_STEPS, HarnessConfig
from deltacheck.core import delta
from deltacheck.core.metrics import BatchMetrics
from deltacheck.errors import ConfigurationError, HarnessError
from deltacheck.runner import run_batch


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m deltacheck.cli",
        description="Run a batch of single-program regression cases against an emulator and "
                    "fail on the first undeclared state change.",
    )
    p.add_argument("--engine", help="Engine factory as 'module:attr' (called with image, layout).")
    p.add_argument("--assembler", help="Assembler factory as 'module:attr' (called with no arguments).")
    p.add_argument("--profile", default="z80", choices=sorted(dispatcher.PROFILES), help="Target profile.")
    p.add_argument("--batch", default=None, help="Test batch as 'module:attr' (default: the profile's basic batch).")
    p.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS, help="Step budget per case; 0 disables it.")
    pc = p.add_mutually_exclusive_group()
    pc.add_argument("--pc-offset", type=int, default=1,
                    help="Default expected PC is end address + this offset (default: 1).")
    pc.add_argument("--no-pc-default", action="store_true", help="Do not synthesize a PC expectation.")
    p.add_argument("--metrics", action="store_true", help="Print per-case steps, time and peak RSS.")
    p.add_argument("--list", action="store_true", help="List the batch and exit.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return p


def run(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        profile = dispatcher.profile(args.profile)
        batch = dispatcher.load(args.batch or dispatcher.DEFAULT_BATCHES[profile.name])

        if args.list:
            for i, tc in enumerate(batch, start=1):
                print(f"{i:3d}  {tc.label}")
            return 0

        if args.max_steps < 0:
            raise ConfigurationError("--max-steps must not be negative")
        if not args.engine or not args.assembler:
            raise ConfigurationError("--engine and --assembler are required to run a batch")
        make_engine = dispatcher.load_factory(args.engine)
        make_assembler = dispatcher.load_factory(args.assembler)
    except HarnessError as e:
        for line in e.report():
            print(line)
        return e.exit_status

    config = HarnessConfig(
        profile=profile,
        max_steps=args.max_steps or None,
        pc_policy=delta.no_default if args.no_pc_default else delta.offset(args.pc_offset),
        collect_metrics=args.metrics,
    )
    return run_batch(
        batch, config, make_engine, make_assembler,
        metrics=BatchMetrics() if args.metrics else None,
    )


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
