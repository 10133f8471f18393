"""Command-line batch runner for cdnWatch."""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import IO, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.text import Text
from rich.traceback import install as install_rich_traceback

from cdnWatch.detector.config import DetectorConfig
from cdnWatch.detector.engine import CDNDetector
from cdnWatch.detector.models import DomainQueryOutcome, OutcomeKind
from cdnWatch.logging_config import get_logger, sanitize_log_data

install_rich_traceback()
logger = get_logger("runner")

BANNER = r"""
          _       __        __    _       _
  ___  __| |_ __  \ \      / /_ _| |_ ___| |__
 / __|/ _` | '_ \  \ \ /\ / / _` | __/ __| '_ \
| (__| (_| | | | |  \ V  V / (_| | || (__| | | |
 \___|\__,_|_| |_|   \_/\_/ \__,_|\__\___|_| |_|
"""

MASKED_IP = "xx.xx.xx.xx"


def format_outcome(outcome: DomainQueryOutcome) -> str:
    """Render one outcome as a rich-markup result line."""
    domain = escape(outcome.domain)
    if outcome.kind is OutcomeKind.UNRESOLVABLE:
        return f"[red][-][/red] {domain} -- could not resolve ([red]{MASKED_IP}[/red])"
    if outcome.kind is OutcomeKind.RESOLVED_CDN:
        return f"[red][-][/red] {domain} -- CDN detected ([red]{MASKED_IP}[/red])"
    return f"[green][+][/green] {domain} -- no CDN ([yellow]{outcome.representative_ip}[/yellow])"


def read_domains(path: str) -> List[str]:
    """Domains from a newline-delimited file, blank lines skipped."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return [line.strip() for line in lines if line.strip()]


class ResultSink:
    """Fans each result line out to the console, the plain-text copy and the IP list."""

    def __init__(
        self,
        console: Console,
        output: Optional[IO[str]] = None,
        ip_output: Optional[IO[str]] = None,
    ):
        self.console = console
        self.output = output
        self.ip_output = ip_output

    def emit(self, line: str) -> None:
        self.console.print(line, highlight=False)
        if self.output is not None:
            self.output.write(Text.from_markup(line).plain + "\n")

    def record(self, outcome: DomainQueryOutcome) -> None:
        self.emit(format_outcome(outcome))
        if self.ip_output is not None and outcome.kind is OutcomeKind.RESOLVED_NO_CDN:
            self.ip_output.write(f"{outcome.representative_ip}\n")


async def process_domain(detector: CDNDetector, domain: str, sink: ResultSink) -> Optional[DomainQueryOutcome]:
    try:
        outcome = await detector.detect(domain)
    except Exception as exc:
        logger.error(
            f"Detection failed for {domain}: {exc}",
            exc_info=True,
            extra={"outcome": "error", "error_type": type(exc).__name__},
        )
        sink.emit(f"[red][-][/red] detection failed for {escape(domain)}: {escape(str(exc))}")
        return None
    sink.record(outcome)
    return outcome


async def run_batch(
    detector: CDNDetector,
    domains: Iterable[str],
    sink: ResultSink,
    *,
    concurrency: int,
) -> List[Optional[DomainQueryOutcome]]:
    """Inspect every domain with at most ``concurrency`` detections in flight."""
    domains = list(domains)
    sem = asyncio.Semaphore(concurrency)

    logger.info(
        "Starting batch",
        extra={"action": "batch_start", "batch_size": len(domains), "concurrency": concurrency},
    )

    async def _one(domain: str) -> Optional[DomainQueryOutcome]:
        async with sem:
            return await process_domain(detector, domain, sink)

    results = await asyncio.gather(*(_one(d) for d in domains))
    logger.info(
        "Batch completed",
        extra={
            "action": "batch_end",
            "batch_size": len(domains),
            "outcome": "success",
            "failed": sum(1 for r in results if r is None),
        },
    )
    return list(results)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cdnwatch", description="Detect whether domains sit behind a CDN")
    parser.add_argument("-d", "--domain", default="", help="Single domain to inspect")
    parser.add_argument("-f", "--filename", default="", help="File with one domain per line")
    parser.add_argument("-o", "--output", default="", help="Write a plain-text copy of every result line")
    parser.add_argument("-O", "--output-ip", default="", help="Write only the IPs of domains without a CDN")
    parser.add_argument("-t", "--thread", type=int, default=None, help="Domains inspected concurrently (default 30)")
    parser.add_argument(
        "--config",
        default=os.getenv("CDNWATCH_CONFIG", ""),
        help="Path to detector YAML config",
    )
    return parser


async def run(args: argparse.Namespace, console: Console) -> int:
    domain = args.domain.strip()
    if not domain and not args.filename:
        console.print("[yellow][!][/yellow] Use -h for usage")
        return 0
    if domain and args.filename:
        console.print("[red][-][/red] Error: -d and -f cannot be used together")
        return 1

    cfg = DetectorConfig.load(args.config) if args.config else DetectorConfig()
    if args.thread is not None:
        if args.thread < 1:
            console.print("[red][-][/red] Error: -t must be at least 1")
            return 1
        cfg.runner.concurrency = args.thread
    logger.debug(f"Detector configuration: {sanitize_log_data(cfg.model_dump())}", extra={"action": "configure"})

    if args.filename:
        try:
            domains = read_domains(args.filename)
        except OSError as exc:
            console.print(f"[red][-][/red] Error opening file: {escape(str(exc))}")
            return 1
    else:
        domains = [domain]

    with ExitStack() as stack:
        output = stack.enter_context(open(args.output, "w", encoding="utf-8")) if args.output else None
        ip_output = stack.enter_context(open(args.output_ip, "w", encoding="utf-8")) if args.output_ip else None
        sink = ResultSink(console, output, ip_output)
        await run_batch(CDNDetector(cfg), domains, sink, concurrency=cfg.runner.concurrency)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    console = Console()
    console.print(f"[green]{escape(BANNER)}[/green]", highlight=False)
    try:
        code = asyncio.run(run(args, console))
    except (OSError, ValueError) as exc:
        console.print(f"[red][-][/red] {escape(str(exc))}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
