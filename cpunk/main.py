#!/usr/bin/env python3
"""
cpunk - Cypherpunk Remailer CLI

Builds onion-encrypted messages for a chain of Type-I remailers.

Usage:
    cpunk -d rlist.txt -k pubring.asc -c '*' '*' dizum -t alice@example.org msg.txt
    echo hi | cpunk -d remailers.toml -c paranoia dizum -t bob@example.org -r 3 -f eml -o out/

Exit status:
    0  every copy was built
    1  usage, configuration or directory error
    2  some copies failed (the others are still written)
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional, Tuple

from cypherpunk import __version__
from cypherpunk.config import Config, DEFAULT_CONFIG_PATH, OUTPUT_FORMATS, BACKEND_TYPES
from cypherpunk.crypto import GPGBackend, SealedBackend
from cypherpunk.errors import CypherpunkError
from cypherpunk.onion import Message, Multiplexer, OnionBuilder, RoutingReport
from cypherpunk.packet import format_result, output_filename
from cypherpunk.remailer import load_directory


logger = logging.getLogger("cpunk")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2

COPY_SEPARATOR = "\n"


def parse_header(text: str) -> Tuple[str, str]:
    """Split "Name: value"; argparse type for --header."""
    name, sep, value = text.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {text!r}")
    return name.strip(), value.strip()


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with EXIT_ERROR; status 2 means partial failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_ERROR, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog="cpunk",
        description="Build onion-encrypted messages for Cypherpunk remailer chains",
    )
    parser.add_argument(
        "message",
        nargs="?",
        default="-",
        help="File holding the message body ('-' or omitted: stdin)",
    )
    parser.add_argument(
        "-c", "--chain",
        nargs="+",
        metavar="REMAILER",
        help="Remailer chain, first hop first (at most 8 by default); '*' picks a random remailer",
    )
    parser.add_argument(
        "-t", "--to",
        required=True,
        help="Final recipient address",
    )
    parser.add_argument(
        "-H", "--header",
        action="append",
        type=parse_header,
        default=[],
        metavar="'NAME: VALUE'",
        help="Header pasted for the final recipient (repeatable)",
    )
    parser.add_argument(
        "-r", "--redundancy",
        type=int,
        help="Number of independently routed copies (default 1)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=OUTPUT_FORMATS,
        help="Output format (default native)",
    )
    parser.add_argument(
        "-m", "--mailto-link",
        action="store_true",
        help="Shortcut for --format mailto",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Write one file per copy into this directory instead of stdout",
    )
    parser.add_argument(
        "-d", "--directory",
        type=Path,
        help="Remailer directory: rlist.txt statistics or TOML file",
    )
    parser.add_argument(
        "-k", "--key-file",
        action="append",
        type=Path,
        default=[],
        help="PGP public key file to import (repeatable, gpg backend)",
    )
    parser.add_argument(
        "--backend",
        choices=BACKEND_TYPES,
        help="Encryption backend (default gpg)",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="Copies to build in parallel",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Configuration file path",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"cpunk {__version__}",
    )
    return parser


def apply_arguments(config: Config, args: argparse.Namespace) -> None:
    """Command-line options override the configuration file."""
    if args.redundancy is not None:
        config.chain.redundancy = args.redundancy
    if args.mailto_link:
        config.output.format = "mailto"
    elif args.format:
        config.output.format = args.format
    if args.output:
        config.output.directory = args.output
    if args.directory:
        config.directory = args.directory
    if args.backend:
        config.backend.type = args.backend
    if args.verbose:
        config.log_level = "DEBUG"


def read_message(source: str) -> bytes:
    if source == "-":
        return sys.stdin.buffer.read()
    return Path(source).read_bytes()


def make_backend(config: Config, key_files: List[Path]):
    """Create the configured backend, importing PGP keys if given."""
    if config.backend.type == "sealed":
        if key_files:
            logger.warning("Key files are ignored by the sealed backend")
        return SealedBackend()

    backend = GPGBackend(
        binary=config.backend.gpg_binary,
        temp_dir=config.backend.temp_dir,
        timeout=config.backend.timeout,
        quiet=config.backend.quiet,
    )
    try:
        backend.import_keys(path.read_bytes() for path in key_files)
    except (OSError, CypherpunkError):
        backend.close()
        raise
    return backend


def write_report(report: RoutingReport, config: Config) -> None:
    """Write every successful copy to stdout or the output directory."""
    kind = config.output.format
    out_dir: Optional[Path] = config.output.directory

    if out_dir is not None:
        out_dir.mkdir(parents=True, exist_ok=True)

    for n, result in enumerate(report.results):
        text = format_result(result, kind)
        logger.info(f"Copy {result.index + 1}: {result.chain} (send to {result.first_hop})")
        if out_dir is None:
            if n:
                sys.stdout.write(COPY_SEPARATOR)
            sys.stdout.write(text)
            if not text.endswith("\n"):
                sys.stdout.write("\n")
        else:
            path = out_dir / output_filename(result, kind)
            path.write_text(text, encoding="ascii")
            print(f"{path}\t{result.first_hop}")

    for index, error in report.failures:
        print(f"Copy {index + 1} failed: {error}", file=sys.stderr)
    for index in report.cancelled:
        print(f"Copy {index + 1} cancelled", file=sys.stderr)


def run(argv: Optional[List[str]] = None) -> int:
    """Run the CLI; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.load(args.config)
        apply_arguments(config, args)
        config.validate()
    except CypherpunkError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    chain_spec = args.chain or config.chain.default
    if config.directory is None:
        print("Error: no remailer directory (use --directory)", file=sys.stderr)
        return EXIT_ERROR
    if args.jobs < 1:
        print(f"Error: invalid job count {args.jobs}", file=sys.stderr)
        return EXIT_ERROR

    try:
        directory = load_directory(config.directory)
        body = read_message(args.message)
        message = Message(recipient=args.to, body=body, headers=args.header)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except CypherpunkError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    pool = None
    if config.chain.min_uptime or config.chain.max_latency:
        pool = directory.filtered(config.chain.min_uptime, config.chain.max_latency)

    try:
        backend = make_backend(config, args.key_file)
    except (OSError, CypherpunkError) as e:
        print(f"Error: cannot set up encryption backend: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        mux = Multiplexer(
            directory,
            OnionBuilder(backend, latent_time=config.chain.latent_time),
            workers=args.jobs,
            wildcard_pool=pool,
            max_length=config.chain.max_length,
        )
        report = mux.route(chain_spec, message, config.chain.redundancy)
        write_report(report, config)
    finally:
        if isinstance(backend, GPGBackend):
            backend.close()

    return EXIT_OK if report.ok else EXIT_PARTIAL


def main():
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
