#!/usr/bin/env python3
"""
keyreg - Register an SSH public key on a remote server

Adds a public key to the remote user's ~/.ssh/authorized_keys (creating it
with the right permissions), skipping keys that are already there, and then
checks that passwordless login works.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from keyreg.config import DEFAULT_CONFIG_FILE, TRANSPORTS, Config
from keyreg.keys import DEFAULT_GENERATED_KEY, DEFAULT_PUBLIC_KEY
from keyreg.registrar import KeyRegistrar
from keyreg.remote import ParamikoExec, SshCommandExec, Target, find_copy_id
from shared.errors import InvalidArgumentError
from shared.logging_config import (
    CONSOLE_LOG_FORMAT,
    DEFAULT_LOG_FORMAT,
    get_default_log_file,
    setup_logging,
)
from shared.version import __version__

logger = logging.getLogger("keyreg")

EPILOG = """\
examples:
  keyreg root@192.168.1.100
  keyreg user@example.com ~/.ssh/id_ed25519.pub
  keyreg -g -p 2222 user@example.com
"""


@dataclass(frozen=True)
class Options:
    """Parsed command-line arguments."""
    target: str
    public_key: Optional[Path] = None
    generate: bool = False
    port: Optional[int] = None
    comment: Optional[str] = None
    assume_yes: bool = False
    no_copy_id: bool = False
    transport: Optional[str] = None
    config: Optional[Path] = None
    verbose: bool = False
    log_file: Optional[str] = None


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message):
        raise InvalidArgumentError(message)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="keyreg",
        description="Add an SSH public key to a remote server's authorized_keys",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("target", nargs="?", help="User and server address (e.g. user@192.168.1.100)")
    parser.add_argument(
        "public_key",
        nargs="?",
        type=Path,
        help=f"Path to the public key (default: {DEFAULT_PUBLIC_KEY})",
    )
    parser.add_argument(
        "-g", "--generate",
        action="store_true",
        help=f"Generate a new ed25519 key pair before sending (default: {DEFAULT_GENERATED_KEY})",
    )
    parser.add_argument("-p", "--port", type=int, help="SSH port (default: 22)")
    parser.add_argument("-C", "--comment", help="Comment for a generated key (default: user@hostname)")
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to every question")
    parser.add_argument("--no-copy-id", action="store_true", help="Never use ssh-copy-id")
    parser.add_argument("--transport", choices=TRANSPORTS, help="Remote execution backend (default: ssh)")
    parser.add_argument("-c", "--config", type=Path, help=f"Path to config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", metavar="PATH", help="Also log to PATH")
    parser.add_argument(
        "--log",
        action="store_true",
        help=f"Also log to the default log file ({get_default_log_file()})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_options(argv: Optional[list[str]] = None, parser: Optional[ArgumentParser] = None) -> Options:
    """
    Parse command-line arguments into an Options struct.

    Raises:
        InvalidArgumentError: on unknown flags, extra positionals or a missing target
    """
    parser = parser or build_parser()
    args = parser.parse_args(argv)

    if not args.target:
        raise InvalidArgumentError("You must specify the remote server", "target")

    return Options(
        target=args.target,
        public_key=args.public_key,
        generate=args.generate,
        port=args.port,
        comment=args.comment,
        assume_yes=args.yes,
        no_copy_id=args.no_copy_id,
        transport=args.transport,
        config=args.config,
        verbose=args.verbose,
        log_file=args.log_file or (str(get_default_log_file()) if args.log else None),
    )


def ask_yes_no(question: str) -> bool:
    """Ask a yes/no question on the terminal. Anything but yes means no."""
    try:
        reply = input(f"{question} (y/N): ")
    except EOFError:
        print()
        return False
    return reply.strip().lower() in ("y", "yes")


def build_registrar(options: Options, config: Config) -> KeyRegistrar:
    """Wire the remote channel and helpers selected by options and config."""
    transport = options.transport or config.transport
    if transport == "paramiko":
        remote = ParamikoExec()
    else:
        remote = SshCommandExec(options=config.ssh_options)

    copy_id = None
    if config.use_copy_id and not options.no_copy_id:
        copy_id = find_copy_id()

    confirm = (lambda question: True) if options.assume_yes else ask_yes_no

    return KeyRegistrar(
        remote=remote,
        copy_id=copy_id,
        confirm=confirm,
        connect_timeout=config.connect_timeout,
        default_public_key=Path(config.public_key).expanduser() if config.public_key else DEFAULT_PUBLIC_KEY,
        default_generated_key=(
            Path(config.generated_key).expanduser() if config.generated_key else DEFAULT_GENERATED_KEY
        ),
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    try:
        options = parse_options(argv, parser)
    except InvalidArgumentError as e:
        setup_logging("keyreg", log_format=CONSOLE_LOG_FORMAT)
        logger.error(e.message)
        parser.print_help(sys.stderr)
        return 1

    try:
        config = Config.load(options.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        setup_logging("keyreg", log_format=CONSOLE_LOG_FORMAT)
        logger.error(f"Could not load config: {e}")
        return 1

    setup_logging(
        "keyreg",
        level="DEBUG" if options.verbose else config.log_level,
        log_file=options.log_file or config.log_file,
        log_format=CONSOLE_LOG_FORMAT,
        file_format=DEFAULT_LOG_FORMAT,
    )

    try:
        port = options.port if options.port is not None else config.port
        target = Target(options.target, port)
    except InvalidArgumentError as e:
        logger.error(e.message)
        parser.print_usage(sys.stderr)
        return 1

    registrar = build_registrar(options, config)
    return registrar.run(
        target,
        explicit_path=options.public_key,
        generate=options.generate,
        prompt_if_duplicate=not options.assume_yes,
        comment=options.comment,
    )


if __name__ == "__main__":
    sys.exit(main())
