"""Command dispatch for lsectl CLI."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import yaml

from lse.cli.parser import _build_parser, _preprocess_argv
from lse.cli.helpers import _print


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``lsectl`` CLI.

    Parses arguments, loads configuration, and dispatches to the
    appropriate command handler.

    Args:
        argv: Argument list to parse.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 on success, non-zero on error.
    """
    if argv is None:
        argv = sys.argv[1:]

    argv = _preprocess_argv(argv)

    # Late import to allow tests to monkeypatch lse.cli.cmd_xxx and lse.cli.load_config
    import lse.cli as cli

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    try:
        config = cli.load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _print({"error": f"config: {e}"}, json_mode=args.json)
        return 2

    if args.cmd == "commands":
        return cli.cmd_commands(file_path=args.file, json_mode=args.json)
    if args.cmd == "run":
        return cli.cmd_run(
            config=config,
            file_path=args.file,
            command_index=args.command_index,
            platform=args.platform,
            device_id=args.device_id,
            events_path=args.events_path,
            json_mode=args.json,
        )
    if args.cmd == "devices":
        return cli.cmd_devices(config=config, refresh=args.refresh, json_mode=args.json)
    if args.cmd == "free-port":
        start = args.start if args.start is not None else config.inspector_base_port
        return cli.cmd_free_port(start=start, json_mode=args.json)
    if args.cmd == "wait-port":
        return cli.cmd_wait_port(port=args.port, timeout_s=args.timeout, json_mode=args.json)
    if args.cmd == "inspect":
        return cli.cmd_inspect(
            config=config,
            platform=args.platform,
            device_id=args.device_id,
            json_mode=args.json,
        )
    if args.cmd == "gps":
        return cli.cmd_gps(
            config=config,
            action=args.gps_action,
            value=getattr(args, "value", None),
            json_mode=args.json,
        )

    parser.error(f"unknown command: {args.cmd}")
    return 2
