"""Thin CLI entry point: compiles a broadcast config or serves the control API."""

import argparse
import json
import logging
import sys
from pathlib import Path

from signalforge.config import BroadcastConfig, load_config
from signalforge.engine import Compiler
from signalforge.ffutil import FFmpegNotFoundError, check_ffmpeg


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="signalforge",
        description="SignalForge: broadcast test-signal command compiler for DeckLink outputs.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    comp = sub.add_parser("compile", help="Print the ffmpeg command for a configuration")
    comp.add_argument("--config", "-c", type=Path, help="Path to a JSON broadcast config")
    comp.add_argument("--format", dest="video_format", help="Override the video format (e.g. 720p50)")
    comp.add_argument("--device", help="Override the DeckLink device name")
    comp.add_argument("--json", action="store_true", help="Print args, filter graph and config as JSON")

    serve = sub.add_parser("serve", help="Launch the control API")
    serve.add_argument("--port", type=int, default=8321, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    serve.add_argument("--no-sync", action="store_true", help="Do not run the SNTP clock sync")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from signalforge.web import create_app
        compiler = Compiler()
        try:
            check_ffmpeg(compiler.settings.ffmpeg_path)
        except FFmpegNotFoundError as e:
            print(f"Warning: {e}; previews work but the engine cannot start.", file=sys.stderr)
        app = create_app(compiler, start_sync=not args.no_sync)
        print(f"SignalForge control API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    try:
        config = load_config(args.config) if args.config else BroadcastConfig()
    except (OSError, ValueError) as e:
        print(f"Error: cannot read config: {e}", file=sys.stderr)
        sys.exit(1)

    overrides = config.to_dict()
    if args.video_format:
        overrides["videoFormat"] = args.video_format
    if args.device:
        overrides["decklinkDevice"] = args.device
    config = BroadcastConfig.from_dict(overrides)

    plan = Compiler().compile(config)

    if args.json:
        print(json.dumps({
            "command": plan.command_line(),
            "args": plan.args,
            "filter_graph": plan.filter_graph.render(),
            "config": config.to_dict(),
        }, indent=2))
        return

    print(plan.command_line())
