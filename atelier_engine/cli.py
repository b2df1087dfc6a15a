"""Atelier CLI entrypoints."""

from __future__ import annotations

import argparse
import asyncio
import uuid
from datetime import datetime
from pathlib import Path

from .catalog import ASPECT_RATIOS, DEFAULT_ASPECT_RATIO, SAMPLE_PROMPTS
from .cli_progress import ProgressTicker
from .codec import MAX_UPLOAD_BYTES, is_accepted_upload, mime_type_for_suffix, read_upload
from .engine import AtelierEngine
from .errors import CodecError
from .history import HistoryStore
from .log_setup import setup_logging
from .providers import default_gateway
from .runs.events import EventWriter
from .session import Session
from .settings import AtelierSettings, load_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atelier", description="Atelier image studio engine")
    sub = parser.add_subparsers(dest="command")

    generate = sub.add_parser("generate", help="Generate or edit an image")
    generate.add_argument("--prompt", default="")
    generate.add_argument("--image", help="Source image to edit (png, jpeg, webp)")
    generate.add_argument("--aspect-ratio", dest="aspect_ratio", choices=ASPECT_RATIOS, default=DEFAULT_ASPECT_RATIO)
    generate.add_argument("--upscale", action="store_true", help="Upscale the result after generating")
    generate.add_argument("--out", required=True, help="Directory for the saved result")
    generate.add_argument("--dryrun", action="store_true", help="Use the offline gateway")

    regenerate = sub.add_parser("regenerate", help="Regenerate a history entry")
    regenerate.add_argument("--index", type=int, default=0, help="History position, 0 is newest")
    regenerate.add_argument("--aspect-ratio", dest="aspect_ratio", choices=ASPECT_RATIOS, default=DEFAULT_ASPECT_RATIO)
    regenerate.add_argument("--out", required=True)
    regenerate.add_argument("--dryrun", action="store_true")

    history = sub.add_parser("history", help="Inspect or clear history")
    history.add_argument("action", choices=("list", "clear"))

    sub.add_parser("samples", help="List sample prompts")
    return parser


def _build_engine(settings: AtelierSettings, session: Session | None = None) -> AtelierEngine:
    events = EventWriter(settings.events_path, str(uuid.uuid4())) if settings.events_path else None
    history = HistoryStore(settings.history_path, thumbnail_size=settings.thumbnail_size)
    return AtelierEngine(default_gateway(settings), history, session=session, events=events)


async def _run_flow(engine: AtelierEngine, flow) -> None:
    async with ProgressTicker(lambda: engine.session.loading_message):
        await flow


def _report(engine: AtelierEngine, out_dir: Path) -> int:
    session = engine.session
    if session.result is not None:
        try:
            saved = engine.save_result(out_dir)
        except OSError as exc:
            print(f"Could not save result to {out_dir}: {exc}")
            return 1
        suffix = " (upscaled)" if session.is_upscaled else ""
        print(f"Saved {saved}{suffix}")
    if session.error is not None:
        print(session.error.message)
        return 1
    return 0


def _handle_generate(args: argparse.Namespace, settings: AtelierSettings) -> int:
    session = Session(prompt=args.prompt, aspect_ratio=args.aspect_ratio)
    engine = _build_engine(settings, session)

    async def _main() -> int:
        if args.image:
            path = Path(args.image)
            mime_type = mime_type_for_suffix(path.suffix)
            if not is_accepted_upload(mime_type):
                print(f"Unsupported image type: {path.suffix or path.name}. Use PNG, JPG or WEBP.")
                return 1
            if path.exists() and path.stat().st_size > MAX_UPLOAD_BYTES:
                print("Warning: image exceeds the advertised 4MB upload limit.")
            try:
                session.set_source_image(await read_upload(path, mime_type))
            except CodecError as exc:
                print(str(exc))
                return 1
        await _run_flow(engine, engine.submit())
        if args.upscale and session.result is not None and session.error is None:
            await _run_flow(engine, engine.submit_upscale())
        return _report(engine, Path(args.out))

    return asyncio.run(_main())


def _handle_regenerate(args: argparse.Namespace, settings: AtelierSettings) -> int:
    engine = _build_engine(settings, Session(aspect_ratio=args.aspect_ratio))
    items = engine.history_items
    if not 0 <= args.index < len(items):
        print(f"No history entry at index {args.index} ({len(items)} stored).")
        return 1

    async def _main() -> int:
        await _run_flow(engine, engine.regenerate_from_history(items[args.index]))
        return _report(engine, Path(args.out))

    return asyncio.run(_main())


def _format_timestamp(timestamp_ms: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "unknown time"


def _handle_history(args: argparse.Namespace, settings: AtelierSettings) -> int:
    if args.action == "clear":
        _build_engine(settings).clear_history()
        print("History cleared.")
        return 0
    store = HistoryStore(settings.history_path, thumbnail_size=settings.thumbnail_size)
    items = store.load()
    if not items:
        print("No history yet.")
        return 0
    for idx, item in enumerate(items):
        print(f"[{idx}] {_format_timestamp(item.timestamp)}  {item.prompt}")
    return 0


def _handle_samples() -> int:
    for category, prompts in SAMPLE_PROMPTS.items():
        print(category)
        for prompt in prompts:
            print(f"  - {prompt}")
    return 0


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        raise SystemExit(1)
    settings = load_settings(gateway="dryrun" if getattr(args, "dryrun", False) else None)
    setup_logging(settings)
    if args.command == "generate":
        raise SystemExit(_handle_generate(args, settings))
    if args.command == "regenerate":
        raise SystemExit(_handle_regenerate(args, settings))
    if args.command == "history":
        raise SystemExit(_handle_history(args, settings))
    if args.command == "samples":
        raise SystemExit(_handle_samples())
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
