from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv

from parley.config import ASPECT_RATIOS, AppConfig, ConfigError, ImageGenConfig, ModelId
from parley.credentials import CredentialGate, TerminalKeySelector
from parley.prompts import render_key_gate
from parley.runtime.coordinator import SendState
from parley.runtime.repl import ParleyREPL
from parley.runtime.runtime import ChatRuntime


def main() -> int:
    load_dotenv()
    return _main(sys.argv[1:])


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parley", description="Parley - terminal chat for Gemini")
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=False)

    models = [m.value for m in ModelId]

    repl = subparsers.add_parser("repl", help="Start an interactive chat (default)")
    repl.add_argument("--model", default=None, choices=models, help="Model for this and future conversations")
    repl.add_argument("--message", "-m", help="First message to send")

    sessions = subparsers.add_parser("sessions", help="List conversations")
    sessions.add_argument("--archived", action="store_true", help="Only show archived conversations")

    send = subparsers.add_parser("send", help="Send one message to the current conversation")
    send.add_argument("text")
    send.add_argument("--image", default=None, help="Image file to attach")
    send.add_argument("--model", default=None, choices=models)
    send.add_argument("--aspect-ratio", default="1:1", choices=ASPECT_RATIOS)
    send.add_argument("--style", default=None)
    send.add_argument("--negative-prompt", default=None)
    return parser


def _main(argv: list[str]) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    command = args.command or "repl"
    try:
        config = AppConfig.from_env(model=getattr(args, "model", None))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if command == "sessions":
        return _cmd_sessions(config, args)

    if not _check_credentials(config):
        return 1

    if command == "send":
        return _cmd_send(config, args)
    return _cmd_repl(config, args)


def _check_credentials(config: AppConfig) -> bool:
    selector = TerminalKeySelector(config.api_key_env) if sys.stdin.isatty() else None
    gate = CredentialGate(selector=selector, env_var=config.api_key_env)
    if gate.check():
        return True

    print(render_key_gate(config.api_key_env), file=sys.stderr)
    if selector is not None and gate.connect():
        return True
    return False


def _cmd_sessions(config: AppConfig, args) -> int:
    runtime = ChatRuntime(config, echo=False)
    sessions = runtime.store.load()
    if args.archived:
        sessions = [s for s in sessions if s.is_archived]
    if not sessions:
        print("No conversations")
        return 0
    for session in sessions:
        archived = " (archived)" if session.is_archived else ""
        print(f"{session.id}  {session.title}{archived}  [{session.model_id.value}, {len(session.messages)} msgs]")
    return 0


def _cmd_send(config: AppConfig, args) -> int:
    runtime = ChatRuntime(config)
    runtime.open()
    try:
        if args.image:
            runtime.attach_image(args.image)
        runtime.image_config = ImageGenConfig(
            aspect_ratio=args.aspect_ratio,
            style=args.style,
            negative_prompt=args.negative_prompt,
        )
    except (ConfigError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def _run() -> SendState:
        result = await runtime.send(args.text)
        if result.state == SendState.SESSION_CREATED:
            print("Started a new conversation. Send your message again.")
        return result.state

    state = asyncio.run(_run())
    return 0 if state == SendState.SEALED else 1


def _cmd_repl(config: AppConfig, args) -> int:
    runtime = ChatRuntime(config)
    runtime.open()
    repl = ParleyREPL(runtime)
    repl.run(initial_message=args.message)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
