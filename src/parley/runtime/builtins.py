from datetime import datetime

from parley.config import (
    ASPECT_RATIOS,
    IMAGE_STYLES,
    MODEL_LABELS,
    ConfigError,
    ImageGenConfig,
    parse_model_id,
)
from parley.sessions.manager import SessionError


def _format_ts(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


class BuiltinCommands:
    def __init__(self, runtime):
        self.runtime = runtime
        self._handlers = {
            "quit": self.cmd_quit,
            "exit": self.cmd_quit,
            "help": self.cmd_help,
            "new": self.cmd_new,
            "sessions": self.cmd_sessions,
            "switch": self.cmd_switch,
            "rename": self.cmd_rename,
            "archive": self.cmd_archive,
            "unarchive": self.cmd_unarchive,
            "delete": self.cmd_delete,
            "clear": self.cmd_clear,
            "model": self.cmd_model,
            "image": self.cmd_image,
            "aspect": self.cmd_aspect,
            "style": self.cmd_style,
            "negative": self.cmd_negative,
            "history": self.cmd_history,
            "dismiss": self.cmd_dismiss,
        }

    @property
    def manager(self):
        return self.runtime.manager

    def list_commands(self) -> list[str]:
        return sorted(self._handlers.keys())

    def has_command(self, name: str) -> bool:
        return name in self._handlers

    def handle(self, name: str, args: str) -> bool:
        handler = self._handlers.get(name)
        if not handler:
            return True
        try:
            return handler(args)
        except (SessionError, ConfigError, ValueError, OSError) as e:
            print(f"❌ {e}")
            return True

    def _target_id(self, args: str) -> str | None:
        if args.strip():
            return self.manager.resolve_session_id(args)
        return self.manager.current_session_id

    def cmd_quit(self, args: str) -> bool:
        print("👋 Goodbye!")
        return False

    def cmd_new(self, args: str) -> bool:
        self.manager.create_session()
        return True

    def cmd_sessions(self, args: str) -> bool:
        active = self.manager.list_active()
        archived = self.manager.list_archived()
        if not active and not archived:
            print("No conversations")
            return True
        print("Conversations:")
        for session in active:
            self._print_session(session)
        if archived:
            print(f"Archived ({len(archived)}):")
            for session in archived:
                self._print_session(session)
        return True

    def _print_session(self, session) -> None:
        marker = "▶" if session.id == self.manager.current_session_id else "•"
        print(
            f"  {marker} {session.id[:8]}  {session.title}  "
            f"[{session.model_id.value}, {len(session.messages)} msgs, {_format_ts(session.created_at)}]"
        )

    def cmd_switch(self, args: str) -> bool:
        if not args.strip():
            print("Usage: /switch <id>")
            return True
        session_id = self.manager.resolve_session_id(args)
        self.manager.select_session(session_id)
        session = self.manager.current_session
        print(f"✅ Switched to {session.title}")
        return True

    def cmd_rename(self, args: str) -> bool:
        if not args.strip():
            print("Usage: /rename <title>")
            return True
        session_id = self.manager.current_session_id
        if session_id is None or not self.manager.rename_session(session_id, args):
            print("❌ No conversation selected")
            return True
        print(f"✅ Renamed to {args.strip()}")
        return True

    def cmd_archive(self, args: str) -> bool:
        session_id = self._target_id(args)
        if session_id is None or not self.manager.archive_session(session_id):
            print("❌ No conversation selected")
            return True
        print("✅ Archived")
        return True

    def cmd_unarchive(self, args: str) -> bool:
        session_id = self._target_id(args)
        if session_id is None or not self.manager.unarchive_session(session_id):
            print("❌ No conversation selected")
            return True
        print("✅ Unarchived")
        return True

    def cmd_delete(self, args: str) -> bool:
        session_id = self._target_id(args)
        if session_id is None or not self.manager.delete_session(session_id):
            print("❌ No conversation selected")
            return True
        current = self.manager.current_session
        print(f"✅ Deleted. Current: {current.title if current else 'none'}")
        return True

    def cmd_clear(self, args: str) -> bool:
        session_id = self.manager.current_session_id
        if session_id is None or not self.manager.clear_messages(session_id):
            print("❌ No conversation selected")
            return True
        print("✅ Cleared conversation")
        return True

    def cmd_model(self, args: str) -> bool:
        if not args.strip():
            print(f"Current model: {self.runtime.current_model.value}")
            for model_id, label in MODEL_LABELS.items():
                print(f"  {model_id.value:<9} {label}")
            return True
        self.manager.set_model(parse_model_id(args))
        print(f"✅ Switched to model: {self.runtime.current_model.value}")
        return True

    def cmd_image(self, args: str) -> bool:
        if not args.strip():
            if self.runtime.pending_image:
                self.runtime.pending_image = None
                print("✅ Removed attached image")
            else:
                print("Usage: /image <path>")
            return True
        self.runtime.attach_image(args.strip())
        print(f"📎 Attached {args.strip()} to the next message")
        return True

    def cmd_aspect(self, args: str) -> bool:
        if not args.strip():
            print(f"Aspect ratio: {self.runtime.image_config.aspect_ratio} (choose from: {', '.join(ASPECT_RATIOS)})")
            return True
        current = self.runtime.image_config
        self.runtime.image_config = ImageGenConfig(
            aspect_ratio=args.strip(),
            style=current.style,
            negative_prompt=current.negative_prompt,
        )
        print(f"✅ Aspect ratio: {args.strip()}")
        return True

    def cmd_style(self, args: str) -> bool:
        if not args.strip():
            print(f"Style: {self.runtime.image_config.style or 'none'}")
            print(f"Suggestions: {', '.join(IMAGE_STYLES)} (or /style none)")
            return True
        style = args.strip()
        self.runtime.image_config.style = None if style.lower() == "none" else style
        print(f"✅ Style: {self.runtime.image_config.style or 'none'}")
        return True

    def cmd_negative(self, args: str) -> bool:
        negative = args.strip()
        self.runtime.image_config.negative_prompt = (
            None if not negative or negative.lower() == "none" else negative
        )
        print(f"✅ Negative prompt: {self.runtime.image_config.negative_prompt or 'none'}")
        return True

    def cmd_history(self, args: str) -> bool:
        session = self.manager.current_session
        if session is None or not session.messages:
            print("No messages")
            return True
        print(f"{session.title}")
        for message in session.messages:
            who = "You" if message.role == "user" else "Assistant"
            flags = " [error]" if message.is_error else ""
            attachment = " 📎" if message.image else ""
            print(f"\n{who} | {_format_ts(message.timestamp)}{flags}{attachment}")
            print(message.content)
        return True

    def cmd_dismiss(self, args: str) -> bool:
        session = self.manager.current_session
        errors = [m for m in session.messages if m.is_error] if session else []
        if not errors:
            print("No error messages to dismiss")
            return True
        self.manager.delete_message(session.id, errors[-1].id)
        print("✅ Dismissed error message")
        return True

    def cmd_help(self, args: str) -> bool:
        print("\nCommands:")
        for name in self.list_commands():
            print(f"  /{name}")
        print()
        return True
