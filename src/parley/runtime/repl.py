import asyncio
import logging

from parley.runtime.builtins import BuiltinCommands
from parley.runtime.coordinator import SendState
from parley.runtime.router import InputRouter

logger = logging.getLogger(__name__)


class ParleyREPL:
    def __init__(self, runtime):
        self.runtime = runtime
        self.builtins = BuiltinCommands(runtime)
        self.router = InputRouter(self.builtins)

    async def process_user_message(self, text: str) -> None:
        result = await self.runtime.send(text)
        if result.state == SendState.SESSION_CREATED:
            print("Started a new conversation. Send your message again.")

    def run(self, initial_message: str | None = None):
        print(f"💬 Parley started (model: {self.runtime.current_model.value})")
        print("Commands: /help for all commands")
        print()

        pending = initial_message
        with asyncio.Runner() as runner:
            while True:
                try:
                    if pending:
                        text, pending = pending, None
                        runner.run(self.process_user_message(text))
                        continue

                    user_input = input("\n> ").strip()

                    if not user_input:
                        continue

                    route = self.router.route(user_input)
                    if route.kind == "builtin":
                        if not self.builtins.handle(route.name, route.args):
                            break
                        continue
                    if route.kind == "unknown":
                        print(
                            f"Unknown command: /{route.name}. Type /help for available commands."
                        )
                        continue

                    runner.run(self.process_user_message(route.args))

                except KeyboardInterrupt:
                    print("\n\n⚠️  Interrupted")
                    break
                except EOFError:
                    break
                except Exception as e:
                    logger.exception("Unexpected REPL error")
                    print(f"\n❌ Error: {e}")
