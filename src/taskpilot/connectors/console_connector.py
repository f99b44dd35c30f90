# src/taskpilot/connectors/console_connector.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..errors import StorageFailure

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _storage_failure_reply(where: str) -> str:
    ref = uuid.uuid4().hex[:8]
    logger.exception("Storage failure in %s (ref=%s)", where, ref)
    return f"Something went wrong, please retry. (ref {ref})"


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (agent=%s).", state.agent.name)
    _print_ts("[CONSOLE] Type your messages. Use /help for commands. Use /exit to quit.\n")

    app_name = str(getattr(state.settings, "app_name", "taskpilot"))

    while True:
        try:
            user_input = input(">>> You: ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Commands (/help, /tasks, ...)
        try:
            cmd_response = command_registry.handle(state, user_input)
        except StorageFailure:
            cmd_response = _storage_failure_reply("command")
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        try:
            reply = state.agent.chat(user_input, {"source": "console"})
        except StorageFailure:
            _print_ts(_storage_failure_reply("chat"))
            continue
        except Exception:
            logger.exception("Console chat handler crashed.")
            _print_ts("Internal error while generating a reply.")
            continue

        print(f"[{_ts_local()}] <<< {app_name}: {reply['response']}\n")

    logger.info("Console connector finished.")
