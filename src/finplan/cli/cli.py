from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.shortcuts import PromptSession
from finplan.utils.logger import logger
from finplan.services import build_services
from ..cli import command


completer = WordCompleter(list(command.command_map) + ["quit", "exit"], ignore_case=True)


def interactive_shell() -> None:
    """Prompt loop; every command runs against a fresh services bundle."""
    session = PromptSession()
    while True:
        try:
            result = session.prompt(
                "finplan> ", completer=completer, complete_while_typing=True
            )

            cmd = str(result).strip().lower()
            if cmd in ("quit", "exit"):
                print("Exiting interactive shell.")
                break
            if not cmd:
                continue

            response = command.handle_command(build_services(), cmd)
            logger.debug(f"Executed command: {cmd}")
            print(response)

        except (EOFError, KeyboardInterrupt):
            # Handle Ctrl+D or Ctrl+C to exit gracefully
            print("Exiting interactive shell.")
            break
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            print(f"❌ Command failed: {e}")


def run() -> None:
    interactive_shell()


if __name__ == "__main__":
    run()
