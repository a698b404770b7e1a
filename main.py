import argparse
import asyncio
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from models.errors import PipelineError
from orchestrator.core import DocsAssistantOrchestrator


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation until the first answer chunk arrives.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mSearching docs {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    sys.stdout.write('\r' + ' ' * 24 + '\r')
    sys.stdout.flush()


async def ask(orchestrator: DocsAssistantOrchestrator, question: str) -> None:
    """Run one question through the pipeline and print the answer as it streams."""
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()

    try:
        stream = await orchestrator.answer(question)
    finally:
        stop_animation.set()
        loading_thread.join()

    sys.stdout.write("\nAssistant: ")
    async for chunk in stream:
        sys.stdout.write(chunk)
        sys.stdout.flush()
    sys.stdout.write("\n\n")


def report_error(exc: Exception) -> None:
    if isinstance(exc, PipelineError) and exc.is_user_error:
        print(f"\n{exc.message}\n")
    elif isinstance(exc, PipelineError):
        print(f"\nError: {exc.message}")
        if exc.data:
            print(f"Details: {exc.data}\n")
    else:
        print(f"\nError: {exc!s}\n")


def interactive(orchestrator: DocsAssistantOrchestrator) -> None:
    print("\n=== Docs Assistant ===")
    print("Ask a question about the documentation. Type 'help' for commands or 'exit' to quit.\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("exit/quit - Exit the program")
                print("Anything else is sent as a question.\n")
                continue

            asyncio.run(ask(orchestrator, user_input))

        except KeyboardInterrupt:
            print("\nExiting...")
            break
        except Exception as e:
            report_error(e)
            continue


def main() -> int:
    parser = argparse.ArgumentParser(description="Ask the documentation assistant from the terminal")
    parser.add_argument("-q", "--question", help="Ask a single question and exit")
    args = parser.parse_args()

    orchestrator = DocsAssistantOrchestrator(Config.from_env())

    if args.question:
        try:
            asyncio.run(ask(orchestrator, args.question))
        except Exception as e:
            report_error(e)
            return 1
        return 0

    interactive(orchestrator)
    return 0


if __name__ == "__main__":
    sys.exit(main())
