#!/usr/bin/env python3
"""Research assistant CLI."""

import argparse
import logging
import sys
from config.settings import Settings
from orchestrator import AssistantOrchestrator


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="AI-kun - answers questions with web and social research"
    )
    parser.add_argument(
        "--message",
        "-m",
        type=str,
        help="Message to send (omit for an interactive session)"
    )
    parser.add_argument(
        "--conversation-id",
        "-c",
        type=str,
        default="cli",
        help="Conversation ID whose history is used (default: cli)"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear the conversation history and exit"
    )
    parser.add_argument(
        "--provider",
        type=str,
        choices=["openai", "anthropic"],
        default="openai",
        help="LLM provider (default: openai)"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default="data/conversations.db",
        help="SQLite database for conversation history"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = Settings(
        llm_provider=args.provider,
        db_path=args.db_path,
        verbose=args.verbose,
    )

    orchestrator = AssistantOrchestrator(settings=settings)

    if args.reset:
        print(orchestrator.reset(args.conversation_id))
        return

    try:
        if args.message:
            print(orchestrator.reply_to_text(args.conversation_id, args.message))
            return

        print("AI-kun (Ctrl-D to quit)")
        while True:
            try:
                message = input("> ").strip()
            except EOFError:
                print()
                break
            if not message:
                continue
            print(orchestrator.reply_to_text(args.conversation_id, message))
            print()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
