"""
Coincache — run.py
Main entry point: a text console over the cache engine.
Resumes the last session on start and saves it on quit.
"""

import logging
import sys
from pathlib import Path

# Ensure we can import coincache packages
project_root = Path(__file__).parent.resolve()
sys.path.insert(0, str(project_root))

from engine.commands import CommandInterpreter, HELP_TEXT
from engine.session import GameSession


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    session = GameSession()
    session.resume()
    console = CommandInterpreter(session)
    print(HELP_TEXT)

    try:
        while console.running:
            try:
                line = input("> ")
            except EOFError:
                break
            output = console.execute(line)
            if output:
                print(output)
    finally:
        session.save()

if __name__ == "__main__":
    main()
