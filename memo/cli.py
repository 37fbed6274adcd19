"""
Memo CLI - Command-line interface for the engine.

Usage:
    memo play [--players N] [--theme T]   Play in the terminal
    memo stats                            Show solo best/last times
    memo reset                            Erase saved names, records, settings

Serve the REST API with: uvicorn memo.api.app:app
"""

import argparse
import asyncio
import logging
import random
import sys

from .engine_core import GameEvent, MISMATCH_DELAY_MS, format_duration
from .session import GameEngine, ManualScheduler
from .storage import GameRepository, JsonFileStore


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Memo - memory-matching card game",
        prog="memo",
    )
    parser.add_argument("--data-dir", help="Directory for saved data (default ~/.memo)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play in the terminal")
    play_parser.add_argument("--players", type=int, help="Number of players (1-4)")
    play_parser.add_argument("--theme", help="Animals, Food, Random or Mixed")
    play_parser.add_argument("--seed", type=int, help="Seed for a reproducible deck")

    subparsers.add_parser("stats", help="Show solo records")
    subparsers.add_parser("reset", help="Erase all saved data")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "play":
        asyncio.run(cmd_play(args))
    elif args.command == "stats":
        asyncio.run(cmd_stats(args))
    elif args.command == "reset":
        asyncio.run(cmd_reset(args))
    else:
        parser.print_help()
        sys.exit(1)


def _engine(args) -> GameEngine:
    return GameEngine(
        repository=GameRepository(JsonFileStore(args.data_dir)),
        scheduler=ManualScheduler(),
        rng=random.Random(getattr(args, "seed", None)),
    )


def render(engine: GameEngine, columns: int = 5) -> str:
    """Draw the table as text: face-up emoji, hidden cards as their index."""
    snapshot = engine.snapshot()
    rows = []
    for start in range(0, len(snapshot.cards), columns):
        cells = []
        for i, card in enumerate(snapshot.cards[start:start + columns], start):
            cells.append(f" {card.emoji} " if card.is_flipped or card.is_matched else f"[{i:2d}]")
        rows.append(" ".join(cells))

    scores = "  ".join(
        f"{'>' if i == snapshot.current_player_index else ' '}{p.name}: {p.score}"
        for i, p in enumerate(snapshot.players)
    )
    return "\n".join(rows + ["", scores])


def _print_completion(engine: GameEngine):
    report = engine.snapshot().completion
    if report is None:
        return
    print(f"\n{report.winner.headline}")
    for line in report.winner.summary_lines():
        print(f"  {line}")
    print(f"Time: {format_duration(report.duration_ms)}")
    if report.stats is not None:
        if report.is_new_best:
            print("New best time!")
        print(f"Best: {format_duration(report.stats.best_time)}")


async def cmd_play(args):
    """Interactive game loop."""
    engine = _engine(args)
    await engine.start()

    if args.players is not None or args.theme is not None:
        await engine.apply_settings(
            args.players if args.players is not None else engine.settings.player_count,
            args.theme if args.theme is not None else engine.settings.theme,
        )

    for notice in engine.error_handler.notices:
        print(f"! {notice.message}")

    print("Enter a card number to flip it. 'r' restarts, 'n <id> <name>' renames, 'q' quits.\n")
    print(render(engine))

    try:
        while True:
            try:
                line = input("\n> ").strip()
            except EOFError:
                break

            if line == "q":
                break
            if line == "r":
                await engine.reset_game()
                print(render(engine))
                continue
            if line.startswith("n "):
                parts = line.split(maxsplit=2)
                if len(parts) == 3 and parts[1].isdigit():
                    try:
                        await engine.edit_player_name(int(parts[1]), parts[2])
                    except KeyError:
                        print(f"No player {parts[1]}")
                print(render(engine))
                continue
            if not line.lstrip("-").isdigit():
                print("Enter a card number")
                continue

            result = await engine.flip_card(int(line))
            if result.ignored:
                print(f"(ignored: {result.reason})")
            print(render(engine))

            if GameEvent.MISMATCHED in result.events:
                await asyncio.sleep(MISMATCH_DELAY_MS / 1000)
            engine.scheduler.run_all()

            if GameEvent.MISMATCHED in result.events:
                print("\nNo match.\n")
                print(render(engine))

            if GameEvent.GAME_OVER in result.events:
                _print_completion(engine)
                print("\n'r' to play again, 'q' to quit.")
    finally:
        await engine.shutdown()


async def cmd_stats(args):
    """Show solo records."""
    engine = _engine(args)
    await engine.start()
    print(f"Best time: {format_duration(engine.stats.best_time)}")
    print(f"Last game: {format_duration(engine.stats.last_game_time)}")


async def cmd_reset(args):
    """Erase all saved data."""
    engine = _engine(args)
    await engine.start()
    if await engine.reset_all_data():
        print("All game data has been reset!")
    else:
        print("Failed to reset game data. Please try again.")
        sys.exit(1)


if __name__ == "__main__":
    main()
