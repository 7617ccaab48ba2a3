"""
Storyplay CLI - Command-line interface for the engine.

Usage:
    storyplay validate <story_file>    Validate story data
    storyplay walk <story_file>        Click through a story, printing each step
"""

import argparse
import sys

from .config import configure_logging


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Storyplay - Narrative progression runtime",
        prog="storyplay",
    )
    parser.add_argument("--log-level", help="Logging level (default from STORYPLAY_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate story data")
    validate_parser.add_argument("story_file", help="Path to story JSON file")

    # Walk command
    walk_parser = subparsers.add_parser("walk", help="Click through a story")
    walk_parser.add_argument("story_file", help="Path to story JSON file")
    walk_parser.add_argument("--event", default="LeftClick", help="Event sent to advance")
    walk_parser.add_argument("--max-steps", type=int, default=100, help="Stop after this many events")
    walk_parser.add_argument("--tick-ms", type=float, default=100, help="Tick size while waiting on timers")
    walk_parser.add_argument(
        "--max-wait-ms", type=float, default=10000,
        help="How long to wait for timers when an event does not advance",
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "validate":
        return cmd_validate(args)
    elif args.command == "walk":
        return cmd_walk(args)
    parser.print_help()
    return 1


def cmd_validate(args) -> int:
    """Validate story data."""
    from .story import load_story_data, validate_story

    try:
        data = load_story_data(args.story_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.story_file}")
        return 1

    result = validate_story(data)
    for warning in result.warnings:
        print(f"Warning: {warning}")
    for error in result.errors:
        print(f"Error: {error}")

    if not result.valid:
        print(f"Invalid story: {len(result.errors)} error(s)")
        return 1
    print("Story is valid")
    return 0


def cmd_walk(args) -> int:
    """Click through a story from its first step."""
    from .errors import StoryplayError
    from .engine_core.scheduler import ManualTickSource
    from .session import Engine
    from .story import load_story

    try:
        story = load_story(args.story_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.story_file}")
        return 1
    except StoryplayError as e:
        print(f"Error: {e}")
        return 1

    ticks = ManualTickSource()
    engine = Engine(story, tick_source=ticks)
    renders = []
    engine.on_render(lambda result: renders.append(result))
    engine.on_render(_print_render)

    try:
        engine.init()
        for _ in range(args.max_steps):
            before = len(renders)
            engine.handle_event(args.event)

            waited = 0.0
            while len(renders) == before and waited < args.max_wait_ms:
                ticks.tick(args.tick_ms)
                waited += args.tick_ms

            if len(renders) == before:
                print("End of story")
                break
    except StoryplayError as e:
        print(f"Error: {e}")
        return 1
    finally:
        engine.close()
    return 0


def _print_render(result):
    system = result.system
    dialogue = result.state.get("dialogue") or {}
    text = dialogue.get("text")
    if text is None and dialogue.get("segments"):
        text = "".join(segment.get("text", "") for segment in dialogue["segments"])
    print(f"[{system.get('sectionId')}/{system.get('stepId')}] {text or ''}".rstrip())


if __name__ == "__main__":
    sys.exit(main())
