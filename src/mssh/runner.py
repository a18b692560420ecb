#!/usr/bin/env python3
"""Main entry point for mssh."""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from prompt_toolkit.patch_stdout import patch_stdout

from . import __version__
from .commands import register_builtin_commands
from .config import Config, load_config
from .context import ShellContext
from .dispatcher import Dispatcher
from .errors import ShellExit
from .executor import Executor
from .interpreter import SCRIPT_KEYWORD, Interpreter
from .log import logger_cleanup, logger_setup
from .prompt import create_prompt_session, prompt_lines, stream_lines
from .registry import CommandRegistry

DEFAULT_CONFIG = Path("mssh.yaml")


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Connect to many SSH hosts and run commands or copy files on all of them"
    )
    parser.add_argument(
        "scripts",
        nargs="*",
        type=Path,
        help="Script files to run instead of the interactive shell",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help=f"Path to YAML configuration file (default: {DEFAULT_CONFIG} if present)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug messages",
    )
    parser.add_argument("-V", "--version", action="version", version=f"mssh {__version__}")
    args = parser.parse_args()

    # Load configuration
    try:
        if args.config:
            config = load_config(args.config)
        elif DEFAULT_CONFIG.exists():
            config = load_config(DEFAULT_CONFIG)
        else:
            config = Config()
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger_setup(config.log_file, verbosity=1 if args.verbose else 0)
    try:
        return asyncio.run(run_shell(config, args.scripts))
    except KeyboardInterrupt:
        return 130
    finally:
        logger_cleanup()


def build_interpreter(config: Config, executor: Executor) -> Interpreter:
    """Wire registry, dispatcher and fallback around ``executor``."""
    registry = CommandRegistry()
    register_builtin_commands(registry)
    context = ShellContext(config=config, registry=registry, executor=executor)
    dispatcher = Dispatcher(registry, context)
    fallback = executor.run if config.fallback == "remote" else None
    return Interpreter(dispatcher, fallback=fallback)


async def run_shell(config: Config, scripts: list[Path]) -> int:
    """Run the rc file, then the scripts or an interactive session."""
    executor = Executor(config)
    interpreter = build_interpreter(config, executor)
    logger.debug("mssh start")

    try:
        if config.rc_file.exists():
            await interpreter.run_script(config.rc_file)

        if scripts:
            for script in scripts:
                await interpreter.run_script(script)
            await executor.done()
        elif sys.stdin.isatty():
            try:
                session = create_prompt_session(
                    config, interpreter.registry, extra_words=(SCRIPT_KEYWORD,)
                )
            except Exception as e:
                logger.critical(f"failed to set up the interactive prompt: {e}")
                return 1
            with patch_stdout():
                await interpreter.interpret(prompt_lines(session, config.prompt))
        else:
            await interpreter.interpret(stream_lines(sys.stdin))
    except ShellExit:
        pass
    finally:
        await executor.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
