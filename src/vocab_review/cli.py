"""
Command-line interface for the vocabulary review client.

This module provides the main CLI entry point with commands for:
- words / search: Browse the word list or search results
- login / logout / register / whoami / profile / change-password: Account
- mark / unmark / forget: Known-word tags
- stats: Learning statistics
- config: Configuration management

Each invocation restores the persisted session, runs one intent against
the session controller and prints the resulting view.
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional

from . import __version__
from .audit_logger import AuditLogger
from .config import (
    DEFAULT_CONFIG_FILE,
    PAGE_SIZE_OPTIONS,
    ClientConfig,
    apply_env_overrides,
    load_config_from_file,
    save_config_to_file,
)
from .controller import VocabularySessionController, create_controller
from .exceptions import LoginRequiredError, VocabReviewError
from .models import AuthUser, ResetScope, ViewSnapshot


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_LOGIN_REQUIRED = 2


def resolve_config(args: argparse.Namespace) -> Optional[ClientConfig]:
    """
    Build the configuration for a command.

    Order: config file (explicit path, else the default file if present,
    else built-in defaults), then VOCAB_* environment variables, then
    command line overrides.
    """
    config = None
    config_path = getattr(args, "config", None)
    if config_path:
        config = load_config_from_file(Path(config_path))
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return None
    elif DEFAULT_CONFIG_FILE.exists():
        config = load_config_from_file(DEFAULT_CONFIG_FILE)

    if config is None:
        config = ClientConfig()

    apply_env_overrides(config)

    if getattr(args, "api_url", None):
        config.api.base_url = args.api_url
    page_size = getattr(args, "page_size", None)
    if page_size:
        config.pagination.default_page_size = page_size

    return config


def create_logger(config: ClientConfig, verbose: bool) -> Optional[AuditLogger]:
    """Create an audit logger when verbose output or logging is enabled."""
    if verbose:
        return AuditLogger.from_level_name("debug", output_format=config.logging.output_format)
    if config.logging.enabled:
        return AuditLogger.from_level_name(config.logging.level, output_format=config.logging.output_format)
    return None


def format_user(user: AuthUser) -> str:
    parts = [f"{user.username} <{user.email}>"]
    if user.full_name:
        parts.append(f"  Name: {user.full_name}")
    if user.bio:
        parts.append(f"  Bio: {user.bio}")
    return "\n".join(parts)


def print_snapshot(snapshot: ViewSnapshot) -> None:
    """Print the word list with pagination metadata."""
    page = snapshot.page
    if snapshot.mode.is_search:
        print(f"Search results for '{snapshot.mode.query}': {page.total_items}")
    else:
        print(f"Total: {page.total_items}")

    if page.total_items == 0:
        print("No words to show.")
        return

    print(
        f"Page {page.current_page}/{page.total_pages} "
        f"(words {page.start_index}-{page.end_index}, {page.page_size} per page)"
        + (" [shuffled]" if snapshot.shuffled else "")
    )

    for index, row in enumerate(snapshot.rows, start=1):
        word = row.word
        marker = "[x]" if row.known else "[ ]"
        english = word.english if snapshot.words_visible else "(hidden)"
        chinese = word.chinese if snapshot.translations_visible else "(hidden)"
        phonetic = f" {word.phonetic}" if word.phonetic and snapshot.words_visible else ""
        print(f"{index:>3}. {marker} {english}{phonetic}  {chinese}  (id: {word.id})")


def run_with_controller(
    args: argparse.Namespace,
    action: Callable[[VocabularySessionController], Awaitable[int]],
) -> int:
    """Build a controller for ``args`` and run ``action`` against it."""
    config = resolve_config(args)
    if config is None:
        return EXIT_ERROR

    logger = create_logger(config, getattr(args, "verbose", False))

    async def runner() -> int:
        async with create_controller(config, logger) as controller:
            try:
                return await action(controller)
            except LoginRequiredError as e:
                print(f"Login required: {e.message}", file=sys.stderr)
                return EXIT_LOGIN_REQUIRED
            except VocabReviewError as e:
                print(f"Error: {e.message}", file=sys.stderr)
                return EXIT_ERROR

    return asyncio.run(runner())


def _read_password(args: argparse.Namespace, prompt: str = "Password: ") -> str:
    if getattr(args, "password", None):
        return args.password
    return getpass.getpass(prompt)


def cmd_words(args: argparse.Namespace) -> int:
    """Handle the 'words' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        snapshot = await controller.change_page(args.page)
        if args.page > 1 and snapshot.page.current_page != args.page:
            print(f"Page {args.page} is out of range; showing page {snapshot.page.current_page}.")
        if args.shuffle:
            snapshot = controller.shuffle_view()
        if args.hide_words:
            snapshot = controller.toggle_words_visible()
        if args.hide_translations:
            snapshot = controller.toggle_translations_visible()
        print_snapshot(snapshot)
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_search(args: argparse.Namespace) -> int:
    """Handle the 'search' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        snapshot = await controller.search(args.query)
        if args.page > 1:
            snapshot = await controller.change_page(args.page)
        if args.shuffle:
            snapshot = controller.shuffle_view()
        print_snapshot(snapshot)
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_login(args: argparse.Namespace) -> int:
    """Handle the 'login' command."""

    async def action(controller: VocabularySessionController) -> int:
        password = _read_password(args)
        user = await controller.login(args.username, password)
        print(f"Logged in as {user.username}.")
        print(f"Known words: {len(controller.known_words.members)}")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_logout(args: argparse.Namespace) -> int:
    """Handle the 'logout' command."""

    async def action(controller: VocabularySessionController) -> int:
        controller.logout()
        print("Logged out.")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_register(args: argparse.Namespace) -> int:
    """Handle the 'register' command."""

    async def action(controller: VocabularySessionController) -> int:
        password = _read_password(args)
        if not args.password:
            confirm = getpass.getpass("Confirm password: ")
            if confirm != password:
                print("Error: Passwords do not match", file=sys.stderr)
                return EXIT_ERROR
        user = await controller.register(args.username, args.email, password, args.full_name)
        print(f"Registered {user.username}. You can now log in.")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_whoami(args: argparse.Namespace) -> int:
    """Handle the 'whoami' command."""

    async def action(controller: VocabularySessionController) -> int:
        user = await controller.restore_session()
        if user is None:
            print("Not logged in.")
            return EXIT_LOGIN_REQUIRED
        print(format_user(user))
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_profile(args: argparse.Namespace) -> int:
    """Handle the 'profile' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        if args.full_name is not None or args.bio is not None:
            user = await controller.update_profile(full_name=args.full_name, bio=args.bio)
            print("Profile updated.")
        else:
            user = await controller.load_profile()
        print(format_user(user))
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_change_password(args: argparse.Namespace) -> int:
    """Handle the 'change-password' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        current = getpass.getpass("Current password: ")
        new = getpass.getpass("New password: ")
        await controller.change_password(current, new)
        print("Password changed.")
        return EXIT_OK

    return run_with_controller(args, action)


def _cmd_mark(args: argparse.Namespace, known: bool) -> int:
    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        await controller.mark(args.word_id, known)
        print(f"Marked {args.word_id} as {'known' if known else 'unknown'}.")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_mark(args: argparse.Namespace) -> int:
    """Handle the 'mark' command."""
    return _cmd_mark(args, known=True)


def cmd_unmark(args: argparse.Namespace) -> int:
    """Handle the 'unmark' command."""
    return _cmd_mark(args, known=False)


def cmd_forget(args: argparse.Namespace) -> int:
    """Handle the 'forget' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        if args.all:
            if not args.yes:
                answer = input("Forget ALL known words? This cannot be undone. [y/N] ")
                if answer.strip().lower() not in ("y", "yes"):
                    print("Aborted.")
                    return EXIT_ERROR
            await controller.reset_known(ResetScope.all())
            print("Forgot all known words.")
            return EXIT_OK

        await controller.change_page(args.page)
        scope = controller.current_page_scope()
        await controller.reset_known(scope)
        print(f"Forgot {len(scope.word_ids)} word(s) on page {controller.snapshot.page.current_page}.")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_stats(args: argparse.Namespace) -> int:
    """Handle the 'stats' command."""

    async def action(controller: VocabularySessionController) -> int:
        await controller.restore_session()
        stats = await controller.load_stats()
        print(f"Known words: {stats.total_known_words}")
        print(f"Learning days: {stats.total_learning_days}")
        print(f"Average words per day: {stats.average_words_per_day:.1f}")
        return EXIT_OK

    return run_with_controller(args, action)


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_FILE

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return EXIT_ERROR

        print(f"Configuration from: {config_path}")
        print(f"  API URL: {config.api.base_url}")
        print(f"  Timeout: {config.api.timeout_seconds}s")
        print(f"  Page size: {config.pagination.default_page_size}")
        print(f"  Known-word refresh throttle: {config.known_words.throttle_seconds}s")
        print(f"  Session file: {config.persistence.session_file_path}")
        print(f"  Log level: {config.logging.level} ({'on' if config.logging.enabled else 'off'})")
        return EXIT_OK

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return EXIT_ERROR

        if save_config_to_file(ClientConfig(), config_path):
            print(f"Configuration created at: {config_path}")
            return EXIT_OK
        return EXIT_ERROR

    return EXIT_ERROR


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--api-url",
        help="Base URL of the vocabulary service",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )


def _add_listing_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--page", "-p",
        type=int,
        default=1,
        help="Page number (default: 1)",
    )
    parser.add_argument(
        "--page-size", "-s",
        type=int,
        choices=PAGE_SIZE_OPTIONS,
        help="Words per page",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="vocab-review",
        description="Vocabulary review client: browse, search and tag known words",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'words' command
    words_parser = subparsers.add_parser("words", help="Show a page of the word list")
    _add_listing_arguments(words_parser)
    words_parser.add_argument("--shuffle", action="store_true", help="Shuffle the displayed words")
    words_parser.add_argument("--hide-words", action="store_true", help="Hide the English words")
    words_parser.add_argument("--hide-translations", action="store_true", help="Hide the translations")
    _add_common_arguments(words_parser)
    words_parser.set_defaults(func=cmd_words)

    # 'search' command
    search_parser = subparsers.add_parser("search", help="Search the word list")
    search_parser.add_argument("query", help="Search text")
    _add_listing_arguments(search_parser)
    search_parser.add_argument("--shuffle", action="store_true", help="Shuffle the displayed words")
    _add_common_arguments(search_parser)
    search_parser.set_defaults(func=cmd_search)

    # 'login' command
    login_parser = subparsers.add_parser("login", help="Log in and remember the session")
    login_parser.add_argument("username", help="Account username")
    login_parser.add_argument("--password", help="Password (prompted if omitted)")
    _add_common_arguments(login_parser)
    login_parser.set_defaults(func=cmd_login)

    # 'logout' command
    logout_parser = subparsers.add_parser("logout", help="Forget the stored session")
    _add_common_arguments(logout_parser)
    logout_parser.set_defaults(func=cmd_logout)

    # 'register' command
    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("username", help="Account username")
    register_parser.add_argument("email", help="Email address")
    register_parser.add_argument("--full-name", help="Full name")
    register_parser.add_argument("--password", help="Password (prompted if omitted)")
    _add_common_arguments(register_parser)
    register_parser.set_defaults(func=cmd_register)

    # 'whoami' command
    whoami_parser = subparsers.add_parser("whoami", help="Show the logged-in user")
    _add_common_arguments(whoami_parser)
    whoami_parser.set_defaults(func=cmd_whoami)

    # 'profile' command
    profile_parser = subparsers.add_parser("profile", help="Show or update your profile")
    profile_parser.add_argument("--full-name", help="New full name")
    profile_parser.add_argument("--bio", help="New bio")
    _add_common_arguments(profile_parser)
    profile_parser.set_defaults(func=cmd_profile)

    # 'change-password' command
    password_parser = subparsers.add_parser("change-password", help="Change your password")
    _add_common_arguments(password_parser)
    password_parser.set_defaults(func=cmd_change_password)

    # 'mark' / 'unmark' commands
    mark_parser = subparsers.add_parser("mark", help="Mark a word as known")
    mark_parser.add_argument("word_id", help="Word id")
    _add_common_arguments(mark_parser)
    mark_parser.set_defaults(func=cmd_mark)

    unmark_parser = subparsers.add_parser("unmark", help="Mark a word as unknown")
    unmark_parser.add_argument("word_id", help="Word id")
    _add_common_arguments(unmark_parser)
    unmark_parser.set_defaults(func=cmd_unmark)

    # 'forget' command
    forget_parser = subparsers.add_parser("forget", help="Forget known words on a page or all of them")
    forget_parser.add_argument("--all", action="store_true", help="Forget every known word")
    forget_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    _add_listing_arguments(forget_parser)
    _add_common_arguments(forget_parser)
    forget_parser.set_defaults(func=cmd_forget)

    # 'stats' command
    stats_parser = subparsers.add_parser("stats", help="Show learning statistics")
    _add_common_arguments(stats_parser)
    stats_parser.set_defaults(func=cmd_stats)

    # 'config' command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument("action", choices=["show", "init"], help="Configuration action")
    config_parser.add_argument("--path", help="Path to configuration file")
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
