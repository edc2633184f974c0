"""Command line for the recipe list.

Run:
  recipes list [--online | --offline]
  recipes seed
  recipes settings [--online | --offline]
"""

import argparse
import asyncio
from collections.abc import Sequence
import contextlib

from rich.console import Console
from rich.table import Table

import config
from data import NetworkError, RemoteRecipeSource
from db import LocalStore, StorageError
from domain.repository import PartialInsertError, RecipeRepository, SeedStatus
from domain.services import online_mode_reader, read_settings, save_settings
from models import Recipe
from preferences import Preferences, PreferencesError


console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="recipes")
    commands = parser.add_subparsers(dest="command", required=True)

    for name, help in (
        ("list", "List recipes from the current source."),
        ("settings", "Show or change the online mode."),
    ):
        sub = commands.add_parser(name, help=help)
        mode = sub.add_mutually_exclusive_group()
        mode.add_argument(
            "--online", dest="online", action="store_true", default=None
        )
        mode.add_argument(
            "--offline", dest="online", action="store_false", default=None
        )

    commands.add_parser("seed", help="Fill the local store from the feed.")
    return parser


def recipes_table(recipes: Sequence[Recipe], *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("id", justify="right")
    table.add_column("name")
    table.add_column("photo")
    for recipe in recipes:
        table.add_row(
            "" if recipe.id is None else str(recipe.id),
            recipe.name,
            recipe.photo_url or "",
        )
    return table


async def run(args: argparse.Namespace, cfg: config.Config) -> int:
    preferences = Preferences(cfg.preferences_path)

    if args.command == "settings":
        if args.online is None:
            current = read_settings(preferences, cfg.online_mode_key)
        else:
            current = save_settings(
                preferences, online_mode=args.online, key=cfg.online_mode_key
            )
        console.print(f"online_mode: {current.online_mode}")
        return 0

    remote = RemoteRecipeSource(cfg.recipes_url, timeout=cfg.http_timeout)
    store = LocalStore(cfg.db_url)
    repo = RecipeRepository(
        remote,
        store,
        online_mode=online_mode_reader(preferences, cfg.online_mode_key),
    )
    async with contextlib.AsyncExitStack() as stack:
        stack.push_async_callback(remote.aclose)
        stack.push_async_callback(store.close)
        if args.command == "list":
            online = repo.is_online() if args.online is None else args.online
            found = await repo.get_recipes(online=online)
            title = "Recipes (online)" if online else "Recipes (offline)"
            console.print(recipes_table(found, title=title))
        elif args.command == "seed":
            result = await repo.seed_local_from_remote()
            if result.status == SeedStatus.ALREADY_SEEDED:
                console.print("Local store already has recipes.")
            else:
                console.print(f"Stored {result.count} recipes.", style="green")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = config.Config()
    config.configure_logging(cfg.log_level)
    try:
        return asyncio.run(run(args, cfg))
    except (NetworkError, StorageError, PartialInsertError, PreferencesError) as e:
        console.print(f"Error! {e}", style="bold red")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
