#!/usr/bin/env python3
"""
Curio -- command-line client for a personal catalog of collections and items.

Usage:
  curio login alice
  curio whoami
  curio collections
  curio use 3
  curio items --search coin
  curio add-item "1800 stamp" --rarity Rare --price 555
  curio set-item 7 --price 600
  curio rm-item 7
  curio new-collection Stamps
  curio rename-collection 3 "Old stamps"
  curio rm-collection 3
  curio logout

Environment variables:
  CURIO_BASE_URL      API root (default http://localhost:8000)
  CURIO_TIMEOUT       Request timeout in seconds (default 10)
  CURIO_STORAGE_PATH  Where the session token and selected collection are kept
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from catalog.models import Collection, Item, Rarity
from client.api import CatalogClient
from client.exceptions import ClientError
from client.models import Route
from client.navigation import Navigator
from client.selection import SelectionCache
from client.session import ClientSession
from client.storage import ClientStorage

_ITEM_FIELDS = ("name", "description", "image", "rarity", "price")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_collection_row(collection: Collection, selected_id: Optional[int]) -> None:
    marker = "*" if collection.id == selected_id else " "
    print(f"  {marker} {collection.id:>4}  {collection.title}  ({collection.items_count} items)")


def _print_item(item: Item) -> None:
    rarity = item.rarity.value if item.rarity else "-"
    price = f"{item.price:.2f}" if item.price is not None else "-"
    print(f"  {item.id:>4}  {item.name:<30} {rarity:<10} {price:>10}")
    if item.description:
        print(f"        {item.description}")


def _enter(navigator: Navigator, path: str) -> Optional[Route]:
    """Navigate to path. Prints why and returns None if the view is unavailable."""
    route = navigator.navigate(path)
    if route.name == "login":
        print("  [!] Not signed in. Run: curio login USERNAME")
        return None
    if route.name == "not-found":
        print(f"  [!] Nothing found at {path}.")
        return None
    return route


def _item_fields(args: argparse.Namespace) -> dict:
    fields = {}
    for key in _ITEM_FIELDS:
        value = getattr(args, key, None)
        if value is not None:
            fields[key] = Rarity(value) if key == "rarity" else value
    return fields


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_login(args: argparse.Namespace, navigator: Navigator) -> int:
    password = args.password or getpass.getpass("Password: ")
    route = navigator.login(args.username, password)
    if route.error:
        print(f"  [!] {route.error}")
        return 1
    profile = navigator.session.identity.value
    print(f"Signed in as {profile.display_name}.")
    selected = navigator.selection.selected.value
    if selected is not None:
        print(f"Current collection: {selected.title}")
    return 0


def cmd_logout(args: argparse.Namespace, navigator: Navigator) -> int:
    navigator.logout()
    print("Signed out.")
    return 0


def cmd_whoami(args: argparse.Namespace, navigator: Navigator) -> int:
    decision = navigator.guard.check()
    if not decision.allowed:
        print("Not signed in.")
        return 1
    print(f"{decision.identity.username} ({decision.identity.display_name})")
    return 0


def cmd_collections(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/home") is None:
        return 1
    selection = navigator.selection
    collections = selection.collections.value
    if not collections:
        print("No collections yet. Create one with: curio new-collection TITLE")
        return 0
    for collection in collections:
        _print_collection_row(collection, selection.selected_id)
    return 0


def cmd_use(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, f"/collection/{args.id}") is None:
        return 1
    print(f"Now using: {navigator.selection.selected.value.title}")
    return 0


def cmd_items(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/home") is None:
        return 1
    selection = navigator.selection
    if selection.selected.value is None:
        print("No collections yet. Create one with: curio new-collection TITLE")
        return 0
    selection.set_search(args.search or "")
    items = selection.displayed_items.value
    print(f"{selection.selected.value.title} -- {len(items)} of {selection.selected.value.items_count} items")
    for item in items:
        _print_item(item)
    return 0


def cmd_add_item(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/item") is None:
        return 1
    fields = _item_fields(args)
    item_id = navigator.selection.add_item(**fields)
    print(f"Added item {item_id} to {navigator.selection.selected.value.title}.")
    return 0


def cmd_set_item(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, f"/item/{args.id}") is None:
        return 1
    fields = _item_fields(args)
    if not fields:
        print("  [!] Nothing to change. Pass at least one of --name, --description, --image, --rarity, --price.")
        return 1
    navigator.selection.update_item(args.id, **fields)
    print(f"Updated item {args.id}.")
    return 0


def cmd_rm_item(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, f"/item/{args.id}") is None:
        return 1
    navigator.selection.delete_item(args.id)
    print(f"Deleted item {args.id}.")
    return 0


def cmd_new_collection(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/home") is None:
        return 1
    created = navigator.selection.create_collection(args.title)
    print(f"Created collection {created.id}: {created.title} (now selected)")
    return 0


def cmd_rename_collection(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/home") is None:
        return 1
    navigator.selection.rename_collection(args.id, args.title)
    print(f"Renamed collection {args.id} to {args.title}.")
    return 0


def cmd_rm_collection(args: argparse.Namespace, navigator: Navigator) -> int:
    if _enter(navigator, "/home") is None:
        return 1
    navigator.selection.delete_collection(args.id)
    print(f"Deleted collection {args.id} and all of its items.")
    current = navigator.selection.selected.value
    if current is not None:
        print(f"Current collection: {current.title}")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _add_item_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--description", help="Free-text description")
    parser.add_argument("--image", metavar="URL", help="Image URL or data URI")
    parser.add_argument("--rarity", choices=[r.value for r in Rarity], help="Rarity")
    parser.add_argument("--price", type=float, help="Price (non-negative)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curio",
        description="Manage your Curio collections from the terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  curio login alice
  curio use 3
  curio items --search stamp
  curio add-item "1800 stamp" --rarity Rare --price 555
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log client activity to stderr")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("login", help="Sign in and remember the session")
    p.add_argument("username")
    p.add_argument("--password", help="Password (prompted for when omitted)")
    p.set_defaults(func=cmd_login)

    sub.add_parser("logout", help="Sign out and forget the session").set_defaults(func=cmd_logout)
    sub.add_parser("whoami", help="Show the signed-in user").set_defaults(func=cmd_whoami)
    sub.add_parser("collections", help="List your collections (* = selected)").set_defaults(func=cmd_collections)

    p = sub.add_parser("use", help="Select a collection")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_use)

    p = sub.add_parser("items", help="List items of the selected collection")
    p.add_argument("--search", help="Only items whose name contains this text (case-insensitive)")
    p.set_defaults(func=cmd_items)

    p = sub.add_parser("add-item", help="Add an item to the selected collection")
    p.add_argument("name")
    _add_item_options(p)
    p.set_defaults(func=cmd_add_item)

    p = sub.add_parser("set-item", help="Change some fields of an item")
    p.add_argument("id", type=int)
    p.add_argument("--name", help="New name")
    _add_item_options(p)
    p.set_defaults(func=cmd_set_item)

    p = sub.add_parser("rm-item", help="Delete an item")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_rm_item)

    p = sub.add_parser("new-collection", help="Create a collection and select it")
    p.add_argument("title")
    p.set_defaults(func=cmd_new_collection)

    p = sub.add_parser("rename-collection", help="Rename a collection")
    p.add_argument("id", type=int)
    p.add_argument("title")
    p.set_defaults(func=cmd_rename_collection)

    p = sub.add_parser("rm-collection", help="Delete a collection and all of its items")
    p.add_argument("id", type=int)
    p.set_defaults(func=cmd_rm_collection)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)-5s %(name)s %(message)s",
    )

    storage = ClientStorage()
    api = CatalogClient(storage)
    session = ClientSession(api, storage)
    navigator = Navigator(session, SelectionCache(api, storage))
    try:
        return args.func(args, navigator)
    except ClientError as exc:
        print(f"  [!] {exc.message}")
        return 1
    finally:
        api.close()
        storage.close()


if __name__ == "__main__":
    sys.exit(main())
