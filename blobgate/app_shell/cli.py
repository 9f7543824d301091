import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from blobgate.adapters.json_registry import JsonRegistryStore
from blobgate.app_shell.config import Settings, validate_ops_rules
from blobgate.app_shell.context import ServiceContext
from blobgate.components.ingest import PublishInput
from blobgate.domain.errors import BlobgateError, ValidationError
from blobgate.rules.loader import load_rules

logger = logging.getLogger("blobgate.cli")


def get_context(settings: Settings) -> ServiceContext:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)

    rules = load_rules(settings.rules_path)
    validate_ops_rules(rules, settings)
    return ServiceContext.create(settings, rules)


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("blobgate.api.main:app", host=args.host, port=args.port, reload=args.reload)


def handle_stats(ctx: ServiceContext, args: argparse.Namespace) -> None:
    stats = ctx.ledger.stats()
    print(f"Items:           {stats.total_items}")
    print(f"Total size:      {stats.total_size} bytes")
    print(f"Encrypted:       {stats.encrypted_items}")
    print(f"Legacy (plain):  {stats.legacy_items}")
    print(f"Grants recorded: {stats.total_grants}")
    for status, count in sorted(stats.status_counts.items()):
        print(f"  {status}: {count}")


def handle_list(ctx: ServiceContext, args: argparse.Namespace) -> None:
    items = ctx.ledger.list_by_owner(args.owner) if args.owner else ctx.ledger.list()
    for item in sorted(items, key=lambda i: i.created_at):
        lock = "enc" if item.is_encrypted else "plain"
        print(
            f"{item.id}  [{item.overall_status}/{lock}]  "
            f"{item.price_terms.amount} {item.price_terms.currency}  {item.title}"
        )
    print(f"{len(items)} item(s).")


def handle_backup(ctx: ServiceContext, args: argparse.Namespace) -> None:
    registry = ctx.registry
    if not isinstance(registry, JsonRegistryStore):
        logger.error("Backups are only supported for the JSON registry.")
        sys.exit(1)

    target = registry.backup()
    if target is None:
        logger.warning("No registry file to back up yet.")
        return
    print(f"Backup created: {target}")


def handle_publish(ctx: ServiceContext, args: argparse.Namespace) -> None:
    path = Path(args.file)
    if not path.exists():
        logger.error("File %s not found.", path)
        sys.exit(1)

    price = None
    if args.price:
        try:
            price = Decimal(args.price)
        except InvalidOperation:
            logger.error("Invalid price %r.", args.price)
            sys.exit(1)

    result = ctx.pipeline.publish(
        PublishInput(
            title=args.title,
            content=path.read_text(encoding="utf-8"),
            owner=args.owner,
            description=args.description or "",
            tags=tuple(args.tag or ()),
            is_public=not args.private,
            price=price,
        )
    )
    print(
        json.dumps(
            {
                "itemId": result.item_id,
                "price": str(result.price_terms.amount),
                "currency": result.price_terms.currency,
                "paymentAddress": result.price_terms.payout_address,
            },
            indent=2,
        )
    )


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="blobgate: pay-per-read encrypted content")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    # stats
    subparsers.add_parser("stats", help="Show registry statistics")

    # list
    list_parser = subparsers.add_parser("list", help="List registered items")
    list_parser.add_argument("--owner", help="Only items owned by this address")

    # backup
    subparsers.add_parser("backup", help="Back up the registry file")

    # publish
    publish_parser = subparsers.add_parser("publish", help="Encrypt, store and register a file")
    publish_parser.add_argument("--title", required=True)
    publish_parser.add_argument("--owner", required=True, help="Owner wallet address")
    publish_parser.add_argument("--file", required=True, help="UTF-8 text file to publish")
    publish_parser.add_argument("--description")
    publish_parser.add_argument("--tag", action="append", help="Repeatable")
    publish_parser.add_argument("--price", help="Price in the configured currency")
    publish_parser.add_argument("--private", action="store_true")

    args = parser.parse_args()
    settings = Settings()

    if args.command == "serve":
        handle_serve(settings, args)
        return

    try:
        ctx = get_context(settings)
        if args.command == "stats":
            handle_stats(ctx, args)
        elif args.command == "list":
            handle_list(ctx, args)
        elif args.command == "backup":
            handle_backup(ctx, args)
        elif args.command == "publish":
            handle_publish(ctx, args)
    except ValidationError as e:
        for err in e.errors:
            logger.error("%s: %s", err.field or "input", err.message)
        sys.exit(2)
    except BlobgateError as e:
        logger.error("%s (%s)", e.message, e.detail or e.kind)
        sys.exit(1)


if __name__ == "__main__":
    main()
