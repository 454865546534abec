"""
Command-line entry point for the Heritage AI gateway.

    heritage-ai serve
    heritage-ai init-db
    heritage-ai import-entries entries.yaml
    heritage-ai status
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml

from heritage_ai.config import config, Config
from heritage_ai.db import ENTRY_CATEGORIES, ENTRY_STATUSES
from heritage_ai.llm import provider_config_error
from heritage_ai.store import HeritageStore, create_store

logger = logging.getLogger(__name__)

# camelCase keys accepted from platform exports
_KEY_ALIASES = {
    "culturalContext": "cultural_context",
    "historicalPeriod": "historical_period",
    "isPublic": "is_public",
    "authorId": "author_id",
    "author": "author_id",
}


def load_entries_file(path: Path) -> list[dict]:
    """Load a list of entries from a YAML or JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Entries file not found: {path}")

    content = path.read_text(encoding="utf-8")

    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(content)
    elif path.suffix == ".json":
        data = json.loads(content)
    else:
        raise ValueError(f"Unsupported entries file format: {path.suffix}")

    if isinstance(data, dict):
        data = data.get("entries", [])
    if not isinstance(data, list):
        raise ValueError("Entries file must contain a list of entries")
    return data


def _normalize_tags(value, title: str) -> list[str]:
    """Tags as a list, or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    if isinstance(value, (list, tuple)):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    raise ValueError(f"Invalid tags for entry '{title}': expected a list or comma-separated string")


def normalize_entry(raw: dict) -> dict:
    """
    Convert one exported entry into the store's field names.

    Raises:
        ValueError: When the entry or one of its fields has the wrong shape.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Each entry must be a mapping, got {type(raw).__name__}: {raw!r}")
    entry = {_KEY_ALIASES.get(k, k): v for k, v in raw.items()}

    location = entry.pop("location", None) or {}
    if not isinstance(location, dict):
        raise ValueError(
            f"Invalid location for entry '{raw.get('title')}': expected a mapping "
            "with name, country or region"
        )
    for key in ("name", "country", "region"):
        if location.get(key) and not entry.get(f"location_{key}"):
            entry[f"location_{key}"] = location[key]

    for required in ("title", "description", "author_id"):
        if not entry.get(required):
            raise ValueError(f"Entry is missing '{required}': {raw.get('title', raw)}")

    category = entry.get("category") or "Other"
    if category not in ENTRY_CATEGORIES:
        raise ValueError(f"Invalid category '{category}' for entry '{entry['title']}'")
    entry["category"] = category

    status = entry.get("status") or "draft"
    if status not in ENTRY_STATUSES:
        raise ValueError(f"Invalid status '{status}' for entry '{entry['title']}'")
    entry["status"] = status
    entry["tags"] = _normalize_tags(entry.get("tags"), entry["title"])
    return entry


async def import_entries(store: HeritageStore, entries: list[dict]) -> int:
    """
    Upsert entries into the store. Returns the number imported.

    Every entry is validated before the store is opened.
    """
    normalized = [normalize_entry(raw) for raw in entries]
    await store.initialize()
    count = 0
    try:
        for entry in normalized:
            await store.upsert_entry(entry)
            count += 1
    finally:
        await store.close()
    logger.info(f"Imported {count} entries")
    return count


async def init_db(store: HeritageStore) -> None:
    await store.initialize()
    await store.close()


def provider_status() -> dict:
    """Configured provider and whether it can be used."""
    try:
        settings = Config.get_provider_settings()
    except ValueError as e:
        return {"available": False, "provider": Config.provider_name() or "none", "error": str(e)}

    error = provider_config_error(settings)
    status = {"available": error is None, "provider": settings.provider, "model": settings.model}
    if error:
        status["error"] = error
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heritage-ai",
        description="Heritage AI gateway",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=config.API_HOST)
    serve.add_argument("--port", type=int, default=config.API_PORT)
    serve.add_argument("--reload", action="store_true")

    sub.add_parser("init-db", help="Create the database schema")

    imp = sub.add_parser("import-entries", help="Load reference entries from YAML or JSON")
    imp.add_argument("path", type=Path)

    sub.add_parser("status", help="Show the configured AI provider")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "heritage_ai.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=config.LOG_LEVEL.lower(),
        )
        return 0

    if args.command == "init-db":
        asyncio.run(init_db(create_store()))
        print("Database initialized")
        return 0

    if args.command == "import-entries":
        try:
            entries = load_entries_file(args.path)
            count = asyncio.run(import_entries(create_store(), entries))
        except (FileNotFoundError, ValueError) as e:
            logger.error(str(e))
            return 1
        print(f"Imported {count} entries")
        return 0

    if args.command == "status":
        print(json.dumps(provider_status(), indent=2))
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
