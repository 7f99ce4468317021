"""Example: Preview what the schema transfer would change.

Compares the source index's fields with the current target index without
deleting or creating anything.

Usage:
    python examples/01_preview_schema.py
"""

from rich.console import Console

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationConfig
from az_search_migrator.schema_transfer import SchemaTransfer
from az_search_migrator.utils.logging import setup_logging

console = Console()


def main() -> None:
    setup_logging()

    config = MigrationConfig.from_yaml("config.yaml")
    config.validate()

    source = SearchServiceClientWrapper(config.source)
    target = SearchServiceClientWrapper(config.target)

    diff = SchemaTransfer(source, target, config.options).preview()
    if diff.identical:
        console.print("[green]Schemas are identical[/green]")
    for line in diff.lines():
        console.print(line)


if __name__ == "__main__":
    main()
