"""Schema transfer: recreate the source index definition on the target service.

Reads the source ``SearchIndex``, copies each field's attributes verbatim into
a new index definition, deletes any existing target index with the same name
and creates the new one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from azure.search.documents.indexes.models import SearchField, SearchIndex

from az_search_migrator.clients.ai_search import SearchServiceClientWrapper
from az_search_migrator.config import MigrationOptions

logger = logging.getLogger("az_search_migrator.schema_transfer")

CAPABILITY_FLAGS = ("key", "searchable", "filterable", "sortable", "facetable", "retrievable")


# ---------------------------------------------------------------------------
# Field descriptors
# ---------------------------------------------------------------------------


@dataclass
class FieldDescriptor:
    """Name, type and capability flags of a single index field."""

    name: str
    type: str
    key: bool | None = False
    searchable: bool | None = None
    filterable: bool | None = None
    sortable: bool | None = None
    facetable: bool | None = None
    retrievable: bool | None = None
    fields: list[FieldDescriptor] = field(default_factory=list)

    @classmethod
    def from_search_field(cls, source: Any) -> FieldDescriptor:
        """Read a ``SearchField`` (or anything shaped like one)."""
        hidden = getattr(source, "hidden", None)
        return cls(
            name=source.name,
            type=source.type,
            key=getattr(source, "key", False),
            searchable=getattr(source, "searchable", None),
            filterable=getattr(source, "filterable", None),
            sortable=getattr(source, "sortable", None),
            facetable=getattr(source, "facetable", None),
            retrievable=None if hidden is None else not hidden,
            fields=[cls.from_search_field(f) for f in (getattr(source, "fields", None) or [])],
        )

    def to_search_field(self) -> SearchField:
        return SearchField(
            name=self.name,
            type=self.type,
            key=self.key,
            searchable=self.searchable,
            filterable=self.filterable,
            sortable=self.sortable,
            facetable=self.facetable,
            hidden=None if self.retrievable is None else not self.retrievable,
            fields=[f.to_search_field() for f in self.fields] or None,
        )

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {"type": self.type}
        for flag in CAPABILITY_FLAGS:
            attrs[flag] = getattr(self, flag)
        return attrs


def describe_fields(index: Any) -> list[FieldDescriptor]:
    return [FieldDescriptor.from_search_field(f) for f in index.fields]


def build_target_index(name: str, source_index: Any) -> SearchIndex:
    """Build a new ``SearchIndex`` named ``name`` with the source's fields, in order."""
    fields = [fd.to_search_field() for fd in describe_fields(source_index)]
    return SearchIndex(name=name, fields=fields)


def find_key_field(fields: list[FieldDescriptor]) -> FieldDescriptor | None:
    return next((f for f in fields if f.key), None)


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


@dataclass
class SchemaDiff:
    """Differences between the source schema and an existing target index."""

    target_exists: bool
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    # field name -> {attribute: (target value, source value)}
    changed: dict[str, dict[str, tuple[Any, Any]]] = field(default_factory=dict)
    order_changed: bool = False

    @property
    def identical(self) -> bool:
        return (
            self.target_exists
            and not self.added
            and not self.removed
            and not self.changed
            and not self.order_changed
        )

    def lines(self) -> list[str]:
        if not self.target_exists:
            return [f"+ {name}" for name in self.added]
        out = [f"+ {name}" for name in self.added]
        out.extend(f"- {name}" for name in self.removed)
        for name, attrs in self.changed.items():
            detail = ", ".join(f"{a}: {old!r} -> {new!r}" for a, (old, new) in attrs.items())
            out.append(f"~ {name} ({detail})")
        if self.order_changed:
            out.append("~ field order differs")
        return out


def diff_schemas(
    source_fields: list[FieldDescriptor],
    target_fields: list[FieldDescriptor] | None,
) -> SchemaDiff:
    """Compare source fields with the target's; ``None`` means the target index is absent."""
    if target_fields is None:
        return SchemaDiff(target_exists=False, added=[f.name for f in source_fields])

    src = {f.name: f for f in source_fields}
    tgt = {f.name: f for f in target_fields}
    diff = SchemaDiff(target_exists=True)
    diff.added = [name for name in src if name not in tgt]
    diff.removed = [name for name in tgt if name not in src]

    for name, sf in src.items():
        tf = tgt.get(name)
        if tf is None:
            continue
        s_attrs, t_attrs = sf.attributes(), tf.attributes()
        changed = {a: (t_attrs[a], s_attrs[a]) for a in s_attrs if s_attrs[a] != t_attrs[a]}
        if changed:
            diff.changed[name] = changed

    common_src = [n for n in src if n in tgt]
    common_tgt = [n for n in tgt if n in src]
    diff.order_changed = common_src != common_tgt
    return diff


# ---------------------------------------------------------------------------
# Transfer
# ---------------------------------------------------------------------------


@dataclass
class SchemaTransferResult:
    """Outcome of the schema phase."""

    source_index: str
    target_index: str
    fields: list[FieldDescriptor] = field(default_factory=list)
    deleted_existing: bool = False
    created: bool = False
    skipped: bool = False
    preview: SchemaDiff | None = None
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return not self.error


class SchemaTransfer:
    """Copies the source index schema onto the target service (delete-then-create)."""

    def __init__(
        self,
        source: SearchServiceClientWrapper,
        target: SearchServiceClientWrapper,
        options: MigrationOptions | None = None,
    ) -> None:
        self.source = source
        self.target = target
        self.options = options or MigrationOptions()

    def preview(self, source_fields: list[FieldDescriptor] | None = None) -> SchemaDiff:
        """Compare the source schema with the current target index without changing anything."""
        if source_fields is None:
            source_fields = describe_fields(self.source.get_index())
        target_fields = None
        if self.target.index_exists():
            target_fields = describe_fields(self.target.get_index())
        return diff_schemas(source_fields, target_fields)

    def transfer(self) -> SchemaTransferResult:
        """Run the schema phase.

        Exceptions are logged and returned in :attr:`SchemaTransferResult.error`;
        the caller decides whether the migration continues.
        """
        result = SchemaTransferResult(
            source_index=self.source.index_name,
            target_index=self.target.index_name,
        )

        try:
            if not self.options.commit_index:
                result.skipped = True
                result.fields = describe_fields(self.source.get_index())
                result.preview = self.preview(result.fields)
                logger.info("[DRY RUN] インデックスの作成はスキップします")
                for line in result.preview.lines():
                    logger.info("  %s", line)
                return result

            logger.info("移行元インデックス '%s' のコピーを開始", result.source_index)
            source_index = self.source.get_index()
            result.fields = describe_fields(source_index)

            if self.target.index_exists():
                self.target.delete_index()
                result.deleted_existing = True

            self.target.create_index(build_target_index(result.target_index, source_index))
            result.created = True
            logger.info("インデックスのコピーに成功しました (%d フィールド)", len(result.fields))

        except Exception as e:
            result.error = str(e)
            logger.error("インデックスの作成に失敗しました: %s", e)

        return result
