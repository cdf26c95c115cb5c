"""
Table references and source-to-target table mapping.

Mappings are written as ``SRC_SCHEMA.TABLE=tgt_schema.table`` pairs separated
by commas. An entry without ``=`` maps the same name on both sides, and the
keyword ``ALL`` asks for discovery: every table whose name exists in both
schemas (compared case-insensitively) is paired.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ALL_TABLES = "ALL"

IdentifierNormalizer = Callable[[str], str]


def _keep_case(name: str) -> str:
    return name


@dataclass(frozen=True)
class TableReference:
    """Schema-qualified table name."""

    schema: str
    name: str

    @classmethod
    def parse(
        cls,
        qualified_name: str,
        normalize: IdentifierNormalizer = _keep_case,
    ) -> "TableReference":
        """
        Parse ``schema.table`` into a reference

        Raises:
            ValueError: If the name is not schema-qualified
        """
        text = (qualified_name or "").strip()
        schema, sep, name = text.partition(".")
        schema, name = schema.strip(), name.strip()
        if not sep or not schema or not name or "." in name:
            raise ValueError(
                f"Table reference must be in 'schema.table' format: {qualified_name!r}"
            )
        return cls(schema=normalize(schema), name=normalize(name))

    def normalized(self, normalize: IdentifierNormalizer) -> "TableReference":
        return TableReference(schema=normalize(self.schema), name=normalize(self.name))

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class TableMapping:
    """A source table paired with the target table it was migrated to."""

    source: TableReference
    target: TableReference

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


def parse_table_mappings(
    mapping_spec: str,
    source_normalize: IdentifierNormalizer = _keep_case,
    target_normalize: IdentifierNormalizer = _keep_case,
) -> list[TableMapping]:
    """
    Parse an explicit mapping list

    Args:
        mapping_spec: ``SRC.T1=tgt.t1,SRC.T2=tgt.t2`` or ``schema.table`` entries
        source_normalize: Identifier case convention of the source engine
        target_normalize: Identifier case convention of the target engine

    Returns:
        Mappings in the order written, duplicates removed

    Raises:
        ValueError: If the list is empty, is ``ALL``, or an entry is malformed
    """
    if not mapping_spec or not mapping_spec.strip():
        raise ValueError("No tables to compare were specified")

    if is_all_tables(mapping_spec):
        raise ValueError("'ALL' requires schema discovery, use discover_table_mappings()")

    mappings: list[TableMapping] = []
    for entry in mapping_spec.split(","):
        entry = entry.strip()
        if not entry:
            continue

        source_text, sep, target_text = entry.partition("=")
        if not sep:
            target_text = source_text

        mapping = TableMapping(
            source=TableReference.parse(source_text, source_normalize),
            target=TableReference.parse(target_text, target_normalize),
        )
        if mapping not in mappings:
            mappings.append(mapping)

    if not mappings:
        raise ValueError("No tables to compare were specified")

    return mappings


def is_all_tables(mapping_spec: str | None) -> bool:
    return (mapping_spec or "").strip().upper() == ALL_TABLES


def discover_table_mappings(
    source_schema: str,
    source_tables: Iterable[str],
    target_schema: str,
    target_tables: Iterable[str],
) -> list[TableMapping]:
    """
    Pair tables that exist in both schemas

    Names are matched case-insensitively and each side keeps the spelling its
    catalog reported. Tables present on only one side are logged and skipped.

    Returns:
        Mappings sorted by source table name
    """
    target_by_lower = {}
    for name in target_tables:
        target_by_lower.setdefault(name.lower(), name)

    mappings = []
    unmatched = []
    for name in sorted(set(source_tables), key=str.lower):
        target_name = target_by_lower.pop(name.lower(), None)
        if target_name is None:
            unmatched.append(name)
            continue
        mappings.append(
            TableMapping(
                source=TableReference(schema=source_schema, name=name),
                target=TableReference(schema=target_schema, name=target_name),
            )
        )

    if unmatched:
        logger.warning(
            f"{len(unmatched)} source table(s) have no counterpart in {target_schema}: "
            f"{', '.join(unmatched)}"
        )
    if target_by_lower:
        logger.warning(
            f"{len(target_by_lower)} target table(s) have no counterpart in {source_schema}: "
            f"{', '.join(sorted(target_by_lower.values()))}"
        )

    logger.info(f"Discovered {len(mappings)} common table(s) between {source_schema} and {target_schema}")
    return mappings
