"""Heuristic fact extraction from a free-form system design document.

Modules and tables are look-up facts embedded in every prompt; they are not
chunks. Extraction is best effort: a design with no recognizable headers
falls back to splitting on separators, and a design without CREATE TABLE
statements simply yields no tables.
"""

from __future__ import annotations

import logging
import re

from chunksmith.pipeline.models import ModuleFact, SqlColumn, SqlTable

logger = logging.getLogger(__name__)

# "## Module 1: Title", "### Module 2 Title", "## Module: Title", "## Title"
_MODULE_HEADER_RE = re.compile(
    r"^#{2,}[ \t]*(?:Module[ \t]+\d+[ \t]*:?|Module[ \t]*:)?[ \t]*(.+?)[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)
# Headers that introduce schema sections rather than functional modules
_SCHEMA_HEADER_RE = re.compile(
    r"data\s+model|database\s+schema|sql\s+script|schema$", re.IGNORECASE
)
_SEPARATOR_RE = re.compile(r"---|#{2,}")
_INPUTS_RE = re.compile(r"Inputs?:\s*(.+?)(?=Outputs?:)", re.IGNORECASE | re.DOTALL)
_OUTPUTS_RE = re.compile(r"Outputs?:\s*(.+?)(?=#{2,}|\Z)", re.IGNORECASE | re.DOTALL)
_FALLBACK_MIN_SECTION = 50

_CREATE_TABLE_RE = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[\"`\[]?([\w.]+)[\"`\]]?\s*\(",
    re.IGNORECASE,
)
_TABLE_CONSTRAINT_RE = re.compile(
    r"^(?:CONSTRAINT|PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|CHECK|INDEX|KEY)\b",
    re.IGNORECASE,
)
_TYPE_STOP_WORDS = frozenset(
    ["NOT", "NULL", "PRIMARY", "UNIQUE", "DEFAULT", "REFERENCES", "CHECK",
     "CONSTRAINT", "GENERATED", "AUTO_INCREMENT", "AUTOINCREMENT", "COLLATE"]
)


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


def extract_modules(design: str) -> list[ModuleFact]:
    """Return the functional modules described in *design*."""
    if not design or not design.strip():
        return []

    matches = [
        m for m in _MODULE_HEADER_RE.finditer(design)
        if not _SCHEMA_HEADER_RE.search(m.group(1))
    ]
    if not matches:
        modules = _split_on_separators(design)
        logger.debug("No module headers found; fallback split gave %d modules", len(modules))
        return modules

    modules: list[ModuleFact] = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(design)
        body = design[match.end():end]
        # stop at the next header of any kind (e.g. a schema section)
        next_header = re.search(r"^#{2,}", body, re.MULTILINE)
        if next_header:
            body = body[: next_header.start()]
        body = body.strip()
        inputs = _field(_INPUTS_RE, body)
        outputs = _field(_OUTPUTS_RE, body)
        modules.append(
            ModuleFact(
                title=match.group(1).strip(),
                description=_clean_description(body, inputs, outputs),
                inputs=inputs,
                outputs=outputs,
            )
        )
    logger.debug("Extracted %d modules from design document", len(modules))
    return modules


def _split_on_separators(design: str) -> list[ModuleFact]:
    modules: list[ModuleFact] = []
    for section in _SEPARATOR_RE.split(design):
        section = section.strip()
        if len(section) <= _FALLBACK_MIN_SECTION:
            continue
        first_line = section.split("\n", 1)[0].strip().lstrip("#").strip()
        modules.append(
            ModuleFact(
                title=first_line or "Untitled Module",
                description=section,
                inputs=_field(_INPUTS_RE, section),
                outputs=_field(_OUTPUTS_RE, section),
            )
        )
    return modules


def _field(pattern: re.Pattern[str], content: str) -> str:
    match = pattern.search(content)
    return match.group(1).strip() if match else ""


def _clean_description(content: str, inputs: str, outputs: str) -> str:
    cleaned = content
    if inputs:
        cleaned = re.sub(r"Inputs?:\s*" + re.escape(inputs), "", cleaned, flags=re.IGNORECASE)
    if outputs:
        cleaned = re.sub(r"Outputs?:\s*" + re.escape(outputs), "", cleaned, flags=re.IGNORECASE)
    return cleaned.strip()


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def extract_tables(text: str) -> list[SqlTable]:
    """Return one SqlTable per CREATE TABLE statement found in *text*."""
    if not text:
        return []

    tables: list[SqlTable] = []
    for match in _CREATE_TABLE_RE.finditer(text):
        body = _balanced_body(text, match.end())
        if body is None:
            logger.debug("Unterminated CREATE TABLE for %s", match.group(1))
            continue
        name = match.group(1).split(".")[-1]
        tables.append(
            SqlTable(table_name=name, entity_name=_entity_name(name), columns=_parse_columns(body))
        )
    return tables


def _balanced_body(text: str, start: int) -> str | None:
    """Return the text between the '(' just before *start* and its matching ')'."""
    depth = 1
    for i in range(start, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return text[start:i]
    return None


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _parse_columns(body: str) -> list[SqlColumn]:
    columns: list[SqlColumn] = []
    table_pk: set[str] = set()
    table_unique: set[str] = set()

    for definition in _split_top_level(body):
        if _TABLE_CONSTRAINT_RE.match(definition):
            upper = definition.upper()
            names = _constraint_columns(definition)
            if "PRIMARY KEY" in upper:
                table_pk.update(names)
            elif "UNIQUE" in upper:
                table_unique.update(names)
            continue

        tokens = definition.split()
        name = tokens[0].strip("\"`[]")
        type_tokens: list[str] = []
        for token in tokens[1:]:
            if token.upper() in _TYPE_STOP_WORDS:
                break
            type_tokens.append(token)
        upper = definition.upper()
        is_pk = "PRIMARY KEY" in upper
        columns.append(
            SqlColumn(
                name=name,
                type=" ".join(type_tokens),
                is_primary_key=is_pk,
                is_nullable=not is_pk and "NOT NULL" not in upper,
                is_unique="UNIQUE" in upper,
            )
        )

    for column in columns:
        if column.name in table_pk:
            column.is_primary_key = True
            column.is_nullable = False
        if column.name in table_unique:
            column.is_unique = True
    return columns


def _constraint_columns(definition: str) -> list[str]:
    match = re.search(r"\(([^)]*)\)", definition)
    if not match:
        return []
    return [c.strip().strip("\"`[]") for c in match.group(1).split(",") if c.strip()]


def _entity_name(table_name: str) -> str:
    """users → User, order_items → OrderItem, categories → Category."""
    parts = [p for p in re.split(r"[_\s]+", table_name) if p]
    if not parts:
        return table_name
    last = parts[-1]
    if last.lower().endswith("ies"):
        last = last[:-3] + "y"
    elif last.lower().endswith("s") and not last.lower().endswith("ss"):
        last = last[:-1]
    parts[-1] = last
    return "".join(p[:1].upper() + p[1:] for p in parts)
