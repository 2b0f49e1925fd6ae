"""CSV catalog import: row normalization and de-duplicating batch insert.

Accepted column aliases, defaults and positional fallbacks live in the
``RowSchema`` tables below rather than in the parsing code.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import IO, Iterable, Mapping, Sequence

from .db import get_db
from .db_config import DB_ERRORS
from .errors import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    name: str
    aliases: tuple[str, ...]
    required: bool = False
    # Index into the raw values (header order) tried when no alias matches
    position: int | None = None
    default: str | None = None
    # 'upper', 'lower' or None
    case: str | None = None

    def apply_case(self, value: str) -> str:
        if self.case == 'upper':
            return value.upper()
        if self.case == 'lower':
            return value.lower()
        return value


@dataclass(frozen=True)
class RowSchema:
    entity: str
    fields: tuple[FieldRule, ...]


VOCABULARY_SCHEMA = RowSchema('vocabulary', (
    FieldRule('headword', ('headword', 'word'), required=True),
    FieldRule('cefr', ('cefr', 'cefr_level', 'level'), required=True, case='upper'),
    FieldRule('vietnamese_meaning', ('vietnamese_meaning', 'meaning', 'translation', 'vietnamese')),
    FieldRule('topic', ('topic',)),
    FieldRule('image_url', ('image_url',)),
    FieldRule('audio_url', ('audio_url',)),
))

SENTENCE_SCHEMA = RowSchema('sentence', (
    FieldRule('sentence', ('sentence', 'text', 'content'), required=True, position=0),
    FieldRule('translation', ('translation', 'vietnamese', 'meaning'), position=1),
    FieldRule('difficulty', ('difficulty', 'level'), default='medium', case='lower'),
    FieldRule('category', ('category', 'topic'), default='general', case='lower'),
))


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_row(row: Mapping[str, str], schema: RowSchema) -> dict | None:
    """Map one loosely-named record onto ``schema``; None when a required field is missing"""
    by_name: dict[str, str] = {}
    raw_values = []
    for key, value in row.items():
        if key is None:
            # csv.DictReader collects cells beyond the header under None
            raw_values.extend(value or ())
            continue
        by_name.setdefault(str(key).strip().lower(), value)
        raw_values.append(value)

    payload = {}
    for rule in schema.fields:
        value = None
        for alias in rule.aliases:
            value = _clean(by_name.get(alias))
            if value is not None:
                break
        if value is None and rule.position is not None and rule.position < len(raw_values):
            value = _clean(raw_values[rule.position])
        if value is None:
            if rule.required:
                return None
            value = rule.default
        payload[rule.name] = rule.apply_case(value) if value is not None else None
    return payload


def normalize_rows(rows: Iterable[Mapping[str, str]], schema: RowSchema) -> list[dict]:
    batch = []
    for row in rows:
        payload = normalize_row(row, schema)
        if payload is not None:
            batch.append(payload)
    return batch


def read_csv_rows(stream: IO[str]) -> list[dict]:
    return list(csv.DictReader(stream))


def read_csv_file(path: str, schema: RowSchema) -> list[dict]:
    with open(path, newline='', encoding='utf-8-sig') as f:
        return normalize_rows(read_csv_rows(f), schema)


def parse_csv_text(text: str, schema: RowSchema) -> list[dict]:
    return normalize_rows(read_csv_rows(io.StringIO(text, newline='')), schema)


@dataclass(frozen=True)
class ImportTarget:
    """Where a normalized batch goes and how payload keys map onto columns."""

    table: str
    natural_key: str
    # column name -> payload key
    columns: Mapping[str, str]
    defaults: Mapping[str, str] = field(default_factory=dict)

    def values(self, payload: Mapping) -> list:
        values = []
        for column, key in self.columns.items():
            value = payload.get(key)
            if value is None or value == '':
                value = self.defaults.get(column)
            values.append(value)
        return values


VOCABULARY_TARGET = ImportTarget(
    table='vocabulary',
    natural_key='headword',
    columns={
        'headword': 'headword',
        'cefr_level': 'cefr',
        'vietnamese_meaning': 'vietnamese_meaning',
        'topic': 'topic',
        'image_url': 'image_url',
        'audio_url': 'audio_url',
    },
    defaults={'cefr_level': 'A1'},
)

SENTENCE_TARGET = ImportTarget(
    table='speech_practice_sentences',
    natural_key='sentence',
    columns={
        'sentence': 'sentence',
        'translation': 'translation',
        'difficulty': 'difficulty',
        'category': 'category',
    },
    defaults={'difficulty': 'medium', 'category': 'general'},
)


def import_batch(target: ImportTarget, batch: Sequence[Mapping]) -> dict:
    """Insert the payloads whose natural key is not stored yet, all or nothing.

    Keys are compared verbatim, so case variants are distinct entries.
    Concurrent imports of the same new key may still hit the unique constraint.
    """
    columns = list(target.columns)
    exists_sql = f"SELECT id FROM {target.table} WHERE {target.natural_key} = ?"
    insert_sql = (f"INSERT INTO {target.table} ({', '.join(columns)}) "
                  f"VALUES ({', '.join('?' for _ in columns)})")

    conn = get_db()
    inserted = 0
    try:
        for payload in batch:
            key = payload.get(target.columns[target.natural_key])
            if conn.fetchone(exists_sql, (key,)) is not None:
                continue
            conn.execute(insert_sql, target.values(payload))
            inserted += 1
        conn.commit()
    except DB_ERRORS as e:
        conn.rollback()
        logger.error("Error importing %s batch of %d rows: %s", target.table, len(batch), e)
        raise StorageError(f"Error importing {target.table}", e) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    logger.info("Imported %d of %d %s rows", inserted, len(batch), target.table)
    return {'success': True, 'count': inserted}
