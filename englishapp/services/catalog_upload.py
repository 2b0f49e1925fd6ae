"""CSV uploads and downloads feeding the catalog importer.

Every incoming file is written to a temporary path that is removed once the
batch has been parsed, on success and on failure alike.
"""
import csv
import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
from contextlib import contextmanager

from ..errors import ValidationError
from ..importing import RowSchema, read_csv_file

logger = logging.getLogger(__name__)

CSV_TYPES = ('text/csv', 'application/csv', 'application/vnd.ms-excel', 'text/x-csv', 'application/x-csv')
DOWNLOAD_TIMEOUT = 30


@contextmanager
def temporary_file(suffix='.csv'):
    fd, path = tempfile.mkstemp(suffix=suffix, prefix='upload-')
    os.close(fd)
    try:
        yield path
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def _read(path, schema):
    try:
        return read_csv_file(path, schema)
    except (UnicodeDecodeError, csv.Error) as e:
        raise ValidationError('File is not a valid UTF-8 CSV file', str(e)) from e


def parse_uploaded_csv(file, schema: RowSchema) -> list[dict]:
    """Save a multipart upload to a temporary file and normalize its rows"""
    with temporary_file() as path:
        file.save(path)
        return _read(path, schema)


def parse_remote_csv(url: str, schema: RowSchema) -> list[dict]:
    """Download ``url`` to a temporary file and normalize its rows"""
    if not url.lower().startswith(('http://', 'https://')):
        raise ValidationError('Only http(s) URLs are supported')
    with temporary_file() as path:
        try:
            with urllib.request.urlopen(url, timeout=DOWNLOAD_TIMEOUT) as resp, open(path, 'wb') as out:
                shutil.copyfileobj(resp, out)
        except (urllib.error.URLError, TimeoutError) as e:
            logger.warning("Could not download %s: %s", url, e)
            raise ValidationError('Could not download file from URL', str(e)) from e
        return _read(path, schema)


def import_parsed_batch(batch: list[dict], importer, empty_message: str) -> dict:
    """Hand a non-empty batch to ``importer``; an empty batch is a client error"""
    if not batch:
        raise ValidationError(empty_message)
    result = importer(batch)
    return {'processed': len(batch), 'inserted': result['count']}
