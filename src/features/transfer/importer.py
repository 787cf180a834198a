"""
Pipeline de importación masiva.

archivo -> codec -> normalización de encabezados -> validación por fila
-> alta secuencial (una fila a la vez) -> refresco del listado.

Los problemas de fila se acumulan en el resultado; solo los fallos del
archivo completo lanzan ImportFileError.
"""
import csv
import logging
import re
import secrets
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from src.core.config import settings
from src.core.errors import ImportFileError, RecordsApiError
from src.features.records.models import ImportResult, ImportRow
from src.features.records.registry import EntityDefinition, record_key

from .codec import DelimitedTable, parse_delimited
from .validators import check_row

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".csv", ".xlsx", ".xls"}
# Contenedores binarios de hojas de cálculo (zip de .xlsx y OLE2 de .xls)
BINARY_SIGNATURES = (b"PK\x03\x04", b"\xd0\xcf\x11\xe0")
USERNAME_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")
TRUTHY = {"true", "yes", "y", "1", "active"}


def decode_upload_bytes(raw: bytes) -> str:
    if raw.startswith(BINARY_SIGNATURES):
        raise ImportFileError("Binary spreadsheet files are not supported. Save the sheet as CSV and try again.")
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ImportFileError("Failed to read file")


def normalize_headers(rows: Iterable[Mapping[str, Any]], mapping: Mapping[str, str]) -> List[Dict[str, Any]]:
    """Traduce encabezados con la tabla de mapeo; los no mapeados pasan tal cual."""
    normalized = []
    for row in rows:
        out: Dict[str, Any] = {}
        for key, value in row.items():
            out[mapping.get(key.strip().lower(), key)] = value
        normalized.append(out)
    return normalized


def build_import_rows(
    records: Sequence[Mapping[str, Any]],
    definition: EntityDefinition,
    existing: Optional[Iterable[Mapping[str, Any]]] = None,
) -> List[ImportRow]:
    """Valida cada fila. Número de fila = índice + 2 (encabezado y base 1)."""
    seen = set()
    check_duplicates = existing is not None
    if check_duplicates:
        seen = {k for k in (record_key(r, definition) for r in existing) if k}

    rows: List[ImportRow] = []
    for index, data in enumerate(records):
        line = index + 2
        errors = check_row(data, line, definition.required_fields, definition.validators)

        if check_duplicates:
            key = record_key(data, definition)
            if key and key in seen:
                label = definition.natural_key or "key"
                errors.append(f'Row {line}: Duplicate {label} "{key}"')
            elif key and not errors:
                seen.add(key)

        rows.append(ImportRow(line=line, data=dict(data), errors=errors))
    return rows


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(12)


def username_from_email(email: str) -> str:
    local = (email or "").split("@")[0].strip()
    return USERNAME_UNSAFE.sub("", local)


def _coerce_like(default: Any, value: Any) -> Any:
    if isinstance(default, bool) and isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return value


def build_create_payload(data: Mapping[str, Any], definition: EntityDefinition) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key, value in data.items():
        if not key:
            continue
        text = value.strip() if isinstance(value, str) else value
        if key in definition.uppercase_fields and isinstance(text, str):
            text = text.upper()
        payload[key] = text

    for key, default in definition.defaults.items():
        current = payload.get(key)
        if current is None or current == "":
            payload[key] = default
        else:
            payload[key] = _coerce_like(default, current)

    if definition.needs_credentials:
        if not payload.get("username"):
            email = next((payload[f] for f in definition.credential_email_fields if payload.get(f)), "")
            username = username_from_email(str(email))
            if username:
                payload["username"] = username
        if not payload.get("password"):
            payload["password"] = generate_temporary_password()

    return payload


async def submit_rows(client, definition: EntityDefinition, rows: Sequence[ImportRow], result: ImportResult) -> ImportResult:
    """Altas estrictamente secuenciales; una fila fallida no bloquea las siguientes."""
    for row in rows:
        payload = build_create_payload(row.data, definition)
        try:
            await client.post_json(definition.create_path, payload)
        except RecordsApiError as e:
            logger.warning("❌ Fila %s rechazada por la API (%s): %s", row.line, definition.kind, e)
            result.error_count += 1
            result.errors.append(f"Row {row.line}: {e.message}")
            continue
        result.success_count += 1
    return result


def read_table(
    filename: str,
    contents: Union[bytes, str],
    *,
    max_bytes: Optional[int] = None,
    max_rows: Optional[int] = None,
) -> DelimitedTable:
    ext = Path(filename or "").suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ImportFileError(f"Unsupported file type '{ext or filename}'. Use .csv, .xlsx or .xls")

    max_bytes = max_bytes if max_bytes is not None else settings.IMPORT_MAX_BYTES
    max_rows = max_rows if max_rows is not None else settings.IMPORT_MAX_ROWS

    raw = contents.encode("utf-8") if isinstance(contents, str) else contents
    if raw is None:
        raise ImportFileError("Failed to read file")
    if len(raw) > max_bytes:
        raise ImportFileError(f"File is too large ({len(raw)} bytes). Maximum allowed is {max_bytes} bytes")

    text = contents if isinstance(contents, str) else decode_upload_bytes(raw)
    try:
        table = parse_delimited(text)
    except csv.Error as e:
        raise ImportFileError(f"Failed to parse file: {e}") from e

    if not table.rows:
        raise ImportFileError("No data rows found in file")
    if len(table.rows) > max_rows:
        raise ImportFileError(f"File has {len(table.rows)} rows. Maximum allowed is {max_rows}")
    return table


async def import_records(
    client,
    definition: EntityDefinition,
    filename: str,
    contents: Union[bytes, str],
    *,
    existing: Optional[Iterable[Mapping[str, Any]]] = None,
    on_success: Optional[Callable[[], Awaitable[Any]]] = None,
    max_bytes: Optional[int] = None,
    max_rows: Optional[int] = None,
) -> ImportResult:
    if not definition.create_path:
        raise ImportFileError(f"Import is not available for '{definition.kind}'")

    table = read_table(filename, contents, max_bytes=max_bytes, max_rows=max_rows)
    records = normalize_headers(table.rows, definition.field_mapping)
    rows = build_import_rows(records, definition, existing=existing)

    result = ImportResult()
    valid_rows = []
    for row in rows:
        if row.is_valid:
            valid_rows.append(row)
        else:
            result.error_count += 1
            result.errors.extend(row.errors)

    logger.info(
        "📥 Importando %s (%s): %s filas válidas, %s con errores",
        filename, definition.kind, len(valid_rows), result.error_count,
    )
    await submit_rows(client, definition, valid_rows, result)

    if result.success_count > 0 and on_success is not None:
        await on_success()

    logger.info(
        "✅ Importación %s terminada: %s creados, %s errores",
        definition.kind, result.success_count, result.error_count,
    )
    return result
