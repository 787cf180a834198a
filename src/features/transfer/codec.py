"""
Codec de texto delimitado (CSV mínimo).

- Cada línea no vacía es un registro; la primera es el encabezado.
- Los campos entre comillas pueden contener el delimitador; `""` dentro
  de un campo entrecomillado es una comilla literal.
- Al serializar, cada celda va entre comillas con las comillas internas
  duplicadas.
"""
import csv
import io
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence


@dataclass
class DelimitedTable:
    headers: List[str]
    rows: List[Dict[str, str]] = field(default_factory=list)


def parse_delimited(text: str, delimiter: str = ",") -> DelimitedTable:
    lines = [line for line in (text or "").lstrip("\ufeff").splitlines() if line.strip()]
    if not lines:
        return DelimitedTable(headers=[])

    reader = csv.reader(lines, delimiter=delimiter)
    headers = [str(h or "").strip() for h in next(reader)]

    rows: List[Dict[str, str]] = []
    for values in reader:
        rows.append({
            header: (values[idx].strip() if idx < len(values) else "")
            for idx, header in enumerate(headers)
        })
    return DelimitedTable(headers=headers, rows=rows)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_delimited(header: Sequence[str], rows: Iterable[Sequence[Any]], delimiter: str = ",") -> str:
    stream = io.StringIO()
    writer = csv.writer(stream, delimiter=delimiter, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([_cell(h) for h in header])
    for row in rows:
        writer.writerow([_cell(v) for v in row])

    content = stream.getvalue()
    # Sin salto de línea final: registros unidos por "\n"
    return content[:-1] if content.endswith("\n") else content
