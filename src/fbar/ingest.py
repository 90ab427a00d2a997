from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from fbar.errors import ConfigError, InvalidRecord
from fbar.importers import default_importers
from fbar.importers.base import StatementImporter, read_csv_rows
from fbar.models import StatementRecord


log = logging.getLogger(__name__)

STATEMENT_SUFFIXES = (".csv", ".tsv")


def _is_hidden(rel: Path) -> bool:
    return any(part.startswith(".") for part in rel.parts)


def discover_statement_files(root: Path, *, exclude: Iterable[Path] = ()) -> list[Path]:
    excluded = [p.resolve() for p in exclude]
    files: list[Path] = []
    for p in root.rglob("*"):
        if not p.is_file() or p.suffix.lower() not in STATEMENT_SUFFIXES:
            continue
        if _is_hidden(p.relative_to(root)):
            continue
        resolved = p.resolve()
        if any(resolved == ex or ex in resolved.parents for ex in excluded):
            continue
        files.append(p)
    return sorted(files, key=lambda p: p.relative_to(root).as_posix())


def institution_hint_for(path: Path, root: Path) -> Optional[str]:
    # statements/<provider_handle>/2023/jan.csv -> provider_handle
    parts = path.relative_to(root).parts
    return parts[0] if len(parts) > 1 else None


def detect_importer(headers: list[str], *, file_name: str, format_override: Optional[str] = None) -> StatementImporter:
    if format_override:
        for imp in default_importers():
            if imp.format_name == format_override:
                return imp
        raise ConfigError(f"Unknown format: {format_override}")
    matches = [imp for imp in default_importers() if imp.detect(headers)]
    if not matches:
        raise ConfigError(f"{file_name}: could not detect statement format from headers: {headers[:8]}")
    if len(matches) > 1:
        names = ", ".join(i.format_name for i in matches)
        raise ConfigError(f"{file_name}: ambiguous statement format; matches: {names}. Use --format to override.")
    return matches[0]


def read_statement_file(
    path: Path,
    *,
    root: Path,
    skip_invalid: bool = False,
    warnings: Optional[list[str]] = None,
    format_override: Optional[str] = None,
) -> list[StatementRecord]:
    rel = path.relative_to(root).as_posix()
    content = path.read_text(encoding="utf-8-sig", errors="replace")
    headers, rows = read_csv_rows(content)
    importer = detect_importer(headers, file_name=rel, format_override=format_override)
    hint = institution_hint_for(path, root)
    log.debug("%s: %s, %d rows, institution hint %s", rel, importer.format_name, len(rows), hint)

    if not rows and warnings is not None:
        warnings.append(f"{rel}: no data rows")

    out: list[StatementRecord] = []
    for idx, r in enumerate(rows, start=2):
        source = f"{rel}:{idx}"
        try:
            out.append(importer.parse_row(r, institution_hint=hint, source=source))
        except ValueError as e:
            err = InvalidRecord(str(e), source=source)
            if not skip_invalid:
                raise err from e
            if warnings is not None:
                warnings.append(f"Skipped record: {err}")
    return out


def iter_statements(
    root: Path,
    *,
    skip_invalid: bool = False,
    warnings: Optional[list[str]] = None,
    exclude: Iterable[Path] = (),
    format_override: Optional[str] = None,
) -> Iterator[StatementRecord]:
    for path in discover_statement_files(root, exclude=exclude):
        yield from read_statement_file(
            path,
            root=root,
            skip_invalid=skip_invalid,
            warnings=warnings,
            format_override=format_override,
        )
