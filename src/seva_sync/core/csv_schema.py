"""
CSV schema.

Bidirectional mapping between the flat CSV rows and the ImportedSecret /
ImportedVariable records. Multi-valued cells use ``;``; an empty list
and ``[""]`` serialize identically and both read back as "no
repositories".
"""

from __future__ import annotations

import csv
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TextIO, TypeVar

from seva_sync.models.environment import EnvironmentReportRow
from seva_sync.models.secret import (
    SELECTED,
    ImportedSecret,
    Level,
    Provider,
)
from seva_sync.models.variable import ImportedVariable

SEPARATOR = ";"
REVIEWER_SEPARATOR = "|"

SECRET_HEADER = [
    "SecretLevel",
    "SecretType",
    "SecretName",
    "SecretValue",
    "SecretAccess",
    "RepositoryNames",
    "RepositoryIDs",
]
VARIABLE_HEADER = [
    "VariableLevel",
    "VariableName",
    "VariableValue",
    "VariableAccess",
    "RepositoryNames",
    "RepositoryIDs",
]
ENVIRONMENT_HEADER = [
    "RepositoryName",
    "RepositoryID",
    "EnvironmentName",
    "AdminBypass",
    "WaitTimer",
    "Reviewers",
    "ProtectedBranches",
    "CustomBranchPolicies",
    "SecretsTotalCount",
    "SecretsList",
    "VariablesTotalCount",
    "VariablesList",
]

_LEVELS = {lvl.value for lvl in Level}
_PROVIDERS = {p.value for p in Provider}

T = TypeVar("T")


class CsvSchemaError(ValueError):
	"""A CSV row (or the whole file) does not match the schema."""

	def __init__(self, message: str, line: int | None = None,
	             name: str | None = None):
		prefix = f"line {line}: " if line is not None else ""
		super().__init__(prefix + message)
		self.line = line
		self.name = name


def join_cell(values: Sequence[str]) -> str:
	return SEPARATOR.join(values)


def split_cell(cell: str) -> list[str]:
	return cell.split(SEPARATOR)


def is_unscoped(values: Sequence[str]) -> bool:
	"""True for ``[]`` and ``[""]``."""
	return not values or list(values) == [""]


def _repo_list(cell: str) -> list[str]:
	values = split_cell(cell)
	return [] if is_unscoped(values) else values


def secret_row(level: Level, provider: Provider, name: str, access: str,
               names: Sequence[str], ids: Sequence[str]) -> list[str]:
	"""Export row for one secret; the value column is always empty."""
	return [
	    level.value, provider.value, name, "", access,
	    join_cell(names),
	    join_cell(ids)
	]


def variable_row(level: Level, name: str, value: str, access: str,
                 names: Sequence[str], ids: Sequence[str]) -> list[str]:
	return [level.value, name, value, access, join_cell(names), join_cell(ids)]


def environment_row(row: EnvironmentReportRow) -> list[str]:
	return [
	    row.repository_name,
	    str(row.repository_id),
	    row.environment_name,
	    str(row.admin_bypass).lower(),
	    str(row.wait_timer),
	    REVIEWER_SEPARATOR.join(row.reviewers),
	    str(row.protected_branches).lower(),
	    str(row.custom_branch_policies).lower(),
	    str(len(row.secrets)),
	    join_cell(row.secrets),
	    str(len(row.variables)),
	    join_cell(row.variables),
	]


def _check_scope(level: str, access: str, target: str | None,
                 names: list[str], ids: list[str], line: int | None,
                 name: str) -> None:
	if level not in _LEVELS:
		raise CsvSchemaError(f"unknown level {level!r} for {name}", line, name)
	if level == Level.REPOSITORY.value:
		if target is None:
			raise CsvSchemaError(
			    f"repository-level {name} has no repository name", line, name)
		if len(names) != 1:
			raise CsvSchemaError(
			    f"repository-level {name} lists {len(names)} repositories, "
			    "expected one", line, name)
		return
	if access == SELECTED:
		if not names or not ids:
			raise CsvSchemaError(
			    f"{name} is selected but lists no repositories", line, name)
		if len(names) != len(ids):
			raise CsvSchemaError(
			    f"{name} lists {len(names)} repository names but "
			    f"{len(ids)} IDs", line, name)


def parse_secret_row(cells: Sequence[str],
                     line: int | None = None) -> ImportedSecret:
	"""Build an ImportedSecret from one CSV row and check its invariants."""
	if len(cells) < len(SECRET_HEADER):
		raise CsvSchemaError(
		    f"expected {len(SECRET_HEADER)} columns, got {len(cells)}", line)
	level, kind, name, value, access, names, ids = cells[:len(SECRET_HEADER)]
	secret = ImportedSecret(
	    level=level.strip(),
	    type=kind.strip(),
	    name=name.strip(),
	    value=value,
	    access=access.strip(),
	    repository_names=_repo_list(names),
	    repository_ids=_repo_list(ids),
	)
	if not secret.name:
		raise CsvSchemaError("secret name is empty", line)
	if secret.type not in _PROVIDERS:
		raise CsvSchemaError(
		    f"unknown secret type {secret.type!r} for {secret.name}", line,
		    secret.name)
	_check_scope(secret.level, secret.access, secret.target_repository,
	             secret.repository_names, secret.repository_ids, line,
	             secret.name)
	return secret


def parse_variable_row(cells: Sequence[str],
                       line: int | None = None) -> ImportedVariable:
	"""Build an ImportedVariable from one CSV row and check its invariants."""
	if len(cells) < len(VARIABLE_HEADER):
		raise CsvSchemaError(
		    f"expected {len(VARIABLE_HEADER)} columns, got {len(cells)}",
		    line)
	level, name, value, access, names, ids = cells[:len(VARIABLE_HEADER)]
	variable = ImportedVariable(
	    level=level.strip(),
	    name=name.strip(),
	    value=value,
	    access=access.strip(),
	    repository_names=_repo_list(names),
	    repository_ids=_repo_list(ids),
	)
	if not variable.name:
		raise CsvSchemaError("variable name is empty", line)
	_check_scope(variable.level, variable.access, variable.target_repository,
	             variable.repository_names, variable.repository_ids, line,
	             variable.name)
	return variable


@dataclass
class ParsedRows(Generic[T]):
	"""Rows that parsed, and the per-row errors of those that didn't."""

	records: list[tuple[int, T]] = field(default_factory=list)
	errors: list[CsvSchemaError] = field(default_factory=list)


def _read(path: Path | str, header: list[str], parse) -> ParsedRows:
	parsed: ParsedRows = ParsedRows()
	with open(path, newline="", encoding="utf-8-sig") as fh:
		reader = csv.reader(fh)
		first = next(reader, None)
		if first is None:
			raise CsvSchemaError(f"{path} is empty")
		if [c.strip() for c in first[:len(header)]] != header:
			raise CsvSchemaError(
			    f"{path} does not start with the expected header: "
			    f"{','.join(header)}")
		for cells in reader:
			line = reader.line_num
			if not any(c.strip() for c in cells):
				continue
			try:
				parsed.records.append((line, parse(cells, line)))
			except CsvSchemaError as exc:
				parsed.errors.append(exc)
	return parsed


def read_secrets(path: Path | str) -> ParsedRows[ImportedSecret]:
	"""Read a secrets CSV. File-level problems raise; row problems are collected."""
	return _read(path, SECRET_HEADER, parse_secret_row)


def read_variables(path: Path | str) -> ParsedRows[ImportedVariable]:
	return _read(path, VARIABLE_HEADER, parse_variable_row)


class ReportWriter:
	"""CSV writer that emits the header first and counts data rows."""

	def __init__(self, fh: TextIO, header: Sequence[str]):
		self._writer = csv.writer(fh)
		self._writer.writerow(header)
		self.rows = 0

	def write(self, cells: Sequence[str]) -> None:
		self._writer.writerow(cells)
		self.rows += 1


@contextmanager
def open_report(path: Path | str,
                header: Sequence[str]) -> Iterator[ReportWriter]:
	"""Create (or truncate) a report file and yield its writer."""
	with open(path, "w", newline="", encoding="utf-8") as fh:
		yield ReportWriter(fh, header)


__all__ = [
    "SEPARATOR",
    "SECRET_HEADER",
    "VARIABLE_HEADER",
    "ENVIRONMENT_HEADER",
    "CsvSchemaError",
    "ParsedRows",
    "ReportWriter",
    "join_cell",
    "split_cell",
    "is_unscoped",
    "secret_row",
    "variable_row",
    "environment_row",
    "parse_secret_row",
    "parse_variable_row",
    "read_secrets",
    "read_variables",
    "open_report",
]
