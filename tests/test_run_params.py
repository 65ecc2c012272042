from datetime import datetime
from pathlib import Path

import pytest

from seva_sync.models.run_params import (
    CreateParams,
    ExportParams,
    default_report_file,
)
from seva_sync.models.secret import AppFilter, Provider


def test_export_params_valid():
	p = ExportParams(owner="acme", repos=["api", "web.site"], app="dependabot",
	                 output_file="out.csv")
	assert p.app is AppFilter.DEPENDABOT
	assert p.output_file == Path("out.csv")


def test_export_params_invalid_owner():
	with pytest.raises(ValueError):
		ExportParams(owner="../evil", output_file="out.csv")


def test_export_params_invalid_repo():
	with pytest.raises(ValueError):
		ExportParams(owner="acme", repos=["a/b"], output_file="out.csv")


def test_export_params_unknown_app():
	with pytest.raises(ValueError):
		ExportParams(owner="acme", app="pages", output_file="out.csv")


def test_export_params_output_is_directory(tmp_path):
	with pytest.raises(ValueError):
		ExportParams(owner="acme", output_file=tmp_path)


def test_create_params_requires_a_source():
	with pytest.raises(ValueError, match="must be specified"):
		CreateParams(owner="acme")


def test_create_params_rejects_both_sources():
	with pytest.raises(ValueError, match="only one"):
		CreateParams(owner="acme", from_file="s.csv", source_org="old")


def test_create_params_migration():
	assert CreateParams(owner="acme", source_org="old").is_migration
	assert not CreateParams(owner="acme", from_file="s.csv").is_migration


def test_default_report_file():
	now = datetime(2024, 3, 5, 7, 8, 9)
	assert default_report_file("secrets", now) == \
	    "report-secrets-20240305070809.csv"


@pytest.mark.parametrize("app, included", [
    ("all", {"Actions", "Dependabot", "Codespaces"}),
    ("actions", {"Actions"}),
    ("codespaces", {"Codespaces"}),
])
def test_app_filter(app, included):
	f = AppFilter(app)
	assert {p.value for p in Provider if f.includes(p)} == included
