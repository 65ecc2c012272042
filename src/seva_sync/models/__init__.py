"""
seva_sync models.

Pydantic models for configuration, command parameters, the live and
CSV-backed secret/variable records, repositories and run summaries.

Key models:
    - Config: Application configuration loaded from environment
    - ExportParams / CreateParams: validated command parameters
    - Repository / ScopedRepository: inventory snapshot entries
    - ImportedSecret / ImportedVariable: CSV rows
    - ReconcileSummary: per-operation results of one command
"""

from .config import Config, load_env
from .run_params import ExportParams, CreateParams, default_report_file
from .repository import Repository, ScopedRepository
from .secret import (
    REPO_ONLY,
    SELECTED,
    PRIVATE,
    Level,
    Provider,
    AppFilter,
    Secret,
    ImportedSecret,
    PublicKey,
)
from .variable import Variable, ImportedVariable
from .environment import Environment, EnvironmentReportRow
from .summary import OperationResult, ReconcileSummary

__all__ = [
    "Config",
    "load_env",
    "ExportParams",
    "CreateParams",
    "default_report_file",
    "Repository",
    "ScopedRepository",
    "REPO_ONLY",
    "SELECTED",
    "PRIVATE",
    "Level",
    "Provider",
    "AppFilter",
    "Secret",
    "ImportedSecret",
    "PublicKey",
    "Variable",
    "ImportedVariable",
    "Environment",
    "EnvironmentReportRow",
    "OperationResult",
    "ReconcileSummary",
]
