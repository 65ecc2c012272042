from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import typer
from pydantic import ValidationError
from typer.main import get_command

from seva_sync.core.csv_schema import (
    ENVIRONMENT_HEADER,
    SECRET_HEADER,
    VARIABLE_HEADER,
    CsvSchemaError,
    open_report,
    read_secrets,
    read_variables,
)
from seva_sync.core.driver import ReconciliationDriver
from seva_sync.core.environments import export_environments
from seva_sync.core.inventory import InventoryError, RepositoryInventory
from seva_sync.integrations.github import (
    GitHubAPIError,
    get_github_client,
    graphql_url,
)
from seva_sync.models.config import Config, load_env
from seva_sync.models.run_params import (
    CreateParams,
    ExportParams,
    default_report_file,
)
from seva_sync.models.secret import AppFilter
from seva_sync.models.summary import ReconcileSummary
from seva_sync.ui.reporting import render_summary
from seva_sync.utils.logging import configure_logging

FATAL_ERRORS = (InventoryError, GitHubAPIError, CsvSchemaError, OSError)

cli = typer.Typer(add_completion=False, no_args_is_help=True)
secrets_cli = typer.Typer(
    no_args_is_help=True,
    help="Export and create Actions, Dependabot and Codespaces secrets.")
variables_cli = typer.Typer(no_args_is_help=True,
                            help="Export and create Actions variables.")
environments_cli = typer.Typer(no_args_is_help=True,
                               help="Report repository environments.")
cli.add_typer(secrets_cli, name="secrets")
cli.add_typer(variables_cli, name="variables")
cli.add_typer(environments_cli, name="environments")


@cli.callback()
def root() -> None:
	"""
	Export and create organization and repository secrets and variables
	from CSV.
	"""
	return None


def _build_params(model: type, **values: Any) -> Any:
	try:
		return model(**values)
	except ValidationError as exc:
		messages = "; ".join(e["msg"] for e in exc.errors())
		raise typer.BadParameter(messages) from exc


def _setup(params: Any) -> tuple[Config, logging.Logger]:
	"""Load configuration, apply CLI overrides and configure logging."""
	load_env()
	config = Config()
	config.apply_overrides(params)
	logger = configure_logging(config.log_level)
	return config, logger


def _client(config: Config) -> Any:
	return get_github_client(config.github_token, config.hostname)


def _driver(config: Config, logger: logging.Logger) -> ReconciliationDriver:
	return ReconciliationDriver(
	    _client(config),
	    logger=logger,
	    graphql_url=graphql_url(config.hostname),
	    secrets_page_size=config.secrets_page_size,
	    variables_page_size=config.variables_page_size,
	)


def _fatal(logger: logging.Logger, exc: Exception) -> NoReturn:
	logger.debug("aborting", exc_info=exc)
	typer.echo(f"Error: {exc}", err=True)
	raise typer.Exit(code=1) from exc


def _finish(summary: ReconcileSummary, title: str, message: str) -> None:
	"""Render the summary and exit non-zero when anything failed."""
	render_summary(summary, title)
	if summary.has_failures:
		typer.echo(f"{summary.failed} operation(s) failed", err=True)
		raise typer.Exit(code=1)
	typer.echo(message)


def secrets_export_impl(
    owner: str,
    repos: list[str] | None = None,
    app: str = AppFilter.ALL.value,
    output_file: Path | None = None,
    token: str | None = None,
    hostname: str | None = None,
    debug: bool = False,
) -> None:
	"""
	Export secrets of the organization, or of the named repositories,
	to a CSV file.

	Parameters:
		owner: Organization login.
		repos: Repository names; empty exports the whole organization.
		app: Provider filter (all, actions, codespaces, dependabot).
		output_file: CSV path; defaults to a timestamped report name.
		token: Token override.
		hostname: Hostname override.
		debug: Enable debug logging.
	"""
	params = _build_params(
	    ExportParams,
	    owner=owner,
	    repos=repos or [],
	    app=app,
	    output_file=output_file or default_report_file("secrets"),
	    token=token,
	    hostname=hostname,
	    debug=debug,
	)
	config, logger = _setup(params)
	driver = _driver(config, logger)
	try:
		with open_report(params.output_file, SECRET_HEADER) as writer:
			summary = driver.export_secrets(params.owner, params.repos,
			                                params.app, writer)
	except FATAL_ERRORS as exc:
		_fatal(logger, exc)
	_finish(summary, "Secrets export",
	        f"Successfully exported secrets to {params.output_file}")


def secrets_create_impl(
    owner: str,
    from_file: Path,
    token: str | None = None,
    hostname: str | None = None,
    debug: bool = False,
) -> None:
	"""Create secrets listed in a CSV file."""
	params = _build_params(CreateParams, owner=owner, from_file=from_file,
	                       token=token, hostname=hostname, debug=debug)
	config, logger = _setup(params)
	driver = _driver(config, logger)
	try:
		logger.info("reading in file to create secrets")
		parsed = read_secrets(params.from_file)
	except FATAL_ERRORS as exc:
		_fatal(logger, exc)
	summary = driver.create_secrets(params.owner, parsed)
	_finish(summary, "Secrets create",
	        f"Successfully created secrets for {params.owner}")


def variables_export_impl(
    owner: str,
    repos: list[str] | None = None,
    output_file: Path | None = None,
    token: str | None = None,
    hostname: str | None = None,
    debug: bool = False,
) -> None:
	"""Export organization and repository variables to a CSV file."""
	params = _build_params(
	    ExportParams,
	    owner=owner,
	    repos=repos or [],
	    output_file=output_file or default_report_file("variables"),
	    token=token,
	    hostname=hostname,
	    debug=debug,
	)
	config, logger = _setup(params)
	driver = _driver(config, logger)
	try:
		with open_report(params.output_file, VARIABLE_HEADER) as writer:
			summary = driver.export_variables(params.owner, params.repos,
			                                  writer)
	except FATAL_ERRORS as exc:
		_fatal(logger, exc)
	_finish(summary, "Variables export",
	        f"Successfully exported variables to {params.output_file}")


def variables_create_impl(
    owner: str,
    from_file: Path | None = None,
    source_org: str | None = None,
    source_token: str | None = None,
    source_hostname: str | None = None,
    token: str | None = None,
    hostname: str | None = None,
    debug: bool = False,
) -> None:
	"""
	Create variables from a CSV file, or copy the organization variables
	of a source organization.
	"""
	params = _build_params(
	    CreateParams,
	    owner=owner,
	    from_file=from_file,
	    source_org=source_org,
	    source_token=source_token,
	    source_hostname=source_hostname,
	    token=token,
	    hostname=hostname,
	    debug=debug,
	)
	config, logger = _setup(params)
	driver = _driver(config, logger)
	if params.is_migration:
		if not config.source_token:
			raise typer.BadParameter(
			    "a personal access token must be specified to access "
			    "variables from the source organization")
		source_api = get_github_client(config.source_token,
		                               config.source_hostname)
		try:
			summary = driver.migrate_variables(source_api, params.source_org,
			                                   params.owner)
		except FATAL_ERRORS as exc:
			_fatal(logger, exc)
		_finish(
		    summary, "Variables migrate",
		    f"Successfully copied variables from {params.source_org} "
		    f"to {params.owner}")
		return
	try:
		logger.info("reading in file to create variables")
		parsed = read_variables(params.from_file)
	except FATAL_ERRORS as exc:
		_fatal(logger, exc)
	summary = driver.create_variables(params.owner, parsed)
	_finish(summary, "Variables create",
	        f"Successfully created variables for {params.owner}")


def environments_export_impl(
    owner: str,
    repos: list[str] | None = None,
    output_file: Path | None = None,
    token: str | None = None,
    hostname: str | None = None,
    debug: bool = False,
) -> None:
	"""Write a report of repository environments and their metadata."""
	params = _build_params(
	    ExportParams,
	    owner=owner,
	    repos=repos or [],
	    output_file=output_file or default_report_file("environments"),
	    token=token,
	    hostname=hostname,
	    debug=debug,
	)
	config, logger = _setup(params)
	api = _client(config)
	inventory = RepositoryInventory(api, graphql_url=graphql_url(
	    config.hostname), logger=logger)
	try:
		with open_report(params.output_file, ENVIRONMENT_HEADER) as writer:
			summary = export_environments(api, params.owner, params.repos,
			                              writer, inventory=inventory,
			                              logger=logger)
	except FATAL_ERRORS as exc:
		_fatal(logger, exc)
	_finish(summary, "Environments export",
	        f"Successfully exported environment data to {params.output_file}")


_TOKEN_OPTION = typer.Option(None, "--token", "-t",
                             help="GitHub personal access token")
_HOSTNAME_OPTION = typer.Option(
    None, "--hostname", help="GitHub Enterprise Server hostname")
_DEBUG_OPTION = typer.Option(False, "--debug", "-d",
                             help="Enable debug logging")
_OUTPUT_OPTION = typer.Option(None, "--output-file", "-o",
                              help="Name of file to write CSV report")


@secrets_cli.command("export")
def secrets_export(
    owner: str = typer.Argument(..., help="Organization login"),
    repos: list[str] = typer.Argument(None, help="Repositories to export"),
    app: AppFilter = typer.Option(
        AppFilter.ALL, "--app", "-a",
        help="Secret type: all, actions, codespaces or dependabot"),
    output_file: Path = _OUTPUT_OPTION,
    token: str = _TOKEN_OPTION,
    hostname: str = _HOSTNAME_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
	"""Generate a CSV report of secrets for an organization or repositories."""
	secrets_export_impl(owner, repos, app.value, output_file, token, hostname,
	                    debug)


@secrets_cli.command("create")
def secrets_create(
    owner: str = typer.Argument(..., help="Organization login"),
    from_file: Path = typer.Option(..., "--from-file", "-f",
                                   help="Path to the secrets CSV"),
    token: str = _TOKEN_OPTION,
    hostname: str = _HOSTNAME_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
	"""Create organization and repository secrets from a CSV file."""
	secrets_create_impl(owner, from_file, token, hostname, debug)


@variables_cli.command("export")
def variables_export(
    owner: str = typer.Argument(..., help="Organization login"),
    repos: list[str] = typer.Argument(None, help="Repositories to export"),
    output_file: Path = _OUTPUT_OPTION,
    token: str = _TOKEN_OPTION,
    hostname: str = _HOSTNAME_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
	"""Generate a CSV report of variables for an organization or repositories."""
	variables_export_impl(owner, repos, output_file, token, hostname, debug)


@variables_cli.command("create")
def variables_create(
    owner: str = typer.Argument(..., help="Organization login"),
    from_file: Path = typer.Option(None, "--from-file", "-f",
                                   help="Path to the variables CSV"),
    source_org: str = typer.Option(
        None, "--source-organization", "-o",
        help="Organization to copy variables from"),
    source_token: str = typer.Option(
        None, "--source-token", "-s",
        help="Token for the source organization"),
    source_hostname: str = typer.Option(
        None, "--source-hostname",
        help="Hostname of the source organization"),
    token: str = _TOKEN_OPTION,
    hostname: str = _HOSTNAME_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
	"""Create variables from a CSV file or a source organization."""
	variables_create_impl(owner, from_file, source_org, source_token,
	                      source_hostname, token, hostname, debug)


@environments_cli.command("export")
def environments_export(
    owner: str = typer.Argument(..., help="Organization login"),
    repos: list[str] = typer.Argument(None, help="Repositories to report"),
    output_file: Path = _OUTPUT_OPTION,
    token: str = _TOKEN_OPTION,
    hostname: str = _HOSTNAME_OPTION,
    debug: bool = _DEBUG_OPTION,
) -> None:
	"""Generate a CSV report of environments and their metadata."""
	environments_export_impl(owner, repos, output_file, token, hostname, debug)


def entrypoint(argv=None, *, standalone_mode: bool = True):
	"""
	Typer entrypoint.

	Parameters:
		argv: Command-line arguments. Defaults to sys.argv[1:].
		standalone_mode: If True, Click handles exit codes.

	Returns:
		Result of the Click application main invocation.
	"""
	args = sys.argv[1:] if argv is None else list(argv)
	_click_app = get_command(cli)
	return _click_app.main(
	    args=args,
	    prog_name="seva",
	    standalone_mode=standalone_mode,
	)


if __name__ == "__main__":
	entrypoint()
