import csv
import logging

import pytest

from seva_sync.core.csv_schema import (
    SECRET_HEADER,
    VARIABLE_HEADER,
    ParsedRows,
    open_report,
    read_secrets,
    read_variables,
)
from seva_sync.core.driver import ReconciliationDriver
from seva_sync.core.inventory import InventoryError
from seva_sync.integrations.github import GitHubAPIError
from seva_sync.models.secret import AppFilter
from seva_sync.models.variable import ImportedVariable

from fakes import (
    GRAPHQL,
    FakeApi,
    ResponseError,
    graphql_route,
    http_error,
    key_pair,
    paged_route,
    repo_node,
    unseal,
)

NODES = [
    repo_node(111, "api", "PRIVATE"),
    repo_node(222, "web", "INTERNAL"),
    repo_node(333, "site", "PUBLIC"),
]


def _secrets(*items):
	return {"total_count": len(items), "secrets": list(items)}


def _variables(*items):
	return {"total_count": len(items), "variables": list(items)}


def _scoped(*pairs):
	return {
	    "total_count": len(pairs),
	    "repositories": [{
	        "id": i,
	        "name": n
	    } for i, n in pairs]
	}


def _export_api():
	return FakeApi({
	    ("POST", GRAPHQL):
	    graphql_route(NODES),
	    ("GET", "/orgs/acme/actions/secrets"):
	    _secrets({
	        "name": "DB_PASS",
	        "visibility": "selected"
	    }, {
	        "name": "NPM",
	        "visibility": "private"
	    }, {
	        "name": "ORG_WIDE",
	        "visibility": "all"
	    }),
	    ("GET", "/orgs/acme/actions/secrets/DB_PASS/repositories"):
	    _scoped((111, "api"), (222, "web")),
	    ("GET", "/repos/acme/api/actions/secrets"):
	    _secrets({"name": "TOKEN"}),
	    ("GET", "/repos/acme/web/actions/secrets"):
	    _secrets(),
	    ("GET", "/repos/acme/site/actions/secrets"):
	    _secrets(),
	})


def _read_rows(path):
	with open(path, newline="", encoding="utf-8") as fh:
		return list(csv.reader(fh))


def _secrets_csv(path, rows):
	with open(path, "w", newline="", encoding="utf-8") as fh:
		writer = csv.writer(fh)
		writer.writerow(SECRET_HEADER)
		writer.writerows(rows)


def test_create_selected_org_secret(tmp_path):
	private, public_b64 = key_pair()
	api = FakeApi({
	    ("GET", "/orgs/acme/actions/secrets/public-key"): {
	        "key_id": "k1",
	        "key": public_b64
	    },
	    ("PUT", "/orgs/acme/actions/secrets/DB_PASS"): {},
	})
	path = tmp_path / "secrets.csv"
	_secrets_csv(path, [[
	    "Organization", "Actions", "DB_PASS", "s3cr3t", "selected", "api;web",
	    "111;222"
	]])
	summary = ReconciliationDriver(api).create_secrets("acme",
	                                                   read_secrets(path))

	assert not summary.has_failures
	(put,) = api.requests("PUT")
	assert put.path == "/orgs/acme/actions/secrets/DB_PASS"
	payload = dict(put.data)
	encrypted = payload.pop("encrypted_value")
	assert payload == {
	    "key_id": "k1",
	    "visibility": "selected",
	    "selected_repository_ids": [111, 222],
	}
	assert unseal(private, encrypted) == "s3cr3t"


def test_create_dependabot_repository_secret(tmp_path):
	private, public_b64 = key_pair()
	api = FakeApi({
	    ("GET", "/repos/acme/api/dependabot/secrets/public-key"): {
	        "key_id": "r1",
	        "key": public_b64
	    },
	    ("PUT", "/repos/acme/api/dependabot/secrets/NPM_TOKEN"): {},
	})
	path = tmp_path / "secrets.csv"
	_secrets_csv(path, [[
	    "Repository", "Dependabot", "NPM_TOKEN", "tok", "RepoOnly", "api", "111"
	]])
	summary = ReconciliationDriver(api).create_secrets("acme",
	                                                   read_secrets(path))
	assert summary.results[0].target == "acme/api"
	(put,) = api.requests("PUT")
	assert set(put.data) == {"encrypted_value", "key_id"}
	assert unseal(private, put.data["encrypted_value"]) == "tok"


def test_create_continues_past_failures(tmp_path):
	_, public_b64 = key_pair()
	key = {"key_id": "k1", "key": public_b64}
	api = FakeApi({
	    ("GET", "/orgs/acme/actions/secrets/public-key"): key,
	    ("GET", "/orgs/acme/codespaces/secrets/public-key"): {
	        "key_id": "bad",
	        "key": "c2hvcnQ="
	    },
	    ("PUT", "/orgs/acme/actions/secrets/FIRST"): http_error(
	        "/orgs/acme/actions/secrets/FIRST", 422, "Unprocessable"),
	    ("PUT", "/orgs/acme/actions/secrets/LAST"): {},
	})
	path = tmp_path / "secrets.csv"
	_secrets_csv(path, [
	    ["Organization", "Actions", "FIRST", "1", "all", "", ""],
	    ["Organization", "Actions", "BADIDS", "2", "selected", "a", "0"],
	    ["Organization", "Codespaces", "BADKEY", "3", "all", "", ""],
	    ["Organization", "Actions", "NOREPOS", "4", "selected", "", ""],
	    ["Organization", "Actions", "LAST", "5", "all", "", ""],
	])
	summary = ReconciliationDriver(api).create_secrets("acme",
	                                                   read_secrets(path))
	assert summary.succeeded == 1
	assert sorted(r.name for r in summary.failures) == [
	    "BADIDS", "BADKEY", "FIRST", "NOREPOS"
	]
	assert [c.path for c in api.requests("PUT")] == [
	    "/orgs/acme/actions/secrets/FIRST",
	    "/orgs/acme/actions/secrets/LAST",
	]


def test_export_secrets_resolves_visibility(tmp_path):
	path = tmp_path / "report.csv"
	api = _export_api()
	with open_report(path, SECRET_HEADER) as writer:
		summary = ReconciliationDriver(api).export_secrets(
		    "acme", [], AppFilter.ACTIONS, writer)
	assert not summary.has_failures
	assert _read_rows(path) == [
	    SECRET_HEADER,
	    [
	        "Organization", "Actions", "DB_PASS", "", "selected", "api;web",
	        "111;222"
	    ],
	    ["Organization", "Actions", "NPM", "", "private", "api;web", "111;222"],
	    ["Organization", "Actions", "ORG_WIDE", "", "all", "", ""],
	    ["Repository", "Actions", "TOKEN", "", "RepoOnly", "api", "111"],
	]
	# only Actions endpoints were queried
	assert not [c for c in api.calls if "dependabot" in c.path]


def test_export_secrets_reads_every_page(tmp_path):
	path = tmp_path / "report.csv"
	api = _export_api()
	org_secrets = [{"name": n, "visibility": "all"} for n in ("A", "B", "C")]
	api.routes[("GET", "/orgs/acme/actions/secrets")] = paged_route(
	    "secrets", org_secrets, 2)
	with open_report(path, SECRET_HEADER) as writer:
		summary = ReconciliationDriver(api, secrets_page_size=2).export_secrets(
		    "acme", [], AppFilter.ACTIONS, writer)
	assert not summary.has_failures
	pages = [c.query for c in api.calls if c.path == "/orgs/acme/actions/secrets"]
	assert pages == [{"per_page": 2, "page": 1}, {"per_page": 2, "page": 2}]
	assert [r[2] for r in _read_rows(path) if r[0] == "Organization"
	       ] == ["A", "B", "C"]


def test_export_named_repositories_skips_org_level(tmp_path):
	path = tmp_path / "report.csv"
	api = _export_api()
	with open_report(path, SECRET_HEADER) as writer:
		ReconciliationDriver(api).export_secrets("acme", ["api"],
		                                         AppFilter.ACTIONS, writer)
	rows = _read_rows(path)
	assert rows[1:] == [[
	    "Repository", "Actions", "TOKEN", "", "RepoOnly", "api", "111"
	]]
	assert not [c for c in api.calls if c.path.startswith("/orgs/")]


def test_export_records_listing_failures_and_continues(tmp_path):
	path = tmp_path / "report.csv"
	api = _export_api()
	# Dependabot and Codespaces routes are absent and answer 404
	with open_report(path, SECRET_HEADER) as writer:
		summary = ReconciliationDriver(api).export_secrets(
		    "acme", [], AppFilter.ALL, writer)
	assert summary.has_failures
	failed = {(r.provider, r.target) for r in summary.failures}
	assert ("Dependabot", "acme") in failed
	assert ("Codespaces", "acme/site") in failed
	assert len(_read_rows(path)) == 5


def test_export_fails_fast_on_inventory_error(tmp_path):
	api = FakeApi({("POST", GRAPHQL): graphql_route(NODES)})
	with open_report(tmp_path / "r.csv", SECRET_HEADER) as writer:
		with pytest.raises(InventoryError):
			ReconciliationDriver(api).export_secrets("acme", ["ghost"],
			                                         AppFilter.ALL, writer)


def test_export_then_create_round_trip(tmp_path):
	path = tmp_path / "report.csv"
	with open_report(path, SECRET_HEADER) as writer:
		ReconciliationDriver(_export_api()).export_secrets(
		    "acme", [], AppFilter.ACTIONS, writer)

	_, public_b64 = key_pair()
	key = {"key_id": "k1", "key": public_b64}
	target = FakeApi({
	    ("GET", "/orgs/acme/actions/secrets/public-key"): key,
	    ("GET", "/repos/acme/api/actions/secrets/public-key"): key,
	})
	for name in ("DB_PASS", "NPM", "ORG_WIDE"):
		target.routes[("PUT", f"/orgs/acme/actions/secrets/{name}")] = {}
	target.routes[("PUT", "/repos/acme/api/actions/secrets/TOKEN")] = {}

	summary = ReconciliationDriver(target).create_secrets(
	    "acme", read_secrets(path))
	assert not summary.has_failures
	puts = {c.path: c.data for c in target.requests("PUT")}
	assert puts["/orgs/acme/actions/secrets/DB_PASS"][
	    "selected_repository_ids"] == [111, 222]
	assert puts["/orgs/acme/actions/secrets/NPM"]["visibility"] == "private"
	assert "selected_repository_ids" not in puts[
	    "/orgs/acme/actions/secrets/NPM"]
	assert "visibility" not in puts["/repos/acme/api/actions/secrets/TOKEN"]


def test_export_variables(tmp_path):
	path = tmp_path / "vars.csv"
	api = FakeApi({
	    ("POST", GRAPHQL):
	    graphql_route(NODES[:1]),
	    ("GET", "/orgs/acme/actions/variables"):
	    _variables({
	        "name": "REGION",
	        "value": "eu",
	        "visibility": "selected"
	    }),
	    ("GET", "/orgs/acme/actions/variables/REGION/repositories"):
	    _scoped((111, "api")),
	    ("GET", "/repos/acme/api/actions/variables"):
	    _variables({
	        "name": "STAGE",
	        "value": "prod"
	    }),
	})
	with open_report(path, VARIABLE_HEADER) as writer:
		summary = ReconciliationDriver(api).export_variables("acme", [], writer)
	assert summary.succeeded == 2
	assert _read_rows(path)[1:] == [
	    ["Organization", "REGION", "eu", "selected", "api", "111"],
	    ["Repository", "STAGE", "prod", "RepoOnly", "api", "111"],
	]
	assert api.calls[1].query == {"per_page": 30, "page": 1}


def test_create_variable_conflict_falls_back_to_update(tmp_path):
	path = tmp_path / "vars.csv"
	with open(path, "w", newline="", encoding="utf-8") as fh:
		writer = csv.writer(fh)
		writer.writerow(VARIABLE_HEADER)
		writer.writerow(["Organization", "REGION", "eu", "all", "", ""])
		writer.writerow(["Repository", "STAGE", "prod", "RepoOnly", "api", "1"])
	api = FakeApi({
	    ("POST", "/orgs/acme/actions/variables"):
	    http_error("/orgs/acme/actions/variables", 409, "Conflict"),
	    ("PATCH", "/orgs/acme/actions/variables/REGION"): {},
	    ("POST", "/repos/acme/api/actions/variables"): {},
	})
	summary = ReconciliationDriver(api).create_variables(
	    "acme", read_variables(path))
	assert [r.action for r in summary.results] == ["update", "create"]
	(patch,) = api.requests("PATCH")
	assert patch.data == {"name": "REGION", "value": "eu", "visibility": "all"}
	repo_post = api.requests("POST")[1]
	assert repo_post.data == {"name": "STAGE", "value": "prod"}


def test_create_variable_conflict_status_on_response_is_updated():
	api = FakeApi({
	    ("POST", "/orgs/acme/actions/variables"): ResponseError(409, "Conflict"),
	    ("PATCH", "/orgs/acme/actions/variables/REGION"): {},
	})
	parsed = ParsedRows(records=[(2,
	                              ImportedVariable(level="Organization",
	                                               name="REGION", value="eu",
	                                               access="all"))])
	summary = ReconciliationDriver(api).create_variables("acme", parsed)
	assert summary.failed == 0
	assert [r.action for r in summary.results] == ["update"]


def test_create_variable_other_errors_are_failures():
	api = FakeApi({
	    ("POST", "/orgs/acme/actions/variables"):
	    http_error("/orgs/acme/actions/variables", 403, "Forbidden"),
	})
	parsed = ParsedRows(records=[(2,
	                              ImportedVariable(level="Organization",
	                                               name="REGION", value="eu",
	                                               access="all"))])
	summary = ReconciliationDriver(api).create_variables("acme", parsed)
	assert summary.failed == 1
	assert "403" in summary.failures[0].error
	assert not api.requests("PATCH")


def _source_api():
	return FakeApi({
	    ("GET", "/orgs/src/actions/variables"):
	    _variables(
	        {
	            "name": "REGION",
	            "value": "eu",
	            "visibility": "selected"
	        },
	        {
	            "name": "LEGACY",
	            "value": "1",
	            "visibility": "selected"
	        },
	        {
	            "name": "LEVEL",
	            "value": "2",
	            "visibility": "all"
	        },
	    ),
	    ("GET", "/orgs/src/actions/variables/REGION/repositories"):
	    _scoped((5, "api"), (6, "web")),
	    ("GET", "/orgs/src/actions/variables/LEGACY/repositories"):
	    _scoped((9, "retired")),
	})


def test_migrate_variables_maps_repositories_by_name():
	dest = FakeApi({
	    ("POST", GRAPHQL): graphql_route(NODES),
	    ("POST", "/orgs/acme/actions/variables"): {},
	})
	summary = ReconciliationDriver(dest).migrate_variables(
	    _source_api(), "src", "acme")
	posts = {c.data["name"]: c.data for c in dest.requests("POST")
	         if c.path != GRAPHQL}
	assert posts["REGION"] == {
	    "name": "REGION",
	    "value": "eu",
	    "visibility": "selected",
	    "selected_repository_ids": [111, 222],
	}
	assert posts["LEVEL"] == {"name": "LEVEL", "value": "2", "visibility": "all"}
	assert "LEGACY" not in posts
	assert [r.name for r in summary.failures] == ["LEGACY"]
	assert "retired" in summary.failures[0].error
	# the destination inventory is listed once
	assert len([c for c in dest.calls if c.path == GRAPHQL]) == 1


def test_migrate_variables_source_listing_is_fatal():
	with pytest.raises(GitHubAPIError):
		ReconciliationDriver(FakeApi()).migrate_variables(
		    FakeApi(), "src", "acme")


def test_migrate_variables_warns_on_unscoped_selected_variable(caplog):
	source = FakeApi({
	    ("GET", "/orgs/src/actions/variables"):
	    _variables({
	        "name": "ORPHAN",
	        "value": "x",
	        "visibility": "selected"
	    }),
	    ("GET", "/orgs/src/actions/variables/ORPHAN/repositories"):
	    _scoped(),
	})
	dest = FakeApi({
	    ("POST", GRAPHQL): graphql_route(NODES),
	    ("POST", "/orgs/acme/actions/variables"): {},
	})
	with caplog.at_level(logging.WARNING, logger="seva_sync"):
		summary = ReconciliationDriver(dest).migrate_variables(
		    source, "src", "acme")
	assert summary.succeeded == 1
	(post,) = [c for c in dest.requests("POST") if c.path != GRAPHQL]
	assert post.data["selected_repository_ids"] == []
	assert "ORPHAN in src is selected but scoped to no repositories" in (
	    caplog.text)
