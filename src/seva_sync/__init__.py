"""
seva-sync - Export and create GitHub secrets and variables from CSV.

Reconciles Actions, Dependabot and Codespaces secrets and Actions
variables between a CSV file and an organization, at organization and
repository level.

Main entry points:
    - seva_sync.main: CLI entrypoint
    - seva_sync.core.driver: ReconciliationDriver for export and create
    - seva_sync.models.config: Config and load_env()
"""
