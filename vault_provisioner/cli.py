"""Command line interface for planning and applying Vault configuration.

Usage:
    vault-provisioner validate
    vault-provisioner plan --detailed-exitcode
    vault-provisioner apply --auto-approve
    vault-provisioner import vault_policy.dev dev
    vault-provisioner state list

Example:
    # Preview the changes against a specific configuration
    vault-provisioner --config vault.json plan

    # Apply without the confirmation prompt
    vault-provisioner apply --auto-approve
"""

import argparse
import logging
import sys
from typing import Optional

from vault_provisioner import __version__
from vault_provisioner import config as settings
from vault_provisioner.engine import Applier, ConfigDocument, Planner, StateStore
from vault_provisioner.engine.plan import format_value
from vault_provisioner.provider import Provider, ProviderMeta
from vault_provisioner.resources import new_provider
from vault_provisioner.retry import RetryExhaustedException
from vault_provisioner.vault.exceptions import VaultError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CHANGES = 2


class Workspace:
    """Configuration, state and provider for one CLI invocation."""

    def __init__(self, config_path: str, state_path: str):
        self.config_path = config_path
        self.state_path = state_path
        self.provider: Provider = new_provider()
        self._document: Optional[ConfigDocument] = None
        self._store: Optional[StateStore] = None
        self._meta: Optional[ProviderMeta] = None

    @property
    def document(self) -> ConfigDocument:
        if self._document is None:
            self._document = ConfigDocument.load(self.config_path)
        return self._document

    @property
    def store(self) -> StateStore:
        if self._store is None:
            self._store = StateStore(self.state_path)
        return self._store

    @property
    def meta(self) -> ProviderMeta:
        if self._meta is None:
            self._meta = self.provider.configure(self.document.provider)
        return self._meta

    def planner(self) -> Planner:
        return Planner(self.provider, self.meta, self.document, self.store)

    def applier(self) -> Applier:
        return Applier(self.provider, self.meta, self.document, self.store)


def _confirm(action: str) -> bool:
    response = input(f"\n{action}\n\nProceed? [y/N]: ").strip().lower()
    return response in ["y", "yes"]


def cmd_validate(ws: Workspace, args: argparse.Namespace) -> int:
    order = Planner(ws.provider, None, ws.document, None).validate()
    print(f"Success! The configuration is valid ({len(order)} objects).")
    return EXIT_OK


def cmd_plan(ws: Workspace, args: argparse.Namespace) -> int:
    plan = ws.planner().plan(refresh=not args.no_refresh)
    print(plan.render())
    if args.detailed_exitcode and plan.has_changes:
        return EXIT_CHANGES
    return EXIT_OK


def cmd_apply(ws: Workspace, args: argparse.Namespace) -> int:
    plan = ws.planner().plan(refresh=not args.no_refresh)
    print(plan.render())
    if not plan.has_changes:
        return EXIT_OK
    if not args.auto_approve and not _confirm("Perform the actions described above?"):
        print("Apply cancelled.")
        return EXIT_ERROR

    summary = ws.applier().apply(plan)
    print(f"\nApply complete! {summary}")
    return EXIT_OK


def cmd_destroy(ws: Workspace, args: argparse.Namespace) -> int:
    addresses = ws.store.addresses()
    if not addresses:
        print("No resources in state, nothing to destroy.")
        return EXIT_OK
    for address in addresses:
        print(f"  - {address}")
    if not args.auto_approve and not _confirm(f"Destroy {len(addresses)} resources?"):
        print("Destroy cancelled.")
        return EXIT_ERROR

    summary = ws.applier().destroy()
    print(f"\nDestroy complete! {summary}")
    return EXIT_OK


def cmd_import(ws: Workspace, args: argparse.Namespace) -> int:
    imported = ws.applier().import_resource(args.address, args.id)
    print(f"Import successful: {imported.address} ({imported.id})")
    return EXIT_OK


def cmd_state_list(ws: Workspace, args: argparse.Namespace) -> int:
    for address in ws.store.addresses():
        print(address)
    return EXIT_OK


def cmd_state_show(ws: Workspace, args: argparse.Namespace) -> int:
    state = ws.store.get(args.address)
    if state is None:
        print(f"Error: no resource {args.address} in state", file=sys.stderr)
        return EXIT_ERROR

    schema = ws.provider.resource(state.type).schema
    print(f"# {state.address}")
    print(f"id = {state.id}")
    for key, value in sorted(state.attributes.items()):
        spec = schema.get(key)
        print(f"{key} = {format_value(value, spec is not None and spec.sensitive)}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-provisioner",
        description="Plan and apply declarative HashiCorp Vault configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Check the configuration without contacting Vault
    vault-provisioner validate

    # Show pending changes, exit code 2 when there are any
    vault-provisioner plan --detailed-exitcode

    # Apply changes without prompting
    vault-provisioner apply --auto-approve

    # Adopt an existing policy
    vault-provisioner import vault_policy.dev dev
        """
    )
    parser.add_argument(
        "--config", "-c",
        default=settings.CONFIG_PATH,
        help=f"Configuration file (default: {settings.CONFIG_PATH})"
    )
    parser.add_argument(
        "--state", "-s",
        default=settings.STATE_PATH,
        help=f"State file (default: {settings.STATE_PATH})"
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=settings.LOG_LEVELS,
        type=str.upper,
        help="Logging level"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("validate", help="Validate the configuration")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("plan", help="Show the changes apply would make")
    p.add_argument(
        "--detailed-exitcode",
        action="store_true",
        help="Exit with 2 when changes are pending"
    )
    p.add_argument("--no-refresh", action="store_true", help="Skip reading resources from Vault")
    p.set_defaults(func=cmd_plan)

    p = sub.add_parser("apply", help="Apply the configuration to Vault")
    p.add_argument("--auto-approve", "-y", action="store_true", help="Skip the confirmation prompt")
    p.add_argument("--no-refresh", action="store_true", help="Skip reading resources from Vault")
    p.set_defaults(func=cmd_apply)

    p = sub.add_parser("destroy", help="Delete every managed resource")
    p.add_argument("--auto-approve", "-y", action="store_true", help="Skip the confirmation prompt")
    p.set_defaults(func=cmd_destroy)

    p = sub.add_parser("import", help="Adopt an existing Vault object")
    p.add_argument("address", help="Resource address, e.g. vault_policy.dev")
    p.add_argument("id", help="Id of the existing object")
    p.set_defaults(func=cmd_import)

    state = sub.add_parser("state", help="Inspect the state file")
    state_sub = state.add_subparsers(dest="state_command", required=True)
    p = state_sub.add_parser("list", help="List managed resources")
    p.set_defaults(func=cmd_state_list)
    p = state_sub.add_parser("show", help="Show one managed resource")
    p.add_argument("address", help="Resource address")
    p.set_defaults(func=cmd_state_show)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    ws = Workspace(args.config, args.state)
    try:
        return args.func(ws, args)
    except (VaultError, RetryExhaustedException) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
