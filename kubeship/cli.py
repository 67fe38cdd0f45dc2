#!/usr/bin/env python3
"""
Command-line interface for kubeship.

Provides commands to deploy manifests into a namespace, deploy global
resources, and inspect what the cluster would allow to be pruned.
"""

import argparse
import sys
from typing import Optional

from kubeship.config import Config
from kubeship.deploy_task import DeployTask, GlobalDeployTask
from kubeship.errors import KubeshipError
from kubeship.logger import configure_logging
from kubeship.output import OutputManager, Verbosity, get_output, set_output
from kubeship.resource_utils import ResourceFilter
from kubeship.task_config import TaskConfig

SCOPE_FILTERS = {
    "all": ResourceFilter.ALL,
    "global": ResourceFilter.ONLY_GLOBAL,
    "namespaced": ResourceFilter.ONLY_NAMESPACED,
}


def _context(args: argparse.Namespace) -> Optional[str]:
    return getattr(args, "context", None) or Config.context()


def cmd_deploy(args: argparse.Namespace) -> None:
    """Handle the deploy subcommand."""
    output = get_output()
    try:
        task = DeployTask(
            namespace=args.namespace,
            context=_context(args),
            filenames=args.filenames,
            selector=args.selector,
            prune=not args.no_prune,
        )
        task.run()
    except FileNotFoundError as e:
        output.error(f"Error: {e}")
        sys.exit(1)
    except (KubeshipError, ValueError) as e:
        output.error(f"Error: {e}")
        sys.exit(1)


def cmd_global_deploy(args: argparse.Namespace) -> None:
    """Handle the global-deploy subcommand."""
    output = get_output()
    try:
        task = GlobalDeployTask(
            context=_context(args),
            filenames=args.filenames,
            selector=args.selector,
            prune=not args.no_prune,
        )
        task.run()
    except FileNotFoundError as e:
        output.error(f"Error: {e}")
        sys.exit(1)
    except (KubeshipError, ValueError) as e:
        output.error(f"Error: {e}")
        sys.exit(1)


def cmd_resources(args: argparse.Namespace) -> None:
    """Handle the resources subcommand."""
    output = get_output()
    resource_filter = SCOPE_FILTERS[args.scope]
    try:
        task_config = TaskConfig(_context(args), None)
        discovery = task_config.discovery()

        if args.prunable:
            if resource_filter is ResourceFilter.ALL:
                output.error(
                    "--prunable needs a scope",
                    suggestion="Pass --scope global or --scope namespaced",
                )
                sys.exit(1)
            with output.spinner("Computing prune whitelist"):
                whitelist = discovery.prunable_resources(
                    namespaced=resource_filter is ResourceFilter.ONLY_NAMESPACED
                )
            output.table(
                title=f"Prunable {args.scope} resource types",
                columns=["Resource"],
                rows=[[entry] for entry in whitelist],
            )
            return

        with output.spinner("Discovering resource types"):
            resources = discovery.fetch_resources(resource_filter)
        if not resources:
            output.warning("No resource types discovered")
            return
        output.table(
            title=f"{args.scope.capitalize()} resource types",
            columns=["Kind", "Group", "Version", "Scope"],
            rows=[
                [r.kind, r.api_group or "core", r.api_version or "-", r.scope.value]
                for r in resources
            ],
        )
    except FileNotFoundError as e:
        output.error(f"Error: {e}")
        sys.exit(1)
    except (KubeshipError, ValueError) as e:
        output.error(f"Error: {e}")
        sys.exit(1)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--context",
        help="Kubernetes context to use (defaults to KUBESHIP_CONTEXT env var)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only show errors and final results",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show detailed output including kubectl invocations",
    )


def _add_deploy_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--filenames",
        nargs="+",
        required=True,
        help="Manifest files or directories to deploy",
    )
    parser.add_argument(
        "--no-prune",
        action="store_true",
        help="Do not delete resources that are no longer in the manifests",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Kubeship - Deploy Kubernetes manifests and prune what they no longer declare",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kubeship deploy my-namespace --context staging -f manifests/
  kubeship global-deploy --context staging -f cluster/ --selector app=platform
  kubeship resources --context staging --scope global --prunable
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy",
        help="Deploy namespaced resources and prune removed ones",
    )
    deploy_parser.add_argument("namespace", help="Namespace to deploy into")
    _add_common_arguments(deploy_parser)
    _add_deploy_arguments(deploy_parser)
    deploy_parser.add_argument(
        "--selector",
        help="Label selector (key=value,...) that every resource must carry; limits pruning",
    )
    deploy_parser.set_defaults(func=cmd_deploy)

    global_parser = subparsers.add_parser(
        "global-deploy",
        help="Deploy cluster-scoped resources and prune removed ones",
    )
    _add_common_arguments(global_parser)
    _add_deploy_arguments(global_parser)
    global_parser.add_argument(
        "--selector",
        required=True,
        help="Label selector (key=value,...) that every resource must carry; limits pruning",
    )
    global_parser.set_defaults(func=cmd_global_deploy)

    resources_parser = subparsers.add_parser(
        "resources",
        help="List the resource types the cluster serves",
    )
    _add_common_arguments(resources_parser)
    resources_parser.add_argument(
        "--scope",
        choices=sorted(SCOPE_FILTERS),
        default="all",
        help="Which resource types to list (default: all)",
    )
    resources_parser.add_argument(
        "--prunable",
        action="store_true",
        help="Show the prune whitelist for the scope instead",
    )
    resources_parser.set_defaults(func=cmd_resources)
    return parser


def main(argv: Optional[list] = None) -> None:
    """Main entry point for kubeship CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "quiet", False):
        verbosity = Verbosity.QUIET
    elif getattr(args, "verbose", False):
        verbosity = Verbosity.VERBOSE
    else:
        verbosity = Verbosity.NORMAL

    set_output(OutputManager(verbosity=verbosity))
    configure_logging(verbosity)

    args.func(args)


if __name__ == "__main__":
    main()
