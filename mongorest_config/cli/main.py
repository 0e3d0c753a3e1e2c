"""CLI entrypoint for mongorest-config."""
import sys
import argparse
import logging

from .. import __version__
from ..domains.config_loader import ConfigError
from ..domains.models import SecretResolutionError
from ..workflows.property_injector import SECRET_PROPERTY_SOURCE_NAME
from .validators import validate_profile


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )


def _build_argv(args) -> list:
    """Translate CLI options into --key=value arguments for the environment."""
    argv = []
    if getattr(args, "profile", None):
        validate_profile(args.profile)
        argv.append(f"--spring.profiles.active={args.profile}")
    for override in getattr(args, "set", None) or []:
        if "=" not in override:
            print(f"Error: --set expects KEY=VALUE, got '{override}'", file=sys.stderr)
            sys.exit(2)
        argv.append(f"--{override}")
    return argv


def _bootstrap(args):
    from mongorest_config.workflows.bootstrap import bootstrap_environment

    return bootstrap_environment(argv=_build_argv(args), config_dir=args.config_dir)


def mask_value(value: str) -> str:
    """Hide a secret value, keeping only its length visible."""
    return f"<{len(value)} chars>"


def cmd_version(args):
    """Show version information."""
    print(f"mongorest-config {__version__}")


def cmd_profile(args):
    """Show the active profile after static config files are loaded."""
    from mongorest_config.domains.config_loader import load_application_config
    from mongorest_config.domains.environment import ConfigEnvironment
    from mongorest_config.domains.profile import resolve_active_profile

    environment = ConfigEnvironment(argv=_build_argv(args))
    load_application_config(environment, args.config_dir)
    profile = resolve_active_profile(environment)
    if profile:
        print(profile)
    else:
        print("No active profile", file=sys.stderr)
        sys.exit(1)


def cmd_resolve(args):
    """Run the startup resolution and list what was installed."""
    environment = _bootstrap(args)
    source = environment.get_source(SECRET_PROPERTY_SOURCE_NAME)

    if source is None:
        print("No properties resolved from secrets; static configuration applies.")
        return

    print(f"Property source '{source.name}' ({len(source)} properties):")
    for key, value in source.properties.items():
        shown = value if args.reveal else mask_value(value)
        print(f"  {key}={shown}")


def cmd_get(args):
    """Print one property as seen by the rest of the service."""
    environment = _bootstrap(args)
    value = environment.get_property(args.key)

    if value is None:
        print(f"Error: Property '{args.key}' is not set", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        print(value)
    else:
        print(f"{args.key}={value}")


def _add_common_options(parser):
    parser.add_argument(
        "--config-dir",
        help="Directory containing application.yml (default: $MONGOREST_CONFIG_DIR or ./config)"
    )
    parser.add_argument(
        "--profile",
        help="Active profile (overrides spring.profiles.active)"
    )
    parser.add_argument(
        "--set",
        action="append",
        metavar="KEY=VALUE",
        help="Command line property override, may be repeated"
    )


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (secret not found, permission denied, invalid config, etc.)
        2 - Usage errors (invalid arguments, invalid profile name, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="mongorest-config",
        description="Resolve the startup configuration of the MongoDB REST service",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (secret not found, permission denied, invalid config file, etc.)
  2 - Usage error (invalid arguments, invalid profile name, etc.)

Sources, highest precedence first:
  1. Cloud Run secret env var (backend-{profile}-secret, or GCP_CLOUDRUN_SECRET_ENV_VAR)
  2. GCP Secret Manager secret webflux-mongodb-rest-{profile} (gcp.secretmanager.enabled=true)
  3. SPRING_DATA_MONGODB_URI / MONGODB_URI for the MongoDB URI
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log resolution steps to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of mongorest-config"
    )

    profile_parser = subparsers.add_parser(
        "profile",
        help="Show the active profile",
        description="Load the static config files and print the active profile"
    )
    _add_common_options(profile_parser)

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve startup properties",
        description="""
Run the full startup resolution and list the installed properties.

Values are masked unless --reveal is given. A fatal Secret Manager error
(secret missing, permission denied) exits with code 1.
        """
    )
    _add_common_options(resolve_parser)
    resolve_parser.add_argument(
        "--reveal",
        action="store_true",
        help="Print property values instead of masking them"
    )

    get_parser = subparsers.add_parser(
        "get",
        help="Get a resolved property value",
        description="Run the startup resolution and print one property from the resulting environment"
    )
    _add_common_options(get_parser)
    get_parser.add_argument(
        "key",
        help="Property key, e.g. spring.data.mongodb.uri"
    )
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the value (useful for scripts)"
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        "version": cmd_version,
        "profile": cmd_profile,
        "resolve": cmd_resolve,
        "get": cmd_get,
    }

    try:
        handlers[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except (SecretResolutionError, ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
