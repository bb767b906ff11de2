"""
CLI commands for Subsonic schema compilation and server checks.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from .cache import get_compiled_schema
from .client import ClientSettings
from .codegen import render_module, write_module
from .exceptions import SubsonicSchemaException
from .schema_locator import DEFAULT_SCHEMA_VERSION, get_available_versions, locate_schema

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def cmd_types(args):
    """List generated types and Response variants."""
    setup_logging(args.verbose)

    try:
        registry = get_compiled_schema(args.schema)
    except (SubsonicSchemaException, OSError) as e:
        print(f"✗ Failed to compile schema: {e}")
        return 1

    print(f"Schema version {registry.version or 'unknown'}:")
    for name, wrapper in registry.wrappers.items():
        print(f"  wrapper {name} ({wrapper.base_ref})")
    for name, record in registry.records.items():
        print(f"  record  {name} ({len(record.model_fields)} fields)")
    print(f"{registry.response.name} variants:")
    for variant in registry.response:
        marker = " (error)" if variant.is_error else ""
        print(f"  {variant.name} <- {variant.wire_name}: {variant.payload_type.__name__}{marker}")
    return 0


def cmd_generate(args):
    """Write the generated Python module."""
    setup_logging(args.verbose)

    try:
        plan = get_compiled_schema(args.schema).plan
    except (SubsonicSchemaException, OSError) as e:
        print(f"✗ Failed to compile schema: {e}")
        return 1

    if args.out is None:
        sys.stdout.write(render_module(plan))
        return 0
    path = write_module(plan, args.out)
    print(f"✓ Generated module written to: {path}")
    return 0


def cmd_versions(args):
    """List bundled schema versions."""
    print("Bundled Subsonic schema versions:")
    for version in get_available_versions():
        default_marker = " (default)" if version == DEFAULT_SCHEMA_VERSION else ""
        print(f"  ✓ {version}{default_marker}")
    print(f"Active schema: {locate_schema()}")
    return 0


def cmd_ping(args):
    """Ping the server configured in the environment."""
    setup_logging(args.verbose)

    try:
        settings = ClientSettings.from_env()
    except ValueError as e:
        print(f"✗ {e}")
        return 1

    async def run() -> bool:
        async with settings.client() as client:
            return await client.ping()

    try:
        ok = asyncio.run(run())
    except httpx.HTTPStatusError as e:
        # The request URL carries auth parameters; report the status only.
        print(f"✗ {settings.url} answered HTTP {e.response.status_code}")
        return 1
    except httpx.HTTPError as e:
        print(f"✗ Request to {settings.url} failed: {type(e).__name__}")
        return 1
    except SubsonicSchemaException as e:
        print(f"✗ Unexpected reply from {settings.url}: {e}")
        return 1

    if ok:
        print(f"✓ {settings.url} answered ping")
        return 0
    print(f"✗ {settings.url} rejected ping")
    return 1


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Subsonic Schema CLI",
        prog="subsonic-schema"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="Schema file to compile (default: SUBSONIC_SCHEMA_PATH or bundled schema)"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands"
    )

    types_parser = subparsers.add_parser(
        "types",
        help="List generated types and response variants"
    )
    types_parser.set_defaults(func=cmd_types)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a Python module of pydantic models"
    )
    generate_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output file (default: stdout)"
    )
    generate_parser.set_defaults(func=cmd_generate)

    versions_parser = subparsers.add_parser(
        "versions",
        help="List bundled schema versions"
    )
    versions_parser.set_defaults(func=cmd_versions)

    ping_parser = subparsers.add_parser(
        "ping",
        help="Ping the server from SUBSONIC_URL/SUBSONIC_USER/SUBSONIC_PASSWORD"
    )
    ping_parser.set_defaults(func=cmd_ping)

    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
