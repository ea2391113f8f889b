"""Command line surface for package type introspection."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from nuspect_core.config import Settings, build_source, load_settings
from nuspect_core.introspect import Introspector
from nuspect_core.source import CachedPackageSource, PackageSourceError

CLI_VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nuspect",
        description="Inspect the public types shipped in NuGet packages.",
    )
    parser.add_argument("--version", action="version", version=f"nuspect v{CLI_VERSION}")
    parser.add_argument("--config", type=Path, help="path to config.toml")
    parser.add_argument("--log-level", help="logging level (default from config: warning)")
    parser.add_argument("--no-cache", action="store_true", help="always download archives")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = False

    describe = subparsers.add_parser("describe", help="print the declaration of one interface")
    describe.add_argument("package", help="NuGet package id")
    describe.add_argument("type_name", help="short, namespaced or generic (Name`1) type name")
    describe.add_argument("--package-version", dest="package_version", help="package version (default: latest)")
    describe.set_defaults(func=_handle_describe)

    listing = subparsers.add_parser("list", help="list the public interfaces of a package")
    listing.add_argument("package", help="NuGet package id")
    listing.add_argument("--package-version", dest="package_version", help="package version (default: latest)")
    listing.add_argument("--format", choices=["text", "json"], default="text")
    listing.set_defaults(func=_handle_list)

    versions = subparsers.add_parser("versions", help="list the published versions of a package")
    versions.add_argument("package", help="NuGet package id")
    versions.set_defaults(func=_handle_versions)

    cache = subparsers.add_parser("cache", help="manage the downloaded archive cache")
    cache_sub = cache.add_subparsers(dest="cache_cmd", required=True)
    cache_clear = cache_sub.add_parser("clear", help="delete every cached archive")
    cache_clear.set_defaults(func=_handle_cache_clear)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.config)
        _configure_logging(args.log_level or settings.log_level)
        return func(args, settings)
    except (ValueError, PackageSourceError) as exc:
        print(f"[nuspect] error: {exc}", file=sys.stderr)
        return 1


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _introspector(args: argparse.Namespace, settings: Settings) -> Introspector:
    source = build_source(settings, use_cache=False if args.no_cache else None)
    return Introspector(source, suffixes=settings.module_suffixes)


def _handle_describe(args: argparse.Namespace, settings: Settings) -> int:
    introspector = _introspector(args, settings)
    print(introspector.describe_type(args.package, args.type_name, args.package_version))
    return 0


def _handle_list(args: argparse.Namespace, settings: Settings) -> int:
    introspector = _introspector(args, settings)
    listing = introspector.list_types(args.package, args.package_version)
    if args.format == "json":
        print(json.dumps(listing.to_dict(), indent=2))
        return 0

    if not listing.types:
        print(f"[nuspect] no public interfaces in {listing.package_id} {listing.version}")
        return 0
    print(f"[nuspect] {listing.package_id} {listing.version} interfaces={len(listing.types)}")
    for item in listing.types:
        print(f"  {item.full_name:<60} {item.module_file_name}")
    return 0


def _handle_versions(args: argparse.Namespace, settings: Settings) -> int:
    introspector = _introspector(args, settings)
    for version in introspector.list_versions(args.package):
        print(version)
    return 0


def _handle_cache_clear(_: argparse.Namespace, settings: Settings) -> int:
    removed = CachedPackageSource(build_source(settings, use_cache=False), settings.cache_dir).clear()
    print(f"[nuspect] removed {removed} cached archive(s) from {settings.cache_dir}")
    return 0
