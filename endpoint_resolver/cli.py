from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .cache import JsonFileStore, PersistentConfigCache
from .client import EndpointResolver
from .config import ResolverConfig, load_config
from .types import service_config_to_dict


def _build_config(args: argparse.Namespace) -> ResolverConfig:
    config = load_config(args.config) if args.config else ResolverConfig()
    if args.bootstrap_url:
        config.bootstrap_urls = list(args.bootstrap_url)
    if args.storage:
        config.storage_dir = args.storage
    return config


def _resolve(args: argparse.Namespace) -> int:
    config = _build_config(args)
    if not config.bootstrap_urls:
        print("at least one --bootstrap-url (or a config file listing bootstrap_urls) is required", file=sys.stderr)
        return 2

    resolver = EndpointResolver(config)
    resolver.generator.use_cached_config()

    if args.no_probe:
        global_config = resolver.generator.fetcher.fetch(config.bootstrap_urls) or resolver.generator.global_config
        if global_config is None:
            print("no global config available", file=sys.stderr)
            return 1
        result = resolver.generator.regenerate(global_config, test_speed=False)
    else:
        result = resolver.refresh()

    if result is None:
        print("no global config available", file=sys.stderr)
        return 1

    print(json.dumps(service_config_to_dict(result), indent=2))
    return 0


def _show_cache(args: argparse.Namespace) -> int:
    cache = PersistentConfigCache(JsonFileStore(args.storage))
    service_config = cache.load_service_config()
    if service_config is None:
        print("no cached service config", file=sys.stderr)
        return 1

    print(json.dumps(service_config_to_dict(service_config), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve the fastest endpoints for each backend service.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log resolver activity to stderr.")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Run one resolution cycle and print the service config.")
    resolve.add_argument("--bootstrap-url", action="append", help="Bootstrap config URL; repeat for fallbacks.")
    resolve.add_argument("--config", help="Path to a resolver config JSON file.")
    resolve.add_argument("--storage", help="Directory for the persisted config cache.")
    resolve.add_argument("--no-probe", action="store_true", help="Keep the declared domain order, skip probing.")
    resolve.set_defaults(func=_resolve)

    show = sub.add_parser("show-cache", help="Print the persisted service config.")
    show.add_argument("--storage", required=True, help="Directory for the persisted config cache.")
    show.set_defaults(func=_show_cache)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
