"""
CLI entry point for the FPL proxy.

Usage:
    python main.py serve [--host 0.0.0.0] [--port 3000]
    python main.py fetch bootstrap-static
    python main.py fetch live-event gw=7
    python main.py resources
"""

import argparse
import asyncio
import json
import sys

from fpl_proxy.config import get_settings
from fpl_proxy.exceptions import ProxyException
from fpl_proxy.logging_config import configure_logging
from fpl_proxy.service import build_service, describe_resources


def _parse_params(pairs):
    """Turn ``["gw=7", "manager_id=1"]`` into a dict."""
    params = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"expected name=value, got {pair!r}")
        params[name] = value
    return params


def cmd_serve(args):
    """Start the HTTP proxy under uvicorn."""
    import uvicorn

    from fpl_proxy.api.app import create_app

    settings = get_settings()
    app = create_app(settings)
    host = args.host or settings.api.host
    port = args.port or settings.api.port
    print(f"Starting {settings.api.service_name} on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)


async def _fetch_once(resource, params):
    service = build_service(get_settings())
    try:
        return await service.fetch(resource, params)
    finally:
        await service.aclose()


def cmd_fetch(args):
    """Resolve one resource through the full fallback chain."""
    try:
        params = _parse_params(args.params)
        resolution = asyncio.run(_fetch_once(args.resource, params))
    except (ValueError, ProxyException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    if args.source:
        print(f"source: {resolution.source.value}", file=sys.stderr)
    print(json.dumps(resolution.payload, indent=2))


def cmd_resources(args):
    """Print the resource table."""
    print(json.dumps(describe_resources(), indent=2))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Fantasy PL Proxy - read-through caching proxy for the FPL API"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    p_serve = subparsers.add_parser("serve", help="Start the HTTP proxy")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)

    # fetch
    p_fetch = subparsers.add_parser("fetch", help="Fetch one resource and print it")
    p_fetch.add_argument("resource", help="Resource name, e.g. bootstrap-static")
    p_fetch.add_argument("params", nargs="*", help="Path parameters as name=value")
    p_fetch.add_argument("--source", action="store_true", help="Report the serving tier on stderr")

    # resources
    subparsers.add_parser("resources", help="List served resources")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    commands = {
        "serve": cmd_serve,
        "fetch": cmd_fetch,
        "resources": cmd_resources,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
