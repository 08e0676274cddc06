# src/imageproxy/main.py
"""CLI entry point: serve, transform, address commands.

Usage:
    imageproxy serve [--host HOST] [--port PORT]
    imageproxy transform <img> [transform options] -o <file>
    imageproxy address <img> [transform options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from imageproxy.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _add_transform_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("img", help="Source image URL")
    parser.add_argument("--width", default="", help="Target width in pixels")
    parser.add_argument("--height", default="", help="Target height in pixels")
    parser.add_argument(
        "--ratio", default="", help="Aspect ratio: 16x9, 9x16, 1x1, 4x3, 3x4",
    )
    parser.add_argument("--mode", default="", help="Resize mode: fit or crop")
    parser.add_argument(
        "--format", default="", help="Output format: jpg, jpeg, png, webp, avif",
    )
    parser.add_argument("--quality", default="", help="Quality 0-100")


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="imageproxy",
        description=f"imageproxy v{__version__} - on-demand image transformation proxy",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--env", default=None,
        help="Deployment environment (production, development); defaults to APP_ENV",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- serve ---
    p_serve = subparsers.add_parser("serve", help="Run the HTTP proxy")
    p_serve.add_argument("--host", default=None, help="Bind address")
    p_serve.add_argument("--port", type=int, default=None, help="Bind port")
    p_serve.set_defaults(func=_cmd_serve)

    # --- transform ---
    p_transform = subparsers.add_parser(
        "transform", help="Transform one image through the cache and save it",
    )
    _add_transform_options(p_transform)
    p_transform.add_argument(
        "-o", "--output", type=Path, required=True, help="Output file",
    )
    p_transform.set_defaults(func=_cmd_transform)

    # --- address ---
    p_address = subparsers.add_parser(
        "address", help="Print the cache address of a request",
    )
    _add_transform_options(p_address)
    p_address.set_defaults(func=_cmd_address)

    return parser


def _query_from_args(args: argparse.Namespace) -> dict[str, str]:
    return {
        "img": args.img,
        "width": args.width,
        "height": args.height,
        "ratio": args.ratio,
        "mode": args.mode,
        "format": args.format,
        "quality": args.quality,
    }


def _load(args: argparse.Namespace, log_format: str | None = None):
    from imageproxy.config.settings import load_settings
    from imageproxy.logging.logger import setup_logging

    settings = load_settings(args.env)
    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=log_format or settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return settings


async def _cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP server until interrupted."""
    import uvicorn

    from imageproxy.api.app import create_app

    settings = _load(args)
    host = args.host or settings.host
    port = args.port or settings.port

    logger.info("Server is running on %s:%d", host, port)
    config = uvicorn.Config(create_app(settings), host=host, port=port, log_config=None)
    await uvicorn.Server(config).serve()
    return 0


async def _cmd_transform(args: argparse.Namespace) -> int:
    """Run the full proxy pipeline once and write the artifact to a file."""
    from imageproxy.api.app import build_orchestrator
    from imageproxy.core.errors import ImageProxyError
    from imageproxy.fetch.source_fetcher import create_http_client

    settings = _load(args, log_format="text")
    async with create_http_client(settings.fetch_timeout) as client:
        orchestrator = build_orchestrator(settings, client)
        try:
            result = await orchestrator.handle(_query_from_args(args))
        except ImageProxyError as e:
            logger.error("%s", e)
            return 2 if e.status_code == 400 else 1

    if result.is_redirect:
        print(result.redirect_url)
        return 0

    output: Path = args.output
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.body)
    print(f"{result.cache_status} {result.address} -> {output} ({len(result.body)} bytes)")
    return 0


async def _cmd_address(args: argparse.Namespace) -> int:
    """Print the cache address without touching the store."""
    from imageproxy.cache.keys import derive_cache_address
    from imageproxy.core.errors import InvalidParameter
    from imageproxy.core.parameters import parse_query

    try:
        source, params = parse_query(_query_from_args(args))
    except InvalidParameter as e:
        print(str(e), file=sys.stderr)
        return 2

    print(derive_cache_address(source, params))
    return 0


if __name__ == "__main__":
    sys.exit(main())
