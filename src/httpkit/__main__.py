"""
=============================================================================
HTTPKIT CLI ENTRY POINT
=============================================================================

Runs a small demo application:

    python -m httpkit                       # 0.0.0.0:4567
    python -m httpkit --port 3000
    python -m httpkit --workers 8           # bounded pool instead of
                                            # one thread per connection
    python -m httpkit --public ./public     # root for server.render()
    python -m httpkit --debug               # failure text in 500 pages

Unset flags fall back to HTTPKIT_* environment variables (see
ServerConfig.from_env), then to the defaults.

=============================================================================
"""

from typing import List, Optional
import argparse
import logging
import sys

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .errors import TemplateNotFound
from .http.response import Json
from .middleware import request_logger
from .server import Server


logger = logging.getLogger("httpkit.demo")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httpkit",
        description="Minimal HTTP server toolkit: demo application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m httpkit                      # Run with defaults (port 4567)
  python -m httpkit --port 3000          # Custom port
  python -m httpkit --workers 8          # 8 pooled worker threads
  python -m httpkit --public ./public    # Template root
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 4567)")
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=None,
        help="Per-connection socket timeout in seconds (default: none)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS / FILES
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Bounded worker pool size (default: one thread per connection)",
    )
    parser.add_argument("--public", "-s", default=None, help="Directory for rendered files (default: ./public)")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / ERRORS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="Access log format")
    parser.add_argument("--debug", action="store_true", help="Show failure messages in 500 pages")
    parser.add_argument("--version", "-v", action="version", version=f"httpkit {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration overridden by the flags that were given."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "timeout": args.timeout,
        "max_workers": args.workers,
        "public_root": args.public,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for field_name, value in overrides.items():
        if value is not None:
            setattr(config, field_name, value)
    if args.debug:
        config.debug = True

    return config


def build_demo_app(server: Server) -> Server:
    """Register the demo routes on server."""
    server.use(request_logger())

    @server.get("/")
    def index(ctx):
        return "Olá mundo! 🌍✨"

    @server.get("/hello/:name")
    def hello(ctx):
        return f"Eae {ctx.params['name'].capitalize()}!"

    @server.post("/api/data")
    def data(ctx):
        return Json({"received": ctx.body})

    def log_user_agent(ctx):
        logger.info(f"Rota nada especial acessada por: {ctx.user_agent}")

    server.get("/especial", server.with_middleware(log_user_agent), lambda ctx: "Você realmente nao e especial")

    @server.get("/visitas")
    def visits(ctx):
        count = int(ctx.cookies.get("visitas", "0") or 0) + 1
        ctx.cookies.set("visitas", count, path="/", http_only=True)
        return f"Visitas: {count}"

    @server.get("/pagina/:name")
    def page(ctx):
        try:
            return server.render(f"{ctx.params['name']}.html.tmpl", **ctx.query)
        except TemplateNotFound:
            return server.render(f"{ctx.params['name']}.html")

    return server


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server = Server(config_from_args(args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    build_demo_app(server)

    try:
        server.start()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
