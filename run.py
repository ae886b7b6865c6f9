import argparse
import uvicorn
from polis.core.config import settings


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the Polis API server")
    parser.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Bind port (default: {settings.PORT})")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes, ignored with --reload (default: 1)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart on code changes (always on when DEBUG is set)"
    )
    parser.add_argument(
        "--log-level",
        default="debug" if settings.DEBUG else "info",
        choices=["critical", "error", "warning", "info", "debug"],
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    use_reload = args.reload or settings.DEBUG

    uvicorn.run(
        "polis.main:app",
        host=args.host,
        port=args.port,
        reload=use_reload,
        workers=None if use_reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
