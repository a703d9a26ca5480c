"""CLI entry point for Aurum."""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Aurum gold options signal service")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes")
    args = parser.parse_args()

    uvicorn.run(
        "aurum.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=None if args.reload else args.workers,
    )


if __name__ == "__main__":
    main()
