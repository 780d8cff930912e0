"""
Run the PharmaSync dev server with uvicorn.

Usage:
    python run.py
    python run.py --reload    # Development mode with auto-reload
    python run.py --port 8080 # Custom port
"""
import argparse
import uvicorn

from pharmasync.config.settings import settings
from pharmasync.utils.logger import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Run the PharmaSync dev server")
    parser.add_argument(
        "--host",
        type=str,
        default=settings.dev_server_host,
        help=f"Host to bind to (default: {settings.dev_server_host})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.dev_server_port,
        help=f"Port to bind to (default: {settings.dev_server_port})"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    args = parser.parse_args()

    setup_logging()

    print(f"Starting PharmaSync dev server...")
    print(f"  Host: {args.host}")
    print(f"  Port: {args.port}")
    print(f"  Reload: {args.reload}")
    print()

    uvicorn.run(
        "pharmasync.devserver.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
