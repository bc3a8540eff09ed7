#!/usr/bin/env python3
"""
Run the FHIR $everything API server.

Usage:
    python -m fhir_everything.run_server [--port PORT] [--host HOST]

Resources are served from FHIR_EVERYTHING_STORE_DIR (see scripts/load_bundle.py).
"""

import argparse

from .closure.config import EVERYTHING_TRAVERSAL_MODE, STORE_DIR


def main():
    parser = argparse.ArgumentParser(
        description="Run the FHIR $everything API server"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    args = parser.parse_args()

    import uvicorn

    print(f"""
    FHIR $everything API
      API Server:  http://{args.host}:{args.port}
      API Docs:    http://{args.host}:{args.port}/docs
      Store:       {STORE_DIR}
      Traversal:   {EVERYTHING_TRAVERSAL_MODE}
    """)

    uvicorn.run(
        "fhir_everything.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
