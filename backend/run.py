#!/usr/bin/env python3
"""
Quick start script for the Marketplace API server.

Usage:
    python run.py
    python run.py --port 8080 --no-reload
    python run.py --backend rest
    python run.py --seed ./data/seed.json --storage-dir ./.storage

Options override the matching environment settings (BACKEND_TYPE,
SEED_DATA_PATH, LOCAL_STORAGE_DIR) for the server process and its reloader.
"""

import argparse
import os

import uvicorn

from marketplace.config import get_settings


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the Marketplace API server")
    parser.add_argument("--host", default=settings.HOST, help=f"Host to bind to (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port to listen on (default: {settings.PORT})")
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    parser.add_argument("--backend", choices=["memory", "rest"], default=None,
                        help=f"Backend to use (default: {settings.BACKEND_TYPE})")
    parser.add_argument("--seed", default=None, help="Seed JSON file for the in-memory backend")
    parser.add_argument("--storage-dir", default=None, help="Persist session storage under this directory")

    args = parser.parse_args()

    overrides = {
        "BACKEND_TYPE": args.backend,
        "SEED_DATA_PATH": args.seed,
        "LOCAL_STORAGE_DIR": args.storage_dir,
    }
    for name, value in overrides.items():
        if value is not None:
            os.environ[name] = value

    backend = args.backend or settings.BACKEND_TYPE
    source = settings.BAAS_URL if backend == "rest" else (args.seed or settings.SEED_DATA_PATH)

    print("=" * 60)
    print("  Property Marketplace API")
    print("=" * 60)
    print(f"\n  Starting server at http://{args.host}:{args.port}")
    print(f"  API Docs: http://localhost:{args.port}/docs")
    print(f"  Backend: {backend} ({source})")
    print(f"  Auto-reload: {'disabled' if args.no_reload else 'enabled'}")
    print("\n" + "=" * 60 + "\n")

    uvicorn.run(
        "marketplace.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
