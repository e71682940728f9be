"""``python -m photopager`` — serve the REST API with uvicorn."""

from __future__ import annotations

import argparse
import os

import uvicorn


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="photopager", description=__doc__)
    parser.add_argument("--host", default=os.environ.get("PHOTOPAGER_HOST", "127.0.0.1"))
    parser.add_argument(
        "--port", type=int, default=int(os.environ.get("PHOTOPAGER_PORT", "8000"))
    )
    parser.add_argument("--database-url", help="overrides PHOTOPAGER_DATABASE_URL")
    parser.add_argument(
        "--init-db", action="store_true", help="create missing tables on startup"
    )
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    if args.database_url:
        os.environ["PHOTOPAGER_DATABASE_URL"] = args.database_url
    if args.init_db:
        os.environ["PHOTOPAGER_INIT_DB"] = "1"

    uvicorn.run(
        "photopager.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
