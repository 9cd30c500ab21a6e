"""
Run the backend with uvicorn.

    python -m noughts_crosses --host 0.0.0.0 --port 8000
"""

import argparse

import uvicorn

from .config import Settings


def main(argv=None):
    parser = argparse.ArgumentParser(description="Noughts & Crosses backend")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    args = parser.parse_args(argv)

    settings = Settings()
    uvicorn.run(
        "noughts_crosses.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
