"""
ASGI entry point for the reportblocks API.

Usage
-----
Run via the module entry point:
    $ python -m reportblocks.api.server

Or via uvicorn directly:
    $ uvicorn reportblocks.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from reportblocks.api.app import create_app

# Load .env before the factory runs so settings see it.
load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def main() -> None:
    """Run the API server locally for development."""
    uvicorn.run(
        "reportblocks.api.server:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
