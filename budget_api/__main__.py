"""Entry point for python -m budget_api."""

import uvicorn

from .api import app
from .config import get_settings


def main() -> None:
    """Run the budget tips API server."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
