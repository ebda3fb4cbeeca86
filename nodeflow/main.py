"""ASGI entry point for the NodeFlow service."""

import uvicorn

from .config import load_config
from .factory import create_app

config = load_config()
app = create_app(config)


def run():
    """Run the service with uvicorn."""
    uvicorn.run("nodeflow.main:app", **config.get_uvicorn_config())


if __name__ == "__main__":
    run()
