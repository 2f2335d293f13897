"""Main entry point for the token provider HTTP server."""

import os
import sys

import uvicorn

from pot_provider.config import load_config
from pot_provider.logging import get_logger, setup_logging
from pot_provider.server import create_app
from pot_provider.session import SessionManager
from pot_provider.solver import load_solver

DEFAULT_PORT = 4416

logger = get_logger("main")


def create_application():
    """Build the ASGI application from CONFIG_PATH and the environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path and not os.path.exists(config_path):
        print(f"Error: Config file not found at {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(config_path)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.solver:
        print("Error: no challenge solver configured (set 'solver' or POT_SOLVER)", file=sys.stderr)
        sys.exit(1)

    try:
        solver = load_solver(config.solver)
    except ValueError as e:
        print(f"Solver error: {e}", file=sys.stderr)
        sys.exit(1)

    manager = SessionManager.from_config(config, solver)
    logger.info("Token TTL is %d hours", config.token_ttl_hours)
    return create_app(manager)


def main():
    """Run the HTTP server."""
    setup_logging()
    port = int(os.environ.get("PORT", str(DEFAULT_PORT)))
    app = create_application()
    print(f"Starting pot-provider server on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
