"""
API Server Runner

Entry point for running the Inbox Actions API with uvicorn. The environment
is prepared before the application module is imported so the settings and
the database engine pick it up.
"""

import argparse
import logging
import os
import sys
import traceback

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("api_runner")


def parse_arguments(argv=None):
    """Parse command line arguments for the API server."""
    parser = argparse.ArgumentParser(description="Run the Inbox Actions API server")

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )
    parser.add_argument(
        "--env",
        type=str,
        choices=["development", "testing", "production"],
        default="development",
        help="Environment to run in (default: development)"
    )

    return parser.parse_args(argv)


def setup_environment(env: str) -> None:
    """
    Export the environment name and create the log directory.

    Args:
        env: Environment name (development, testing, production)
    """
    os.environ["ENVIRONMENT"] = env
    os.environ.setdefault("DEBUG", "true" if env == "development" else "false")

    log_file = os.environ.get("LOG_FILE", "logs/inbox_actions.log")
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)

    if env == "production" and not os.environ.get("CRON_SECRET"):
        logger.warning("CRON_SECRET is not set, the /cron endpoints will answer 500")


def main(argv=None):
    args = parse_arguments(argv)
    setup_environment(args.env)

    logger.info(f"Starting API server in {args.env} mode")
    logger.info(f"Server will be available at http://{args.host}:{args.port}")
    if args.env != "production":
        logger.info(f"API documentation will be available at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info" if args.env == "production" else "debug"
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error running server: {str(e)}")
        logger.error(traceback.format_exc())
        sys.exit(1)
