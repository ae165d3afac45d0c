"""MCP server for inspecting GitLab CI of a local Git repository."""

import asyncio
import os

import click
from dotenv import load_dotenv

from .log import LOG_LEVELS, configure_logging


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    default="stdio",
    help="MCP transport type",
)
@click.option("--port", default=8000, help="Port for HTTP transports")
@click.option("--host", default="127.0.0.1", help="Host for HTTP transports")
@click.option("--gitlab-token", envvar="GITLAB_TOKEN", help="GitLab personal access token")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS),
    envvar="GITLAB_LOG_LEVEL",
    default="info",
    help="Log level (logs go to stderr)",
)
def main(
    transport: str,
    port: int,
    host: str,
    gitlab_token: str | None,
    log_level: str,
) -> None:
    """Run the GitLab CI MCP server."""
    load_dotenv()
    configure_logging(log_level)

    if gitlab_token:
        os.environ["GITLAB_TOKEN"] = gitlab_token

    from .servers import prompts  # noqa: F401 (registers the prompts)
    from .servers.gitlab import mcp

    run_kwargs: dict = {"transport": transport}
    if transport != "stdio":
        run_kwargs["host"] = host
        run_kwargs["port"] = port

    asyncio.run(mcp.run_async(show_banner=False, **run_kwargs))


if __name__ == "__main__":
    main()
