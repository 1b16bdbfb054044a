"""
FastAPI Application - HTTP bridge server
========================================

This module creates the FastAPI application through which a chat
bridge talks to the bot, and runs it with uvicorn.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from core.logging import get_logger
from services.bot import SimpleBot

logger = get_logger("web.app")


def create_app(bot: SimpleBot, debug: bool = False) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        bot: A loaded bot; its transport sends the replies
        debug: Enable debug mode

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=bot.settings.name,
        description="HTTP bridge for Simple Bot",
        version="1.0.0",
        debug=debug,
    )

    app.state.bot = bot
    bot.running = True

    from .routes import router
    app.include_router(router, prefix="")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc) if debug else "An error occurred"}
        )

    logger.info("Web bridge created")
    return app


def run_app(bot: SimpleBot, host: str, port: int, debug: bool = False) -> None:
    """
    Run the bridge server until interrupted or .quit is used.

    Args:
        bot: A loaded bot
        host: Host address to bind
        port: Port to listen on
        debug: Enable debug mode
    """
    app = create_app(bot, debug=debug)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="debug" if debug else "info"
    )
    server = uvicorn.Server(config)
    app.state.server = server

    logger.info(f"Starting web bridge on {host}:{port}")
    server.run()

    if bot.running:
        bot.quit()
