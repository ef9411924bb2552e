"""
FastAPI application factory for the content server.

create_app() builds exactly one GitContentService (and therefore one
repository gateway) per application and stores it on app.state.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from git_content_server import __version__
from git_content_server.server.middleware.correlation import CorrelationIdMiddleware
from git_content_server.server.routers.content import router as content_router
from git_content_server.server.services.content_service import GitContentService
from git_content_server.server.services.git_gateway import RepositoryGateway
from git_content_server.server.utils.config_manager import (
    ContentServerConfig,
    ContentServerConfigManager,
)

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ContentServerConfig] = None,
    gateway: Optional[RepositoryGateway] = None,
) -> FastAPI:
    """
    Create the content server application.

    Args:
        config: Effective configuration (loaded via ContentServerConfigManager if None)
        gateway: Repository gateway override, mainly for tests

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = ContentServerConfigManager().load_or_create()

    service = GitContentService(config, gateway=gateway)
    service.prepare()

    app = FastAPI(title="Git Content Server", version=__version__)
    app.state.config = config
    app.state.content_service = service

    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(content_router)

    logger.info(
        f"Serving content root {config.content_root} of repository {config.repo_root}"
    )
    return app
