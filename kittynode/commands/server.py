"""
HTTP adaptor - serves the engine API so a remote core client can drive it.

Every route dispatches to the active core client. Errors become plain-text
bodies: 404 when the message mentions "not found", otherwise 500.
"""

import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from kittynode import __version__
from kittynode.commands.core_client import CoreClientManager
from kittynode.commands.errors import KittynodeError
from kittynode.commands.models import PackageConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class PackagesRequest(BaseModel):
    names: list[str]


class PackageConfigBody(BaseModel):
    values: dict[str, str] = {}


def error_status(message: str) -> int:
    return 404 if "not found" in message.lower() else 500


def _error_response(exc: Exception) -> PlainTextResponse:
    message = exc.message if isinstance(exc, KittynodeError) else str(exc)
    return PlainTextResponse(message, status_code=error_status(message))


def create_app(manager: Optional[CoreClientManager] = None) -> FastAPI:
    """Build the API app around ``manager`` (a fresh one when omitted)."""
    manager = manager or CoreClientManager()
    app = FastAPI(title="kittynode-web", version=__version__)

    @app.exception_handler(KittynodeError)
    async def kittynode_error_handler(request: Request, exc: KittynodeError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc)

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("%s %s failed", request.method, request.url.path)
        return _error_response(exc)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Hello World!"

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/add_capability/{name}")
    async def add_capability(name: str):
        await manager.client().add_capability(name)

    @app.post("/remove_capability/{name}")
    async def remove_capability(name: str):
        await manager.client().remove_capability(name)

    @app.get("/get_capabilities")
    async def get_capabilities():
        return await manager.client().get_capabilities()

    @app.get("/get_package_catalog")
    async def get_package_catalog():
        catalog = await manager.client().get_package_catalog()
        return {name: package.to_dict() for name, package in catalog.items()}

    @app.get("/get_config")
    async def get_config():
        config = await manager.client().get_config()
        return config.to_dict()

    @app.post("/install_package/{name}")
    async def install_package(name: str, network: Optional[str] = None):
        await manager.client().install_package(name, network)

    @app.post("/delete_package/{name}")
    async def delete_package(name: str, include_images: bool = False):
        await manager.client().delete_package(name, include_images)

    @app.post("/stop_package/{name}")
    async def stop_package(name: str):
        await manager.client().stop_package(name)

    @app.post("/start_package/{name}")
    async def start_package(name: str):
        await manager.client().start_package(name)

    @app.get("/get_installed_packages")
    async def get_installed_packages():
        packages = await manager.client().get_installed_packages()
        return [package.to_dict() for package in packages]

    @app.post("/get_packages")
    async def get_packages(body: PackagesRequest):
        states = await manager.client().get_packages(body.names)
        return {name: state.to_dict() for name, state in states.items()}

    @app.get("/get_package/{name}")
    async def get_package(name: str):
        state = await manager.client().get_package(name)
        return state.to_dict()

    @app.post("/package_runtime")
    async def get_packages_runtime_state(body: PackagesRequest):
        states = await manager.client().get_packages_runtime_state(body.names)
        return {name: state.to_dict() for name, state in states.items()}

    @app.get("/package_runtime/{name}")
    async def get_package_runtime_state(name: str):
        state = await manager.client().get_package_runtime_state(name)
        return state.to_dict()

    @app.get("/is_validator_installed")
    async def is_validator_installed():
        return await manager.client().is_validator_installed()

    @app.get("/is_docker_running")
    async def is_docker_running():
        if await manager.client().is_docker_running():
            return PlainTextResponse("", status_code=200)
        return PlainTextResponse("Docker is not running", status_code=503)

    @app.post("/init_kittynode")
    async def init_kittynode():
        await manager.client().init_kittynode()

    @app.post("/delete_kittynode")
    async def delete_kittynode():
        await manager.client().delete_kittynode()

    @app.get("/get_system_info")
    async def get_system_info():
        info = await manager.client().get_system_info()
        return info.to_dict()

    @app.get("/logs/{container}")
    async def logs(container: str, tail: Optional[int] = None):
        return await manager.client().get_container_logs(container, tail)

    @app.get("/get_package_config/{name}")
    async def get_package_config(name: str):
        config = await manager.client().get_package_config(name)
        return config.to_dict()

    @app.post("/update_package_config/{name}")
    async def update_package_config(name: str, body: PackageConfigBody):
        await manager.client().update_package_config(
            name, PackageConfig(values=dict(body.values))
        )

    @app.post("/start_docker_if_needed")
    async def start_docker_if_needed():
        status = await manager.client().start_docker_if_needed()
        return JSONResponse(status.value)

    @app.get("/get_operational_state")
    async def get_operational_state():
        state = await manager.client().get_operational_state()
        return state.to_dict()

    return app


def configure_logging() -> None:
    level = os.environ.get("KITTYNODE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


def run_server(port: int, service_token: Optional[str] = None) -> None:
    """Serve the API on ``0.0.0.0:<port>`` until interrupted.

    ``service_token`` only has to appear on the command line, where the
    supervisor looks for it.
    """
    configure_logging()
    if service_token:
        logger.debug("Started with a service token")
    logger.info("kittynode-web listening on 0.0.0.0:%s", port)
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
