#!/usr/bin/env python3
"""
Module Registry - HTTP Transport
Serves the Terraform module registry protocol (v1) over HTTP.

The app is meant to sit behind a frontend server (nginx or similar) that
adds whatever authentication or UI the deployment needs.
"""

import asyncio
from typing import List, Optional

from starlette.applications import Starlette
from starlette.concurrency import iterate_in_threadpool, run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.routing import Route

from module_registry import __version__
from module_registry.config import ListenerConfig, RegistryConfig
from module_registry.registry import Download, InternalError, NotFound, ProtocolRouter
from module_registry.utils.logger import Logger

logger = Logger("module-registry-http")


def _coordinate(request: Request):
    params = request.path_params
    return params["namespace"], params["name"], params["provider"]


async def _call(operation, *args):
    """Run a blocking router operation, mapping failures to bare status codes."""
    try:
        return await run_in_threadpool(operation, *args), None
    except NotFound:
        return None, Response(status_code=404)
    except InternalError:
        return None, Response(status_code=500)


async def health_check(request):
    """Health check endpoint."""
    router: ProtocolRouter = request.app.state.router
    return PlainTextResponse(
        f"Module Registry (HTTP)\n"
        f"Version: {__version__}\n"
        f"Status: Running\n"
        f"Hostname: {router.hostname}\n"
        f"Modules: {len(router.modules)}\n"
    )


async def list_providers(request):
    """Latest version of each provider of a module."""
    router: ProtocolRouter = request.app.state.router
    params = request.path_params
    result, error = await _call(router.list_providers, params["namespace"], params["name"])
    if error is not None:
        return error
    return JSONResponse(result.to_dict())


async def module_latest(request):
    router: ProtocolRouter = request.app.state.router
    result, error = await _call(router.module_latest, *_coordinate(request))
    if error is not None:
        return error
    return JSONResponse(result.to_dict())


async def list_versions(request):
    router: ProtocolRouter = request.app.state.router
    result, error = await _call(router.list_versions, *_coordinate(request))
    if error is not None:
        return error
    return JSONResponse(result.to_dict())


async def module_version(request):
    router: ProtocolRouter = request.app.state.router
    result, error = await _call(router.module_version, *_coordinate(request), request.path_params["version"])
    if error is not None:
        return error
    return JSONResponse(result.to_dict())


async def download_location(request):
    """Tell the client where to fetch the archive for a version."""
    router: ProtocolRouter = request.app.state.router
    location, error = await _call(
        router.download_location, *_coordinate(request), request.path_params["version"]
    )
    if error is not None:
        return error
    # Terraform's downloader only unpacks URLs ending in .tgz or .tar.gz
    return Response(
        status_code=204,
        media_type="text/plain",
        headers={"X-Terraform-Get": f"{location}.tgz"},
    )


async def download_archive(request):
    """Stream the gzipped tarball for a version, if the tree id is current."""
    router: ProtocolRouter = request.app.state.router
    download, error = await _call(
        router.open_archive,
        *_coordinate(request),
        request.path_params["version"],
        request.path_params["tree_id"],
    )
    if error is not None:
        return error

    # The downloader wants application/x-gzip here, not a tar MIME type with
    # a gzip Content-Encoding.
    return StreamingResponse(
        _stream_archive(download),
        media_type="application/x-gzip",
        headers={"Content-Disposition": f"attachment; filename={download.filename}"},
    )


async def _stream_archive(download: Download):
    try:
        async for chunk in iterate_in_threadpool(download.chunks):
            yield chunk
    except InternalError:
        # Already logged by the router; the cut-off stream is all the client sees
        raise
    except BaseException:
        logger.warning(f"Download of {download.filename} was interrupted before completion")
        raise
    finally:
        download.close()


# Endpoints:
# - /health - Deployment health check
# - /{namespace}/{name}[/{provider}[/versions | /{version}[/download[/{tree_id}]]]]
#   - Module registry protocol v1
routes = [
    Route("/health", endpoint=health_check),
    Route("/{namespace}/{name}", endpoint=list_providers),
    Route("/{namespace}/{name}/{provider}", endpoint=module_latest),
    Route("/{namespace}/{name}/{provider}/versions", endpoint=list_versions),
    Route("/{namespace}/{name}/{provider}/{version}", endpoint=module_version),
    Route("/{namespace}/{name}/{provider}/{version}/download", endpoint=download_location),
    Route("/{namespace}/{name}/{provider}/{version}/download/{tree_id}", endpoint=download_archive),
]


def create_app(config: RegistryConfig, router_logger: Optional[Logger] = None) -> Starlette:
    """Build the Starlette app serving the configured modules."""
    app = Starlette(routes=routes)
    app.state.router = ProtocolRouter(
        modules=config.modules,
        hostname=config.hostname.for_display(),
        logger=router_logger,
    )
    return app


async def serve(
    app: Starlette,
    listeners: List[ListenerConfig],
    log_level: str = "info",
    access_log: bool = True,
) -> None:
    """Run one uvicorn server per listener until all of them stop."""
    import uvicorn

    logger.set_level(log_level)
    servers = []
    for listener in listeners:
        try:
            options = listener.uvicorn_options()
        except ValueError as e:
            logger.error(f"failed to listen ({listener.describe()}): {e}")
            continue
        config = uvicorn.Config(app, log_level=log_level.lower(), access_log=access_log, **options)
        servers.append((listener, uvicorn.Server(config)))
        logger.info(f"Listening for {listener.describe()}")

    results = await asyncio.gather(
        *(server.serve() for _, server in servers),
        return_exceptions=True,
    )
    for (listener, _), result in zip(servers, results):
        if isinstance(result, BaseException):
            logger.error(f"failed to listen ({listener.describe()}): {result}")
