# exgate/adapters/web/fastapi.py
import asyncio
import re
import uuid
from contextlib import asynccontextmanager
from typing import Callable, Iterable, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from exgate.core.exceptions import ExtensionGatewayException, UnknownExtensionError
from exgate.core.interfaces.auth import ADMIN_ROLE, AuthPort
from exgate.core.logging_config import correlation_id_var
from exgate.core.managers.extension_manager import ExtensionGateway
from exgate.core.models.extension import Extension, ExtensionType
from exgate.core.models.problem import ProblemResponse
from exgate.core.settings import app_settings, logger
from exgate.core.utils.locale import Locale, get_locale

PATH_EXTENSIONS = "/extensions"

EXTENSION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


# Note: this a driver adapter, so it depends on the core (ExtensionGateway)
# but the core does not depend on this adapter
def create_app(
    gateway_factory: Callable[[], ExtensionGateway],
    auth: Optional[AuthPort] = None,
    shutdown_hooks: Iterable[Callable[[], None]] = (),
    api_versions: Optional[List[str]] = None,
) -> FastAPI:
    """Create the FastAPI app.

    The gateway and its extension services are assembled outside and passed
    as a factory. This keeps the web adapter focused purely on HTTP concerns
    and lifecycle orchestration. Without an auth port every caller is
    treated as administrator.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        gateway = gateway_factory()
        app.state.gateway = gateway
        try:
            yield
        finally:
            # waits for running installs; keep the event loop free meanwhile
            await asyncio.to_thread(gateway.shutdown, True)
            for hook in shutdown_hooks:
                hook()

    app = FastAPI(title="exgate", lifespan=lifespan)

    def render_problem(
        problem: ProblemResponse,
        *,
        include_request_id: bool = False,
    ) -> JSONResponse:
        payload = jsonable_encoder(problem.to_payload())
        response = JSONResponse(status_code=problem.status, content=payload)
        if include_request_id and problem.additional and problem.additional.requestId:
            response.headers["X-Request-ID"] = problem.additional.requestId
        return response

    def build_problem(
        status: int,
        title: str,
        detail: str,
        request: Request,
        type_uri: str = "about:blank",
    ) -> ProblemResponse:
        return ProblemResponse.for_request(status, title, detail, str(request.url), type_uri)

    # ---------------- Dependencies -----------------
    def get_gateway() -> ExtensionGateway:
        # sub-apps share the gateway held by the parent app
        return app.state.gateway

    def request_locale(
        accept_language: Optional[str] = Header(default=None),
        gateway: ExtensionGateway = Depends(get_gateway),
    ) -> Locale:
        return get_locale(accept_language, gateway.default_locale)

    def require_admin(
        request: Request,
        authorization: Optional[str] = Header(default=None),
    ) -> None:
        if auth is None:
            return
        roles = auth.resolve_roles(authorization)
        if ADMIN_ROLE in roles:
            return
        if not authorization:
            raise ExtensionGatewayException(
                build_problem(401, "Unauthorized", "Authentication required", request)
            )
        raise ExtensionGatewayException(
            build_problem(403, "Forbidden", f"Role '{ADMIN_ROLE}' required", request)
        )

    def valid_extension_id(extension_id: str, request: Request) -> str:
        # ids outside the pattern never match a route
        if not EXTENSION_ID_PATTERN.fullmatch(extension_id):
            raise ExtensionGatewayException(
                build_problem(404, "Not Found", f"No route for '{request.url.path}'", request)
            )
        return extension_id

    # ---------------- Routes -----------------
    router = APIRouter(dependencies=[Depends(require_admin)])

    @router.get(
        "",
        response_model=List[Extension],
        response_model_exclude_none=True,
        summary="Get all extensions.",
    )
    def get_extensions(
        request: Request,
        locale: Locale = Depends(request_locale),
        gateway: ExtensionGateway = Depends(get_gateway),
    ):
        logger.debug(f"Received HTTP GET request at '{request.url.path}'")
        return gateway.get_extensions(locale)

    @router.get(
        "/types",
        response_model=List[ExtensionType],
        summary="Get all extension types.",
    )
    def get_types(
        request: Request,
        locale: Locale = Depends(request_locale),
        gateway: ExtensionGateway = Depends(get_gateway),
    ):
        logger.debug(f"Received HTTP GET request at '{request.url.path}'")
        return gateway.get_types(locale)

    @router.get(
        "/{extension_id}",
        response_model=Extension,
        response_model_exclude_none=True,
        responses={404: {"description": "Not found"}},
        summary="Get extension with given ID.",
    )
    def get_extension(
        request: Request,
        extension_id: str = Depends(valid_extension_id),
        locale: Locale = Depends(request_locale),
        gateway: ExtensionGateway = Depends(get_gateway),
    ):
        logger.debug(f"Received HTTP GET request at '{request.url.path}'")
        extension = gateway.get_extension(extension_id, locale)
        if extension is None:
            return Response(status_code=404)
        return extension

    @router.post("/{extension_id}/install", summary="Installs the extension with the given ID.")
    def install_extension(
        extension_id: str = Depends(valid_extension_id),
        gateway: ExtensionGateway = Depends(get_gateway),
    ):
        gateway.install(extension_id)
        return Response(status_code=200)

    @router.post("/{extension_id}/uninstall", summary="Uninstalls the extension with the given ID.")
    def uninstall_extension(
        extension_id: str = Depends(valid_extension_id),
        gateway: ExtensionGateway = Depends(get_gateway),
    ):
        gateway.uninstall(extension_id)
        return Response(status_code=200)

    # ---------------- Error handling -----------------
    async def gateway_exception_handler(request: Request, exc: ExtensionGatewayException):
        # Only surface requestId for server side errors
        status_code = exc.response.status
        include_request_id = status_code >= 500
        problem = exc.response.model_copy()
        if include_request_id:
            problem = problem.with_request_id(correlation_id_var.get())
        return render_problem(problem, include_request_id=include_request_id)

    async def unknown_extension_handler(request: Request, exc: UnknownExtensionError):
        logger.debug(f"[ext:lookup] unresolvable extension_id={exc.extension_id}")
        problem = build_problem(
            status=404,
            title="Unknown Extension",
            detail=str(exc),
            request=request,
        )
        return render_problem(problem)

    def install_handlers(target: FastAPI) -> None:
        target.add_exception_handler(ExtensionGatewayException, gateway_exception_handler)
        target.add_exception_handler(UnknownExtensionError, unknown_extension_handler)

    install_handlers(app)

    # Correlation ID middleware: assigns per-request id (header override) and exposes it to logging
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        incoming = request.headers.get("x-request-id")
        cid = incoming or uuid.uuid4().hex[:12]
        token = correlation_id_var.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        # always return id header for traceability
        response.headers["X-Request-ID"] = cid
        return response

    app.include_router(router, prefix=PATH_EXTENSIONS, tags=["extensions"])

    # Versioned sub-apps reuse the same router but publish their own OpenAPI document
    versions = api_versions if api_versions is not None else app_settings.EXGATE_SUPPORTED_API_VERSIONS
    for ver in versions:
        sub = FastAPI(
            title=f"exgate API v{ver}",
            openapi_url="/openapi.json",
            docs_url="/docs",
            redoc_url="/redoc",
        )
        install_handlers(sub)
        sub.include_router(router, prefix=PATH_EXTENSIONS, tags=["extensions"])
        app.mount(f"/v{ver}", sub)

    # ---------------- Health -----------------
    @app.get("/health/live")
    async def liveness():
        """Liveness probe - the process is serving requests."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def readiness():
        """Readiness probe - at least one extension service is registered."""
        gateway = get_gateway()
        services = len(gateway.services)
        if not gateway.is_satisfied():
            return JSONResponse(
                status_code=503,
                content={
                    "status": "not_ready",
                    "reason": "no_extension_services",
                    "extension_services": services,
                },
            )
        return {"status": "ready", "extension_services": services}

    return app
