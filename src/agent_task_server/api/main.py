"""FastAPI application wiring for the task server.

`app.state` holds the collaborators every route shares: storage, the
workflow dispatcher, the auth gate and the identity provider.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import httpx
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from agent_task_server import __version__
from agent_task_server.api.responses import PrettyJSONResponse
from agent_task_server.api.schemas import (
    AuthCheck,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    RepoList,
    TaskAccepted,
    TaskDetail,
    TaskList,
    TaskRequest,
)
from agent_task_server.auth import (
    AuthDecision,
    AuthGate,
    IdentityProvider,
    IdentityProviderError,
    SupabaseIdentityProvider,
    extract_bearer_token,
)
from agent_task_server.config.settings import Settings, get_settings
from agent_task_server.graph.dispatch import TaskDispatcher
from agent_task_server.graph.engine import WorkflowEngine
from agent_task_server.runner import ProcessError, ProcessRunner, ShellProcessRunner
from agent_task_server.storage import InMemoryTaskStorage, TaskStorage

logger = logging.getLogger(__name__)


def create_app(
    *,
    storage: TaskStorage | None = None,
    settings_override: Settings | None = None,
    runner: ProcessRunner | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Application factory.

    Raises RuntimeError when no identity provider is configured and the
    operator has not opted into running without authentication.
    """
    settings = settings_override or get_settings()
    storage = storage or InMemoryTaskStorage()
    runner = runner or ShellProcessRunner()

    if identity_provider is None and settings.identity_configured():
        identity_provider = SupabaseIdentityProvider(
            settings.resolved_identity_url(),
            settings.resolved_identity_service_key(),
            anon_key=settings.resolved_identity_anon_key(),
            timeout_s=settings.identity_timeout_s,
        )
    if identity_provider is None:
        if not settings.allow_unauthenticated:
            raise RuntimeError(
                "No identity provider configured. Set AGENT_TASK_SERVER_IDENTITY_URL and "
                "AGENT_TASK_SERVER_IDENTITY_SERVICE_KEY, or AGENT_TASK_SERVER_ALLOW_UNAUTHENTICATED=1 "
                "to run without authentication."
            )
        logger.warning("auth event=disabled reason=allow_unauthenticated every_request_is_admin=true")

    engine = WorkflowEngine(runner=runner, storage=storage, settings=settings)
    dispatcher = TaskDispatcher(engine)
    gate = AuthGate(identity_provider)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info(
            "server event=startup workspace=%s auth_enabled=%s serialize_repo_tasks=%s",
            settings.resolved_workspace(),
            gate.enabled,
            settings.serialize_repo_tasks,
        )
        yield
        await dispatcher.shutdown()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        default_response_class=PrettyJSONResponse,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.state.settings = settings
    app.state.storage = storage
    app.state.runner = runner
    app.state.dispatcher = dispatcher
    app.state.gate = gate
    app.state.identity_provider = identity_provider

    async def current_decision(authorization: str | None = Header(default=None)) -> AuthDecision:
        return await app.state.gate.verify(extract_bearer_token(authorization))

    async def require_admin(decision: AuthDecision = Depends(current_decision)) -> AuthDecision:
        if not decision.valid:
            raise HTTPException(
                status_code=401,
                detail={"error": "Authentication required", "code": "AUTH_REQUIRED"},
            )
        if not decision.is_admin:
            raise HTTPException(
                status_code=403,
                detail={"error": "Admin access required", "code": "ADMIN_REQUIRED"},
            )
        return decision

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            version=__version__,
            timestamp=datetime.now(tz=UTC),
            active_tasks=app.state.storage.count_active(),
            auth_enabled=app.state.gate.enabled,
        )

    @app.post("/auth/login", response_model=LoginResponse)
    async def login(payload: LoginRequest) -> LoginResponse:
        if not payload.email or not payload.password:
            raise HTTPException(status_code=400, detail="Email and password required")
        provider = app.state.identity_provider
        if provider is None:
            raise HTTPException(status_code=503, detail="Authentication is not configured")

        try:
            session = await provider.password_login(payload.email, payload.password)
        except IdentityProviderError as exc:
            raise HTTPException(status_code=401, detail=exc.message) from exc
        except httpx.HTTPError as exc:
            logger.error("auth event=login_error error=%s", exc)
            raise HTTPException(status_code=500, detail="Login failed") from exc

        access_token = session.get("access_token")
        if not access_token:
            raise HTTPException(status_code=500, detail="Login failed")
        decision = await app.state.gate.verify(access_token)
        if not decision.is_admin:
            logger.info("auth event=login_rejected reason=not_admin")
            raise HTTPException(status_code=403, detail="Admin access required")

        return LoginResponse(
            access_token=access_token,
            refresh_token=session.get("refresh_token"),
            expires_in=session.get("expires_in"),
            user=decision.user,
        )

    @app.get("/auth/check", response_model=AuthCheck)
    async def auth_check(decision: AuthDecision = Depends(current_decision)):
        if not decision.valid or not decision.is_admin:
            return PrettyJSONResponse(
                status_code=401,
                content={"authenticated": False, "isAdmin": False},
            )
        return AuthCheck(authenticated=True, is_admin=True, user=decision.user)

    @app.post("/auth/logout")
    async def logout(authorization: str | None = Header(default=None)) -> dict[str, bool]:
        token = extract_bearer_token(authorization)
        provider = app.state.identity_provider
        if token and provider is not None:
            try:
                await provider.logout(token)
            except httpx.HTTPError as exc:
                logger.info("auth event=logout_error error=%s", exc)
        return {"success": True}

    @app.get("/repos", response_model=RepoList, dependencies=[Depends(require_admin)])
    async def list_repos() -> RepoList:
        try:
            result = await app.state.runner.run(settings.repo_list_command, Path.cwd())
            repos = json.loads(result.stdout)
        except (ProcessError, ValueError) as exc:
            logger.error("repos event=list_failed error=%s", exc)
            return RepoList(repos=[])
        if not isinstance(repos, list):
            return RepoList(repos=[])
        return RepoList(repos=repos)

    @app.post(
        "/task",
        status_code=202,
        response_model=TaskAccepted,
        dependencies=[Depends(require_admin)],
    )
    async def submit_task(payload: TaskRequest) -> TaskAccepted:
        missing = payload.missing_field()
        if missing is not None:
            raise HTTPException(status_code=400, detail=f"Missing required field: {missing}")

        try:
            config = payload.to_config(default_branch=settings.default_branch)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=f"Invalid task request: {exc.errors()[0]['msg']}"
            ) from exc
        task = app.state.storage.create_task(config)
        logger.info(
            "task_submit event=accepted task_id=%s repo=%s branch=%s",
            task.id,
            config.repo_name,
            config.branch,
        )
        app.state.dispatcher.submit(task.id)
        return TaskAccepted(task_id=task.id, status_url=f"/task/{task.id}")

    @app.get("/task/{task_id}", response_model=TaskDetail, dependencies=[Depends(require_admin)])
    async def get_task(task_id: str) -> TaskDetail:
        task = app.state.storage.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return TaskDetail.from_record(task)

    @app.get("/tasks", response_model=TaskList, dependencies=[Depends(require_admin)])
    async def list_tasks() -> TaskList:
        return TaskList(tasks=[task.summary() for task in app.state.storage.list_tasks()])

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> PrettyJSONResponse:
        return PrettyJSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(_: Request, exc: RequestValidationError) -> PrettyJSONResponse:
        return PrettyJSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

    return app
