"""FastAPI application exposing the user administration pages."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import List
from urllib.parse import urlencode

import logging
from fastapi import Depends, FastAPI, Form, Request, Response, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
from prometheus_client import Counter

from .auth import (
    ACCESS_TOKEN_COOKIE,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_role_service,
    get_user_service,
    require_admin,
)
from .config import settings
from .database import SessionLocal, init_db
from .exceptions import (
    InvalidCredentialsError,
    UserAdminError,
    UserNotFoundError,
    UsernameNotFoundError,
)
from .models import User
from .roles import RoleService
from .schemas import RefreshRequest, TokenResponse, UserForm, UserLogin
from .services import UserService, bootstrap


TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        bootstrap(db, settings)
    finally:
        db.close()
    yield


limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
app = FastAPI(title=settings.api_title, lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
init_db()

templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log incoming requests and their outcomes while updating metrics."""
    logger.info("request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response
    except Exception:
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status="500",
        ).inc()
        logger.exception(
            "error handling %s %s", request.method, request.url.path
        )
        raise


@app.exception_handler(UserAdminError)
async def user_admin_error_handler(request: Request, exc: UserAdminError):
    """Answer uncaught service errors with a generic error response."""
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def login_redirect_handler(request: Request, exc: StarletteHTTPException):
    """Send browsers without a valid session to the login page."""
    if exc.status_code == status.HTTP_401_UNAUTHORIZED and "text/html" in request.headers.get(
        "accept", ""
    ):
        return _redirect_to(request, "show_login")
    return await http_exception_handler(request, exc)


def user_form(
    username: str = Form(...),
    first_name: str | None = Form(None, alias="firstName"),
    last_name: str | None = Form(None, alias="lastName"),
    email: str | None = Form(None),
    age: int | None = Form(None),
    password: str | None = Form(None),
    role_ids: List[int] = Form([], alias="roleIds"),
) -> UserForm:
    """Collect the submitted create/edit form fields."""
    return UserForm(
        username=username,
        first_name=first_name,
        last_name=last_name,
        email=email,
        age=age,
        password=password,
        role_ids=role_ids,
    )


def _redirect_to(request: Request, route_name: str, **params: str) -> RedirectResponse:
    """Redirect to a named route with a path-relative location."""
    location = str(request.app.url_path_for(route_name))
    if params:
        location = f"{location}?{urlencode(params)}"
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


def _redirect_to_admin(request: Request, **params: str) -> RedirectResponse:
    return _redirect_to(request, "admin_page", **params)


def _set_token_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


def _issue_tokens(user: User, response: Response) -> TokenResponse:
    tokens = TokenResponse(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
    )
    _set_token_cookie(response, tokens.access_token)
    return tokens


@app.get("/login", response_class=HTMLResponse, name="show_login")
def show_login(request: Request, error: str | None = None):
    """Render the sign-in form."""
    return templates.TemplateResponse(request, "login.html", {"error": error})


@app.post("/login", name="process_login")
@limiter.limit(settings.login_rate_limit)
def process_login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    user_service: UserService = Depends(get_user_service),
):
    """Check submitted credentials, store the token cookie and open the admin page."""
    try:
        user = user_service.verify_credentials(username, password)
    except InvalidCredentialsError:
        logger.info("rejected login user=%s", username)
        return _redirect_to(request, "show_login", error="invalid_credentials")

    logger.info("login user=%s", user.username)
    response = _redirect_to_admin(request)
    _set_token_cookie(response, create_access_token(user))
    return response


@app.get("/logout", name="logout")
def logout(request: Request):
    """Drop the token cookie and return to the login page."""
    response = _redirect_to(request, "show_login")
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return response


@app.post("/token", response_model=TokenResponse, name="issue_token")
@limiter.limit(settings.login_rate_limit)
def issue_token(
    request: Request,
    response: Response,
    credentials: UserLogin,
    user_service: UserService = Depends(get_user_service),
):
    """Exchange a username and password for access and refresh tokens."""
    user = user_service.verify_credentials(credentials.username, credentials.password)
    logger.info("issued token user=%s", user.username)
    return _issue_tokens(user, response)


@app.post("/refresh", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def refresh(
    request: Request,
    response: Response,
    payload: RefreshRequest,
    user_service: UserService = Depends(get_user_service),
):
    """Issue a new token pair for a valid refresh token."""
    username = decode_token(payload.refresh_token, "refresh")
    try:
        user = user_service.authenticate(username)
    except UsernameNotFoundError as exc:
        raise InvalidCredentialsError() from exc
    return _issue_tokens(user, response)


@app.get(
    "/admin",
    response_class=HTMLResponse,
    name="admin_page",
    dependencies=[Depends(require_admin)],
)
def admin_page(
    request: Request,
    error: str | None = None,
    user_service: UserService = Depends(get_user_service),
    role_service: RoleService = Depends(get_role_service),
):
    """List all users together with the available roles."""
    return templates.TemplateResponse(
        request,
        "admin.html",
        {
            "users": user_service.list_users(),
            "all_roles": role_service.list_roles(),
            "error": error,
        },
    )


@app.get(
    "/admin/add",
    response_class=HTMLResponse,
    name="show_add_user_form",
    dependencies=[Depends(require_admin)],
)
def show_add_user_form(
    request: Request, role_service: RoleService = Depends(get_role_service)
):
    """Render an empty create form with the available roles."""
    return templates.TemplateResponse(
        request,
        "add-user.html",
        {
            "user_form": UserForm(),
            "all_roles": role_service.list_roles(),
            "password_required": True,
        },
    )


@app.post("/admin/add", name="add_user", dependencies=[Depends(require_admin)])
def add_user(
    request: Request,
    form: UserForm = Depends(user_form),
    user_service: UserService = Depends(get_user_service),
):
    """Create a user from the submitted form."""
    user_service.create_user(form)
    return _redirect_to_admin(request)


@app.get(
    "/admin/edit/{user_id}",
    response_class=HTMLResponse,
    name="show_edit_user_form",
    dependencies=[Depends(require_admin)],
)
def show_edit_user_form(
    request: Request,
    user_id: int,
    user_service: UserService = Depends(get_user_service),
    role_service: RoleService = Depends(get_role_service),
):
    """Render the edit form for a user, or return to the list if it is gone."""
    try:
        form = user_service.get_user_form(user_id)
    except UserNotFoundError:
        return _redirect_to_admin(request, error="user_not_found")
    return templates.TemplateResponse(
        request,
        "edit-user.html",
        {
            "user_form": form,
            "user_id": user_id,
            "all_roles": role_service.list_roles(),
            "password_required": False,
        },
    )


@app.post("/admin/edit", name="update_user", dependencies=[Depends(require_admin)])
def update_user(
    request: Request,
    user_id: int = Form(..., alias="userId"),
    form: UserForm = Depends(user_form),
    user_service: UserService = Depends(get_user_service),
):
    """Apply the submitted edit form to an existing user."""
    user_service.update_user(form, user_id)
    return _redirect_to_admin(request)


@app.post(
    "/admin/delete/{user_id}", name="delete_user", dependencies=[Depends(require_admin)]
)
def delete_user(
    request: Request,
    user_id: int,
    user_service: UserService = Depends(get_user_service),
):
    """Delete a user and return to the list."""
    user_service.delete_user(user_id)
    return _redirect_to_admin(request)
