# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from blogify import __version__
from blogify.auth.session import TokenService
from blogify.config import Settings
from blogify.core.utils import safe_next_url
from blogify.errors import (
    AuthenticationError,
    BlogifyError,
    NotFoundError,
    PasswordHashingError,
    StoreUnavailableError,
    ValidationError,
)
from blogify.infra.store import DocumentStore
from blogify.observability import RequestLogMiddleware, configure_logging
from blogify.permissions import (
    CurrentUser,
    current_user_optional,
    get_store,
    get_tokens,
    require_role,
    require_user,
    require_user_api,
    resolve_identity,
)
from blogify.services import blog_service, user_service
from blogify.services.blog_service import FeedPage
from blogify.services.stats_service import blogs_csv_stream, compute_stats
from blogify.services.upload_service import UPLOADS_URL_PREFIX, discard_cover_image, save_cover_image

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

JSON_PREFIXES = ("/api/", "/blog/like/", "/health")


def _wants_json(request: Request) -> bool:
    return request.url.path.startswith(JSON_PREFIXES)


def _render(
    request: Request,
    template_name: str,
    ctx: dict,
    current: Optional[CurrentUser] = None,
    status_code: int = 200,
):
    """TemplateResponse wrapper injecting the identity and app-wide values."""
    base_ctx = {
        "current_user": current.user if current else None,
        "version": __version__,
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _identity_from_request(request: Request) -> Optional[CurrentUser]:
    """Resolve the identity outside of dependency injection (error pages)."""
    state = request.app.state
    return resolve_identity(
        request.cookies.get(state.settings.cookie_name),
        store=state.store,
        tokens=state.tokens,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = DocumentStore(settings.data_dir, timeout=settings.store_timeout)
        try:
            store.open()
        except StoreUnavailableError:
            # Keep serving: reads degrade to empty pages, writes answer 503.
            logger.error("Starting without a usable document store at %s", settings.data_dir)
        app.state.store = store
        try:
            yield
        finally:
            store.close()

    app = FastAPI(title="Blogify", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.tokens = TokenService(
        settings.secret_key,
        salt=settings.session_salt,
        max_age=settings.session_max_age,
    )
    app.add_middleware(RequestLogMiddleware)

    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=str(settings.uploads_dir)), name="uploads")

    _register_error_handlers(app, settings)
    _register_routes(app, settings)
    return app


# ------------------ Error handling ------------------


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(BlogifyError)
    async def _blogify_error(request: Request, exc: BlogifyError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        if _wants_json(request):
            return JSONResponse(exc.to_payload(), status_code=exc.status_code)
        template = "404.html" if isinstance(exc, NotFoundError) else "error.html"
        return _render(
            request,
            template,
            {"message": exc.message, "detail": ""},
            _identity_from_request(request),
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        detail = "" if settings.is_production else f"{type(exc).__name__}: {exc}"
        if _wants_json(request):
            payload = {"error": "Internal server error", "code": "internal_error"}
            if detail:
                payload["detail"] = detail
            return JSONResponse(payload, status_code=500)
        return _render(
            request,
            "error.html",
            {"message": "Something went wrong. Please try again.", "detail": detail},
            status_code=500,
        )


# ------------------ Routes ------------------


def _register_routes(app: FastAPI, settings: Settings) -> None:
    def _set_session_cookie(resp, token: str) -> None:
        resp.set_cookie(
            settings.cookie_name,
            token,
            max_age=settings.session_max_age,
            **settings.cookie_settings(),
        )

    @app.get("/", response_class=HTMLResponse)
    def home(
        request: Request,
        page: int = 1,
        q: str = "",
        tag: str = "",
        current: Optional[CurrentUser] = Depends(current_user_optional),
        store: DocumentStore = Depends(get_store),
    ):
        notice = ""
        try:
            feed = blog_service.list_feed(store, page=page, page_size=settings.page_size, q=q, tag=tag)
        except StoreUnavailableError:
            logger.warning("Home feed rendered empty: document store unavailable")
            feed = FeedPage(blogs=[], page=1, pages=1, total=0, q=q.strip(), tag=tag.strip())
            notice = "Posts are temporarily unavailable. Please try again later."
        return _render(request, "home.html", {"feed": feed, "notice": notice}, current)

    # --- users ---

    @app.get("/user/signin", response_class=HTMLResponse)
    def signin_get(request: Request, next: str = "/", current: Optional[CurrentUser] = Depends(current_user_optional)):
        if current:
            return RedirectResponse(url=safe_next_url(next), status_code=303)
        return _render(request, "signin.html", {"next": next, "error": "", "email": ""})

    @app.post("/user/signin")
    def signin_post(
        request: Request,
        email: str = Form(""),
        password: str = Form(""),
        next: str = Form("/"),
        store: DocumentStore = Depends(get_store),
        tokens: TokenService = Depends(get_tokens),
    ):
        try:
            u = user_service.authenticate(store, email, password)
        except AuthenticationError as exc:
            ctx = {"next": next, "error": exc.message, "email": email}
            return _render(request, "signin.html", ctx, status_code=exc.status_code)
        resp = RedirectResponse(url=safe_next_url(next), status_code=303)
        _set_session_cookie(resp, tokens.issue(u.id))
        logger.info("User %s signed in", u.id)
        return resp

    @app.get("/user/signup", response_class=HTMLResponse)
    def signup_get(request: Request, current: Optional[CurrentUser] = Depends(current_user_optional)):
        return _render(request, "signup.html", {"error": "", "full_name": "", "email": ""}, current)

    @app.post("/user/signup")
    def signup_post(
        request: Request,
        full_name: str = Form("", alias="fullName"),
        email: str = Form(""),
        password: str = Form(""),
        store: DocumentStore = Depends(get_store),
    ):
        try:
            user_service.signup(store, full_name=full_name, email=email, password=password)
        except (ValidationError, PasswordHashingError) as exc:
            ctx = {"error": exc.message, "full_name": full_name, "email": email}
            return _render(request, "signup.html", ctx, status_code=exc.status_code)
        return RedirectResponse(url="/user/signin", status_code=303)

    @app.get("/user/logout")
    def logout(request: Request):
        resp = RedirectResponse(url="/", status_code=303)
        resp.delete_cookie(settings.cookie_name, **settings.cookie_settings())
        return resp

    @app.get("/user/profile/{user_id}", response_class=HTMLResponse)
    def profile(
        request: Request,
        user_id: str,
        current: Optional[CurrentUser] = Depends(current_user_optional),
        store: DocumentStore = Depends(get_store),
    ):
        u = user_service.require_existing_user(store, user_id)
        own = bool(current and current.id == u.id)
        ctx = {
            "profile": u,
            "own": own,
            "following": bool(current and current.id in u.followers),
            "blogs": blog_service.list_user_blogs(store, u.id, include_drafts=own),
            "error": "",
        }
        return _render(request, "profile.html", ctx, current)

    @app.post("/user/profile")
    def profile_update(
        request: Request,
        full_name: str = Form("", alias="fullName"),
        bio: str = Form(""),
        current: CurrentUser = Depends(require_user),
        store: DocumentStore = Depends(get_store),
    ):
        try:
            user_service.update_profile(store, current.id, full_name=full_name, bio=bio)
        except ValidationError as exc:
            ctx = {
                "profile": current.user,
                "own": True,
                "following": False,
                "blogs": blog_service.list_user_blogs(store, current.id, include_drafts=True),
                "error": exc.message,
            }
            return _render(request, "profile.html", ctx, current, status_code=exc.status_code)
        return RedirectResponse(url=f"/user/profile/{current.id}", status_code=303)

    @app.post("/user/follow/{user_id}")
    def follow(
        user_id: str,
        current: CurrentUser = Depends(require_user),
        store: DocumentStore = Depends(get_store),
    ):
        user_service.toggle_follow(store, current.id, user_id)
        return RedirectResponse(url=f"/user/profile/{user_id}", status_code=303)

    # --- blogs ---

    @app.get("/blog/add-new", response_class=HTMLResponse)
    def add_new(request: Request, current: CurrentUser = Depends(require_user)):
        return _render(request, "add_blog.html", {"error": "", "form": {}}, current)

    @app.post("/blog/")
    async def create_blog(
        request: Request,
        title: str = Form(""),
        body: str = Form(""),
        tags: str = Form(""),
        status: str = Form(""),
        cover_image: UploadFile | None = File(None, alias="coverImage"),
        current: CurrentUser = Depends(require_user),
        store: DocumentStore = Depends(get_store),
    ):
        try:
            blog_service.validate_blog(title, body, status)
            cover_url = None
            if cover_image is not None:
                # one byte past the limit is enough to reject oversized files
                content = await cover_image.read(settings.max_upload_bytes + 1)
                cover_url = save_cover_image(
                    filename=cover_image.filename or "",
                    content_type=cover_image.content_type or "",
                    content=content,
                    uploads_dir=settings.uploads_dir,
                    max_bytes=settings.max_upload_bytes,
                )
            try:
                blog = blog_service.create_blog(
                    store,
                    current.user,
                    title=title,
                    body=body,
                    tags=tags,
                    status=status,
                    cover_image_url=cover_url,
                )
            except Exception:
                discard_cover_image(cover_url, uploads_dir=settings.uploads_dir)
                raise
        except ValidationError as exc:
            form = {"title": title, "body": body, "tags": tags, "status": status}
            return _render(request, "add_blog.html", {"error": exc.message, "form": form}, current, exc.status_code)
        return RedirectResponse(url=f"/blog/{blog.id}", status_code=303)

    @app.get("/blog/{blog_id}", response_class=HTMLResponse)
    def read_blog(
        request: Request,
        blog_id: str,
        current: Optional[CurrentUser] = Depends(current_user_optional),
        store: DocumentStore = Depends(get_store),
    ):
        viewer = current.user if current else None
        blog = blog_service.read_blog(store, blog_id, viewer)
        comments = blog_service.list_comments(store, blog.id)
        related = blog_service.related_blogs(store, blog)
        people = blog_service.authors_for(store, [blog, *related])
        for c in comments:
            if c.created_by not in people:
                u = user_service.get_user(store, c.created_by)
                if u:
                    people[u.id] = u
        ctx = {
            "blog": blog,
            "author": people.get(blog.created_by),
            "comments": comments,
            "related": related,
            "people": people,
            "liked": bool(viewer and viewer.id in blog.likes),
        }
        return _render(request, "blog.html", ctx, current)

    @app.post("/blog/comment/{blog_id}")
    def comment(
        blog_id: str,
        content: str = Form(""),
        current: CurrentUser = Depends(require_user),
        store: DocumentStore = Depends(get_store),
    ):
        try:
            blog_service.add_comment(store, blog_id, current.user, content)
        except ValidationError as exc:
            logger.info("Comment on %s rejected: %s", blog_id, exc.message)
        return RedirectResponse(url=f"/blog/{blog_id}", status_code=303)

    @app.post("/blog/like/{blog_id}")
    def like(
        blog_id: str,
        current: CurrentUser = Depends(require_user_api),
        store: DocumentStore = Depends(get_store),
    ):
        result = blog_service.toggle_like(store, blog_id, current.user)
        return JSONResponse({"likes": result.likes, "liked": result.liked})

    # --- api ---

    @app.get("/api/stats")
    def api_stats(store: DocumentStore = Depends(get_store)):
        return JSONResponse(compute_stats(store))

    @app.get("/api/export/blogs.csv")
    def export_blogs(
        current: CurrentUser = Depends(require_role("ADMIN", api=True)),
        store: DocumentStore = Depends(get_store),
    ):
        return blogs_csv_stream(store)

    @app.get("/health")
    def health(store: DocumentStore = Depends(get_store)):
        if store.is_open:
            return JSONResponse({"status": "ok", "store": "ok"})
        return JSONResponse({"status": "degraded", "store": "unavailable"}, status_code=503)
