from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, ConfigDict
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from editorial.api.parsing import parse_keyword_params, parse_state
from editorial.app import settings
from editorial.app.db import engine as default_engine, init_db, sessionmaker_from_engine
from editorial.app.errors import (
    DuplicateSourceError,
    ExternalServiceError,
    InvalidInput,
    NotFound,
    StoreError,
)
from editorial.app.models import SourceState
from editorial.app.tasks import JobScheduler, default_scheduler
from editorial.ingestion.crawl_client import Crawl4AIClient
from editorial.ingestion.dedup import DuplicateCheck, DuplicateDetector
from editorial.keywords.suggest import KeywordSuggester
from editorial.sources.lifecycle import SourceLifecycle
from editorial.sources.submission import Submission, SubmissionGate
from editorial.sources.users import UserDirectory

log = logging.getLogger("api")
logging.basicConfig(level=logging.INFO)


# ---------- wiring ----------
@dataclass
class Services:
    engine: Engine
    users: UserDirectory
    lifecycle: SourceLifecycle
    detector: DuplicateDetector
    gate: SubmissionGate
    scheduler: JobScheduler
    _suggester: Optional[KeywordSuggester] = None
    _scraper: Optional[Crawl4AIClient] = None

    @classmethod
    def from_engine(cls, bind: Engine, **overrides) -> "Services":
        factory = sessionmaker_from_engine(bind)
        lifecycle = SourceLifecycle(factory)
        detector = DuplicateDetector(factory)
        svc = cls(
            engine=bind,
            users=UserDirectory(factory),
            lifecycle=lifecycle,
            detector=detector,
            gate=SubmissionGate(detector, lifecycle),
            scheduler=default_scheduler(bind),
        )
        for k, v in overrides.items():
            setattr(svc, k, v)
        return svc

    # built on first use: they need config files / API keys
    @property
    def suggester(self) -> KeywordSuggester:
        if self._suggester is None:
            self._suggester = KeywordSuggester()
        return self._suggester

    @property
    def scraper(self) -> Crawl4AIClient:
        if self._scraper is None:
            self._scraper = Crawl4AIClient()
        return self._scraper


@lru_cache(maxsize=1)
def get_services() -> Services:
    return Services.from_engine(default_engine)


security = HTTPBasic(realm="Editorial")


def require_login(creds: HTTPBasicCredentials = Depends(security)) -> str:
    user_ok = secrets.compare_digest(creds.username.encode(), settings.EDITORIAL_USERNAME.encode())
    pass_ok = secrets.compare_digest(creds.password.encode(), settings.EDITORIAL_PASSWORD.encode())
    # an unconfigured login never authenticates
    if not (settings.EDITORIAL_USERNAME and user_ok and pass_ok):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": 'Basic realm="Editorial"'},
        )
    return creds.username


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.dependency_overrides.get(get_services, get_services)().engine)
    yield


# --- app & logging ---
app = FastAPI(title="Editorial Source Tracker API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

api = APIRouter(dependencies=[Depends(require_login)])


# ---------- Pydantic models ----------
class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserOut(_Out):
    id: int
    name: str


class UsersResponse(BaseModel):
    users: List[UserOut]


class StateCountsOut(_Out):
    working: int
    done: int
    aborted: int


class UserCountsResponse(BaseModel):
    user_id: int
    counts: StateCountsOut


class KeywordCountsResponse(BaseModel):
    keyword: str
    counts: StateCountsOut


class MatchRowOut(_Out):
    source_id: int
    title: str
    url: str
    comment: str
    author_id: int
    author_name: str
    updated_at: Optional[datetime]
    keywords: str


class CheckResponse(BaseModel):
    url_matches: List[MatchRowOut]
    keyword_matches: List[MatchRowOut]


class SourceOut(_Out):
    id: int
    url: str
    title: str
    author_id: int
    author_name: str
    comment: str
    content_md: str
    state: SourceState
    updated_at: Optional[datetime]
    keywords: List[str]


class SourcesResponse(BaseModel):
    sources: List[SourceOut]


class SearchHitOut(SourceOut):
    matched_keywords: str
    match_count: int


class SearchResponse(BaseModel):
    keywords: List[str]
    sources: List[SearchHitOut]


class KeywordCountOut(_Out):
    keyword: str
    count: int


class KeywordsResponse(BaseModel):
    keywords: List[KeywordCountOut]


class DetectResponse(BaseModel):
    keywords: List[str]
    title_translation: str


class ExpandResponse(BaseModel):
    keywords: List[str]


class CrawlResponse(BaseModel):
    md_content: str
    title: str
    description: str


class CreatedResponse(BaseModel):
    id: int
    url: str


class OkResponse(BaseModel):
    ok: bool = True


class CronResponse(BaseModel):
    success: bool
    jobs: dict


# request bodies
class UserIn(BaseModel):
    name: str


class SourceIn(BaseModel):
    author_id: int
    url: str
    title: str = ""
    comment: str = ""
    content_md: str = ""
    keywords: List[str] = []
    confirm_url_duplicate: bool = False
    confirm_keyword_duplicate: bool = False


class SourcePatch(BaseModel):
    state: Optional[Union[int, str]] = None
    title: Optional[str] = None
    comment: Optional[str] = None
    content_md: Optional[str] = None


class DetectIn(BaseModel):
    title: str = ""
    comment: str = ""


class CrawlIn(BaseModel):
    url: str


# ---------- helpers ----------
def _iso(dt: Optional[datetime]) -> Optional[str]:
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _state(value, default: Optional[SourceState] = None) -> SourceState:
    parsed = parse_state(value, default)
    if not parsed.ok:
        raise InvalidInput("state", parsed.error)
    return parsed.state


def _check_out(check: DuplicateCheck) -> dict:
    return CheckResponse(
        url_matches=[MatchRowOut.model_validate(m) for m in check.url_matches],
        keyword_matches=[MatchRowOut.model_validate(m) for m in check.keyword_matches],
    ).model_dump(mode="json")


def _positive(field: str, value: Optional[int]) -> int:
    if value is None or value <= 0:
        raise InvalidInput(field, "must be a positive integer")
    return value


# ---------- error handling ----------
@app.exception_handler(InvalidInput)
async def invalid_input(_req: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})


@app.exception_handler(RequestValidationError)
async def invalid_request(_req: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    return JSONResponse(
        status_code=400,
        content={"error": first.get("msg", "Invalid request."), "field": ".".join(loc) or None},
    )


@app.exception_handler(NotFound)
async def not_found(_req: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"error": str(exc), "kind": exc.kind})


@app.exception_handler(DuplicateSourceError)
async def duplicate_source(_req: Request, exc: DuplicateSourceError):
    content = {"error": "duplicate", "reason": exc.reason}
    content.update(_check_out(exc.matches))
    return JSONResponse(status_code=409, content=content)


@app.exception_handler(ExternalServiceError)
async def external_failure(_req: Request, exc: ExternalServiceError):
    log.warning("External call failed: %s", exc)
    return JSONResponse(
        status_code=502,
        content={"error": str(exc), "service": exc.service, "kind": exc.kind},
    )


@app.exception_handler(StoreError)
@app.exception_handler(SQLAlchemyError)
async def store_failure(_req: Request, exc: Exception):
    log.exception("Store error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "store_error"})


@app.exception_handler(Exception)
async def unhandled_exc(_req: Request, exc: Exception):
    log.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "internal_error", "detail": str(exc)})


# ---------- routes ----------
@app.get("/healthz")
def healthz():
    return {"ok": True, "ts": _iso(datetime.now(timezone.utc))}


# users
@api.get("/users", response_model=UsersResponse)
def list_users(svc: Services = Depends(get_services)):
    return {"users": [UserOut.model_validate(u) for u in svc.users.list_users()]}


@api.post("/users", response_model=UserOut, status_code=201)
def create_user(body: UserIn, svc: Services = Depends(get_services)):
    return UserOut.model_validate(svc.users.register(body.name))


@api.patch("/users/{user_id}", response_model=UserOut)
def rename_user(user_id: int, body: UserIn, svc: Services = Depends(get_services)):
    return UserOut.model_validate(svc.users.rename(user_id, body.name))


@api.get("/users/{user_id}/counts", response_model=UserCountsResponse)
def user_counts(user_id: int, svc: Services = Depends(get_services)):
    svc.users.get(_positive("user_id", user_id))
    counts = svc.lifecycle.state_counts(author_id=user_id)
    return {"user_id": user_id, "counts": StateCountsOut.model_validate(counts)}


# sources
@api.get("/sources/check", response_model=CheckResponse)
def check_sources(
    request: Request,
    url: str = Query(..., min_length=1, description="Canonical URL to look up"),
    state: Optional[str] = Query(None),
    svc: Services = Depends(get_services),
):
    """Duplicate warnings for a pending submission (Working sources by default)."""
    params = request.query_params
    keywords = parse_keyword_params(params.getlist("keywords") + params.getlist("keywords[]"))
    result = svc.detector.check(url.strip(), keywords, _state(state, SourceState.WORKING))
    return _check_out(result)


@api.get("/sources/search", response_model=SearchResponse)
def search_sources(
    request: Request,
    query: Optional[str] = Query(None, description="Free text; expanded to keywords by the LLM"),
    state: Optional[str] = Query(None),
    svc: Services = Depends(get_services),
):
    params = request.query_params
    keywords = parse_keyword_params(params.getlist("keywords") + params.getlist("keywords[]"))
    if not keywords and query and query.strip():
        keywords = svc.suggester.expand_query(query)
    if not keywords:
        raise InvalidInput("keywords", "Missing keywords.")

    hits = svc.lifecycle.search_by_keywords(keywords, _state(state, SourceState.WORKING))
    sources = [
        SearchHitOut(
            **SourceOut.model_validate(h.source).model_dump(),
            matched_keywords=h.matched_keywords,
            match_count=h.match_count,
        )
        for h in hits
    ]
    return {"keywords": keywords, "sources": sources}


@api.get("/sources", response_model=SourcesResponse)
def list_sources(
    author_id: Optional[int] = Query(None),
    state: Optional[str] = Query(None),
    svc: Services = Depends(get_services),
):
    author_id = _positive("author_id", author_id)
    records = svc.lifecycle.list_by_author(author_id, _state(state))
    return {"sources": [SourceOut.model_validate(r) for r in records]}


@api.get("/sources/{source_id}", response_model=SourceOut)
def get_source(source_id: int, svc: Services = Depends(get_services)):
    return SourceOut.model_validate(svc.lifecycle.get_by_id(source_id))


@api.post("/sources", response_model=CreatedResponse, status_code=201)
def create_source(body: SourceIn, svc: Services = Depends(get_services)):
    """
    Canonicalize, duplicate-check against Working sources, then create.
    Blocked submissions return 409 with the matches.
    """
    accepted = svc.gate.submit(Submission(**body.model_dump()))
    return {"id": accepted.id, "url": accepted.url}


@api.patch("/sources/{source_id}", response_model=OkResponse)
def update_source(source_id: int, body: SourcePatch, svc: Services = Depends(get_services)):
    fields = body.model_dump(exclude_unset=True)
    content = {k: fields[k] for k in ("title", "comment", "content_md") if fields.get(k) is not None}
    if "state" not in fields and not content:
        raise InvalidInput("source", "nothing to update")
    state = _state(fields["state"]) if "state" in fields else None
    svc.lifecycle.update(source_id, state=state, **content)
    return {"ok": True}


# keywords
@api.get("/keywords", response_model=KeywordsResponse)
def list_keywords(svc: Services = Depends(get_services)):
    return {"keywords": [KeywordCountOut.model_validate(k) for k in svc.lifecycle.keyword_counts()]}


@api.get("/keywords/counts", response_model=KeywordCountsResponse)
def keyword_counts(keyword: str = Query(..., min_length=1), svc: Services = Depends(get_services)):
    if not keyword.strip():
        raise InvalidInput("keyword", "Missing or invalid keyword.")
    counts = svc.lifecycle.state_counts(keyword=keyword)
    return {"keyword": keyword, "counts": StateCountsOut.model_validate(counts)}


@api.post("/keywords/detect", response_model=DetectResponse)
def detect_keywords(body: DetectIn, svc: Services = Depends(get_services)):
    s = svc.suggester.suggest(body.title, body.comment)
    return {"keywords": s.keywords, "title_translation": s.title_translation}


@api.get("/keywords/expand", response_model=ExpandResponse)
def expand_keywords(query: str = Query(""), svc: Services = Depends(get_services)):
    return {"keywords": svc.suggester.expand_query(query)}


# pre-fill / operations
@api.post("/crawl", response_model=CrawlResponse)
def crawl(body: CrawlIn, svc: Services = Depends(get_services)):
    res = svc.scraper.scrape(body.url)
    return {"md_content": res.markdown, "title": res.title, "description": res.description}


@api.post("/cron", response_model=CronResponse)
def cron(svc: Services = Depends(get_services)):
    jobs = svc.scheduler.run_all()
    return {"success": all(jobs.values()), "jobs": jobs}


app.include_router(api)
