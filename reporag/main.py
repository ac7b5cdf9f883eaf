"""FastAPI application entrypoint and routes.

Exposes health, indexing and retrieval endpoints, configures CORS, and initializes the
vector store schema at startup. Pipeline errors are mapped to HTTP status codes:
missing configuration or storage faults are 503, embedding provider failures 502,
dimension mismatches and concurrent re-indexing 409, unknown repositories 404.
"""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reporag.config import settings
from reporag.errors import (
    ConfigurationError,
    DimensionMismatch,
    EmbeddingProviderError,
    IndexingInProgress,
    RagError,
    RepositoryNotFound,
    StoreUnavailable,
)
from reporag.pipeline import RagPipeline, get_pipeline
from reporag.schemas import (
    ContextResponse,
    IndexedResponse,
    IndexRequest,
    IndexResponse,
    RepositoriesResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="RepoRAG API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)

_STATUS_BY_ERROR = [
    (RepositoryNotFound, 404),
    (IndexingInProgress, 409),
    (DimensionMismatch, 409),
    (EmbeddingProviderError, 502),
    (ConfigurationError, 503),
    (StoreUnavailable, 503),
]


@app.exception_handler(RagError)
def handle_rag_error(request: Request, exc: RagError) -> JSONResponse:
    """Translate pipeline errors into JSON error responses."""
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


@app.on_event("startup")
def on_startup() -> None:
    """Initialize the vector store schema and indexes at application startup."""
    get_pipeline().initialize()


@app.get("/health")
def health():
    """Liveness check endpoint.

    Returns:
        dict: {"status": "ok"} when the service is running.
    """
    return {"status": "ok"}


@app.post("/index", response_model=IndexResponse)
def index(req: IndexRequest, pipeline: RagPipeline = Depends(get_pipeline)) -> IndexResponse:
    """Index (or re-index) a repository, replacing its previous vectors."""
    report = pipeline.index_repository_with_report(req.repository)
    return IndexResponse(**report.to_dict())


@app.get("/repositories", response_model=RepositoriesResponse)
def repositories(pipeline: RagPipeline = Depends(get_pipeline)) -> RepositoriesResponse:
    return RepositoriesResponse(repositories=pipeline.list_indexed_repositories())


@app.get("/repositories/{repository:path}/indexed", response_model=IndexedResponse)
def repository_indexed(repository: str, pipeline: RagPipeline = Depends(get_pipeline)) -> IndexedResponse:
    return IndexedResponse(repository=repository, indexed=pipeline.is_repository_indexed(repository))


@app.post("/search", response_model=SearchResponse)
def search(req: SearchRequest, pipeline: RagPipeline = Depends(get_pipeline)) -> SearchResponse:
    """Return ranked chunks scoring above the similarity floor."""
    results = pipeline.get_search_results(req.query, req.repository, req.top_k)
    hits = [
        SearchHit(
            id=r.document.id,
            repository=r.document.repository,
            path=r.document.path,
            start_line=r.document.start_line,
            end_line=r.document.end_line,
            score=r.score,
            content=r.document.content,
        )
        for r in results
    ]
    return SearchResponse(results=hits)


@app.post("/context", response_model=ContextResponse)
def context(req: SearchRequest, pipeline: RagPipeline = Depends(get_pipeline)) -> ContextResponse:
    """Return a formatted context block; an empty string means nothing relevant was found."""
    return ContextResponse(context=pipeline.retrieve_context(req.query, req.repository, req.top_k))
