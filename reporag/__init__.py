"""Repository retrieval-augmented-generation package: indexing, storage and search of
source code chunks.

Submodules overview:
- main: FastAPI application bootstrap and routes.
- pipeline: Service facade (index a repository, retrieve context, search).
- config: Application settings and environment variable loading.
- errors: Error taxonomy.
- db: Database handle and session management.
- models: ORM models.
- schemas: Pydantic data and API models.
- chunking: Structural and fixed-size chunking of source files.
- embedding: Batched OpenAI embeddings.
- vector_store: Persistent vector storage.
- retrieval: Cosine-similarity search and context formatting.
- filters: File selection and content heuristics.
- sources: Repository browsing collaborators.
- indexing: End-to-end repository indexer.
- ingestion: Command-line indexing jobs.
- obs: Observability utilities (tracing spans).
"""
