"""Service wiring for the document knowledge base.

``create_knowledge_base`` builds every service explicitly from configuration
and hands them to a ``KnowledgeBase``. When RavenDB cannot be reached the
knowledge base is created disabled: indexing reports ``success=False`` and
searches come back empty, so callers keep working without vector features.
"""

import logging

from mdindex.constants import (
    DEFAULT_SCORE_THRESHOLD,
    DEFAULT_SEARCH_LIMIT,
    DUPLICATE_THRESHOLD,
    SECONDARY_SCORE_THRESHOLD,
    SECONDARY_SEARCH_LIMIT,
    USER_CONTEXT_LIMIT,
    USER_CONTEXT_THRESHOLD,
)
from mdindex.llm import LLMSettings, get_llm_service
from mdindex.service.analysis import DocumentAnalyzer, DocumentStructure, DuplicateCheck
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.operations import create_document_store
from mdindex.service.documents import DocumentRepository, InMemoryDocumentRepository
from mdindex.service.embedding import EmbeddingProvider
from mdindex.service.events import ContentChangeNotifier, DocumentContentChanged
from mdindex.service.indexer import ChunkSearchResult, DocumentIndexer, IndexResult
from mdindex.service.research import ResearchHit, ResearchIndexer, ResearchIndexResult, ResearchSource
from mdindex.service.retrieval import ContextResult, ContextRetriever, VectorContext
from mdindex.service.summarizer import (
    DocumentOverview,
    RecursiveSummarizer,
    SummaryHit,
    SummaryInput,
    SummaryResult,
)
from mdindex.service.uploads import UploadIndexer, UploadIndexResult

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "Knowledge base is disabled"


class KnowledgeBase:
    """Facade over the indexing, retrieval, summary and analysis services.

    Args:
        gateway: Vector store gateway (None when disabled)
        embeddings: Embedding provider (None when disabled)
        llm: Service used for summaries (None when disabled)
        documents: Repository of user documents
        notifier: Hub for content-change events
    """

    def __init__(
        self,
        gateway: VectorStoreGateway | None = None,
        embeddings: EmbeddingProvider | None = None,
        llm=None,
        documents: DocumentRepository | None = None,
        notifier: ContentChangeNotifier | None = None,
    ) -> None:
        self.gateway = gateway
        self.embeddings = embeddings
        self.documents = documents or InMemoryDocumentRepository()
        self.notifier = notifier or ContentChangeNotifier()
        self.enabled = gateway is not None and embeddings is not None

        if self.enabled:
            self.indexer = DocumentIndexer(embeddings, gateway)
            self.retriever = ContextRetriever(embeddings, gateway, self.documents)
            self.analyzer = DocumentAnalyzer(self.indexer, gateway)
            self.research = ResearchIndexer(embeddings, gateway)
            self.uploads = UploadIndexer(embeddings, gateway)
            self.summarizer = RecursiveSummarizer(llm, embeddings, gateway) if llm is not None else None
        else:
            self.indexer = None
            self.retriever = None
            self.analyzer = None
            self.research = None
            self.uploads = None
            self.summarizer = None

    @classmethod
    def disabled(
        cls,
        documents: DocumentRepository | None = None,
        notifier: ContentChangeNotifier | None = None,
    ) -> "KnowledgeBase":
        return cls(documents=documents, notifier=notifier)

    def close(self) -> None:
        if self.gateway is not None:
            self.gateway.close()

    # Document indexing

    async def index_document(
        self, document_id: str, title: str, content: str, version: int
    ) -> IndexResult:
        if not self.enabled:
            return IndexResult(success=False, chunks_indexed=0, error=DISABLED_MESSAGE)
        return await self.indexer.index_document(document_id, title, content, version)

    def delete_document(self, document_id: str) -> int:
        if not self.enabled:
            return 0
        return self.indexer.delete_document(document_id)

    async def search_document_chunks(
        self,
        query: str,
        document_id: str | None = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        chapter: str | None = None,
        section: str | None = None,
        content_type: str | None = None,
    ) -> list[ChunkSearchResult]:
        if not self.enabled:
            return []
        return await self.indexer.search_document_chunks(
            query, document_id, limit, score_threshold, chapter, section, content_type
        )

    def notify_content_changed(
        self, document_id: str, title: str, content: str, version: int
    ) -> DocumentContentChanged:
        """Publish a content change for the background indexing scheduler."""
        event = DocumentContentChanged(
            document_id=document_id, title=title, content=content, version=version
        )
        self.notifier.publish(event)
        return event

    # Retrieval

    async def search_user_context(
        self,
        query: str,
        user_id: str,
        current_document_id: str | None = None,
        *,
        include_documents: bool = True,
        include_uploads: bool = True,
        limit: int = USER_CONTEXT_LIMIT,
        score_threshold: float = USER_CONTEXT_THRESHOLD,
    ) -> list[ContextResult]:
        if not self.enabled:
            return []
        return await self.retriever.search_user_context(
            query,
            user_id,
            current_document_id,
            include_documents=include_documents,
            include_uploads=include_uploads,
            limit=limit,
            score_threshold=score_threshold,
        )

    async def build_vector_context(
        self,
        user_id: str,
        query: str,
        current_document_id: str | None = None,
        max_chunks: int = 10,
    ) -> VectorContext | None:
        if not self.enabled:
            return None
        return await self.retriever.build_vector_context(user_id, query, current_document_id, max_chunks)

    # Analysis

    async def check_duplicate_content(
        self, document_id: str, content: str, threshold: float = DUPLICATE_THRESHOLD
    ) -> DuplicateCheck:
        if not self.enabled:
            return DuplicateCheck(is_duplicate=False)
        return await self.analyzer.check_duplicate_content(document_id, content, threshold)

    def get_document_structure(self, document_id: str) -> DocumentStructure:
        if not self.enabled:
            return DocumentStructure(chapters=[], total_chunks=0)
        return self.analyzer.get_document_structure(document_id)

    # Summaries

    async def create_recursive_summaries(
        self, document_id: str, chunks: list[SummaryInput], batch_size: int | None = None
    ) -> SummaryResult:
        if self.summarizer is None:
            return SummaryResult(success=False, total_summaries=0)
        return await self.summarizer.create_recursive_summaries(document_id, chunks, batch_size)

    async def summarize_document(
        self, document_id: str, batch_size: int | None = None
    ) -> SummaryResult:
        if self.summarizer is None:
            return SummaryResult(success=False, total_summaries=0)
        return await self.summarizer.summarize_document(document_id, batch_size)

    def get_document_overview(self, document_id: str) -> DocumentOverview | None:
        if self.summarizer is None:
            return None
        return self.summarizer.get_document_overview(document_id)

    async def search_summaries(
        self,
        query: str,
        document_id: str,
        level: int | None = None,
        limit: int = SECONDARY_SEARCH_LIMIT,
        score_threshold: float = SECONDARY_SCORE_THRESHOLD,
    ) -> list[SummaryHit]:
        if self.summarizer is None:
            return []
        return await self.summarizer.search_summaries(query, document_id, level, limit, score_threshold)

    # Research sources and uploads

    async def index_research_source(
        self, document_id: str, source: ResearchSource
    ) -> ResearchIndexResult:
        if not self.enabled:
            return ResearchIndexResult(
                success=False, chunks_indexed=0, source_id="", error=DISABLED_MESSAGE
            )
        return await self.research.index_research_source(document_id, source)

    async def search_research_sources(
        self,
        query: str,
        document_id: str | None = None,
        source_type: str | None = None,
        relevance: str | None = None,
        limit: int = SECONDARY_SEARCH_LIMIT,
        score_threshold: float = SECONDARY_SCORE_THRESHOLD,
    ) -> list[ResearchHit]:
        if not self.enabled:
            return []
        return await self.research.search_research_sources(
            query, document_id, source_type, relevance, limit, score_threshold
        )

    def delete_research_source(self, source_id: str) -> int:
        if not self.enabled:
            return 0
        return self.research.delete_research_source(source_id)

    async def index_uploaded_file(
        self,
        document_id: str,
        data: bytes,
        file_name: str,
        user_id: str | None = None,
    ) -> UploadIndexResult:
        if not self.enabled:
            return UploadIndexResult(success=False, chunks_indexed=0, file_id="")
        return await self.uploads.index_uploaded_file(document_id, data, file_name, user_id)


def create_knowledge_base(
    llm_config: dict | None = None,
    url: str | None = None,
    database: str | None = None,
    documents: DocumentRepository | None = None,
) -> KnowledgeBase:
    """Build a knowledge base from configuration.

    Args:
        llm_config: Passed to ``LLMSettings.from_config`` (environment when None)
        url: RavenDB server URL (defaults to RavenDBConfig)
        database: Database name (defaults to RavenDBConfig)
        documents: Repository of user documents

    Returns:
        KnowledgeBase: Enabled when RavenDB answered a health check, disabled otherwise
    """
    settings = LLMSettings.from_config(llm_config)
    llm = get_llm_service(settings)
    embeddings = EmbeddingProvider(
        llm,
        settings.embedding_model,
        enabled=settings.embeddings_enabled,
        dimensions=settings.dimensions,
        timeout=settings.embedding_timeout,
    )

    try:
        store = create_document_store(url, database)
        gateway = VectorStoreGateway(store, dimensions=settings.dimensions, url=url, database=database)
        healthy = gateway.health_check()
    except Exception as e:
        logger.warning(f"⚠️ RavenDB unavailable, vector features disabled: {e}")
        return KnowledgeBase.disabled(documents)

    if not healthy:
        logger.warning("⚠️ RavenDB health check failed, vector features disabled")
        store.close()
        return KnowledgeBase.disabled(documents)

    logger.info("✅ Knowledge base ready")
    return KnowledgeBase(gateway, embeddings, llm, documents)
