"""Process-scoped adapter providers for FastAPI dependency injection.

Each provider builds its adapter once per process. Tests replace them through
`app.dependency_overrides`.
"""

from functools import lru_cache

from focus_reports.core.embeddings import OpenAIEmbeddingProvider
from focus_reports.core.llm import CompletionProvider, build_completion_provider
from focus_reports.core.memo_pipeline import MemoPipeline
from focus_reports.core.retrieval import ContextRetrievalEngine
from focus_reports.db.goals import SupabaseGoalReader
from focus_reports.db.reports import SupabaseReportStore
from focus_reports.graphs.generate_report_graph import ReportGenerator


@lru_cache(maxsize=1)
def get_goal_reader() -> SupabaseGoalReader:
    return SupabaseGoalReader()


@lru_cache(maxsize=1)
def get_report_store() -> SupabaseReportStore:
    return SupabaseReportStore()


@lru_cache(maxsize=1)
def get_embedding_provider() -> OpenAIEmbeddingProvider:
    return OpenAIEmbeddingProvider()


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider:
    return build_completion_provider()


@lru_cache(maxsize=1)
def get_retrieval_engine() -> ContextRetrievalEngine:
    return ContextRetrievalEngine(get_report_store(), get_embedding_provider())


@lru_cache(maxsize=1)
def get_report_generator() -> ReportGenerator:
    return ReportGenerator(
        goals=get_goal_reader(),
        store=get_report_store(),
        completion=get_completion_provider(),
        embedder=get_embedding_provider(),
        retrieval=get_retrieval_engine(),
    )


@lru_cache(maxsize=1)
def get_memo_pipeline() -> MemoPipeline:
    return MemoPipeline(
        goals=get_goal_reader(),
        store=get_report_store(),
        completion=get_completion_provider(),
        embedder=get_embedding_provider(),
        retrieval=get_retrieval_engine(),
    )
