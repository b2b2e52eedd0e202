"""
Pipeline engine - owns the loaded configuration and runs pipelines.

Pipelines and the knowledge index are read-only shared data. A reload builds
a complete new index first and then swaps pipelines and index in a single
assignment, so concurrent runs see either the old or the new configuration,
never a mix. Each run gets its own PipelineState and compiled graph.
"""

import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ValidationError

from agentflow.knowledge.embeddings import create_embedding_provider
from agentflow.knowledge.indexer import KnowledgeBaseIndexer
from agentflow.knowledge.retriever import KnowledgeRetriever
from agentflow.knowledge.vector_store import create_vector_store
from agentflow.orchestrator.graph import PipelineGraphBuilder
from agentflow.orchestrator.llm_client import create_model_invoker
from agentflow.orchestrator.schemas import PipelineConfigDocument, PipelineDefinition
from agentflow.shared.config import AppConfig
from agentflow.shared.errors import NotFoundError
from agentflow.shared.interfaces import (
    IEmbeddingProvider, IModelInvoker, IToolRegistry, IVectorStore,
)
from agentflow.shared.logging_config import run_id_ctx
from agentflow.shared.models import IndexedKnowledgeEntry, PipelineRunResult, PipelineState
from agentflow.tools.registry import create_default_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedConfiguration:
    """Immutable snapshot of everything a run reads."""
    pipelines: tuple = ()  # tuple[PipelineDefinition, ...]
    index: dict = field(default_factory=dict)  # source -> list[IndexedKnowledgeEntry]
    source_path: Optional[str] = None


class PipelineEngine:
    """
    Runs configured pipelines against user input.

    Collaborators (model invoker, embeddings, vector store, tools) are
    injected; the engine itself performs no network I/O.
    """

    def __init__(
        self,
        config: AppConfig,
        llm: IModelInvoker,
        tools: IToolRegistry,
        embeddings: Optional[IEmbeddingProvider] = None,
        vector_store: Optional[IVectorStore] = None,
    ):
        self._config = config
        self._llm = llm
        self._tools = tools
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._indexer = KnowledgeBaseIndexer()
        self._loaded = LoadedConfiguration()

        self._retriever = KnowledgeRetriever(
            index_provider=lambda: self._loaded.index,
            embeddings=embeddings,
            vector_store=vector_store,
        )
        self._builder = PipelineGraphBuilder(llm, self._retriever, tools)

    # ── Configuration ────────────────────────────────────

    @property
    def pipelines(self) -> tuple:
        return self._loaded.pipelines

    @property
    def knowledge_index(self) -> dict[str, list[IndexedKnowledgeEntry]]:
        return self._loaded.index

    async def load_document(self, document: dict, source_path: Optional[str] = None) -> None:
        """Validate a parsed configuration document and atomically replace the current one.

        Raises pydantic.ValidationError if the document is malformed; the
        previous configuration stays active in that case.
        """
        parsed = PipelineConfigDocument.model_validate(document or {})

        logger.info("Building knowledge base index...")
        index = await self._indexer.build_index(parsed.knowledge_bases, self._embeddings)

        if self._vector_store is not None and self._vector_store.is_enabled():
            logger.info("Knowledge base index built. Syncing sources...")
            await self._vector_store.sync_sources(index)

        self._loaded = LoadedConfiguration(
            pipelines=tuple(parsed.pipelines),
            index=index,
            source_path=source_path,
        )
        logger.info(
            f"Loaded {len(parsed.pipelines)} pipeline(s) and {len(index)} knowledge source(s)"
            + (f" from {source_path}" if source_path else "")
        )

    async def load_config_file(self, path: Optional[str] = None) -> None:
        """
        Load the configuration JSON from disk.

        A missing, empty or invalid file leaves the engine with no pipelines
        and an empty knowledge index; workflow execution is disabled until a
        valid file is loaded.
        """
        config_path = os.path.abspath(path or self._config.pipeline_config_path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            logger.warning(
                f"Pipeline config file {config_path} was not found. "
                f"Workflow execution is disabled until it is created."
            )
            self._loaded = LoadedConfiguration(source_path=config_path)
            return
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read pipeline configuration from {config_path}: {e}")
            self._loaded = LoadedConfiguration(source_path=config_path)
            return

        if not raw.strip():
            logger.warning(f"Pipeline config file at {config_path} is empty.")
            self._loaded = LoadedConfiguration(source_path=config_path)
            return

        try:
            await self.load_document(json.loads(raw), source_path=config_path)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to read pipeline configuration from {config_path}: {e}")
            self._loaded = LoadedConfiguration(source_path=config_path)

    # ── Lookup ───────────────────────────────────────────

    def list_pipelines(self) -> list[str]:
        return [pipeline.name for pipeline in self._loaded.pipelines]

    def find_pipeline(self, name: str) -> PipelineDefinition:
        """Find a pipeline by name: exact match first, then case-insensitive."""
        pipelines = self._loaded.pipelines
        if not pipelines:
            raise NotFoundError("No pipelines have been configured. Please update config.json.")

        for pipeline in pipelines:
            if pipeline.name == name:
                return pipeline
        lowered = (name or "").lower()
        for pipeline in pipelines:
            if pipeline.name.lower() == lowered:
                return pipeline

        raise NotFoundError(
            f'Pipeline "{name}" was not found inside {self._loaded.source_path or "config.json"}.'
        )

    # ── Execution ────────────────────────────────────────

    async def run_pipeline(self, name: str, user_input: str) -> PipelineRunResult:
        """Run a pipeline by name. Raises PipelineError subclasses on failure."""
        pipeline = self.find_pipeline(name)
        return await self.execute(pipeline, user_input)

    async def execute(self, pipeline: PipelineDefinition, user_input: str) -> PipelineRunResult:
        """Run one pipeline definition with a fresh PipelineState."""
        token = run_id_ctx.set(uuid.uuid4().hex[:12])
        try:
            logger.info(f'Running pipeline "{pipeline.name}"')
            compiled = self._builder.build(pipeline)
            state = PipelineState(input=user_input)
            final = await compiled.run(state)

            state = final["pipeline_state"]
            steps = final.get("steps", [])
            logger.info(f'Pipeline "{pipeline.name}" completed: {len(steps)} step(s)')
            return PipelineRunResult(
                pipeline_name=pipeline.name,
                final_output=state.last_output or "",
                intent=state.intent,
                context=state.context,
                steps=list(steps),
            )
        except Exception as e:
            logger.error(f'Pipeline "{pipeline.name}" aborted: {e}')
            raise
        finally:
            run_id_ctx.reset(token)

    async def get_status(self) -> dict:
        index = self._loaded.index
        return {
            "pipelines": self.list_pipelines(),
            "knowledge_sources": {source: len(entries) for source, entries in index.items()},
            "embeddings_enabled": self._embeddings is not None,
            "vector_store_enabled": bool(self._vector_store and self._vector_store.is_enabled()),
            "config_path": self._loaded.source_path,
        }


def create_engine(config: AppConfig) -> PipelineEngine:
    """
    Factory: wire the engine with the collaborators selected by configuration.

    Call load_config_file() on the result before running pipelines.
    """
    return PipelineEngine(
        config=config,
        llm=create_model_invoker(config),
        tools=create_default_registry(),
        embeddings=create_embedding_provider(config),
        vector_store=create_vector_store(config),
    )
