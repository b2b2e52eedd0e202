"""
Tests for the PipelineEngine - configuration loading, lookup, end-to-end runs
and status.
"""

import asyncio
import json
import logging
import os

import pytest
from pydantic import ValidationError

from agentflow.knowledge.embeddings import HashEmbeddingProvider
from agentflow.knowledge.vector_store import InMemoryVectorStore
from agentflow.orchestrator.engine import PipelineEngine, create_engine
from agentflow.orchestrator.llm_client import AnthropicModelInvoker
from agentflow.orchestrator.schemas import PipelineDefinition
from agentflow.shared.errors import InvalidConfigurationError, NotFoundError
from agentflow.shared.models import PipelineRunResult


# ═══════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
def engine(app_config, mock_llm, tool_registry):
    return PipelineEngine(config=app_config, llm=mock_llm, tools=tool_registry)


def _write_config(path, payload):
    with open(path, "w", encoding="utf-8") as f:
        if isinstance(payload, str):
            f.write(payload)
        else:
            json.dump(payload, f)


def _chain(name, node_ids, edges):
    return PipelineDefinition.model_validate({
        "name": name,
        "nodes": [{"id": node_id, "type": "llm", "config": {"prompt": node_id}} for node_id in node_ids],
        "edges": [{"from": a, "to": b} for a, b in edges],
    })


# ═══════════════════════════════════════════════════════════════
# Configuration loading
# ═══════════════════════════════════════════════════════════════

class TestLoadConfiguration:
    @pytest.mark.asyncio
    async def test_load_document(self, engine, support_document):
        await engine.load_document(support_document)
        assert engine.list_pipelines() == ["Customer Support Pipeline", "Parts Lookup"]
        assert [e.id for e in engine.knowledge_index["support"]] == ["kb-reset", "kb-workspace", "kb-billing"]
        assert engine.knowledge_index["empty"] == []

    @pytest.mark.asyncio
    async def test_index_entries_have_tokens(self, engine, support_document):
        await engine.load_document(support_document)
        entry = engine.knowledge_index["support"][0]
        assert {"password", "reset", "account"} <= entry.tokens
        assert entry.embedding is None

    @pytest.mark.asyncio
    async def test_load_config_file(self, engine, app_config, support_document):
        _write_config(app_config.pipeline_config_path, support_document)
        await engine.load_config_file()
        assert len(engine.pipelines) == 2
        status = await engine.get_status()
        assert status["config_path"] == os.path.abspath(app_config.pipeline_config_path)

    @pytest.mark.asyncio
    async def test_missing_file_disables_execution(self, engine, caplog):
        with caplog.at_level(logging.WARNING):
            await engine.load_config_file("/nonexistent/config.json")
        assert engine.pipelines == ()
        assert engine.knowledge_index == {}
        assert "was not found" in caplog.text
        with pytest.raises(NotFoundError, match="No pipelines have been configured"):
            engine.find_pipeline("anything")

    @pytest.mark.asyncio
    async def test_empty_file(self, engine, app_config, caplog):
        _write_config(app_config.pipeline_config_path, "   \n")
        with caplog.at_level(logging.WARNING):
            await engine.load_config_file()
        assert engine.pipelines == ()
        assert "is empty" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_json(self, engine, app_config, support_document, caplog):
        await engine.load_document(support_document)
        _write_config(app_config.pipeline_config_path, "{not json")
        await engine.load_config_file()
        assert engine.pipelines == ()
        assert "Failed to read pipeline configuration" in caplog.text

    @pytest.mark.asyncio
    async def test_directory_path(self, engine, support_document, tmp_dir, caplog):
        await engine.load_document(support_document)
        await engine.load_config_file(tmp_dir)
        assert engine.pipelines == ()
        assert engine.knowledge_index == {}
        assert "Failed to read pipeline configuration" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_utf8_file(self, engine, app_config, support_document, caplog):
        await engine.load_document(support_document)
        with open(app_config.pipeline_config_path, "wb") as f:
            f.write(b'{"pipelines": [{"name": "\xff\xfe", "nodes": []}]}')
        await engine.load_config_file()
        assert engine.pipelines == ()
        assert "Failed to read pipeline configuration" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_document_file(self, engine, app_config):
        _write_config(app_config.pipeline_config_path, {
            "pipelines": [{"name": "p", "nodes": [{"id": "a", "type": "llm"}, {"id": "a", "type": "llm"}]}],
        })
        await engine.load_config_file()
        assert engine.pipelines == ()

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_configuration(self, engine, support_document):
        await engine.load_document(support_document)
        before = engine.knowledge_index
        with pytest.raises(ValidationError):
            await engine.load_document({"pipelines": [{"name": "", "nodes": []}]})
        assert engine.list_pipelines() == ["Customer Support Pipeline", "Parts Lookup"]
        assert engine.knowledge_index is before

    @pytest.mark.asyncio
    async def test_reload_replaces_pipelines_and_index(self, engine, support_document):
        await engine.load_document(support_document)
        await engine.load_document({
            "pipelines": [{"name": "Only", "nodes": [{"id": "x", "type": "llm"}]}],
            "knowledgeBases": {"faq": [{"title": "t", "content": "c"}]},
        })
        assert engine.list_pipelines() == ["Only"]
        assert set(engine.knowledge_index) == {"faq"}


# ═══════════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════════

class TestFindPipeline:
    @pytest.mark.asyncio
    async def test_exact_and_case_insensitive(self, engine, support_document):
        await engine.load_document(support_document)
        assert engine.find_pipeline("Parts Lookup").name == "Parts Lookup"
        assert engine.find_pipeline("customer SUPPORT pipeline").name == "Customer Support Pipeline"

    @pytest.mark.asyncio
    async def test_exact_match_preferred(self, engine):
        await engine.load_document({"pipelines": [
            {"name": "report", "nodes": [{"id": "lower", "type": "llm"}]},
            {"name": "Report", "nodes": [{"id": "upper", "type": "llm"}]},
        ]})
        assert engine.find_pipeline("Report").nodes[0].id == "upper"
        assert engine.find_pipeline("REPORT").nodes[0].id == "lower"

    @pytest.mark.asyncio
    async def test_unknown_name(self, engine, support_document):
        await engine.load_document(support_document)
        with pytest.raises(NotFoundError, match='Pipeline "Billing" was not found inside config.json'):
            engine.find_pipeline("Billing")


# ═══════════════════════════════════════════════════════════════
# End-to-end runs
# ═══════════════════════════════════════════════════════════════

class TestRunPipeline:
    @pytest.mark.asyncio
    async def test_support_pipeline(self, engine, mock_llm, support_document):
        mock_llm.invoke.side_effect = ["account_help", "Click 'forgot password'."]
        await engine.load_document(support_document)

        result = await engine.run_pipeline("Customer Support Pipeline", "How do I reset my password")

        assert isinstance(result, PipelineRunResult)
        assert [s.node_id for s in result.steps] == ["detect_intent", "kb", "answer"]
        assert result.intent == "account_help"
        assert result.final_output == "Click 'forgot password'."

        kb_output = result.steps[1].output
        assert [m["id"] for m in kb_output["matches"]] == ["kb-reset"]
        assert result.context == kb_output["context"]
        assert result.context.startswith("Snippet 1 - Password reset\nSummary: n/a\n")

        answer_prompt = mock_llm.invoke.call_args_list[1].args[0]
        assert answer_prompt.startswith("Intent: account_help\nContext: Snippet 1 - Password reset")
        assert answer_prompt.endswith("Q: How do I reset my password")

    @pytest.mark.asyncio
    async def test_declared_out_of_order_runs_topologically(self, engine, mock_llm):
        mock_llm.invoke.side_effect = lambda prompt, options=None: f"out-{prompt}"
        result = await engine.execute(_chain("p", ["C", "A", "B"], [("A", "B"), ("B", "C")]), "x")
        assert [s.node_id for s in result.steps] == ["A", "B", "C"]
        assert result.final_output == "out-C"

    @pytest.mark.asyncio
    async def test_cycle_runs_in_declaration_order(self, engine, mock_llm, caplog):
        with caplog.at_level(logging.WARNING):
            result = await engine.execute(_chain("loop", ["A", "B"], [("A", "B"), ("B", "A")]), "x")
        assert [s.node_id for s in result.steps] == ["A", "B"]
        assert mock_llm.invoke.await_count == 2
        assert "cyclic" in caplog.text

    @pytest.mark.asyncio
    async def test_retriever_without_source_fails_before_model_call(self, engine, mock_llm):
        await engine.load_document({"pipelines": [{
            "name": "broken",
            "nodes": [
                {"id": "first", "type": "llm"},
                {"id": "kb", "type": "retriever", "config": {}},
            ],
        }]})
        with pytest.raises(InvalidConfigurationError, match="missing a source"):
            await engine.run_pipeline("broken", "hi")
        mock_llm.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unregistered_tool(self, engine):
        await engine.load_document({"pipelines": [{
            "name": "tools",
            "nodes": [{"id": "t", "type": "tool", "config": {"toolName": "x"}}],
        }]})
        with pytest.raises(InvalidConfigurationError, match='Unknown tool name "x"'):
            await engine.run_pipeline("tools", "hi")

    @pytest.mark.asyncio
    async def test_empty_source_raises_not_found(self, engine):
        await engine.load_document({
            "pipelines": [{
                "name": "lookup",
                "nodes": [{"id": "kb", "type": "retriever", "config": {"source": "empty"}}],
            }],
            "knowledgeBases": {"empty": []},
        })
        with pytest.raises(NotFoundError, match='Knowledge source "empty"'):
            await engine.run_pipeline("lookup", "hi")

    @pytest.mark.asyncio
    async def test_tool_pipeline(self, engine, mock_llm, support_document):
        await engine.load_document(support_document)
        result = await engine.run_pipeline("parts lookup", "Do you stock brake pads?")
        prompt = mock_llm.invoke.call_args.args[0]
        assert prompt.startswith("Tool Output (products): ")
        assert "Premium Brake Pads" in prompt
        assert result.steps[0].output["source"] == "mock_product_api"

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_share_state(self, engine, mock_llm):
        async def echo(prompt, options=None):
            await asyncio.sleep(0)
            return f"echo {prompt}"

        mock_llm.invoke.side_effect = echo
        await engine.load_document({"pipelines": [{
            "name": "echo",
            "nodes": [
                {"id": "first", "type": "llm"},
                {"id": "second", "type": "llm", "config": {"prompt": "{first}"}},
            ],
            "edges": [{"from": "first", "to": "second"}],
        }]})

        inputs = [f"input-{i}" for i in range(5)]
        results = await asyncio.gather(*(engine.run_pipeline("echo", text) for text in inputs))

        for text, result in zip(inputs, results):
            assert result.final_output == f"echo echo {text}"
            assert result.context == f"echo {text}"

    @pytest.mark.asyncio
    async def test_result_serialization(self, engine, support_document):
        await engine.load_document(support_document)
        payload = (await engine.run_pipeline("Parts Lookup", "oil")).to_dict()
        assert payload["pipelineName"] == "Parts Lookup"
        assert payload["finalOutput"] == "model output"
        assert [s["nodeId"] for s in payload["steps"]] == ["products", "reply"]
        assert isinstance(payload["timestamp"], str)


# ═══════════════════════════════════════════════════════════════
# Semantic retrieval wiring
# ═══════════════════════════════════════════════════════════════

class TestSemanticRetrieval:
    @pytest.mark.asyncio
    async def test_vector_store_synced_and_used(self, app_config, mock_llm, tool_registry, support_document):
        store = InMemoryVectorStore()
        engine = PipelineEngine(
            config=app_config, llm=mock_llm, tools=tool_registry,
            embeddings=HashEmbeddingProvider(64), vector_store=store,
        )
        await engine.load_document(support_document)
        assert store.get_row_count("support") == 3
        assert all(entry.embedding for entry in engine.knowledge_index["support"])

        mock_llm.invoke.return_value = "account"
        result = await engine.run_pipeline("Customer Support Pipeline", "reset password")
        matches = result.steps[1].output["matches"]
        assert 1 <= len(matches) <= 2
        assert all(m["score"] > 0 for m in matches)
        assert matches[0]["id"] == "kb-reset"

        status = await engine.get_status()
        assert status["embeddings_enabled"] is True
        assert status["vector_store_enabled"] is True


# ═══════════════════════════════════════════════════════════════
# Status and factory
# ═══════════════════════════════════════════════════════════════

class TestStatusAndFactory:
    @pytest.mark.asyncio
    async def test_get_status(self, engine, support_document):
        await engine.load_document(support_document, source_path="/etc/agentflow/config.json")
        status = await engine.get_status()
        assert status["pipelines"] == ["Customer Support Pipeline", "Parts Lookup"]
        assert status["knowledge_sources"] == {"support": 3, "empty": 0}
        assert status["embeddings_enabled"] is False
        assert status["vector_store_enabled"] is False
        assert status["config_path"] == "/etc/agentflow/config.json"

    @pytest.mark.asyncio
    async def test_not_found_message_names_source_path(self, engine, support_document):
        await engine.load_document(support_document, source_path="/etc/agentflow/config.json")
        with pytest.raises(NotFoundError, match="/etc/agentflow/config.json"):
            engine.find_pipeline("missing")

    def test_create_engine(self, app_config):
        engine = create_engine(app_config)
        assert isinstance(engine, PipelineEngine)
        assert isinstance(engine._llm, AnthropicModelInvoker)
        assert engine._embeddings is None
        assert engine._vector_store is None
        assert engine.pipelines == ()
