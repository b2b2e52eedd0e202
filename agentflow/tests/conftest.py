"""
Shared test fixtures for the agentflow test suite.
"""

import os
import sys
import tempfile
from unittest.mock import AsyncMock

import pytest

# Ensure agentflow is importable without installation
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from agentflow.orchestrator.schemas import KnowledgeBaseEntry
from agentflow.shared.config import AnthropicConfig, AppConfig, EmbeddingBackend, EmbeddingConfig
from agentflow.shared.interfaces import IModelInvoker
from agentflow.tools.registry import create_default_registry


@pytest.fixture
def tmp_dir():
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def app_config(tmp_dir):
    return AppConfig(
        anthropic=AnthropicConfig(api_key="sk-ant-test"),
        embedding=EmbeddingConfig(backend=EmbeddingBackend.NONE),
        pipeline_config_path=os.path.join(tmp_dir, "config.json"),
    )


@pytest.fixture
def mock_llm():
    llm = AsyncMock(spec=IModelInvoker)
    llm.invoke.return_value = "model output"
    return llm


@pytest.fixture
def tool_registry():
    return create_default_registry()


@pytest.fixture
def support_entries():
    return [
        KnowledgeBaseEntry(
            id="kb-reset",
            title="Password reset",
            content="Use the forgot password link to reset your password.",
            summary="Resetting a forgotten password",
            tags=["account"],
            keywords=["login"],
            priority=2,
        ),
        KnowledgeBaseEntry(
            id="kb-billing",
            title="Billing cycle",
            content="Invoices are issued on the first day of each month.",
            tags=["billing"],
        ),
        KnowledgeBaseEntry(
            id="kb-workspace",
            title="Workspace access",
            content="Workspace owners can invite members from the settings page.",
            keywords=["workspace", "invite"],
        ),
    ]


@pytest.fixture
def support_document():
    """A configuration document with one pipeline per node type mix."""
    return {
        "pipelines": [
            {
                "name": "Customer Support Pipeline",
                "nodes": [
                    {"id": "answer", "type": "llm",
                     "config": {"prompt": "Intent: {intent}\nContext: {context}\nQ: {input}"}},
                    {"id": "detect_intent", "type": "llm",
                     "config": {"prompt": "Classify: {input}", "temperature": 0.1}},
                    {"id": "kb", "type": "retriever", "config": {"source": "support", "top_k": 2}},
                ],
                "edges": [
                    {"from": "detect_intent", "to": "kb"},
                    {"from": "kb", "to": "answer"},
                ],
            },
            {
                "name": "Parts Lookup",
                "nodes": [
                    {"id": "products", "type": "tool", "config": {"toolName": "mock_product_api"}},
                    {"id": "reply", "type": "llm", "config": {"prompt": "{context}"}},
                ],
            },
        ],
        "knowledgeBases": {
            "support": [
                {"id": "kb-reset", "title": "Password reset",
                 "content": "Use the forgot password link to reset your password.",
                 "tags": ["account"], "priority": 2},
                {"id": "kb-workspace", "title": "Workspace access",
                 "content": "Workspace owners can invite members from the settings page.",
                 "keywords": ["workspace", "invite"]},
                {"id": "kb-billing", "title": "Billing cycle",
                 "content": "Invoices are issued on the first day of each month."},
            ],
            "empty": [],
        },
    }
