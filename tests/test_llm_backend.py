# tests for llm_stack.backend with the llama.cpp engine stubbed out
# tests/test_llm_backend.py

from typing import Any, Dict, List

import pytest

try:
    import llama_cpp  # type: ignore  # noqa: F401
except ImportError:
    pytest.skip("llama_cpp not installed; skipping LLM backend tests in CI", allow_module_level=True)

import llm_stack.backend as backend_mod
from llm_stack.config import ModelConfig
from spec.errors import FatalConfigurationError


class StubLlama:
    """Stands in for llama_cpp.Llama; records constructor and chat calls."""

    instances: List["StubLlama"] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.requests: List[Dict[str, Any]] = []
        StubLlama.instances.append(self)

    def create_chat_completion(self, **kwargs: Any) -> Dict[str, Any]:
        self.requests.append(kwargs)
        return {"choices": [{"message": {"content": '  {"plan": ["wait 1"]}\n'}}]}


@pytest.fixture
def model_file(tmp_path, monkeypatch):
    StubLlama.instances = []
    monkeypatch.setattr(backend_mod, "Llama", StubLlama)
    path = tmp_path / "planner.gguf"
    path.write_bytes(b"GGUF")
    return path


def test_missing_model_file_is_fatal(tmp_path):
    with pytest.raises(FatalConfigurationError, match="Model file not found"):
        backend_mod.LlamaCppBackend(ModelConfig(model_path=str(tmp_path / "absent.gguf")))


def test_engine_settings(model_file):
    backend_mod.LlamaCppBackend(ModelConfig(model_path=str(model_file), n_ctx=2048, n_gpu_layers=0))

    kwargs = StubLlama.instances[0].kwargs
    assert kwargs["model_path"] == str(model_file)
    assert kwargs["n_ctx"] == 2048
    assert kwargs["n_gpu_layers"] == 0
    assert kwargs["n_threads"] >= 1


def test_generate_builds_chat_messages(model_file):
    backend = backend_mod.LlamaCppBackend(ModelConfig(model_path=str(model_file)))

    text = backend.generate(
        "Current Situation: ...",
        max_tokens=128,
        temperature=0.3,
        system_prompt="You are a Minecraft bot.",
        history=[("user", "earlier"), ("assistant", '{"plan": []}')],
    )

    assert text == '{"plan": ["wait 1"]}'
    request = StubLlama.instances[0].requests[0]
    assert [m["role"] for m in request["messages"]] == ["system", "user", "assistant", "user"]
    assert request["messages"][-1]["content"] == "Current Situation: ..."
    assert request["max_tokens"] == 128
    assert request["stop"] == []
