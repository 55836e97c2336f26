# src/llm_stack/backend.py
"""
Reasoning-service backend for local LLM engines.
Currently backed by llama_cpp for GGUF models, using chat completions so
the model's own chat template applies.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from llama_cpp import Llama

from spec.errors import FatalConfigurationError

from .config import ModelConfig


class LlamaCppBackend:
    """
    ReasoningService implementation using llama.cpp local inference.

    Config in, text out; timeouts and retries belong to the caller.
    """

    def __init__(self, cfg: ModelConfig) -> None:
        path = Path(cfg.model_path)
        if not path.exists():
            raise FatalConfigurationError(f"Model file not found: {path}")

        # Sensible default: use all but 1 CPU core if not specified
        default_threads = max(1, (os.cpu_count() or 1) - 1)

        # If n_gpu_layers is not set, offload all layers and let llama.cpp
        # place as many as VRAM allows.
        self._llm = Llama(
            model_path=str(path),
            n_ctx=cfg.n_ctx,
            n_gpu_layers=9999 if cfg.n_gpu_layers is None else cfg.n_gpu_layers,
            n_threads=cfg.n_threads or default_threads,
            n_batch=cfg.n_batch or 512,
            verbose=False,
        )

    def generate(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        stop: Optional[List[str]] = None,
        system_prompt: Optional[str] = None,
        history: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> str:
        """
        Generate text using chat-completion style calls.

        We map:
        - system_prompt -> system message (if provided)
        - history       -> prior user / assistant messages
        - prompt        -> user message
        and return the assistant's message content as a plain string.
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for role, content in history or ():
            messages.append({"role": role, "content": content})
        messages.append({"role": "user", "content": prompt})

        out = self._llm.create_chat_completion(
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            stop=stop or [],
            response_format={"type": "json_object"},
        )

        # Standard OpenAI-style chat completion shape:
        # choices[0]["message"]["content"] is the assistant text.
        text = out["choices"][0]["message"]["content"] or ""
        return text.strip()
