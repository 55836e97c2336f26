# src/llm_stack/testing.py
"""
Test doubles for the reasoning service.

FakeBackend replays canned responses in order (the last one repeats) and
records every call, so tests can assert on the prompt the planner built.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union


@dataclass
class BackendCall:
    prompt: str
    system_prompt: Optional[str]
    history: List[Tuple[str, str]]
    max_tokens: int
    temperature: float


class FakeBackend:
    def __init__(
        self,
        responses: Sequence[Union[str, Exception]] = ('{"goal": "idle", "reasoning": "", "plan": ["wait 1000"]}',),
        *,
        delay_s: float = 0.0,
    ) -> None:
        self._responses = list(responses)
        self._delay_s = delay_s
        self.calls: List[BackendCall] = []

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
        self.calls.append(BackendCall(prompt, system_prompt, list(history or ()), max_tokens, temperature))
        if self._delay_s:
            time.sleep(self._delay_s)

        index = min(len(self.calls) - 1, len(self._responses) - 1)
        response = self._responses[index]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last_prompt(self) -> Optional[str]:
        return self.calls[-1].prompt if self.calls else None
