from __future__ import annotations

from agentscope.agent import ReActAgent
from agentscope.formatter import OpenAIChatFormatter
from agentscope.memory import InMemoryMemory
from agentscope.message import Msg
from agentscope.model import OpenAIChatModel

from topic_monitor.classifiers.remote import (
    RemoteVerdict,
    build_batch_prompt,
    build_single_prompt,
    parse_batch,
    parse_verdict,
)
from topic_monitor.core.errors import RemoteClassifierError


class AgentScopeRemoteClassifier:
    """
    Remote topic classifier backed by an agentscope ReActAgent.

    A fresh agent (and memory) is built for every call so verdicts never leak
    context from earlier segments.
    """

    def __init__(self, *, api_key: str, model_name: str = "gpt-4o-mini") -> None:
        if not api_key:
            raise RemoteClassifierError("agentscope backend requires an OpenAI API key", transient=False)
        self._api_key = api_key
        self._model_name = model_name

    async def classify(self, text: str, topic: str, subject: str) -> RemoteVerdict:
        raw = await self._ask(build_single_prompt(text, topic, subject))
        return parse_verdict(raw)

    async def classify_batch(self, texts: list[str], topic: str, subject: str) -> list[RemoteVerdict]:
        if not texts:
            return []
        raw = await self._ask(build_batch_prompt(texts, topic, subject))
        return parse_batch(raw, len(texts))

    async def aclose(self) -> None:
        return None

    async def _ask(self, prompt: str) -> str:
        agent = self._build_agent()
        res = await agent(Msg(name="user", role="user", content=prompt))
        return res.get_text_content() or ""

    def _build_agent(self) -> ReActAgent:
        return ReActAgent(
            name="TopicClassifier",
            sys_prompt="You are a strict educational content analyzer. Reply with JSON only.",
            model=OpenAIChatModel(model_name=self._model_name, api_key=self._api_key, stream=False),
            formatter=OpenAIChatFormatter(),
            memory=InMemoryMemory(),
        )
