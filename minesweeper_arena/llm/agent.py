"""
LLM Agent - plays through LangChain tool calling.

The chat model is bound to the makeMove/makeMoves tool schemas and must
answer with a tool call. Provider errors propagate; the turn loop counts
them as failed turns.
"""

import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from core.agent import Agent, AgentType
from minesweeper_arena.llm.providers import get_llm_for_model, get_provider, resolve_model_alias


def _content_text(content: Any) -> str:
    # Anthropic returns a list of content blocks
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict):
                if block.get("type") == "text":
                    parts.append(block.get("text", ""))
            else:
                parts.append(str(block))
        return "".join(parts)
    return content or ""


class LLMAgent(Agent):
    """
    Agent backed by a LangChain chat model.

    Example:
        agent = LLMAgent("claude-sonnet-4.5", llm_config={"temperature": 0.2})
        response = await agent.decide(prompt, tools, system_prompt=system)
    """

    def __init__(
        self,
        agent_id: str,
        model: Optional[str] = None,
        llm_config: Optional[Dict[str, Any]] = None,
        llm: Any = None,
    ):
        """
        Args:
            agent_id: Arena agent id, usually the model alias
            model: Model alias or provider id; defaults to agent_id
            llm_config: temperature, max_tokens, timeout
            llm: Prebuilt chat model (skips the provider factory)
        """
        super().__init__(agent_id, AgentType.LLM, config=llm_config)
        self.model = resolve_model_alias(model or agent_id)
        self.provider = get_provider(self.model)
        self._llm = llm

    @property
    def llm(self):
        if self._llm is None:
            self._llm = get_llm_for_model(self.model, self.config)
        return self._llm

    async def decide(
        self,
        prompt: str,
        tools: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(HumanMessage(content=prompt))

        start_time = time.time()
        response = await self.llm.bind_tools(tools, tool_choice="any").ainvoke(messages)
        latency_ms = int((time.time() - start_time) * 1000)

        text = _content_text(response.content)
        usage = getattr(response, "usage_metadata", None) or {}

        return {
            "tool_calls": [
                {"name": call["name"], "args": call.get("args") or {}}
                for call in (response.tool_calls or [])
            ],
            "reasoning": text,
            "raw_output": text,
            "metadata": {
                "model": self.model,
                "provider": self.provider,
                "latency_ms": latency_ms,
                "prompt_tokens": usage.get("input_tokens", 0),
                "completion_tokens": usage.get("output_tokens", 0),
                "total_tokens": usage.get("total_tokens", 0),
            },
        }

    def get_metadata(self) -> Dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "agent_type": self.agent_type.value,
            "model": self.model,
            "provider": self.provider,
            "temperature": self.config.get("temperature"),
        }
