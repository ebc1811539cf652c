"""Provider request bodies assembled from prompts, defaults and overlays."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, MutableMapping, Optional, Sequence

from codeintel.config.settings import RequestSettings
from codeintel.models.prompts import ApiType, PromptType

from .overlays import ConfigResolver
from .renderer import render

OLLAMA_DEFAULT_CONTEXT_SIZE = 8192
DEFAULT_COMPLETION_TEMPERATURE = 0.1

Message = Mapping[str, Any]

_OPENAI_STYLE = {ApiType.OPENAI, ApiType.XAI}


def set_if_absent(target: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Set ``target[key]`` unless the key already exists."""

    if key not in target:
        target[key] = value


def get_or_add_object(target: MutableMapping[str, Any], key: str) -> dict[str, Any]:
    """Return the object stored under ``key``, replacing non-objects with ``{}``."""

    value = target.get(key)
    if not isinstance(value, dict):
        value = {}
        target[key] = value
    return value


@dataclass
class CompletionPrompt:
    """A completion template plus the values it is rendered with."""

    temperature: float
    prompt_string: str
    prompt_args: Mapping[str, Any] = field(default_factory=dict)
    _compiled: Optional[str] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def prerendered(
        cls,
        temperature: float,
        prompt_string: str,
        text: str,
        prompt_args: Optional[Mapping[str, Any]] = None,
    ) -> "CompletionPrompt":
        """Wrap text that was already rendered from ``prompt_string``."""

        prompt = cls(temperature, prompt_string, dict(prompt_args or {}))
        prompt._compiled = text
        return prompt

    def compile(self) -> str:
        """Render the template once; later calls return the cached text."""

        if self._compiled is None:
            self._compiled = render((self.prompt_string or "").strip(), self.prompt_args)
        return self._compiled


class RequestBodyBuilder:
    """Build JSON-ready request bodies for the supported provider kinds.

    Bodies start from the connection's overlay for the request type. Model,
    content and streaming flags always come from the caller, while sampling
    and token limits are only filled in when the overlay leaves them out.
    """

    def __init__(
        self, config: ConfigResolver, requests: Optional[RequestSettings] = None
    ) -> None:
        self._config = config
        self._requests = requests or RequestSettings()

    def completion_body(
        self,
        api_type: ApiType,
        connection_name: Optional[str],
        model: str,
        prompt: CompletionPrompt,
    ) -> dict[str, Any]:
        body = self._base(connection_name, PromptType.INSTRUCT)
        max_tokens = self._requests.completion_max_response_tokens
        body["model"] = model

        if api_type in _OPENAI_STYLE:
            body["messages"] = [{"role": "user", "content": prompt.compile()}]
            set_if_absent(body, "temperature", prompt.temperature)
            set_if_absent(body, "max_completion_tokens", max_tokens)
        elif api_type is ApiType.OLLAMA:
            body["prompt"] = prompt.compile()
            options = get_or_add_object(body, "options")
            set_if_absent(options, "temperature", prompt.temperature)
            set_if_absent(options, "num_ctx", OLLAMA_DEFAULT_CONTEXT_SIZE)
            set_if_absent(options, "num_predict", max_tokens)
        elif api_type is ApiType.ANTHROPIC:
            body["messages"] = [{"role": "user", "content": prompt.compile()}]
            set_if_absent(body, "temperature", prompt.temperature)
            set_if_absent(body, "max_tokens", max_tokens)
        else:
            raise ValueError(f"Unsupported API type for completions: {api_type}")

        body["stream"] = False
        return body

    def chat_body(
        self,
        api_type: ApiType,
        connection_name: Optional[str],
        model: str,
        messages: Iterable[Message],
        *,
        system_prompt: Optional[str] = None,
        stream: bool = True,
    ) -> dict[str, Any]:
        body = self._base(connection_name, PromptType.CHAT)
        max_tokens = self._requests.chat_max_response_tokens
        conversation = [dict(message) for message in messages]
        body["model"] = model

        if api_type in _OPENAI_STYLE:
            body["messages"] = _with_system(conversation, system_prompt)
            set_if_absent(body, "max_completion_tokens", max_tokens)
        elif api_type is ApiType.OLLAMA:
            body["messages"] = _with_system(conversation, system_prompt)
            options = get_or_add_object(body, "options")
            set_if_absent(options, "num_ctx", OLLAMA_DEFAULT_CONTEXT_SIZE)
            set_if_absent(options, "num_predict", max_tokens)
        elif api_type is ApiType.ANTHROPIC:
            body["messages"] = conversation
            if system_prompt:
                body["system"] = system_prompt
            set_if_absent(body, "max_tokens", max_tokens)
        else:
            raise ValueError(f"Unsupported API type for chat: {api_type}")

        body["stream"] = stream
        return body

    def _base(
        self, connection_name: Optional[str], prompt_type: PromptType
    ) -> dict[str, Any]:
        # Copy: merge_fail_open may hand back its input.
        return dict(self._config.merge_fail_open({}, connection_name, prompt_type))


def _with_system(
    conversation: Sequence[dict[str, Any]], system_prompt: Optional[str]
) -> list[dict[str, Any]]:
    if not system_prompt:
        return list(conversation)
    return [{"role": "system", "content": system_prompt}, *conversation]


__all__ = [
    "CompletionPrompt",
    "DEFAULT_COMPLETION_TEMPERATURE",
    "OLLAMA_DEFAULT_CONTEXT_SIZE",
    "RequestBodyBuilder",
    "get_or_add_object",
    "set_if_absent",
]
