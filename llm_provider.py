import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import requests

log = logging.getLogger("legacybrd.llm")

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def parse_json_reply(text: str) -> Any:
    """
    Parse the JSON payload of an LLM reply, tolerating markdown fences and
    prose around the first object/array. Raises ValueError when none is found.
    """
    if not text or not text.strip():
        raise ValueError("empty LLM reply")
    fenced = _FENCE.search(text)
    body = fenced.group(1) if fenced else text
    body = body.strip()
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass
    starts = [i for i in (body.find("{"), body.find("[")) if i >= 0]
    if not starts:
        raise ValueError("no JSON found in LLM reply")
    start = min(starts)
    closer = "}" if body[start] == "{" else "]"
    end = body.rfind(closer)
    if end <= start:
        raise ValueError("unterminated JSON in LLM reply")
    return json.loads(body[start:end + 1])


class LLMProvider(ABC):
    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the raw text (usually JSON) produced for the prompt."""


class OllamaProvider(LLMProvider):
    def __init__(self, model_id="llama3:8b-instruct-q4_K_M", url="http://localhost:11434",
                 timeout: float = 120, temperature: float = 0.1, max_tokens: int = 2048):
        self.model_id, self.url = model_id, url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

    def complete(self, prompt: str) -> str:
        # Ollama 0.12.7+ serves the OpenAI-compatible API; older builds only /api/generate
        endpoints = [
            ("/v1/chat/completions", "openai"),
            ("/api/generate", "legacy"),
        ]

        last_error = None
        for endpoint, api_type in endpoints:
            ollama_url = f"{self.url}{endpoint}"
            log.debug(f"OllamaProvider.complete() trying {api_type} API: {ollama_url}")
            if api_type == "openai":
                payload = {
                    "model": self.model_id,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                    "stream": False,
                }
            else:
                payload = {
                    "model": self.model_id,
                    "prompt": prompt,
                    "stream": False,
                    "options": {"temperature": self.temperature, "num_predict": self.max_tokens},
                }

            try:
                response = requests.post(ollama_url, json=payload, timeout=self.timeout)
                response.raise_for_status()
                result_json = response.json()
            except requests.exceptions.HTTPError as e:
                if e.response is not None and e.response.status_code == 404:
                    log.debug(f"OllamaProvider.complete() {api_type} API not available (404)")
                    last_error = e
                    continue
                raise
            except (requests.RequestException, ValueError) as e:
                log.debug(f"OllamaProvider.complete() {api_type} API error: {e}")
                last_error = e
                continue

            if api_type == "openai":
                return result_json.get("choices", [{}])[0].get("message", {}).get("content", "")
            return result_json.get("response", "")

        error_msg = f"All Ollama endpoints failed. Last error: {last_error}"
        log.error(f"OllamaProvider.complete() {error_msg}")
        raise RuntimeError(error_msg)
