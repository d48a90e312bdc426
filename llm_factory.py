import os, yaml
from llm_provider import LLMProvider, OllamaProvider
from settings import settings

def load_llm_config(config_path: str = settings.LLM_CONFIG_PATH) -> dict:
    cfg = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    return cfg

def load_provider(config_path: str = settings.LLM_CONFIG_PATH) -> LLMProvider:
    cfg = load_llm_config(config_path)

    kind = os.getenv("LLM_PROVIDER", cfg.get("provider", settings.LLM_PROVIDER)).lower()
    if kind == "ollama":
        return OllamaProvider(
            model_id=cfg.get("model_id", "llama3:8b-instruct-q4_K_M"),
            url=cfg.get("model_url", "http://localhost:11434"),
            timeout=cfg.get("timeout", settings.LLM_TIMEOUT_SECONDS),
            temperature=cfg.get("temperature", 0.1),
            max_tokens=cfg.get("max_tokens", 2048),
        )
    raise ValueError(f"Unknown provider: {kind}")
