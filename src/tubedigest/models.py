"""Static catalogue of OpenRouter models with context windows and pricing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .exceptions import UnknownModelError
from .state import TokenUsage


@dataclass(frozen=True)
class AIModel:
    name: str
    id: str
    provider: str
    context_length: int
    input_price: float  # USD per million tokens
    output_price: float  # USD per million tokens

    def estimate_cost(self, usage: TokenUsage) -> Dict[str, float]:
        input_cost = (usage.prompt_tokens / 1_000_000) * self.input_price
        output_cost = (usage.completion_tokens / 1_000_000) * self.output_price
        return {
            "input_cost": input_cost,
            "output_cost": output_cost,
            "total_cost": input_cost + output_cost,
        }


MODELS: List[AIModel] = [
    AIModel("Gemini Flash 2.0 (free)", "google/gemini-2.0-flash-exp:free", "Google", 1_050_000, 0.0, 0.0),
    AIModel("Gemini 2.0 Flash Thinking", "google/gemini-2.0-flash-thinking-exp:free", "Google", 40_000, 0.0, 0.0),
    AIModel("Llama 3.3 70B", "meta-llama/llama-3.3-70b-instruct", "Novita AI (Meta)", 131_000, 0.39, 0.39),
    AIModel("META 3.1 405B (free)", "meta-llama/llama-3.1-405b-instruct:free", "Meta", 8_192, 0.0, 0.0),
    AIModel("Claude 3.5 Sonnet", "anthropic/claude-3.5-sonnet", "Anthropic", 200_000, 3.0, 15.0),
    AIModel("DeepSeek V2.5", "deepseek/deepseek-chat", "DeepSeek AI", 65_536, 0.15, 0.30),
    AIModel("Gemini Experimental 1114", "google/gemini-exp-1114:free", "Google", 8_192, 0.0, 0.0),
    AIModel("GPT-4o", "openai/chatgpt-4o-latest", "OpenAI", 128_000, 2.5, 10.0),
    AIModel("META 3.1 70B (Free)", "meta-llama/llama-3.1-70b-instruct:free", "Meta", 8_192, 0.0, 0.0),
    AIModel("Claude 3.5 Haiku", "anthropic/claude-3.5-haiku", "Anthropic", 200_000, 1.0, 5.0),
    AIModel("Qwen 32B", "qwen/qwq-32b-preview", "Qwen", 33_000, 1.2, 1.2),
    AIModel("DeepSeek R1", "deepseek/deepseek-r1", "DeepSeek AI", 128_000, 0.20, 0.60),
    AIModel("Claude 3.7 Sonnet", "anthropic/claude-3.7-sonnet", "Anthropic", 200_000, 3.0, 15.0),
    AIModel("Llama 3.3 70B Instruct (free)", "meta-llama/llama-3.3-70b-instruct:free", "Meta", 131_000, 0.0, 0.0),
    AIModel("Gemini Pro 2.0 Experimental (free)", "google/gemini-2.0-pro-exp-02-05:free", "Google", 2_000_000, 0.0, 0.0),
    AIModel("DeepSeek R1 (free)", "deepseek/deepseek-r1:free", "DeepSeek AI", 164_000, 0.0, 0.0),
    AIModel("DeepSeek R1 Distill Llama 70B", "deepseek/deepseek-r1-distill-llama-70b", "DeepSeek AI", 131_000, 0.25, 0.75),
    AIModel("Gemini Flash 2.0 (pay)", "google/gemini-2.0-flash-001", "Google", 2_000_000, 0.35, 1.05),
    AIModel("Claude 3.7 Sonnet (thinking)", "anthropic/claude-3.7-sonnet:thinking", "Anthropic", 200_000, 3.0, 15.0),
    AIModel("Gemini 2.0 Flash Thinking Experimental (free)", "google/gemini-2.0-flash-thinking-exp-1219:free", "Google", 40_000, 0.0, 0.0),
    AIModel("Mistral Small 3", "mistralai/mistral-small-24b-instruct-2501", "Mistral AI", 33_000, 0.9, 0.9),
    AIModel("DeepSeek V3 0324 (free)", "deepseek/deepseek-chat-v3-0324:free", "DeepSeek AI", 128_000, 0.0, 0.0),
    AIModel("Gemini Pro 2.5 Experimental (free)", "google/gemini-2.5-pro-exp-03-25:free", "Google", 1_000_000, 0.0, 0.0),
    AIModel("GPT-4o-mini", "openai/gpt-4o-mini", "OpenAI", 128_000, 0.15, 0.6),
    AIModel("Gemini Flash 1.5", "google/gemini-flash-1.5", "Google", 1_000_000, 0.1, 0.3),
    AIModel("Llama 3.1 8B Instruct", "meta-llama/llama-3.1-8b-instruct", "Meta", 131_000, 0.2, 0.2),
]

DEFAULT_MODEL_ID = "openai/gpt-4o-mini"


class ModelCatalogue:
    """Lookup table from model id to metadata."""

    def __init__(self, models: List[AIModel] = MODELS):
        self._by_id = {model.id: model for model in models}

    def lookup(self, model_id: str) -> AIModel:
        try:
            return self._by_id[model_id]
        except KeyError:
            raise UnknownModelError(f"Model information not found for {model_id}") from None

    def all(self) -> List[AIModel]:
        return list(self._by_id.values())
