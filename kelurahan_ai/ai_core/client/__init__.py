from kelurahan_ai.ai_core.client.gemini_client import GeminiClient, GenerationConfig, classify_error
from kelurahan_ai.ai_core.client.gemini_response import CompletionResult

__all__ = [
    "CompletionResult",
    "GeminiClient",
    "GenerationConfig",
    "classify_error",
]
