from kelurahan_ai.ai_core.service.generation.key_pool import ApiKeyPool
from kelurahan_ai.ai_core.service.generation.rate_limiter import SlidingWindowRateLimiter
from kelurahan_ai.ai_core.service.generation.remote_generator import RemoteGenerator

__all__ = [
    "ApiKeyPool",
    "RemoteGenerator",
    "SlidingWindowRateLimiter",
]
