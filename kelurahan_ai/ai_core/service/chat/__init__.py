from kelurahan_ai.ai_core.service.chat.chat_service import ChatService
from kelurahan_ai.ai_core.service.chat.prompt_builder import DECLINE_MESSAGE, build_system_instruction

__all__ = [
    "ChatService",
    "DECLINE_MESSAGE",
    "build_system_instruction",
]
