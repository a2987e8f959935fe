import os

from kelurahan_ai.ai_core.client import GeminiClient
from kelurahan_ai.ai_core.common.errors import RemoteGenerationError
from kelurahan_ai.ai_core.service.chat.prompt_builder import build_system_instruction


def main() -> None:
    """
    Gemini API 연결 여부를 간단히 검증합니다.

    @returns {None} 표준 출력으로 결과를 표시합니다.
    """
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        raise SystemExit("GEMINI_API_KEY 환경 변수가 필요합니다.")

    model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    client = GeminiClient()
    try:
        text = client.generate(
            api_key,
            model,
            "Apa saja syarat membuat KTP?",
            system_instruction=build_system_instruction(),
        )
    except RemoteGenerationError as exc:
        raise SystemExit(f"{type(exc).__name__}: {exc}")
    print(f"[{model}] {text}")


if __name__ == "__main__":
    main()
