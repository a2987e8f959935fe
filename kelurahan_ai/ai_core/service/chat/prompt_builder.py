from __future__ import annotations

OFFICE_NAME = "Kelurahan Marga Sari, Balikpapan"

PERSONA = f"""Anda adalah Asisten Virtual {OFFICE_NAME}.

ATURAN:
1. Gunakan DATA REFERENSI di bawah sebagai sumber utama.
2. Jika data mengatakan layanan bisa dilakukan online, jawab BISA.
3. Jika informasi tidak ada di data, katakan dengan jujur dan sarankan warga menghubungi kantor kelurahan.
4. Jawab dalam Bahasa Indonesia yang sopan, singkat, dan jelas."""

DECLINE_MESSAGE = (
    "Mohon maaf, saya belum menemukan informasi yang sesuai dengan pertanyaan Anda. "
    "Silakan ulangi pertanyaan dengan kata lain atau hubungi langsung kantor "
    f"{OFFICE_NAME} pada jam kerja."
)


def build_system_instruction(grounding: str = "") -> str:
    """
    @param grounding build_grounding() 결과 (없으면 빈 문자열).
    @returns 페르소나와 참고 데이터를 합친 시스템 지시문.
    """
    if not grounding:
        return PERSONA
    return f"{PERSONA}\n\n{grounding}"
