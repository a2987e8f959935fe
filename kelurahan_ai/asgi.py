"""
Kelurahan Chatbot AI 서버의 ASGI 진입점.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "kelurahan_ai.settings")

application = get_asgi_application()
