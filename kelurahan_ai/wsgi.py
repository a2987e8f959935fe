"""
Kelurahan Chatbot AI 서버의 WSGI 진입점.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "kelurahan_ai.settings")

application = get_wsgi_application()
