"""
WSGI config for sheet_calc project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'sheet_calc.settings')

application = get_wsgi_application()
