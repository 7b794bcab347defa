"""
Django settings for sheet_calc project.
"""

from pathlib import Path
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-your-secret-key-here-change-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.environ.get('DEBUG', 'False').lower() in ('true', '1', 'yes')

# Allowed hosts
ALLOWED_HOSTS = ['*']

# CSRF trusted origins
CSRF_TRUSTED_ORIGINS = [
    'https://*.railway.app',
    'https://*.up.railway.app',
    'http://localhost:8000',
    'http://127.0.0.1:8000',
]

# Add Railway domain dynamically
RAILWAY_PUBLIC_DOMAIN = os.environ.get('RAILWAY_PUBLIC_DOMAIN')
if RAILWAY_PUBLIC_DOMAIN:
    CSRF_TRUSTED_ORIGINS.append(f'https://{RAILWAY_PUBLIC_DOMAIN}')

# Application definition
INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'corsheaders',
    'calc',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

# CORS Configuration
CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_CREDENTIALS = True

ROOT_URLCONF = 'sheet_calc.urls'

WSGI_APPLICATION = 'sheet_calc.wsgi.application'

# The engine keeps no state; cells arrive with each request.
DATABASES = {}

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Whitenoise - use simple storage to avoid manifest issues
STORAGES = {
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedStaticFilesStorage',
    },
}

# Request body limit for posted cell stores
DATA_UPLOAD_MAX_MEMORY_SIZE = 10485760  # 10MB

# Formula engine
FORMULA_DATE_FORMAT = os.environ.get('FORMULA_DATE_FORMAT', '%m/%d/%Y')
FORMULA_DATETIME_FORMAT = os.environ.get('FORMULA_DATETIME_FORMAT', '%m/%d/%Y, %I:%M:%S %p')
FORMULA_PREVIEW_ROWS = int(os.environ.get('FORMULA_PREVIEW_ROWS', '20'))
FORMULA_LOG_LEVEL = os.environ.get('FORMULA_LOG_LEVEL', 'WARNING').upper()

# Logging
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'loggers': {
        'calc': {
            'handlers': ['console'],
            'level': FORMULA_LOG_LEVEL,
        },
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
        },
    },
}
