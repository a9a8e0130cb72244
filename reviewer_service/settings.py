"""
Настройки Django для сервиса назначения ревьюверов.

Значения берутся из окружения; для локального запуска их можно положить в .env
в корне проекта (см. .env.example).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

from .logging import build_logging_config, configure_structlog

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'dev-only-insecure-key-change-me')

DEBUG = env_bool('DJANGO_DEBUG')

ALLOWED_HOSTS = [host.strip() for host in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if host.strip()]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'api.middleware.RequestContextMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'reviewer_service.urls'

WSGI_APPLICATION = 'reviewer_service.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
        # Транзакциями управляют сервисы
        'ATOMIC_REQUESTS': False,
        'OPTIONS': {
            # SQLite не поддерживает select_for_update: блокировку на запись
            # берем сразу в BEGIN, конкурирующие транзакции ждут timeout секунд
            'transaction_mode': 'IMMEDIATE',
            'timeout': int(os.environ.get('DATABASE_TIMEOUT', '20')),
        },
        # Тестовая база в файле: несколько потоков работают с ней через отдельные соединения
        'TEST': {
            'NAME': os.environ.get('DATABASE_TEST_PATH', str(BASE_DIR / 'test_db.sqlite3')),
        },
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

# URL вида /team/add без завершающего слэша
APPEND_SLASH = False

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': None,
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}

# Seed генератора для выбора ревьюверов; пусто - энтропия системы
_selection_seed = os.environ.get('REVIEWER_SELECTION_SEED')
REVIEWER_SELECTION_SEED = int(_selection_seed) if _selection_seed else None

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = os.environ.get('LOG_FORMAT', 'console' if DEBUG else 'json')

LOGGING = build_logging_config(LOG_LEVEL, LOG_FORMAT)
configure_structlog()
