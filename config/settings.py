"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Django settings for CBMS project. Uses django-environ
             to load configuration from .env file.
-------------------------------------------------------------------------
"""
import environ
from pathlib import Path

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize django-environ
env = environ.Env(
    DEBUG=(bool, False),
    BUDGET_OVERSPEND_POLICY=(str, 'disallow'),
    CARRYFORWARD_STRATEGY=(str, 'allocated_minus_spent'),
    ENFORCE_SINGLE_ACTIVE_YEAR=(bool, True),
    BLOCK_DECISIONS_WHEN_LOCKED=(bool, False),
    VICE_PRINCIPAL_APPROVAL_LIMIT=(int, 50000),
    BUDGET_ALERT_THRESHOLD=(int, 90),
)

# Read .env file from config directory
ENV_FILE = BASE_DIR / 'config' / '.env'
if ENV_FILE.exists():
    environ.Env.read_env(ENV_FILE)


# Quick-start development settings
# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY', default='cbms-insecure-development-key-change-me')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env('DEBUG')

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1', 'testserver'])

CSRF_TRUSTED_ORIGINS = env.list('CSRF_TRUSTED_ORIGINS', default=['http://127.0.0.1'])


# Application definition

INSTALLED_APPS = [
    # Django Built-in Apps
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # CBMS Custom Apps
    'apps.core',
    'apps.users',
    'apps.budgeting',
    'apps.expenditure',
    'apps.reporting',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# Database
# PostgreSQL in production via DATABASE_URL, SQLite for development and tests.

DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

# Database Connection Pooling (10 minutes)
DATABASES['default']['CONN_MAX_AGE'] = env.int('CONN_MAX_AGE', default=600)


# Custom User Model
AUTH_USER_MODEL = 'users.CustomUser'


# Internationalization

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'Asia/Karachi'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)

STATIC_URL = env('STATIC_URL', default='static/')
STATIC_ROOT = BASE_DIR / 'staticfiles'

LOGIN_URL = '/admin/login/'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Security Settings
# -------------------------------------------------------------------------
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'

if not DEBUG:
    SESSION_COOKIE_SECURE = env.bool('SESSION_COOKIE_SECURE', default=True)
    CSRF_COOKIE_SECURE = env.bool('CSRF_COOKIE_SECURE', default=True)
    SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', default=False)
else:
    SESSION_COOKIE_SECURE = False
    CSRF_COOKIE_SECURE = False

SESSION_EXPIRE_AT_BROWSER_CLOSE = True
SESSION_COOKIE_AGE = 3600  # 1 hour


# Budget Governance Configuration
# -------------------------------------------------------------------------

# disallow: refuse bills/approvals beyond the remaining budget
# warn: allow and log a warning
# allow: allow silently
CBMS_BUDGET_OVERSPEND_POLICY = env('BUDGET_OVERSPEND_POLICY')

# allocated_minus_spent, income_minus_spent, none, or a dotted path to a callable
CBMS_CARRYFORWARD_STRATEGY = env('CARRYFORWARD_STRATEGY')

CBMS_ENFORCE_SINGLE_ACTIVE_YEAR = env('ENFORCE_SINGLE_ACTIVE_YEAR')

# Locked years still accept decisions on bills already in flight unless set
CBMS_BLOCK_DECISIONS_WHEN_LOCKED = env('BLOCK_DECISIONS_WHEN_LOCKED')

CBMS_APPROVAL_CHAIN = {
    'verify': ['hod'],
    'approve': ['vice_principal', 'principal'],
    'reject': ['office'],
}

# Highest bill amount a role may approve; roles not listed have no limit
CBMS_APPROVAL_LIMITS = {
    'vice_principal': env('VICE_PRINCIPAL_APPROVAL_LIMIT'),
}

# Utilization % at which the budget office and principal are alerted
CBMS_BUDGET_ALERT_THRESHOLD = env('BUDGET_ALERT_THRESHOLD')


# Logging Configuration
LOG_DIR = BASE_DIR / 'logs'
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'file': {
            'level': 'INFO',
            'class': 'logging.FileHandler',
            'filename': LOG_DIR / 'cbms.log',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'apps.core': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': True,
        },
        'apps.expenditure': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': True,
        },
        'budgeting': {
            'handlers': ['console', 'file'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
