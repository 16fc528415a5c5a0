# core/extensions.py
"""
Flask extensions bound to the app in create_app()
"""

from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

limiter = Limiter(key_func=get_remote_address)
migrate = Migrate()
cors = CORS()
