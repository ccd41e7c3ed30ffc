"""
asgi.py -- ASGI entry point.

Loads Settings from the environment once and builds the application. This
is the only place (besides the CLI in main.py) that calls get_settings().

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
