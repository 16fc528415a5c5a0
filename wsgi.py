# wsgi.py
"""Production WSGI entry point"""

from app import create_app

application = create_app()
socketio = application.socketio
