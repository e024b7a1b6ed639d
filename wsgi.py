"""
WSGI entry point for production servers.
Imports the Flask app from main.py and exposes it as `application`.
"""
from main import app

application = app

if __name__ == "__main__":
    app.run()
