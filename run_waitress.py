"""
Run the Contract Guardian API with the Waitress WSGI server.
"""
import logging
import os

from waitress import serve

from main import app

logger = logging.getLogger(__name__)

if __name__ == '__main__':
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', '5000'))
    threads = int(os.getenv('WAITRESS_THREADS', '4'))

    logger.info(f"Starting Contract Guardian on {host}:{port} with Waitress ({threads} threads)")
    serve(app, host=host, port=port, threads=threads)
