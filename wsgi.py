"""
WSGI entry point for production deployment.

Run with a single worker process: every process starts its own job
scheduler, and two schedulers would poll the same tenant databases.
"""

import os

from dotenv import load_dotenv

if os.path.exists(".env"):
    load_dotenv()

from socgate import create_app

application = create_app()

# For compatibility with some WSGI servers that expect 'app'
app = application
