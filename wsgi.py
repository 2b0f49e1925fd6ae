#!/usr/bin/env python3
"""
WSGI entry point for production hosting
"""

import os
import logging

os.environ.setdefault('FLASK_ENV', 'production')

from app import app  # noqa: E402
from englishapp.db import init_db  # noqa: E402

logger = logging.getLogger(__name__)

# Create tables once per process before serving
init_db()
logger.info("Database initialized")

# This is the WSGI application the server will use
application = app

if __name__ == "__main__":
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)
