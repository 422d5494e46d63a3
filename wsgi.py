"""WSGI entry point for Gunicorn / the desktop shell."""
import sys
import os

# Ensure the project directory is in the Python path
sys.path.insert(0, os.path.dirname(__file__))

from admin_edificios import create_app

# Create the application instance
app = create_app()

if __name__ == "__main__":
    app.run(port=int(os.getenv('PORT', 5000)))
