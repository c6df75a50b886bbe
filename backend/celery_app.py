"""Worker entrypoint: ``celery -A celery_app.celery worker -Q email``."""
from rexon import create_app
from rexon.celery_app import create_celery_app

flask_app = create_app()
celery = flask_app.extensions.get("celery") or create_celery_app(flask_app)
