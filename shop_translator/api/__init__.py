"""
API Module
==========
Flask API routes and blueprints.
"""
from shop_translator.api.routes import (
    create_jobs_blueprint,
    create_queue_blueprint,
    create_translate_blueprint,
    create_health_blueprint,
    create_logs_blueprint
)

__all__ = [
    'create_jobs_blueprint',
    'create_queue_blueprint',
    'create_translate_blueprint',
    'create_health_blueprint',
    'create_logs_blueprint'
]
