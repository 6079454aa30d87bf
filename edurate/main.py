import os
from flask import Flask, jsonify
from config.config import config
from edurate.database import init_db
from edurate.routes import admin, auth, classrooms, dashboard, reviews
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


def create_app(config_name: str = None) -> Flask:
    """Application factory"""
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    
    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    
    app.register_blueprint(auth.bp, url_prefix='/api/auth')
    app.register_blueprint(reviews.bp, url_prefix='/api/reviews')
    app.register_blueprint(admin.bp, url_prefix='/api/admin')
    app.register_blueprint(classrooms.bp, url_prefix='/api/classrooms')
    app.register_blueprint(dashboard.bp, url_prefix='/api/dashboard')
    
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404
    
    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405
    
    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error: {str(error)}")
        return jsonify({'error': 'Internal server error'}), 500
    
    init_db()
    logger.info(f"EduRate app created ({config_name})")
    
    return app
