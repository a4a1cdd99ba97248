from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from config import Config
import logging

db = SQLAlchemy()
login_manager = LoginManager()

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    from app.utils.errors import GradebookError

    @app.errorhandler(GradebookError)
    def handle_gradebook_error(error):
        logger.info(f'{error.code}: {error.message}')
        return jsonify({'success': False, 'error': error.to_dict()}), error.status_code

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({
            'success': False,
            'error': {
                'code': 'FILE_TOO_LARGE',
                'message': f'File too large. Max file size {app.config["MAX_CONTENT_LENGTH"] // 1000}KB',
                'details': {}
            }
        }), 413


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    login_manager.init_app(app)

    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        loaded_user = db.session.get(User, int(user_id))
        if loaded_user and loaded_user.is_active:
            return loaded_user
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({
            'success': False,
            'error': {'code': 'AUTH_REQUIRED', 'message': 'Please log in to access this resource', 'details': {}}
        }), 401

    from app.routes import auth, classes, class_grades, grade_reviews, notifications

    app.register_blueprint(auth.bp)
    app.register_blueprint(classes.bp)
    app.register_blueprint(class_grades.bp)
    app.register_blueprint(grade_reviews.bp)
    app.register_blueprint(notifications.bp)

    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    if app.config.get('SCHEDULER_ENABLED'):
        from app.utils.scheduler import init_scheduler
        init_scheduler(app)

    return app
