"""
CraftMind Nexus - Application Factory
"""
import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def create_app(config_name=None):
    """Create and configure the Flask application"""
    from app.config import config

    app = Flask(__name__)

    # Configuration
    config_name = config_name or os.getenv('FLASK_CONFIG', 'default')
    app.config.from_object(config[config_name])

    # Database connection pooling only makes sense for server databases
    database_uri = app.config.get('SQLALCHEMY_DATABASE_URI') or ''
    if not database_uri.startswith('sqlite'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_size': 10,              # Number of connections to keep open
            'pool_recycle': 3600,          # Recycle connections after 1 hour
            'pool_pre_ping': True,         # Test connections before using
            'max_overflow': 20,            # Extra connections beyond pool_size
            'pool_timeout': 30             # Timeout for getting connection from pool
        }

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    from app.services.notification_dispatcher import notification_dispatcher
    notification_dispatcher.queue_size = app.config['NOTIFICATION_QUEUE_SIZE']

    # Make sure every model is registered on the metadata
    from app import models  # noqa: F401

    # Register blueprints
    from app.student import student_bp
    from app.teacher import teacher_bp

    app.register_blueprint(student_bp, url_prefix='/student')
    app.register_blueprint(teacher_bp, url_prefix='/teacher')

    @app.route('/health')
    def health():
        from flask import jsonify

        return jsonify({
            'status': 'ok',
            'live_users': notification_dispatcher.get_connected_count()
        })

    return app


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login"""
    from app.models.user import User
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    """JSON 401 for API clients without a session"""
    from flask import jsonify
    return jsonify({'success': False, 'error': 'Unauthorized', 'message': 'Authentication required'}), 401
