"""
Flask application for Turf Fertility Manager.
"""

from datetime import timedelta

from flask import Flask, jsonify

from config import Config
from logging_config import logger
from db import init_db
from auth import ensure_admin_user
from routes import api_bp


def create_app():
    app = Flask(__name__)
    app.secret_key = Config.FLASK_SECRET_KEY
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=Config.SESSION_LIFETIME_HOURS)
    app.config['JSON_AS_ASCII'] = False
    app.json.ensure_ascii = False

    app.register_blueprint(api_bp)

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    init_db()
    ensure_admin_user()
    logger.info("Turf Fertility Manager app created")
    return app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=Config.PORT, debug=Config.DEBUG)
