from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, services=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Build the session core once and share it with every connection
    from sketchparty.services.game import GameServices
    if services is None:
        services = GameServices.from_config(flask_app.config)
    flask_app.extensions['sketchparty'] = services

    from sketchparty.routes import main
    flask_app.register_blueprint(main)

    from sketchparty.socketio_events import register_socketio_handlers
    register_socketio_handlers(services, namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    return flask_app
