from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the sketchparty game server!'})


@main.route('/health')
def health():
    services = current_app.extensions['sketchparty']
    return jsonify({'status': 'ok', 'rooms': services.registry.room_count()})
