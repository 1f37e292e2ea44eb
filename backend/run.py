import logging

from config import Config
from sketchparty import create_app, socketio

logging.basicConfig(level=Config.LOG_LEVEL)
app = create_app()

if __name__ == '__main__':
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                 allow_unsafe_werkzeug=True)
