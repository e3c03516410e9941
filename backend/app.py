from flask import Flask, jsonify
from flask_socketio import SocketIO
import logging
import socket

app = Flask(__name__)
app.config['SECRET_KEY'] = 'ml-widgets-secret-key'
app.config['LOG_LEVEL'] = 'DEBUG'
app.config['HOST'] = '0.0.0.0'
app.config['PORT'] = 5000
app.config['DEBUG'] = True
# WIDGETS_PORT=8000, WIDGETS_LOG_LEVEL=INFO, ...
app.config.from_prefixed_env('WIDGETS')

logging.basicConfig(level=app.config['LOG_LEVEL'])
logger = logging.getLogger(__name__)

# threading mode, no eventlet/gevent
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    logger=app.config['DEBUG'],
    engineio_logger=app.config['DEBUG'],
    async_mode='threading'
)

from routes.algorithm_route import algorithm_bp

app.register_blueprint(algorithm_bp)

from routes.algorithm_route import register_socket_events

register_socket_events(socketio)


def get_local_ip():
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


@app.route('/')
def index():
    return jsonify({
        "name": "ml-teaching-widgets",
        "endpoints": ["/api/algorithm/run", "/api/algorithm/widget",
                      "/api/algorithm/list", "/api/algorithm/datasets"],
        "socket_events": ["run_algorithm", "step_algorithm", "ping"],
    })


if __name__ == '__main__':
    port = app.config['PORT']
    local_ip = get_local_ip()
    logger.info("=" * 50)
    logger.info("ML teaching widgets backend started")
    logger.info(f"Local:   http://localhost:{port}")
    logger.info(f"Network: http://{local_ip}:{port}")
    logger.info("=" * 50)

    socketio.run(
        app,
        debug=app.config['DEBUG'],
        host=app.config['HOST'],
        port=port,
        allow_unsafe_werkzeug=True
    )
