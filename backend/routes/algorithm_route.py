from flask import Blueprint, request, jsonify
from flask_socketio import emit
from algorithms.service import ALGORITHMS, WIDGETS
from dataset_loader import DATASETS
from services.algorithm_service import handle_algorithm_request, handle_widget_request
import logging
import time

logger = logging.getLogger(__name__)

algorithm_bp = Blueprint('algorithm', __name__, url_prefix='/api/algorithm')


# HTTP endpoints (synchronous requests)
@algorithm_bp.route('/run', methods=['POST'])
def run_algorithm():
    try:
        request_data = request.get_json()
        logger.info(f"HTTP algorithm request: {request_data['algorithm']} - {request_data.get('dataset', 'inline')}")

        response = handle_algorithm_request(request_data)
        return jsonify(response)

    except Exception as e:
        logger.error(f"HTTP endpoint error: {str(e)}")
        return jsonify({"code": 500, "message": f"endpoint error: {str(e)}", "data": {}})


@algorithm_bp.route('/widget', methods=['POST'])
def run_widget():
    try:
        request_data = request.get_json()
        logger.info(f"HTTP widget request: {request_data['widget']}")
        return jsonify(handle_widget_request(request_data))

    except Exception as e:
        logger.error(f"HTTP endpoint error: {str(e)}")
        return jsonify({"code": 500, "message": f"endpoint error: {str(e)}", "data": {}})


@algorithm_bp.route('/list', methods=['GET'])
def list_algorithms():
    algorithms = {name: cls.task_type for name, cls in ALGORITHMS.items()}
    return jsonify({"code": 200, "message": "success",
                    "data": {"algorithms": algorithms, "widgets": list(WIDGETS)}})


@algorithm_bp.route('/datasets', methods=['GET'])
def list_datasets():
    return jsonify({"code": 200, "message": "success", "data": {"datasets": DATASETS}})


# WebSocket events
def register_socket_events(socketio):
    @socketio.on('connect')
    def handle_connect():
        logger.info('Client connected')
        emit('connection_response', {'message': 'connected', 'status': 'connected'})

    @socketio.on('disconnect')
    def handle_disconnect():
        logger.info('Client disconnected')

    @socketio.on('run_algorithm')
    def handle_algorithm_socket(data):
        """Run a whole training request over the socket."""
        try:
            algorithm = data.get('algorithm')
            dataset = data.get('dataset')
            logger.info(f"WebSocket algorithm request - algorithm: {algorithm}, dataset: {dataset}")

            emit('algorithm_status', {'status': 'processing', 'message': 'running...'})

            response = handle_algorithm_request(data)

            if response["code"] == 200:
                emit('algorithm_result', response["data"])
                logger.info(f"Algorithm finished: {algorithm}")
            else:
                emit('algorithm_error', {'error': response["message"]})

        except Exception as e:
            error_msg = f"Algorithm error: {str(e)}"
            logger.error(error_msg)
            emit('algorithm_error', {'error': error_msg})

    @socketio.on('step_algorithm')
    def handle_step_socket(data):
        """Advance a stepping model; the client sends back the state it received."""
        try:
            request_data = dict(data, action='step')
            response = handle_algorithm_request(request_data)

            if response["code"] == 200:
                emit('algorithm_step', response["data"])
            else:
                emit('algorithm_error', {'error': response["message"]})

        except Exception as e:
            error_msg = f"Step error: {str(e)}"
            logger.error(error_msg)
            emit('algorithm_error', {'error': error_msg})

    @socketio.on('ping')
    def handle_ping():
        emit('pong', {'message': 'pong', 'timestamp': time.time()})
