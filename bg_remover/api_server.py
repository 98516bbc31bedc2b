#!/usr/bin/env python3
"""
Background Remover API Server
Upload once, then move the threshold as often as you like: the decoded image
and its background estimate stay cached in the session.
"""

import os
import logging
import threading
import uuid
import base64
from io import BytesIO
from typing import Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

from .models.errors import BackgroundRemovalError
from .models.image import Image
from .services.background_remover import BackgroundRemover
from .services.background_service import BackgroundService
from .services.image_service import ImageService

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25"))
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_SIZE_MB * 1024 * 1024

# Session storage: one cached source image per session
sessions: Dict[str, "RemovalSession"] = {}
sessions_lock = threading.Lock()

# Decoding needs no session state
image_service = ImageService()


class RemovalSession:
    """
    Owns the BackgroundService (and so the source cache) for one user.
    Hold `lock` while changing the cache or reading a result out of it:
    Flask serves requests on several threads.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.service = BackgroundService(image_service=image_service)
        self.lock = threading.Lock()

    def clear(self):
        """Drop the cached images."""
        self.service.reset()


def get_or_create_session(session_id: str = None) -> RemovalSession:
    """Get existing session or create new one."""
    if not session_id:
        session_id = str(uuid.uuid4())

    with sessions_lock:
        if session_id not in sessions:
            sessions[session_id] = RemovalSession(session_id)
        return sessions[session_id]


def get_session(session_id: Optional[str]) -> Optional[RemovalSession]:
    if not session_id:
        return None
    return sessions.get(session_id)


def image_to_base64(image: Image, service: BackgroundService) -> str:
    """PNG data URL, so transparency survives the trip to the browser."""
    png = service.image_service.encode_png(image)
    return "data:image/png;base64," + base64.b64encode(png).decode('utf-8')


def session_payload(session: RemovalSession, message: str) -> dict:
    service = session.service
    result = service.result
    return {
        'success': True,
        'session_id': session.session_id,
        'width': result.pixels.width,
        'height': result.pixels.height,
        'background': list(service.background),
        'background_hex': service.background.as_hex(),
        'threshold': service.threshold,
        'filename': service.image_service.output_name(service.source),
        'image': image_to_base64(result, service),
        'message': message,
    }


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@app.route('/api/load-image', methods=['POST'])
def load_image():
    """Select a new source image: decode, estimate the background, process at the default threshold."""
    if 'image' not in request.files:
        return jsonify({'success': False, 'message': 'No image provided'}), 400

    file = request.files['image']
    if file.filename == '':
        return jsonify({'success': False, 'message': 'No file selected'}), 400

    threshold = request.form.get('threshold')
    try:
        threshold = float(threshold) if threshold not in (None, '') else None
    except ValueError:
        return jsonify({'success': False, 'message': f'Invalid threshold: {threshold!r}'}), 400

    # Validate everything before touching the session table, so a bad upload leaves no trace
    filename = secure_filename(file.filename) or None
    try:
        if threshold is not None:
            BackgroundRemover.validate_threshold(threshold)
        image = image_service.load_bytes(file.read(), filename)
    except (BackgroundRemovalError, ValueError) as e:
        logger.error(f"Rejected upload {filename}: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400

    session = get_or_create_session(request.form.get('session_id'))
    with session.lock:
        session.service.select(image, threshold)
        payload = session_payload(session, 'Background removed')

    logger.info(f"Session {session.session_id}: loaded {filename} {image.pixels.width}x{image.pixels.height}")
    return jsonify(payload)


@app.route('/api/threshold', methods=['POST'])
def change_threshold():
    """Reprocess the cached source with a new threshold (no re-decode)."""
    body = _json_body()
    session = get_session(body.get('session_id'))
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400

    with session.lock:
        try:
            result = session.service.set_threshold(body.get('threshold'))
        except BackgroundRemovalError as e:
            return jsonify({'success': False, 'message': str(e)}), 400

        if result is None:
            return jsonify({'success': False, 'message': 'No image loaded'}), 400
        payload = session_payload(session, f'Reprocessed at threshold {session.service.threshold:g}')
    return jsonify(payload)


@app.route('/api/download/<session_id>')
def download(session_id):
    """The processed image as a PNG attachment."""
    session = get_session(session_id)
    if session is None:
        return jsonify({'error': 'Image not found'}), 404

    with session.lock:
        if session.service.result is None:
            return jsonify({'error': 'Image not found'}), 404
        png = image_service.encode_png(session.service.result)
        name = image_service.output_name(session.service.source)
    return send_file(BytesIO(png), mimetype='image/png', as_attachment=True, download_name=name)


@app.route('/api/reset', methods=['POST'])
def reset_session():
    """Clear a session and free memory."""
    session_id = _json_body().get('session_id')
    with sessions_lock:
        session = sessions.pop(session_id, None) if session_id else None
    if session is None:
        return jsonify({'success': False, 'message': 'Session not found'})
    with session.lock:
        session.clear()
    return jsonify({'success': True, 'message': 'Session cleared'})


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Background Remover API is running',
        'active_sessions': len(sessions)
    })


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_UPLOAD_SIZE_MB}MB.'}), 413


@app.errorhandler(Exception)
def internal_error(e):
    """Anything unexpected: log it, answer 500."""
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    logger.exception(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Background Remover API on {host}:{port} (max upload {MAX_UPLOAD_SIZE_MB}MB)")
    app.run(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
