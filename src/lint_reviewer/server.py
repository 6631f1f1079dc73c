"""
Lint Reviewer Webhook Server

Flask app receiving GitHub webhook deliveries and running review cycles.
"""

import asyncio
import hashlib
import hmac
import logging
from typing import Optional

from flask import Flask, jsonify, request
from pydantic import ValidationError

from . import __version__
from .api import ReviewBot
from .webhooks import dispatch, event_kind


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"


def verify_signature(secret: Optional[str], body: bytes, signature: Optional[str]) -> bool:
    """Check the ``sha256=<hexdigest>`` HMAC of the raw body. No secret means no check."""
    if not secret:
        return True
    if not signature or not signature.startswith("sha256="):
        return False

    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"sha256={expected}", signature)


def create_app(bot: Optional[ReviewBot] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        bot: Review bot to dispatch events to (built from config when omitted)
    """
    app = Flask(__name__)
    reviewer = bot or ReviewBot()

    @app.route('/api/v1/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'service': 'lint-reviewer',
            'version': __version__
        })

    @app.route('/api/v1/webhooks/github', methods=['POST'])
    def receive_webhook():
        """Receive a GitHub webhook delivery."""
        body = request.get_data()
        if not verify_signature(reviewer.config.github.webhook_secret, body, request.headers.get(SIGNATURE_HEADER)):
            logger.warning("Rejected webhook delivery with invalid signature")
            return jsonify({'error': 'invalid signature', 'status': 'rejected'}), 401

        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({'error': 'expected a JSON object', 'status': 'failed'}), 400

        event_name = request.headers.get(EVENT_HEADER, '')
        kind = event_kind(event_name, payload)

        try:
            result = asyncio.run(dispatch(reviewer, event_name, payload))
        except ValidationError as e:
            return jsonify({'error': str(e), 'status': 'failed'}), 400
        except Exception as e:
            logger.error(f"Webhook {kind} failed: {e}")
            return jsonify({'error': str(e), 'status': 'failed'}), 500

        if result is None:
            return jsonify({'event': kind, 'status': 'ignored'})

        return jsonify({
            'event': kind,
            'status': result.state.value,
            'repository': result.event.repository,
            'pr_number': result.event.pr_number,
            'total_comments': len(result.comments),
            'warnings': result.warnings,
            'processing_time': result.processing_time
        })

    return app
