"""
API Routes
==========
Flask blueprints for all API endpoints.
"""
import os
import time

import psutil
from flask import Blueprint, current_app, jsonify, request

from shop_translator import __version__
from shop_translator.job_queue.base import JobPayloadError
from shop_translator.job_queue.jobs import TranslationJobService, get_job_service
from shop_translator.models.schemas import BatchTranslationJobRequest, TranslationJobRequest
from shop_translator.models.translation import Resource
from shop_translator.services.api_client import TranslationApiClient, get_api_client
from shop_translator.services.orchestrator import TranslationOrchestrator, get_orchestrator
from shop_translator.utils.logging import get_logger, log_buffer

_STARTED_AT = time.time()


def _job_service() -> TranslationJobService:
    return current_app.config.get('JOB_SERVICE') or get_job_service()


def _orchestrator() -> TranslationOrchestrator:
    return current_app.config.get('ORCHESTRATOR') or get_orchestrator()


def _api_client() -> TranslationApiClient:
    return current_app.config.get('API_CLIENT') or get_api_client()


def _payload_error(error: JobPayloadError):
    return jsonify({'error': 'Invalid job payload', 'details': error.errors}), 400


def create_jobs_blueprint() -> Blueprint:
    """Create job admission and status routes blueprint."""
    bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')
    logger = get_logger().api_logger

    @bp.route('/translate', methods=['POST'])
    def enqueue_translation():
        """Queue translation of one resource."""
        payload = TranslationJobRequest.from_payload(request.get_json(silent=True))
        try:
            admission = _job_service().enqueue_translation_job(
                resource_id=payload.resource_id,
                shop_id=payload.shop_id,
                shop_domain=payload.shop_domain,
                language=payload.language
            )
        except JobPayloadError as e:
            logger.warning(f"Rejected translation job: {e}")
            return _payload_error(e)
        return jsonify(admission.to_dict()), 202

    @bp.route('/translate/batch', methods=['POST'])
    def enqueue_batch():
        """Queue a batch of resources."""
        payload = BatchTranslationJobRequest.from_payload(request.get_json(silent=True))
        try:
            admission = _job_service().enqueue_batch_translation_job(
                resource_ids=payload.resource_ids,
                shop_id=payload.shop_id,
                shop_domain=payload.shop_domain,
                language=payload.language
            )
        except JobPayloadError as e:
            logger.warning(f"Rejected batch job: {e}")
            return _payload_error(e)
        return jsonify(admission.to_dict()), 202

    @bp.route('/<job_id>', methods=['GET'])
    def job_status(job_id: str):
        """Get job status."""
        status = _job_service().get_job_status(job_id)
        if status is None:
            return jsonify({'error': 'Job not found'}), 404
        return jsonify(status)

    return bp


def create_queue_blueprint() -> Blueprint:
    """Create queue administration routes blueprint."""
    bp = Blueprint('queue', __name__, url_prefix='/api/queue')
    logger = get_logger().api_logger

    @bp.route('/stats', methods=['GET'])
    def queue_stats():
        return jsonify(_job_service().get_queue_stats())

    @bp.route('/clean', methods=['POST'])
    def clean_queue():
        """Remove finished jobs."""
        data = request.get_json(silent=True) or {}
        kind = data.get('type', request.args.get('type', 'all'))
        try:
            removed = _job_service().clean_queue(kind)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        logger.info(f"Cleaned queue ({kind}): {removed}")
        return jsonify({'removed': removed})

    @bp.route('/reinitialize', methods=['POST'])
    def reinitialize_queue():
        """Switch back to the Redis queue if it is reachable."""
        service = _job_service()
        switched = service.supervisor.reinitialize()
        return jsonify({
            'success': switched,
            'mode': service.supervisor.queue.mode
        }), (200 if switched else 503)

    return bp


def create_translate_blueprint() -> Blueprint:
    """Create synchronous translation and resource routes blueprint."""
    bp = Blueprint('translate', __name__, url_prefix='/api')
    logger = get_logger().api_logger

    @bp.route('/resources', methods=['POST'])
    def upsert_resource():
        """Store a resource snapshot so jobs can load it."""
        data = request.get_json(silent=True) or {}
        if not data.get('id') or not (data.get('shopId') or data.get('shop_id')):
            return jsonify({'error': 'id and shopId are required'}), 400
        resource = Resource.from_dict(data)
        _job_service().resources.upsert(resource)
        return jsonify(resource.to_dict()), 201

    @bp.route('/translate/resource', methods=['POST'])
    def translate_resource():
        """Translate one resource synchronously, without the queue."""
        data = request.get_json(silent=True) or {}
        language = (data.get('language') or '').strip()
        if not language:
            return jsonify({'error': 'language is required'}), 400

        if isinstance(data.get('resource'), dict):
            resource = Resource.from_dict(data['resource'])
        else:
            resource_id = data.get('resourceId')
            if not resource_id:
                return jsonify({'error': 'resource or resourceId is required'}), 400
            resource = _job_service().resources.find_by_id(resource_id)
            if resource is None:
                return jsonify({'error': f'Resource {resource_id} not found'}), 404

        started = time.time()
        result = _orchestrator().translate_resource(resource, language)
        logger.info(f"Synchronous translation of {resource.id} took {time.time() - started:.1f}s")
        return jsonify(result.to_dict())

    return bp


def create_health_blueprint() -> Blueprint:
    """Create health check routes blueprint."""
    bp = Blueprint('health', __name__, url_prefix='/api')

    @bp.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        api_healthy = _api_client().is_healthy()
        queue_mode = _job_service().supervisor.queue.mode

        return jsonify({
            'status': 'healthy' if api_healthy and queue_mode == 'redis' else 'degraded',
            'translationApi': 'connected' if api_healthy else 'disconnected',
            'queue': queue_mode,
            'version': __version__
        })

    @bp.route('/metrics', methods=['GET'])
    def get_metrics():
        """Get process and queue metrics."""
        process = psutil.Process(os.getpid())
        with process.oneshot():
            process_metrics = {
                'cpu_percent': process.cpu_percent(interval=None),
                'memory_rss': process.memory_info().rss,
                'threads': process.num_threads(),
            }
        system_metrics = {
            'cpu_percent': psutil.cpu_percent(interval=None),
            'memory_percent': psutil.virtual_memory().percent,
        }

        return jsonify({
            'uptime': time.time() - _STARTED_AT,
            'queue': _job_service().get_queue_stats(),
            'process': process_metrics,
            'system': system_metrics
        })

    return bp


def create_logs_blueprint() -> Blueprint:
    """Create logs routes blueprint."""
    bp = Blueprint('logs', __name__, url_prefix='/api')

    @bp.route('/logs', methods=['GET'])
    def get_logs():
        """Get logs from the in-memory buffer."""
        since_id = request.args.get('since', 0, type=int)
        source = request.args.get('source')
        if since_id > 0 or source:
            logs = log_buffer.get_since(since_id, source)
        else:
            logs = log_buffer.get_all()
        return jsonify({'logs': logs})

    @bp.route('/logs/clear', methods=['POST'])
    def clear_logs():
        log_buffer.clear()
        return jsonify({'message': 'Logs cleared'})

    return bp
