"""
Translation Jobs
================
Job processors and the public enqueue / status / stats functions.
"""
from typing import Any, Dict, List, Optional

from shop_translator.config import config
from shop_translator.config.constants import JobState, ResourceStatus
from shop_translator.config.settings import QueueConfig
from shop_translator.database.repositories import (
    ResourceStore,
    TranslationStore,
    get_resource_repository,
    get_translation_repository
)
from shop_translator.job_queue.base import (
    CrossEnvironmentError,
    JobContext,
    JobPayloadError,
    ResourceNotFoundError,
    TerminalJobError
)
from shop_translator.job_queue.supervisor import QueueSupervisor, get_supervisor
from shop_translator.models.schemas import BatchTranslationJobRequest, JobAdmission, TranslationJobRequest
from shop_translator.services.orchestrator import TranslationOrchestrator, build_orchestrator
from shop_translator.utils.logging import get_logger, job_logger

TRANSLATE_JOB = 'translateResource'
BATCH_JOB = 'batchTranslate'

CLEANABLE = {
    'completed': (JobState.COMPLETED,),
    'failed': (JobState.FAILED,),
    'all': (JobState.COMPLETED, JobState.FAILED),
}


class TranslationJobService:
    """Admits translation jobs and runs them on the supervised queue."""

    def __init__(
        self,
        supervisor: QueueSupervisor = None,
        resources: ResourceStore = None,
        translations: TranslationStore = None,
        orchestrator: TranslationOrchestrator = None,
        settings: QueueConfig = None
    ):
        self.supervisor = supervisor or get_supervisor()
        self._resources = resources
        self._translations = translations
        self._orchestrator = orchestrator
        self.settings = settings or config.queue
        self.logger = get_logger().queue_logger

    # Collaborators are resolved lazily so the API can start without a database

    @property
    def resources(self) -> ResourceStore:
        if self._resources is None:
            self._resources = get_resource_repository()
        return self._resources

    @property
    def translations(self) -> TranslationStore:
        if self._translations is None:
            self._translations = get_translation_repository()
        return self._translations

    @property
    def orchestrator(self) -> TranslationOrchestrator:
        if self._orchestrator is None:
            runtime = self.supervisor.runtime
            self._orchestrator = build_orchestrator(rate_limiter=runtime.rate_limiter, cache=runtime.cache)
        return self._orchestrator

    def register(self) -> None:
        """Register both processors with the supervisor."""
        self.supervisor.register_processor(TRANSLATE_JOB, self.settings.concurrency, self.process_translate_job)
        self.supervisor.register_processor(BATCH_JOB, self.settings.batch_concurrency, self.process_batch_job)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def enqueue_translation_job(
        self,
        resource_id: str,
        shop_id: str,
        shop_domain: str = None,
        language: str = None,
        delay: float = 0.0
    ) -> JobAdmission:
        """
        Queue translation of one resource.

        Raises:
            JobPayloadError: a required field is missing
        """
        request = TranslationJobRequest(
            resource_id=resource_id,
            shop_id=shop_id,
            language=language,
            shop_domain=shop_domain
        )
        return self._admit(request, delay)

    def _admit(self, request: TranslationJobRequest, delay: float = 0.0) -> JobAdmission:
        errors = request.validate()
        if errors:
            raise JobPayloadError(errors)
        job = self.supervisor.enqueue(TRANSLATE_JOB, request.to_payload(), delay=delay)
        self.logger.info(f"Queued {TRANSLATE_JOB} {job.id} for {request.resource_id} -> {request.language}")
        return JobAdmission(job_id=job.id, resource_id=request.resource_id, delay=delay)

    def enqueue_batch_translation_job(
        self,
        resource_ids: List[str],
        shop_id: str,
        shop_domain: str = None,
        language: str = None
    ) -> JobAdmission:
        """
        Queue a batch job that fans out into one job per resource.

        Raises:
            JobPayloadError: the id list or a required field is missing
        """
        request = BatchTranslationJobRequest.from_payload({
            'resourceIds': resource_ids,
            'shopId': shop_id,
            'shopDomain': shop_domain,
            'language': language,
        })
        errors = request.validate()
        if errors:
            raise JobPayloadError(errors)
        job = self.supervisor.enqueue(BATCH_JOB, request.to_payload(), max_attempts=1)
        self.logger.info(f"Queued {BATCH_JOB} {job.id} with {len(request.resource_ids)} resource(s)")
        return JobAdmission(job_id=job.id, resource_count=len(request.resource_ids))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_job_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        job = self.supervisor.get_job(job_id)
        return job.to_dict() if job else None

    def get_queue_stats(self) -> Dict[str, Any]:
        return self.supervisor.stats()

    def clean_queue(self, kind: str = 'all', grace: float = None) -> Dict[str, int]:
        """Remove finished jobs of ``kind`` (completed, failed or all)."""
        if kind not in CLEANABLE:
            raise ValueError(f"Unknown clean target '{kind}', expected one of: {', '.join(CLEANABLE)}")
        grace = self.settings.clean_grace if grace is None else grace
        return {state.value: self.supervisor.clean(state, grace) for state in CLEANABLE[kind]}

    # ------------------------------------------------------------------
    # Processors
    # ------------------------------------------------------------------

    def process_translate_job(self, context: JobContext) -> Dict[str, Any]:
        """Translate one resource and persist the result."""
        request = TranslationJobRequest.from_payload(context.data)
        errors = request.validate()
        if errors:
            raise TerminalJobError("Invalid job payload: " + "; ".join(errors))
        log = job_logger(self.logger, context.job.id, TRANSLATE_JOB)

        resource = self.resources.find_by_id(request.resource_id)
        if resource is None:
            raise ResourceNotFoundError(f"Resource {request.resource_id} not found")
        if resource.shop_id != request.shop_id:
            raise CrossEnvironmentError(
                f"Resource {resource.id} belongs to shop {resource.shop_id}, not {request.shop_id}"
            )
        context.update_progress(10)

        try:
            self.resources.update_status(resource.id, ResourceStatus.PROCESSING)
            context.update_progress(20)

            result = self.orchestrator.translate_resource(resource, request.language)
            context.update_progress(70)

            self.translations.save(request.shop_id, result)
            self.resources.update_status(resource.id, ResourceStatus.COMPLETED)
            context.update_progress(100)
        except Exception:
            log.warning(f"Reverting {resource.id} to {ResourceStatus.PENDING.value}")
            self.resources.update_status(resource.id, ResourceStatus.PENDING)
            raise

        log.info(f"Translated {resource.id} -> {request.language}"
                 + (f" (needs review: {', '.join(result.failed_fields)})" if result.failed_fields else ""))
        return {
            'resourceId': resource.id,
            'language': request.language,
            'success': result.success,
            'strategies': result.strategies,
            'failedFields': result.failed_fields,
        }

    def process_batch_job(self, context: JobContext) -> Dict[str, Any]:
        """Fan a batch out into staggered single-resource jobs."""
        request = BatchTranslationJobRequest.from_payload(context.data)
        errors = request.validate()
        if errors:
            raise TerminalJobError("Invalid job payload: " + "; ".join(errors))

        admissions = []
        total = len(request.resource_ids)
        for index, resource_id in enumerate(request.resource_ids):
            admission = self._admit(request.item(resource_id), delay=index * self.settings.batch_stagger)
            admissions.append(admission.to_dict())
            context.update_progress(int((index + 1) * 100 / total))

        return {'total': total, 'admissions': admissions}


# Global service instance
_service_instance: Optional[TranslationJobService] = None


def get_job_service() -> TranslationJobService:
    """Get or create the job service with processors registered."""
    global _service_instance
    if _service_instance is None:
        _service_instance = TranslationJobService()
        _service_instance.register()
    return _service_instance
