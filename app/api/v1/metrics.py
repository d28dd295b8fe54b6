from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# Metrics Definitions
RUNNER_TRANSITIONS = Counter('job_runner_transitions_total', 'Job runner state transitions', ['state'])
JOB_FAILURES = Counter('job_failures_total', 'Total job failures', ['type']) # type=retryable|final|timeout

JOB_DURATION = Histogram('job_duration_seconds', 'Time from run to done', buckets=[1.0, 5.0, 10.0, 60.0, 120.0])

JOBS_INFLIGHT = Gauge(
    "jobs_inflight",
    "Number of job runners not yet done"
)

@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
