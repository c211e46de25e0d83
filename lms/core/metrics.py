"""Prometheus metric inventory for lms-service.

All metrics are declared here so there is one place to see what the
service measures.  Modules import the metric they own and increment it
at the point of action; MetricsMiddleware covers the HTTP layer.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

# ---------------------------------------------------------------------------
# Learning domain
# ---------------------------------------------------------------------------

ENROLLMENTS = Counter(
    "lms_enrollments_total",
    "Course enrollments created",
)

LESSON_COMPLETIONS = Counter(
    "lms_lesson_completions_total",
    "Lesson progress writes that marked a lesson completed",
    ["source"],  # "video" or "quiz"
)

COURSE_COMPLETIONS = Counter(
    "lms_course_completions_total",
    "Course progress recomputations that reached 100 percent",
)

QUIZ_SUBMISSIONS = Counter(
    "lms_quiz_submissions_total",
    "Quiz attempts submitted, by outcome",
    ["result"],  # "passed" or "failed"
)
