# ===================================
# monitoring.py - Request Metrics
# ===================================

from collections import Counter, defaultdict, deque
from typing import Any, Deque, Dict, Optional

# Status codes the exception handlers emit for upstream trouble
UPSTREAM_FAILURE_CODES = (502, 503)


class APIMetrics:
    """Per-route timings plus counts of throttled and upstream-failed responses"""

    def __init__(self, max_samples: int = 100):
        self.status_counts: Counter = Counter()
        self.route_counts: Counter = Counter()
        self.rate_limited: Counter = Counter()
        self.upstream_failures: Counter = Counter()
        self.response_times: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_samples))

    def record_request(self, route: str, response_time_ms: float, status_code: int = 200):
        self.route_counts[route] += 1
        self.status_counts[status_code] += 1
        self.response_times[route].append(response_time_ms)
        if status_code == 429:
            self.rate_limited[route] += 1
        elif status_code in UPSTREAM_FAILURE_CODES:
            self.upstream_failures[route] += 1

    def _route_summary(self, route: str) -> Dict[str, Any]:
        samples = self.response_times[route]
        return {
            "requests": self.route_counts[route],
            "rate_limited": self.rate_limited[route],
            "upstream_failures": self.upstream_failures[route],
            "avg_response_time_ms": round(sum(samples) / len(samples), 2) if samples else 0,
            "max_response_time_ms": round(max(samples), 2) if samples else 0,
        }

    def get_summary(self, limiter_stats: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Counts for /metrics; limiter_stats is the shared limiter's get_stats() snapshot"""
        total = sum(self.route_counts.values())
        errors = sum(count for code, count in self.status_counts.items() if code >= 400)
        return {
            "total_requests": total,
            "total_errors": errors,
            "error_rate": (errors / total * 100) if total else 0,
            "rate_limited_responses": sum(self.rate_limited.values()),
            "upstream_failures": sum(self.upstream_failures.values()),
            "status_codes": {str(code): count for code, count in sorted(self.status_counts.items())},
            "routes": {route: self._route_summary(route) for route in self.route_counts},
            "limiter": limiter_stats or {},
        }
